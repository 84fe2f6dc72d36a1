"""
Builds the pool requests that execute an auction fill and settle the filler's position.
"""

from typing import List

from .config_loader import Filler, NetworkConfig
from .ledger import LedgerGateway
from .logging_config import setup_logger
from .models import FILL_REQUEST_TYPES, AuctionData, AuctionEntry, AuctionType, Request, RequestType

logger = setup_logger()


class FillRequestBuilder:
    def __init__(self, config: NetworkConfig, gateway: LedgerGateway):
        self.config = config
        self.gateway = gateway

    def build(
        self, filler: Filler, auction_entry: AuctionEntry, scaled_auction: AuctionData, fill_percent: int
    ) -> List[Request]:
        """
        Build the ordered list of requests for a fill.

        The fill request always comes first. For liquidation and bad debt auctions
        the filler then repays what it can of the bid and withdraws lot collateral
        as long as its health factor stays above its minimum.

        Args:
            filler: The filler executing the fill.
            auction_entry: The tracked auction being filled.
            scaled_auction: The auction scaled to the fill block and percent.
            fill_percent: The percent of the auction being filled.

        Returns:
            List of requests, in submission order.
        """
        requests = [
            Request(
                request_type=FILL_REQUEST_TYPES[auction_entry.auction_type],
                address=auction_entry.user_id,
                amount=fill_percent,
            )
        ]
        if auction_entry.auction_type == AuctionType.INTEREST:
            return requests

        pool = self.gateway.load_pool()
        oracle = self.gateway.load_pool_oracle()
        estimate, filler_user = self.gateway.load_user_position_estimate(filler.address)

        effective_collateral = estimate.total_effective_collateral
        effective_liabilities = estimate.total_effective_liabilities

        for asset_id, amount in scaled_auction.bid.items():
            reserve = pool.reserves.get(asset_id)
            price = oracle.get_price_float(asset_id)
            if reserve is None or price is None:
                continue

            balance = self.gateway.sim_balance(asset_id, filler.address)
            if asset_id == self.config.NATIVE_ASSET_ADDRESS:
                balance = max(balance - int(self.config.NATIVE_BALANCE_BUFFER), 0)

            liability = reserve.to_asset_from_d_token(amount)
            repaid = min(liability, balance) if balance > 0 else 0
            if repaid > 0:
                requests.append(Request(request_type=RequestType.REPAY, address=asset_id, amount=repaid))

            remaining = liability - repaid
            if remaining > 0:
                effective_liabilities += reserve.to_effective_liability_float(remaining) * price

        for asset_id, amount in scaled_auction.lot.items():
            reserve = pool.reserves.get(asset_id)
            price = oracle.get_price_float(asset_id)
            if reserve is None or price is None:
                continue
            if asset_id in filler_user.positions.collateral:
                # already used as collateral, keep it
                continue

            if effective_liabilities <= 0:
                health_factor = float("inf")
            else:
                health_factor = effective_collateral / effective_liabilities

            if health_factor > filler.min_health_factor:
                requests.append(
                    Request(
                        request_type=RequestType.WITHDRAW_COLLATERAL,
                        address=asset_id,
                        amount=reserve.to_asset_from_b_token(amount),
                    )
                )
            else:
                effective_collateral += reserve.to_effective_asset_from_b_token_float(amount) * price

        logger.debug(
            "FillRequestBuilder: Built %s requests for %s auction of %s",
            len(requests), auction_entry.auction_type.name, auction_entry.user_id,
        )
        return requests
