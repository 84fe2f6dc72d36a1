"""
Auction valuation.

Converts the bid and lot of an auction into USD figures. Effective figures are
risk weighted by the reserve's collateral/liability factors and priced at the
oracle price; plain figures use the local price cache when it has the asset.
"""

from typing import Dict, Optional, Tuple

from .config_loader import NetworkConfig
from .database import AuctioneerDatabase
from .exceptions import ConfigError, PriceUnavailable
from .ledger import LedgerGateway
from .logging_config import setup_logger
from .models import LP_TOKEN_DECIMALS, AuctionData, AuctionType, AuctionValue, Pool, PoolOracle, Reserve

logger = setup_logger()


class AuctionValuationEngine:
    def __init__(self, config: NetworkConfig, gateway: LedgerGateway, db: AuctioneerDatabase):
        self.config = config
        self.gateway = gateway
        self.db = db

    def valuate(self, auction_type: AuctionType, auction_data: AuctionData) -> AuctionValue:
        """
        Value an auction's lot and bid.

        Args:
            auction_type: The type of the auction.
            auction_data: The auction amounts, keyed by asset id.

        Returns:
            AuctionValue with the effective and plain figures.

        Raises:
            PriceUnavailable: If an asset has no cached or oracle price.
            ConfigError: If an asset is neither a reserve nor the backstop token.
        """
        pool = self.gateway.load_pool()
        oracle = self.gateway.load_pool_oracle()

        effective_collateral = 0.0
        effective_liabilities = 0.0
        lot_value = 0.0
        bid_value = 0.0

        for asset_id, amount in auction_data.lot.items():
            if asset_id == self.config.BACKSTOP_TOKEN_ADDRESS:
                lot_value += self.value_backstop_token(amount)
                continue

            reserve = self._get_reserve(pool, asset_id)
            price, risk_price = self._get_prices(oracle, asset_id)
            if auction_type == AuctionType.INTEREST:
                # interest lots are underlying tokens
                lot_value += reserve.to_float(amount) * price
            else:
                effective_collateral += reserve.to_effective_asset_from_b_token_float(amount) * risk_price
                lot_value += reserve.to_asset_from_b_token_float(amount) * price

        for asset_id, amount in auction_data.bid.items():
            if asset_id == self.config.BACKSTOP_TOKEN_ADDRESS:
                bid_value += self.value_backstop_token(amount)
                continue

            reserve = self._get_reserve(pool, asset_id)
            price, risk_price = self._get_prices(oracle, asset_id)
            if auction_type == AuctionType.INTEREST:
                bid_value += reserve.to_float(amount) * price
            else:
                effective_liabilities += reserve.to_effective_asset_from_d_token_float(amount) * risk_price
                bid_value += reserve.to_asset_from_d_token_float(amount) * price

        return AuctionValue(
            effective_collateral=effective_collateral,
            effective_liabilities=effective_liabilities,
            lot_value=lot_value,
            bid_value=bid_value,
        )

    def value_backstop_token(self, amount: int) -> float:
        """
        Value backstop LP tokens by simulating a single sided withdrawal to the
        reference stablecoin, falling back to the cached LP token price.
        """
        value = self.gateway.sim_lp_to_reference_stable(amount)
        if value is not None:
            return value

        cached = self.db.get_price_entry(self.config.BACKSTOP_TOKEN_ADDRESS)
        if cached is None:
            raise PriceUnavailable(self.config.BACKSTOP_TOKEN_ADDRESS)

        logger.warning(
            "AuctionValuationEngine: LP token simulation failed, using cached price %s", cached.price
        )
        return amount / 10**LP_TOKEN_DECIMALS * cached.price

    def _get_prices(self, oracle: PoolOracle, asset_id: str) -> Tuple[float, float]:
        """Return (plain price, risk price) for a reserve asset."""
        cached_entry = self.db.get_price_entry(asset_id)
        cached: Optional[float] = cached_entry.price if cached_entry else None
        oracle_price = oracle.get_price_float(asset_id)

        if cached is None and oracle_price is None:
            raise PriceUnavailable(asset_id)

        price = cached if cached is not None else oracle_price
        risk_price = oracle_price if oracle_price is not None else cached
        return price, risk_price

    @staticmethod
    def _get_reserve(pool: Pool, asset_id: str) -> Reserve:
        reserves: Dict[str, Reserve] = pool.reserves
        if asset_id not in reserves:
            raise ConfigError(f"Asset {asset_id} is not a pool reserve or the backstop token")
        return reserves[asset_id]
