"""
Auction fill timing and scaling.

Auctions decay linearly over 400 ledgers. For the first 200 the lot ramps from
0% to 100% while the bid stays at 100%. For the next 200 the lot stays at 100%
while the bid decays to 0%.
"""

import math
from typing import Dict

from .config_loader import Filler, NetworkConfig
from .ledger import LedgerGateway
from .logging_config import setup_logger
from .models import (
    AUCTION_DURATION_BLOCKS,
    LOT_RAMP_BLOCKS,
    AuctionData,
    AuctionType,
    FillCalculation,
)
from .valuation import AuctionValuationEngine

logger = setup_logger()

FORCE_FILL_MAX_DELAY = 375


def lot_fraction(delay: int) -> float:
    """Share of the lot received when filling `delay` ledgers after the auction started."""
    return min(max(delay, 0), LOT_RAMP_BLOCKS) / LOT_RAMP_BLOCKS


def bid_fraction(delay: int) -> float:
    """Share of the bid paid when filling `delay` ledgers after the auction started."""
    if delay <= LOT_RAMP_BLOCKS:
        return 1.0
    return max(0, AUCTION_DURATION_BLOCKS - delay) / LOT_RAMP_BLOCKS


class FillScheduler:
    """
    Decides when a filler should fill an auction and how much of it.
    """

    def __init__(self, config: NetworkConfig, gateway: LedgerGateway, valuation: AuctionValuationEngine):
        self.config = config
        self.gateway = gateway
        self.valuation = valuation

    def schedule(self, filler: Filler, auction_type: AuctionType, auction_data: AuctionData) -> FillCalculation:
        """
        Calculate the fill block and fill percent for an auction.

        Args:
            filler: The filler that will fill the auction.
            auction_type: The type of the auction.
            auction_data: The auction as loaded from the ledger.

        Returns:
            FillCalculation with the block to fill at and the percent to fill.

        Raises:
            PriceUnavailable: If the auction cannot be valued.
        """
        value = self.valuation.valuate(auction_type, auction_data)
        delay = self._profitable_delay(filler, value.lot_value, value.bid_value)
        fill_percent = 100

        if auction_type == AuctionType.INTEREST:
            delay = self._interest_delay(filler, auction_data, delay)
        else:
            fill_percent = self._limit_fill_percent(
                filler, delay, value.effective_collateral, value.effective_liabilities
            )

        logger.debug(
            "FillScheduler: %s auction at block %s valued lot %.4f bid %.4f, delay %s fill percent %s",
            auction_type.name, auction_data.block, value.lot_value, value.bid_value, delay, fill_percent,
        )
        return FillCalculation(fill_block=auction_data.block + delay, fill_percent=fill_percent)

    @staticmethod
    def _profitable_delay(filler: Filler, lot_value: float, bid_value: float) -> int:
        if lot_value <= 0 and bid_value <= 0:
            return AUCTION_DURATION_BLOCKS

        if lot_value >= bid_value * (1 + filler.min_profit_pct):
            min_lot_amount = bid_value * (1 + filler.min_profit_pct)
            delay = LOT_RAMP_BLOCKS - (lot_value - min_lot_amount) / (lot_value / LOT_RAMP_BLOCKS)
        else:
            max_bid_amount = lot_value * (1 - filler.min_profit_pct)
            delay = LOT_RAMP_BLOCKS + (bid_value - max_bid_amount) / (bid_value / LOT_RAMP_BLOCKS)

        return min(max(math.ceil(delay), 0), AUCTION_DURATION_BLOCKS)

    def _interest_delay(self, filler: Filler, auction_data: AuctionData, delay: int) -> int:
        """Push the fill back until the decayed bid is covered by the filler's backstop token balance."""
        bid_amount = auction_data.bid.get(self.config.BACKSTOP_TOKEN_ADDRESS, 0)
        if bid_amount > 0:
            balance = self.gateway.sim_balance(self.config.BACKSTOP_TOKEN_ADDRESS, filler.address)
            if balance < bid_amount * bid_fraction(delay):
                shortfall_delay = LOT_RAMP_BLOCKS + (bid_amount - balance) / (bid_amount / LOT_RAMP_BLOCKS)
                delay = min(math.ceil(shortfall_delay), AUCTION_DURATION_BLOCKS)
                logger.info(
                    "FillScheduler: Filler %s holds %s backstop tokens for a bid of %s, delaying fill to %s",
                    filler.name, balance, bid_amount, delay,
                )

        if filler.force_fill:
            delay = min(delay, FORCE_FILL_MAX_DELAY)
        return delay

    def _limit_fill_percent(
        self, filler: Filler, delay: int, effective_collateral: float, effective_liabilities: float
    ) -> int:
        """Reduce the fill percent so the filler stays above its minimum health factor."""
        estimate, _ = self.gateway.load_user_position_estimate(filler.address)

        added_collateral = effective_collateral * lot_fraction(delay)
        added_liabilities = effective_liabilities * bid_fraction(delay)
        if added_liabilities <= added_collateral:
            return 100

        excess_liabilities = added_liabilities - added_collateral
        liability_budget = (
            estimate.total_effective_collateral / filler.min_health_factor - estimate.total_effective_liabilities
        )
        if excess_liabilities <= liability_budget:
            return 100

        fill_percent = min(max(math.floor(liability_budget / excess_liabilities * 100), 0), 100)
        logger.info(
            "FillScheduler: Filler %s can only absorb %.4f of %.4f excess liabilities, filling %s%%",
            filler.name, liability_budget, excess_liabilities, fill_percent,
        )
        return fill_percent


def scale_auction(auction_data: AuctionData, fill_block: int, fill_percent: int) -> AuctionData:
    """
    Scale an auction to the amounts transacted when filling `fill_percent` of it at `fill_block`.

    Lot amounts round down and bid amounts round up. Entries that scale to zero are omitted.
    """
    delta = max(fill_block - auction_data.block, 0)

    # fractions are kept as integer numerators over LOT_RAMP_BLOCKS * 100
    denominator = LOT_RAMP_BLOCKS * 100
    if delta <= LOT_RAMP_BLOCKS:
        lot_numerator = delta
        bid_numerator = LOT_RAMP_BLOCKS
    else:
        lot_numerator = LOT_RAMP_BLOCKS
        bid_numerator = max(0, AUCTION_DURATION_BLOCKS - delta)

    scaled_lot: Dict[str, int] = {}
    for asset_id, amount in auction_data.lot.items():
        scaled = amount * lot_numerator * fill_percent // denominator
        if scaled > 0:
            scaled_lot[asset_id] = scaled

    scaled_bid: Dict[str, int] = {}
    for asset_id, amount in auction_data.bid.items():
        scaled = -(-amount * bid_numerator * fill_percent // denominator)
        if scaled > 0:
            scaled_bid[asset_id] = scaled

    return AuctionData(block=fill_block, bid=scaled_bid, lot=scaled_lot)
