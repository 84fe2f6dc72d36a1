"""
Tracks oracle prices to detect significant moves.
"""

from dataclasses import dataclass, field
from typing import Dict, List

from .models import PoolOracle, PriceEntry

ONE_DAY_SECONDS = 24 * 60 * 60


@dataclass
class PriceChanges:
    up: List[str] = field(default_factory=list)
    down: List[str] = field(default_factory=list)


class OracleHistory:
    """
    Remembers the last significant price seen for each asset.

    `price_delta` is the relative move that counts as significant, such that 0.05 is 5%.
    """

    def __init__(self, price_delta: float):
        self.price_delta = price_delta
        self.price_history: Dict[str, PriceEntry] = {}

    def get_significant_price_changes(self, oracle: PoolOracle) -> PriceChanges:
        """
        Return the assets whose price moved significantly since the last significant
        change, or over the last day, whichever is more recent.
        """
        changes = PriceChanges()

        for asset_id, price in oracle.prices.items():
            timestamp = oracle.timestamps.get(asset_id, 0)
            current = PriceEntry(asset_id=asset_id, price=price, timestamp=timestamp)
            previous = self.price_history.get(asset_id)

            if previous is None or previous.price == 0:
                self.price_history[asset_id] = current
                continue

            delta = abs(price - previous.price) / previous.price
            if delta >= self.price_delta:
                if price > previous.price:
                    changes.up.append(asset_id)
                else:
                    changes.down.append(asset_id)
                self.price_history[asset_id] = current
            elif timestamp > previous.timestamp + ONE_DAY_SECONDS:
                # no significant move within a day, rebase on the current price
                self.price_history[asset_id] = current

        return changes
