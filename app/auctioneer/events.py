"""
Pool events consumed by the auctioneer.

The set of event kinds is closed: consumers dispatch on the dataclass type and
raise TypeError for anything else.
"""

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Dict, Union

from .models import AuctionData, AuctionType


class PoolEventType(Enum):
    SUPPLY_COLLATERAL = "supply_collateral"
    WITHDRAW_COLLATERAL = "withdraw_collateral"
    BORROW = "borrow"
    REPAY = "repay"


@dataclass(frozen=True)
class PositionChangeEvent:
    """A user's position changed. Triggers a refresh of their user entry."""

    id: str
    ledger: int
    event_type: PoolEventType
    user_id: str
    asset_id: str
    amount: int = 0


@dataclass(frozen=True)
class NewAuctionEvent:
    """A bad debt or interest auction was created. The auction's user is the backstop."""

    id: str
    ledger: int
    auction_type: AuctionType
    auction_data: AuctionData = field(default_factory=lambda: AuctionData(block=0))


@dataclass(frozen=True)
class NewLiquidationAuctionEvent:
    id: str
    ledger: int
    user_id: str
    auction_data: AuctionData = field(default_factory=lambda: AuctionData(block=0))


@dataclass(frozen=True)
class DeleteLiquidationAuctionEvent:
    id: str
    ledger: int
    user_id: str


@dataclass(frozen=True)
class FillAuctionEvent:
    id: str
    ledger: int
    user_id: str
    auction_type: AuctionType
    filler_id: str
    fill_percent: int


PoolEvent = Union[
    PositionChangeEvent,
    NewAuctionEvent,
    NewLiquidationAuctionEvent,
    DeleteLiquidationAuctionEvent,
    FillAuctionEvent,
]


# ********** Bot channel events **********


@dataclass(frozen=True)
class LedgerEvent:
    """A new ledger closed. Sent to the bidder."""

    ledger: int


@dataclass(frozen=True)
class LiquidationScanEvent:
    """Scan tracked users for liquidations. Sent to the work handler."""

    ledger: int


@dataclass(frozen=True)
class OracleScanEvent:
    """Check the oracle for significant price moves. Sent to the work handler."""

    ledger: int


WorkEvent = Union[LiquidationScanEvent, OracleScanEvent]


def _to_jsonable(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.name
    if isinstance(value, dict):
        return {key: _to_jsonable(item) for key, item in value.items()}
    if isinstance(value, int) and not isinstance(value, bool) and abs(value) > 2**53:
        return str(value)
    return value


def event_to_dict(event: PoolEvent) -> Dict[str, Any]:
    """Flatten an event into a JSON friendly dict tagged with its kind."""
    data = {key: _to_jsonable(value) for key, value in asdict(event).items()}
    data["kind"] = type(event).__name__
    return data
