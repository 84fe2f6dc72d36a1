"""
Data classes shared by the auctioneer bot.

Ledger value types (reserves, oracle prices, positions) are produced by the
ledger gateway; entry types are persisted by the database.
"""

from dataclasses import asdict, dataclass, field
from enum import Enum, IntEnum
from typing import Any, Dict, List, Optional

RATE_SCALAR = 10**12
LP_TOKEN_DECIMALS = 7

# Auction decay curve, in ledgers
LOT_RAMP_BLOCKS = 200
AUCTION_DURATION_BLOCKS = 400


class AuctionType(IntEnum):
    LIQUIDATION = 0
    BAD_DEBT = 1
    INTEREST = 2


class RequestType(IntEnum):
    WITHDRAW_COLLATERAL = 3
    REPAY = 5
    FILL_USER_LIQUIDATION_AUCTION = 6
    FILL_BAD_DEBT_AUCTION = 7
    FILL_INTEREST_AUCTION = 8


FILL_REQUEST_TYPES = {
    AuctionType.LIQUIDATION: RequestType.FILL_USER_LIQUIDATION_AUCTION,
    AuctionType.BAD_DEBT: RequestType.FILL_BAD_DEBT_AUCTION,
    AuctionType.INTEREST: RequestType.FILL_INTEREST_AUCTION,
}


@dataclass(frozen=True)
class AuctionData:
    """An auction as read from the ledger at `block`. Amounts are native fixed-point ints."""

    block: int
    bid: Dict[str, int] = field(default_factory=dict)
    lot: Dict[str, int] = field(default_factory=dict)


@dataclass
class AuctionEntry:
    """A tracked auction. `fill_block == 0` means no fill block has been scheduled yet."""

    user_id: str
    auction_type: AuctionType
    filler: str
    start_block: int
    fill_block: int
    updated_at: int

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["auction_type"] = self.auction_type.name
        return data


@dataclass
class UserEntry:
    """A tracked pool user with outstanding liabilities."""

    user_id: str
    health_factor: float
    collateral: Dict[str, int]
    liabilities: Dict[str, int]
    updated_at: int

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class FilledAuctionEntry:
    """Audit record written after a successful fill."""

    tx_hash: str
    filler: str
    user_id: str
    auction_type: AuctionType
    bid: Dict[str, int]
    bid_total: float
    lot: Dict[str, int]
    lot_total: float
    est_profit: float
    fill_block: int
    timestamp: int

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["auction_type"] = self.auction_type.name
        return data


@dataclass
class PriceEntry:
    asset_id: str
    price: float
    timestamp: int


@dataclass(frozen=True)
class FillCalculation:
    fill_block: int
    fill_percent: int


@dataclass(frozen=True)
class AuctionValue:
    """USD values of an auction. `effective_*` are risk weighted, `*_value` are plain."""

    effective_collateral: float
    effective_liabilities: float
    lot_value: float
    bid_value: float


@dataclass(frozen=True)
class Reserve:
    """A pool reserve with the rates needed to convert b/d tokens into the underlying asset."""

    asset_id: str
    decimals: int
    c_factor: float
    l_factor: float
    b_rate: int = RATE_SCALAR
    d_rate: int = RATE_SCALAR

    def to_float(self, amount: int) -> float:
        return amount / 10**self.decimals

    def to_asset_from_b_token(self, b_tokens: int) -> int:
        return b_tokens * self.b_rate // RATE_SCALAR

    def to_asset_from_d_token(self, d_tokens: int) -> int:
        # liabilities round up
        return -(-d_tokens * self.d_rate // RATE_SCALAR)

    def to_asset_from_b_token_float(self, b_tokens: int) -> float:
        return b_tokens * self.b_rate / RATE_SCALAR / 10**self.decimals

    def to_asset_from_d_token_float(self, d_tokens: int) -> float:
        return d_tokens * self.d_rate / RATE_SCALAR / 10**self.decimals

    def to_effective_asset_from_b_token_float(self, b_tokens: int) -> float:
        return self.to_asset_from_b_token_float(b_tokens) * self.c_factor

    def to_effective_asset_from_d_token_float(self, d_tokens: int) -> float:
        return self.to_asset_from_d_token_float(d_tokens) / self.l_factor

    def to_effective_liability_float(self, amount: int) -> float:
        return self.to_float(amount) / self.l_factor


@dataclass(frozen=True)
class Pool:
    pool_id: str
    reserves: Dict[str, Reserve]
    latest_ledger: int = 0


@dataclass(frozen=True)
class PoolOracle:
    """Oracle prices as floats keyed by asset id."""

    prices: Dict[str, float]
    latest_ledger: int = 0
    timestamps: Dict[str, int] = field(default_factory=dict)

    def get_price_float(self, asset_id: str) -> Optional[float]:
        return self.prices.get(asset_id)


@dataclass(frozen=True)
class PositionsEstimate:
    total_effective_collateral: float
    total_effective_liabilities: float
    total_borrowed: float = 0.0
    total_supplied: float = 0.0

    @property
    def health_factor(self) -> float:
        if self.total_effective_liabilities <= 0:
            return float("inf")
        return self.total_effective_collateral / self.total_effective_liabilities


@dataclass(frozen=True)
class Positions:
    """A user's raw positions keyed by asset id (b-tokens for collateral/supply, d-tokens for liabilities)."""

    collateral: Dict[str, int] = field(default_factory=dict)
    liabilities: Dict[str, int] = field(default_factory=dict)
    supply: Dict[str, int] = field(default_factory=dict)


@dataclass(frozen=True)
class PoolUser:
    user_id: str
    positions: Positions


@dataclass(frozen=True)
class Request:
    request_type: RequestType
    address: str
    amount: int


@dataclass(frozen=True)
class PoolSubmit:
    """Submit a list of requests to the pool on behalf of `from_address`."""

    from_address: str
    spender: str
    to: str
    requests: List[Request]


@dataclass(frozen=True)
class NewLiquidationAuction:
    user_id: str
    percent_liquidated: int


@dataclass(frozen=True)
class BadDebtTransfer:
    user_id: str


@dataclass(frozen=True)
class NewBadDebtAuction:
    pass
