"""
Custom exceptions for the auctioneer bot.
"""

from enum import Enum


class AuctioneerError(Exception):
    """Base exception for all auctioneer bot errors."""


class ConfigError(AuctioneerError):
    """Raised for configuration-related errors."""


class PriceUnavailable(AuctioneerError):
    """Raised when neither a cached nor an oracle price exists for an asset."""

    def __init__(self, asset_id: str) -> None:
        super().__init__(f"No price available for asset {asset_id}")
        self.asset_id = asset_id


class LedgerError(AuctioneerError):
    """Raised by ledger gateways when a read, simulation or submission fails."""


class ContractErrorType(Enum):
    """Pool contract errors the bot reacts to."""

    UNKNOWN = 0
    INVALID_LIQ_TOO_LARGE = 1
    INVALID_LIQ_TOO_SMALL = 2


class ContractError(LedgerError):
    """Raised when a submitted operation is rejected by the pool contract."""

    def __init__(self, error_type: ContractErrorType, message: str = "") -> None:
        super().__init__(message or error_type.name)
        self.error_type = error_type


class SubmissionFailure(AuctioneerError):
    """Raised when a queued submission times out."""
