"""
Ledger access capability.

The bot never talks to the network directly. Everything it needs from the
ledger goes through a LedgerGateway implementation, which is loaded from the
LEDGER_GATEWAY config value ("module:Class").
"""

import importlib
from abc import ABC, abstractmethod
from typing import Any, List, Optional, Tuple

from .exceptions import ConfigError
from .models import AuctionData, AuctionType, Pool, PoolOracle, PoolUser, PositionsEstimate


class LedgerGateway(ABC):
    """
    Abstract base class for reading pool state from, and submitting operations to, the ledger.
    Implementations raise LedgerError (or ContractError) on failure.
    """

    @abstractmethod
    def load_latest_ledger(self) -> int:
        """Return the latest closed ledger sequence."""

    @abstractmethod
    def load_pool(self) -> Pool:
        """Load the pool with its reserves."""

    @abstractmethod
    def load_pool_oracle(self) -> PoolOracle:
        """Load the current oracle prices for the pool's reserves."""

    @abstractmethod
    def load_auction(self, user_id: str, auction_type: AuctionType) -> Optional[AuctionData]:
        """Load an auction, or None if it does not exist on the ledger."""

    @abstractmethod
    def load_user_position_estimate(self, user_id: str) -> Tuple[PositionsEstimate, PoolUser]:
        """Load a user's positions and their estimated value."""

    @abstractmethod
    def sim_balance(self, asset_id: str, user_id: str) -> int:
        """Simulate a token balance lookup for a user."""

    @abstractmethod
    def sim_lp_to_reference_stable(self, amount: int) -> Optional[float]:
        """Simulate a single sided withdrawal of backstop LP tokens into the reference stablecoin."""

    @abstractmethod
    def load_pool_events(self, start_ledger: int, end_ledger: int) -> List[Any]:
        """Load pool events emitted between two ledgers (inclusive) as app.auctioneer.events types."""

    @abstractmethod
    def submit_transaction(self, operation: Any, signer: str) -> Optional[str]:
        """Sign and submit an operation. Returns the transaction hash, or None if it failed."""


def load_ledger_gateway(path: str, config: Any) -> LedgerGateway:
    """
    Instantiate the gateway class named by a "module:Class" path with the network config.

    Raises:
        ConfigError: If the path is empty, cannot be imported, or is not a LedgerGateway.
    """
    if not path or ":" not in path:
        raise ConfigError(f"LEDGER_GATEWAY must be set as 'module:Class', got '{path}'")

    module_name, class_name = path.split(":", 1)
    try:
        module = importlib.import_module(module_name)
        gateway_class = getattr(module, class_name)
    except (ImportError, AttributeError) as ex:
        raise ConfigError(f"Unable to load ledger gateway {path}: {ex}") from ex

    if not isinstance(gateway_class, type) or not issubclass(gateway_class, LedgerGateway):
        raise ConfigError(f"{path} is not a LedgerGateway")

    return gateway_class(config)
