"""
Config Loader module - network and filler configuration
"""

import os
from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, List, Optional

import yaml

from .exceptions import ConfigError


@dataclass(frozen=True)
class Filler:
    """
    An account the bot bids with, and its risk policy.
    """

    name: str
    address: str
    secret: str = field(repr=False)
    min_profit_pct: float
    min_health_factor: float
    force_fill: bool
    supported_bid: FrozenSet[str]
    supported_lot: FrozenSet[str]

    def supports(self, bid_assets, lot_assets) -> bool:
        """True if every bid and lot asset is supported by this filler."""
        return all(asset in self.supported_bid for asset in bid_assets) and all(
            asset in self.supported_lot for asset in lot_assets
        )


def parse_filler(raw: Dict[str, Any]) -> Filler:
    """
    Build a Filler from its config entry. The signing secret is read from the
    environment variable named by SECRET_NAME.

    Raises:
        ConfigError: If the entry is malformed or the secret is missing.
    """
    if not isinstance(raw, dict):
        raise ConfigError(f"Filler entry must be a mapping, got {type(raw).__name__}")

    missing = [
        key
        for key in ("name", "address", "SECRET_NAME", "min_profit_pct", "min_health_factor", "supported_bid", "supported_lot")
        if key not in raw
    ]
    if missing:
        raise ConfigError(f"Filler entry {raw.get('name', '?')} is missing: {', '.join(missing)}")

    secret = os.environ.get(raw["SECRET_NAME"], "")
    if not secret:
        raise ConfigError(f"Missing secret for filler {raw['name']}. Env var {raw['SECRET_NAME']} not found")

    if not isinstance(raw["supported_bid"], list) or not isinstance(raw["supported_lot"], list):
        raise ConfigError(f"Filler {raw['name']}: supported_bid and supported_lot must be lists")

    try:
        min_profit_pct = float(raw["min_profit_pct"])
        min_health_factor = float(raw["min_health_factor"])
    except (TypeError, ValueError) as e:
        raise ConfigError(f"Filler {raw['name']}: invalid numeric setting: {e}") from e

    if min_health_factor <= 1:
        raise ConfigError(f"Filler {raw['name']}: min_health_factor must be greater than 1")

    return Filler(
        name=str(raw["name"]),
        address=str(raw["address"]),
        secret=secret,
        min_profit_pct=min_profit_pct,
        min_health_factor=min_health_factor,
        force_fill=bool(raw.get("force_fill", False)),
        supported_bid=frozenset(str(asset) for asset in raw["supported_bid"]),
        supported_lot=frozenset(str(asset) for asset in raw["supported_lot"]),
    )


class NetworkConfig:
    """
    Network Config object to access config variables
    """

    required_env_vars = [
        "AUCTIONEER_SECRET",
    ]

    def __init__(self, network_name: str, global_config: Dict[str, Any], network_config: Dict[str, Any]):
        self.NETWORK_NAME = network_name
        self._global = global_config
        self._network = network_config

        # validate env
        self.validate()
        self.AUCTIONEER_SECRET = os.environ["AUCTIONEER_SECRET"]
        self.NOTIFICATION_URL = os.environ.get("NOTIFICATION_URL", "")

        # Load network-specific RPC from env using RPC_NAME from config
        rpc_name = self._network.get("RPC_NAME", "RPC_URL")
        self.RPC_URL = os.environ.get(rpc_name, "")

        for key in ("POOL_ADDRESS", "BACKSTOP_ADDRESS", "BACKSTOP_TOKEN_ADDRESS", "AUCTIONEER_ADDRESS"):
            if not self._lookup(key):
                raise ConfigError(f"Missing {key} for network {network_name}")

        # Set network-specific paths
        self.LOGS_PATH = f"{self._global['LOGS_PATH']}/{network_name}_auctioneer.log"
        self.DB_PATH = f"{self._global['DATA_PATH']}/{network_name}_auctioneer.sqlite"
        self.DEADLETTER_PATH = f"{self._global['DATA_PATH']}/{network_name}_deadletter.txt"

        self.fillers: List[Filler] = [parse_filler(raw) for raw in self._network.get("fillers", [])]
        if not self.fillers:
            raise ConfigError(f"No fillers configured for network {network_name}")

        addresses = [filler.address for filler in self.fillers]
        if len(set(addresses)) != len(addresses):
            raise ConfigError(f"Duplicate filler addresses configured for network {network_name}")

    def _lookup(self, name: str) -> Any:
        if name in self._network:
            return self._network[name]
        if name in self._network.get("contracts", {}):
            return self._network["contracts"][name]
        return self._global.get(name)

    def __getattr__(self, name: str) -> Any:
        """Look up config values in network-specific, then contracts, then global config."""
        if name.startswith("_"):
            raise AttributeError(name)
        if name in self._network:
            return self._network[name]
        if name in self._network.get("contracts", {}):
            return self._network["contracts"][name]
        if name in self._global:
            return self._global[name]
        raise AttributeError(f"Config has no attribute '{name}'")

    def get_filler(self, address: str) -> Optional[Filler]:
        """Return the configured filler with the given address, if any."""
        for filler in self.fillers:
            if filler.address == address:
                return filler
        return None

    def validate(self) -> None:
        """
        Validates that all required environment variables are set.
        Raises an error if any are missing.
        """
        missing_keys = [key for key in self.required_env_vars if not os.getenv(key)]
        if missing_keys:
            raise ConfigError(f"Missing required environment variables: {', '.join(missing_keys)}")


def load_network_config(network_name: str, config_path: Optional[str] = None) -> NetworkConfig:
    if config_path is None:
        current_dir = os.path.dirname(os.path.abspath(__file__))
        config_path = os.path.join(os.path.dirname(current_dir), "config.yaml")

    try:
        with open(config_path, "r", encoding="utf-8") as f:
            config = yaml.safe_load(f)
    except FileNotFoundError as exc:
        raise ConfigError(f"Config file not found at {config_path}") from exc
    except yaml.YAMLError as e:
        raise ConfigError(f"Error parsing YAML file: {e}") from e

    if network_name not in config.get("networks", {}):
        raise ConfigError(f"No configuration found for network {network_name}")

    return NetworkConfig(
        network_name=network_name, global_config=config["global"], network_config=config["networks"][network_name]
    )
