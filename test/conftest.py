from unittest.mock import MagicMock

import pytest
from dotenv import load_dotenv

from app.auctioneer.config_loader import Filler, NetworkConfig, load_network_config
from app.auctioneer.database import AuctioneerDatabase
from app.auctioneer.ledger import LedgerGateway
from app.auctioneer.models import Pool, PoolOracle, PoolUser, Positions, PositionsEstimate, Reserve

TEST_NETWORK = "testnet"

RESERVES = {
    "USDC": Reserve(asset_id="USDC", decimals=7, c_factor=0.95, l_factor=0.95),
    "XLM": Reserve(asset_id="XLM", decimals=7, c_factor=0.75, l_factor=0.75),
    "ETH": Reserve(asset_id="ETH", decimals=7, c_factor=0.8, l_factor=0.8),
    "BTC": Reserve(asset_id="BTC", decimals=7, c_factor=0.7, l_factor=0.7),
}

ORACLE_PRICES = {"USDC": 1.0, "XLM": 0.1, "ETH": 2000.0, "BTC": 50000.0}

# simulated value of one backstop LP token
LP_TOKEN_PRICE = 0.5


@pytest.fixture()
def config() -> NetworkConfig:
    load_dotenv(dotenv_path=".env.example")
    return load_network_config(TEST_NETWORK)


@pytest.fixture()
def filler(config) -> Filler:
    return config.fillers[0]


@pytest.fixture()
def db():
    database = AuctioneerDatabase(":memory:")
    yield database
    database.close()


@pytest.fixture()
def gateway() -> MagicMock:
    """Ledger gateway with a small pool, oracle prices and an empty filler position."""
    mock = MagicMock(spec=LedgerGateway)
    mock.load_latest_ledger.return_value = 1000
    mock.load_pool.return_value = Pool(pool_id="POOL", reserves=dict(RESERVES), latest_ledger=1000)
    mock.load_pool_oracle.return_value = PoolOracle(prices=dict(ORACLE_PRICES), latest_ledger=1000)
    mock.load_auction.return_value = None
    mock.load_user_position_estimate.side_effect = lambda user_id: (
        PositionsEstimate(total_effective_collateral=0.0, total_effective_liabilities=0.0),
        PoolUser(user_id=user_id, positions=Positions()),
    )
    mock.sim_balance.return_value = 0
    mock.sim_lp_to_reference_stable.side_effect = lambda amount: amount / 1e7 * LP_TOKEN_PRICE
    mock.load_pool_events.return_value = []
    mock.submit_transaction.return_value = "txhash"
    return mock
