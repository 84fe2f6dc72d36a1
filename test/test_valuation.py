"""
Tests for auction valuation.
"""

import pytest

from app.auctioneer.auction import scale_auction
from app.auctioneer.exceptions import ConfigError, PriceUnavailable
from app.auctioneer.models import AuctionData, AuctionType, PoolOracle, PriceEntry
from app.auctioneer.valuation import AuctionValuationEngine


@pytest.fixture()
def valuation(config, gateway, db):
    return AuctionValuationEngine(config, gateway, db)


def test_liquidation_auction_values(valuation):
    auction = AuctionData(block=100, bid={"USDC": 1500_0000000}, lot={"ETH": 1_0000000})

    value = valuation.valuate(AuctionType.LIQUIDATION, auction)

    assert value.effective_collateral == pytest.approx(1600.0)
    assert value.effective_liabilities == pytest.approx(1500 / 0.95)
    assert value.lot_value == pytest.approx(2000.0)
    assert value.bid_value == pytest.approx(1500.0)


def test_cached_price_used_for_plain_value_only(valuation, db):
    db.set_price_entries([PriceEntry(asset_id="ETH", price=2100.0, timestamp=1)])
    auction = AuctionData(block=100, bid={"USDC": 1500_0000000}, lot={"ETH": 1_0000000})

    value = valuation.valuate(AuctionType.LIQUIDATION, auction)

    assert value.lot_value == pytest.approx(2100.0)
    assert value.effective_collateral == pytest.approx(1600.0)


def test_cached_price_used_when_oracle_price_missing(valuation, gateway, db):
    gateway.load_pool_oracle.return_value = PoolOracle(prices={"USDC": 1.0})
    db.set_price_entries([PriceEntry(asset_id="ETH", price=2100.0, timestamp=1)])
    auction = AuctionData(block=100, bid={"USDC": 1500_0000000}, lot={"ETH": 1_0000000})

    value = valuation.valuate(AuctionType.LIQUIDATION, auction)

    assert value.effective_collateral == pytest.approx(0.8 * 2100.0)
    assert value.lot_value == pytest.approx(2100.0)


def test_missing_price_raises(valuation, gateway):
    gateway.load_pool_oracle.return_value = PoolOracle(prices={"USDC": 1.0})
    auction = AuctionData(block=100, bid={"USDC": 1500_0000000}, lot={"ETH": 1_0000000})

    with pytest.raises(PriceUnavailable) as exc_info:
        valuation.valuate(AuctionType.LIQUIDATION, auction)

    assert exc_info.value.asset_id == "ETH"


def test_unknown_asset_is_a_config_error(valuation):
    auction = AuctionData(block=100, bid={"USDC": 1}, lot={"DOGE": 1})

    with pytest.raises(ConfigError):
        valuation.valuate(AuctionType.LIQUIDATION, auction)


def test_interest_auction_values_underlying_lot_and_lp_bid(valuation):
    auction = AuctionData(
        block=100,
        bid={"LP": 500_0000000},
        lot={"USDC": 100_0000000, "XLM": 1000_0000000},
    )

    value = valuation.valuate(AuctionType.INTEREST, auction)

    assert value.lot_value == pytest.approx(200.0)
    assert value.bid_value == pytest.approx(250.0)
    assert value.effective_collateral == 0
    assert value.effective_liabilities == 0


def test_bad_debt_auction_values_lp_lot(valuation):
    auction = AuctionData(block=100, bid={"USDC": 100_0000000}, lot={"LP": 400_0000000})

    value = valuation.valuate(AuctionType.BAD_DEBT, auction)

    assert value.lot_value == pytest.approx(200.0)
    assert value.effective_collateral == 0
    assert value.bid_value == pytest.approx(100.0)
    assert value.effective_liabilities == pytest.approx(100 / 0.95)


def test_lp_value_falls_back_to_cached_price(valuation, gateway, db):
    gateway.sim_lp_to_reference_stable.side_effect = None
    gateway.sim_lp_to_reference_stable.return_value = None
    db.set_price_entries([PriceEntry(asset_id="LP", price=0.4, timestamp=1)])

    assert valuation.value_backstop_token(500_0000000) == pytest.approx(200.0)


def test_lp_value_without_simulation_or_cache_raises(valuation, gateway):
    gateway.sim_lp_to_reference_stable.side_effect = None
    gateway.sim_lp_to_reference_stable.return_value = None

    with pytest.raises(PriceUnavailable):
        valuation.value_backstop_token(500_0000000)


def test_valuate_then_scale_to_start_block_gives_empty_lot_and_full_bid(valuation):
    auction = AuctionData(block=123, bid={"USDC": 1500_0000000}, lot={"ETH": 1_0000000})

    value = valuation.valuate(AuctionType.LIQUIDATION, auction)
    scaled = scale_auction(auction, auction.block, 100)
    scaled_value = valuation.valuate(AuctionType.LIQUIDATION, scaled)

    assert scaled.lot == {}
    assert scaled.bid == auction.bid
    assert scaled_value.lot_value == 0
    assert scaled_value.bid_value == pytest.approx(value.bid_value)
