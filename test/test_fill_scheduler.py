"""
Tests for fill block and fill percent scheduling.
"""

from dataclasses import replace
from unittest.mock import MagicMock

import pytest

from app.auctioneer.auction import FillScheduler, bid_fraction, lot_fraction
from app.auctioneer.models import AuctionData, AuctionType, AuctionValue, PoolUser, Positions, PositionsEstimate
from app.auctioneer.valuation import AuctionValuationEngine

AUCTION = AuctionData(block=123, bid={"USDC": 1200_0000000}, lot={"ETH": 1_0000000})
INTEREST_AUCTION = AuctionData(block=123, bid={"LP": 1000_0000000}, lot={"USDC": 1000_0000000})


def make_scheduler(config, gateway, lot_value, bid_value, effective_collateral=0.0, effective_liabilities=0.0):
    valuation = MagicMock(spec=AuctionValuationEngine)
    valuation.valuate.return_value = AuctionValue(
        effective_collateral=effective_collateral,
        effective_liabilities=effective_liabilities,
        lot_value=lot_value,
        bid_value=bid_value,
    )
    return FillScheduler(config, gateway, valuation)


def set_filler_estimate(gateway, collateral, liabilities):
    gateway.load_user_position_estimate.side_effect = None
    gateway.load_user_position_estimate.return_value = (
        PositionsEstimate(total_effective_collateral=collateral, total_effective_liabilities=liabilities),
        PoolUser(user_id="GFILLER1", positions=Positions()),
    )


def test_decay_fractions():
    assert lot_fraction(0) == 0
    assert lot_fraction(100) == 0.5
    assert lot_fraction(300) == 1
    assert bid_fraction(150) == 1
    assert bid_fraction(300) == 0.5
    assert bid_fraction(400) == 0
    assert bid_fraction(450) == 0


def test_profitable_auction_fills_in_lot_phase(config, gateway, filler):
    scheduler = make_scheduler(config, gateway, lot_value=1000.0, bid_value=601.0)

    fill = scheduler.schedule(filler, AuctionType.LIQUIDATION, AUCTION)

    # 200 - (1000 - 601 * 1.05) / 5 = 126.21
    assert fill.fill_block == 123 + 127
    assert fill.fill_percent == 100


def test_unprofitable_auction_waits_for_bid_decay(config, gateway, filler):
    scheduler = make_scheduler(config, gateway, lot_value=1000.0, bid_value=1200.0)

    fill = scheduler.schedule(filler, AuctionType.LIQUIDATION, AUCTION)

    # 200 + (1200 - 950) / 6 = 241.67
    assert fill.fill_block == 123 + 242
    assert fill.fill_percent == 100


def test_free_lot_fills_immediately(config, gateway, filler):
    scheduler = make_scheduler(config, gateway, lot_value=1000.0, bid_value=0.0)

    assert scheduler.schedule(filler, AuctionType.LIQUIDATION, AUCTION).fill_block == 123


def test_worthless_lot_waits_until_end(config, gateway, filler):
    scheduler = make_scheduler(config, gateway, lot_value=0.0, bid_value=100.0)

    assert scheduler.schedule(filler, AuctionType.LIQUIDATION, AUCTION).fill_block == 123 + 400


def test_worthless_auction_waits_until_end(config, gateway, filler):
    scheduler = make_scheduler(config, gateway, lot_value=0.0, bid_value=0.0)

    assert scheduler.schedule(filler, AuctionType.LIQUIDATION, AUCTION).fill_block == 123 + 400


def test_fill_percent_reduced_to_protect_filler_health_factor(config, gateway, filler):
    set_filler_estimate(gateway, collateral=1100.0, liabilities=500.0)
    scheduler = make_scheduler(
        config, gateway, lot_value=1000.0, bid_value=1200.0, effective_collateral=900.0, effective_liabilities=2000.0
    )

    fill = scheduler.schedule(filler, AuctionType.LIQUIDATION, AUCTION)

    # excess = 2000 * 0.79 - 900 = 680, budget = 1100 / 1.1 - 500 = 500
    assert fill.fill_block == 123 + 242
    assert fill.fill_percent == 73


def test_fill_percent_kept_when_filler_has_budget(config, gateway, filler):
    set_filler_estimate(gateway, collateral=5000.0, liabilities=0.0)
    scheduler = make_scheduler(
        config, gateway, lot_value=1000.0, bid_value=1200.0, effective_collateral=900.0, effective_liabilities=2000.0
    )

    assert scheduler.schedule(filler, AuctionType.LIQUIDATION, AUCTION).fill_percent == 100


def test_fill_percent_floors_at_zero_for_unhealthy_filler(config, gateway, filler):
    set_filler_estimate(gateway, collateral=100.0, liabilities=500.0)
    scheduler = make_scheduler(
        config, gateway, lot_value=1000.0, bid_value=1200.0, effective_collateral=900.0, effective_liabilities=2000.0
    )

    assert scheduler.schedule(filler, AuctionType.LIQUIDATION, AUCTION).fill_percent == 0


def test_interest_auction_with_enough_backstop_tokens(config, gateway, filler):
    gateway.sim_balance.return_value = 1000_0000000
    scheduler = make_scheduler(config, gateway, lot_value=1000.0, bid_value=1200.0)

    fill = scheduler.schedule(filler, AuctionType.INTEREST, INTEREST_AUCTION)

    assert fill.fill_block == 123 + 242
    assert fill.fill_percent == 100
    gateway.sim_balance.assert_called_once_with("LP", "GFILLER1")
    gateway.load_user_position_estimate.assert_not_called()


def test_interest_auction_delayed_until_bid_is_affordable(config, gateway, filler):
    gateway.sim_balance.return_value = 200_0000000
    scheduler = make_scheduler(config, gateway, lot_value=1000.0, bid_value=1200.0)

    fill = scheduler.schedule(filler, AuctionType.INTEREST, INTEREST_AUCTION)

    # 200 + (1000 - 200) / 5
    assert fill.fill_block == 123 + 360


def test_interest_auction_force_fill_caps_delay(config, gateway, filler):
    gateway.sim_balance.return_value = 0
    scheduler = make_scheduler(config, gateway, lot_value=1000.0, bid_value=1200.0)

    assert scheduler.schedule(filler, AuctionType.INTEREST, INTEREST_AUCTION).fill_block == 123 + 375

    patient_filler = replace(filler, force_fill=False)
    assert scheduler.schedule(patient_filler, AuctionType.INTEREST, INTEREST_AUCTION).fill_block == 123 + 400


@pytest.mark.parametrize("lot_value,bid_value", [(1.0, 1e9), (1e9, 1.0), (500.0, 500.0), (1e-9, 1e-9)])
def test_fill_block_always_within_auction(config, gateway, filler, lot_value, bid_value):
    scheduler = make_scheduler(config, gateway, lot_value=lot_value, bid_value=bid_value)

    fill = scheduler.schedule(filler, AuctionType.LIQUIDATION, AUCTION)

    assert 0 <= fill.fill_block - AUCTION.block <= 400
    assert 0 <= fill.fill_percent <= 100
