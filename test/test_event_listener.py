"""
Tests for the pool event listener.
"""

import queue

import pytest

from app.auctioneer.event_listener import PoolEventListener
from app.auctioneer.events import (
    DeleteLiquidationAuctionEvent,
    LedgerEvent,
    LiquidationScanEvent,
    OracleScanEvent,
)


def drain(channel):
    items = []
    while True:
        try:
            items.append(channel.get_nowait())
        except queue.Empty:
            return items


@pytest.fixture()
def channels():
    return queue.Queue(), queue.Queue(), queue.Queue()


@pytest.fixture()
def listener(config, gateway, channels):
    config.RETRY_DELAY = 0
    config.EVENT_BATCH_SIZE = 100
    config.LIQ_SCAN_INTERVAL = 10
    reactor_channel, bidder_channel, work_channel = channels
    return PoolEventListener(config, gateway, reactor_channel, bidder_channel, work_channel)


def test_first_poll_scans_current_ledger(listener, gateway, channels):
    reactor_channel, bidder_channel, work_channel = channels
    event = DeleteLiquidationAuctionEvent(id="1", ledger=1000, user_id="USER1")
    gateway.load_pool_events.return_value = [event]

    listener.poll()

    gateway.load_pool_events.assert_called_once_with(1000, 1000)
    assert drain(reactor_channel) == [event]
    assert drain(bidder_channel) == [LedgerEvent(ledger=1000)]
    assert drain(work_channel) == [OracleScanEvent(ledger=1000), LiquidationScanEvent(ledger=1000)]
    assert listener.latest_ledger == 1000


def test_poll_scans_in_batches(listener, gateway):
    listener.latest_ledger = 750
    gateway.load_latest_ledger.return_value = 1000

    listener.poll()

    assert [call.args for call in gateway.load_pool_events.call_args_list] == [
        (751, 850),
        (851, 950),
        (951, 1000),
    ]
    assert listener.latest_ledger == 1000


def test_poll_without_new_ledger_does_nothing(listener, gateway, channels):
    _, bidder_channel, _ = channels
    listener.latest_ledger = 1000

    listener.poll()

    gateway.load_pool_events.assert_not_called()
    assert drain(bidder_channel) == []


def test_scans_are_sent_every_interval(listener, gateway, channels):
    _, bidder_channel, work_channel = channels
    listener.poll()
    drain(work_channel)

    gateway.load_latest_ledger.return_value = 1005
    listener.poll()
    assert drain(work_channel) == []

    gateway.load_latest_ledger.return_value = 1010
    listener.poll()
    assert drain(work_channel) == [OracleScanEvent(ledger=1010), LiquidationScanEvent(ledger=1010)]
    assert drain(bidder_channel)[-1] == LedgerEvent(ledger=1010)


def test_failed_scan_is_retried_from_same_ledger(listener, gateway, channels):
    _, bidder_channel, _ = channels
    listener.latest_ledger = 990
    gateway.load_pool_events.side_effect = RuntimeError("rpc down")

    listener.poll()

    assert gateway.load_pool_events.call_count == 3
    assert listener.latest_ledger == 990
    assert drain(bidder_channel) == []

    gateway.load_pool_events.side_effect = None
    gateway.load_pool_events.return_value = []
    listener.poll()

    gateway.load_pool_events.assert_called_with(991, 1000)
    assert listener.latest_ledger == 1000
