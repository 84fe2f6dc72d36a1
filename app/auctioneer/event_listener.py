"""
Pool event listener.
Polls the ledger for new pool events and fans them out to the reactor, bidder
and work channels.
"""

import queue
import threading
import time
from typing import Optional

from .config_loader import NetworkConfig
from .decorators import retry_on_exception
from .events import LedgerEvent, LiquidationScanEvent, OracleScanEvent
from .ledger import LedgerGateway
from .logging_config import setup_logger

logger = setup_logger()


class PoolEventListener:
    """
    Listener for pool events. Every new ledger produces a LedgerEvent for the
    bidder, and every LIQ_SCAN_INTERVAL ledgers a liquidation scan and an oracle
    check are sent to the work channel.
    """

    def __init__(
        self,
        config: NetworkConfig,
        gateway: LedgerGateway,
        reactor_channel: queue.Queue,
        bidder_channel: queue.Queue,
        work_channel: queue.Queue,
        start_ledger: Optional[int] = None,
    ):
        self.config = config
        self.gateway = gateway
        self.reactor_channel = reactor_channel
        self.bidder_channel = bidder_channel
        self.work_channel = work_channel
        self.latest_ledger = start_ledger or 0
        self.last_scan_ledger = 0

    def start_event_monitoring(self, stop_event: threading.Event) -> None:
        while not stop_event.is_set():
            try:
                self.poll()
            except Exception as ex:
                logger.error("PoolEventListener: Unexpected exception in event monitoring: %s", ex, exc_info=True)

            stop_event.wait(float(self.config.LEDGER_POLL_INTERVAL))

    def poll(self) -> None:
        current_ledger = self.gateway.load_latest_ledger()
        if self.latest_ledger == 0:
            # first poll, start from the current ledger
            self.latest_ledger = current_ledger - 1

        if current_ledger <= self.latest_ledger:
            return

        batch_size = int(self.config.EVENT_BATCH_SIZE)
        start_ledger = self.latest_ledger + 1
        while start_ledger <= current_ledger:
            end_ledger = min(start_ledger + batch_size - 1, current_ledger)
            if not self.scan_ledger_range(start_ledger, end_ledger):
                return
            start_ledger = end_ledger + 1

        self.bidder_channel.put(LedgerEvent(ledger=current_ledger))

        if current_ledger - self.last_scan_ledger >= int(self.config.LIQ_SCAN_INTERVAL):
            self.work_channel.put(OracleScanEvent(ledger=current_ledger))
            self.work_channel.put(LiquidationScanEvent(ledger=current_ledger))
            self.last_scan_ledger = current_ledger

    def scan_ledger_range(self, start_ledger: int, end_ledger: int, max_retries: int = 3) -> bool:
        """
        Load the pool events between two ledgers and push them onto the reactor channel.

        Returns:
            True if the range was scanned, False if every attempt failed.
        """
        load_events = retry_on_exception(logger, max_retries=max_retries, delay=float(self.config.RETRY_DELAY))(
            self.gateway.load_pool_events
        )

        logger.info("PoolEventListener: Scanning ledgers %s to %s for pool events.", start_ledger, end_ledger)
        try:
            events = load_events(start_ledger, end_ledger)
        except Exception as ex:
            logger.error(
                "PoolEventListener: Failed to scan ledgers %s to %s after %s attempts: %s",
                start_ledger, end_ledger, max_retries, ex, exc_info=True,
            )
            return False

        for event in events:
            self.reactor_channel.put(event)

        logger.info(
            "PoolEventListener: Finished scanning ledgers %s to %s, %s events.", start_ledger, end_ledger, len(events)
        )
        self.latest_ledger = end_ledger
        return True
