import queue
import threading
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Optional

from .auction import FillScheduler
from .bidder import BidderHandler, BidderSubmitter
from .config_loader import NetworkConfig, load_network_config
from .database import AuctioneerDatabase
from .event_listener import PoolEventListener
from .events import LedgerEvent
from .fill_requests import FillRequestBuilder
from .ledger import LedgerGateway, load_ledger_gateway
from .liquidations import LiquidationScanner
from .logging_config import setup_logger, use_log_file
from .oracle_history import OracleHistory
from .pool_event_reactor import PoolEventReactor
from .valuation import AuctionValuationEngine
from .work_handler import WorkHandler
from .work_submitter import WorkSubmitter

logger = setup_logger()

CHANNEL_POLL_TIMEOUT = 1.0


class AuctioneerManager:
    """Wires the auctioneer components together and runs one thread per role"""

    def __init__(
        self,
        network_name: str,
        config: Optional[NetworkConfig] = None,
        gateway: Optional[LedgerGateway] = None,
        db: Optional[AuctioneerDatabase] = None,
    ):
        self.network_name = network_name
        self.config = config or load_network_config(network_name)
        use_log_file(self.config.LOGS_PATH)
        self.db = db or AuctioneerDatabase(self.config.DB_PATH)
        self.gateway = gateway or load_ledger_gateway(self.config.LEDGER_GATEWAY, self.config)

        self.reactor_channel: queue.Queue = queue.Queue()
        self.bidder_channel: queue.Queue = queue.Queue()
        self.work_channel: queue.Queue = queue.Queue()
        self._stop_event = threading.Event()

        self._initialize_components()

    def _initialize_components(self):
        """Initialize the reactor, bidder and work components"""
        logger.info("Initializing auctioneer for network %s", self.network_name)
        config, db, gateway = self.config, self.db, self.gateway

        valuation = AuctionValuationEngine(config, gateway, db)
        scheduler = FillScheduler(config, gateway, valuation)
        request_builder = FillRequestBuilder(config, gateway)

        self.reactor = PoolEventReactor(config, db, gateway)
        self.bidder_submitter = BidderSubmitter(config, db, gateway, scheduler, valuation, request_builder)
        self.bidder_handler = BidderHandler(config, db, gateway, scheduler, self.bidder_submitter)
        self.work_submitter = WorkSubmitter(config, gateway)
        self.work_handler = WorkHandler(
            config,
            db,
            gateway,
            LiquidationScanner(config, db, gateway),
            self.work_submitter,
            OracleHistory(float(config.PRICE_DELTA)),
        )
        self.listener = PoolEventListener(
            config, gateway, self.reactor_channel, self.bidder_channel, self.work_channel
        )

    def start(self):
        """Start the listener and the channel workers. Blocks until stopped."""
        with ThreadPoolExecutor(thread_name_prefix="auctioneer") as executor:
            futures = [
                executor.submit(self.listener.start_event_monitoring, self._stop_event),
                executor.submit(self._run_channel, self.reactor_channel, self.reactor.process_event_with_retry_and_dead_letter),
                executor.submit(self._run_channel, self.bidder_channel, self._process_ledger_event),
                executor.submit(self._run_channel, self.work_channel, self.work_handler.process_event),
            ]

            # Wait for all to complete (they shouldn't unless stopped)
            for future in futures:
                try:
                    future.result()
                except Exception as e:
                    logger.error("Auctioneer worker failed: %s", e, exc_info=True)

    def _run_channel(self, channel: queue.Queue, handler: Callable):
        """Deliver channel messages to a handler until stopped"""
        while not self._stop_event.is_set():
            try:
                message = channel.get(timeout=CHANNEL_POLL_TIMEOUT)
            except queue.Empty:
                continue

            try:
                handler(message)
            except Exception as e:
                logger.error("Error handling %s: %s", message, e, exc_info=True)
            finally:
                channel.task_done()

    def _process_ledger_event(self, event: LedgerEvent):
        # skip ticks that are already stale
        while True:
            try:
                newer = self.bidder_channel.get_nowait()
            except queue.Empty:
                break
            self.bidder_channel.task_done()
            event = newer
        self.bidder_handler.process_ledger(event.ledger)

    def stop(self):
        """Stop the listener and the channel workers"""
        self._stop_event.set()
        self.bidder_submitter.queue.shutdown()
        self.work_submitter.queue.shutdown()
