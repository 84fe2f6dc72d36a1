"""
Handles work channel events: liquidation scans and oracle price checks.
"""

import time
from typing import Iterable, Set

from .config_loader import NetworkConfig
from .database import AuctioneerDatabase
from .events import LiquidationScanEvent, OracleScanEvent, WorkEvent
from .ledger import LedgerGateway
from .liquidations import LiquidationScanner
from .logging_config import setup_logger
from .models import LP_TOKEN_DECIMALS, PriceEntry
from .oracle_history import OracleHistory
from .work_submitter import BadDebtAuction, WorkSubmission, WorkSubmitter

logger = setup_logger()


class WorkHandler:
    def __init__(
        self,
        config: NetworkConfig,
        db: AuctioneerDatabase,
        gateway: LedgerGateway,
        scanner: LiquidationScanner,
        submitter: WorkSubmitter,
        oracle_history: OracleHistory,
    ):
        self.config = config
        self.db = db
        self.gateway = gateway
        self.scanner = scanner
        self.submitter = submitter
        self.oracle_history = oracle_history

    def process_event(self, event: WorkEvent) -> None:
        if isinstance(event, LiquidationScanEvent):
            self.queue_submissions(self.scanner.scan_users(event.ledger))
        elif isinstance(event, OracleScanEvent):
            self.check_oracle(event.ledger)
        else:
            raise TypeError(f"Unsupported work event: {type(event).__name__}")

    def check_oracle(self, ledger: int) -> None:
        """Recheck users exposed to assets whose oracle price moved significantly."""
        self.cache_backstop_token_price()

        oracle = self.gateway.load_pool_oracle()
        changes = self.oracle_history.get_significant_price_changes(oracle)
        if not changes.up and not changes.down:
            return

        logger.info("WorkHandler: Significant price changes, up: %s down: %s", changes.up, changes.down)
        user_ids: Set[str] = set()
        for asset_id in changes.down:
            user_ids.update(entry.user_id for entry in self.db.get_user_entries_with_collateral(asset_id))
        for asset_id in changes.up:
            user_ids.update(entry.user_id for entry in self.db.get_user_entries_with_liability(asset_id))

        self.queue_submissions(self.scanner.check_users(sorted(user_ids), ledger))

    def cache_backstop_token_price(self) -> None:
        """Store the price of one backstop LP token, used when a withdrawal simulation fails."""
        price = self.gateway.sim_lp_to_reference_stable(10**LP_TOKEN_DECIMALS)
        if price is None:
            logger.warning("WorkHandler: Unable to simulate backstop token price")
            return
        self.db.set_price_entries(
            [PriceEntry(asset_id=self.config.BACKSTOP_TOKEN_ADDRESS, price=price, timestamp=int(time.time()))]
        )

    def queue_submissions(self, submissions: Iterable[WorkSubmission]) -> None:
        for submission in submissions:
            if isinstance(submission, BadDebtAuction):
                if self.submitter.contains_bad_debt_auction():
                    continue
            elif self.submitter.contains_user(submission.user_id):
                continue
            self.submitter.add_submission(submission)
