"""
Applies pool events to the tracked auction and user entries.
"""

import json
import time
from pathlib import Path
from typing import Iterable, Optional

from .config_loader import Filler, NetworkConfig
from .database import AuctioneerDatabase
from .decorators import retry_on_exception
from .events import (
    DeleteLiquidationAuctionEvent,
    FillAuctionEvent,
    NewAuctionEvent,
    NewLiquidationAuctionEvent,
    PoolEvent,
    PositionChangeEvent,
    event_to_dict,
)
from .ledger import LedgerGateway
from .logging_config import setup_logger
from .models import AuctionData, AuctionEntry, AuctionType
from .user import refresh_user

logger = setup_logger()


def find_filler(fillers: Iterable[Filler], auction_data: AuctionData) -> Optional[Filler]:
    """Return the first filler, in priority order, that supports every bid and lot asset."""
    for filler in fillers:
        if filler.supports(auction_data.bid.keys(), auction_data.lot.keys()):
            return filler
    return None


def dead_letter_event(path: str, event: PoolEvent, error: BaseException) -> None:
    """Append an event that could not be processed to the dead letter file as one JSON line."""
    Path(path).parent.mkdir(parents=True, exist_ok=True)
    record = {"timestamp": int(time.time()), "error": str(error), "event": event_to_dict(event)}
    with open(path, "a", encoding="utf-8") as f:
        f.write(json.dumps(record, sort_keys=True) + "\n")


class PoolEventReactor:
    """
    Keeps the auction and user entries in sync with pool events.
    """

    def __init__(self, config: NetworkConfig, db: AuctioneerDatabase, gateway: LedgerGateway):
        self.config = config
        self.db = db
        self.gateway = gateway

    def process_event_with_retry_and_dead_letter(self, event: PoolEvent) -> bool:
        """
        Process an event with bounded retries. If it still fails, write it to the dead letter file.

        Returns:
            True if the event was applied, False if it was dead lettered.
        """
        handle = retry_on_exception(
            logger,
            max_retries=int(self.config.EVENT_MAX_RETRIES),
            delay=float(self.config.EVENT_RETRY_DELAY),
        )(self.handle_event)

        try:
            handle(event)
            logger.info("PoolEventReactor: Successfully processed event %s", event.id)
            return True
        except Exception as ex:
            logger.error("PoolEventReactor: Dead lettering event %s: %s", event.id, ex, exc_info=True)
            try:
                dead_letter_event(self.config.DEADLETTER_PATH, event, ex)
            except OSError as write_ex:
                logger.error("PoolEventReactor: Error writing event %s to dead letter file: %s", event.id, write_ex)
            return False

    def handle_event(self, event: PoolEvent) -> None:
        if isinstance(event, PositionChangeEvent):
            refresh_user(self.db, self.gateway, event.user_id, event.ledger)
        elif isinstance(event, NewAuctionEvent):
            self._track_auction(self.config.BACKSTOP_ADDRESS, event.auction_type, event.auction_data, event.ledger)
        elif isinstance(event, NewLiquidationAuctionEvent):
            self._track_auction(event.user_id, AuctionType.LIQUIDATION, event.auction_data, event.ledger)
        elif isinstance(event, DeleteLiquidationAuctionEvent):
            self.db.delete_auction_entry(event.user_id, AuctionType.LIQUIDATION)
            logger.info("PoolEventReactor: Liquidation auction for %s was deleted", event.user_id)
        elif isinstance(event, FillAuctionEvent):
            self._handle_fill(event)
        else:
            raise TypeError(f"Unsupported pool event: {type(event).__name__}")

    def _track_auction(self, user_id: str, auction_type: AuctionType, auction_data: AuctionData, ledger: int) -> None:
        existing = self.db.get_auction_entry(user_id, auction_type)
        if existing is not None and existing.start_block == auction_data.block:
            logger.info("PoolEventReactor: %s auction for %s already tracked", auction_type.name, user_id)
            return

        filler = find_filler(self.config.fillers, auction_data)
        if filler is None:
            logger.info(
                "PoolEventReactor: No filler supports %s auction for %s, not tracking it", auction_type.name, user_id
            )
            return

        self.db.set_auction_entry(
            AuctionEntry(
                user_id=user_id,
                auction_type=auction_type,
                filler=filler.address,
                start_block=auction_data.block,
                fill_block=0,
                updated_at=ledger,
            )
        )
        logger.info(
            "PoolEventReactor: Tracking %s auction for %s with filler %s", auction_type.name, user_id, filler.name
        )

    def _handle_fill(self, event: FillAuctionEvent) -> None:
        if event.fill_percent < 100:
            logger.info(
                "PoolEventReactor: %s auction for %s partially filled (%s%%) by %s",
                event.auction_type.name, event.user_id, event.fill_percent, event.filler_id,
            )
            return

        self.db.delete_auction_entry(event.user_id, event.auction_type)
        logger.info(
            "PoolEventReactor: %s auction for %s filled by %s", event.auction_type.name, event.user_id, event.filler_id
        )
        # interest and bad debt auctions belong to the backstop, which is not a tracked user position
        if event.auction_type == AuctionType.LIQUIDATION:
            refresh_user(self.db, self.gateway, event.user_id, event.ledger)
