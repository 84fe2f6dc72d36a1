"""
Auction bidding.

BidderHandler re-evaluates tracked auctions every ledger and queues a bid once
an auction reaches its fill block. BidderSubmitter executes queued bids.
"""

import time
from dataclasses import dataclass

from .auction import FillScheduler, scale_auction
from .config_loader import Filler, NetworkConfig
from .database import AuctioneerDatabase
from .exceptions import PriceUnavailable
from .fill_requests import FillRequestBuilder
from .ledger import LedgerGateway
from .logging_config import setup_logger
from .models import AuctionEntry, FilledAuctionEntry, PoolSubmit
from .notifications import post_auction_scheduled_notification, post_error_notification, post_fill_notification
from .submission_queue import SubmissionQueue
from .valuation import AuctionValuationEngine

logger = setup_logger()

RESCHEDULE_WINDOW = 5
RESCHEDULE_INTERVAL = 10


@dataclass
class AuctionBid:
    filler: Filler
    auction_entry: AuctionEntry


class BidderSubmitter:
    """
    Retriable queue of auction bids.
    """

    def __init__(
        self,
        config: NetworkConfig,
        db: AuctioneerDatabase,
        gateway: LedgerGateway,
        scheduler: FillScheduler,
        valuation: AuctionValuationEngine,
        request_builder: FillRequestBuilder,
    ):
        self.config = config
        self.db = db
        self.gateway = gateway
        self.scheduler = scheduler
        self.valuation = valuation
        self.request_builder = request_builder
        self.queue: SubmissionQueue[AuctionBid] = SubmissionQueue(
            submit=self.submit_bid,
            on_drop=self.on_drop,
            submit_timeout=float(config.SUBMIT_TIMEOUT),
            name="BidderSubmitter",
        )

    def add_bid(self, bid: AuctionBid) -> None:
        self.queue.add_submission(bid, int(self.config.BID_MAX_RETRIES), float(self.config.MIN_RETRY_INTERVAL))

    def contains_auction(self, entry: AuctionEntry) -> bool:
        """True if a bid for the auction is already queued."""
        return self.queue.contains(
            lambda bid: bid.auction_entry.user_id == entry.user_id
            and bid.auction_entry.auction_type == entry.auction_type
        )

    # Return True to acknowledge the bid, or False to retry
    def submit_bid(self, bid: AuctionBid) -> bool:
        entry = bid.auction_entry
        filler = bid.filler
        try:
            auction_data = self.gateway.load_auction(entry.user_id, entry.auction_type)
            if auction_data is None:
                logger.info(
                    "BidderSubmitter: %s auction for %s no longer exists, removing it",
                    entry.auction_type.name, entry.user_id,
                )
                self.db.delete_auction_entry(entry.user_id, entry.auction_type)
                return True

            ledger = self.gateway.load_latest_ledger()
            next_ledger = ledger + 1
            fill_calculation = self.scheduler.schedule(filler, entry.auction_type, auction_data)
            if fill_calculation.fill_percent <= 0:
                logger.info(
                    "BidderSubmitter: %s can not take any of the %s auction for %s, rechecking at block %s",
                    filler.name, entry.auction_type.name, entry.user_id, next_ledger + RESCHEDULE_INTERVAL,
                )
                entry.fill_block = next_ledger + RESCHEDULE_INTERVAL
                entry.updated_at = ledger
                self.db.set_auction_entry(entry)
                return True

            if fill_calculation.fill_block > next_ledger:
                logger.info(
                    "BidderSubmitter: %s auction for %s rescheduled to block %s",
                    entry.auction_type.name, entry.user_id, fill_calculation.fill_block,
                )
                entry.fill_block = fill_calculation.fill_block
                entry.updated_at = ledger
                self.db.set_auction_entry(entry)
                return True

            scaled_auction = scale_auction(auction_data, next_ledger, fill_calculation.fill_percent)
            value = self.valuation.valuate(entry.auction_type, scaled_auction)
            requests = self.request_builder.build(filler, entry, scaled_auction, fill_calculation.fill_percent)
            operation = PoolSubmit(
                from_address=filler.address, spender=filler.address, to=filler.address, requests=requests
            )

            tx_hash = self.gateway.submit_transaction(operation, filler.secret)
            if tx_hash is None:
                logger.warning(
                    "BidderSubmitter: Fill of %s auction for %s was not accepted", entry.auction_type.name, entry.user_id
                )
                return False

            filled = FilledAuctionEntry(
                tx_hash=tx_hash,
                filler=filler.address,
                user_id=entry.user_id,
                auction_type=entry.auction_type,
                bid=scaled_auction.bid,
                bid_total=value.bid_value,
                lot=scaled_auction.lot,
                lot_total=value.lot_value,
                est_profit=value.lot_value - value.bid_value,
                fill_block=next_ledger,
                timestamp=int(time.time()),
            )
            self.db.set_filled_auction_entry(filled)
            logger.info(
                "BidderSubmitter: Filled %s%% of %s auction for %s in %s, estimated profit %.4f",
                fill_calculation.fill_percent, entry.auction_type.name, entry.user_id, tx_hash, filled.est_profit,
            )

            if fill_calculation.fill_percent < 100:
                # the rest of the auction gets scheduled again
                entry.fill_block = 0
                entry.updated_at = ledger
                self.db.set_auction_entry(entry)

            post_fill_notification(filled, self.config)
            return True
        except PriceUnavailable as ex:
            logger.warning(
                "BidderSubmitter: Unable to value %s auction for %s: %s", entry.auction_type.name, entry.user_id, ex
            )
            return False
        except Exception as ex:
            logger.error(
                "BidderSubmitter: Error filling %s auction for %s: %s",
                entry.auction_type.name, entry.user_id, ex, exc_info=True,
            )
            return False

    def on_drop(self, bid: AuctionBid) -> None:
        entry = bid.auction_entry
        message = f"Dropped bid on {entry.auction_type.name} auction for user {entry.user_id} by filler {bid.filler.name}"
        logger.error("BidderSubmitter: %s", message)
        self.db.delete_auction_entry(entry.user_id, entry.auction_type)
        post_error_notification(message, self.config)


class BidderHandler:
    """
    Schedules tracked auctions and queues bids for the ones that are due.
    """

    def __init__(
        self,
        config: NetworkConfig,
        db: AuctioneerDatabase,
        gateway: LedgerGateway,
        scheduler: FillScheduler,
        submitter: BidderSubmitter,
    ):
        self.config = config
        self.db = db
        self.gateway = gateway
        self.scheduler = scheduler
        self.submitter = submitter

    def process_ledger(self, ledger: int) -> None:
        next_ledger = ledger + 1
        for entry in self.db.get_all_auction_entries():
            try:
                filler = self.config.get_filler(entry.filler)
                if filler is None:
                    logger.error("BidderHandler: Filler not found for auction: %s", entry)
                    continue

                if self.submitter.contains_auction(entry):
                    continue

                ledgers_to_fill = entry.fill_block - next_ledger
                if (
                    entry.fill_block == 0
                    or ledgers_to_fill <= RESCHEDULE_WINDOW
                    or ledgers_to_fill % RESCHEDULE_INTERVAL == 0
                ):
                    auction_data = self.gateway.load_auction(entry.user_id, entry.auction_type)
                    if auction_data is None:
                        logger.info(
                            "BidderHandler: %s auction for %s no longer exists, removing it",
                            entry.auction_type.name, entry.user_id,
                        )
                        self.db.delete_auction_entry(entry.user_id, entry.auction_type)
                        continue

                    fill_calculation = self.scheduler.schedule(filler, entry.auction_type, auction_data)
                    logger.info(
                        "BidderHandler: %s auction for %s scheduled at block %s for %s%%, %s ledgers to fill",
                        entry.auction_type.name, entry.user_id, fill_calculation.fill_block,
                        fill_calculation.fill_percent, fill_calculation.fill_block - next_ledger,
                    )
                    if fill_calculation.fill_percent <= 0:
                        # the filler has no room for any of it yet, keep the entry out of the queue
                        entry.fill_block = next_ledger + RESCHEDULE_INTERVAL
                        entry.updated_at = ledger
                        self.db.set_auction_entry(entry)
                        continue

                    if entry.fill_block == 0:
                        post_auction_scheduled_notification(entry, fill_calculation, ledger, self.config)

                    entry.fill_block = fill_calculation.fill_block
                    entry.updated_at = ledger
                    self.db.set_auction_entry(entry)

                if entry.fill_block <= next_ledger:
                    self.submitter.add_bid(AuctionBid(filler=filler, auction_entry=entry))
            except PriceUnavailable as ex:
                logger.warning("BidderHandler: Skipping auction %s: %s", entry, ex)
            except Exception as ex:
                logger.error("BidderHandler: Error processing auction %s: %s", entry, ex, exc_info=True)
