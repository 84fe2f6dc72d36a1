"""
Submits liquidation and bad debt operations signed by the auctioneer's own key.
"""

from dataclasses import dataclass
from typing import Optional, Union

from . import models
from .config_loader import NetworkConfig
from .exceptions import ContractError, ContractErrorType
from .ledger import LedgerGateway
from .logging_config import setup_logger
from .models import AuctionType
from .notifications import post_error_notification, post_work_notification
from .submission_queue import SubmissionQueue

logger = setup_logger()


@dataclass
class UserLiquidation:
    user_id: str
    liquidation_percent: int


@dataclass
class BadDebtTransfer:
    user_id: str


@dataclass
class BadDebtAuction:
    pass


WorkSubmission = Union[UserLiquidation, BadDebtTransfer, BadDebtAuction]


class WorkSubmitter:
    """
    Retriable queue of liquidation, bad debt transfer and bad debt auction submissions.
    """

    def __init__(self, config: NetworkConfig, gateway: LedgerGateway):
        self.config = config
        self.gateway = gateway
        self.queue: SubmissionQueue[WorkSubmission] = SubmissionQueue(
            submit=self.submit,
            on_drop=self.on_drop,
            submit_timeout=float(config.SUBMIT_TIMEOUT),
            name="WorkSubmitter",
        )

    def add_submission(self, submission: WorkSubmission, max_retries: Optional[int] = None) -> None:
        if max_retries is None:
            max_retries = int(self.config.WORK_MAX_RETRIES)
        self.queue.add_submission(submission, max_retries, float(self.config.MIN_RETRY_INTERVAL))

    def contains_user(self, user_id: str) -> bool:
        """True if work for the user is already queued."""
        return self.queue.contains(lambda submission: getattr(submission, "user_id", None) == user_id)

    def contains_bad_debt_auction(self) -> bool:
        return self.queue.contains(lambda submission: isinstance(submission, BadDebtAuction))

    # Return True to acknowledge the submission, or False to retry
    def submit(self, submission: WorkSubmission) -> bool:
        if isinstance(submission, UserLiquidation):
            return self.submit_user_liquidation(submission)
        if isinstance(submission, BadDebtTransfer):
            return self.submit_bad_debt_transfer(submission)
        if isinstance(submission, BadDebtAuction):
            return self.submit_bad_debt_auction()

        logger.error("WorkSubmitter: Invalid submission type: %s", submission)
        # consume the submission
        return True

    def submit_user_liquidation(self, liquidation: UserLiquidation) -> bool:
        try:
            if self.gateway.load_auction(liquidation.user_id, AuctionType.LIQUIDATION) is not None:
                logger.info("WorkSubmitter: Liquidation auction already exists for user %s", liquidation.user_id)
                return True

            operation = models.NewLiquidationAuction(
                user_id=liquidation.user_id, percent_liquidated=liquidation.liquidation_percent
            )
            tx_hash = self.gateway.submit_transaction(operation, self.config.AUCTIONEER_SECRET)
            if tx_hash is None:
                logger.warning("WorkSubmitter: Liquidation for user %s was not accepted", liquidation.user_id)
                return False

            message = (
                f"Successfully submitted liquidation for user: {liquidation.user_id} "
                f"Liquidation Percent: {liquidation.liquidation_percent}"
            )
            logger.info("WorkSubmitter: %s", message)
            post_work_notification(message, self.config)
            return True
        except ContractError as ex:
            # nudge the percent towards what the pool will accept before the retry
            if ex.error_type == ContractErrorType.INVALID_LIQ_TOO_SMALL and liquidation.liquidation_percent < 100:
                liquidation.liquidation_percent += 1
            elif ex.error_type == ContractErrorType.INVALID_LIQ_TOO_LARGE and liquidation.liquidation_percent > 1:
                liquidation.liquidation_percent -= 1
            logger.error(
                "WorkSubmitter: Error creating liquidation for user %s, retrying at %s%%: %s",
                liquidation.user_id, liquidation.liquidation_percent, ex,
            )
            return False
        except Exception as ex:
            logger.error(
                "WorkSubmitter: Error creating liquidation for user %s: %s", liquidation.user_id, ex, exc_info=True
            )
            return False

    def submit_bad_debt_transfer(self, transfer: BadDebtTransfer) -> bool:
        try:
            tx_hash = self.gateway.submit_transaction(
                models.BadDebtTransfer(user_id=transfer.user_id), self.config.AUCTIONEER_SECRET
            )
            if tx_hash is None:
                return False

            message = f"Successfully submitted bad debt transfer for user: {transfer.user_id}"
            logger.info("WorkSubmitter: %s", message)
            post_work_notification(message, self.config)
            return True
        except Exception as ex:
            logger.error(
                "WorkSubmitter: Error transferring bad debt for user %s: %s", transfer.user_id, ex, exc_info=True
            )
            return False

    def submit_bad_debt_auction(self) -> bool:
        try:
            if self.gateway.load_auction(self.config.BACKSTOP_ADDRESS, AuctionType.BAD_DEBT) is not None:
                logger.info("WorkSubmitter: Bad debt auction already exists")
                return True

            tx_hash = self.gateway.submit_transaction(models.NewBadDebtAuction(), self.config.AUCTIONEER_SECRET)
            if tx_hash is None:
                return False

            message = "Successfully submitted bad debt auction"
            logger.info("WorkSubmitter: %s", message)
            post_work_notification(message, self.config)
            return True
        except Exception as ex:
            logger.error("WorkSubmitter: Error creating bad debt auction: %s", ex, exc_info=True)
            return False

    def on_drop(self, submission: WorkSubmission) -> None:
        if isinstance(submission, UserLiquidation):
            message = f"Dropped liquidation for user: {submission.user_id}"
        elif isinstance(submission, BadDebtTransfer):
            message = f"Dropped bad debt transfer for user: {submission.user_id}"
        else:
            message = "Dropped bad debt auction"
        logger.error("WorkSubmitter: %s", message)
        post_error_notification(message, self.config)
