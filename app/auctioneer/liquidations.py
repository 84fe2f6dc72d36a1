"""
Liquidation sizing and scanning.
"""

from typing import Iterable, List

from .config_loader import NetworkConfig
from .database import AuctioneerDatabase
from .ledger import LedgerGateway
from .logging_config import setup_logger
from .models import AuctionType, PositionsEstimate
from .user import update_user
from .work_submitter import BadDebtAuction, BadDebtTransfer, UserLiquidation, WorkSubmission

logger = setup_logger()

LIQUIDATION_HEALTH_FACTOR = 0.99
TARGET_HEALTH_FACTOR = 1.1


def is_liquidatable(estimate: PositionsEstimate) -> bool:
    if estimate.total_effective_liabilities <= 0:
        return False
    return estimate.total_effective_collateral / estimate.total_effective_liabilities < LIQUIDATION_HEALTH_FACTOR


def is_bad_debt(estimate: PositionsEstimate) -> bool:
    return estimate.total_effective_collateral <= 0 and estimate.total_effective_liabilities > 0


def calculate_liquidation_percent(estimate: PositionsEstimate) -> int:
    """
    Estimate the percent of a position to liquidate to bring it back to the target health factor.

    Returns:
        Liquidation percent, clamped to [0, 100].
    """
    if estimate.total_borrowed <= 0 or estimate.total_supplied <= 0:
        return 100

    avg_inverse_lf = estimate.total_effective_liabilities / estimate.total_borrowed
    avg_cf = estimate.total_effective_collateral / estimate.total_supplied
    est_incentive = 1 + (1 - avg_cf / avg_inverse_lf) / 2

    numerator = estimate.total_effective_liabilities * TARGET_HEALTH_FACTOR - estimate.total_effective_collateral
    denominator = avg_inverse_lf * TARGET_HEALTH_FACTOR - avg_cf * est_incentive
    if denominator <= 0:
        return 100

    percent = round(numerator / denominator / estimate.total_borrowed * 100)
    return min(max(percent, 0), 100)


class LiquidationScanner:
    """
    Finds users that need to be liquidated or have bad debt transferred.
    """

    def __init__(self, config: NetworkConfig, db: AuctioneerDatabase, gateway: LedgerGateway):
        self.config = config
        self.db = db
        self.gateway = gateway

    def scan_users(self, ledger: int) -> List[WorkSubmission]:
        """Check all tracked users under the scan health factor, and the backstop."""
        users = self.db.get_user_entries_under_health_factor(float(self.config.LIQUIDATION_SCAN_HEALTH_FACTOR))
        submissions = self.check_users([user.user_id for user in users], ledger)
        submissions.extend(self.check_backstop())
        return submissions

    def check_users(self, user_ids: Iterable[str], ledger: int) -> List[WorkSubmission]:
        user_ids = list(user_ids)
        logger.info("LiquidationScanner: Checking %s users for liquidations", len(user_ids))

        submissions: List[WorkSubmission] = []
        for user_id in user_ids:
            if user_id == self.config.BACKSTOP_ADDRESS:
                continue
            try:
                if self.gateway.load_auction(user_id, AuctionType.LIQUIDATION) is not None:
                    continue

                estimate, pool_user = self.gateway.load_user_position_estimate(user_id)
                update_user(self.db, pool_user, estimate, ledger)

                if is_bad_debt(estimate):
                    logger.info("LiquidationScanner: User %s has bad debt", user_id)
                    submissions.append(BadDebtTransfer(user_id=user_id))
                elif is_liquidatable(estimate):
                    percent = calculate_liquidation_percent(estimate)
                    logger.info(
                        "LiquidationScanner: User %s is liquidatable (health factor %.4f), liquidating %s%%",
                        user_id, estimate.health_factor, percent,
                    )
                    submissions.append(UserLiquidation(user_id=user_id, liquidation_percent=percent))
            except Exception as ex:
                logger.error("LiquidationScanner: Error checking user %s: %s", user_id, ex, exc_info=True)

        return submissions

    def check_backstop(self) -> List[WorkSubmission]:
        """Start a bad debt auction if the backstop holds liabilities and none is running."""
        try:
            estimate, _ = self.gateway.load_user_position_estimate(self.config.BACKSTOP_ADDRESS)
            if estimate.total_effective_liabilities <= 0:
                return []
            if self.gateway.load_auction(self.config.BACKSTOP_ADDRESS, AuctionType.BAD_DEBT) is not None:
                return []
            logger.info("LiquidationScanner: Backstop holds bad debt, creating a bad debt auction")
            return [BadDebtAuction()]
        except Exception as ex:
            logger.error("LiquidationScanner: Error checking backstop: %s", ex, exc_info=True)
            return []
