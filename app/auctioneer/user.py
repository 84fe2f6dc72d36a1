"""
User entry maintenance.
"""

from typing import Optional

from .database import AuctioneerDatabase
from .ledger import LedgerGateway
from .logging_config import setup_logger
from .models import PoolUser, PositionsEstimate, UserEntry

logger = setup_logger()


def update_user(db: AuctioneerDatabase, user: PoolUser, estimate: PositionsEstimate, ledger: int) -> Optional[UserEntry]:
    """
    Upsert the user's entry if they hold liabilities, otherwise delete it.

    Returns:
        The stored entry, or None if the entry was removed.
    """
    if user.positions.liabilities:
        entry = UserEntry(
            user_id=user.user_id,
            health_factor=estimate.health_factor,
            collateral=dict(user.positions.collateral),
            liabilities=dict(user.positions.liabilities),
            updated_at=ledger,
        )
        db.set_user_entry(entry)
        logger.info("Updated user entry for %s at ledger %s.", user.user_id, ledger)
        return entry

    db.delete_user_entry(user.user_id)
    logger.info("Deleted user entry for %s at ledger %s, no liabilities remaining.", user.user_id, ledger)
    return None


def refresh_user(db: AuctioneerDatabase, gateway: LedgerGateway, user_id: str, ledger: int) -> Optional[UserEntry]:
    """Reload a user's positions from the ledger and update their entry."""
    estimate, user = gateway.load_user_position_estimate(user_id)
    return update_user(db, user, estimate, ledger)
