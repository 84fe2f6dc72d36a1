"""
Operator notifications for the auctioneer bot.
"""

import time

from apprise import Apprise

from .config_loader import NetworkConfig
from .logging_config import setup_logger
from .models import AuctionEntry, FillCalculation, FilledAuctionEntry

logger = setup_logger()


def setup_apprise_notification_object(config: NetworkConfig) -> Apprise:
    """Set up the Apprise notification engine."""
    apprise = Apprise()
    apprise.add(config.NOTIFICATION_URL)
    return apprise


def _send(title: str, message: str, config: NetworkConfig) -> bool:
    if not config.NOTIFICATION_URL:
        return False
    try:
        apprise = setup_apprise_notification_object(config)
        return bool(apprise.notify(body=message, title=title))
    except Exception as ex:
        logger.error("Failed to send notification '%s': %s", title, ex, exc_info=True)
        return False


def _footer(config: NetworkConfig) -> str:
    return f"Time: {time.strftime('%Y-%m-%d %H:%M:%S')}\nNetwork: `{config.NETWORK_NAME}`"


def post_auction_scheduled_notification(
    entry: AuctionEntry, fill_calculation: FillCalculation, ledger: int, config: NetworkConfig
) -> bool:
    """Post a notification when a newly tracked auction is scheduled for the first time."""
    message = (
        "*Auction Scheduled*\n\n"
        f"*Type*: `{entry.auction_type.name}`\n"
        f"*User*: `{entry.user_id}`\n"
        f"*Filler*: `{entry.filler}`\n"
        f"*Fill Block*: `{fill_calculation.fill_block}`\n"
        f"*Fill Percent*: `{fill_calculation.fill_percent}`\n"
        f"*Ledgers To Fill In*: `{fill_calculation.fill_block - ledger - 1}`\n"
        f"{_footer(config)}"
    )
    logger.info("Auction scheduled notification:\n%s", message)
    return _send("Auction Scheduled", message, config)


def post_fill_notification(filled: FilledAuctionEntry, config: NetworkConfig) -> bool:
    """Post a notification about a successful auction fill."""
    message = (
        ":moneybag: *Auction Filled* :moneybag:\n\n"
        f"*Type*: `{filled.auction_type.name}`\n"
        f"*User*: `{filled.user_id}`\n"
        f"*Filler*: `{filled.filler}`\n"
        f"*Fill Block*: `{filled.fill_block}`\n"
        f"*Lot Value*: `${filled.lot_total:,.2f}`\n"
        f"*Bid Value*: `${filled.bid_total:,.2f}`\n"
        f"*Estimated Profit*: `${filled.est_profit:,.2f}`\n"
        f"*Transaction*: {config.EXPLORER_URL}/tx/{filled.tx_hash}\n"
        f"{_footer(config)}"
    )
    logger.info("Fill notification:\n%s", message)
    return _send("Auction Filled", message, config)


def post_work_notification(message: str, config: NetworkConfig) -> bool:
    """Post a notification about a submitted liquidation or bad debt operation."""
    body = f"{message}\n\n{_footer(config)}"
    logger.info("Work notification:\n%s", body)
    return _send("Auctioneer Work Submitted", body, config)


def post_error_notification(message: str, config: NetworkConfig) -> bool:
    """Post an error notification."""
    error_message = f":rotating_light: *Error Notification* :rotating_light:\n\n{message}\n\n{_footer(config)}"
    logger.info("Error notification:\n%s", error_message)
    return _send("Error Notification", error_message, config)
