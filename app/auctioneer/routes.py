"""Module for handling API routes"""

from flask import Blueprint, jsonify, make_response, request

from .bot_manager import AuctioneerManager
from .logging_config import setup_logger

logger = setup_logger()

auctioneer = Blueprint("auctioneer", __name__)


def start_monitor(network_name="mainnet", manager=None):
    """Start the auctioneer for a network, defaults to mainnet"""
    if manager is None:
        manager = AuctioneerManager(network_name)

    # Store on module level for route access before app context is available
    start_monitor._manager = manager

    manager.start()

    return manager


def _get_manager():
    """Get the auctioneer manager instance."""
    return getattr(start_monitor, "_manager", None)


@auctioneer.route("/auctions", methods=["GET"])
def get_auctions():
    manager = _get_manager()
    if not manager:
        return jsonify({"error": "Auctioneer not initialized"}), 500

    logger.info("API: Getting tracked auctions")
    return make_response(jsonify([entry.to_dict() for entry in manager.db.get_all_auction_entries()]))


@auctioneer.route("/users", methods=["GET"])
def get_users():
    manager = _get_manager()
    if not manager:
        return jsonify({"error": "Auctioneer not initialized"}), 500

    try:
        max_health_factor = float(request.args.get("maxHealthFactor", 1.2))
    except ValueError:
        return jsonify({"error": "maxHealthFactor must be a number"}), 400

    logger.info("API: Getting users under health factor %s", max_health_factor)
    users = manager.db.get_user_entries_under_health_factor(max_health_factor)
    return make_response(jsonify([user.to_dict() for user in users]))


@auctioneer.route("/fills", methods=["GET"])
def get_fills():
    manager = _get_manager()
    if not manager:
        return jsonify({"error": "Auctioneer not initialized"}), 500

    try:
        limit = int(request.args.get("limit", 50))
    except ValueError:
        return jsonify({"error": "limit must be an integer"}), 400

    logger.info("API: Getting last %s fills", limit)
    fills = manager.db.get_filled_auction_entries(limit)
    return make_response(jsonify([fill.to_dict() for fill in fills]))
