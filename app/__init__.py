"""
Creates and returns main flask app
"""

import os
import sys
import threading

from flask import Flask, jsonify
from flask_cors import CORS

from .auctioneer.logging_config import global_exception_handler
from .auctioneer.routes import auctioneer, start_monitor


def create_app(network_name=None, start_bot=True):
    """Create Flask app for the network named by NETWORK (defaults to mainnet)"""
    sys.excepthook = global_exception_handler

    app = Flask(__name__)
    CORS(app)

    @app.route("/health", methods=["GET"])
    def health_check():
        return jsonify({"status": "healthy"}), 200

    if network_name is None:
        network_name = os.environ.get("NETWORK", "mainnet")

    if start_bot:
        monitor_thread = threading.Thread(target=start_monitor, args=(network_name,), daemon=True)
        monitor_thread.start()

    # Register the auctioneer blueprint after starting the bot
    app.register_blueprint(auctioneer, url_prefix="/auctioneer")

    return app
