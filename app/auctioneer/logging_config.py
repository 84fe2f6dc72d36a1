"""
Logging for the auctioneer bot.

Every module logs through the shared "auctioneer" logger. Records go to the
console and to a log file. The file starts as LOGS_PATH from the environment
and moves to the network's own file once a network config is loaded.
"""

import logging
import os
from pathlib import Path
from types import TracebackType
from typing import Optional, Type

LOGGER_NAME = "auctioneer"
LOGS_PATH = os.environ.get("LOGS_PATH", "logs/auctioneer.log")
LOG_LEVEL = os.environ.get("LOG_LEVEL", "DEBUG").upper()
LOG_FORMAT = "%(asctime)s - %(levelname)s - %(threadName)s - %(message)s"


class AuctioneerFormatter(logging.Formatter):
    """Only ERROR and above carry their traceback, lower levels stay on one line."""

    def __init__(self) -> None:
        super().__init__(LOG_FORMAT)

    def format(self, record: logging.LogRecord) -> str:
        if record.levelno >= logging.ERROR or not record.exc_info:
            return super().format(record)

        exc_info, exc_text = record.exc_info, record.exc_text
        record.exc_info, record.exc_text = None, None
        try:
            return super().format(record)
        finally:
            record.exc_info, record.exc_text = exc_info, exc_text


def _file_handler(path: str) -> logging.FileHandler:
    Path(path).parent.mkdir(parents=True, exist_ok=True)
    handler = logging.FileHandler(path, mode="a")
    handler.setFormatter(AuctioneerFormatter())
    return handler


def setup_logger() -> logging.Logger:
    """
    Return the auctioneer logger, adding its console and file handlers on first use.
    """
    logger = logging.getLogger(LOGGER_NAME)
    if logger.handlers:
        return logger

    logger.setLevel(LOG_LEVEL)

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(AuctioneerFormatter())
    logger.addHandler(console_handler)
    logger.addHandler(_file_handler(LOGS_PATH))

    return logger


def use_log_file(path: str) -> logging.Logger:
    """
    Point the auctioneer logger's file output at `path`, closing the previous file.

    Args:
        path: Log file for the running network, e.g. "logs/mainnet_auctioneer.log".
    """
    logger = setup_logger()
    target = os.path.abspath(path)

    for handler in list(logger.handlers):
        if not isinstance(handler, logging.FileHandler):
            continue
        if handler.baseFilename == target:
            return logger
        logger.removeHandler(handler)
        handler.close()

    logger.addHandler(_file_handler(path))
    return logger


def global_exception_handler(
    exctype: Type[BaseException], value: BaseException, tb: Optional[TracebackType]
) -> None:
    """
    sys.excepthook that logs uncaught exceptions at CRITICAL with their traceback.
    """
    logging.getLogger(LOGGER_NAME).critical("Uncaught exception: %s", value, exc_info=(exctype, value, tb))
