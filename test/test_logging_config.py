"""
Tests for the auctioneer logging setup.
"""

import logging
import os
import sys

import pytest

from app.auctioneer.logging_config import (
    LOGGER_NAME,
    LOGS_PATH,
    AuctioneerFormatter,
    global_exception_handler,
    setup_logger,
    use_log_file,
)


@pytest.fixture()
def restore_log_file():
    yield
    use_log_file(LOGS_PATH)


def file_handlers(logger):
    return [handler for handler in logger.handlers if isinstance(handler, logging.FileHandler)]


def make_record(level, exc_info=None):
    return logging.LogRecord(LOGGER_NAME, level, __file__, 1, "Handled %s", ("USER1",), exc_info)


def test_setup_logger_is_idempotent():
    logger = setup_logger()
    handlers = list(logger.handlers)

    assert setup_logger() is logger
    assert logger.handlers == handlers
    assert len(file_handlers(logger)) == 1


def test_use_log_file_moves_file_output(tmp_path, restore_log_file):
    path = tmp_path / "nested" / "testnet_auctioneer.log"

    logger = use_log_file(str(path))
    logger.info("Network log line for %s", "USER1")

    handlers = file_handlers(logger)
    assert [handler.baseFilename for handler in handlers] == [os.path.abspath(str(path))]
    handlers[0].flush()
    assert "Network log line for USER1" in path.read_text(encoding="utf-8")


def test_use_log_file_twice_keeps_one_handler(tmp_path, restore_log_file):
    path = str(tmp_path / "testnet_auctioneer.log")

    use_log_file(path)
    logger = use_log_file(path)

    assert len(file_handlers(logger)) == 1


def test_traceback_only_logged_for_errors():
    try:
        raise ValueError("bad price")
    except ValueError:
        exc_info = sys.exc_info()

    formatter = AuctioneerFormatter()
    warning = formatter.format(make_record(logging.WARNING, exc_info))
    error = formatter.format(make_record(logging.ERROR, exc_info))

    assert warning.endswith("Handled USER1")
    assert "Traceback" not in warning
    assert "ValueError: bad price" in error


def test_global_exception_handler_logs_critical(caplog):
    try:
        raise RuntimeError("boom")
    except RuntimeError:
        exctype, value, tb = sys.exc_info()

    with caplog.at_level(logging.CRITICAL, logger=LOGGER_NAME):
        global_exception_handler(exctype, value, tb)

    record = caplog.records[-1]
    assert record.levelno == logging.CRITICAL
    assert record.exc_info[1] is value
    assert "Uncaught exception: boom" in caplog.text
