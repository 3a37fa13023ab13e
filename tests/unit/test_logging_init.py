from __future__ import annotations

import logging
import sys
from io import StringIO
from unittest.mock import patch

import msmt_upload.logging.init as log_init
from msmt_upload.logging.init import (
    APP_LOGGER_NAME,
    SUMMARY_LEVEL,
    LabeledFormatter,
    get_logger,
    log_summary,
    set_debug,
    setup_logging,
)


def _capture(logger: logging.Logger) -> StringIO:
    out = StringIO()
    for handler in logger.handlers[:]:
        logger.removeHandler(handler)
    handler = logging.StreamHandler(out)
    handler.setLevel(logging.DEBUG)
    handler.setFormatter(LabeledFormatter())
    logger.addHandler(handler)
    return out


def test_setup_logging_creates_logger_with_labeled_formatter():
    logger = setup_logging()
    assert logger.name == APP_LOGGER_NAME == "msmt_upload"
    assert logger.level == logging.INFO
    assert len(logger.handlers) == 1
    assert isinstance(logger.handlers[0].formatter, LabeledFormatter)
    assert logger.propagate is False


def test_logging_labeled_prefixes():
    """INFO|WARN|ERROR|SUMMARY prefixes."""
    logger = setup_logging()
    out = _capture(logger)

    logger.info("Imported 3 row(s)")
    logger.warning("lookup failed")
    logger.error("config: missing")
    logger.log(SUMMARY_LEVEL, "rows=1/1")

    assert out.getvalue().strip().split("\n") == [
        "INFO Imported 3 row(s)",
        "WARN lookup failed",
        "ERROR config: missing",
        "SUMMARY rows=1/1",
    ]


def test_module_loggers_propagate_into_app_logger():
    logger = setup_logging()
    out = _capture(logger)
    logging.getLogger("msmt_upload.services.enrichment").warning("lookup failed row=1")
    assert out.getvalue().strip() == "WARN lookup failed row=1"


def test_exception_info_is_appended():
    formatter = LabeledFormatter()
    try:
        raise ValueError("broken")
    except ValueError:
        record = logging.LogRecord("x", logging.ERROR, __file__, 1, "failed", None, sys.exc_info())
    text = formatter.format(record)
    assert text.startswith("ERROR failed\n")
    assert "ValueError: broken" in text


def test_setup_logging_idempotent():
    logger1 = setup_logging()
    logger2 = setup_logging()
    assert logger1 is logger2
    assert len(logger1.handlers) == 1
    assert get_logger() is logger1


def test_get_logger_configures_on_first_use():
    log_init.reset_logging()
    assert get_logger().name == APP_LOGGER_NAME


def test_log_summary_convenience_function():
    logger = setup_logging()
    out = _capture(logger)
    log_summary("rows=3/3 success=2 failed=1 skipped=0 elapsed_sec=0.5")
    assert out.getvalue().strip() == "SUMMARY rows=3/3 success=2 failed=1 skipped=0 elapsed_sec=0.5"
    assert logging.getLevelName(SUMMARY_LEVEL) == "SUMMARY"


def test_set_debug_toggles_level():
    logger = setup_logging()
    set_debug(True)
    assert logger.level == logging.DEBUG
    assert all(h.level == logging.DEBUG for h in logger.handlers)
    set_debug(False)
    assert logger.level == logging.INFO


def test_logging_when_not_tty():
    with patch("sys.stdout.isatty", return_value=False):
        logger = setup_logging()
        logger.info("Test message when not TTY")
        assert logger.level == logging.INFO
