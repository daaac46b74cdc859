"""Structured Logging — verifies JSON output and package logger setup.

Tests:
    - Base fields always present
    - Known extra fields surfaced, unknown ones ignored
    - Write worker thread and exception type surfaced
    - setup_logging targets the progress_store logger and never stacks handlers
"""

import json
import logging
import sys

import pytest

from progress_store.infrastructure.observability import (
    PACKAGE_LOGGER, JSONFormatter, setup_logging,
)


def _record(**extra) -> logging.LogRecord:
    record = logging.LogRecord(
        "progress_store.test", logging.ERROR, __file__, 1, "write failed", None, None,
    )
    record.__dict__.update(extra)
    return record


@pytest.fixture
def package_logger():
    logger = logging.getLogger(PACKAGE_LOGGER)
    yield logger
    setup_logging("INFO", "none")
    logger.setLevel(logging.NOTSET)


def test_json_formatter_base_fields():
    payload = json.loads(JSONFormatter().format(_record()))
    assert payload["level"] == "ERROR"
    assert payload["logger"] == "progress_store.test"
    assert payload["message"] == "write failed"
    assert "timestamp" in payload
    assert "worker" not in payload


def test_json_formatter_surfaces_known_extras():
    payload = json.loads(JSONFormatter().format(_record(
        player="p-1", error_code="QUERY_EXECUTION_ERROR", pending_writes=3, unrelated="x",
    )))
    assert payload["player"] == "p-1"
    assert payload["error_code"] == "QUERY_EXECUTION_ERROR"
    assert payload["pending_writes"] == 3
    assert "unrelated" not in payload


def test_json_formatter_names_write_worker_and_exception():
    try:
        raise ValueError("bad date")
    except ValueError:
        exc_info = sys.exc_info()
    record = _record(threadName="progress-store-write_0")
    record.exc_info = exc_info

    payload = json.loads(JSONFormatter().format(record))

    assert payload["worker"] == "progress-store-write_0"
    assert payload["exception_type"] == "ValueError"
    assert "bad date" in payload["exception"]


def test_setup_logging_replaces_its_handler(package_logger):
    first = setup_logging("DEBUG", "json")
    second = setup_logging("WARNING", "text")

    assert first not in package_logger.handlers
    assert second in package_logger.handlers
    assert not isinstance(second.formatter, JSONFormatter)
    assert package_logger.level == logging.WARNING
    assert first not in logging.root.handlers


def test_setup_logging_none_installs_no_handler(package_logger):
    handler = setup_logging("INFO", "json")
    assert isinstance(handler.formatter, JSONFormatter)

    assert setup_logging("ERROR", "none") is None
    assert handler not in package_logger.handlers
    assert package_logger.level == logging.ERROR
