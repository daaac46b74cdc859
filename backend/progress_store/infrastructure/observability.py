"""Structured Logging — JSON formatter and setup for the progress store's loggers.

Invariants:
    - All logs include timestamp, level, logger name, and message
    - Extra fields (player, operation, error_code, ...) surfaced when present
    - Records from write workers name the worker thread; failures name the exception type
    - setup_logging configures the `progress_store` logger only; the host's root
      logger is left alone and records still propagate to it
    - Repeated setup_logging calls replace the handler they installed, never stack

Design Decisions:
    - ProgressDatabase.initialise() calls setup_logging from Settings.log_level /
      Settings.log_format; log_format "none" keeps the level but installs no handler
"""

import json
import logging
import threading
from datetime import datetime, timezone

PACKAGE_LOGGER = "progress_store"
WRITE_WORKER_PREFIX = "progress-store-write"

_EXTRA_FIELDS = (
    "player", "operation", "category", "context", "error_code",
    "error_category", "severity", "dialect", "pending_writes",
)

_setup_lock = threading.Lock()
_installed: logging.Handler | None = None


class JSONFormatter(logging.Formatter):
    """Format progress store records as one JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:
        log = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.threadName and record.threadName.startswith(WRITE_WORKER_PREFIX):
            log["worker"] = record.threadName
        for key in _EXTRA_FIELDS:
            val = record.__dict__.get(key)
            if val is not None:
                log[key] = val
        if record.exc_info and record.exc_info[0] is not None:
            log["exception_type"] = record.exc_info[0].__name__
            log["exception"] = self.formatException(record.exc_info)
        return json.dumps(log, ensure_ascii=False, default=str)


def setup_logging(level: str = "INFO", fmt: str = "json") -> logging.Handler | None:
    """Configure the progress_store logger; returns the installed handler, if any."""
    global _installed
    logger = logging.getLogger(PACKAGE_LOGGER)
    with _setup_lock:
        if _installed is not None:
            logger.removeHandler(_installed)
            _installed = None
        logger.setLevel(getattr(logging, level.upper(), logging.INFO))
        if fmt == "none":
            return None
        handler = logging.StreamHandler()
        if fmt == "json":
            handler.setFormatter(JSONFormatter())
        else:
            handler.setFormatter(logging.Formatter(
                "%(asctime)s %(levelname)s %(name)s [%(threadName)s] — %(message)s",
            ))
        logger.addHandler(handler)
        _installed = handler
    return handler
