"""Error Hierarchy — typed, categorized exceptions for progress store failure modes.

Invariants:
    - Every error has a code (str), category (ErrorCategory), severity (ErrorSeverity)
    - Startup errors (driver, configuration) are CRITICAL; query errors are non-fatal
    - to_log_extra() produces the flat dict handed to logging's `extra=`
    - Nothing in this module does IO

Design Decisions:
    - Single hierarchy with ProgressStoreError base: executors catch one type
    - ErrorContext as dataclass: structured log fields without coupling to a logging framework
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any


class ErrorSeverity(str, Enum):
    """Error severity for observability."""
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class ErrorCategory(str, Enum):
    """High-level error categories."""
    CONFIGURATION = "configuration"
    DRIVER = "driver"
    CONNECTION = "connection"
    QUERY = "query"
    INTERRUPTED = "interrupted"


@dataclass
class ErrorContext:
    """Rich context for error observability and debugging."""
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    player: str | None = None
    operation: str | None = None
    category_name: str | None = None
    debug_info: dict[str, Any] | None = None


class ProgressStoreError(Exception):
    """Base exception for all progress store errors."""

    def __init__(
        self,
        message: str,
        code: str,
        category: ErrorCategory,
        severity: ErrorSeverity = ErrorSeverity.ERROR,
        context: ErrorContext | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.category = category
        self.severity = severity
        self.context = context or ErrorContext()

    @property
    def recoverable(self) -> bool:
        return self.severity in (ErrorSeverity.INFO, ErrorSeverity.WARNING, ErrorSeverity.ERROR)

    def to_log_extra(self) -> dict:
        """Flatten into logging `extra` fields (None values dropped)."""
        extra = {
            "error_code": self.code,
            "error_category": self.category.value,
            "severity": self.severity.value,
            "player": self.context.player,
            "operation": self.context.operation,
            "category": self.context.category_name,
        }
        return {k: v for k, v in extra.items() if v is not None}


# ─── Startup Errors ─────────────────────────────────────────────

class InvalidConfigurationError(ProgressStoreError):
    """A configuration value cannot be used to reach a backend."""
    def __init__(self, message: str, setting: str, context: ErrorContext | None = None):
        super().__init__(
            message, "INVALID_CONFIGURATION", ErrorCategory.CONFIGURATION,
            ErrorSeverity.CRITICAL, context,
        )
        self.setting = setting


class DriverUnavailableError(ProgressStoreError):
    """The DBAPI client library for the configured dialect cannot be imported."""
    def __init__(self, dialect: str, module: str, context: ErrorContext | None = None):
        super().__init__(
            f"The {dialect} driver ({module}) was not found. "
            f"Install it to use the {dialect} backend.",
            "DRIVER_UNAVAILABLE", ErrorCategory.DRIVER,
            ErrorSeverity.CRITICAL, context,
        )
        self.dialect = dialect
        self.module = module


# ─── Runtime Errors ─────────────────────────────────────────────

class DatabaseConnectionError(ProgressStoreError):
    """Transport or authentication failure while opening a connection."""
    def __init__(self, message: str, context: ErrorContext | None = None):
        super().__init__(
            f"Database connection failed: {message}",
            "CONNECTION_ERROR", ErrorCategory.CONNECTION,
            ErrorSeverity.ERROR, context,
        )


class QueryExecutionError(ProgressStoreError):
    """A read or write statement failed; absorbed by the executors."""
    def __init__(self, message: str, operation: str, context: ErrorContext | None = None):
        ctx = context or ErrorContext()
        ctx.operation = ctx.operation or operation
        super().__init__(
            message, "QUERY_EXECUTION_ERROR", ErrorCategory.QUERY,
            ErrorSeverity.WARNING, ctx,
        )
        self.operation = operation
