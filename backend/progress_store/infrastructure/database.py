"""Connection Supervisor — owns the shared engine (connection pool) and its lifecycle.

Invariants:
    - One engine reference per supervisor, replaced only through _compare_and_set
    - A caller that loses the install race disposes its redundant engine
    - Construction failures are logged and flip load_failed; get_engine() then returns None
    - connect() raises DatabaseConnectionError (absorbed by the executors), never a driver error
    - CLOSED is terminal: shutdown() is the only way in, nothing leads out

Design Decisions:
    - Engine construction happens outside the lock; the lock only guards the swap
    - Liveness of individual connections is delegated to pool_pre_ping
    - Shutdown drains the write dispatcher first, then disposes the engine unconditionally
"""

import logging
import threading
from contextlib import contextmanager
from typing import TYPE_CHECKING, Iterator

from sqlalchemy import Connection, Engine, text
from sqlalchemy.exc import SQLAlchemyError

from progress_store.core.domain_types import ConnectionState
from progress_store.core.errors import (
    DatabaseConnectionError, ErrorCategory, ProgressStoreError,
)
from progress_store.core.repository_protocols import BackendStrategy

if TYPE_CHECKING:
    from progress_store.infrastructure.executors import WriteDispatcher

logger = logging.getLogger(__name__)


class ConnectionSupervisor:
    """Creates, validates and atomically replaces the engine shared by reads and writes."""

    def __init__(self, backend: BackendStrategy):
        self.backend = backend
        self.load_failed = False
        self._engine: Engine | None = None
        self._state = ConnectionState.UNINITIALIZED
        self._swap_lock = threading.Lock()
        self._dispatcher: "WriteDispatcher | None" = None

    @property
    def state(self) -> ConnectionState:
        return self._state

    def attach_dispatcher(self, dispatcher: "WriteDispatcher") -> None:
        """Register the write dispatcher drained by shutdown()."""
        self._dispatcher = dispatcher

    def _compare_and_set(self, expected: Engine | None, new: Engine) -> bool:
        with self._swap_lock:
            if self._engine is not expected or self._state is ConnectionState.CLOSED:
                return False
            self._engine = new
            self._state = ConnectionState.OPEN
            return True

    def get_engine(self) -> Engine | None:
        """Return the installed engine, building one if none is held."""
        current = self._engine
        if current is not None or self._state is ConnectionState.CLOSED:
            return current
        try:
            replacement = self.backend.open_engine()
        except ProgressStoreError as e:
            logger.error(
                f"Error while attempting to retrieve connection to database: {e.message}",
                extra=e.to_log_extra(),
            )
            self.load_failed = True
            return None
        if not self._compare_and_set(current, replacement):
            replacement.dispose()
        return self._engine

    @contextmanager
    def connect(self) -> Iterator[Connection]:
        """Check a connection out of the pool inside a transaction."""
        if self._state is ConnectionState.CLOSED:
            raise DatabaseConnectionError("connection supervisor is shut down")
        engine = self.get_engine()
        if engine is None:
            raise DatabaseConnectionError("no database connection available")
        with engine.begin() as conn:
            yield conn

    def health_check(self) -> bool:
        """Check database connectivity."""
        try:
            with self.connect() as conn:
                conn.execute(text("SELECT 1"))
            return True
        except (SQLAlchemyError, ProgressStoreError) as e:
            logger.error(f"DB health check failed: {e}")
            return False

    def shutdown(self, grace_seconds: float = 5.0) -> None:
        """Drain pending writes for up to grace_seconds, then close the pool."""
        try:
            if self._dispatcher is not None:
                self._dispatcher.shutdown(grace_seconds)
        except KeyboardInterrupt:
            logger.error(
                "Error awaiting for pool to terminate its tasks.",
                extra={
                    "error_code": "SHUTDOWN_INTERRUPTED",
                    "error_category": ErrorCategory.INTERRUPTED.value,
                },
            )
            raise
        finally:
            self._close()

    def _close(self) -> None:
        with self._swap_lock:
            engine = self._engine
            self._engine = None
            self._state = ConnectionState.CLOSED
        if engine is None:
            return
        try:
            engine.dispose()
        except SQLAlchemyError as e:
            logger.error(f"Error while closing connection to database: {e}", exc_info=True)
