"""Executors — synchronous reads and fire-and-forget writes over the connection supervisor.

Invariants:
    - execute_read runs on the calling thread and returns either the operation's
      value or the caller's sentinel default; it never raises
    - submit() never blocks beyond pool submission and never raises
    - Failures inside a write are logged with the caller's context and dropped
    - No ordering between writes unless submit() names a predecessor (`after`)

Design Decisions:
    - ThreadPoolExecutor grows on demand and reuses idle workers up to
      write_pool_max_workers; queued work beyond that waits, it is not rejected
    - Pending futures tracked in a set so shutdown can drain with a deadline
"""

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor, wait
from typing import Callable, TypeVar

from sqlalchemy import Connection

from progress_store.core.errors import ProgressStoreError, QueryExecutionError
from progress_store.infrastructure.database import ConnectionSupervisor
from progress_store.infrastructure.observability import WRITE_WORKER_PREFIX

logger = logging.getLogger(__name__)

T = TypeVar("T")

ReadOperation = Callable[[Connection], T]
WriteOperation = Callable[[Connection], None]


def _log_failure(context: str, error: Exception, extra: dict | None) -> None:
    wrapped = error if isinstance(error, ProgressStoreError) else QueryExecutionError(
        str(error), context,
    )
    fields = {**wrapped.to_log_extra(), **(extra or {}), "context": context}
    logger.error(f"{context}: {error}", extra=fields, exc_info=error)


class ReadExecutor:
    """Runs read operations inline and absorbs their failures."""

    def __init__(self, supervisor: ConnectionSupervisor):
        self.supervisor = supervisor

    def execute_read(
        self,
        operation: ReadOperation[T],
        default: T,
        context: str,
        extra: dict | None = None,
    ) -> T:
        try:
            with self.supervisor.connect() as conn:
                return operation(conn)
        except Exception as e:
            # Read boundary: row mapping errors get the sentinel too
            _log_failure(context, e, extra)
            return default


class WriteDispatcher:
    """Fire-and-forget write execution on a growable worker pool."""

    def __init__(self, supervisor: ConnectionSupervisor, max_workers: int = 64):
        self.supervisor = supervisor
        self._pool = ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix=WRITE_WORKER_PREFIX,
        )
        self._pending: set[Future] = set()
        self._lock = threading.Lock()
        self._closed = False

    @property
    def pending_count(self) -> int:
        with self._lock:
            return len(self._pending)

    def _run(
        self,
        operation: WriteOperation,
        context: str,
        extra: dict | None,
        after: Future | None,
    ) -> None:
        if after is not None:
            # Cancelled or failed predecessors do not block
            wait((after,))
        try:
            with self.supervisor.connect() as conn:
                operation(conn)
        except Exception as e:
            # Worker boundary: nothing reaches the submitter
            _log_failure(context, e, extra)

    def _forget(self, future: Future) -> None:
        with self._lock:
            self._pending.discard(future)

    def submit(
        self,
        operation: WriteOperation,
        context: str,
        extra: dict | None = None,
        after: Future | None = None,
    ) -> Future | None:
        """Queue a write; returns its future, or None if it was dropped.

        With `after`, the write starts only once that earlier write has finished.
        """
        with self._lock:
            if self._closed:
                logger.warning(
                    f"Write dropped after shutdown: {context}",
                    extra={"context": context},
                )
                return None
            future = self._pool.submit(self._run, operation, context, extra, after)
            self._pending.add(future)
        future.add_done_callback(self._forget)
        return future

    def drain(self, timeout: float | None = None) -> bool:
        """Wait for in-flight writes; True if none remain."""
        with self._lock:
            pending = set(self._pending)
        if not pending:
            return True
        _, not_done = wait(pending, timeout=timeout)
        return not not_done

    def shutdown(self, grace_seconds: float = 5.0) -> None:
        """Stop accepting writes, wait up to grace_seconds, abandon the rest."""
        with self._lock:
            self._closed = True
        try:
            if not self.drain(grace_seconds):
                logger.warning(
                    "Some write operations were not sent to the database.",
                    extra={"pending_writes": self.pending_count},
                )
        finally:
            self._pool.shutdown(wait=False, cancel_futures=True)
