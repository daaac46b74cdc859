"""Executors — verifies sentinel reads and fire-and-forget writes.

Invariants:
    - Failed reads return the caller's default and log the caller's context
    - Failed writes never reach the submitter
    - Shutdown waits up to the grace period, then abandons queued writes
    - Writes submitted after shutdown are dropped with a warning
"""

import logging
import threading

from sqlalchemy import text

from progress_store.core.errors import DatabaseConnectionError
from progress_store.infrastructure.database import ConnectionSupervisor
from progress_store.infrastructure.executors import ReadExecutor, WriteDispatcher


def _create_table(conn):
    conn.execute(text("CREATE TABLE t (x INTEGER)"))


# ─── Reads ──────────────────────────────────────────────────────

def test_read_returns_operation_value(supervisor):
    reader = ReadExecutor(supervisor)
    assert reader.execute_read(lambda conn: conn.execute(text("SELECT 7")).scalar(), 0, "ctx") == 7


def test_failed_read_returns_default_and_logs_context(supervisor, caplog):
    reader = ReadExecutor(supervisor)
    with caplog.at_level(logging.ERROR):
        result = reader.execute_read(
            lambda conn: conn.execute(text("SELECT * FROM missing")).all(),
            [], "SQL error while retrieving achievements",
            extra={"player": "p-1"},
        )
    assert result == []
    record = caplog.records[-1]
    assert record.context == "SQL error while retrieving achievements"
    assert record.player == "p-1"
    assert record.error_code == "QUERY_EXECUTION_ERROR"


def test_read_without_connection_returns_default(fake_backend):
    fake_backend.error = DatabaseConnectionError("refused")
    reader = ReadExecutor(ConnectionSupervisor(fake_backend))
    assert reader.execute_read(lambda conn: 1, 0, "ctx") == 0


# ─── Writes ─────────────────────────────────────────────────────

def test_write_runs_in_background(supervisor):
    writer = WriteDispatcher(supervisor, max_workers=2)
    future = writer.submit(_create_table, "ctx")

    assert writer.drain(5)
    assert future.done()
    with supervisor.connect() as conn:
        assert conn.execute(text("SELECT count(*) FROM t")).scalar() == 0
    writer.shutdown(0)


def test_failed_write_is_logged_not_raised(supervisor, caplog):
    writer = WriteDispatcher(supervisor, max_workers=2)
    with caplog.at_level(logging.ERROR):
        future = writer.submit(
            lambda conn: conn.execute(text("INSERT INTO missing VALUES (1)")),
            "SQL error while registering achievement",
        )
        assert future.result(timeout=5) is None
    assert "SQL error while registering achievement" in caplog.text
    writer.shutdown(0)


def test_pending_count_drops_to_zero(supervisor):
    writer = WriteDispatcher(supervisor, max_workers=4)
    for _ in range(10):
        writer.submit(lambda conn: conn.execute(text("SELECT 1")), "ctx")
    assert writer.drain(5)
    assert writer.pending_count == 0
    writer.shutdown(0)


def test_shutdown_abandons_writes_after_grace(supervisor, caplog):
    writer = WriteDispatcher(supervisor, max_workers=1)
    release = threading.Event()
    blocking = writer.submit(lambda conn: release.wait(5), "blocking")
    queued = writer.submit(_create_table, "queued")

    with caplog.at_level(logging.WARNING):
        writer.shutdown(0.05)
    release.set()

    assert "Some write operations were not sent to the database." in caplog.text
    assert queued.cancelled()
    blocking.result(timeout=5)


def test_submit_after_shutdown_is_dropped(supervisor, caplog):
    writer = WriteDispatcher(supervisor, max_workers=1)
    writer.shutdown(0)

    with caplog.at_level(logging.WARNING):
        assert writer.submit(_create_table, "late write") is None
    assert "Write dropped after shutdown: late write" in caplog.text


def test_row_mapping_error_returns_default(supervisor, caplog):
    reader = ReadExecutor(supervisor)

    def operation(conn):
        raise ValueError("Invalid isoformat string: 'Jan 5, 2024'")

    with caplog.at_level(logging.ERROR):
        assert reader.execute_read(operation, None, "SQL error while retrieving achievement date") is None
    assert "Invalid isoformat string" in caplog.text


def test_write_after_predecessor_runs_in_order(supervisor):
    writer = WriteDispatcher(supervisor, max_workers=4)
    release = threading.Event()
    order = []

    def first(conn):
        release.wait(5)
        order.append("first")

    head = writer.submit(first, "first")
    tail = writer.submit(lambda conn: order.append("second"), "second", after=head)
    release.set()

    assert writer.drain(5)
    assert head.done() and tail.done()
    assert order == ["first", "second"]
    writer.shutdown(0)
