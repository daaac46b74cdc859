"""Statistic Queries — category amounts, the connections counter and per-category clears.

Invariants:
    - Missing rows read as 0 (amounts) or None (connection date)
    - Amount writes are full replace-upserts; monotonicity is the caller's business
    - update_and_get_connection returns the post-increment count before the write lands;
      sequential calls build on the previous in-flight count, so they see their own
      writes. Concurrent calls for one player are not atomic and can compute the same count
    - Table / column names come from the category enums only
"""

import threading
from concurrent.futures import Future
from datetime import date, datetime
from uuid import UUID

from sqlalchemy import delete, select

from progress_store.core.domain_types import (
    Category, MultipleCategory, NormalCategory,
)
from progress_store.core.repository_protocols import BackendStrategy
from progress_store.db.tables import ProgressTables
from progress_store.infrastructure.executors import ReadExecutor, WriteDispatcher


class StatisticQueries:
    """Reads and writes against the per-category statistic tables."""

    def __init__(
        self,
        reader: ReadExecutor,
        writer: WriteDispatcher,
        tables: ProgressTables,
        backend: BackendStrategy,
    ):
        self.reader = reader
        self.writer = writer
        self.tables = tables
        self.backend = backend
        # player -> (count, future) of the newest connection write not yet applied
        self._pending_connections: dict[str, tuple[int, Future]] = {}
        self._pending_lock = threading.Lock()

    # ─── Amount reads ───────────────────────────────────────────

    def get_normal_amount(self, player: UUID, category: NormalCategory) -> int:
        t = self.tables.normal(category)
        stmt = select(t.c[category.db_name]).where(t.c.player == str(player))
        return self.reader.execute_read(
            lambda conn: conn.execute(stmt).scalar() or 0,
            0, f"SQL error while retrieving {category.db_name} stats",
            extra={"player": str(player), "category": category.db_name},
        )

    def get_multiple_amount(
        self, player: UUID, category: MultipleCategory, subcategory: str,
    ) -> int:
        t = self.tables.multiple(category)
        stmt = select(t.c[category.db_name]).where(
            t.c.player == str(player),
            t.c[category.subcategory_db_name] == subcategory,
        )
        return self.reader.execute_read(
            lambda conn: conn.execute(stmt).scalar() or 0,
            0, f"SQL error while retrieving {category.db_name} stats",
            extra={"player": str(player), "category": category.db_name},
        )

    # ─── Connections ────────────────────────────────────────────

    def get_connections_amount(self, player: UUID) -> int:
        t = self.tables.connections
        stmt = select(t.c.connections).where(t.c.player == str(player))
        return self.reader.execute_read(
            lambda conn: conn.execute(stmt).scalar() or 0,
            0, "SQL error while retrieving connection statistics",
            extra={"player": str(player)},
        )

    def get_player_connection_date(self, player: UUID) -> str | None:
        """Last connection day as stored (YYYY-MM-DD), or None."""
        t = self.tables.connections
        stmt = select(t.c.date).where(t.c.player == str(player))
        return self.reader.execute_read(
            lambda conn: conn.execute(stmt).scalar(),
            None, "SQL error while retrieving connection date stats",
            extra={"player": str(player)},
        )

    def update_and_get_connection(self, player: UUID, day: str) -> int:
        """Increment the distinct-days counter; returns the new value (0 if the read failed)."""
        key = str(player)
        t = self.tables.connections
        with self._pending_lock:
            pending = self._pending_connections.get(key)
        if pending is None:
            stmt = select(t.c.connections).where(t.c.player == key)
            connections = self.reader.execute_read(
                lambda conn: (conn.execute(stmt).scalar() or 0) + 1,
                0, "SQL error while handling connection event",
                extra={"player": key},
            )
            if connections == 0:
                return 0
            previous = None
        else:
            # Previous increment still queued; the table does not show it yet
            connections = pending[0] + 1
            previous = pending[1]

        write = self.backend.replace_statement(t, {
            "player": key,
            "connections": connections,
            "date": day,
        })
        future = self.writer.submit(
            lambda conn: conn.execute(write),
            "SQL error while updating connection",
            extra={"player": key},
            after=previous,
        )
        if future is not None:
            with self._pending_lock:
                self._pending_connections[key] = (connections, future)
            future.add_done_callback(lambda f: self._settle_connection(key, f))
        return connections

    def _settle_connection(self, key: str, future: Future) -> None:
        with self._pending_lock:
            pending = self._pending_connections.get(key)
            if pending is not None and pending[1] is future:
                del self._pending_connections[key]

    def _forget_pending_connection(self, key: str) -> Future | None:
        """Drop the in-flight count; returns its write so the caller can order after it."""
        with self._pending_lock:
            pending = self._pending_connections.pop(key, None)
        return pending[1] if pending is not None else None

    # ─── Amount writes ──────────────────────────────────────────

    def update_normal_amount(self, player: UUID, category: NormalCategory, amount: int) -> None:
        previous = None
        if category is NormalCategory.CONNECTIONS:
            previous = self._forget_pending_connection(str(player))
        t = self.tables.normal(category)
        stamp = date.today().isoformat() if category is NormalCategory.CONNECTIONS else datetime.now()
        stmt = self.backend.replace_statement(t, {
            "player": str(player),
            category.db_name: amount,
            "date": stamp,
        })
        self.writer.submit(
            lambda conn: conn.execute(stmt),
            f"SQL error while updating {category.db_name} stats",
            extra={"player": str(player), "category": category.db_name},
            after=previous,
        )

    def update_multiple_amount(
        self, player: UUID, category: MultipleCategory, subcategory: str, amount: int,
    ) -> None:
        t = self.tables.multiple(category)
        stmt = self.backend.replace_statement(t, {
            "player": str(player),
            category.subcategory_db_name: subcategory,
            category.db_name: amount,
            "date": datetime.now(),
        })
        self.writer.submit(
            lambda conn: conn.execute(stmt),
            f"SQL error while updating {category.db_name} stats",
            extra={"player": str(player), "category": category.db_name},
        )

    # ─── Clears ─────────────────────────────────────────────────

    def clear_category(self, player: UUID, category: Category) -> None:
        """Delete every row of one player in one category table."""
        previous = None
        if category is NormalCategory.CONNECTIONS:
            previous = self._forget_pending_connection(str(player))
        t = self.tables.for_category(category)
        stmt = delete(t).where(t.c.player == str(player))
        self.writer.submit(
            lambda conn: conn.execute(stmt),
            f"SQL error while deleting {category.db_name}",
            extra={"player": str(player), "category": category.db_name},
            after=previous,
        )

    def clear_connection(self, player: UUID) -> None:
        self.clear_category(player, NormalCategory.CONNECTIONS)
