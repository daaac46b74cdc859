"""Achievement Queries — per-player achievement book, lookups, registration and deletion.

Invariants:
    - Keys leaving this module have legacy '' collapsed to '
    - Lookups by key match the exact key and its legacy '' form
    - Reads go through ReadExecutor (sentinel on failure), writes through WriteDispatcher
    - register_achievement stamps the date at call time, not at execution time
    - player is always a bound parameter (str(UUID)), never spliced into SQL

Design Decisions:
    - Display names resolved here (not in SQL): the resolver is an in-memory host lookup
"""

import logging
from datetime import datetime
from uuid import UUID

from sqlalchemy import Connection, ColumnElement, delete, func, or_, select

from progress_store.core.date_format import DateFormatter
from progress_store.core.domain_types import AchievementEntry
from progress_store.core.legacy_keys import collapse_doubled_quotes, lookup_variants
from progress_store.core.repository_protocols import BackendStrategy, DisplayNameResolver
from progress_store.db.tables import ProgressTables
from progress_store.infrastructure.executors import ReadExecutor, WriteDispatcher

logger = logging.getLogger(__name__)


class AchievementQueries:
    """Reads and writes against the achievements table."""

    def __init__(
        self,
        reader: ReadExecutor,
        writer: WriteDispatcher,
        tables: ProgressTables,
        backend: BackendStrategy,
        format_date: DateFormatter,
        display_names: DisplayNameResolver | None = None,
        chronological: bool = True,
    ):
        self.reader = reader
        self.writer = writer
        self.table = tables.achievements
        self.backend = backend
        self.format_date = format_date
        self.display_names = display_names if display_names is not None else {}
        self.chronological = chronological

    def _key_matches(self, key: str) -> ColumnElement[bool]:
        column = self.table.c.achievement_key
        return or_(*(column == variant for variant in lookup_variants(key)))

    def _display_name(self, key: str) -> str:
        display = self.display_names.get(key)
        if display and display.strip():
            return display
        return key

    # ─── Reads ──────────────────────────────────────────────────

    def get_player_achievements(self, player: UUID) -> list[AchievementEntry]:
        """Achievement book entries, oldest first (or newest first if not chronological)."""
        t = self.table
        order = t.c.date.asc() if self.chronological else t.c.date.desc()
        stmt = (
            select(t.c.achievement_key, t.c.message, t.c.date)
            .where(t.c.player == str(player))
            .order_by(order)
        )

        def operation(conn: Connection) -> list[AchievementEntry]:
            entries = []
            for row in conn.execute(stmt):
                key = collapse_doubled_quotes(row.achievement_key)
                entries.append(AchievementEntry(
                    self._display_name(key),
                    row.message or "",
                    self.format_date(row.date) or "",
                ))
            return entries

        return self.reader.execute_read(
            operation, [], "SQL error while retrieving achievements",
            extra={"player": str(player)},
        )

    def get_player_achievement_names(self, player: UUID) -> list[str]:
        t = self.table
        stmt = select(t.c.achievement_key).where(t.c.player == str(player))
        return self.reader.execute_read(
            lambda conn: [collapse_doubled_quotes(k) for k in conn.execute(stmt).scalars()],
            [], "SQL error while retrieving achievement names",
            extra={"player": str(player)},
        )

    def get_player_achievement_date(self, player: UUID, key: str) -> str | None:
        """Formatted reception date, or None when the player lacks the achievement."""
        t = self.table
        stmt = (
            select(t.c.date)
            .where(t.c.player == str(player), self._key_matches(key))
            .limit(1)
        )
        return self.reader.execute_read(
            lambda conn: self.format_date(conn.execute(stmt).scalar()),
            None, "SQL error while retrieving achievement date",
            extra={"player": str(player)},
        )

    def get_player_achievements_amount(self, player: UUID) -> int:
        t = self.table
        stmt = select(func.count()).select_from(t).where(t.c.player == str(player))
        return self.reader.execute_read(
            lambda conn: conn.execute(stmt).scalar_one(),
            0, "SQL error while counting player's achievements",
            extra={"player": str(player)},
        )

    def get_players_achievements_amount(self) -> dict[UUID, int]:
        """Achievement count of every player with at least one achievement."""
        t = self.table
        stmt = select(t.c.player, func.count()).group_by(t.c.player)

        def operation(conn: Connection) -> dict[UUID, int]:
            amounts = {}
            for player, count in conn.execute(stmt):
                try:
                    amounts[UUID(player)] = count
                except ValueError:
                    logger.warning(f"Skipping achievements of malformed player id '{player}'")
            return amounts

        return self.reader.execute_read(
            operation, {}, "SQL error while counting all player achievements",
        )

    def has_player_achievement(self, player: UUID, key: str) -> bool:
        t = self.table
        stmt = (
            select(t.c.achievement_key)
            .where(t.c.player == str(player), self._key_matches(key))
            .limit(1)
        )
        return self.reader.execute_read(
            lambda conn: conn.execute(stmt).first() is not None,
            False, "SQL error while checking achievement",
            extra={"player": str(player)},
        )

    # ─── Writes ─────────────────────────────────────────────────

    def register_achievement(self, player: UUID, key: str, message: str) -> None:
        """Replace-upsert (player, key) with message and the current time."""
        stmt = self.backend.replace_statement(self.table, {
            "player": str(player),
            "achievement_key": key,
            "message": message,
            "date": datetime.now(),
        })
        self.writer.submit(
            lambda conn: conn.execute(stmt),
            "SQL error while registering achievement",
            extra={"player": str(player)},
        )

    def delete_player_achievement(self, player: UUID, key: str) -> None:
        t = self.table
        stmt = delete(t).where(t.c.player == str(player), self._key_matches(key))
        self.writer.submit(
            lambda conn: conn.execute(stmt),
            "SQL error while deleting achievement",
            extra={"player": str(player)},
        )
