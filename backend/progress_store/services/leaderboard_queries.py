"""Leaderboard Queries — top list, distinct player total and rank over achievement counts.

Invariants:
    - since=None or any date at / before the epoch counts every record;
      otherwise only records with date strictly after since
    - Top list: count DESC, ties by player id ASC, at most `length` entries
    - Rank = 1 + players with a strictly greater count (ties share a rank)
    - Sentinels: [] for the top list, 0 for totals and for "rank unknown"
"""

import logging
from datetime import datetime
from uuid import UUID

from sqlalchemy import ColumnElement, Connection, distinct, func, select

from progress_store.core.domain_types import LeaderboardEntry, is_all_time
from progress_store.db.tables import ProgressTables
from progress_store.infrastructure.executors import ReadExecutor

logger = logging.getLogger(__name__)


def _naive(value: datetime) -> datetime:
    # Stored dates are naive local time
    if value.tzinfo is None:
        return value
    return value.astimezone().replace(tzinfo=None)


class LeaderboardQueries:
    """Aggregate reads over the achievements table."""

    def __init__(self, reader: ReadExecutor, tables: ProgressTables):
        self.reader = reader
        self.table = tables.achievements

    def _period(self, since: datetime | None) -> tuple[ColumnElement[bool], ...]:
        if is_all_time(since):
            return ()
        return (self.table.c.date > _naive(since),)

    def get_top_list(self, length: int, since: datetime | None = None) -> list[LeaderboardEntry]:
        if length <= 0:
            return []
        t = self.table
        total = func.count().label("total")
        stmt = (
            select(t.c.player, total)
            .where(*self._period(since))
            .group_by(t.c.player)
            .order_by(total.desc(), t.c.player.asc())
            .limit(length)
        )

        def operation(conn: Connection) -> list[LeaderboardEntry]:
            entries = []
            for player, count in conn.execute(stmt):
                try:
                    entries.append(LeaderboardEntry(UUID(player), count))
                except ValueError:
                    logger.warning(f"Skipping malformed player id '{player}' in top list")
            return entries

        return self.reader.execute_read(
            operation, [], "SQL error while retrieving top players",
        )

    def get_total_players(self, since: datetime | None = None) -> int:
        t = self.table
        stmt = select(func.count(distinct(t.c.player))).where(*self._period(since))
        return self.reader.execute_read(
            lambda conn: conn.execute(stmt).scalar_one(),
            0, "SQL error while retrieving total players",
        )

    def get_player_rank(self, player: UUID, since: datetime | None = None) -> int:
        t = self.table
        period = self._period(since)
        grouped = (
            select(func.count().label("number"))
            .select_from(t)
            .where(*period)
            .group_by(t.c.player)
            .subquery("ach_grouped_by_player")
        )
        own_count = (
            select(func.count())
            .select_from(t)
            .where(t.c.player == str(player), *period)
            .scalar_subquery()
        )
        stmt = select(func.count()).select_from(grouped).where(grouped.c.number > own_count)
        return self.reader.execute_read(
            lambda conn: conn.execute(stmt).scalar_one() + 1,
            0, "SQL error while retrieving player rank",
            extra={"player": str(player)},
        )
