"""Progress Database — the store's single entry point: startup, query catalog, shutdown.

Invariants:
    - initialise() applies the logging settings, then runs driver bootstrap →
      connection → schema updater exactly once
    - initialise() never raises; failure is reported by its return value and load_failed
    - Every catalog method is either a synchronous read (sentinel on failure) or a
      fire-and-forget write; none raises during normal operation
    - shutdown() drains writes for shutdown_grace_seconds, then closes the pool

Design Decisions:
    - Catalog split across three query classes; this facade only wires and delegates
    - Host supplies the display-name lookup (any object with .get(key))
"""

import logging
from datetime import datetime
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError

from progress_store.config import Settings, get_settings
from progress_store.core.date_format import DateFormatter
from progress_store.core.domain_types import (
    AchievementEntry, Category, ConnectionState, LeaderboardEntry,
    MultipleCategory, NormalCategory,
)
from progress_store.core.errors import ProgressStoreError
from progress_store.core.repository_protocols import BackendStrategy, DisplayNameResolver
from progress_store.db.schema_updater import SchemaUpdater
from progress_store.db.tables import ProgressTables
from progress_store.infrastructure.backends import create_backend
from progress_store.infrastructure.database import ConnectionSupervisor
from progress_store.infrastructure.executors import ReadExecutor, WriteDispatcher
from progress_store.infrastructure.observability import setup_logging
from progress_store.services.achievement_queries import AchievementQueries
from progress_store.services.leaderboard_queries import LeaderboardQueries
from progress_store.services.statistic_queries import StatisticQueries

logger = logging.getLogger(__name__)


class ProgressDatabase:
    """Wires backend, supervisor, executors and query catalog for one configuration."""

    def __init__(
        self,
        settings: Settings | None = None,
        display_names: DisplayNameResolver | None = None,
        backend: BackendStrategy | None = None,
    ):
        self.settings = settings or get_settings()
        self.backend = backend or create_backend(self.settings)
        self.tables = ProgressTables(self.settings.table_prefix)
        self.supervisor = ConnectionSupervisor(self.backend)
        self.reader = ReadExecutor(self.supervisor)
        self.writer = WriteDispatcher(self.supervisor, self.settings.write_pool_max_workers)
        self.supervisor.attach_dispatcher(self.writer)

        format_date = DateFormatter(self.settings.date_locale, self.settings.date_display_time)
        self.achievements = AchievementQueries(
            self.reader, self.writer, self.tables, self.backend, format_date,
            display_names, self.settings.book_chronological_order,
        )
        self.leaderboard = LeaderboardQueries(self.reader, self.tables)
        self.statistics = StatisticQueries(self.reader, self.writer, self.tables, self.backend)

    # ─── Lifecycle ──────────────────────────────────────────────

    @property
    def load_failed(self) -> bool:
        return self.supervisor.load_failed

    @property
    def state(self) -> ConnectionState:
        return self.supervisor.state

    def initialise(self) -> bool:
        """Bootstrap the driver, connect and update the schema. False aborts host startup."""
        setup_logging(self.settings.log_level, self.settings.log_format)
        logger.info("Initialising database...", extra={"dialect": self.backend.name})
        try:
            self.backend.prepare_driver()
        except ProgressStoreError as e:
            logger.critical(e.message, extra=e.to_log_extra())
            self.supervisor.load_failed = True
            return False

        engine = self.supervisor.get_engine()
        if engine is None:
            logger.critical(
                "Could not establish database connection. "
                "Please verify your settings in the configuration file.",
            )
            return False

        try:
            SchemaUpdater(engine, self.tables).run_all()
        except SQLAlchemyError as e:
            logger.critical(f"Error while updating database schema: {e}", exc_info=True)
            self.supervisor.load_failed = True
            return False
        logger.info("Database initialised", extra={"dialect": self.backend.name})
        return True

    def shutdown(self) -> None:
        self.supervisor.shutdown(self.settings.shutdown_grace_seconds)

    def wait_for_writes(self, timeout: float | None = None) -> bool:
        """Block until dispatched writes finished; False if timeout expired first."""
        return self.writer.drain(timeout)

    def health_check(self) -> bool:
        return self.supervisor.health_check()

    # ─── Achievements ───────────────────────────────────────────

    def get_player_achievements(self, player: UUID) -> list[AchievementEntry]:
        return self.achievements.get_player_achievements(player)

    def get_player_achievement_names(self, player: UUID) -> list[str]:
        return self.achievements.get_player_achievement_names(player)

    def get_player_achievement_date(self, player: UUID, key: str) -> str | None:
        return self.achievements.get_player_achievement_date(player, key)

    def get_player_achievements_amount(self, player: UUID) -> int:
        return self.achievements.get_player_achievements_amount(player)

    def get_players_achievements_amount(self) -> dict[UUID, int]:
        return self.achievements.get_players_achievements_amount()

    def has_player_achievement(self, player: UUID, key: str) -> bool:
        return self.achievements.has_player_achievement(player, key)

    def register_achievement(self, player: UUID, key: str, message: str) -> None:
        self.achievements.register_achievement(player, key, message)

    def delete_player_achievement(self, player: UUID, key: str) -> None:
        self.achievements.delete_player_achievement(player, key)

    # ─── Leaderboard ────────────────────────────────────────────

    def get_top_list(self, length: int, since: datetime | None = None) -> list[LeaderboardEntry]:
        return self.leaderboard.get_top_list(length, since)

    def get_total_players(self, since: datetime | None = None) -> int:
        return self.leaderboard.get_total_players(since)

    def get_player_rank(self, player: UUID, since: datetime | None = None) -> int:
        return self.leaderboard.get_player_rank(player, since)

    # ─── Statistics ─────────────────────────────────────────────

    def get_normal_amount(self, player: UUID, category: NormalCategory) -> int:
        return self.statistics.get_normal_amount(player, category)

    def get_multiple_amount(
        self, player: UUID, category: MultipleCategory, subcategory: str,
    ) -> int:
        return self.statistics.get_multiple_amount(player, category, subcategory)

    def update_normal_amount(self, player: UUID, category: NormalCategory, amount: int) -> None:
        self.statistics.update_normal_amount(player, category, amount)

    def update_multiple_amount(
        self, player: UUID, category: MultipleCategory, subcategory: str, amount: int,
    ) -> None:
        self.statistics.update_multiple_amount(player, category, subcategory, amount)

    def get_connections_amount(self, player: UUID) -> int:
        return self.statistics.get_connections_amount(player)

    def get_player_connection_date(self, player: UUID) -> str | None:
        return self.statistics.get_player_connection_date(player)

    def update_and_get_connection(self, player: UUID, day: str) -> int:
        return self.statistics.update_and_get_connection(player, day)

    def clear_connection(self, player: UUID) -> None:
        self.statistics.clear_connection(player)

    def clear_category(self, player: UUID, category: Category) -> None:
        self.statistics.clear_category(player, category)
