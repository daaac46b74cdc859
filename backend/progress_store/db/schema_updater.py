"""Schema Updater — the fixed startup sequence bringing any older schema up to date.

Invariants:
    - run_all() executes, once, in order: rename legacy tables → create missing
      tables → widen legacy material columns → migrate legacy dates → widen mobname
    - Every step is idempotent: a second run finds nothing to change
    - Column changes go through alembic batch operations (SQLite recreates the table)

Design Decisions:
    - alembic Operations driven by hand instead of a versions/ chain: table names
      carry a runtime prefix, and the checks inspect the live column types
"""

import logging
from typing import Callable

from alembic.migration import MigrationContext
from alembic.operations import Operations
from sqlalchemy import (
    Connection, DateTime, Engine, Integer, String, column, func, inspect,
    table, update,
)
from sqlalchemy.types import TypeEngine

from progress_store.core.domain_types import MultipleCategory
from progress_store.db.tables import MOBNAME_LENGTH, SUBCATEGORY_LENGTH, ProgressTables

logger = logging.getLogger(__name__)

_MATERIAL_CATEGORIES = (
    MultipleCategory.PLACES, MultipleCategory.BREAKS, MultipleCategory.CRAFTS,
)


def _column_type(conn: Connection, table_name: str, column_name: str) -> TypeEngine | None:
    inspector = inspect(conn)
    if not inspector.has_table(table_name):
        return None
    for col in inspector.get_columns(table_name):
        if col["name"] == column_name:
            return col["type"]
    return None


class SchemaUpdater:
    """Runs the five schema steps against one engine and table set."""

    def __init__(self, engine: Engine, tables: ProgressTables):
        self.engine = engine
        self.tables = tables

    def run_all(self) -> None:
        self.rename_existing_tables()
        self.initialise_tables()
        self.update_old_db_to_material()
        self.update_old_db_to_dates()
        self.update_old_db_mobname_size()

    # ─── Steps ──────────────────────────────────────────────────

    def rename_existing_tables(self) -> None:
        """With a prefix configured, adopt unprefixed tables from older installs."""
        if not self.tables.prefix:
            return
        with self.engine.begin() as conn:
            existing = set(inspect(conn).get_table_names())
            ops = Operations(MigrationContext.configure(conn))
            for tbl in self.tables.metadata.sorted_tables:
                legacy = self.tables.unprefixed_name(tbl)
                if legacy in existing and tbl.name not in existing:
                    ops.rename_table(legacy, tbl.name)
                    logger.info(f"Renamed table {legacy} to {tbl.name}")

    def initialise_tables(self) -> None:
        self.tables.metadata.create_all(self.engine, checkfirst=True)

    def update_old_db_to_material(self) -> None:
        """Block / item discriminators were integer ids before material names."""
        for category in _MATERIAL_CATEGORIES:
            self._alter_column_if(
                self.tables.multiple(category).name,
                category.subcategory_db_name,
                lambda t: isinstance(t, Integer),
                String(SUBCATEGORY_LENGTH),
            )

    def update_old_db_to_dates(self) -> None:
        """achievements.date was stored as text (or a bare DATE) by older releases."""
        name = self.tables.achievements.name
        if self.engine.dialect.name == "sqlite":
            # SQLite keeps the text as-is; only the layout has to parse as DateTime
            self._pad_sqlite_legacy_dates(name)
            return
        self._alter_column_if(
            name, "date",
            lambda t: not isinstance(t, DateTime),
            DateTime(),
            postgresql_using="\"date\"::timestamp",
        )

    def update_old_db_mobname_size(self) -> None:
        """kills.mobname was VARCHAR(32); longer entity names need 51."""
        self._alter_column_if(
            self.tables.multiple(MultipleCategory.KILLS).name,
            MultipleCategory.KILLS.subcategory_db_name,
            lambda t: isinstance(t, String) and t.length is not None and t.length < MOBNAME_LENGTH,
            String(MOBNAME_LENGTH),
        )

    # ─── Helpers ────────────────────────────────────────────────

    def _alter_column_if(
        self,
        table_name: str,
        column_name: str,
        is_legacy: Callable[[TypeEngine], bool],
        new_type: TypeEngine,
        **dialect_kw,
    ) -> bool:
        with self.engine.begin() as conn:
            current = _column_type(conn, table_name, column_name)
            if current is None or not is_legacy(current):
                return False
            kw = {k: v for k, v in dialect_kw.items()
                  if k.startswith(f"{conn.dialect.name}_")}
            ops = Operations(MigrationContext.configure(conn))
            with ops.batch_alter_table(table_name) as batch:
                batch.alter_column(
                    column_name, type_=new_type, existing_type=current, **kw,
                )
        logger.info(f"Migrated {table_name}.{column_name} from {current} to {new_type}")
        return True

    def _pad_sqlite_legacy_dates(self, table_name: str) -> None:
        # 'YYYY-MM-DD' text must become 'YYYY-MM-DD HH:MM:SS' to parse as DateTime
        legacy = table(table_name, column("date", String))
        with self.engine.begin() as conn:
            if _column_type(conn, table_name, "date") is None:
                return
            conn.execute(
                update(legacy)
                .where(func.length(legacy.c.date) == 10)
                .values(date=legacy.c.date.concat(" 00:00:00")),
            )
