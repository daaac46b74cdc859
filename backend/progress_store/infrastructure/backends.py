"""Backend Strategies — per-dialect driver bootstrap, URL construction and upsert shape.

Invariants:
    - prepare_driver() raises DriverUnavailableError, never ImportError
    - open_engine() returns a probed engine or raises DatabaseConnectionError
    - replace_statement() overwrites every non-key column on key collision
    - Engines always use pool_pre_ping (stale pooled connections are replaced on checkout)

Design Decisions:
    - One small class per dialect sharing _SQLBackend; create_backend() picks by settings.database_type
    - Address formats: SQLite takes a file path; MySQL / PostgreSQL take host[:port]/database
      (a legacy "jdbc:<dialect>://" prefix is tolerated)
"""

import importlib
import logging
from pathlib import Path
from urllib.parse import parse_qsl

from sqlalchemy import Engine, Insert, Table, create_engine, text
from sqlalchemy.dialects.mysql import insert as mysql_insert
from sqlalchemy.dialects.postgresql import insert as postgresql_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.engine import URL
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.pool import StaticPool

from progress_store.config import Settings
from progress_store.core.errors import (
    DatabaseConnectionError, DriverUnavailableError, ErrorContext,
    InvalidConfigurationError,
)

logger = logging.getLogger(__name__)


def parse_connection_options(options: str) -> dict[str, str]:
    """Parse 'a=1&b=2' (leading ? or & allowed) into URL query parameters."""
    options = (options or "").strip().lstrip("?&")
    if not options:
        return {}
    return dict(parse_qsl(options, keep_blank_values=True))


def _non_key_columns(table: Table, values: dict) -> list[str]:
    return [c.name for c in table.columns if not c.primary_key and c.name in values]


class _SQLBackend:
    """Shared engine construction; subclasses set dialect specifics."""

    name = ""
    driver_module = ""
    drivername = ""

    def __init__(self, settings: Settings):
        self.settings = settings

    def prepare_driver(self) -> None:
        try:
            importlib.import_module(self.driver_module)
        except ImportError as e:
            logger.critical(
                f"The {self.name} driver library was not found",
                extra={"dialect": self.name},
            )
            raise DriverUnavailableError(self.name, self.driver_module) from e

    def build_url(self) -> URL:
        raise NotImplementedError

    def engine_options(self) -> dict:
        return {
            "pool_size": self.settings.database_pool_size,
            "max_overflow": self.settings.database_max_overflow,
            "pool_recycle": 3600,
        }

    def open_engine(self) -> Engine:
        url = self.build_url()
        engine = create_engine(url, pool_pre_ping=True, **self.engine_options())
        try:
            with engine.connect() as conn:
                conn.execute(text("SELECT 1"))
        except SQLAlchemyError as e:
            engine.dispose()
            raise DatabaseConnectionError(
                str(getattr(e, "orig", None) or e),
                ErrorContext(debug_info={"url": url.render_as_string(hide_password=True)}),
            ) from e
        logger.info(
            f"Connected to {self.name} database at "
            f"{url.render_as_string(hide_password=True)}",
            extra={"dialect": self.name},
        )
        return engine

    def replace_statement(self, table: Table, values: dict) -> Insert:
        raise NotImplementedError


class _NetworkBackend(_SQLBackend):
    """MySQL / PostgreSQL: host[:port]/database addresses with credentials."""

    default_port = 0
    default_options: dict[str, str] = {}

    def _split_address(self) -> tuple[str, int, str]:
        address = self.settings.database_address.strip()
        if "://" in address:
            address = address.split("://", 1)[1]
        address = address.split("?", 1)[0]
        host_port, _, database = address.partition("/")
        if not host_port or not database:
            raise InvalidConfigurationError(
                f"Expected host[:port]/database, got '{self.settings.database_address}'",
                "database_address",
            )
        host, _, port = host_port.partition(":")
        if not port:
            return host, self.default_port, database
        if not port.isdigit():
            raise InvalidConfigurationError(
                f"Invalid port '{port}' in database_address", "database_address",
            )
        return host, int(port), database

    def build_url(self) -> URL:
        host, port, database = self._split_address()
        query = {**self.default_options, **parse_connection_options(
            self.settings.additional_connection_options,
        )}
        return URL.create(
            self.drivername,
            username=self.settings.database_user or None,
            password=self.settings.database_password or None,
            host=host,
            port=port,
            database=database,
            query=query,
        )


class SQLiteBackend(_SQLBackend):
    name = "sqlite"
    driver_module = "sqlite3"
    drivername = "sqlite+pysqlite"

    @property
    def in_memory(self) -> bool:
        return self.settings.database_address in ("", ":memory:")

    def build_url(self) -> URL:
        query = parse_connection_options(self.settings.additional_connection_options)
        if self.in_memory:
            return URL.create(self.drivername, database=":memory:", query=query)
        path = Path(self.settings.database_address)
        path.parent.mkdir(parents=True, exist_ok=True)
        return URL.create(self.drivername, database=str(path), query=query)

    def engine_options(self) -> dict:
        options: dict = {"connect_args": {"check_same_thread": False}}
        if self.in_memory:
            # One shared connection, otherwise every checkout sees an empty database
            options["poolclass"] = StaticPool
        return options

    def replace_statement(self, table: Table, values: dict) -> Insert:
        stmt = sqlite_insert(table).values(**values)
        updates = _non_key_columns(table, values)
        if not updates:
            return stmt.on_conflict_do_nothing()
        return stmt.on_conflict_do_update(
            index_elements=list(table.primary_key.columns),
            set_={name: stmt.excluded[name] for name in updates},
        )


class MySQLBackend(_NetworkBackend):
    name = "mysql"
    driver_module = "pymysql"
    drivername = "mysql+pymysql"
    default_port = 3306
    default_options = {"charset": "utf8mb4"}

    def replace_statement(self, table: Table, values: dict) -> Insert:
        stmt = mysql_insert(table).values(**values)
        updates = _non_key_columns(table, values) or [
            c.name for c in table.primary_key.columns
        ]
        return stmt.on_duplicate_key_update(
            {name: stmt.inserted[name] for name in updates},
        )


class PostgreSQLBackend(_NetworkBackend):
    name = "postgresql"
    driver_module = "psycopg2"
    drivername = "postgresql+psycopg2"
    default_port = 5432

    def replace_statement(self, table: Table, values: dict) -> Insert:
        stmt = postgresql_insert(table).values(**values)
        updates = _non_key_columns(table, values)
        if not updates:
            return stmt.on_conflict_do_nothing()
        return stmt.on_conflict_do_update(
            index_elements=list(table.primary_key.columns),
            set_={name: stmt.excluded[name] for name in updates},
        )


_BACKENDS: dict[str, type[_SQLBackend]] = {
    "sqlite": SQLiteBackend,
    "mysql": MySQLBackend,
    "postgresql": PostgreSQLBackend,
}


def create_backend(settings: Settings) -> _SQLBackend:
    """Pick the backend strategy named by settings.database_type."""
    try:
        backend_cls = _BACKENDS[settings.database_type]
    except KeyError:
        raise InvalidConfigurationError(
            f"Unsupported database type '{settings.database_type}'", "database_type",
        ) from None
    return backend_cls(settings)
