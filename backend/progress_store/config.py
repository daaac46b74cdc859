"""Configuration — environment-driven settings via pydantic-settings.

Invariants:
    - Credentials come from environment variables or .env (never hardcoded)
    - get_settings() is cached (lru_cache) — single instance per process
    - table_prefix only ever holds [A-Za-z0-9_] (it is concatenated into table names)

Design Decisions:
    - pydantic-settings over raw os.environ: validation and type coercion in one place
    - Defaults give a working local SQLite file out of the box
"""

import re
from functools import lru_cache
from typing import Literal

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

_PREFIX_PATTERN = re.compile(r"^[A-Za-z0-9_]*$")


class Settings(BaseSettings):
    """Progress store settings from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False)

    # Database
    database_type: Literal["sqlite", "mysql", "postgresql"] = "sqlite"
    # SQLite: file path (or ":memory:"). MySQL / PostgreSQL: host[:port]/database
    database_address: str = "data/achievements.db"
    database_user: str = "root"
    database_password: str = ""
    additional_connection_options: str = ""
    table_prefix: str = ""

    @field_validator("database_type", mode="before")
    @classmethod
    def normalise_database_type(cls, v: str) -> str:
        """Accept 'MySQL', 'PostgreSQL', 'postgres' as written in older configs."""
        if isinstance(v, str):
            v = v.strip().lower()
            if v == "postgres":
                return "postgresql"
        return v

    @field_validator("table_prefix")
    @classmethod
    def validate_table_prefix(cls, v: str) -> str:
        if not _PREFIX_PATTERN.match(v):
            raise ValueError(
                "table_prefix may only contain letters, digits and underscores",
            )
        return v

    database_pool_size: int = 5
    database_max_overflow: int = 10

    # Write dispatch
    write_pool_max_workers: int = 64
    shutdown_grace_seconds: float = 5.0

    # Presentation
    book_chronological_order: bool = True
    date_locale: str = "en"
    date_display_time: bool = False

    # Observability
    log_level: str = "INFO"
    log_format: str = "json"  # json | text | none


@lru_cache
def get_settings() -> Settings:
    return Settings()
