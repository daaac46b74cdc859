"""Root conftest — shared test configuration.

Invariants:
    - Tests never read a developer's .env or reach a real MySQL / PostgreSQL server
    - Every database-backed test gets its own SQLite file under tmp_path
"""

import os

import pytest

from progress_store.config import Settings

# Ensure tests don't accidentally point at a real server
os.environ.setdefault("DATABASE_TYPE", "sqlite")
os.environ.setdefault("DATABASE_PASSWORD", "test-password-unused")
# Records reach caplog through propagation; no stream handler needed
os.environ.setdefault("LOG_FORMAT", "none")


@pytest.fixture
def make_settings(tmp_path):
    """Build Settings for a fresh SQLite file; keyword overrides win."""
    def _make(**overrides) -> Settings:
        values = {
            "database_type": "sqlite",
            "database_address": str(tmp_path / "progress.db"),
            "write_pool_max_workers": 8,
            "shutdown_grace_seconds": 5.0,
        }
        values.update(overrides)
        return Settings(_env_file=None, **values)
    return _make


@pytest.fixture
def settings(make_settings) -> Settings:
    return make_settings()
