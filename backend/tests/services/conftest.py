"""Service test fixtures — an initialised ProgressDatabase on a SQLite file.

Invariants:
    - Every test gets a fresh database (tmp_path) with all tables created
    - The database is shut down after the test, draining pending writes
    - seed_achievement writes rows synchronously, bypassing the dispatcher,
      so tests control dates and legacy key spellings
"""

import uuid
from datetime import datetime

import pytest
from sqlalchemy import insert

from progress_store.services.progress_database import ProgressDatabase


@pytest.fixture
def display_names():
    return {}


@pytest.fixture
def database(settings, display_names):
    db = ProgressDatabase(settings, display_names=display_names)
    assert db.initialise()
    yield db
    db.shutdown()


@pytest.fixture
def player():
    return uuid.uuid4()


@pytest.fixture
def seed_achievement(database):
    """Insert an achievement row directly: seed(player, key, message="", date=None)."""
    def _seed(player, key, message="", date=None):
        with database.supervisor.connect() as conn:
            conn.execute(insert(database.tables.achievements).values(
                player=str(player),
                achievement_key=key,
                message=message,
                date=date or datetime.now(),
            ))
    return _seed
