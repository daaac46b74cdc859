"""Infrastructure test fixtures — fake backend over an in-memory SQLite engine.

Invariants:
    - FakeBackend.open_engine counts calls, so tests can assert laziness
    - Engines use StaticPool: every checkout sees the same in-memory database
"""

import pytest
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool

from progress_store.infrastructure.database import ConnectionSupervisor


class FakeBackend:
    name = "fake"

    def __init__(self, error: Exception | None = None):
        self.error = error
        self.opened = 0

    def prepare_driver(self) -> None:
        pass

    def open_engine(self):
        self.opened += 1
        if self.error is not None:
            raise self.error
        return create_engine(
            "sqlite://", poolclass=StaticPool,
            connect_args={"check_same_thread": False},
        )

    def replace_statement(self, table, values):
        raise NotImplementedError


@pytest.fixture
def fake_backend():
    return FakeBackend()


@pytest.fixture
def supervisor(fake_backend):
    sup = ConnectionSupervisor(fake_backend)
    yield sup
    sup.shutdown(0)
