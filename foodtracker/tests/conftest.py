"""
Shared fixtures for the Food Tracker test suite

- FixedClock pinned to a known morning
- In-memory store and recording push delivery fakes
- SQLite-backed SqlAlchemyNotificationStore for persistence tests
"""

import pytest

from foodtracker.notifications.expiry import FixedClock
from foodtracker.notifications.store import SqlAlchemyNotificationStore
from foodtracker.shared.database import (
    close_database,
    create_database_engine,
    create_session_factory,
    drop_database,
    init_database,
)
from foodtracker.tests.fakes import NOW, InMemoryStore, RecordingDelivery


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock(NOW)


@pytest.fixture
def store() -> InMemoryStore:
    return InMemoryStore()


@pytest.fixture
def delivery() -> RecordingDelivery:
    return RecordingDelivery()


@pytest.fixture
async def session_factory(tmp_path):
    """Session factory over a fresh SQLite database file."""
    engine = create_database_engine(f"sqlite:///{tmp_path / 'foodtracker.db'}")
    await init_database(engine)
    yield create_session_factory(engine)
    await drop_database(engine)
    await close_database(engine)


@pytest.fixture
async def sql_store(session_factory) -> SqlAlchemyNotificationStore:
    return SqlAlchemyNotificationStore(session_factory)
