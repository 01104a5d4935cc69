"""Shared test fixtures for dictionary-plus."""

from datetime import datetime, timedelta, timezone

import pytest

from dictionary_plus import DictionaryActions, User


class FakeClock:
    """Clock that only moves when told to."""

    def __init__(self, start=datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)


@pytest.fixture
def actions():
    """Create an in-memory store for testing."""
    with DictionaryActions(":memory:") as a:
        yield a


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def clocked_actions(clock):
    """In-memory store driven by a FakeClock."""
    with DictionaryActions(":memory:", clock=clock) as a:
        yield a


@pytest.fixture
def alice():
    return User("alice")


@pytest.fixture
def bob():
    return User("bob")


@pytest.fixture
def actions_with_entry(actions):
    """Store with one entry 'run' pre-created."""
    entry = actions.upsert_entry("run", language="en")
    return actions, entry


@pytest.fixture
def row_count():
    """Count rows in a table of a store."""

    def _count(actions, table):
        return actions.connection.execute(
            f"SELECT COUNT(*) FROM {table}"
        ).fetchone()[0]

    return _count
