"""Shared fixtures for the bio bricks tests."""

import pytest

from brick_core.engine import ConversionEngine
from brick_core.store import InMemoryStore, PersistenceUnavailable, SQLStore


class FailingStore:
    """Store whose every read and write fails"""

    def __init__(self):
        self.attempts = 0

    def get(self, key):
        self.attempts += 1
        raise PersistenceUnavailable("store offline")

    def set(self, key, value):
        self.attempts += 1
        raise PersistenceUnavailable("store offline")


@pytest.fixture
def engine():
    """Engine with canonical defaults and no store."""
    return ConversionEngine()


@pytest.fixture
def memory_store():
    return InMemoryStore()


@pytest.fixture
def stored_engine(memory_store):
    """Engine auto-saving into an in-memory store."""
    return ConversionEngine(store=memory_store)


@pytest.fixture
def failing_store():
    return FailingStore()


@pytest.fixture
def sql_store():
    """SQLStore on a private in-memory SQLite database."""
    store = SQLStore("sqlite://")
    assert store.migrate()
    yield store
    store.engine.dispose()
