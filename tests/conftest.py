"""Pytest configuration and fixtures for redis-sink tests."""

from __future__ import annotations

import pytest

from redis_sink.core.models import GlobalDefaults
from redis_sink.sink.dispatcher import OperationDispatcher
from redis_sink.store.memory import InMemoryConnectionManager, InMemoryStore

CONNECTION = "redis://localhost:6379/0"


@pytest.fixture()
def connections() -> InMemoryConnectionManager:
    """Provide a fresh in-memory connection manager."""
    return InMemoryConnectionManager()


@pytest.fixture()
def store(connections: InMemoryConnectionManager) -> InMemoryStore:
    """The in-memory store behind the default connection target."""
    return connections.get_handle(CONNECTION)


@pytest.fixture()
def dispatcher(connections: InMemoryConnectionManager) -> OperationDispatcher:
    """Dispatcher awaiting every command."""
    return OperationDispatcher(connections)


@pytest.fixture()
def defaults() -> GlobalDefaults:
    """Global defaults pointing at the default connection target."""
    return GlobalDefaults(connection=CONNECTION)


@pytest.fixture()
def batch_defaults() -> GlobalDefaults:
    """Global defaults with batching enabled."""
    return GlobalDefaults(connection=CONNECTION, send_in_batch=True)
