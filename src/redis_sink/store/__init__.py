"""Backing store handles and connection management."""

from redis_sink.store.base import ConnectionManager, StoreHandle
from redis_sink.store.memory import InMemoryConnectionManager, InMemoryStore
from redis_sink.store.redis_store import RedisConnectionManager

__all__ = [
    "ConnectionManager",
    "InMemoryConnectionManager",
    "InMemoryStore",
    "RedisConnectionManager",
    "StoreHandle",
]
