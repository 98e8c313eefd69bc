"""Redis output sink.

Resolves application write intents against layered defaults and sends them
to Redis as SET, INCRBY, RPUSH or LPUSH commands, immediately or in batches.
"""

from redis_sink.core import (
    FlushResult,
    FlushStatus,
    GlobalDefaults,
    ResolvedWrite,
    SiteDefaults,
    WriteIntent,
    WriteOperation,
)
from redis_sink.errors import (
    CollectorClosedError,
    FlushAbortedError,
    InvalidOperationError,
    MaterializationError,
    ResolutionError,
    SinkError,
    TransportError,
)
from redis_sink.sink import DispatchReceipt, OperationDispatcher, WriteIntentCollector
from redis_sink.store import InMemoryConnectionManager, RedisConnectionManager

__version__ = "0.1.0"

__all__ = [
    "CollectorClosedError",
    "DispatchReceipt",
    "FlushAbortedError",
    "FlushResult",
    "FlushStatus",
    "GlobalDefaults",
    "InMemoryConnectionManager",
    "InvalidOperationError",
    "MaterializationError",
    "OperationDispatcher",
    "RedisConnectionManager",
    "ResolutionError",
    "ResolvedWrite",
    "SinkError",
    "SiteDefaults",
    "TransportError",
    "WriteIntent",
    "WriteIntentCollector",
    "WriteOperation",
]
