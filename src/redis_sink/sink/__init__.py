"""Write-intent collection and dispatch."""

from redis_sink.sink.base import AsyncCollector
from redis_sink.sink.collector import CollectorState, WriteIntentCollector
from redis_sink.sink.dispatcher import DispatchReceipt, OperationDispatcher

__all__ = [
    "AsyncCollector",
    "CollectorState",
    "DispatchReceipt",
    "OperationDispatcher",
    "WriteIntentCollector",
]
