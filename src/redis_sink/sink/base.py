"""Base protocol for write-intent collectors."""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

from redis_sink.core.models import FlushResult, WriteIntent

if TYPE_CHECKING:
    from redis_sink.sink.dispatcher import DispatchReceipt


@runtime_checkable
class AsyncCollector(Protocol):
    """Protocol for sinks accepting write intents from a single invocation."""

    async def submit(self, intent: WriteIntent) -> DispatchReceipt | None:
        """Accept one write intent, dispatching or buffering it."""
        ...

    async def flush(self, cancel: asyncio.Event | None = None) -> FlushResult:
        """Dispatch every buffered intent. Terminal."""
        ...

    async def __aenter__(self) -> Any: ...

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None: ...
