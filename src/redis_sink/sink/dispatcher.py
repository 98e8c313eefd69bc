"""Dispatch of resolved writes to backing store commands.

Each resolved write maps to exactly one store command:

- SET_KEY_VALUE: ``SET key value [PX ttl_ms]``
- INCREMENT_VALUE: ``INCRBY key amount``
- LIST_RIGHT_PUSH: ``RPUSH key value``
- LIST_LEFT_PUSH: ``LPUSH key value``

Commands may be sent fire-and-forget. Every dispatch returns a
DispatchReceipt so failures stay observable either way.
"""

from __future__ import annotations

import asyncio
import functools
import json
import logging
import math
from datetime import timedelta
from typing import Any

from redis.exceptions import RedisError

from redis_sink.core.models import ResolvedWrite, WriteOperation
from redis_sink.errors import InvalidOperationError, TransportError
from redis_sink.store.base import ConnectionManager, StoreHandle

logger = logging.getLogger(__name__)

# ConnectionError and TimeoutError are OSError subclasses.
TRANSPORT_ERRORS: tuple[type[BaseException], ...] = (RedisError, OSError)

_DISPATCHABLE = frozenset(
    {
        WriteOperation.SET_KEY_VALUE,
        WriteOperation.INCREMENT_VALUE,
        WriteOperation.LIST_RIGHT_PUSH,
        WriteOperation.LIST_LEFT_PUSH,
    }
)


class DispatchReceipt:
    """Future-backed outcome of a single dispatch.

    A receipt is returned for every dispatch. For awaited dispatches it is
    already done; for fire-and-forget dispatches it completes when the store
    acknowledges or fails the command.
    """

    def __init__(self, write: ResolvedWrite, future: asyncio.Future[Any]) -> None:
        self._write = write
        self._future = future

    @property
    def key(self) -> str:
        """Destination key of the write."""
        return self._write.key

    @property
    def operation(self) -> WriteOperation:
        """Operation that was dispatched."""
        return self._write.operation

    def done(self) -> bool:
        """True once the store has acknowledged or failed the command."""
        return self._future.done()

    def cancelled(self) -> bool:
        """True if the command was cancelled before the store answered."""
        return self._future.cancelled()

    def exception(self) -> BaseException | None:
        """Failure of a completed dispatch, or None if pending or successful."""
        if not self._future.done() or self._future.cancelled():
            return None
        return self._future.exception()

    async def wait(self) -> Any:
        """Wait for the store reply.

        Returns:
            The reply of the store command (for example the new counter value).

        Raises:
            TransportError: If the store command failed.
        """
        return await asyncio.shield(self._future)

    def __repr__(self) -> str:
        state = "done" if self.done() else "pending"
        return f"DispatchReceipt(key={self.key!r}, operation={self.operation.value}, {state})"


class OperationDispatcher:
    """Sends resolved writes to the store handle of their connection target.

    Args:
        connections: Connection manager resolving connection targets to
            store handles. Handles are looked up per dispatch; caching is the
            manager's concern.
        fire_and_forget: When True, SET and list-push commands are scheduled
            without waiting for the store to acknowledge them. INCRBY is
            always awaited.

    Example:
        ```python
        dispatcher = OperationDispatcher(RedisConnectionManager(), fire_and_forget=True)
        receipt = await dispatcher.dispatch(write)
        ...
        await dispatcher.join()
        ```
    """

    def __init__(self, connections: ConnectionManager, fire_and_forget: bool = False) -> None:
        self._connections = connections
        self._fire_and_forget = fire_and_forget
        self._in_flight: set[asyncio.Task[Any]] = set()

    @property
    def fire_and_forget(self) -> bool:
        """Whether SET and list pushes skip waiting for acknowledgement."""
        return self._fire_and_forget

    @property
    def in_flight(self) -> int:
        """Number of fire-and-forget commands not yet completed."""
        return len(self._in_flight)

    async def dispatch(self, write: ResolvedWrite, *, wait: bool = False) -> DispatchReceipt:
        """Issue the store command for a resolved write.

        Args:
            write: The write to send.
            wait: Await acknowledgement even when fire-and-forget is enabled.

        Returns:
            A receipt for the command.

        Raises:
            InvalidOperationError: If the operation is UNSET or unknown.
            TransportError: If an awaited store command fails.
        """
        if write.operation not in _DISPATCHABLE:
            raise InvalidOperationError(
                f"Cannot dispatch operation {write.operation.value!r} for key {write.key!r}"
            )

        handle = self._connections.get_handle(write.connection_target)

        if (
            self._fire_and_forget
            and not wait
            and write.operation is not WriteOperation.INCREMENT_VALUE
        ):
            task = asyncio.create_task(self._execute(handle, write))
            self._in_flight.add(task)
            task.add_done_callback(functools.partial(self._on_fire_and_forget_done, write))
            return DispatchReceipt(write, task)

        reply = await self._execute(handle, write)
        future: asyncio.Future[Any] = asyncio.get_running_loop().create_future()
        future.set_result(reply)
        return DispatchReceipt(write, future)

    async def join(self) -> None:
        """Wait until every fire-and-forget command has completed.

        Failures are not raised here; they are logged and kept on receipts.
        """
        if self._in_flight:
            await asyncio.gather(*self._in_flight, return_exceptions=True)

    async def _execute(self, handle: StoreHandle, write: ResolvedWrite) -> Any:
        try:
            match write.operation:
                case WriteOperation.SET_KEY_VALUE:
                    reply = await handle.set(
                        write.key, write.value, px=expiry_milliseconds(write.time_to_live)
                    )
                case WriteOperation.INCREMENT_VALUE:
                    reply = await handle.incrby(write.key, write.increment_amount)
                case WriteOperation.LIST_RIGHT_PUSH:
                    reply = await handle.rpush(write.key, write.value)
                case WriteOperation.LIST_LEFT_PUSH:
                    reply = await handle.lpush(write.key, write.value)
        except TRANSPORT_ERRORS as exc:
            raise TransportError(
                f"{write.operation.value} failed for key {write.key!r}: {exc}",
                key=write.key,
            ) from exc

        logger.debug(
            json.dumps(
                {
                    "event": "write_dispatched",
                    "key": write.key,
                    "operation": write.operation.value,
                }
            )
        )
        return reply

    def _on_fire_and_forget_done(self, write: ResolvedWrite, task: asyncio.Task[Any]) -> None:
        self._in_flight.discard(task)
        if task.cancelled():
            logger.error(
                json.dumps(
                    {
                        "event": "fire_and_forget_cancelled",
                        "key": write.key,
                        "operation": write.operation.value,
                    }
                )
            )
            return
        exc = task.exception()
        if exc is not None:
            logger.error(
                json.dumps(
                    {
                        "event": "fire_and_forget_failed",
                        "key": write.key,
                        "error": str(exc),
                    }
                )
            )


def expiry_milliseconds(time_to_live: timedelta | None) -> int | None:
    """Return the TTL as whole milliseconds for ``SET ... PX``, or None for no expiry.

    Sub-millisecond remainders round up so a positive TTL never becomes zero.
    """
    if time_to_live is None or time_to_live <= timedelta(0):
        return None
    return max(1, math.ceil(time_to_live / timedelta(milliseconds=1)))
