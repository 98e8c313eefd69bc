"""Write-intent collector with immediate and batched delivery."""

from __future__ import annotations

import asyncio
import json
import logging
from enum import Enum
from typing import Any, Self

from redis_sink.core.materialize import materialize
from redis_sink.core.merge import merge_flag, resolve_write
from redis_sink.core.models import (
    FlushResult,
    FlushStatus,
    GlobalDefaults,
    ResolvedWrite,
    SiteDefaults,
    WriteIntent,
)
from redis_sink.errors import CollectorClosedError, FlushAbortedError, TransportError
from redis_sink.sink.dispatcher import DispatchReceipt, OperationDispatcher

logger = logging.getLogger(__name__)


class CollectorState(Enum):
    """Lifecycle state of a collector."""

    OPEN = "open"
    FLUSHING = "flushing"
    CLOSED = "closed"


class WriteIntentCollector:
    """Collects write intents from one invocation and sends them to the store.

    Each submitted intent is merged with the site and global defaults and its
    payload is materialized straight away, so malformed intents fail at
    ``submit`` and never reach the store. Depending on the effective
    ``send_in_batch`` flag the write is then either dispatched immediately or
    buffered until ``flush``.

    ``flush`` drains the buffer in submission order, one write at a time. It
    is terminal: afterwards the collector is CLOSED and rejects further use.
    A flush stops early in two cases:

    - the cancel event is set (checked before each write); the remaining
      writes are dropped and the result reports CANCELLED;
    - a store command fails; the remaining writes are dropped and
      FlushAbortedError is raised with the partial result attached.

    Writes already sent are never rolled back. With a fire-and-forget
    dispatcher in immediate mode, ``flush`` also waits for the writes this
    collector left in flight, so a clean close means every write was
    acknowledged.

    A collector is owned by a single invocation and is not safe to share.

    Args:
        dispatcher: Dispatcher used to send writes to the store.
        site: Defaults of the binding site this collector serves.
        defaults: Process-wide defaults.

    Example:
        ```python
        async with WriteIntentCollector(dispatcher, site=SiteDefaults(key="events")) as out:
            await out.submit(WriteIntent.of(obj={"type": "signup"},
                                            operation=WriteOperation.LIST_RIGHT_PUSH))
        ```
    """

    def __init__(
        self,
        dispatcher: OperationDispatcher,
        site: SiteDefaults | None = None,
        defaults: GlobalDefaults | None = None,
    ) -> None:
        self._dispatcher = dispatcher
        self._site = site or SiteDefaults()
        self._defaults = defaults or GlobalDefaults()
        self._buffer: list[ResolvedWrite] = []
        self._unacknowledged: list[DispatchReceipt] = []
        self._state = CollectorState.OPEN

    @property
    def state(self) -> CollectorState:
        """Current lifecycle state."""
        return self._state

    @property
    def pending(self) -> int:
        """Number of buffered writes awaiting flush."""
        return len(self._buffer)

    @property
    def unacknowledged(self) -> int:
        """Number of fire-and-forget writes sent by this collector and not yet settled."""
        return len(self._unacknowledged)

    @property
    def send_in_batch(self) -> bool:
        """Effective batching flag (site override, else global)."""
        return merge_flag(self._site.send_in_batch, self._defaults.send_in_batch)

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Flush on clean exit; discard buffered writes if the body raised."""
        if self._state is not CollectorState.OPEN:
            return

        if exc_type is None:
            await self.flush()
            return

        if self._buffer:
            logger.warning(
                json.dumps(
                    {
                        "event": "collector_discarded",
                        "dropped": len(self._buffer),
                        "reason": exc_type.__name__,
                    }
                )
            )
        self._buffer.clear()
        self._state = CollectorState.CLOSED

        if self._unacknowledged:
            # Failures are logged by the dispatcher; settle so none are lost at shutdown.
            await asyncio.gather(
                *(receipt.wait() for receipt in self._unacknowledged), return_exceptions=True
            )
            self._unacknowledged.clear()

    async def submit(self, intent: WriteIntent) -> DispatchReceipt | None:
        """Resolve an intent and dispatch or buffer it.

        Args:
            intent: The write requested by the caller.

        Returns:
            The dispatch receipt in immediate mode, None when buffered.

        Raises:
            CollectorClosedError: If the collector is no longer open.
            ResolutionError: If no layer supplies a destination key.
            MaterializationError: If the payload cannot be serialized.
            TransportError: If an immediate store command fails.
        """
        if self._state is not CollectorState.OPEN:
            raise CollectorClosedError(f"Cannot submit to a {self._state.value} collector")

        value = materialize(intent.payload)
        write = resolve_write(intent, self._site, self._defaults, value)

        if self.send_in_batch:
            self._buffer.append(write)
            logger.debug(
                json.dumps(
                    {
                        "event": "write_buffered",
                        "key": write.key,
                        "operation": write.operation.value,
                        "pending": len(self._buffer),
                    }
                )
            )
            return None

        receipt = await self._dispatcher.dispatch(write)
        if not receipt.done():
            self._unacknowledged.append(receipt)
        return receipt

    async def flush(self, cancel: asyncio.Event | None = None) -> FlushResult:
        """Settle outstanding fire-and-forget writes, then dispatch the buffer in order.

        Fire-and-forget writes this collector sent in immediate mode are
        awaited first and count towards the result. A failed or cancelled
        one aborts the flush like a failed buffered write.

        Args:
            cancel: Cooperative cancel signal, checked before each buffered
                write. A write already in flight always completes.

        Returns:
            The flush outcome; ``status`` is CANCELLED when cut short.

        Raises:
            CollectorClosedError: If the collector was already flushed.
            FlushAbortedError: On the first failed store command.
        """
        if self._state is not CollectorState.OPEN:
            raise CollectorClosedError(f"Cannot flush a {self._state.value} collector")

        self._state = CollectorState.FLUSHING
        receipts = list(self._unacknowledged)
        total = len(receipts) + len(self._buffer)
        dispatched = 0
        status = FlushStatus.COMPLETED

        try:
            # Fire-and-forget writes are already in flight, so cancel does not apply.
            for receipt in receipts:
                try:
                    await self._settle(receipt)
                except TransportError as exc:
                    raise self._abort(total, dispatched, receipt.key, exc) from exc
                dispatched += 1

            for write in self._buffer:
                if cancel is not None and cancel.is_set():
                    status = FlushStatus.CANCELLED
                    break

                try:
                    await self._dispatcher.dispatch(write, wait=True)
                except TransportError as exc:
                    raise self._abort(total, dispatched, write.key, exc) from exc

                dispatched += 1
        finally:
            self._buffer.clear()
            self._unacknowledged.clear()
            self._state = CollectorState.CLOSED

        result = FlushResult(total=total, dispatched=dispatched, status=status)
        log_entry = {
            "event": f"flush_{status.value}",
            "total": total,
            "dispatched": dispatched,
            "dropped": result.dropped,
        }
        if status is FlushStatus.CANCELLED:
            logger.warning(json.dumps(log_entry))
        else:
            logger.info(json.dumps(log_entry))
        return result

    @staticmethod
    async def _settle(receipt: DispatchReceipt) -> None:
        """Wait for a fire-and-forget write, treating cancellation as a failure."""
        try:
            await receipt.wait()
        except asyncio.CancelledError:
            if not receipt.cancelled():
                raise
            raise TransportError(
                f"{receipt.operation.value} for key {receipt.key!r} was cancelled "
                "before the store acknowledged it",
                key=receipt.key,
            ) from None

    @staticmethod
    def _abort(total: int, dispatched: int, key: str, exc: TransportError) -> FlushAbortedError:
        result = FlushResult(total=total, dispatched=dispatched, status=FlushStatus.FAILED)
        logger.error(
            json.dumps(
                {
                    "event": "flush_aborted",
                    "key": key,
                    "dispatched": dispatched,
                    "dropped": result.dropped,
                    "error": str(exc),
                }
            )
        )
        return FlushAbortedError(f"{result}: {exc}", result, key=key)
