"""Domain models for the redis-sink write pipeline.

This module defines the records that flow from a caller's write intent to a
dispatch-ready write, plus the layered configuration records they are
resolved against.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from datetime import timedelta
from enum import Enum
from typing import Any, Self, TypeAlias


class WriteOperation(str, Enum):
    """Store operation requested by a write intent.

    Attributes:
        UNSET: No operation chosen; resolved from defaults.
        SET_KEY_VALUE: Unconditional SET of the key, with optional expiry.
        INCREMENT_VALUE: Atomic INCRBY of the integer stored at the key.
        LIST_RIGHT_PUSH: RPUSH of the value to the tail of a list.
        LIST_LEFT_PUSH: LPUSH of the value to the head of a list.
    """

    UNSET = "unset"
    SET_KEY_VALUE = "set_key_value"
    INCREMENT_VALUE = "increment_value"
    LIST_RIGHT_PUSH = "list_right_push"
    LIST_LEFT_PUSH = "list_left_push"


@dataclass(frozen=True, slots=True)
class BinaryPayload:
    """Raw bytes, written verbatim."""

    data: bytes


@dataclass(frozen=True, slots=True)
class ObjectPayload:
    """Structured value, serialized to JSON before writing."""

    value: Any


@dataclass(frozen=True, slots=True)
class TextPayload:
    """Text, written verbatim."""

    text: str


Payload: TypeAlias = BinaryPayload | ObjectPayload | TextPayload


def select_payload(
    binary: bytes | None = None,
    obj: Any = None,
    text: str | None = None,
) -> Payload | None:
    """Build a payload variant from loosely populated fields.

    When more than one field is set the tie-break is fixed:
    binary > object > text.

    Args:
        binary: Raw bytes value.
        obj: Structured value to serialize.
        text: Text value.

    Returns:
        The selected payload, or None if every field is None.
    """
    if binary is not None:
        return BinaryPayload(binary)
    if obj is not None:
        return ObjectPayload(obj)
    if text is not None:
        return TextPayload(text)
    return None


@dataclass(frozen=True, slots=True)
class WriteIntent:
    """A single write requested by application code.

    Attributes:
        key: Destination key; falls back to site and global defaults.
        payload: Value to write; ignored by INCREMENT_VALUE.
        operation: Requested operation; UNSET defers to defaults.
        time_to_live: Expiry applied by SET_KEY_VALUE.
        increment_amount: Amount added by INCREMENT_VALUE.
    """

    key: str | None = None
    payload: Payload | None = None
    operation: WriteOperation = WriteOperation.UNSET
    time_to_live: timedelta | None = None
    increment_amount: int = 1

    @classmethod
    def of(
        cls,
        key: str | None = None,
        *,
        binary: bytes | None = None,
        obj: Any = None,
        text: str | None = None,
        operation: WriteOperation = WriteOperation.UNSET,
        time_to_live: timedelta | None = None,
        increment_amount: int = 1,
    ) -> Self:
        """Create an intent from loose payload fields.

        Example:
            >>> WriteIntent.of("greeting", text="hello").payload
            TextPayload(text='hello')
        """
        return cls(
            key=key,
            payload=select_payload(binary, obj, text),
            operation=operation,
            time_to_live=time_to_live,
            increment_amount=increment_amount,
        )


@dataclass(frozen=True, slots=True)
class SiteDefaults:
    """Defaults attached to one binding site.

    Attributes:
        key: Key used when the intent carries none.
        connection: Connection target for every write from this site.
        operation: Operation used when the intent leaves it UNSET.
        time_to_live: Expiry used when the intent carries none.
        send_in_batch: Overrides the global batching flag when not None.
    """

    key: str | None = None
    connection: str | None = None
    operation: WriteOperation = WriteOperation.UNSET
    time_to_live: timedelta | None = None
    send_in_batch: bool | None = None


_TRUTHY = {"1", "true", "yes", "on"}


@dataclass(frozen=True, slots=True)
class GlobalDefaults:
    """Process-wide fallback configuration.

    Attributes:
        key: Last-resort destination key.
        connection: Last-resort connection target (a Redis URL).
        operation: Last-resort operation; UNSET resolves to SET_KEY_VALUE.
        time_to_live: Last-resort expiry.
        send_in_batch: Buffer intents until flush instead of writing at once.
    """

    key: str | None = None
    connection: str | None = None
    operation: WriteOperation = WriteOperation.UNSET
    time_to_live: timedelta | None = None
    send_in_batch: bool = False

    @classmethod
    def from_env(cls) -> Self:
        """Load defaults from ``REDIS_SINK_*`` environment variables.

        Raises:
            ValueError: If the operation or TTL variable cannot be parsed.
        """
        ttl_seconds = os.getenv("REDIS_SINK_TTL_SECONDS", "")
        return cls(
            key=os.getenv("REDIS_SINK_KEY") or None,
            connection=os.getenv("REDIS_SINK_CONNECTION", "redis://localhost:6379/0"),
            operation=WriteOperation(os.getenv("REDIS_SINK_OPERATION", "unset").lower()),
            time_to_live=timedelta(seconds=float(ttl_seconds)) if ttl_seconds else None,
            send_in_batch=os.getenv("REDIS_SINK_SEND_IN_BATCH", "false").lower() in _TRUTHY,
        )


@dataclass(frozen=True, slots=True)
class ResolvedWrite:
    """A write intent after configuration merging, ready for dispatch.

    Attributes:
        key: Non-empty destination key.
        operation: Resolved operation, never UNSET.
        connection_target: Connection string passed to the connection manager.
        time_to_live: Expiry for SET_KEY_VALUE, if any.
        value: Materialized wire value.
        increment_amount: Amount for INCREMENT_VALUE.
    """

    key: str
    operation: WriteOperation
    connection_target: str | None
    time_to_live: timedelta | None
    value: bytes | str
    increment_amount: int = 1


class FlushStatus(str, Enum):
    """Outcome of a collector flush.

    Attributes:
        COMPLETED: Every buffered write was dispatched.
        CANCELLED: The cancel signal stopped the drain early.
        FAILED: A transport failure stopped the drain early.
    """

    COMPLETED = "completed"
    CANCELLED = "cancelled"
    FAILED = "failed"


@dataclass(frozen=True, slots=True)
class FlushResult:
    """Aggregate result of draining a collector buffer.

    Attributes:
        total: Number of writes buffered when the flush started.
        dispatched: Number of writes handed to the store.
        status: How the drain ended.
    """

    total: int
    dispatched: int
    status: FlushStatus

    @property
    def dropped(self) -> int:
        """Writes that were never dispatched."""
        return self.total - self.dispatched

    @property
    def is_partial(self) -> bool:
        """True when the drain stopped before reaching the end of the buffer."""
        return self.dispatched < self.total

    def __str__(self) -> str:
        if self.status is FlushStatus.COMPLETED:
            return f"flush completed, {self.dispatched} of {self.total} items dispatched"
        return f"flush stopped early, {self.dispatched} of {self.total} items dispatched"
