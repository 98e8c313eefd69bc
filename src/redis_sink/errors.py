"""Exception hierarchy for redis-sink."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from redis_sink.core.models import FlushResult


class SinkError(Exception):
    """Base class for every error raised by redis-sink."""

    pass


class ResolutionError(SinkError):
    """Raised when a write intent resolves to an empty destination key."""

    pass


class MaterializationError(SinkError):
    """Raised when a payload cannot be converted to a wire value."""

    pass


class TransportError(SinkError):
    """Raised when the backing store rejects or fails a command."""

    def __init__(self, message: str, key: str | None = None) -> None:
        super().__init__(message)
        self.key = key


class FlushAbortedError(TransportError):
    """Raised when a flush stops on the first transport failure.

    The partial outcome is available on ``result``; the original failure is
    chained as ``__cause__``.
    """

    def __init__(self, message: str, result: FlushResult, key: str | None = None) -> None:
        super().__init__(message, key=key)
        self.result = result


class InvalidOperationError(SinkError):
    """Raised when dispatch is reached with an unresolved operation."""

    pass


class CollectorClosedError(SinkError):
    """Raised when a collector is used after its terminal flush."""

    pass
