"""Base protocols for the backing store boundary."""

from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class StoreHandle(Protocol):
    """Protocol for a key/value-and-list store client.

    The method surface matches ``redis.asyncio.Redis`` so a redis-py client
    satisfies it without an adapter.
    """

    async def set(self, name: str, value: bytes | str, px: int | None = None) -> Any:
        """Set ``name`` to ``value``, overwriting, with optional expiry in milliseconds."""
        ...

    async def incrby(self, name: str, amount: int = 1) -> int:
        """Atomically add ``amount`` to the integer at ``name``."""
        ...

    async def rpush(self, name: str, *values: bytes | str) -> int:
        """Append values to the tail of the list at ``name``."""
        ...

    async def lpush(self, name: str, *values: bytes | str) -> int:
        """Prepend values to the head of the list at ``name``."""
        ...


@runtime_checkable
class ConnectionManager(Protocol):
    """Protocol for resolving connection targets to store handles.

    ``get_handle`` must be safe to call concurrently and return one shared
    handle per distinct connection target.
    """

    def get_handle(self, connection_target: str | None) -> StoreHandle:
        """Return the handle for a connection target."""
        ...
