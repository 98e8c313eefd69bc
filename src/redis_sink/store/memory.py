"""In-process store for tests and local development."""

from datetime import timedelta
from typing import Any

from redis.exceptions import ResponseError

_WRONGTYPE = "WRONGTYPE Operation against a key holding the wrong kind of value"
_INVALID_EXPIRE = "ERR invalid expire time in 'set' command"


class InMemoryStore:
    """Dictionary-backed store implementing the StoreHandle protocol.

    Mirrors Redis semantics for the commands the sink issues: SET always
    overwrites, INCRBY and the list pushes create missing keys, and type
    mismatches or non-positive expiries raise
    ``redis.exceptions.ResponseError``. Every command that executes is
    appended to ``commands`` so tests can assert on exact dispatch order.
    Expiries are recorded but never enforced.
    """

    def __init__(self) -> None:
        self.data: dict[str, bytes | str | int | list[bytes | str]] = {}
        self.expiries: dict[str, timedelta] = {}
        self.commands: list[tuple[Any, ...]] = []

    async def set(self, name: str, value: bytes | str, px: int | None = None) -> bool:
        if px is not None and px <= 0:
            raise ResponseError(_INVALID_EXPIRE)
        self.commands.append(("set", name, value, px))
        self.data[name] = value
        if px is None:
            self.expiries.pop(name, None)
        else:
            self.expiries[name] = timedelta(milliseconds=px)
        return True

    async def incrby(self, name: str, amount: int = 1) -> int:
        self.commands.append(("incrby", name, amount))
        current = self.data.get(name, 0)
        if isinstance(current, list):
            raise ResponseError(_WRONGTYPE)
        try:
            updated = int(current) + amount
        except ValueError:
            raise ResponseError("value is not an integer or out of range") from None
        self.data[name] = updated
        return updated

    async def rpush(self, name: str, *values: bytes | str) -> int:
        self.commands.append(("rpush", name, *values))
        items = self._list(name)
        items.extend(values)
        return len(items)

    async def lpush(self, name: str, *values: bytes | str) -> int:
        self.commands.append(("lpush", name, *values))
        items = self._list(name)
        for value in values:
            items.insert(0, value)
        return len(items)

    def _list(self, name: str) -> list[bytes | str]:
        items = self.data.setdefault(name, [])
        if not isinstance(items, list):
            raise ResponseError(_WRONGTYPE)
        return items


class InMemoryConnectionManager:
    """Connection manager handing out one InMemoryStore per target."""

    def __init__(self) -> None:
        self.stores: dict[str | None, InMemoryStore] = {}

    def get_handle(self, connection_target: str | None) -> InMemoryStore:
        if connection_target not in self.stores:
            self.stores[connection_target] = InMemoryStore()
        return self.stores[connection_target]
