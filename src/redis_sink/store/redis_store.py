"""Connection manager handing out shared redis.asyncio clients."""

import json
import logging
import threading
from typing import Any, Self

import redis.asyncio as redis

logger = logging.getLogger(__name__)


class RedisConnectionManager:
    """Caches one ``redis.asyncio.Redis`` client per connection string.

    Clients are created lazily on first request and reused for every later
    request with the same connection string. Each client owns its own
    connection pool, so a single client may be shared by many concurrent
    collectors.

    Args:
        **client_options: Extra keyword arguments forwarded to
            ``redis.asyncio.from_url`` (for example ``socket_timeout``).

    Example:
        ```python
        async with RedisConnectionManager() as connections:
            dispatcher = OperationDispatcher(connections)
            collector = WriteIntentCollector(dispatcher, defaults=GlobalDefaults.from_env())
            await collector.submit(WriteIntent.of("greeting", text="hello"))
        ```
    """

    def __init__(self, **client_options: Any) -> None:
        self._client_options = client_options
        self._clients: dict[str, redis.Redis] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._clients)

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.aclose()

    def get_handle(self, connection_target: str | None) -> redis.Redis:
        """Return the shared client for a connection string.

        Args:
            connection_target: A Redis URL such as ``redis://host:6379/0``.

        Returns:
            The cached client, created on first use.

        Raises:
            ValueError: If the connection target is empty or not a valid URL.
        """
        if not connection_target:
            raise ValueError("No Redis connection target configured")

        with self._lock:
            client = self._clients.get(connection_target)
            if client is None:
                client = redis.from_url(connection_target, **self._client_options)
                self._clients[connection_target] = client
                logger.info(
                    json.dumps(
                        {
                            "event": "redis_client_created",
                            "clients": len(self._clients),
                        }
                    )
                )
            return client

    async def aclose(self) -> None:
        """Close every cached client and forget them."""
        with self._lock:
            clients = list(self._clients.values())
            self._clients.clear()

        for client in clients:
            await client.aclose()
