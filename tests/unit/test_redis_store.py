"""Tests for RedisConnectionManager."""

from __future__ import annotations

import threading
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from redis_sink.store.base import ConnectionManager
from redis_sink.store.redis_store import RedisConnectionManager

FROM_URL = "redis_sink.store.redis_store.redis.from_url"


def make_client() -> MagicMock:
    """Mock simulating a redis.asyncio.Redis client."""
    client = MagicMock()
    client.aclose = AsyncMock(return_value=None)
    return client


class TestGetHandle:
    """One client per connection string."""

    def test_client_created_lazily(self) -> None:
        """No client exists until a handle is requested."""
        with patch(FROM_URL) as mock_from_url:
            manager = RedisConnectionManager()
            assert len(manager) == 0
            mock_from_url.assert_not_called()

    def test_same_target_reuses_client(self) -> None:
        """Repeated requests for one target share a client."""
        with patch(FROM_URL, side_effect=lambda *a, **kw: make_client()) as mock_from_url:
            manager = RedisConnectionManager()
            first = manager.get_handle("redis://localhost:6379/0")
            second = manager.get_handle("redis://localhost:6379/0")

        assert first is second
        mock_from_url.assert_called_once_with("redis://localhost:6379/0")

    def test_distinct_targets_get_distinct_clients(self) -> None:
        """Each connection string gets its own client."""
        with patch(FROM_URL, side_effect=lambda *a, **kw: make_client()):
            manager = RedisConnectionManager()
            first = manager.get_handle("redis://a:6379/0")
            second = manager.get_handle("redis://b:6379/0")

        assert first is not second
        assert len(manager) == 2

    def test_client_options_forwarded(self) -> None:
        """Constructor options are passed to from_url."""
        with patch(FROM_URL) as mock_from_url:
            manager = RedisConnectionManager(socket_timeout=2.0, decode_responses=True)
            manager.get_handle("redis://localhost:6379/0")

        mock_from_url.assert_called_once_with(
            "redis://localhost:6379/0", socket_timeout=2.0, decode_responses=True
        )

    @pytest.mark.parametrize("target", [None, ""])
    def test_missing_target_raises(self, target: str | None) -> None:
        """An empty connection target is rejected."""
        with pytest.raises(ValueError, match="connection target"):
            RedisConnectionManager().get_handle(target)

    def test_invalid_url_surfaces(self) -> None:
        """URL parsing errors from redis-py are not swallowed."""
        with pytest.raises(ValueError):
            RedisConnectionManager().get_handle("not-a-redis-url")

    def test_concurrent_callers_share_one_client(self) -> None:
        """Threads racing on one target still create a single client."""
        results: list[object] = []
        barrier = threading.Barrier(8)

        with patch(FROM_URL, side_effect=lambda *a, **kw: make_client()) as mock_from_url:
            manager = RedisConnectionManager()

            def worker() -> None:
                barrier.wait()
                results.append(manager.get_handle("redis://localhost:6379/0"))

            threads = [threading.Thread(target=worker) for _ in range(8)]
            for thread in threads:
                thread.start()
            for thread in threads:
                thread.join()

        assert mock_from_url.call_count == 1
        assert all(result is results[0] for result in results)

    def test_satisfies_protocol(self) -> None:
        """RedisConnectionManager conforms to ConnectionManager."""
        assert isinstance(RedisConnectionManager(), ConnectionManager)


class TestClose:
    """Closing releases every client."""

    @pytest.mark.asyncio
    async def test_aclose_closes_all_clients(self) -> None:
        """Every cached client is closed and forgotten."""
        clients = [make_client(), make_client()]
        with patch(FROM_URL, side_effect=clients):
            manager = RedisConnectionManager()
            manager.get_handle("redis://a:6379/0")
            manager.get_handle("redis://b:6379/0")

        await manager.aclose()

        for client in clients:
            client.aclose.assert_awaited_once()
        assert len(manager) == 0

    @pytest.mark.asyncio
    async def test_context_manager_closes(self) -> None:
        """Leaving the async context closes clients."""
        client = make_client()
        with patch(FROM_URL, return_value=client):
            async with RedisConnectionManager() as manager:
                manager.get_handle("redis://localhost:6379/0")

        client.aclose.assert_awaited_once()
