"""Integration tests wiring collectors, dispatcher and connection manager together."""

from __future__ import annotations

import asyncio
from datetime import timedelta

import pytest

from redis_sink import (
    FlushStatus,
    GlobalDefaults,
    InMemoryConnectionManager,
    OperationDispatcher,
    SiteDefaults,
    WriteIntent,
    WriteIntentCollector,
    WriteOperation,
)

PRIMARY = "redis://primary:6379/0"
ANALYTICS = "redis://analytics:6379/1"


@pytest.fixture
def connections() -> InMemoryConnectionManager:
    """Shared connection manager for every collector in a test."""
    return InMemoryConnectionManager()


@pytest.fixture
def defaults() -> GlobalDefaults:
    """Process defaults: batch everything to the primary store."""
    return GlobalDefaults(
        key="fallback",
        connection=PRIMARY,
        operation=WriteOperation.SET_KEY_VALUE,
        time_to_live=timedelta(hours=1),
        send_in_batch=True,
    )


async def invocation(
    connections: InMemoryConnectionManager,
    defaults: GlobalDefaults,
    site: SiteDefaults,
    intents: list[WriteIntent],
) -> None:
    """Simulate one function invocation writing through its own collector."""
    dispatcher = OperationDispatcher(connections)
    async with WriteIntentCollector(dispatcher, site=site, defaults=defaults) as collector:
        for intent in intents:
            await collector.submit(intent)
            await asyncio.sleep(0)


class TestSinkPipeline:
    """End-to-end behaviour across binding sites."""

    @pytest.mark.asyncio
    async def test_sites_route_to_their_connections(
        self, connections: InMemoryConnectionManager, defaults: GlobalDefaults
    ) -> None:
        """Each site writes to its own connection target with its own defaults."""
        events_site = SiteDefaults(
            key="events", connection=ANALYTICS, operation=WriteOperation.LIST_RIGHT_PUSH
        )
        cache_site = SiteDefaults(time_to_live=timedelta(seconds=30))

        await invocation(
            connections,
            defaults,
            events_site,
            [WriteIntent.of(obj={"n": 1}), WriteIntent.of(obj={"n": 2})],
        )
        await invocation(
            connections,
            defaults,
            cache_site,
            [WriteIntent.of("user:1", text="alice"), WriteIntent.of(text="orphan")],
        )

        analytics = connections.get_handle(ANALYTICS)
        primary = connections.get_handle(PRIMARY)
        assert analytics.data["events"] == ['{"n":1}', '{"n":2}']
        assert primary.data == {"user:1": "alice", "fallback": "orphan"}
        assert primary.expiries["user:1"] == timedelta(seconds=30)

    @pytest.mark.asyncio
    async def test_concurrent_invocations_keep_their_own_order(
        self, connections: InMemoryConnectionManager, defaults: GlobalDefaults
    ) -> None:
        """Concurrent collectors each flush their writes in submission order."""
        sites = [
            SiteDefaults(key=f"list:{n}", operation=WriteOperation.LIST_RIGHT_PUSH)
            for n in range(4)
        ]

        async with asyncio.TaskGroup() as tg:
            for n, site in enumerate(sites):
                intents = [WriteIntent.of(text=f"{n}-{i}") for i in range(10)]
                tg.create_task(invocation(connections, defaults, site, intents))

        primary = connections.get_handle(PRIMARY)
        for n in range(4):
            assert primary.data[f"list:{n}"] == [f"{n}-{i}" for i in range(10)]

    @pytest.mark.asyncio
    async def test_counter_across_invocations(
        self, connections: InMemoryConnectionManager, defaults: GlobalDefaults
    ) -> None:
        """Counters accumulate across collectors sharing one store."""
        site = SiteDefaults(key="hits", operation=WriteOperation.INCREMENT_VALUE, send_in_batch=False)

        await asyncio.gather(
            *(
                invocation(connections, defaults, site, [WriteIntent(increment_amount=2)])
                for _ in range(5)
            )
        )

        assert connections.get_handle(PRIMARY).data["hits"] == 10

    @pytest.mark.asyncio
    async def test_flush_cancelled_before_start_drops_everything(
        self, connections: InMemoryConnectionManager, defaults: GlobalDefaults
    ) -> None:
        """A cancel signal set before flushing leaves the store untouched."""
        dispatcher = OperationDispatcher(connections)
        collector = WriteIntentCollector(dispatcher, defaults=defaults)
        for n in range(3):
            await collector.submit(WriteIntent.of(f"k{n}", text=str(n)))

        cancel = asyncio.Event()
        cancel.set()
        result = await collector.flush(cancel)

        assert result.status is FlushStatus.CANCELLED
        assert connections.get_handle(PRIMARY).data == {}
