"""Tests for SessionRegistry."""

import asyncio
from unittest.mock import AsyncMock

import httpx
import pytest

from gateway.errors import SessionCreationError
from gateway.sessions import SessionRegistry


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


class TestGetOrCreate:

    async def test_stable_per_user(self, fake_assistant):
        registry = SessionRegistry(fake_assistant)

        first = await registry.get_or_create("U1")
        second = await registry.get_or_create("U1")

        assert first == second == "thread_1"
        assert fake_assistant.threads_created == 1

    async def test_distinct_users(self, fake_assistant):
        registry = SessionRegistry(fake_assistant)

        assert await registry.get_or_create("U1") != await registry.get_or_create("U2")
        assert len(registry) == 2

    async def test_concurrent_first_use_creates_once(self):
        started = asyncio.Event()
        release = asyncio.Event()

        async def slow_create():
            started.set()
            await release.wait()
            return "thread_x"

        client = AsyncMock()
        client.create_thread = AsyncMock(side_effect=slow_create)
        registry = SessionRegistry(client)

        first = asyncio.create_task(registry.get_or_create("U1"))
        second = asyncio.create_task(registry.get_or_create("U1"))
        await started.wait()
        release.set()

        assert await asyncio.gather(first, second) == ["thread_x", "thread_x"]
        assert client.create_thread.await_count == 1

    async def test_failure_not_cached(self):
        client = AsyncMock()
        client.create_thread = AsyncMock(side_effect=[httpx.ConnectError("refused"), "thread_2"])
        registry = SessionRegistry(client)

        with pytest.raises(SessionCreationError):
            await registry.get_or_create("U1")
        assert registry.get("U1") is None

        assert await registry.get_or_create("U1") == "thread_2"

    async def test_empty_id_rejected(self):
        client = AsyncMock()
        client.create_thread = AsyncMock(return_value="")
        registry = SessionRegistry(client)

        with pytest.raises(SessionCreationError):
            await registry.get_or_create("U1")
        assert len(registry) == 0


class TestIdleExpiry:

    async def test_disabled_by_default(self, fake_assistant):
        clock = FakeClock()
        registry = SessionRegistry(fake_assistant, clock=clock)
        await registry.get_or_create("U1")

        clock.now = 10_000_000.0

        assert registry.get("U1") == "thread_1"
        assert registry.evict_idle() == 0

    async def test_idle_session_retired(self, fake_assistant):
        clock = FakeClock()
        registry = SessionRegistry(fake_assistant, idle_ttl_seconds=60, clock=clock)
        await registry.get_or_create("U1")

        clock.now = 61.0

        assert await registry.get_or_create("U1") == "thread_2"

    async def test_use_refreshes_idle_clock(self, fake_assistant):
        clock = FakeClock()
        registry = SessionRegistry(fake_assistant, idle_ttl_seconds=60, clock=clock)
        await registry.get_or_create("U1")

        clock.now = 50.0
        registry.get("U1")
        clock.now = 100.0

        assert registry.get("U1") == "thread_1"

    async def test_evict_idle(self, fake_assistant):
        clock = FakeClock()
        registry = SessionRegistry(fake_assistant, idle_ttl_seconds=60, clock=clock)
        await registry.get_or_create("U1")
        clock.now = 30.0
        await registry.get_or_create("U2")

        clock.now = 80.0

        assert registry.evict_idle() == 1
        assert registry.get("U2") == "thread_2"

    async def test_reset(self, fake_assistant):
        registry = SessionRegistry(fake_assistant)
        await registry.get_or_create("U1")

        registry.reset()

        assert len(registry) == 0
