"""Root test fixtures shared across all test types.

This conftest contains fixtures that can be used by both unit and integration tests.
Database-specific fixtures are in tests/integration/conftest.py.
"""

import os

# Set APP_ENV to testing before any app imports to disable rate limiting
os.environ.setdefault("APP_ENV", "testing")

# ruff: noqa: E402 - Imports must be after env var setup
import asyncio
from collections.abc import AsyncGenerator

import pytest
from fakeredis import aioredis as fakeredis_aio
from redis.asyncio import Redis

from src.shepherd.core import redis as redis_core
from src.shepherd.core.config import get_settings
from src.shepherd.core.notifications.events import NotificationEvent

# Clear settings cache to ensure test environment variables are picked up
get_settings.cache_clear()


class RecordingTransport:
    """Transport that keeps every event it is handed.

    ``fail_times`` makes the next N sends raise, ``delay`` makes every send slow.
    """

    def __init__(self, fail_times: int = 0, delay: float = 0.0):
        self.sent: list[NotificationEvent] = []
        self.attempts = 0
        self.fail_times = fail_times
        self.delay = delay

    async def send(self, event: NotificationEvent) -> None:
        self.attempts += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.fail_times > 0:
            self.fail_times -= 1
            raise RuntimeError("transport down")
        self.sent.append(event)

    def of_type(self, event_type) -> list[NotificationEvent]:
        return [e for e in self.sent if e.type == event_type]


@pytest.fixture(autouse=True)
def reset_redis() -> None:
    """Every test starts without a cached Redis client."""
    redis_core.reset_redis_state()
    yield
    redis_core.reset_redis_state()


# --- Redis Test Fixtures (shared) ---


@pytest.fixture
async def fake_redis() -> AsyncGenerator[Redis]:
    """Provides a fakeredis client for testing.

    Returns an in-memory Redis implementation that behaves like
    a real Redis server but doesn't require external dependencies.
    """
    client = fakeredis_aio.FakeRedis(decode_responses=True)
    yield client
    await client.aclose()


@pytest.fixture
async def mock_redis(fake_redis: Redis, monkeypatch: pytest.MonkeyPatch) -> AsyncGenerator[Redis]:
    """Patches get_redis() to return fakeredis client.

    Patches both src.shepherd.core.redis and the notification deduplicator,
    which imports get_redis by name.
    """

    async def _get_fake_redis() -> Redis:
        return fake_redis

    monkeypatch.setattr("src.shepherd.core.redis.get_redis", _get_fake_redis)
    monkeypatch.setattr("src.shepherd.core.notifications.dedup.get_redis", _get_fake_redis)
    yield fake_redis


@pytest.fixture
async def mock_redis_unavailable(monkeypatch: pytest.MonkeyPatch) -> AsyncGenerator[None]:
    """Patches get_redis() to return None (simulates Redis unavailable)."""

    async def _get_none() -> None:
        return None

    monkeypatch.setattr("src.shepherd.core.redis.get_redis", _get_none)
    monkeypatch.setattr("src.shepherd.core.notifications.dedup.get_redis", _get_none)
    yield
