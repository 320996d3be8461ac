"""Test fixtures for the FX rate cache."""

import os
from datetime import UTC, datetime
from unittest.mock import AsyncMock

import pytest

# Set test environment before importing app modules
os.environ.setdefault("REDIS_URL", "redis://localhost:6379/1")
os.environ.setdefault("EXCHANGERATE_API_KEY", "test_key")
os.environ.setdefault("APP_ENV", "testing")

from src.core.cache import LocalTTLCache, TwoTierCache
from src.core.rates import CurrencyConverter, StaticRateSource

FIXED_NOW = datetime(2024, 6, 1, 12, 0, tzinfo=UTC)


class FakeRedis:
    """Dict-backed stand-in for redis.asyncio.Redis (get/set only)."""

    def __init__(self) -> None:
        self.store: dict[str, bytes | str] = {}
        self.expiries: dict[str, int | None] = {}
        self.get = AsyncMock(side_effect=self._get)
        self.set = AsyncMock(side_effect=self._set)

    def _get(self, key: str) -> bytes | str | None:
        return self.store.get(key)

    def _set(self, key: str, value: bytes | str, ex: int | None = None) -> bool:
        self.store[key] = value
        self.expiries[key] = ex
        return True


class FakeClock:
    """Monotonic clock that only moves when told to."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def fake_redis():
    return FakeRedis()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def cache(fake_redis, clock):
    """Isolated two-tier cache with a fake Redis and a controllable local clock."""
    return TwoTierCache(fake_redis, LocalTTLCache(clock=clock))


@pytest.fixture
def rate_source():
    return StaticRateSource(
        latest={
            "USD": {"USD": 1, "GBP": 0.5, "EUR": 0.9, "BTC": 0.00002, "ZZZ": 0},
            "GBP": {"GBP": 1, "USD": 2.0},
        },
    )


@pytest.fixture
def converter(cache, rate_source):
    return CurrencyConverter(cache, rate_source, now=lambda: FIXED_NOW)


@pytest.fixture
def fixed_now():
    return FIXED_NOW
