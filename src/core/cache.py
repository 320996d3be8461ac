"""Two-tier cache: process-local TTL map in front of Redis.

Both tiers are best-effort. Reads that fail for any reason (miss, Redis
down, timeout, payload that no longer validates) return None, and writes
that fail are logged and dropped, so callers fall back to the origin source
instead of surfacing cache trouble to users.

The local tier always uses its own fixed TTL, whatever expiry the caller
asks for. It only absorbs bursts of repeated lookups; Redis decides how
long an entry lives.
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass
from datetime import timedelta
from functools import lru_cache
from typing import Any, TypeVar

from pydantic import TypeAdapter, ValidationError
from pydantic_core import PydanticSerializationError, to_json
from redis.asyncio import Redis

from src.core.config import Settings, settings

logger = logging.getLogger(__name__)

T = TypeVar("T")

ONE_MINUTE = timedelta(minutes=1)

LOCAL_TTL = 5 * ONE_MINUTE
LOCAL_CLEANUP_INTERVAL = 10 * ONE_MINUTE


@dataclass(frozen=True)
class CacheSetOptions:
    """Options for TwoTierCache.set. ``expiry=None`` means the key never expires in Redis."""

    expiry: timedelta | None = None

    @property
    def expiry_seconds(self) -> int:
        if self.expiry is None:
            return 0
        return max(int(self.expiry.total_seconds()), 0)


class LocalTTLCache:
    """Thread-safe in-process map of key -> serialized payload with a fixed TTL."""

    def __init__(
        self,
        ttl: timedelta = LOCAL_TTL,
        cleanup_interval: timedelta = LOCAL_CLEANUP_INTERVAL,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._ttl = ttl.total_seconds()
        self._cleanup_interval = cleanup_interval.total_seconds()
        self._clock = clock
        self._lock = threading.Lock()
        self._items: dict[str, tuple[bytes, float]] = {}
        self._next_sweep = clock() + self._cleanup_interval

    def get(self, key: str) -> bytes | None:
        now = self._clock()
        with self._lock:
            self._maybe_sweep(now)
            item = self._items.get(key)
            if item is None:
                return None
            payload, expires_at = item
            if expires_at <= now:
                del self._items[key]
                return None
            return payload

    def set(self, key: str, payload: bytes) -> None:
        now = self._clock()
        with self._lock:
            self._maybe_sweep(now)
            self._items[key] = (payload, now + self._ttl)

    def delete(self, key: str) -> None:
        with self._lock:
            self._items.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._items.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)

    def _maybe_sweep(self, now: float) -> None:
        # Caller holds the lock.
        if now < self._next_sweep:
            return
        expired = [k for k, (_, exp) in self._items.items() if exp <= now]
        for k in expired:
            del self._items[k]
        self._next_sweep = now + self._cleanup_interval


@lru_cache(maxsize=64)
def _adapter(shape: Any) -> TypeAdapter:
    return TypeAdapter(shape)


class TwoTierCache:
    """Local TTL tier + Redis tier with fail-open reads and writes."""

    def __init__(self, redis: Redis, local: LocalTTLCache | None = None) -> None:
        self._redis = redis
        self._local = local if local is not None else LocalTTLCache()

    @property
    def local(self) -> LocalTTLCache:
        return self._local

    async def get(self, key: str, shape: type[T], *, use_local: bool = True) -> T | None:
        """Return the value stored under *key* validated as *shape*, or None.

        With ``use_local=False`` the local tier is skipped and Redis is
        always consulted.
        """
        raw: bytes | str | None = self._local.get(key) if use_local else None
        if raw is None:
            try:
                raw = await self._redis.get(key)
            except Exception as e:
                logger.warning("Cache get failed for %s: %s", key, e)
                return None
            if raw is None:
                logger.debug("Cache miss: %s", key)
                return None

        try:
            return _adapter(shape).validate_json(raw)
        except ValidationError as e:
            logger.warning("Cached value for %s could not be decoded: %s", key, e)
            return None

    async def set(self, key: str, value: Any, options: CacheSetOptions | None = None) -> None:
        """Store *value* as JSON in Redis and the local tier. Never raises."""
        options = options or CacheSetOptions()
        try:
            payload = to_json(value)
        except PydanticSerializationError as e:
            logger.warning("Cache value for %s could not be encoded: %s", key, e)
            return

        ex = options.expiry_seconds or None
        try:
            await self._redis.set(key, payload, ex=ex)
        except Exception as e:
            logger.warning("Cache set failed for %s: %s", key, e)

        self._local.set(key, payload)

    async def aclose(self) -> None:
        """Close the Redis connection pool. The local tier is left as is."""
        await self._redis.aclose()


def create_redis(config: Settings = settings) -> Redis:
    return Redis.from_url(
        config.redis_url,
        decode_responses=True,
        socket_timeout=config.redis_socket_timeout,
        socket_connect_timeout=config.redis_socket_timeout,
    )


@lru_cache(maxsize=1)
def get_cache() -> TwoTierCache:
    """Process-wide cache, created on first use.

    Tests should build their own TwoTierCache instead of calling this.
    """
    local = LocalTTLCache(ttl=timedelta(seconds=settings.fx_local_cache_ttl))
    return TwoTierCache(create_redis(settings), local)
