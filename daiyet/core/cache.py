"""Injected TTL key-value cache.

The application owns one ``CacheBackend`` (``app.state.cache``). The
in-memory backend suits a single process; the Redis backend is shared
across instances.
"""

import json
import logging
import time
from abc import ABC, abstractmethod
from collections.abc import Callable
from typing import Any
from uuid import UUID

import redis.asyncio as redis

from daiyet.config import Settings

logger = logging.getLogger(__name__)


class CacheBackend(ABC):
    """Abstract TTL cache."""

    @abstractmethod
    async def get(self, key: str) -> Any | None:
        """Return the live value for ``key`` or None."""

    @abstractmethod
    async def set(self, key: str, value: Any, ttl_seconds: int | None = None) -> None:
        """Store ``value`` for ``ttl_seconds``."""

    @abstractmethod
    async def delete(self, key: str) -> None:
        """Drop ``key`` if present."""

    @abstractmethod
    async def sweep(self) -> int:
        """Evict expired entries and return how many were removed."""

    @abstractmethod
    async def incr(self, key: str, ttl_seconds: int) -> int:
        """Increment a counter, starting its TTL on first use."""

    async def close(self) -> None:
        """Release backend resources."""


class MemoryCache(CacheBackend):
    """Expiring in-process map."""

    def __init__(
        self,
        default_ttl_seconds: int = 300,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.default_ttl_seconds = default_ttl_seconds
        self._clock = clock
        self._entries: dict[str, tuple[Any, float]] = {}

    def _live(self, key: str) -> tuple[Any, float] | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if entry[1] <= self._clock():
            del self._entries[key]
            return None
        return entry

    async def get(self, key: str) -> Any | None:
        entry = self._live(key)
        return entry[0] if entry else None

    async def set(self, key: str, value: Any, ttl_seconds: int | None = None) -> None:
        ttl = ttl_seconds if ttl_seconds is not None else self.default_ttl_seconds
        self._entries[key] = (value, self._clock() + ttl)

    async def delete(self, key: str) -> None:
        self._entries.pop(key, None)

    async def sweep(self) -> int:
        now = self._clock()
        expired = [key for key, (_, expires_at) in self._entries.items() if expires_at <= now]
        for key in expired:
            del self._entries[key]
        return len(expired)

    async def incr(self, key: str, ttl_seconds: int) -> int:
        entry = self._live(key)
        if entry is None:
            self._entries[key] = (1, self._clock() + ttl_seconds)
            return 1
        count = entry[0] + 1
        self._entries[key] = (count, entry[1])
        return count

    def __len__(self) -> int:
        return len(self._entries)


class RedisCache(CacheBackend):
    """Redis-backed cache with JSON values."""

    def __init__(self, redis_url: str, default_ttl_seconds: int = 300, prefix: str = "daiyet:") -> None:
        self.redis_url = redis_url
        self.default_ttl_seconds = default_ttl_seconds
        self.prefix = prefix
        self._redis: redis.Redis | None = None

    async def get_redis(self) -> redis.Redis:
        """Get Redis connection."""
        if self._redis is None:
            self._redis = redis.from_url(
                self.redis_url,
                encoding="utf-8",
                decode_responses=True,
            )
        return self._redis

    async def get(self, key: str) -> Any | None:
        client = await self.get_redis()
        raw = await client.get(self.prefix + key)
        return json.loads(raw) if raw is not None else None

    async def set(self, key: str, value: Any, ttl_seconds: int | None = None) -> None:
        client = await self.get_redis()
        ttl = ttl_seconds if ttl_seconds is not None else self.default_ttl_seconds
        await client.setex(self.prefix + key, ttl, json.dumps(value, default=str))

    async def delete(self, key: str) -> None:
        client = await self.get_redis()
        await client.delete(self.prefix + key)

    async def sweep(self) -> int:
        # Redis expires keys itself
        return 0

    async def incr(self, key: str, ttl_seconds: int) -> int:
        client = await self.get_redis()
        async with client.pipeline(transaction=True) as pipe:
            await pipe.incr(self.prefix + key)
            await pipe.expire(self.prefix + key, ttl_seconds, nx=True)
            results = await pipe.execute()
        return int(results[0])

    async def close(self) -> None:
        if self._redis is not None:
            await self._redis.aclose()
            self._redis = None


def build_cache(settings: Settings) -> CacheBackend:
    """Create the configured cache backend."""
    if settings.cache_backend == "redis":
        logger.info("Using Redis cache backend")
        return RedisCache(settings.redis_url, settings.cache_default_ttl_seconds)
    return MemoryCache(settings.cache_default_ttl_seconds)


class UserCache:
    """Per-user lookups cached in front of the database."""

    def __init__(self, cache: CacheBackend, settings: Settings) -> None:
        self.cache = cache
        self.role_ttl = settings.user_role_ttl_seconds
        self.profile_ttl = settings.user_profile_ttl_seconds
        self.onboarding_ttl = settings.user_onboarding_ttl_seconds

    @staticmethod
    def role_key(user_id: UUID | str) -> str:
        return f"user:role:{user_id}"

    @staticmethod
    def profile_key(user_id: UUID | str) -> str:
        return f"user:profile:{user_id}"

    @staticmethod
    def onboarding_key(user_id: UUID | str) -> str:
        return f"user:onboarding:{user_id}"

    async def get_role(self, user_id: UUID | str) -> dict | None:
        return await self.cache.get(self.role_key(user_id))

    async def set_role(self, user_id: UUID | str, data: dict) -> None:
        await self.cache.set(self.role_key(user_id), data, self.role_ttl)

    async def get_profile(self, user_id: UUID | str) -> dict | None:
        return await self.cache.get(self.profile_key(user_id))

    async def set_profile(self, user_id: UUID | str, data: dict) -> None:
        await self.cache.set(self.profile_key(user_id), data, self.profile_ttl)

    async def get_onboarding(self, user_id: UUID | str) -> dict | None:
        return await self.cache.get(self.onboarding_key(user_id))

    async def set_onboarding(self, user_id: UUID | str, data: dict) -> None:
        await self.cache.set(self.onboarding_key(user_id), data, self.onboarding_ttl)

    async def invalidate(self, user_id: UUID | str) -> None:
        """Drop every cached entry for a user."""
        await self.cache.delete(self.role_key(user_id))
        await self.cache.delete(self.profile_key(user_id))
        await self.cache.delete(self.onboarding_key(user_id))
