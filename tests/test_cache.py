"""Injected TTL cache and per-user cache."""

import uuid

import pytest

from daiyet.config import settings
from daiyet.core.cache import MemoryCache, UserCache


class FakeClock:
    def __init__(self, now: float = 1000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.mark.anyio
async def test_values_expire_after_ttl() -> None:
    clock = FakeClock()
    cache = MemoryCache(default_ttl_seconds=300, clock=clock)

    await cache.set("k", {"v": 1}, ttl_seconds=10)
    assert await cache.get("k") == {"v": 1}

    clock.advance(10)
    assert await cache.get("k") is None


@pytest.mark.anyio
async def test_default_ttl_applies() -> None:
    clock = FakeClock()
    cache = MemoryCache(default_ttl_seconds=60, clock=clock)

    await cache.set("k", "v")
    clock.advance(59)
    assert await cache.get("k") == "v"
    clock.advance(1)
    assert await cache.get("k") is None


@pytest.mark.anyio
async def test_sweep_evicts_only_expired_entries() -> None:
    clock = FakeClock()
    cache = MemoryCache(clock=clock)
    await cache.set("short", 1, ttl_seconds=5)
    await cache.set("long", 2, ttl_seconds=500)

    clock.advance(6)
    removed = await cache.sweep()

    assert removed == 1
    assert len(cache) == 1
    assert await cache.get("long") == 2


@pytest.mark.anyio
async def test_incr_counts_within_ttl_and_restarts_after() -> None:
    clock = FakeClock()
    cache = MemoryCache(clock=clock)

    assert await cache.incr("c", ttl_seconds=60) == 1
    assert await cache.incr("c", ttl_seconds=60) == 2
    clock.advance(60)
    assert await cache.incr("c", ttl_seconds=60) == 1


@pytest.mark.anyio
async def test_user_cache_invalidate_drops_all_entries() -> None:
    cache = MemoryCache()
    users = UserCache(cache, settings)
    user_id = uuid.uuid4()

    await users.set_role(user_id, {"email": "a@example.com", "role": "USER"})
    await users.set_profile(user_id, {"name": "Ada"})
    await users.set_onboarding(user_id, {"current_stage": "TERMS"})
    assert await users.get_role(user_id) == {"email": "a@example.com", "role": "USER"}

    await users.invalidate(user_id)

    assert await users.get_role(user_id) is None
    assert await users.get_profile(user_id) is None
    assert await users.get_onboarding(user_id) is None


@pytest.mark.anyio
async def test_user_cache_uses_per_kind_ttls() -> None:
    clock = FakeClock()
    users = UserCache(MemoryCache(clock=clock), settings)
    user_id = uuid.uuid4()

    await users.set_role(user_id, {"role": "USER"})
    await users.set_onboarding(user_id, {"current_stage": "STARTED"})

    clock.advance(settings.user_role_ttl_seconds)
    assert await users.get_role(user_id) is None
    assert await users.get_onboarding(user_id) == {"current_stage": "STARTED"}
