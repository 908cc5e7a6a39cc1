"""Per-tenant rate limiting."""

import pytest

from conftest import auth_headers, create_event_type, create_user
from daiyet.config import settings
from daiyet.core.cache import MemoryCache
from daiyet.core.rate_limit import LimitType, TenantRateLimiter


class FakeClock:
    def __init__(self, now: float = 6000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


def make_limiter(clock: FakeClock) -> TenantRateLimiter:
    return TenantRateLimiter(MemoryCache(clock=clock), settings, clock=clock)


@pytest.mark.anyio
async def test_requests_over_the_limit_are_denied_with_retry_after() -> None:
    clock = FakeClock()
    limiter = make_limiter(clock)
    limit = settings.rate_limit_auth

    for _ in range(limit):
        result = await limiter.check("tenant-a", "payments:initialize", LimitType.AUTH)
        assert result.allowed

    denied = await limiter.check("tenant-a", "payments:initialize", LimitType.AUTH)

    assert not denied.allowed
    assert denied.remaining == 0
    assert 1 <= denied.retry_after <= settings.rate_limit_window_seconds


@pytest.mark.anyio
async def test_tenants_and_endpoints_have_separate_buckets() -> None:
    clock = FakeClock()
    limiter = make_limiter(clock)

    for _ in range(settings.rate_limit_auth + 1):
        await limiter.check("tenant-a", "payments:initialize", LimitType.AUTH)

    assert (await limiter.check("tenant-b", "payments:initialize", LimitType.AUTH)).allowed
    assert (await limiter.check("tenant-a", "bookings:create", LimitType.AUTH)).allowed


@pytest.mark.anyio
async def test_new_window_restores_quota() -> None:
    clock = FakeClock()
    limiter = make_limiter(clock)

    for _ in range(settings.rate_limit_auth + 1):
        await limiter.check("tenant-a", "payments:initialize", LimitType.AUTH)

    clock.now += settings.rate_limit_window_seconds
    assert (await limiter.check("tenant-a", "payments:initialize", LimitType.AUTH)).allowed


@pytest.mark.anyio
async def test_status_does_not_consume_quota() -> None:
    clock = FakeClock()
    limiter = make_limiter(clock)
    await limiter.check("tenant-a", "bookings:create")

    first = await limiter.status("tenant-a", "bookings:create")
    second = await limiter.status("tenant-a", "bookings:create")

    assert first.remaining == second.remaining == settings.rate_limit_authenticated - 1


@pytest.mark.anyio
async def test_booking_endpoint_returns_429_when_exhausted(async_client, monkeypatch) -> None:
    monkeypatch.setattr(settings, "rate_limit_authenticated", 2)
    client = await create_user("busy@example.com")
    provider = await create_user("rd@example.com", role="DIETITIAN")
    event_type = await create_event_type(provider)
    headers = auth_headers(client.id)

    statuses = []
    for hour in (9, 11, 13):
        response = await async_client.post(
            "/api/bookings/",
            json={
                "event_type_id": str(event_type.id),
                "start_time": f"2025-07-01T{hour:02d}:00:00Z",
                "end_time": f"2025-07-01T{hour:02d}:30:00Z",
            },
            headers=headers,
        )
        statuses.append(response.status_code)

    assert statuses == [201, 201, 429]
    assert int(response.headers["Retry-After"]) >= 1


@pytest.mark.anyio
async def test_rate_limit_status_endpoint(async_client) -> None:
    user = await create_user("status@example.com")

    response = await async_client.get(
        "/api/users/me/rate-limit-status",
        params={"endpoint": "payments:initialize"},
        headers=auth_headers(user.id),
    )

    assert response.status_code == 200
    body = response.json()
    assert body["limit"] == settings.rate_limit_auth
    assert body["remaining"] == settings.rate_limit_auth
