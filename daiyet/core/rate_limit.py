"""Per-tenant fixed-window rate limiting on top of the injected cache."""

import math
import time
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum

from daiyet.config import Settings
from daiyet.core.cache import CacheBackend


class LimitType(str, Enum):
    """Rate limit buckets."""

    AUTH = "auth"
    AUTHENTICATED = "authenticated"
    UNAUTHENTICATED = "unauthenticated"


@dataclass
class RateLimitResult:
    """Outcome of a rate limit check."""

    allowed: bool
    limit: int
    remaining: int
    reset_at: float
    retry_after: int | None = None


class TenantRateLimiter:
    """Counts requests per (tenant, endpoint) in fixed windows."""

    def __init__(
        self,
        cache: CacheBackend,
        settings: Settings,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.cache = cache
        self.window_seconds = settings.rate_limit_window_seconds
        self.limits = {
            LimitType.AUTH: settings.rate_limit_auth,
            LimitType.AUTHENTICATED: settings.rate_limit_authenticated,
            LimitType.UNAUTHENTICATED: settings.rate_limit_unauthenticated,
        }
        self._clock = clock

    def _window(self) -> tuple[int, float]:
        now = self._clock()
        index = int(now // self.window_seconds)
        return index, (index + 1) * self.window_seconds

    @staticmethod
    def key(tenant_id: str | None, endpoint: str, window_index: int) -> str:
        return f"rate:{tenant_id or 'anonymous'}:{endpoint}:{window_index}"

    async def check(
        self,
        tenant_id: str | None,
        endpoint: str,
        limit_type: LimitType = LimitType.AUTHENTICATED,
    ) -> RateLimitResult:
        """Consume one request from the caller's quota."""
        limit = self.limits[limit_type]
        index, reset_at = self._window()
        count = await self.cache.incr(self.key(tenant_id, endpoint, index), self.window_seconds)

        if count > limit:
            retry_after = max(1, math.ceil(reset_at - self._clock()))
            return RateLimitResult(False, limit, 0, reset_at, retry_after)
        return RateLimitResult(True, limit, limit - count, reset_at)

    async def status(
        self,
        tenant_id: str | None,
        endpoint: str,
        limit_type: LimitType = LimitType.AUTHENTICATED,
    ) -> RateLimitResult:
        """Report the remaining quota without consuming it."""
        limit = self.limits[limit_type]
        index, reset_at = self._window()
        count = await self.cache.get(self.key(tenant_id, endpoint, index)) or 0
        remaining = max(0, limit - int(count))
        return RateLimitResult(remaining > 0, limit, remaining, reset_at)
