"""User endpoints."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from daiyet.api.deps import (
    ai_limiter,
    booking_limiter,
    get_current_user,
    get_db,
    get_rate_limiter,
    get_user_cache,
    payment_limiter,
)
from daiyet.core.cache import UserCache
from daiyet.core.exceptions import NotFoundError, ValidationError
from daiyet.core.rate_limit import LimitType, TenantRateLimiter
from daiyet.domain.tenant_scope import TenantContext
from daiyet.models import User
from daiyet.schemas.user import RateLimitStatusResponse, UserResponse

router = APIRouter()

LIMITED_ENDPOINTS = {
    limiter.endpoint: limiter.limit_type or LimitType.AUTHENTICATED
    for limiter in (booking_limiter, payment_limiter, ai_limiter)
}


@router.get("/me", response_model=UserResponse)
async def get_my_profile(
    current_user: Annotated[TenantContext, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
    user_cache: Annotated[UserCache, Depends(get_user_cache)],
) -> UserResponse:
    """Get current user's profile."""
    cached = await user_cache.get_profile(current_user.user_id)
    if cached:
        return UserResponse.model_validate(cached)

    user = await db.get(User, current_user.user_id)
    if not user:
        raise NotFoundError("User", str(current_user.user_id))

    profile = UserResponse.model_validate(user)
    await user_cache.set_profile(current_user.user_id, profile.model_dump(mode="json"))
    return profile


@router.get("/me/rate-limit-status", response_model=RateLimitStatusResponse)
async def get_rate_limit_status(
    current_user: Annotated[TenantContext, Depends(get_current_user)],
    limiter: Annotated[TenantRateLimiter, Depends(get_rate_limiter)],
    endpoint: Annotated[str, Query()] = "bookings:create",
) -> RateLimitStatusResponse:
    """Remaining quota on a rate-limited endpoint, without consuming it."""
    limit_type = LIMITED_ENDPOINTS.get(endpoint)
    if limit_type is None:
        raise ValidationError(f"Unknown rate-limited endpoint: {endpoint}")

    result = await limiter.status(str(current_user.user_id), endpoint, limit_type)
    return RateLimitStatusResponse(
        limit=result.limit,
        remaining=result.remaining,
        reset_at=result.reset_at,
    )
