"""API dependencies for authentication and common operations."""

from collections.abc import AsyncGenerator
from typing import Annotated
from uuid import UUID

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from daiyet.config import settings
from daiyet.core.cache import CacheBackend, UserCache
from daiyet.core.exceptions import (
    AuthenticationError,
    AuthorizationError,
    NotFoundError,
    RateLimitExceeded,
)
from daiyet.core.rate_limit import LimitType, TenantRateLimiter
from daiyet.core.security import verify_token
from daiyet.database import get_db
from daiyet.domain.roles import Role
from daiyet.domain.tenant_scope import TenantContext
from daiyet.gateways.paystack import PaystackGateway
from daiyet.models import Booking, User
from daiyet.services.audit_service import audit_service
from daiyet.services.finalization_service import (
    BookingFinalizationService,
    build_finalization_service,
)
from daiyet.services.notification_service import CeleryEmailQueue, EmailQueue
from daiyet.services.room_service import DailyRoomService
from daiyet.services.session_note_service import SessionNoteService, session_note_service

# Security scheme
security = HTTPBearer(auto_error=False)


# ==================== CACHE ====================


def get_cache(request: Request) -> CacheBackend:
    """Application-wide cache backend."""
    return request.app.state.cache


def get_user_cache(cache: Annotated[CacheBackend, Depends(get_cache)]) -> UserCache:
    return UserCache(cache, settings)


def get_rate_limiter(cache: Annotated[CacheBackend, Depends(get_cache)]) -> TenantRateLimiter:
    return TenantRateLimiter(cache, settings)


# ==================== AUTHENTICATION ====================


def _context_from_cached(user_id: UUID, data: dict) -> TenantContext:
    return TenantContext(
        user_id=user_id,
        email=data["email"],
        role=data["role"],
        account_status=data.get("account_status", "ACTIVE"),
        name=data.get("name"),
    )


async def _resolve_user(
    token: str,
    db: AsyncSession,
    user_cache: UserCache,
    request: Request | None = None,
) -> TenantContext:
    payload = verify_token(token)
    subject = payload.get("sub")
    if not subject:
        raise AuthenticationError("Invalid token payload")
    try:
        user_id = UUID(subject)
    except ValueError:
        raise AuthenticationError("Invalid token subject")

    cached = await user_cache.get_role(user_id)
    if cached:
        return _context_from_cached(user_id, cached)

    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()
    if not user:
        raise AuthenticationError("User not found")

    await user_cache.set_role(
        user_id,
        {
            "email": user.email,
            "role": user.role,
            "account_status": user.account_status,
            "name": user.name,
        },
    )
    await audit_service.record_login(user.id, user.role, request)
    return TenantContext(
        user_id=user.id,
        email=user.email,
        role=user.role,
        account_status=user.account_status,
        name=user.name,
    )


async def get_current_user(
    request: Request,
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
    db: Annotated[AsyncSession, Depends(get_db)],
    user_cache: Annotated[UserCache, Depends(get_user_cache)],
) -> TenantContext:
    """Get the current authenticated caller from the bearer token."""
    if not credentials:
        raise AuthenticationError("Not authenticated")

    ctx = await _resolve_user(credentials.credentials, db, user_cache, request)
    if ctx.account_status == "SUSPENDED":
        raise AuthorizationError("User account is suspended")
    return ctx


async def get_optional_user(
    request: Request,
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
    db: Annotated[AsyncSession, Depends(get_db)],
    user_cache: Annotated[UserCache, Depends(get_user_cache)],
) -> TenantContext | None:
    """Optionally get the current caller if authenticated."""
    if not credentials:
        return None
    try:
        return await _resolve_user(credentials.credentials, db, user_cache, request)
    except AuthenticationError:
        return None


async def get_current_admin(
    current_user: Annotated[TenantContext, Depends(get_current_user)],
) -> TenantContext:
    """Get current user and verify they are an admin."""
    if not current_user.is_admin:
        raise AuthorizationError("Admin access required")
    return current_user


class RoleChecker:
    """Allow only the given roles."""

    def __init__(self, *roles: Role):
        self.roles = set(roles)

    async def __call__(
        self,
        current_user: Annotated[TenantContext, Depends(get_current_user)],
    ) -> TenantContext:
        if current_user.role not in self.roles:
            allowed = ", ".join(sorted(r.value for r in self.roles))
            raise AuthorizationError(f"Requires one of: {allowed}")
        return current_user


require_provider = RoleChecker(Role.DIETITIAN, Role.THERAPIST)
require_therapist = RoleChecker(Role.THERAPIST)
require_dietitian = RoleChecker(Role.DIETITIAN)


class BookingPermissionChecker:
    """Load a booking the caller may act on."""

    def __init__(self, allow_client: bool = True, allow_provider: bool = True):
        self.allow_client = allow_client
        self.allow_provider = allow_provider

    async def __call__(
        self,
        booking_id: UUID,
        current_user: Annotated[TenantContext, Depends(get_current_user)],
        db: Annotated[AsyncSession, Depends(get_db)],
    ) -> Booking:
        result = await db.execute(select(Booking).where(Booking.id == booking_id))
        booking = result.scalar_one_or_none()
        if not booking:
            raise NotFoundError("Booking", str(booking_id))

        # Admin always has access
        if current_user.is_admin:
            return booking
        if self.allow_client and booking.user_id == current_user.user_id:
            return booking
        if self.allow_provider and booking.dietitian_id == current_user.user_id:
            return booking

        raise AuthorizationError("You don't have permission to access this booking")


require_booking_access = BookingPermissionChecker(allow_client=True, allow_provider=True)


# ==================== RATE LIMITING ====================


class RateLimit:
    """Per-tenant rate limit for specific endpoints."""

    def __init__(self, endpoint: str, limit_type: LimitType | None = None):
        self.endpoint = endpoint
        self.limit_type = limit_type

    async def __call__(
        self,
        current_user: Annotated[TenantContext | None, Depends(get_optional_user)],
        limiter: Annotated[TenantRateLimiter, Depends(get_rate_limiter)],
    ) -> None:
        tenant_id = str(current_user.user_id) if current_user else None
        limit_type = self.limit_type or (
            LimitType.AUTHENTICATED if current_user else LimitType.UNAUTHENTICATED
        )
        result = await limiter.check(tenant_id, self.endpoint, limit_type)
        if not result.allowed:
            raise RateLimitExceeded(retry_after=result.retry_after)


booking_limiter = RateLimit("bookings:create")
payment_limiter = RateLimit("payments:initialize", LimitType.AUTH)
ai_limiter = RateLimit("session-notes:process", LimitType.AUTH)


# ==================== COLLABORATORS ====================


async def get_room_service() -> AsyncGenerator[DailyRoomService, None]:
    """Per-request Daily.co client, closed once the response is sent."""
    service = DailyRoomService()
    try:
        yield service
    finally:
        await service.close()


def get_email_queue() -> EmailQueue:
    return CeleryEmailQueue()


async def get_paystack_gateway() -> AsyncGenerator[PaystackGateway, None]:
    gateway = PaystackGateway()
    try:
        yield gateway
    finally:
        await gateway.close()


def get_session_note_service() -> SessionNoteService:
    return session_note_service


def get_finalization_service(
    room_service: Annotated[DailyRoomService, Depends(get_room_service)],
    email_queue: Annotated[EmailQueue, Depends(get_email_queue)],
) -> BookingFinalizationService:
    return build_finalization_service(room_service=room_service, email_queue=email_queue)

