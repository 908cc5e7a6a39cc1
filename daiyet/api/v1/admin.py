"""Admin panel endpoints."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from daiyet.api.deps import get_current_admin, get_db, get_finalization_service
from daiyet.core.exceptions import NotFoundError
from daiyet.domain.booking_state import BookingStatus
from daiyet.domain.payment_state import PaymentStatus
from daiyet.domain.tenant_scope import TenantContext
from daiyet.models import AuditLog, Booking, OutboxEvent, Payment, User
from daiyet.schemas.admin import (
    AuditLogListResponse,
    AuditLogResponse,
    OutboxEventResponse,
    OutboxRetryResponse,
    PlatformStats,
)
from daiyet.schemas.booking import BookingResponse
from daiyet.services.audit_service import AuditAction, audit_service
from daiyet.services.finalization_service import BookingFinalizationService, EventStatus

router = APIRouter()


# ============ PLATFORM STATS ============


@router.get("/stats", response_model=PlatformStats)
async def get_platform_stats(
    admin: Annotated[TenantContext, Depends(get_current_admin)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> PlatformStats:
    """Headline counters for the admin dashboard."""
    users = await db.execute(select(User.role, func.count(User.id)).group_by(User.role))
    bookings = await db.execute(
        select(Booking.status, func.count(Booking.id)).group_by(Booking.status)
    )
    payments = await db.execute(
        select(func.count(Payment.id), func.coalesce(func.sum(Payment.amount), 0)).where(
            Payment.status == PaymentStatus.SUCCESS.value
        )
    )
    payment_count, revenue = payments.one()
    pending_events = await db.execute(
        select(func.count(OutboxEvent.id)).where(OutboxEvent.status == EventStatus.PENDING.value)
    )

    return PlatformStats(
        users_by_role={role: count for role, count in users.all()},
        bookings_by_status={status: count for status, count in bookings.all()},
        successful_payments=payment_count,
        revenue=int(revenue),
        pending_outbox_events=pending_events.scalar_one(),
    )


# ============ BOOKINGS ============


@router.get("/bookings", response_model=list[BookingResponse])
async def list_all_bookings(
    admin: Annotated[TenantContext, Depends(get_current_admin)],
    db: Annotated[AsyncSession, Depends(get_db)],
    status_filter: Annotated[BookingStatus | None, Query(alias="status")] = None,
    limit: Annotated[int, Query(ge=1, le=200)] = 50,
) -> list[Booking]:
    """Every booking on the platform, newest first."""
    query = select(Booking)
    if status_filter:
        query = query.where(Booking.status == status_filter.value)
    result = await db.execute(query.order_by(Booking.created_at.desc()).limit(limit))
    return list(result.scalars().all())


# ============ FINALIZATION OUTBOX ============


@router.get("/outbox", response_model=list[OutboxEventResponse])
async def list_outbox_events(
    admin: Annotated[TenantContext, Depends(get_current_admin)],
    db: Annotated[AsyncSession, Depends(get_db)],
    status_filter: Annotated[EventStatus | None, Query(alias="status")] = None,
    limit: Annotated[int, Query(ge=1, le=200)] = 50,
) -> list[OutboxEvent]:
    """Inspect finalization events, e.g. those stuck in ``failed``."""
    query = select(OutboxEvent)
    if status_filter:
        query = query.where(OutboxEvent.status == status_filter.value)
    result = await db.execute(query.order_by(OutboxEvent.created_at.desc()).limit(limit))
    return list(result.scalars().all())


@router.post("/outbox/{event_id}/retry", response_model=OutboxRetryResponse)
async def retry_outbox_event(
    event_id: UUID,
    request: Request,
    admin: Annotated[TenantContext, Depends(get_current_admin)],
    db: Annotated[AsyncSession, Depends(get_db)],
    finalization: Annotated[BookingFinalizationService, Depends(get_finalization_service)],
) -> OutboxRetryResponse:
    """Re-run the undelivered consumers of an event."""
    try:
        outcome = await finalization.retry(event_id)
    except LookupError:
        raise NotFoundError("Outbox event", str(event_id))

    await audit_service.log_action(
        db,
        admin.user_id,
        AuditAction.OUTBOX_RETRY,
        resource_type="outbox_event",
        resource_id=event_id,
        new_values={"delivered": outcome.delivered, "failed": outcome.failed},
        request=request,
    )

    return OutboxRetryResponse(
        event_id=event_id,
        delivered=outcome.delivered,
        failed=outcome.failed,
        already_processed=outcome.already_processed,
    )


# ============ AUDIT LOGS ============


@router.get("/audit-logs", response_model=AuditLogListResponse)
async def get_audit_logs(
    admin: Annotated[TenantContext, Depends(get_current_admin)],
    db: Annotated[AsyncSession, Depends(get_db)],
    action: AuditAction | None = None,
    user_id: UUID | None = None,
    page: int = Query(default=1, ge=1),
    page_size: int = Query(default=50, ge=1, le=100),
) -> AuditLogListResponse:
    """Get audit logs."""
    query = select(AuditLog)
    if action:
        query = query.where(AuditLog.action == action.value)
    if user_id:
        query = query.where(AuditLog.user_id == user_id)

    count_result = await db.execute(select(func.count()).select_from(query.subquery()))
    total = count_result.scalar() or 0

    offset = (page - 1) * page_size
    result = await db.execute(
        query.order_by(AuditLog.created_at.desc()).offset(offset).limit(page_size)
    )

    return AuditLogListResponse(
        logs=[AuditLogResponse.model_validate(log) for log in result.scalars().all()],
        total=total,
        page=page,
        page_size=page_size,
    )
