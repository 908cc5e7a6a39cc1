"""Booking endpoints."""

import logging
from datetime import UTC, datetime
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from daiyet.api.deps import (
    booking_limiter,
    get_current_user,
    get_db,
    get_email_queue,
    require_booking_access,
)
from daiyet.config import settings
from daiyet.core.exceptions import (
    AuthorizationError,
    ConflictError,
    InvalidBookingStatus,
    NotFoundError,
    ValidationError,
)
from daiyet.domain.booking_state import BookingStatus, assert_can_cancel, can_transition
from daiyet.domain.payment_state import PaymentStatus
from daiyet.domain.tenant_scope import ResourceKind, TenantContext, scope_query
from daiyet.models import Booking, EventType, Payment, User
from daiyet.schemas.booking import (
    BookingCancelRequest,
    BookingCreate,
    BookingListResponse,
    BookingResponse,
)
from daiyet.services.audit_service import AuditAction, audit_service
from daiyet.services.notification_service import (
    BOOKING_CANCELLED,
    EmailJob,
    EmailQueue,
    format_session_date,
)

logger = logging.getLogger(__name__)

router = APIRouter()

ACTIVE_STATUSES = (BookingStatus.PENDING.value, BookingStatus.CONFIRMED.value)


async def check_availability(
    db: AsyncSession,
    provider_id: UUID,
    start_time: datetime,
    end_time: datetime,
) -> bool:
    """True when the provider has no active booking overlapping the slot."""
    result = await db.execute(
        select(Booking.id).where(
            Booking.dietitian_id == provider_id,
            Booking.status.in_(ACTIVE_STATUSES),
            Booking.start_time < end_time,
            Booking.end_time > start_time,
        )
    )
    return result.first() is None


@router.post(
    "/",
    response_model=BookingResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(booking_limiter)],
)
async def create_booking(
    booking_data: BookingCreate,
    current_user: Annotated[TenantContext, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> Booking:
    """Create a new booking awaiting payment."""
    event_type = await db.get(EventType, booking_data.event_type_id)
    if not event_type or not event_type.is_active:
        raise NotFoundError("Event type", str(booking_data.event_type_id))

    if event_type.user_id == current_user.user_id:
        raise ValidationError("You cannot book your own session")

    available = await check_availability(
        db, event_type.user_id, booking_data.start_time, booking_data.end_time
    )
    if not available:
        raise ConflictError("The selected time is not available")

    booking = Booking(
        user_id=current_user.user_id,
        dietitian_id=event_type.user_id,
        event_type_id=event_type.id,
        title=event_type.title,
        description=booking_data.notes,
        start_time=booking_data.start_time,
        end_time=booking_data.end_time,
        status=BookingStatus.PENDING.value,
    )
    db.add(booking)
    await db.flush()

    # Opened PENDING; Paystack checkout attaches its reference later
    db.add(
        Payment(
            booking_id=booking.id,
            amount=event_type.price,
            currency=event_type.currency or settings.paystack_currency,
            status=PaymentStatus.PENDING.value,
        )
    )
    await db.flush()
    await db.refresh(booking)

    logger.info(f"Created booking {booking.id} for event type {event_type.id}")
    return booking


@router.get("/", response_model=BookingListResponse)
async def list_bookings(
    current_user: Annotated[TenantContext, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
    status_filter: Annotated[BookingStatus | None, Query(alias="status")] = None,
    page: Annotated[int, Query(ge=1)] = 1,
    page_size: Annotated[int, Query(ge=1, le=100)] = 20,
) -> BookingListResponse:
    """List bookings visible to the caller."""
    query = scope_query(select(Booking), ResourceKind.BOOKINGS, current_user)
    if status_filter:
        query = query.where(Booking.status == status_filter.value)

    count_result = await db.execute(select(func.count()).select_from(query.subquery()))
    total = count_result.scalar_one()

    result = await db.execute(
        query.order_by(Booking.start_time.desc())
        .offset((page - 1) * page_size)
        .limit(page_size)
    )
    bookings = result.scalars().all()

    return BookingListResponse(
        items=[BookingResponse.model_validate(b) for b in bookings],
        total=total,
        page=page,
        page_size=page_size,
    )


@router.get("/{booking_id}", response_model=BookingResponse)
async def get_booking(
    booking: Annotated[Booking, Depends(require_booking_access)],
) -> Booking:
    """Get booking details."""
    return booking


@router.post("/{booking_id}/cancel", response_model=BookingResponse)
async def cancel_booking(
    request: Request,
    cancel_data: BookingCancelRequest,
    booking: Annotated[Booking, Depends(require_booking_access)],
    current_user: Annotated[TenantContext, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
    email_queue: Annotated[EmailQueue, Depends(get_email_queue)],
) -> Booking:
    """Cancel a pending or confirmed booking."""
    assert_can_cancel(booking.status)
    previous_status = booking.status

    if current_user.is_admin:
        cancelled_by = "ADMIN"
    elif booking.dietitian_id == current_user.user_id:
        cancelled_by = "PROVIDER"
    else:
        cancelled_by = "USER"

    booking.status = BookingStatus.CANCELLED.value
    booking.cancelled_by = cancelled_by
    booking.cancellation_reason = cancel_data.reason
    booking.cancelled_at = datetime.now(UTC)
    booking.updated_at = datetime.now(UTC)
    await audit_service.log_status_change(
        db,
        current_user.user_id,
        AuditAction.BOOKING_CANCELLED,
        resource_type="booking",
        resource_id=booking.id,
        old_status=previous_status,
        new_status=booking.status,
        extra={"cancelled_by": cancelled_by, "reason": cancel_data.reason},
        request=request,
    )
    await db.flush()

    for party_id in (booking.user_id, booking.dietitian_id):
        party = await db.get(User, party_id)
        if party is None or not party.email:
            continue
        job = EmailJob(
            to=party.email,
            subject=f"Booking cancelled: {booking.title}",
            template=BOOKING_CANCELLED,
            data={
                "userName": party.name or "there",
                "eventTitle": booking.title,
                "date": format_session_date(booking.start_time),
            },
        )
        try:
            await email_queue.enqueue(job)
        except Exception as e:
            logger.error(f"Failed to enqueue cancellation email to {party.email}: {e}")

    logger.info(f"Booking {booking.id} cancelled by {cancelled_by}")
    await db.refresh(booking)
    return booking


@router.post("/{booking_id}/complete", response_model=BookingResponse)
async def complete_booking(
    booking: Annotated[Booking, Depends(require_booking_access)],
    current_user: Annotated[TenantContext, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> Booking:
    """Mark a confirmed session as held."""
    if not current_user.is_admin and booking.dietitian_id != current_user.user_id:
        raise AuthorizationError("Only the provider can complete a booking")
    if not can_transition(booking.status, BookingStatus.COMPLETED):
        raise InvalidBookingStatus("Only confirmed bookings can be completed")

    booking.status = BookingStatus.COMPLETED.value
    booking.completed_at = datetime.now(UTC)
    booking.updated_at = datetime.now(UTC)
    await db.flush()
    await db.refresh(booking)
    return booking
