"""Booking finalization after a successful Paystack charge.

A confirmed charge is recorded once as a ``booking.finalized`` outbox
event keyed by the Paystack reference. Three consumers then apply it in
order, each in its own transaction together with its delivery marker:

1. payment_ledger: payment PENDING -> SUCCESS
2. booking_finalizer: video room + booking PENDING -> CONFIRMED
3. notification_dispatcher: confirmation email to client and provider

A consumer that raises is rolled back and retried on the next dispatch;
consumers that already delivered are never re-run for the same event.
"""

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from enum import Enum
from typing import Any
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from daiyet.config import settings
from daiyet.database import async_session_maker
from daiyet.domain.booking_state import BookingStatus
from daiyet.domain.payment_state import PaymentStatus, assert_payment_transition
from daiyet.models import Booking, OutboxDelivery, OutboxEvent, Payment, User
from daiyet.services.notification_service import (
    CeleryEmailQueue,
    EmailQueue,
    booking_confirmation_job,
)
from daiyet.services.room_service import DailyRoomService
from daiyet.utils.time import as_utc

logger = logging.getLogger(__name__)

BOOKING_FINALIZED = "booking.finalized"


class Consumer(str, Enum):
    """Outbox consumers, in dispatch order."""

    PAYMENT_LEDGER = "payment_ledger"
    BOOKING_FINALIZER = "booking_finalizer"
    NOTIFICATION_DISPATCHER = "notification_dispatcher"


CONSUMER_ORDER = [
    Consumer.PAYMENT_LEDGER,
    Consumer.BOOKING_FINALIZER,
    Consumer.NOTIFICATION_DISPATCHER,
]


class EventStatus(str, Enum):
    PENDING = "pending"
    PROCESSED = "processed"
    FAILED = "failed"


@dataclass
class FinalizationOutcome:
    """What one finalization attempt did."""

    reference: str
    event_id: UUID | None = None
    payment_found: bool = True
    already_processed: bool = False
    delivered: list[str] = field(default_factory=list)
    failed: dict[str, str] = field(default_factory=dict)

    @property
    def completed(self) -> bool:
        return self.payment_found and not self.failed


def room_name_for(booking_id: UUID) -> str:
    return f"booking-{booking_id.hex}"


def room_expiry_for(end_time: datetime) -> datetime:
    """Rooms stay open for a grace period after the session ends."""
    return as_utc(end_time) + timedelta(hours=settings.room_expiry_grace_hours)


class BookingFinalizationService:
    """Records and dispatches finalization events."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        room_service: DailyRoomService,
        email_queue: EmailQueue,
        max_attempts: int | None = None,
    ) -> None:
        self.session_factory = session_factory
        self.room_service = room_service
        self.email_queue = email_queue
        self.max_attempts = max_attempts or settings.outbox_max_attempts
        self._handlers: dict[Consumer, Callable[[AsyncSession, dict[str, Any]], Awaitable[None]]] = {
            Consumer.PAYMENT_LEDGER: self._apply_payment_ledger,
            Consumer.BOOKING_FINALIZER: self._apply_booking_finalizer,
            Consumer.NOTIFICATION_DISPATCHER: self._apply_notifications,
        }

    # ==================== RECORDING ====================

    async def record_event(self, reference: str, source: str = "webhook") -> OutboxEvent | None:
        """Record the finalization event for a payment reference.

        Returns:
            The new or existing event, or None if no payment carries ``reference``
        """
        async with self.session_factory() as session:
            payment = await self._payment_by_reference(session, reference)
            if payment is None:
                return None

            existing = await self._event_by_key(session, reference)
            if existing is not None:
                return existing

            event = OutboxEvent(
                event_type=BOOKING_FINALIZED,
                event_key=reference,
                payload={
                    "reference": reference,
                    "payment_id": str(payment.id),
                    "booking_id": str(payment.booking_id),
                    "source": source,
                },
                status=EventStatus.PENDING.value,
            )
            session.add(event)
            try:
                await session.commit()
            except IntegrityError:
                # Lost the race against a concurrent delivery of the same reference
                await session.rollback()
                return await self._event_by_key(session, reference)

            logger.info(f"Recorded {BOOKING_FINALIZED} event {event.id} for {reference}")
            return event

    # ==================== DISPATCH ====================

    async def finalize(self, reference: str, source: str = "webhook") -> FinalizationOutcome:
        """Record then dispatch the event for ``reference``."""
        event = await self.record_event(reference, source=source)
        if event is None:
            logger.warning(f"Payment not found for reference {reference}")
            return FinalizationOutcome(reference=reference, payment_found=False)
        return await self.dispatch(event.id)

    async def dispatch(self, event_id: UUID) -> FinalizationOutcome:
        """Run every consumer that has not yet applied ``event_id``."""
        async with self.session_factory() as session:
            event = await session.get(OutboxEvent, event_id)
            if event is None:
                raise LookupError(f"Outbox event {event_id} does not exist")
            payload = dict(event.payload)
            outcome = FinalizationOutcome(reference=event.event_key, event_id=event.id)

            if event.status == EventStatus.PROCESSED:
                logger.info(f"Event {event_id} for {event.event_key} already processed; skipping")
                outcome.already_processed = True
                return outcome

            result = await session.execute(
                select(OutboxDelivery.consumer).where(OutboxDelivery.event_id == event_id)
            )
            done = set(result.scalars().all())

        for consumer in CONSUMER_ORDER:
            if consumer.value in done:
                continue
            error = await self._run_consumer(event_id, consumer, payload)
            if error is None:
                outcome.delivered.append(consumer.value)
            else:
                outcome.failed[consumer.value] = error

        await self._record_attempt(event_id, outcome)
        return outcome

    async def redispatch_pending(self, limit: int | None = None) -> list[FinalizationOutcome]:
        """Retry events that still have undelivered consumers."""
        async with self.session_factory() as session:
            result = await session.execute(
                select(OutboxEvent.id)
                .where(
                    OutboxEvent.event_type == BOOKING_FINALIZED,
                    OutboxEvent.status == EventStatus.PENDING.value,
                )
                .order_by(OutboxEvent.created_at)
                .limit(limit or settings.outbox_redispatch_batch_size)
            )
            event_ids = list(result.scalars().all())

        outcomes = []
        for event_id in event_ids:
            outcomes.append(await self.dispatch(event_id))
        return outcomes

    async def retry(self, event_id: UUID) -> FinalizationOutcome:
        """Re-open a failed event and dispatch it again."""
        async with self.session_factory() as session:
            event = await session.get(OutboxEvent, event_id)
            if event is None:
                raise LookupError(f"Outbox event {event_id} does not exist")
            if event.status == EventStatus.FAILED:
                event.status = EventStatus.PENDING.value
                event.attempts = 0
                await session.commit()
        return await self.dispatch(event_id)

    async def _run_consumer(self, event_id: UUID, consumer: Consumer, payload: dict[str, Any]) -> str | None:
        handler = self._handlers[consumer]
        async with self.session_factory() as session:
            try:
                await handler(session, payload)
                session.add(OutboxDelivery(event_id=event_id, consumer=consumer.value))
                await session.commit()
            except Exception as e:
                await session.rollback()
                logger.error(
                    f"Consumer {consumer.value} failed for {payload.get('reference')}: {e}",
                    exc_info=True,
                )
                return str(e) or e.__class__.__name__
        return None

    async def _record_attempt(self, event_id: UUID, outcome: FinalizationOutcome) -> None:
        async with self.session_factory() as session:
            event = await session.get(OutboxEvent, event_id)
            if event is None:
                return
            event.attempts = (event.attempts or 0) + 1
            if outcome.failed:
                event.last_error = "; ".join(f"{name}: {err}" for name, err in outcome.failed.items())
                if event.attempts >= self.max_attempts:
                    event.status = EventStatus.FAILED.value
                    logger.error(
                        f"Event {event_id} for {event.event_key} failed after {event.attempts} attempts"
                    )
            else:
                event.status = EventStatus.PROCESSED.value
                event.processed_at = datetime.now(UTC)
                event.last_error = None
            await session.commit()

    # ==================== CONSUMERS ====================

    async def _apply_payment_ledger(self, session: AsyncSession, payload: dict[str, Any]) -> None:
        payment = await self._payment_by_reference(session, payload["reference"])
        if payment is None:
            logger.warning(f"Payment {payload['reference']} vanished before ledger update")
            return
        if payment.status == PaymentStatus.SUCCESS:
            logger.info(f"Payment {payment.paystack_ref} already SUCCESS; ledger unchanged")
            return

        assert_payment_transition(payment.status, PaymentStatus.SUCCESS)
        payment.status = PaymentStatus.SUCCESS.value
        payment.paid_at = datetime.now(UTC)

    async def _apply_booking_finalizer(self, session: AsyncSession, payload: dict[str, Any]) -> None:
        booking = await session.get(Booking, UUID(payload["booking_id"]))
        if booking is None:
            logger.warning(f"Booking {payload['booking_id']} not found for {payload['reference']}")
            return
        if booking.status == BookingStatus.CONFIRMED:
            logger.info(f"Booking {booking.id} already CONFIRMED; leaving meeting link as is")
            return
        if booking.status != BookingStatus.PENDING:
            logger.warning(
                f"Booking {booking.id} is {booking.status}; not confirming after payment {payload['reference']}"
            )
            return

        meeting_link = ""
        try:
            meeting_link = await self.room_service.create_room(
                name=room_name_for(booking.id),
                expires_at=room_expiry_for(booking.end_time),
            )
        except Exception as e:
            logger.error(f"Room creation failed for booking {booking.id}: {e}")

        booking.status = BookingStatus.CONFIRMED.value
        booking.meeting_link = meeting_link
        booking.confirmed_at = datetime.now(UTC)

    async def _apply_notifications(self, session: AsyncSession, payload: dict[str, Any]) -> None:
        booking = await session.get(Booking, UUID(payload["booking_id"]))
        if booking is None:
            return
        if booking.status != BookingStatus.CONFIRMED:
            logger.info(f"Booking {booking.id} is {booking.status}; no confirmation emails")
            return

        client = await session.get(User, booking.user_id)
        provider = await session.get(User, booking.dietitian_id)

        for party in (client, provider):
            if party is None or not party.email:
                continue
            job = booking_confirmation_job(
                to=party.email,
                user_name=party.name,
                event_title=booking.title,
                start_time=booking.start_time,
                meeting_link=booking.meeting_link or "",
            )
            try:
                await self.email_queue.enqueue(job)
            except Exception as e:
                logger.error(f"Failed to enqueue confirmation email to {party.email}: {e}")

    # ==================== LOOKUPS ====================

    @staticmethod
    async def _payment_by_reference(session: AsyncSession, reference: str) -> Payment | None:
        result = await session.execute(select(Payment).where(Payment.paystack_ref == reference))
        return result.scalar_one_or_none()

    @staticmethod
    async def _event_by_key(session: AsyncSession, reference: str) -> OutboxEvent | None:
        result = await session.execute(
            select(OutboxEvent).where(
                OutboxEvent.event_type == BOOKING_FINALIZED,
                OutboxEvent.event_key == reference,
            )
        )
        return result.scalar_one_or_none()


def build_finalization_service(
    room_service: DailyRoomService | None = None,
    email_queue: EmailQueue | None = None,
) -> BookingFinalizationService:
    """Service wired to the application database and real collaborators."""
    return BookingFinalizationService(
        session_factory=async_session_maker,
        room_service=room_service or DailyRoomService(),
        email_queue=email_queue or CeleryEmailQueue(),
    )
