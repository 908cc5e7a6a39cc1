"""Celery background tasks.

This module contains the background tasks for:
- Email delivery
- Booking finalization re-dispatch
"""

import asyncio
import logging

from celery import shared_task
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

from daiyet.config import settings
from daiyet.worker import celery_app  # noqa: F401  registers the app before tasks bind
from daiyet.core.exceptions import ExternalServiceError
from daiyet.services.finalization_service import BookingFinalizationService
from daiyet.services.notification_service import (
    CeleryEmailQueue,
    EmailJob,
    notification_service,
)
from daiyet.services.room_service import DailyRoomService

logger = logging.getLogger(__name__)


# ==================== EMAIL TASKS ====================


@shared_task(bind=True, max_retries=3)
def send_email(self, job: dict):
    """Deliver one queued ``EmailJob``.

    SendGrid failures are retried; a missing SendGrid configuration is not.
    """
    email = EmailJob.from_dict(job)
    try:
        sent = asyncio.run(_send_email(email))
    except ExternalServiceError as exc:
        logger.warning(f"Email to {email.to} failed, retrying: {exc.detail}")
        raise self.retry(exc=exc, countdown=60)
    return {"status": "success" if sent else "skipped", "to": email.to}


async def _send_email(job: EmailJob) -> bool:
    try:
        return await notification_service.deliver(job)
    finally:
        # The client is bound to this task's event loop
        await notification_service.close()


# ==================== FINALIZATION TASKS ====================


@shared_task(bind=True, max_retries=3)
def redispatch_outbox_events(self):
    """Re-run booking finalization events that still have undelivered consumers.

    Runs every 5 minutes.
    """
    try:
        outcomes = asyncio.run(_redispatch_outbox_events())
    except Exception as exc:
        raise self.retry(exc=exc, countdown=300)

    completed = sum(1 for outcome in outcomes if outcome.completed)
    return {"status": "success", "dispatched": len(outcomes), "completed": completed}


async def _redispatch_outbox_events():
    engine = create_async_engine(settings.database_url)
    session_factory = async_sessionmaker(engine, expire_on_commit=False)
    room_service = DailyRoomService()

    try:
        service = BookingFinalizationService(
            session_factory=session_factory,
            room_service=room_service,
            email_queue=CeleryEmailQueue(),
        )
        outcomes = await service.redispatch_pending()
        for outcome in outcomes:
            if outcome.failed:
                logger.warning(f"Finalization for {outcome.reference} still pending: {outcome.failed}")
        return outcomes
    finally:
        await room_service.close()
        await engine.dispose()
