"""Confirmation notifications and email rendering."""

import threading
from datetime import UTC, datetime

import pytest

from conftest import create_booking, create_payment, create_user
from daiyet.database import async_session_maker
from daiyet.services.finalization_service import BookingFinalizationService
from daiyet.services.notification_service import (
    BOOKING_CONFIRMATION,
    CeleryEmailQueue,
    EmailJob,
    NotificationService,
    booking_confirmation_job,
)


def make_service(room_service, email_queue) -> BookingFinalizationService:
    return BookingFinalizationService(
        session_factory=async_session_maker,
        room_service=room_service,
        email_queue=email_queue,
    )


@pytest.mark.anyio
async def test_both_parties_receive_one_email_each(room_service, email_queue) -> None:
    client = await create_user("client@example.com", name="Ada")
    provider = await create_user("rd@example.com", role="DIETITIAN", name="Bola")
    booking = await create_booking(client, provider)
    await create_payment(booking, reference="ref_dual")

    outcome = await make_service(room_service, email_queue).finalize("ref_dual")

    assert outcome.completed
    assert [job.to for job in email_queue.jobs] == ["client@example.com", "rd@example.com"]
    assert [job.data["userName"] for job in email_queue.jobs] == ["Ada", "Bola"]


@pytest.mark.anyio
async def test_party_without_email_is_skipped(room_service, email_queue) -> None:
    client = await create_user("", name="No Email")
    provider = await create_user("rd@example.com", role="DIETITIAN")
    booking = await create_booking(client, provider)
    await create_payment(booking, reference="ref_single")

    await make_service(room_service, email_queue).finalize("ref_single")

    assert [job.to for job in email_queue.jobs] == ["rd@example.com"]
    assert email_queue.jobs[0].data["userName"] == "there"


@pytest.mark.anyio
async def test_enqueue_failure_does_not_block_confirmation(room_service) -> None:
    class BrokenQueue:
        async def enqueue(self, job):
            raise ConnectionError("broker down")

    client = await create_user("client@example.com")
    provider = await create_user("rd@example.com", role="DIETITIAN")
    booking = await create_booking(client, provider)
    await create_payment(booking, reference="ref_broker")

    outcome = await make_service(room_service, BrokenQueue()).finalize("ref_broker")

    assert outcome.completed


def test_confirmation_job_formats_date_and_time() -> None:
    job = booking_confirmation_job(
        to="client@example.com",
        user_name=None,
        event_title="Nutrition Consultation",
        start_time=datetime(2025, 6, 1, 14, 5, tzinfo=UTC),
        meeting_link="https://daiyet.daily.co/room",
    )

    assert job.template == BOOKING_CONFIRMATION
    assert job.subject == "Booking confirmed: Nutrition Consultation"
    assert job.data == {
        "userName": "there",
        "eventTitle": "Nutrition Consultation",
        "date": "June 1, 2025",
        "time": "2:05 PM UTC",
        "meetingLink": "https://daiyet.daily.co/room",
    }


def test_job_survives_task_serialization() -> None:
    job = EmailJob(to="a@example.com", subject="Hi", template=BOOKING_CONFIRMATION, data={"k": "v"})

    assert EmailJob.from_dict(job.to_dict()) == job


def test_rendered_email_without_link_mentions_later_delivery() -> None:
    job = booking_confirmation_job(
        to="client@example.com",
        user_name="Ada",
        event_title="Check-in",
        start_time=datetime(2025, 6, 1, 10, 0, tzinfo=UTC),
        meeting_link="",
    )
    service = NotificationService()

    text = service.render_text(job)
    html = service.render_html(job)

    assert "Hi Ada," in text
    assert "June 1, 2025 at 10:00 AM UTC" in text
    assert "meeting link will be shared" in text
    assert "<a href" not in html


@pytest.mark.anyio
async def test_celery_queue_publishes_off_the_event_loop(monkeypatch) -> None:
    from daiyet.tasks import send_email

    published = []

    def fake_delay(job: dict) -> None:
        published.append((job, threading.get_ident()))

    monkeypatch.setattr(send_email, "delay", fake_delay)
    job = EmailJob(to="client@example.com", subject="Hi", template=BOOKING_CONFIRMATION, data={})

    await CeleryEmailQueue().enqueue(job)

    assert len(published) == 1
    payload, thread_id = published[0]
    assert payload["to"] == "client@example.com"
    assert thread_id != threading.get_ident()
