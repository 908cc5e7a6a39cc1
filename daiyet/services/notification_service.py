"""Email notifications.

Request handlers and consumers build an ``EmailJob`` and hand it to an
``EmailQueue``. The Celery worker renders and delivers it via SendGrid.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import asdict, dataclass, field
from datetime import UTC, datetime
from html import escape
from typing import Any

import httpx
from fastapi.concurrency import run_in_threadpool

from daiyet.config import settings
from daiyet.core.exceptions import ExternalServiceError

logger = logging.getLogger(__name__)

BOOKING_CONFIRMATION = "booking_confirmation"
BOOKING_CANCELLED = "booking_cancelled"
MEAL_PLAN_SENT = "meal_plan_sent"


@dataclass
class EmailJob:
    """A queued transactional email."""

    to: str
    subject: str
    template: str
    data: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> "EmailJob":
        return cls(
            to=raw["to"],
            subject=raw["subject"],
            template=raw["template"],
            data=dict(raw.get("data") or {}),
        )


def format_session_date(value: datetime) -> str:
    """e.g. ``June 1, 2025``."""
    value = value.astimezone(UTC) if value.tzinfo else value
    return f"{value:%B} {value.day}, {value.year}"


def format_session_time(value: datetime) -> str:
    """e.g. ``10:00 AM UTC``."""
    value = value.astimezone(UTC) if value.tzinfo else value
    return f"{value:%I:%M %p}".lstrip("0") + " UTC"


def booking_confirmation_job(
    to: str,
    user_name: str | None,
    event_title: str,
    start_time: datetime,
    meeting_link: str,
) -> EmailJob:
    """Confirmation email for one participant of a booking."""
    return EmailJob(
        to=to,
        subject=f"Booking confirmed: {event_title}",
        template=BOOKING_CONFIRMATION,
        data={
            "userName": user_name or "there",
            "eventTitle": event_title,
            "date": format_session_date(start_time),
            "time": format_session_time(start_time),
            "meetingLink": meeting_link,
        },
    )


class EmailQueue(ABC):
    """Fire-and-forget queue for outbound email."""

    @abstractmethod
    async def enqueue(self, job: EmailJob) -> None:
        """Queue ``job`` for delivery."""


class CeleryEmailQueue(EmailQueue):
    """Queue backed by the ``send_email`` Celery task."""

    async def enqueue(self, job: EmailJob) -> None:
        from daiyet.tasks import send_email

        # delay() talks to the broker synchronously
        await run_in_threadpool(send_email.delay, job.to_dict())
        logger.info(f"Queued {job.template} email to {job.to}")


class NotificationService:
    """Renders and delivers email through SendGrid."""

    SENDGRID_URL = "https://api.sendgrid.com/v3/mail/send"

    def __init__(self) -> None:
        """Initialize notification service."""
        self._http_client: httpx.AsyncClient | None = None

    @property
    def http_client(self) -> httpx.AsyncClient:
        """Lazy-load HTTP client."""
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(timeout=30.0)
        return self._http_client

    async def close(self) -> None:
        """Close HTTP client."""
        if self._http_client:
            await self._http_client.aclose()
            self._http_client = None

    async def deliver(self, job: EmailJob) -> bool:
        """Send a queued job.

        Returns:
            bool: False when email is not configured

        Raises:
            ExternalServiceError: If SendGrid rejects or cannot be reached
        """
        if not settings.sendgrid_api_key:
            logger.warning(f"SendGrid not configured; dropping {job.template} email to {job.to}")
            return False

        payload = {
            "personalizations": [{"to": [{"email": job.to}]}],
            "from": {
                "email": settings.email_from_address,
                "name": settings.email_from_name,
            },
            "subject": job.subject,
            "content": [
                {"type": "text/plain", "value": self.render_text(job)},
                {"type": "text/html", "value": self.render_html(job)},
            ],
        }
        headers = {
            "Authorization": f"Bearer {settings.sendgrid_api_key}",
            "Content-Type": "application/json",
        }

        try:
            response = await self.http_client.post(self.SENDGRID_URL, headers=headers, json=payload)
        except httpx.HTTPError as e:
            raise ExternalServiceError("sendgrid", str(e)) from e

        if response.status_code not in (200, 202):
            raise ExternalServiceError("sendgrid", f"HTTP {response.status_code}: {response.text}")
        return True

    def _body_lines(self, job: EmailJob) -> tuple[str, list[str], str | None]:
        data = job.data
        if job.template == BOOKING_CONFIRMATION:
            lines = [
                f"Hi {data.get('userName', 'there')},",
                f"Your session \"{data.get('eventTitle', '')}\" is confirmed for "
                f"{data.get('date', '')} at {data.get('time', '')}.",
            ]
            link = data.get("meetingLink") or None
            if not link:
                lines.append("Your meeting link will be shared before the session.")
            return "Booking Confirmed", lines, link
        if job.template == BOOKING_CANCELLED:
            return (
                "Booking Cancelled",
                [
                    f"Hi {data.get('userName', 'there')},",
                    f"Your session \"{data.get('eventTitle', '')}\" on {data.get('date', '')} has been cancelled.",
                ],
                None,
            )
        if job.template == MEAL_PLAN_SENT:
            return (
                "New Meal Plan",
                [
                    f"Hi {data.get('userName', 'there')},",
                    f"{data.get('dietitianName', 'Your dietitian')} sent you a meal plan: "
                    f"{data.get('planTitle', '')}.",
                ],
                data.get("fileUrl") or None,
            )
        return job.subject, [str(value) for value in data.values()], None

    def render_text(self, job: EmailJob) -> str:
        title, lines, link = self._body_lines(job)
        parts = [title, "", *lines]
        if link:
            parts.extend(["", link])
        return "\n".join(parts)

    def render_html(self, job: EmailJob) -> str:
        """Generate simple HTML email content."""
        title, lines, link = self._body_lines(job)
        paragraphs = "".join(
            f'<p style="color: #4b5563; font-size: 16px; line-height: 1.6;">{escape(line)}</p>'
            for line in lines
        )
        button_html = ""
        if link:
            button_html = f"""
            <p style="margin-top: 24px;">
                <a href="{escape(link)}"
                   style="background-color: #16a34a; color: white; padding: 12px 24px;
                          text-decoration: none; border-radius: 6px; display: inline-block;">
                    Open
                </a>
            </p>
            """

        return f"""
        <!DOCTYPE html>
        <html>
        <head>
            <meta charset="utf-8">
            <meta name="viewport" content="width=device-width, initial-scale=1.0">
        </head>
        <body style="font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif;
                     max-width: 600px; margin: 0 auto; padding: 20px; color: #333;">
            <div style="background-color: #f9fafb; border-radius: 8px; padding: 24px;">
                <h1 style="color: #111827; font-size: 24px; margin-bottom: 16px;">{escape(title)}</h1>
                {paragraphs}
                {button_html}
            </div>
            <p style="color: #9ca3af; font-size: 12px; margin-top: 24px; text-align: center;">
                &copy; {datetime.now(UTC).year} {escape(settings.app_name)}. All rights reserved.
            </p>
        </body>
        </html>
        """


notification_service = NotificationService()
