"""Shared test configuration and fixtures.

Key principles:
- All HTTP calls go through the local ASGI app.
- Each test gets freshly created tables in a throwaway SQLite database.
- Outbound collaborators (video rooms, email queue) are replaced by fakes.
- AnyIO is the single async runner via @pytest.mark.anyio.
"""

import os
import tempfile
import uuid
from collections.abc import AsyncGenerator
from datetime import UTC, datetime
from typing import Any

_TEST_DIR = tempfile.mkdtemp(prefix="daiyet-tests-")
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_TEST_DIR}/test.db"
os.environ["ENVIRONMENT"] = "test"
os.environ["PAYSTACK_SECRET_KEY"] = "sk_test_secret"
os.environ["JWT_SECRET_KEY"] = "test-jwt-secret"
os.environ["JWT_AUDIENCE"] = "authenticated"
os.environ["CACHE_BACKEND"] = "memory"

import httpx
import pytest
from httpx import ASGITransport
from jose import jwt

from daiyet.api.deps import get_email_queue, get_room_service
from daiyet.config import settings
from daiyet.core.cache import MemoryCache
from daiyet.core.exceptions import ExternalServiceError
from daiyet.core.security import hmac_sha512_hex
from daiyet.database import Base, engine, get_db_context
from daiyet.main import app
from daiyet.models import Booking, EventType, Payment, User
from daiyet.services.notification_service import EmailJob, EmailQueue


class FakeRoomService:
    """Records room requests instead of calling Daily.co."""

    def __init__(self) -> None:
        self.calls: list[dict[str, Any]] = []
        self.fail = False
        self.url = "https://daiyet.daily.co/test-room"

    async def create_room(self, name: str, expires_at: datetime) -> str:
        self.calls.append({"name": name, "expires_at": expires_at})
        if self.fail:
            raise ExternalServiceError("daily", "HTTP 500: boom")
        return self.url


class FakeEmailQueue(EmailQueue):
    """Collects jobs instead of handing them to Celery."""

    def __init__(self) -> None:
        self.jobs: list[EmailJob] = []

    async def enqueue(self, job: EmailJob) -> None:
        self.jobs.append(job)


@pytest.fixture(scope="session")
def anyio_backend() -> str:
    """Force pytest-anyio to use asyncio event loop."""
    return "asyncio"


@pytest.fixture(autouse=True)
async def database(anyio_backend) -> AsyncGenerator[None, None]:
    """Fresh tables for every test."""
    import daiyet.models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)
    try:
        yield
    finally:
        await engine.dispose()


@pytest.fixture
def room_service() -> FakeRoomService:
    return FakeRoomService()


@pytest.fixture
def email_queue() -> FakeEmailQueue:
    return FakeEmailQueue()


@pytest.fixture
async def app_with_overrides(room_service, email_queue) -> AsyncGenerator[Any, None]:
    """App whose outbound collaborators are fakes and whose cache starts empty."""
    app.state.cache = MemoryCache(settings.cache_default_ttl_seconds)
    app.dependency_overrides[get_room_service] = lambda: room_service
    app.dependency_overrides[get_email_queue] = lambda: email_queue
    try:
        yield app
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
async def async_client(app_with_overrides) -> AsyncGenerator[httpx.AsyncClient, None]:
    """Async HTTP client bound to the FastAPI app instance."""
    transport = ASGITransport(app=app_with_overrides)
    async with httpx.AsyncClient(transport=transport, base_url="http://test", timeout=30.0) as client:
        yield client


# ==================== DATA HELPERS ====================


def make_token(user_id: uuid.UUID) -> str:
    return jwt.encode(
        {"sub": str(user_id), "aud": "authenticated"},
        settings.jwt_secret_key,
        algorithm="HS256",
    )


def auth_headers(user_id: uuid.UUID) -> dict[str, str]:
    return {"Authorization": f"Bearer {make_token(user_id)}"}


def sign_body(body: bytes) -> str:
    return hmac_sha512_hex(settings.paystack_secret_key, body)


async def create_user(
    email: str,
    role: str = "USER",
    name: str | None = None,
    account_status: str = "ACTIVE",
) -> User:
    async with get_db_context() as db:
        user = User(email=email, role=role, name=name, account_status=account_status)
        db.add(user)
    return user


async def create_event_type(provider: User, price: int = 500000, title: str = "Nutrition Consultation") -> EventType:
    async with get_db_context() as db:
        event_type = EventType(
            user_id=provider.id,
            title=title,
            length_minutes=30,
            price=price,
            currency="NGN",
            is_active=True,
        )
        db.add(event_type)
    return event_type


async def create_booking(
    client: User,
    provider: User,
    event_type: EventType | None = None,
    status: str = "PENDING",
    start_time: datetime = datetime(2025, 6, 1, 10, 0, tzinfo=UTC),
    end_time: datetime = datetime(2025, 6, 1, 10, 30, tzinfo=UTC),
    title: str = "Nutrition Consultation",
) -> Booking:
    async with get_db_context() as db:
        booking = Booking(
            user_id=client.id,
            dietitian_id=provider.id,
            event_type_id=event_type.id if event_type else None,
            title=title,
            start_time=start_time,
            end_time=end_time,
            status=status,
        )
        db.add(booking)
    return booking


async def create_payment(
    booking: Booking,
    reference: str = "ref_123",
    amount: int = 500000,
    status: str = "PENDING",
) -> Payment:
    async with get_db_context() as db:
        payment = Payment(
            booking_id=booking.id,
            paystack_ref=reference,
            amount=amount,
            currency="NGN",
            status=status,
        )
        db.add(payment)
    return payment


async def load(model, pk):
    async with get_db_context() as db:
        return await db.get(model, pk)


@pytest.fixture
async def consultation() -> dict[str, Any]:
    """Client, dietitian, event type, PENDING booking and PENDING payment ``ref_123``."""
    client = await create_user("client@example.com", name="Ada Client")
    provider = await create_user("dietitian@example.com", role="DIETITIAN", name="Dr. Bola")
    event_type = await create_event_type(provider)
    booking = await create_booking(client, provider, event_type)
    payment = await create_payment(booking)
    return {
        "client": client,
        "provider": provider,
        "event_type": event_type,
        "booking": booking,
        "payment": payment,
    }
