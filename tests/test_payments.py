"""Paystack checkout initialization and post-redirect verification."""

import json

import httpx
import pytest
import respx
from sqlalchemy import select

from conftest import auth_headers, create_booking, create_event_type, create_user, load, sign_body
from daiyet.config import settings
from daiyet.database import get_db_context
from daiyet.models import Booking, Payment

INITIALIZE_URL = f"{settings.paystack_base_url}/transaction/initialize"


def verify_url(reference: str) -> str:
    return f"{settings.paystack_base_url}/transaction/verify/{reference}"


@pytest.mark.anyio
@respx.mock
async def test_initialize_creates_pending_payment(async_client) -> None:
    client = await create_user("client@example.com", name="Ada")
    provider = await create_user("rd@example.com", role="DIETITIAN")
    event_type = await create_event_type(provider, price=750000)
    booking = await create_booking(client, provider, event_type)
    route = respx.post(INITIALIZE_URL).mock(
        return_value=httpx.Response(
            200,
            json={
                "status": True,
                "message": "Authorization URL created",
                "data": {
                    "authorization_url": "https://checkout.paystack.com/abc",
                    "access_code": "abc",
                    "reference": "ref_init",
                },
            },
        )
    )

    response = await async_client.post(
        "/api/paystack/initialize",
        json={"booking_id": str(booking.id)},
        headers=auth_headers(client.id),
    )

    assert response.status_code == 200, response.text
    assert response.json() == {
        "authorization_url": "https://checkout.paystack.com/abc",
        "reference": "ref_init",
    }

    sent = json.loads(route.calls.last.request.content)
    assert sent["amount"] == 750000
    assert sent["email"] == "client@example.com"
    assert sent["metadata"]["bookingId"] == str(booking.id)
    assert route.calls.last.request.headers["Authorization"] == f"Bearer {settings.paystack_secret_key}"

    async with get_db_context() as db:
        payment = (await db.execute(select(Payment).where(Payment.paystack_ref == "ref_init"))).scalar_one()
        assert payment.status == "PENDING"
        assert payment.amount == 750000
        assert payment.booking_id == booking.id


@pytest.mark.anyio
@respx.mock
async def test_initialize_attaches_reference_to_booking_payment(async_client) -> None:
    client = await create_user("client@example.com", name="Ada")
    provider = await create_user("rd@example.com", role="DIETITIAN")
    event_type = await create_event_type(provider, price=750000)
    headers = auth_headers(client.id)
    created = await async_client.post(
        "/api/bookings/",
        json={
            "event_type_id": str(event_type.id),
            "start_time": "2030-06-01T10:00:00Z",
            "end_time": "2030-06-01T10:30:00Z",
        },
        headers=headers,
    )
    respx.post(INITIALIZE_URL).mock(
        return_value=httpx.Response(
            200,
            json={
                "status": True,
                "data": {"authorization_url": "https://checkout.paystack.com/xyz", "reference": "ref_attach"},
            },
        )
    )

    response = await async_client.post(
        "/api/paystack/initialize",
        json={"booking_id": created.json()["id"]},
        headers=headers,
    )

    assert response.status_code == 200, response.text
    async with get_db_context() as db:
        payments = (await db.execute(select(Payment))).scalars().all()
    assert len(payments) == 1
    assert payments[0].paystack_ref == "ref_attach"
    assert str(payments[0].booking_id) == created.json()["id"]
    assert payments[0].amount == 750000

@pytest.mark.anyio
@respx.mock
async def test_initialize_gateway_rejection_is_bad_gateway(async_client) -> None:
    client = await create_user("client@example.com")
    provider = await create_user("rd@example.com", role="DIETITIAN")
    booking = await create_booking(client, provider, await create_event_type(provider))
    respx.post(INITIALIZE_URL).mock(
        return_value=httpx.Response(400, json={"status": False, "message": "Invalid key"})
    )

    response = await async_client.post(
        "/api/paystack/initialize",
        json={"booking_id": str(booking.id)},
        headers=auth_headers(client.id),
    )

    assert response.status_code == 502
    assert "Invalid key" in response.json()["detail"]


@pytest.mark.anyio
async def test_initialize_for_someone_elses_booking_is_forbidden(async_client) -> None:
    client = await create_user("client@example.com")
    intruder = await create_user("intruder@example.com")
    provider = await create_user("rd@example.com", role="DIETITIAN")
    booking = await create_booking(client, provider, await create_event_type(provider))

    response = await async_client.post(
        "/api/paystack/initialize",
        json={"booking_id": str(booking.id)},
        headers=auth_headers(intruder.id),
    )

    assert response.status_code == 403


@pytest.mark.anyio
async def test_initialize_requires_pending_booking(async_client) -> None:
    client = await create_user("client@example.com")
    provider = await create_user("rd@example.com", role="DIETITIAN")
    booking = await create_booking(client, provider, await create_event_type(provider), status="CONFIRMED")

    response = await async_client.post(
        "/api/paystack/initialize",
        json={"booking_id": str(booking.id)},
        headers=auth_headers(client.id),
    )

    assert response.status_code == 400


@pytest.mark.anyio
@respx.mock
async def test_verify_finalizes_confirmed_charge(async_client, consultation, room_service, email_queue) -> None:
    respx.get(verify_url("ref_123")).mock(
        return_value=httpx.Response(
            200,
            json={"status": True, "data": {"status": "success", "reference": "ref_123"}},
        )
    )

    response = await async_client.post(
        "/api/payments/verify",
        json={"reference": "ref_123"},
        headers=auth_headers(consultation["client"].id),
    )

    assert response.status_code == 200, response.text
    assert response.json()["payment"]["status"] == "SUCCESS"
    booking = await load(Booking, consultation["booking"].id)
    assert booking.status == "CONFIRMED"
    assert len(email_queue.jobs) == 2


@pytest.mark.anyio
@respx.mock(assert_all_called=False)
async def test_verify_after_webhook_changes_nothing(async_client, consultation, room_service, email_queue) -> None:
    body = json.dumps({"event": "charge.success", "data": {"reference": "ref_123"}}).encode()
    await async_client.post(
        "/api/paystack/webhook",
        content=body,
        headers={"Content-Type": "application/json", "x-paystack-signature": sign_body(body)},
    )
    verify_route = respx.get(verify_url("ref_123"))

    response = await async_client.post(
        "/api/payments/verify",
        json={"reference": "ref_123"},
        headers=auth_headers(consultation["client"].id),
    )

    assert response.status_code == 200
    assert not verify_route.called
    assert len(room_service.calls) == 1
    assert len(email_queue.jobs) == 2


@pytest.mark.anyio
@respx.mock
async def test_verify_of_abandoned_charge_is_payment_required(async_client, consultation, email_queue) -> None:
    respx.get(verify_url("ref_123")).mock(
        return_value=httpx.Response(
            200,
            json={"status": True, "message": "Verification successful", "data": {"status": "abandoned"}},
        )
    )

    response = await async_client.post(
        "/api/payments/verify",
        json={"reference": "ref_123"},
        headers=auth_headers(consultation["client"].id),
    )

    assert response.status_code == 402
    payment = await load(Payment, consultation["payment"].id)
    assert payment.status == "PENDING"
    assert email_queue.jobs == []


@pytest.mark.anyio
async def test_verify_unknown_reference_is_not_found(async_client) -> None:
    user = await create_user("client@example.com")

    response = await async_client.post(
        "/api/payments/verify",
        json={"reference": "ref_missing"},
        headers=auth_headers(user.id),
    )

    assert response.status_code == 404


@pytest.mark.anyio
async def test_get_payment_is_scoped(async_client, consultation) -> None:
    stranger = await create_user("stranger@example.com")
    payment_id = consultation["payment"].id

    own = await async_client.get(f"/api/payments/{payment_id}", headers=auth_headers(consultation["client"].id))
    other = await async_client.get(f"/api/payments/{payment_id}", headers=auth_headers(stranger.id))

    assert own.status_code == 200
    assert own.json()["paystack_ref"] == "ref_123"
    assert other.status_code == 404

