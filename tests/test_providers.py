"""Provider enrollment and profiles."""

from typing import Any

import pytest
from sqlalchemy import select

from conftest import auth_headers, create_user, load
from daiyet.api.v1.providers import format_dietitian_name
from daiyet.database import get_db_context
from daiyet.models import AuditLog, User


def enrollment(**overrides: Any) -> dict[str, Any]:
    form = {
        "full_name": "Bola Ade",
        "phone": "+2348012345678",
        "dob": "1990-04-12",
        "location": "Lagos",
        "license_number": "RD-1029",
        "experience": "6 years",
        "specialization": "Clinical nutrition",
        "bio": "Registered dietitian",
    }
    form.update(overrides)
    return form


@pytest.mark.parametrize(
    ("name", "expected"),
    [
        ("Bola Ade", "Bola Ade, RD"),
        ("Bola Ade, RD", "Bola Ade, RD"),
        ("  Bola Ade ,rd ", "Bola Ade ,rd"),
        (None, "Dietitian, RD"),
        ("   ", "Dietitian, RD"),
    ],
)
def test_format_dietitian_name(name, expected) -> None:
    assert format_dietitian_name(name) == expected


@pytest.mark.anyio
async def test_enroll_dietitian(async_client) -> None:
    user = await create_user("bola@example.com")

    response = await async_client.post(
        "/api/dietitians/enroll",
        json=enrollment(image_url="https://cdn.example.com/bola.png"),
        headers=auth_headers(user.id),
    )

    assert response.status_code == 200
    data = response.json()
    assert data["role"] == "DIETITIAN"
    assert data["name"] == "Bola Ade"
    assert data["image"] == "https://cdn.example.com/bola.png"

    stored = await load(User, user.id)
    assert stored.professional_info["license_number"] == "RD-1029"
    assert stored.professional_info["dob"] == "1990-04-12"
    assert "enrolled_at" in stored.professional_info

    async with get_db_context() as db:
        entry = (
            await db.execute(select(AuditLog).where(AuditLog.action == "provider_enrolled"))
        ).scalar_one()
    assert entry.old_values == {"role": "USER"}
    assert entry.new_values["role"] == "DIETITIAN"


@pytest.mark.anyio
async def test_enrolled_therapist_gets_role_access_immediately(async_client) -> None:
    user = await create_user("tunde@example.com")
    headers = auth_headers(user.id)

    # Caches the USER role
    denied = await async_client.get("/api/therapists/profile", headers=headers)
    assert denied.status_code == 403

    await async_client.post(
        "/api/therapists/enroll",
        json=enrollment(full_name="Tunde Bello", specialization="CBT"),
        headers=headers,
    )
    response = await async_client.get("/api/therapists/profile", headers=headers)

    assert response.status_code == 200
    data = response.json()
    assert data["name"] == "Tunde Bello"
    assert data["specialization"] == "CBT"
    assert data["location"] == "Lagos"


@pytest.mark.anyio
async def test_enrolling_twice_is_rejected(async_client) -> None:
    user = await create_user("rd@example.com", role="DIETITIAN")

    response = await async_client.post("/api/dietitians/enroll", json=enrollment(), headers=auth_headers(user.id))

    assert response.status_code == 400
    assert "already registered as a dietitian" in response.json()["detail"]


@pytest.mark.anyio
async def test_provider_cannot_enroll_under_another_role(async_client) -> None:
    user = await create_user("tunde@example.com", role="THERAPIST")

    response = await async_client.post("/api/dietitians/enroll", json=enrollment(), headers=auth_headers(user.id))

    assert response.status_code == 400
    assert "already registered as a therapist" in response.json()["detail"]
    stored = await load(User, user.id)
    assert stored.role == "THERAPIST"


@pytest.mark.anyio
async def test_enrollment_requires_every_field(async_client) -> None:
    user = await create_user("bola@example.com")
    form = enrollment()
    del form["license_number"]

    response = await async_client.post("/api/dietitians/enroll", json=form, headers=auth_headers(user.id))

    assert response.status_code == 422


@pytest.mark.anyio
async def test_public_dietitian_profile(async_client) -> None:
    dietitian = await create_user("rd@example.com", role="DIETITIAN", name="Bola Ade")
    client = await create_user("client@example.com", name="Ada Client")

    response = await async_client.get(f"/api/dietitians/{dietitian.id}")
    missing = await async_client.get(f"/api/dietitians/{client.id}")

    assert response.status_code == 200
    assert response.json()["name"] == "Bola Ade, RD"
    assert missing.status_code == 404
