"""Onboarding stages and wizard endpoints."""

import pytest

from conftest import auth_headers, create_user, load
from daiyet.domain.onboarding_state import OnboardingStage, is_valid_stage, next_stage, previous_stage
from daiyet.models import User


def test_stage_navigation() -> None:
    assert next_stage(OnboardingStage.STARTED) == OnboardingStage.PERSONAL_INFO
    assert previous_stage(OnboardingStage.TERMS) == OnboardingStage.PROFESSIONAL_INFO
    assert next_stage(OnboardingStage.COMPLETED) is None
    assert previous_stage(OnboardingStage.STARTED) is None


def test_stage_validation() -> None:
    assert is_valid_stage("TERMS")
    assert not is_valid_stage("terms")
    assert not is_valid_stage("PAYMENT")


@pytest.mark.anyio
async def test_new_user_starts_at_beginning(async_client) -> None:
    user = await create_user("new@example.com", role="DIETITIAN")

    response = await async_client.get("/api/onboarding/progress", headers=auth_headers(user.id))

    assert response.status_code == 200
    assert response.json()["current_stage"] == "STARTED"
    assert response.json()["next_stage"] == "PERSONAL_INFO"


@pytest.mark.anyio
async def test_progress_merges_form_data_across_stages(async_client) -> None:
    user = await create_user("rd@example.com", role="DIETITIAN")
    headers = auth_headers(user.id)

    await async_client.post(
        "/api/onboarding/progress",
        json={"stage": "PERSONAL_INFO", "form_data": {"fullName": "Bola Ade"}},
        headers=headers,
    )
    response = await async_client.post(
        "/api/onboarding/progress",
        json={"stage": "PROFESSIONAL_INFO", "form_data": {"bio": "Registered dietitian"}},
        headers=headers,
    )

    assert response.status_code == 200
    body = response.json()
    assert body["current_stage"] == "PROFESSIONAL_INFO"
    assert body["form_data"] == {"fullName": "Bola Ade", "bio": "Registered dietitian"}
    assert body["previous_stage"] == "PERSONAL_INFO"

    fetched = await async_client.get("/api/onboarding/progress", headers=headers)
    assert fetched.json()["form_data"] == {"fullName": "Bola Ade", "bio": "Registered dietitian"}


@pytest.mark.anyio
async def test_invalid_stage_is_rejected(async_client) -> None:
    user = await create_user("rd@example.com", role="DIETITIAN")

    response = await async_client.post(
        "/api/onboarding/progress",
        json={"stage": "NOPE", "form_data": {}},
        headers=auth_headers(user.id),
    )

    assert response.status_code == 400


@pytest.mark.anyio
async def test_complete_requires_terms(async_client) -> None:
    user = await create_user("rd@example.com", role="DIETITIAN")
    headers = auth_headers(user.id)
    await async_client.post(
        "/api/onboarding/progress",
        json={"stage": "TERMS", "form_data": {"fullName": "Bola Ade"}},
        headers=headers,
    )

    response = await async_client.post("/api/onboarding/complete", headers=headers)

    assert response.status_code == 400


@pytest.mark.anyio
async def test_complete_applies_profile_and_activates(async_client) -> None:
    user = await create_user(
        "rd@example.com", role="DIETITIAN", account_status="PENDING_VERIFICATION"
    )
    headers = auth_headers(user.id)
    await async_client.post(
        "/api/onboarding/progress",
        json={
            "stage": "TERMS",
            "form_data": {
                "fullName": "Bola Ade",
                "bio": "Registered dietitian",
                "profileImage": "https://cdn.example.com/bola.png",
                "termsAccepted": True,
            },
        },
        headers=headers,
    )

    response = await async_client.post("/api/onboarding/complete", headers=headers)

    assert response.status_code == 200
    assert response.json()["name"] == "Bola Ade"
    assert response.json()["account_status"] == "ACTIVE"

    stored = await load(User, user.id)
    assert stored.image == "https://cdn.example.com/bola.png"

    progress = await async_client.get("/api/onboarding/progress", headers=headers)
    assert progress.json()["current_stage"] == "COMPLETED"
    assert progress.json()["next_stage"] is None

    profile = await async_client.get("/api/users/me", headers=headers)
    assert profile.json()["account_status"] == "ACTIVE"


@pytest.mark.anyio
async def test_cached_progress_keeps_completion_time(async_client) -> None:
    user = await create_user("rd@example.com", role="DIETITIAN")
    headers = auth_headers(user.id)
    await async_client.post(
        "/api/onboarding/progress",
        json={"stage": "TERMS", "form_data": {"termsAccepted": True}},
        headers=headers,
    )
    await async_client.post("/api/onboarding/complete", headers=headers)

    from_db = await async_client.get("/api/onboarding/progress", headers=headers)
    from_cache = await async_client.get("/api/onboarding/progress", headers=headers)

    assert from_db.json()["completed_at"] is not None
    assert from_cache.json()["completed_at"] == from_db.json()["completed_at"]
