"""Session notes and the AI drafting pipeline."""

import httpx
import pytest
import respx

from conftest import auth_headers, create_booking, create_user
from daiyet.api.deps import get_session_note_service
from daiyet.config import settings
from daiyet.core.exceptions import ExternalServiceError
from daiyet.services.ai_service import AIService, parse_soap_note, soap_to_columns
from daiyet.services.session_note_service import SessionNoteService

AUDIO_URL = "https://storage.example.com/sessions/recording.webm"


class FakeAI:
    """Stands in for transcription and drafting."""

    def __init__(self, transcript: str = "", note: dict | None = None, error: Exception | None = None) -> None:
        self.transcript = transcript
        self.note = note or {}
        self.error = error
        self.drafted_from: list[str] = []

    async def transcribe_audio_url(self, audio_url: str, language: str = "en") -> str:
        if self.error:
            raise self.error
        return self.transcript

    async def generate_soap_note(self, transcript, duration_minutes=None, session_type=None):
        self.drafted_from.append(transcript)
        return self.note


@pytest.fixture
async def therapy_session():
    client = await create_user("client@example.com", name="Ngozi Eze")
    therapist = await create_user("therapist@example.com", role="THERAPIST", name="Dr. Okafor")
    booking = await create_booking(client, therapist, status="CONFIRMED", title="Therapy")
    return {"client": client, "therapist": therapist, "booking": booking}


async def open_note(async_client, therapy_session) -> dict:
    response = await async_client.post(
        "/api/session-notes/create-pending",
        json={"booking_id": str(therapy_session["booking"].id)},
        headers=auth_headers(therapy_session["therapist"].id),
    )
    assert response.status_code == 201, response.text
    return response.json()


@pytest.mark.anyio
async def test_create_pending_note(async_client, therapy_session) -> None:
    note = await open_note(async_client, therapy_session)

    assert note["status"] == "PENDING"
    assert note["client_name"] == "Ngozi Eze"
    assert note["session_number"] == 1
    assert note["session_duration_minutes"] == 30


@pytest.mark.anyio
async def test_second_note_for_same_booking_conflicts(async_client, therapy_session) -> None:
    await open_note(async_client, therapy_session)

    response = await async_client.post(
        "/api/session-notes/create-pending",
        json={"booking_id": str(therapy_session["booking"].id)},
        headers=auth_headers(therapy_session["therapist"].id),
    )

    assert response.status_code == 409


@pytest.mark.anyio
async def test_dietitians_cannot_write_session_notes(async_client, therapy_session) -> None:
    dietitian = await create_user("rd@example.com", role="DIETITIAN")

    response = await async_client.post(
        "/api/session-notes/create-pending",
        json={"booking_id": str(therapy_session["booking"].id)},
        headers=auth_headers(dietitian.id),
    )

    assert response.status_code == 403


@pytest.mark.anyio
async def test_manual_update_completes_note(async_client, therapy_session) -> None:
    note = await open_note(async_client, therapy_session)

    response = await async_client.put(
        f"/api/session-notes/{note['id']}",
        json={"patient_complaint": "Poor sleep", "treatment_plan": "Sleep hygiene"},
        headers=auth_headers(therapy_session["therapist"].id),
    )

    assert response.status_code == 200
    assert response.json()["status"] == "COMPLETED"
    assert response.json()["patient_complaint"] == "Poor sleep"


@pytest.mark.anyio
async def test_process_audio_without_recording_is_rejected(async_client, therapy_session) -> None:
    note = await open_note(async_client, therapy_session)

    response = await async_client.post(
        f"/api/session-notes/{note['id']}/process-audio",
        headers=auth_headers(therapy_session["therapist"].id),
    )

    assert response.status_code == 400
    assert response.json() == {"detail": "No audio recording found for this session"}


@pytest.mark.anyio
async def test_process_audio_drafts_deidentified_note(async_client, app_with_overrides, therapy_session) -> None:
    ai = FakeAI(
        transcript="Ngozi from Enugu says she sleeps badly. Call 08012345678.",
        note={"subjective": "Client reports poor sleep", "plan": "Sleep diary"},
    )
    app_with_overrides.dependency_overrides[get_session_note_service] = lambda: SessionNoteService(ai)
    headers = auth_headers(therapy_session["therapist"].id)
    note = await open_note(async_client, therapy_session)
    await async_client.post(
        f"/api/session-notes/{note['id']}/audio",
        json={"audio_recording_url": AUDIO_URL},
        headers=headers,
    )

    response = await async_client.post(f"/api/session-notes/{note['id']}/process-audio", headers=headers)

    assert response.status_code == 200, response.text
    body = response.json()
    assert body["ai_processing_status"] == "COMPLETED"
    assert body["is_ai_generated"] is True
    assert body["therapist_reviewed"] is False
    assert body["patient_complaint"] == "Client reports poor sleep"
    assert body["treatment_plan"] == "Sleep diary"
    assert ai.drafted_from == ["[PATIENT_NAME] from [LOCATION] says she sleeps badly. Call [PHONE]."]

    reviewed = await async_client.post(f"/api/session-notes/{note['id']}/review-ai", headers=headers)
    assert reviewed.status_code == 200
    assert reviewed.json()["therapist_reviewed"] is True


@pytest.mark.anyio
async def test_process_audio_failure_is_recorded(async_client, app_with_overrides, therapy_session) -> None:
    ai = FakeAI(error=RuntimeError("transcription timed out"))
    app_with_overrides.dependency_overrides[get_session_note_service] = lambda: SessionNoteService(ai)
    headers = auth_headers(therapy_session["therapist"].id)
    note = await open_note(async_client, therapy_session)
    await async_client.post(
        f"/api/session-notes/{note['id']}/audio",
        json={"audio_recording_url": AUDIO_URL},
        headers=headers,
    )

    response = await async_client.post(f"/api/session-notes/{note['id']}/process-audio", headers=headers)

    assert response.status_code == 500
    assert "transcription timed out" in response.json()["detail"]

    listed = await async_client.get("/api/session-notes/", headers=headers)
    stored = listed.json()[0]
    assert stored["ai_processing_status"] == "FAILED"
    assert stored["processing_error"] == "transcription timed out"


@pytest.mark.anyio
async def test_review_of_manual_note_is_rejected(async_client, therapy_session) -> None:
    note = await open_note(async_client, therapy_session)

    response = await async_client.post(
        f"/api/session-notes/{note['id']}/review-ai",
        headers=auth_headers(therapy_session["therapist"].id),
    )

    assert response.status_code == 400


def test_parse_soap_note_accepts_fenced_json() -> None:
    reply = 'Here is the note:\n```json\n{"subjective": "Low mood", "plan": "", "extra": "x"}\n```'

    assert parse_soap_note(reply) == {"subjective": "Low mood"}


def test_parse_soap_note_rejects_prose() -> None:
    with pytest.raises(ValueError):
        parse_soap_note("I could not draft a note.")


def test_soap_fields_map_onto_columns() -> None:
    columns = soap_to_columns({"patientComplaint": "Anxiety", "assessment": "GAD", "plan": "CBT"})

    assert columns["patient_complaint"] == "Anxiety"
    assert columns["formulation_and_diagnosis"] == "GAD"
    assert columns["treatment_plan"] == "CBT"
    assert columns["family_history"] is None


@pytest.mark.anyio
@respx.mock
async def test_transcription_downloads_and_posts_audio(monkeypatch) -> None:
    monkeypatch.setattr(settings, "openai_api_key", "sk-openai-test")
    respx.get(AUDIO_URL).mock(return_value=httpx.Response(200, content=b"RIFF", headers={"content-type": "audio/wav"}))
    whisper = respx.post(settings.transcription_api_url).mock(
        return_value=httpx.Response(200, json={"text": "Hello doctor"})
    )

    text = await AIService().transcribe_audio_url(AUDIO_URL)

    assert text == "Hello doctor"
    assert whisper.called
    assert whisper.calls.last.request.headers["Authorization"] == "Bearer sk-openai-test"


@pytest.mark.anyio
@respx.mock
async def test_transcription_error_is_external_service_error(monkeypatch) -> None:
    monkeypatch.setattr(settings, "openai_api_key", "sk-openai-test")
    respx.get(AUDIO_URL).mock(return_value=httpx.Response(200, content=b"RIFF"))
    respx.post(settings.transcription_api_url).mock(return_value=httpx.Response(500, text="overloaded"))

    with pytest.raises(ExternalServiceError):
        await AIService().transcribe_audio_url(AUDIO_URL)
