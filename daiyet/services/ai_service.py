"""AI service for session note drafting.

CRITICAL: AI is ASSISTIVE ONLY.
- AI drafts, the therapist decides
- Drafts are flagged ``is_ai_generated`` until a therapist reviews them
- Only de-identified transcripts are sent to the language model
"""

import json
import logging
import re
from typing import Any

import httpx
from anthropic import AsyncAnthropic

from daiyet.config import settings
from daiyet.core.exceptions import ExternalServiceError

logger = logging.getLogger(__name__)

TRANSCRIPTION_PROMPT = (
    "This is a therapy session recording. "
    "The conversation is between a therapist and a client."
)

SOAP_FIELDS = [
    "subjective",
    "objective",
    "assessment",
    "plan",
    "patientComplaint",
    "personalHistory",
    "familyHistory",
    "presentation",
    "formulationAndDiagnosis",
    "treatmentPlan",
    "assignments",
]

SOAP_SYSTEM_PROMPT = """You are a clinical documentation assistant that drafts SOAP (Subjective, Objective, Assessment, Plan) notes for therapy sessions.

Draft a structured note from the session transcript. Focus on:
- Subjective: the client's reported symptoms, concerns and experiences
- Objective: observable behaviour, mood, appearance and clinical observations
- Assessment: clinical interpretation and diagnostic considerations
- Plan: treatment recommendations, interventions and next steps

Also extract:
- patientComplaint: main presenting issue
- personalHistory: relevant personal background
- familyHistory: relevant family background
- presentation: how the client presented in the session
- formulationAndDiagnosis: clinical formulation and diagnostic considerations
- treatmentPlan: recommended therapeutic interventions
- assignments: homework or tasks given to the client

Placeholders such as [PATIENT_NAME] and [LOCATION] must be kept verbatim.
Respond with a single JSON object and nothing else."""

_FENCED_JSON = re.compile(r"```(?:json)?\s*(\{[\s\S]*\})\s*```")


def parse_soap_note(content: str) -> dict[str, str]:
    """Extract the note fields from a model reply.

    Raises:
        ValueError: If no JSON object can be parsed
    """
    try:
        raw = json.loads(content)
    except json.JSONDecodeError:
        match = _FENCED_JSON.search(content)
        if not match:
            raise ValueError("Failed to parse SOAP note from model response")
        raw = json.loads(match.group(1))

    if not isinstance(raw, dict):
        raise ValueError("SOAP note must be a JSON object")
    return {key: str(raw[key]) for key in SOAP_FIELDS if raw.get(key)}


class AIService:
    """Transcription and note drafting."""

    def __init__(self, http_client: httpx.AsyncClient | None = None) -> None:
        """Initialize the AI service."""
        self.client = AsyncAnthropic(api_key=settings.anthropic_api_key) if settings.anthropic_api_key else None
        self.model = settings.claude_model
        self.max_tokens = settings.claude_max_tokens
        self._http_client = http_client

    @property
    def http_client(self) -> httpx.AsyncClient:
        """Lazy-load HTTP client."""
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(timeout=120.0)
        return self._http_client

    def _check_client(self) -> None:
        """Ensure API client is configured."""
        if not self.client:
            raise ValueError("Claude API key not configured")

    async def transcribe_audio_url(self, audio_url: str, language: str = "en") -> str:
        """Download a recording and transcribe it with Whisper.

        Args:
            audio_url: Signed URL of the session recording
            language: ISO language hint

        Returns:
            str: Transcript text
        """
        if not settings.openai_api_key:
            raise ValueError("Transcription API key not configured")

        try:
            audio = await self.http_client.get(audio_url)
            audio.raise_for_status()

            response = await self.http_client.post(
                settings.transcription_api_url,
                headers={"Authorization": f"Bearer {settings.openai_api_key}"},
                data={
                    "model": settings.transcription_model,
                    "language": language,
                    "response_format": "json",
                    "temperature": "0",
                    "prompt": TRANSCRIPTION_PROMPT,
                },
                files={"file": ("audio.webm", audio.content, audio.headers.get("content-type", "audio/webm"))},
            )
        except httpx.HTTPError as e:
            raise ExternalServiceError("transcription", str(e)) from e

        if response.status_code != 200:
            raise ExternalServiceError("transcription", f"HTTP {response.status_code}: {response.text}")

        text = response.json().get("text", "")
        logger.info(f"Transcribed {len(text)} characters from session recording")
        return text

    async def generate_soap_note(
        self,
        transcript: str,
        duration_minutes: int | None = None,
        session_type: str | None = None,
    ) -> dict[str, str]:
        """Draft a structured note from a de-identified transcript.

        Args:
            transcript: De-identified transcript
            duration_minutes: Session length
            session_type: e.g. "Individual Therapy"

        Returns:
            dict: Note fields keyed by their camelCase names
        """
        self._check_client()

        context: list[str] = []
        if duration_minutes:
            context.append(f"Session duration: {duration_minutes} minutes")
        if session_type:
            context.append(f"Session type: {session_type}")

        prompt = f"""Draft a SOAP note from this therapy session transcript:

{transcript}

{chr(10).join(context)}

Return a JSON object with exactly these keys: {", ".join(SOAP_FIELDS)}."""

        response = await self.client.messages.create(
            model=self.model,
            max_tokens=self.max_tokens,
            temperature=0.3,
            system=SOAP_SYSTEM_PROMPT,
            messages=[{"role": "user", "content": prompt}],
        )

        text = response.content[0].text.strip()
        return parse_soap_note(text)


def soap_to_columns(note: dict[str, Any]) -> dict[str, str | None]:
    """Map drafted note fields onto ``SessionNote`` columns."""
    return {
        "patient_complaint": note.get("patientComplaint") or note.get("subjective"),
        "personal_history": note.get("personalHistory"),
        "family_history": note.get("familyHistory"),
        "presentation": note.get("presentation") or note.get("objective"),
        "formulation_and_diagnosis": note.get("formulationAndDiagnosis") or note.get("assessment"),
        "treatment_plan": note.get("treatmentPlan") or note.get("plan"),
        "assignments": note.get("assignments"),
    }


ai_service = AIService()
