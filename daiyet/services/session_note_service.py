"""Session recording -> drafted note pipeline.

1. Transcribe the recording
2. De-identify the transcript
3. Draft a structured note from the de-identified text
"""

import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime

from daiyet.models import SessionNote
from daiyet.services.ai_service import AIService, ai_service, soap_to_columns
from daiyet.utils.phi import de_identify

logger = logging.getLogger(__name__)

PROCESSING = "PROCESSING"
COMPLETED = "COMPLETED"
FAILED = "FAILED"


@dataclass
class ProcessedNotes:
    """Pipeline output."""

    status: str
    transcription: str = ""
    de_identified_text: str = ""
    soap_note: dict[str, str] = field(default_factory=dict)
    error: str | None = None


class SessionNoteService:
    """Runs the AI pipeline and applies its output to a note."""

    def __init__(self, ai: AIService) -> None:
        self.ai = ai

    async def process_audio(
        self,
        audio_url: str,
        duration_minutes: int | None = None,
        session_type: str | None = "Individual Therapy",
    ) -> ProcessedNotes:
        """Transcribe, scrub and draft. Failures come back as FAILED, not raised."""
        try:
            transcription = await self.ai.transcribe_audio_url(audio_url)
            scrubbed = de_identify(transcription)
            soap_note = await self.ai.generate_soap_note(
                scrubbed,
                duration_minutes=duration_minutes,
                session_type=session_type,
            )
        except Exception as e:
            logger.error(f"Session note processing failed: {e}", exc_info=True)
            return ProcessedNotes(status=FAILED, error=str(e) or e.__class__.__name__)

        return ProcessedNotes(
            status=COMPLETED,
            transcription=transcription,
            de_identified_text=scrubbed,
            soap_note=soap_note,
        )

    @staticmethod
    def mark_processing(note: SessionNote) -> None:
        note.transcription_status = PROCESSING
        note.ai_processing_status = PROCESSING
        note.processing_error = None

    @staticmethod
    def apply_result(note: SessionNote, result: ProcessedNotes) -> None:
        """Copy pipeline output onto ``note``. Existing text is kept on failure."""
        if result.status == FAILED:
            note.transcription_status = FAILED
            note.ai_processing_status = FAILED
            note.processing_error = result.error
            return

        note.transcription_status = COMPLETED
        note.ai_processing_status = COMPLETED
        note.transcription_text = result.transcription
        note.de_identified_text = result.de_identified_text
        note.ai_generated_note = result.soap_note
        for column, value in soap_to_columns(result.soap_note).items():
            if value:
                setattr(note, column, value)
        note.is_ai_generated = True
        note.therapist_reviewed = False
        note.therapist_reviewed_at = None
        note.updated_at = datetime.now(UTC)


session_note_service = SessionNoteService(ai_service)
