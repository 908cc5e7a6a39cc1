"""Session note and meal plan schemas."""

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class SessionNoteCreate(BaseModel):
    """Open a pending note for a booking."""

    booking_id: UUID


class SessionNoteAudio(BaseModel):
    """Attach a session recording."""

    audio_recording_url: str = Field(..., min_length=1)


class SessionNoteUpdate(BaseModel):
    """Therapist-authored note fields."""

    patient_complaint: str | None = None
    personal_history: str | None = None
    family_history: str | None = None
    presentation: str | None = None
    formulation_and_diagnosis: str | None = None
    treatment_plan: str | None = None
    assignments: str | None = None


class SessionNoteResponse(BaseModel):
    """Schema for session note response."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    booking_id: UUID
    therapist_id: UUID
    client_id: UUID
    client_name: str | None = None
    session_number: int
    session_date: datetime
    session_duration_minutes: int | None = None
    audio_recording_url: str | None = None
    transcription_status: str | None = None
    ai_processing_status: str | None = None
    ai_generated_note: dict[str, Any] | None = None
    processing_error: str | None = None
    patient_complaint: str | None = None
    personal_history: str | None = None
    family_history: str | None = None
    presentation: str | None = None
    formulation_and_diagnosis: str | None = None
    treatment_plan: str | None = None
    assignments: str | None = None
    is_ai_generated: bool
    therapist_reviewed: bool
    therapist_reviewed_at: datetime | None = None
    status: str
    completed_at: datetime | None = None


class MealPlanCreate(BaseModel):
    """Send a meal plan to a client."""

    user_id: UUID
    booking_id: UUID | None = None
    title: str = Field(..., min_length=1, max_length=200)
    description: str | None = Field(None, max_length=5000)
    file_url: str | None = None


class MealPlanResponse(BaseModel):
    """Schema for meal plan response."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    dietitian_id: UUID
    user_id: UUID
    booking_id: UUID | None = None
    title: str
    description: str | None = None
    file_url: str | None = None
    status: str
    sent_at: datetime
    viewed_at: datetime | None = None
