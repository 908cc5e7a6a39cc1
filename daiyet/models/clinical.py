"""Session notes, meal plans and onboarding progress."""

from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import Boolean, DateTime, ForeignKey, Integer, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from daiyet.database import Base, JSONType


class SessionNote(Base):
    """Therapist note for a booked session, optionally AI-drafted."""

    __tablename__ = "session_notes"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    booking_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("bookings.id"), unique=True, nullable=False, index=True
    )
    therapist_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id"), nullable=False, index=True
    )
    client_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id"), nullable=False, index=True
    )
    client_name: Mapped[str | None] = mapped_column(String(200))
    session_number: Mapped[int] = mapped_column(Integer, default=1)
    session_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    session_duration_minutes: Mapped[int | None] = mapped_column(Integer)

    # Audio + AI pipeline
    audio_recording_url: Mapped[str | None] = mapped_column(Text)
    transcription_status: Mapped[str | None] = mapped_column(
        String(20)
    )  # PENDING, PROCESSING, COMPLETED, FAILED
    ai_processing_status: Mapped[str | None] = mapped_column(String(20))
    transcription_text: Mapped[str | None] = mapped_column(Text)
    de_identified_text: Mapped[str | None] = mapped_column(Text)
    ai_generated_note: Mapped[dict | None] = mapped_column(JSONType)
    processing_error: Mapped[str | None] = mapped_column(Text)

    # Note body
    patient_complaint: Mapped[str | None] = mapped_column(Text)
    personal_history: Mapped[str | None] = mapped_column(Text)
    family_history: Mapped[str | None] = mapped_column(Text)
    presentation: Mapped[str | None] = mapped_column(Text)
    formulation_and_diagnosis: Mapped[str | None] = mapped_column(Text)
    treatment_plan: Mapped[str | None] = mapped_column(Text)
    assignments: Mapped[str | None] = mapped_column(Text)

    is_ai_generated: Mapped[bool] = mapped_column(Boolean, default=False)
    therapist_reviewed: Mapped[bool] = mapped_column(Boolean, default=False)
    therapist_reviewed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    status: Mapped[str] = mapped_column(String(20), default="PENDING", index=True)  # PENDING, COMPLETED
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )


class MealPlan(Base):
    """Meal plan a dietitian sends to a client."""

    __tablename__ = "meal_plans"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    dietitian_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id"), nullable=False, index=True
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id"), nullable=False, index=True
    )
    booking_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, ForeignKey("bookings.id"))
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    file_url: Mapped[str | None] = mapped_column(Text)
    status: Mapped[str] = mapped_column(String(20), default="SENT")  # SENT, VIEWED

    sent_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    viewed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))


class OnboardingProgress(Base):
    """Saved onboarding wizard state, one row per user."""

    __tablename__ = "onboarding_progress"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), unique=True, nullable=False
    )
    current_stage: Mapped[str] = mapped_column(String(30), default="STARTED")
    form_data: Mapped[dict] = mapped_column(JSONType, default=dict)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )
