"""Therapy session note endpoints."""

import logging
from datetime import UTC, datetime
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from daiyet.api.deps import (
    ai_limiter,
    get_current_user,
    get_db,
    get_session_note_service,
    require_therapist,
)
from daiyet.core.exceptions import (
    AppException,
    AuthorizationError,
    BadRequestError,
    ConflictError,
    NotFoundError,
)
from daiyet.domain.tenant_scope import ResourceKind, TenantContext, scope_query
from daiyet.models import Booking, SessionNote, User
from daiyet.schemas.clinical import (
    SessionNoteAudio,
    SessionNoteCreate,
    SessionNoteResponse,
    SessionNoteUpdate,
)
from daiyet.services.session_note_service import FAILED, SessionNoteService
from daiyet.utils.time import as_utc

logger = logging.getLogger(__name__)

router = APIRouter()


async def get_owned_note(
    note_id: UUID,
    current_user: Annotated[TenantContext, Depends(require_therapist)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> SessionNote:
    """Load a note belonging to the calling therapist."""
    note = await db.get(SessionNote, note_id)
    if not note:
        raise NotFoundError("Session note", str(note_id))
    if note.therapist_id != current_user.user_id:
        raise AuthorizationError("You can only modify your own session notes")
    return note


@router.get("/", response_model=list[SessionNoteResponse])
async def list_session_notes(
    current_user: Annotated[TenantContext, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
    status_filter: Annotated[str | None, Query(alias="status")] = None,
    client_id: Annotated[UUID | None, Query()] = None,
) -> list[SessionNote]:
    """List notes visible to the caller."""
    query = scope_query(select(SessionNote), ResourceKind.SESSION_NOTES, current_user)
    if status_filter:
        query = query.where(SessionNote.status == status_filter)
    if client_id:
        query = query.where(SessionNote.client_id == client_id)
    result = await db.execute(query.order_by(SessionNote.session_date.desc()))
    return list(result.scalars().all())


@router.post("/create-pending", response_model=SessionNoteResponse, status_code=status.HTTP_201_CREATED)
async def create_pending_note(
    data: SessionNoteCreate,
    current_user: Annotated[TenantContext, Depends(require_therapist)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> SessionNote:
    """Open an empty note for one of the therapist's bookings."""
    booking = await db.get(Booking, data.booking_id)
    if not booking:
        raise NotFoundError("Booking", str(data.booking_id))
    if booking.dietitian_id != current_user.user_id:
        raise AuthorizationError("You can only create notes for your own sessions")

    existing = await db.execute(select(SessionNote.id).where(SessionNote.booking_id == booking.id))
    if existing.first() is not None:
        raise ConflictError("A session note already exists for this booking")

    previous = await db.execute(
        select(func.count(SessionNote.id)).where(
            SessionNote.therapist_id == current_user.user_id,
            SessionNote.client_id == booking.user_id,
        )
    )
    client = await db.get(User, booking.user_id)
    duration = int((as_utc(booking.end_time) - as_utc(booking.start_time)).total_seconds() // 60)

    note = SessionNote(
        booking_id=booking.id,
        therapist_id=current_user.user_id,
        client_id=booking.user_id,
        client_name=client.name if client else None,
        session_number=previous.scalar_one() + 1,
        session_date=booking.start_time,
        session_duration_minutes=duration,
        status="PENDING",
        is_ai_generated=False,
        therapist_reviewed=False,
    )
    db.add(note)
    await db.flush()
    await db.refresh(note)
    return note


@router.put("/{note_id}", response_model=SessionNoteResponse)
async def update_session_note(
    data: SessionNoteUpdate,
    note: Annotated[SessionNote, Depends(get_owned_note)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> SessionNote:
    """Fill in the note and mark it completed."""
    for field, value in data.model_dump(exclude_unset=True).items():
        setattr(note, field, value)
    note.status = "COMPLETED"
    note.completed_at = datetime.now(UTC)
    note.updated_at = datetime.now(UTC)
    await db.flush()
    await db.refresh(note)
    return note


@router.post("/{note_id}/audio", response_model=SessionNoteResponse)
async def attach_audio(
    data: SessionNoteAudio,
    note: Annotated[SessionNote, Depends(get_owned_note)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> SessionNote:
    """Attach a session recording for transcription."""
    note.audio_recording_url = data.audio_recording_url
    note.transcription_status = "PENDING"
    note.updated_at = datetime.now(UTC)
    await db.flush()
    await db.refresh(note)
    return note


@router.post(
    "/{note_id}/process-audio",
    response_model=SessionNoteResponse,
    dependencies=[Depends(ai_limiter)],
)
async def process_audio(
    note: Annotated[SessionNote, Depends(get_owned_note)],
    db: Annotated[AsyncSession, Depends(get_db)],
    service: Annotated[SessionNoteService, Depends(get_session_note_service)],
) -> SessionNote:
    """Transcribe the recording and draft the note with AI."""
    if not note.audio_recording_url:
        raise BadRequestError("No audio recording found for this session")

    service.mark_processing(note)
    await db.commit()

    result = await service.process_audio(
        note.audio_recording_url,
        duration_minutes=note.session_duration_minutes,
    )
    service.apply_result(note, result)
    await db.commit()

    if result.status == FAILED:
        raise AppException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"AI processing failed: {result.error}",
        )

    logger.info(f"Drafted AI note for session note {note.id}")
    await db.refresh(note)
    return note


@router.post("/{note_id}/review-ai", response_model=SessionNoteResponse)
async def review_ai_note(
    note: Annotated[SessionNote, Depends(get_owned_note)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> SessionNote:
    """Record that the therapist reviewed an AI draft."""
    if not note.is_ai_generated:
        raise BadRequestError("This note was not generated by AI")

    note.therapist_reviewed = True
    note.therapist_reviewed_at = datetime.now(UTC)
    note.updated_at = datetime.now(UTC)
    await db.flush()
    await db.refresh(note)
    return note
