"""Onboarding wizard endpoints."""

import logging
from datetime import UTC, datetime
from typing import Annotated, Any

from fastapi import APIRouter, Depends, Request
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from daiyet.api.deps import get_current_user, get_db, get_user_cache
from daiyet.core.cache import UserCache
from daiyet.core.exceptions import BadRequestError, NotFoundError
from daiyet.domain.onboarding_state import (
    OnboardingStage,
    is_valid_stage,
    next_stage,
    previous_stage,
)
from daiyet.domain.tenant_scope import TenantContext
from daiyet.models import OnboardingProgress, User
from daiyet.schemas.user import (
    OnboardingProgressRequest,
    OnboardingProgressResponse,
    UserResponse,
)
from daiyet.services.audit_service import AuditAction, audit_service

logger = logging.getLogger(__name__)

router = APIRouter()


def _progress_response(
    stage: str,
    form_data: dict[str, Any] | None,
    completed_at: datetime | str | None = None,
) -> OnboardingProgressResponse:
    current = OnboardingStage(stage)
    following = next_stage(current)
    preceding = previous_stage(current)
    return OnboardingProgressResponse(
        current_stage=current.value,
        form_data=form_data or {},
        next_stage=following.value if following else None,
        previous_stage=preceding.value if preceding else None,
        completed_at=completed_at,
    )


async def _get_progress_row(db: AsyncSession, user_id) -> OnboardingProgress | None:
    result = await db.execute(
        select(OnboardingProgress).where(OnboardingProgress.user_id == user_id)
    )
    return result.scalar_one_or_none()


def _cache_entry(progress: OnboardingProgress) -> dict[str, Any]:
    return {
        "current_stage": progress.current_stage,
        "form_data": progress.form_data or {},
        "completed_at": progress.completed_at.isoformat() if progress.completed_at else None,
    }


@router.get("/progress", response_model=OnboardingProgressResponse)
async def get_progress(
    current_user: Annotated[TenantContext, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
    user_cache: Annotated[UserCache, Depends(get_user_cache)],
) -> OnboardingProgressResponse:
    """Return the caller's saved onboarding stage."""
    cached = await user_cache.get_onboarding(current_user.user_id)
    if cached:
        return _progress_response(
            cached["current_stage"], cached.get("form_data"), cached.get("completed_at")
        )

    progress = await _get_progress_row(db, current_user.user_id)
    if not progress:
        return _progress_response(OnboardingStage.STARTED.value, {})

    await user_cache.set_onboarding(current_user.user_id, _cache_entry(progress))
    return _progress_response(progress.current_stage, progress.form_data, progress.completed_at)


@router.post("/progress", response_model=OnboardingProgressResponse)
async def save_progress(
    data: OnboardingProgressRequest,
    current_user: Annotated[TenantContext, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
    user_cache: Annotated[UserCache, Depends(get_user_cache)],
) -> OnboardingProgressResponse:
    """Save the current stage, merging its form values into what is stored."""
    if not is_valid_stage(data.stage):
        raise BadRequestError(f"Invalid onboarding stage: {data.stage}")
    if data.stage == OnboardingStage.COMPLETED:
        raise BadRequestError("Use the complete endpoint to finish onboarding")

    progress = await _get_progress_row(db, current_user.user_id)
    if progress is None:
        progress = OnboardingProgress(user_id=current_user.user_id, form_data={})
        db.add(progress)

    progress.current_stage = data.stage
    progress.form_data = {**(progress.form_data or {}), **data.form_data}
    progress.updated_at = datetime.now(UTC)
    await db.flush()

    await user_cache.set_onboarding(current_user.user_id, _cache_entry(progress))
    return _progress_response(progress.current_stage, progress.form_data, progress.completed_at)


@router.post("/complete", response_model=UserResponse)
async def complete_onboarding(
    request: Request,
    current_user: Annotated[TenantContext, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
    user_cache: Annotated[UserCache, Depends(get_user_cache)],
) -> User:
    """Apply the saved form to the profile and activate the account."""
    progress = await _get_progress_row(db, current_user.user_id)
    form_data = (progress.form_data if progress else None) or {}
    if not form_data.get("termsAccepted"):
        raise BadRequestError("Terms must be accepted to complete onboarding")

    user = await db.get(User, current_user.user_id)
    if not user:
        raise NotFoundError("User", str(current_user.user_id))

    if form_data.get("fullName"):
        user.name = form_data["fullName"]
    if form_data.get("bio"):
        user.bio = form_data["bio"]
    if form_data.get("profileImage"):
        user.image = form_data["profileImage"]
    previous_status = user.account_status
    user.account_status = "ACTIVE"
    user.updated_at = datetime.now(UTC)

    now = datetime.now(UTC)
    progress.current_stage = OnboardingStage.COMPLETED.value
    progress.completed_at = now
    progress.updated_at = now
    await audit_service.log_status_change(
        db,
        user.id,
        AuditAction.ONBOARDING_COMPLETED,
        resource_type="user",
        resource_id=user.id,
        old_status=previous_status,
        new_status=user.account_status,
        request=request,
    )
    await db.flush()

    await user_cache.invalidate(current_user.user_id)
    logger.info(f"User {user.id} completed onboarding")
    await db.refresh(user)
    return user
