"""Provider enrollment and profile endpoints."""

import logging
import re
from datetime import UTC, datetime
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from daiyet.api.deps import get_current_user, get_db, get_user_cache, require_therapist
from daiyet.core.cache import UserCache
from daiyet.core.exceptions import BadRequestError, NotFoundError
from daiyet.domain.roles import Role
from daiyet.domain.tenant_scope import TenantContext
from daiyet.models import User
from daiyet.schemas.user import ProviderEnrollRequest, ProviderProfileResponse, UserResponse
from daiyet.services.audit_service import AuditAction, audit_service

logger = logging.getLogger(__name__)

router = APIRouter()

_RD_SUFFIX = re.compile(r",\s*RD$", re.IGNORECASE)


def format_dietitian_name(name: str | None) -> str:
    """Display name with the ", RD" credential."""
    if not name or not name.strip():
        return "Dietitian, RD"
    name = name.strip()
    if _RD_SUFFIX.search(name):
        return name
    return f"{name}, RD"


def _profile_response(user: User, name: str | None = None) -> ProviderProfileResponse:
    info = user.professional_info or {}
    return ProviderProfileResponse(
        id=user.id,
        name=name if name is not None else user.name or "",
        email=user.email or "",
        bio=user.bio or "",
        image=user.image or "",
        specialization=info.get("specialization", ""),
        license_number=info.get("license_number", ""),
        experience=info.get("experience", ""),
        location=info.get("location", ""),
        qualifications=info.get("qualifications", []),
        updated_at=user.updated_at,
    )


async def _enroll(
    role: Role,
    data: ProviderEnrollRequest,
    request: Request,
    current_user: TenantContext,
    db: AsyncSession,
    user_cache: UserCache,
) -> User:
    user = await db.get(User, current_user.user_id)
    if not user:
        raise NotFoundError("User", str(current_user.user_id))

    if user.role == role:
        raise BadRequestError(
            f"This email is already registered as a {role.value.lower()}. "
            "Please login to access your account."
        )
    if user.role != Role.USER:
        raise BadRequestError(
            f"This email is already registered as a {user.role.lower()}. "
            "Please login to access your account."
        )

    previous_role = user.role
    now = datetime.now(UTC)
    user.name = data.full_name
    user.bio = data.bio
    if data.image_url:
        user.image = data.image_url
    user.role = role.value
    user.account_status = "ACTIVE"
    user.professional_info = {
        "phone": data.phone,
        "dob": data.dob.isoformat(),
        "location": data.location,
        "license_number": data.license_number,
        "experience": data.experience,
        "specialization": data.specialization,
        "enrolled_at": now.isoformat(),
    }
    user.updated_at = now

    await audit_service.log_action(
        db,
        user.id,
        AuditAction.PROVIDER_ENROLLED,
        resource_type="user",
        resource_id=user.id,
        old_values={"role": previous_role},
        new_values={
            "role": role.value,
            "license_number": data.license_number,
            "specialization": data.specialization,
        },
        request=request,
    )
    await db.flush()

    # Role changed; drop the cached auth context
    await user_cache.invalidate(user.id)
    logger.info(f"User {user.id} enrolled as {role.value}")
    await db.refresh(user)
    return user


@router.post("/dietitians/enroll", response_model=UserResponse)
async def enroll_dietitian(
    data: ProviderEnrollRequest,
    request: Request,
    current_user: Annotated[TenantContext, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
    user_cache: Annotated[UserCache, Depends(get_user_cache)],
) -> User:
    """Enroll the signed-in account as a dietitian."""
    return await _enroll(Role.DIETITIAN, data, request, current_user, db, user_cache)


@router.post("/therapists/enroll", response_model=UserResponse)
async def enroll_therapist(
    data: ProviderEnrollRequest,
    request: Request,
    current_user: Annotated[TenantContext, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
    user_cache: Annotated[UserCache, Depends(get_user_cache)],
) -> User:
    """Enroll the signed-in account as a therapist."""
    return await _enroll(Role.THERAPIST, data, request, current_user, db, user_cache)


@router.get("/therapists/profile", response_model=ProviderProfileResponse)
async def get_therapist_profile(
    current_user: Annotated[TenantContext, Depends(require_therapist)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> ProviderProfileResponse:
    """The calling therapist's own profile."""
    user = await db.get(User, current_user.user_id)
    if not user:
        raise NotFoundError("Therapist profile", str(current_user.user_id))
    return _profile_response(user)


@router.get("/dietitians/{dietitian_id}", response_model=ProviderProfileResponse)
async def get_dietitian_profile(
    dietitian_id: UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> ProviderProfileResponse:
    """Public dietitian profile."""
    user = await db.get(User, dietitian_id)
    if not user or user.role != Role.DIETITIAN:
        raise NotFoundError("Dietitian", str(dietitian_id))
    return _profile_response(user, name=format_dietitian_name(user.name))
