"""User and onboarding Pydantic schemas."""

from datetime import date, datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class UserResponse(BaseModel):
    """Schema for user response."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    email: str
    name: str | None = None
    role: str
    account_status: str
    bio: str | None = None
    image: str | None = None


class OnboardingProgressRequest(BaseModel):
    """Save the current wizard stage and its form values."""

    stage: str
    form_data: dict[str, Any] = Field(default_factory=dict)


class OnboardingProgressResponse(BaseModel):
    """Saved onboarding state."""

    current_stage: str
    form_data: dict[str, Any] = Field(default_factory=dict)
    next_stage: str | None = None
    previous_stage: str | None = None
    completed_at: datetime | None = None


class RateLimitStatusResponse(BaseModel):
    """Remaining request quota for the caller."""

    limit: int
    remaining: int
    reset_at: float


class ProviderEnrollRequest(BaseModel):
    """Enrollment form for dietitians and therapists."""

    full_name: str = Field(..., min_length=1, max_length=200)
    phone: str = Field(..., min_length=1, max_length=30)
    dob: date
    location: str = Field(..., min_length=1, max_length=200)
    license_number: str = Field(..., min_length=1, max_length=100)
    experience: str = Field(..., min_length=1, max_length=100)
    specialization: str = Field(..., min_length=1, max_length=200)
    bio: str = Field(..., min_length=1, max_length=2000)
    image_url: str | None = Field(None, max_length=1000)


class ProviderProfileResponse(BaseModel):
    """Public-facing provider profile."""

    id: UUID
    name: str
    email: str
    bio: str = ""
    image: str = ""
    specialization: str = ""
    license_number: str = ""
    experience: str = ""
    location: str = ""
    qualifications: list[str] = Field(default_factory=list)
    updated_at: datetime | None = None
