"""Booking-related Pydantic schemas."""

from datetime import datetime
from uuid import UUID

from pydantic import AwareDatetime, BaseModel, ConfigDict, Field, field_validator


class EventTypeCreate(BaseModel):
    """Schema for a provider publishing a consultation type."""

    title: str = Field(..., min_length=1, max_length=200)
    description: str | None = Field(None, max_length=2000)
    length_minutes: int = Field(default=30, ge=10, le=240)
    price: int = Field(..., ge=0, description="Price in kobo")


class EventTypeResponse(BaseModel):
    """Schema for event type response."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    user_id: UUID
    title: str
    description: str | None = None
    length_minutes: int
    price: int
    currency: str
    is_active: bool


class BookingCreate(BaseModel):
    """Schema for creating a booking."""

    event_type_id: UUID
    start_time: AwareDatetime
    end_time: AwareDatetime
    notes: str | None = Field(None, max_length=1000)

    @field_validator("end_time")
    @classmethod
    def validate_end_time(cls, v: datetime, info) -> datetime:
        start_time = info.data.get("start_time")
        if start_time and v <= start_time:
            raise ValueError("end_time must be after start_time")
        return v


class BookingCancelRequest(BaseModel):
    """Schema for cancelling a booking."""

    reason: str | None = Field(None, max_length=1000)


class BookingResponse(BaseModel):
    """Schema for booking response."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    user_id: UUID
    dietitian_id: UUID
    event_type_id: UUID | None = None
    title: str
    description: str | None = None
    start_time: datetime
    end_time: datetime
    status: str
    meeting_link: str | None = None
    cancelled_by: str | None = None
    cancellation_reason: str | None = None
    confirmed_at: datetime | None = None
    cancelled_at: datetime | None = None
    completed_at: datetime | None = None
    created_at: datetime


class BookingListResponse(BaseModel):
    """Schema for paginated booking list."""

    items: list[BookingResponse]
    total: int
    page: int
    page_size: int
