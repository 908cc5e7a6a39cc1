"""Pydantic schemas for API validation."""

from daiyet.schemas.admin import OutboxEventResponse, OutboxRetryResponse, PlatformStats
from daiyet.schemas.booking import (
    BookingCancelRequest,
    BookingCreate,
    BookingListResponse,
    BookingResponse,
    EventTypeCreate,
    EventTypeResponse,
)
from daiyet.schemas.clinical import (
    MealPlanCreate,
    MealPlanResponse,
    SessionNoteAudio,
    SessionNoteCreate,
    SessionNoteResponse,
    SessionNoteUpdate,
)
from daiyet.schemas.payment import (
    PaymentInitializeRequest,
    PaymentInitializeResponse,
    PaymentResponse,
    PaymentVerifyRequest,
    PaymentVerifyResponse,
)
from daiyet.schemas.user import (
    OnboardingProgressRequest,
    OnboardingProgressResponse,
    RateLimitStatusResponse,
    UserResponse,
)

__all__ = [
    # Booking
    "EventTypeCreate",
    "EventTypeResponse",
    "BookingCreate",
    "BookingCancelRequest",
    "BookingResponse",
    "BookingListResponse",
    # Payment
    "PaymentInitializeRequest",
    "PaymentInitializeResponse",
    "PaymentVerifyRequest",
    "PaymentResponse",
    "PaymentVerifyResponse",
    # User
    "UserResponse",
    "OnboardingProgressRequest",
    "OnboardingProgressResponse",
    "RateLimitStatusResponse",
    # Clinical
    "SessionNoteCreate",
    "SessionNoteAudio",
    "SessionNoteUpdate",
    "SessionNoteResponse",
    "MealPlanCreate",
    "MealPlanResponse",
    # Admin
    "PlatformStats",
    "OutboxEventResponse",
    "OutboxRetryResponse",
]
