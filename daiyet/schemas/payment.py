"""Payment-related Pydantic schemas."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class PaymentInitializeRequest(BaseModel):
    """Schema for starting a Paystack checkout."""

    booking_id: UUID


class PaymentInitializeResponse(BaseModel):
    """Hosted checkout handle."""

    authorization_url: str
    reference: str


class PaymentVerifyRequest(BaseModel):
    """Schema for verifying a payment by reference."""

    reference: str = Field(..., min_length=1, max_length=100)


class PaymentResponse(BaseModel):
    """Schema for payment response."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    booking_id: UUID
    paystack_ref: str | None = None
    amount: int
    currency: str
    status: str
    paid_at: datetime | None = None
    created_at: datetime


class PaymentVerifyResponse(BaseModel):
    """Verified payment."""

    payment: PaymentResponse
