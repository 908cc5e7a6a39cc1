"""Payment-related database models."""

from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Integer, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from daiyet.database import Base, JSONType


class Payment(Base):
    """Paystack payment for a booking, keyed by the Paystack reference."""

    __tablename__ = "payments"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    booking_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("bookings.id"), nullable=False, index=True
    )
    # Assigned when Paystack checkout is initialized
    paystack_ref: Mapped[str | None] = mapped_column(String(100), unique=True, index=True)

    # Amount in kobo
    amount: Mapped[int] = mapped_column(Integer, nullable=False)
    currency: Mapped[str] = mapped_column(String(3), default="NGN")

    status: Mapped[str] = mapped_column(
        String(20), default="PENDING", index=True
    )  # PENDING, SUCCESS

    gateway_response: Mapped[dict | None] = mapped_column(JSONType)

    paid_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )
