"""Database models."""

from daiyet.models.audit import AuditLog
from daiyet.models.booking import Booking, EventType
from daiyet.models.clinical import MealPlan, OnboardingProgress, SessionNote
from daiyet.models.outbox import OutboxDelivery, OutboxEvent
from daiyet.models.payment import Payment
from daiyet.models.user import User

__all__ = [
    # User
    "User",
    # Booking
    "EventType",
    "Booking",
    # Payment
    "Payment",
    # Outbox
    "OutboxEvent",
    "OutboxDelivery",
    # Clinical
    "SessionNote",
    "MealPlan",
    "OnboardingProgress",
    # Audit
    "AuditLog",
]
