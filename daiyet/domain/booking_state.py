"""Booking state machine."""

from enum import Enum

from daiyet.core.exceptions import InvalidBookingStatus, ValidationError


class BookingStatus(str, Enum):
    """Booking lifecycle states."""

    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    CANCELLED = "CANCELLED"
    COMPLETED = "COMPLETED"


BOOKING_TRANSITIONS = {
    BookingStatus.PENDING: {BookingStatus.CONFIRMED, BookingStatus.CANCELLED},
    BookingStatus.CONFIRMED: {BookingStatus.COMPLETED, BookingStatus.CANCELLED},
    BookingStatus.COMPLETED: set(),
    BookingStatus.CANCELLED: set(),
}


def can_transition(current: str, target: str) -> bool:
    allowed = BOOKING_TRANSITIONS.get(BookingStatus(current), set())
    return BookingStatus(target) in allowed


def assert_booking_transition(current: str, target: str) -> None:
    if not can_transition(current, target):
        raise ValidationError(
            f"Invalid booking transition: {current} -> {target}"
        )


def assert_can_cancel(current: str) -> None:
    """Reject cancellation of a booking that is already closed."""
    if current == BookingStatus.CANCELLED:
        raise InvalidBookingStatus("Booking already canceled")
    if current == BookingStatus.COMPLETED:
        raise InvalidBookingStatus("Cannot cancel completed booking")
