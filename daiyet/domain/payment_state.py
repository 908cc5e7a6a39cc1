"""Payment state machine."""

from enum import Enum

from daiyet.core.exceptions import ValidationError


class PaymentStatus(str, Enum):
    """Payment states. SUCCESS is reached exactly once per reference."""

    PENDING = "PENDING"
    SUCCESS = "SUCCESS"


PAYMENT_TRANSITIONS = {
    PaymentStatus.PENDING: {PaymentStatus.SUCCESS},
    PaymentStatus.SUCCESS: set(),
}


def assert_payment_transition(current: str, target: str) -> None:
    allowed = PAYMENT_TRANSITIONS.get(PaymentStatus(current), set())
    if PaymentStatus(target) not in allowed:
        raise ValidationError(
            f"Invalid payment transition: {current} -> {target}"
        )
