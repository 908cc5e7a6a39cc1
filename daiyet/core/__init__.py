"""Core utilities and security modules."""

from daiyet.core.exceptions import (
    AppException,
    AuthenticationError,
    AuthorizationError,
    BadRequestError,
    ConflictError,
    ExternalServiceError,
    GatewayError,
    InvalidBookingStatus,
    NotFoundError,
    PaymentError,
    RateLimitExceeded,
    ValidationError,
)
from daiyet.core.security import hmac_sha512_hex, verify_token

__all__ = [
    "AppException",
    "AuthenticationError",
    "AuthorizationError",
    "BadRequestError",
    "ConflictError",
    "ExternalServiceError",
    "GatewayError",
    "InvalidBookingStatus",
    "NotFoundError",
    "PaymentError",
    "RateLimitExceeded",
    "ValidationError",
    "hmac_sha512_hex",
    "verify_token",
]
