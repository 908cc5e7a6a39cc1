"""Security utilities for authentication."""

import hashlib
import hmac
from typing import Any

from jose import JWTError, jwt

from daiyet.config import settings
from daiyet.core.exceptions import AuthenticationError


def verify_token(token: str) -> dict[str, Any]:
    """Verify and decode an identity-provider access token."""
    options = {"verify_aud": settings.jwt_audience is not None}
    try:
        return jwt.decode(
            token,
            settings.jwt_secret_key,
            algorithms=[settings.jwt_algorithm],
            audience=settings.jwt_audience,
            options=options,
        )
    except JWTError as e:
        raise AuthenticationError(f"Token validation failed: {str(e)}")


def hmac_sha512_hex(secret: str, body: bytes) -> str:
    """Hex HMAC-SHA512 of ``body`` keyed by ``secret``."""
    return hmac.new(secret.encode("utf-8"), body, hashlib.sha512).hexdigest()
