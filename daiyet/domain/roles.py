"""Account roles."""

from enum import Enum


class Role(str, Enum):
    """Tenant roles."""

    USER = "USER"
    DIETITIAN = "DIETITIAN"
    THERAPIST = "THERAPIST"
    ADMIN = "ADMIN"


PROVIDER_ROLES = frozenset({Role.DIETITIAN, Role.THERAPIST})


def is_provider(role: str) -> bool:
    return role in PROVIDER_ROLES
