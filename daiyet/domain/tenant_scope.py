"""Row-level tenant scoping.

Each ``ResourceKind`` maps to a function that turns the caller's
``TenantContext`` into a SQL predicate. Kinds and roles form a closed
set: a role with no rule for a kind sees nothing.
"""

from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from uuid import UUID

from sqlalchemy import ColumnElement, Select, false, select, true

from daiyet.domain.roles import Role, is_provider
from daiyet.models import Booking, EventType, MealPlan, Payment, SessionNote


@dataclass(frozen=True)
class TenantContext:
    """Authenticated caller."""

    user_id: UUID
    email: str
    role: str
    account_status: str = "ACTIVE"
    name: str | None = None

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN

    @property
    def is_provider(self) -> bool:
        return is_provider(self.role)


class ResourceKind(str, Enum):
    """Tenant-owned resources."""

    BOOKINGS = "bookings"
    EVENT_TYPES = "event_types"
    SESSION_NOTES = "session_notes"
    MEAL_PLANS = "meal_plans"
    PAYMENTS = "payments"


ScopeRule = Callable[[TenantContext], ColumnElement[bool]]


def _bookings(ctx: TenantContext) -> ColumnElement[bool]:
    if ctx.is_admin:
        return true()
    if ctx.is_provider:
        return Booking.dietitian_id == ctx.user_id
    if ctx.role == Role.USER:
        return Booking.user_id == ctx.user_id
    return false()


def _event_types(ctx: TenantContext) -> ColumnElement[bool]:
    if ctx.is_provider:
        return EventType.user_id == ctx.user_id
    if ctx.is_admin or ctx.role == Role.USER:
        return true()
    return false()


def _session_notes(ctx: TenantContext) -> ColumnElement[bool]:
    if ctx.is_admin:
        return true()
    if ctx.role == Role.THERAPIST:
        return SessionNote.therapist_id == ctx.user_id
    if ctx.role == Role.USER:
        return SessionNote.client_id == ctx.user_id
    return false()


def _meal_plans(ctx: TenantContext) -> ColumnElement[bool]:
    if ctx.is_admin:
        return true()
    if ctx.role == Role.DIETITIAN:
        return MealPlan.dietitian_id == ctx.user_id
    if ctx.role == Role.USER:
        return MealPlan.user_id == ctx.user_id
    return false()


def _payments(ctx: TenantContext) -> ColumnElement[bool]:
    if ctx.is_admin:
        return true()
    owned = select_booking_ids(ctx)
    if owned is None:
        return false()
    return Payment.booking_id.in_(owned)


def select_booking_ids(ctx: TenantContext) -> Select | None:
    """Subquery of booking ids visible to a non-admin caller."""
    if ctx.is_provider:
        column = Booking.dietitian_id
    elif ctx.role == Role.USER:
        column = Booking.user_id
    else:
        return None
    return select(Booking.id).where(column == ctx.user_id)


SCOPE_RULES: dict[ResourceKind, ScopeRule] = {
    ResourceKind.BOOKINGS: _bookings,
    ResourceKind.EVENT_TYPES: _event_types,
    ResourceKind.SESSION_NOTES: _session_notes,
    ResourceKind.MEAL_PLANS: _meal_plans,
    ResourceKind.PAYMENTS: _payments,
}


def scope_predicate(kind: ResourceKind, ctx: TenantContext) -> ColumnElement[bool]:
    return SCOPE_RULES[kind](ctx)


def scope_query(stmt: Select, kind: ResourceKind, ctx: TenantContext) -> Select:
    """Restrict ``stmt`` to rows of ``kind`` visible to ``ctx``."""
    return stmt.where(scope_predicate(kind, ctx))
