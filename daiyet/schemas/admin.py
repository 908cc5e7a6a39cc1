"""Administrative oversight schemas."""

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict


class PlatformStats(BaseModel):
    """Platform-wide counters."""

    users_by_role: dict[str, int]
    bookings_by_status: dict[str, int]
    successful_payments: int
    revenue: int
    pending_outbox_events: int


class OutboxEventResponse(BaseModel):
    """Finalization event as seen by administrators."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    event_type: str
    event_key: str
    payload: dict[str, Any]
    status: str
    attempts: int
    last_error: str | None = None
    created_at: datetime
    processed_at: datetime | None = None


class OutboxRetryResponse(BaseModel):
    """Result of re-dispatching an event."""

    event_id: UUID
    delivered: list[str]
    failed: dict[str, str]
    already_processed: bool


class AuditLogResponse(BaseModel):
    """One audit trail entry."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    user_id: UUID | None = None
    action: str
    resource_type: str
    resource_id: UUID | None = None
    old_values: dict[str, Any] | None = None
    new_values: dict[str, Any] | None = None
    ip_address: str | None = None
    created_at: datetime


class AuditLogListResponse(BaseModel):
    """Paginated audit trail."""

    logs: list[AuditLogResponse]
    total: int
    page: int
    page_size: int


class RoleCounts(BaseModel):
    """Active accounts per role."""

    USER: int = 0
    DIETITIAN: int = 0
    THERAPIST: int = 0
    ADMIN: int = 0


class TenantMetrics(BaseModel):
    """Tenant activity figures for monitoring."""

    active_tenants: int
    active_users: int
    onboarding_completion_rate: float
    total_users: int
    users_by_role: RoleCounts


class TenantMetricsResponse(BaseModel):
    """Metrics snapshot."""

    metrics: TenantMetrics
    timestamp: datetime
