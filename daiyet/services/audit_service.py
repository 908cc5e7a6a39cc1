"""Audit trail service."""

import logging
from enum import Enum
from typing import Any
from uuid import UUID

from fastapi import Request
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from daiyet.database import async_session_maker
from daiyet.models import AuditLog

logger = logging.getLogger(__name__)


class AuditAction(str, Enum):
    """Actions recorded in the audit trail."""

    USER_LOGIN = "user_login"
    ONBOARDING_COMPLETED = "onboarding_completed"
    PROVIDER_ENROLLED = "provider_enrolled"
    BOOKING_CANCELLED = "booking_cancelled"
    OUTBOX_RETRY = "outbox_retry"


def client_ip(request: Request | None) -> str | None:
    """Best-effort caller address, preferring proxy headers."""
    if request is None:
        return None
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    real_ip = request.headers.get("x-real-ip")
    if real_ip:
        return real_ip
    return request.client.host if request.client else None


class AuditService:
    """Append audit entries to the caller's unit of work.

    Entries join the given session and commit with the change they
    describe. Sign-ins are recorded separately.
    """

    async def log_action(
        self,
        db: AsyncSession,
        user_id: UUID | None,
        action: AuditAction,
        resource_type: str,
        resource_id: UUID | None = None,
        old_values: dict[str, Any] | None = None,
        new_values: dict[str, Any] | None = None,
        request: Request | None = None,
    ) -> AuditLog:
        """Record one action.

        Args:
            db: Session carrying the audited change
            user_id: User performing the action, if known
            action: What happened
            resource_type: Kind of row affected (e.g. "booking")
            resource_id: Row affected
            old_values: State before the action
            new_values: State after the action
            request: Incoming request, for IP and user agent

        Returns:
            The pending audit entry
        """
        audit = AuditLog(
            user_id=user_id,
            action=action.value,
            resource_type=resource_type,
            resource_id=resource_id,
            old_values=old_values,
            new_values=new_values,
            ip_address=client_ip(request),
            user_agent=request.headers.get("user-agent") if request else None,
        )
        db.add(audit)
        return audit

    async def record_login(
        self,
        user_id: UUID,
        role: str,
        request: Request | None = None,
    ) -> None:
        """Log a fresh sign-in context (token resolved without a cached role).

        Committed in its own transaction, independent of the request session.
        """
        try:
            async with async_session_maker() as session:
                await self.log_action(
                    db=session,
                    user_id=user_id,
                    action=AuditAction.USER_LOGIN,
                    resource_type="user",
                    resource_id=user_id,
                    new_values={"role": role},
                    request=request,
                )
                await session.commit()
        except SQLAlchemyError as e:
            logger.error(f"Failed to record login for {user_id}: {e}")

    async def log_status_change(
        self,
        db: AsyncSession,
        user_id: UUID,
        action: AuditAction,
        resource_type: str,
        resource_id: UUID,
        old_status: str | None,
        new_status: str,
        extra: dict[str, Any] | None = None,
        request: Request | None = None,
    ) -> AuditLog:
        """Log a status transition on a booking, account or event."""
        return await self.log_action(
            db=db,
            user_id=user_id,
            action=action,
            resource_type=resource_type,
            resource_id=resource_id,
            old_values={"status": old_status} if old_status else None,
            new_values={"status": new_status, **(extra or {})},
            request=request,
        )


audit_service = AuditService()
