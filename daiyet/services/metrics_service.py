"""Tenant activity metrics for monitoring."""

from datetime import UTC, datetime, timedelta

from sqlalchemy import distinct, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from daiyet.domain.onboarding_state import OnboardingStage
from daiyet.models import AuditLog, OnboardingProgress, User
from daiyet.schemas.admin import RoleCounts, TenantMetrics
from daiyet.services.audit_service import AuditAction

ACTIVE_WINDOW = timedelta(days=30)


class MetricsService:
    """Aggregate user activity across tenants."""

    async def get_tenant_metrics(self, db: AsyncSession) -> TenantMetrics:
        """Snapshot of tenant counts.

        Active users are ACTIVE accounts with a sign-in in the last 30 days.
        The completion rate is completed onboardings of ACTIVE accounts over
        all accounts, rounded to two places.
        """
        total_users = (await db.execute(select(func.count(User.id)))).scalar_one()

        since = datetime.now(UTC) - ACTIVE_WINDOW
        active_users = (
            await db.execute(
                select(func.count(distinct(AuditLog.user_id)))
                .join(User, User.id == AuditLog.user_id)
                .where(
                    AuditLog.action == AuditAction.USER_LOGIN.value,
                    AuditLog.created_at >= since,
                    User.account_status == "ACTIVE",
                )
            )
        ).scalar_one()

        role_rows = await db.execute(
            select(User.role, func.count(User.id))
            .where(User.account_status == "ACTIVE")
            .group_by(User.role)
        )
        known_roles = set(RoleCounts.model_fields)
        users_by_role = RoleCounts(
            **{role: count for role, count in role_rows.all() if role in known_roles}
        )

        completed = (
            await db.execute(
                select(func.count(OnboardingProgress.id))
                .join(User, User.id == OnboardingProgress.user_id)
                .where(
                    OnboardingProgress.current_stage == OnboardingStage.COMPLETED.value,
                    User.account_status == "ACTIVE",
                )
            )
        ).scalar_one()
        rate = round(completed / total_users, 2) if total_users else 0.0

        return TenantMetrics(
            active_tenants=active_users,
            active_users=active_users,
            onboarding_completion_rate=rate,
            total_users=total_users,
            users_by_role=users_by_role,
        )


metrics_service = MetricsService()
