"""Tenant metrics endpoint."""

from datetime import UTC, datetime
from typing import Annotated

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from daiyet.api.deps import get_current_admin, get_db
from daiyet.domain.tenant_scope import TenantContext
from daiyet.schemas.admin import TenantMetricsResponse
from daiyet.services.metrics_service import metrics_service

router = APIRouter()


@router.get("/", response_model=TenantMetricsResponse)
async def get_metrics(
    admin: Annotated[TenantContext, Depends(get_current_admin)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> TenantMetricsResponse:
    """Tenant metrics (admin only)."""
    metrics = await metrics_service.get_tenant_metrics(db)
    return TenantMetricsResponse(metrics=metrics, timestamp=datetime.now(UTC))
