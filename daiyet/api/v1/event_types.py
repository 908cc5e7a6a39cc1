"""Consultation types offered by providers."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from daiyet.api.deps import get_current_user, get_db, require_provider
from daiyet.config import settings
from daiyet.core.exceptions import NotFoundError
from daiyet.domain.tenant_scope import ResourceKind, TenantContext, scope_query
from daiyet.models import EventType
from daiyet.schemas.booking import EventTypeCreate, EventTypeResponse

router = APIRouter()


@router.post("/", response_model=EventTypeResponse, status_code=status.HTTP_201_CREATED)
async def create_event_type(
    data: EventTypeCreate,
    current_user: Annotated[TenantContext, Depends(require_provider)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> EventType:
    """Publish a new consultation type."""
    event_type = EventType(
        user_id=current_user.user_id,
        title=data.title,
        description=data.description,
        length_minutes=data.length_minutes,
        price=data.price,
        currency=settings.paystack_currency,
        is_active=True,
    )
    db.add(event_type)
    await db.flush()
    return event_type


@router.get("/", response_model=list[EventTypeResponse])
async def list_event_types(
    current_user: Annotated[TenantContext, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
    provider_id: Annotated[UUID | None, Query()] = None,
) -> list[EventType]:
    """Providers see their own types; clients see every active type."""
    query = scope_query(select(EventType), ResourceKind.EVENT_TYPES, current_user)
    if not current_user.is_provider:
        query = query.where(EventType.is_active.is_(True))
    if provider_id:
        query = query.where(EventType.user_id == provider_id)
    result = await db.execute(query.order_by(EventType.title))
    return list(result.scalars().all())


@router.get("/{event_type_id}", response_model=EventTypeResponse)
async def get_event_type(
    event_type_id: UUID,
    current_user: Annotated[TenantContext, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> EventType:
    """Get an event type."""
    query = scope_query(
        select(EventType).where(EventType.id == event_type_id),
        ResourceKind.EVENT_TYPES,
        current_user,
    )
    result = await db.execute(query)
    event_type = result.scalar_one_or_none()
    if not event_type:
        raise NotFoundError("Event type", str(event_type_id))
    return event_type
