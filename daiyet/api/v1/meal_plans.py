"""Meal plan endpoints."""

import logging
from datetime import UTC, datetime
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from daiyet.api.deps import get_current_user, get_db, get_email_queue, require_dietitian
from daiyet.core.exceptions import AuthorizationError, NotFoundError, ValidationError
from daiyet.domain.tenant_scope import ResourceKind, TenantContext, scope_query
from daiyet.models import Booking, MealPlan, User
from daiyet.schemas.clinical import MealPlanCreate, MealPlanResponse
from daiyet.services.notification_service import MEAL_PLAN_SENT, EmailJob, EmailQueue

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/", response_model=MealPlanResponse, status_code=status.HTTP_201_CREATED)
async def send_meal_plan(
    data: MealPlanCreate,
    current_user: Annotated[TenantContext, Depends(require_dietitian)],
    db: Annotated[AsyncSession, Depends(get_db)],
    email_queue: Annotated[EmailQueue, Depends(get_email_queue)],
) -> MealPlan:
    """Send a meal plan to a client and email them about it."""
    client = await db.get(User, data.user_id)
    if not client:
        raise NotFoundError("User", str(data.user_id))

    if data.booking_id:
        booking = await db.get(Booking, data.booking_id)
        if not booking:
            raise NotFoundError("Booking", str(data.booking_id))
        if booking.dietitian_id != current_user.user_id or booking.user_id != client.id:
            raise ValidationError("Booking does not belong to this client")

    plan = MealPlan(
        dietitian_id=current_user.user_id,
        user_id=client.id,
        booking_id=data.booking_id,
        title=data.title,
        description=data.description,
        file_url=data.file_url,
        status="SENT",
    )
    db.add(plan)
    await db.flush()
    await db.refresh(plan)

    job = EmailJob(
        to=client.email,
        subject=f"New meal plan: {plan.title}",
        template=MEAL_PLAN_SENT,
        data={
            "userName": client.name or "there",
            "dietitianName": current_user.name or "Your dietitian",
            "planTitle": plan.title,
            "fileUrl": plan.file_url,
        },
    )
    try:
        await email_queue.enqueue(job)
    except Exception as e:
        logger.error(f"Failed to enqueue meal plan email to {client.email}: {e}")

    return plan


@router.get("/", response_model=list[MealPlanResponse])
async def list_meal_plans(
    current_user: Annotated[TenantContext, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> list[MealPlan]:
    """Plans the caller sent or received."""
    query = scope_query(select(MealPlan), ResourceKind.MEAL_PLANS, current_user)
    result = await db.execute(query.order_by(MealPlan.sent_at.desc()))
    return list(result.scalars().all())


@router.post("/{plan_id}/viewed", response_model=MealPlanResponse)
async def mark_viewed(
    plan_id: UUID,
    current_user: Annotated[TenantContext, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> MealPlan:
    """Client acknowledges a plan."""
    plan = await db.get(MealPlan, plan_id)
    if not plan:
        raise NotFoundError("Meal plan", str(plan_id))
    if plan.user_id != current_user.user_id:
        raise AuthorizationError("Only the recipient can mark a plan as viewed")

    if plan.status != "VIEWED":
        plan.status = "VIEWED"
        plan.viewed_at = datetime.now(UTC)
        await db.flush()
    return plan
