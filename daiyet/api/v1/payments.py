"""Payment endpoints."""

import logging
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from daiyet.api.deps import (
    get_current_user,
    get_db,
    get_finalization_service,
    get_paystack_gateway,
)
from daiyet.core.exceptions import AuthorizationError, NotFoundError, PaymentError
from daiyet.domain.payment_state import PaymentStatus
from daiyet.domain.tenant_scope import ResourceKind, TenantContext, scope_query
from daiyet.gateways.paystack import PaystackGateway
from daiyet.models import Booking, Payment
from daiyet.schemas.payment import PaymentResponse, PaymentVerifyRequest, PaymentVerifyResponse
from daiyet.services.finalization_service import BookingFinalizationService

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/verify", response_model=PaymentVerifyResponse)
async def verify_payment(
    data: PaymentVerifyRequest,
    current_user: Annotated[TenantContext, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
    gateway: Annotated[PaystackGateway, Depends(get_paystack_gateway)],
    finalization: Annotated[BookingFinalizationService, Depends(get_finalization_service)],
) -> PaymentVerifyResponse:
    """Confirm a payment after the Paystack redirect.

    Runs the same finalization as the webhook, so whichever arrives
    second is a no-op.
    """
    result = await db.execute(select(Payment).where(Payment.paystack_ref == data.reference))
    payment = result.scalar_one_or_none()
    if not payment:
        raise NotFoundError("Payment", data.reference)

    booking = await db.get(Booking, payment.booking_id)
    if not current_user.is_admin and (booking is None or booking.user_id != current_user.user_id):
        raise AuthorizationError("You don't have permission to verify this payment")

    if payment.status != PaymentStatus.SUCCESS:
        verification = await gateway.verify_transaction(data.reference)
        if not verification.success:
            logger.warning(f"Paystack has not confirmed {data.reference}: {verification.status}")
            raise PaymentError(verification.error_message or "Payment has not been completed")

    outcome = await finalization.finalize(data.reference, source="verify")
    if outcome.failed:
        logger.error(f"Finalization for {data.reference} left pending: {outcome.failed}")

    await db.refresh(payment)
    return PaymentVerifyResponse(payment=PaymentResponse.model_validate(payment))


@router.get("/{payment_id}", response_model=PaymentResponse)
async def get_payment(
    payment_id: UUID,
    current_user: Annotated[TenantContext, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> Payment:
    """Get a payment visible to the caller."""
    query = scope_query(
        select(Payment).where(Payment.id == payment_id),
        ResourceKind.PAYMENTS,
        current_user,
    )
    result = await db.execute(query)
    payment = result.scalar_one_or_none()
    if not payment:
        raise NotFoundError("Payment", str(payment_id))
    return payment
