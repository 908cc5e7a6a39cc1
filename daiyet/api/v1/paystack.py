"""Paystack checkout and webhook endpoints."""

import json
import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Header, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from daiyet.api.deps import (
    get_current_user,
    get_db,
    get_finalization_service,
    get_paystack_gateway,
    payment_limiter,
)
from daiyet.config import settings
from daiyet.core.exceptions import (
    AuthorizationError,
    GatewayError,
    InvalidBookingStatus,
    NotFoundError,
    ValidationError,
)
from daiyet.domain.booking_state import BookingStatus
from daiyet.domain.payment_state import PaymentStatus
from daiyet.domain.tenant_scope import TenantContext
from daiyet.gateways.paystack import SIGNATURE_HEADER, PaystackGateway
from daiyet.models import Booking, EventType, Payment
from daiyet.schemas.payment import PaymentInitializeRequest, PaymentInitializeResponse
from daiyet.services.finalization_service import BookingFinalizationService

logger = logging.getLogger(__name__)

router = APIRouter()

CHARGE_SUCCESS = "charge.success"


@router.post("/webhook", status_code=status.HTTP_200_OK)
async def paystack_webhook(
    request: Request,
    finalization: Annotated[BookingFinalizationService, Depends(get_finalization_service)],
    gateway: Annotated[PaystackGateway, Depends(get_paystack_gateway)],
    signature: Annotated[str | None, Header(alias=SIGNATURE_HEADER)] = None,
):
    """Handle Paystack webhook events.

    Once the signature checks out the response is always
    ``{"received": true}``; processing problems are logged only.
    """
    if not gateway.secret_key:
        logger.error("Paystack secret key is not configured; rejecting webhook")
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": "Payment provider not configured"},
        )

    raw_body = await request.body()
    if not gateway.verify_webhook(raw_body, signature):
        logger.warning("Rejected Paystack webhook with invalid signature")
        return JSONResponse(
            status_code=status.HTTP_401_UNAUTHORIZED,
            content={"error": "Invalid signature"},
        )

    try:
        event = json.loads(raw_body)
    except ValueError:
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"error": "Invalid payload"},
        )

    event_name = event.get("event") if isinstance(event, dict) else None
    data = event.get("data") if isinstance(event, dict) else None
    reference = data.get("reference") if isinstance(data, dict) else None

    if event_name == CHARGE_SUCCESS and reference:
        try:
            outcome = await finalization.finalize(str(reference), source="webhook")
        except SQLAlchemyError as e:
            logger.error(f"Failed to finalize payment {reference}: {e}", exc_info=True)
        else:
            if outcome.failed:
                logger.error(f"Finalization for {reference} left pending: {outcome.failed}")
    else:
        logger.info(f"Ignoring Paystack event {event_name}")

    return {"received": True}


@router.post(
    "/initialize",
    response_model=PaymentInitializeResponse,
    dependencies=[Depends(payment_limiter)],
)
async def initialize_payment(
    data: PaymentInitializeRequest,
    current_user: Annotated[TenantContext, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
    gateway: Annotated[PaystackGateway, Depends(get_paystack_gateway)],
) -> PaymentInitializeResponse:
    """Start a Paystack checkout for one of the caller's pending bookings."""
    booking = await db.get(Booking, data.booking_id)
    if not booking:
        raise NotFoundError("Booking", str(data.booking_id))
    if booking.user_id != current_user.user_id:
        raise AuthorizationError("You can only pay for your own bookings")
    if booking.status != BookingStatus.PENDING:
        raise InvalidBookingStatus("Booking is not awaiting payment")

    event_type = await db.get(EventType, booking.event_type_id) if booking.event_type_id else None
    amount = event_type.price if event_type else 0
    if amount <= 0:
        raise ValidationError("Booking has no payable amount")
    currency = event_type.currency or settings.paystack_currency

    result = await gateway.initialize_transaction(
        email=current_user.email,
        amount=amount,
        currency=currency,
        callback_url=settings.paystack_callback_url,
        metadata={
            "bookingId": str(booking.id),
            "name": current_user.name or current_user.email,
        },
    )
    if not result.success or not result.reference or not result.authorization_url:
        raise GatewayError("paystack", result.error_message or "initialization failed")

    existing = await db.execute(select(Payment).where(Payment.paystack_ref == result.reference))
    payment = existing.scalar_one_or_none()
    if payment is None:
        # Attach the reference to the payment opened with the booking
        unassigned = await db.execute(
            select(Payment).where(
                Payment.booking_id == booking.id,
                Payment.paystack_ref.is_(None),
                Payment.status == PaymentStatus.PENDING.value,
            )
        )
        payment = unassigned.scalars().first()
    if payment is None:
        payment = Payment(status=PaymentStatus.PENDING.value)
        db.add(payment)
    payment.paystack_ref = result.reference
    payment.booking_id = booking.id
    payment.amount = amount
    payment.currency = currency
    payment.gateway_response = result.raw_response

    logger.info(f"Initialized Paystack payment {result.reference} for booking {booking.id}")
    return PaymentInitializeResponse(
        authorization_url=result.authorization_url,
        reference=result.reference,
    )
