from fastapi import APIRouter, Depends, Header, Query, Request, status
from fastapi.responses import ORJSONResponse
from sqlalchemy.orm import Session
from typing import Any, List
import json
import logging

from .. import models
from ..core.config import settings
from ..schemas.payment import (
    PaymentConfirm,
    PaymentConfirmResponse,
    PaymentIntentCreate,
    PaymentIntentResponse,
    PaymentResponse,
)
from ..services import payment_orchestrator
from ..services.payment_provider import (
    PaymentProvider,
    WebhookSignatureError,
    verify_webhook_signature,
)
from ..utils import error_response
from ..utils.errors import BookingError, ErrorCode, booking_error_response
from .dependencies import get_current_user, get_db, get_payment_provider

logger = logging.getLogger(__name__)

router = APIRouter(tags=["payments"])


@router.post(
    "/payments/intent",
    response_model=PaymentIntentResponse,
    status_code=status.HTTP_201_CREATED,
)
def create_payment_intent(
    payment_in: PaymentIntentCreate,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
    provider: PaymentProvider = Depends(get_payment_provider),
) -> Any:
    """Open a payment intent for the booking's resolved price.

    Calling again for the same booking and price returns the pending intent
    instead of creating a second one.
    """
    try:
        payment = payment_orchestrator.create_intent(
            db,
            payment_in.booking_id,
            current_user.id,
            provider,
            expected_amount=payment_in.expected_amount,
        )
    except BookingError as exc:
        field = "expected_amount" if exc.code in (ErrorCode.AMOUNT_MISMATCH, ErrorCode.INVALID_PRICE) else None
        raise booking_error_response(exc, field)
    return PaymentIntentResponse(
        payment_id=payment.id,
        client_secret=payment.client_secret,
        amount=payment.amount,
        currency=payment.currency,
    )


@router.post("/payments/confirm", response_model=PaymentConfirmResponse)
def confirm_payment(
    confirm_in: PaymentConfirm,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
    provider: PaymentProvider = Depends(get_payment_provider),
) -> Any:
    """Client-side confirmation after the provider checkout completes.

    A reported success is checked against the provider before it is applied.
    Repeating the call is harmless.
    """
    try:
        result = payment_orchestrator.confirm_payment(
            db,
            confirm_in.payment_id,
            confirm_in.provider_status,
            actor_id=current_user.id,
            provider=provider,
        )
    except BookingError as exc:
        raise booking_error_response(exc)
    return PaymentConfirmResponse(
        payment_id=result.payment.id,
        payment_status=result.payment.status,
        booking_status=result.booking_status,
    )


@router.post("/payments/webhook")
async def payment_webhook(
    request: Request,
    db: Session = Depends(get_db),
    stripe_signature: str | None = Header(default=None, alias="Stripe-Signature"),
):
    """Provider callback. Verified by signature; delivered at least once."""
    raw = await request.body()
    try:
        verify_webhook_signature(
            raw,
            stripe_signature,
            settings.STRIPE_WEBHOOK_SECRET,
            settings.STRIPE_WEBHOOK_TOLERANCE_SECONDS,
        )
    except WebhookSignatureError as exc:
        logger.warning("Rejected provider webhook: %s", exc)
        raise error_response(
            "Invalid signature",
            {"signature": "invalid"},
            status.HTTP_400_BAD_REQUEST,
        )
    try:
        event = json.loads(raw)
    except ValueError:
        event = None
    if not isinstance(event, dict):
        raise error_response("Invalid payload", {"body": "invalid_json"}, status.HTTP_400_BAD_REQUEST)

    try:
        result = payment_orchestrator.handle_provider_event(db, event)
    except BookingError as exc:
        if exc.code == ErrorCode.CONFLICT:
            # Non-2xx makes the provider redeliver
            raise booking_error_response(exc)
        logger.warning("Provider event %s not applied: %s", event.get("type"), exc)
        return ORJSONResponse({"status": "ignored", "reason": exc.code.value})
    if result is None:
        return ORJSONResponse({"status": "ignored"})
    return ORJSONResponse(
        {
            "status": "ok",
            "payment_id": result.payment.id,
            "payment_status": result.payment.status.value,
            "booking_status": result.booking_status.value,
        }
    )


@router.get("/payments", response_model=List[PaymentResponse])
def list_my_payments(
    skip: int = Query(0, ge=0),
    limit: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    """Payments the current user made or received."""
    return payment_orchestrator.list_payments(db, current_user.id, skip=skip, limit=limit)
