"""Payment orchestration: intents, confirmation, escrow split and payout.

Payment and booking state move together. A successful confirmation flips the
payment ``PENDING|FAILED -> SUCCEEDED`` and the booking ``-> PAID`` with two
conditional updates in one transaction, and writes the ledger rows in that
same transaction. The ledger's unique (payment, entry type) key makes a
duplicate delivery fail at commit instead of double-counting.

A success is only applied when the payment still carries the booking's
resolved price. A partial unique index keeps one PENDING payment per booking.
"""

from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, List, Optional, Tuple
import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from .. import models
from ..core.config import settings
from ..crud import crud_booking, crud_payment
from ..models import BookingStatus
from ..models.payment import LedgerEntryType, PaymentStatus, PayoutStatus
from ..utils import notifications
from ..utils.errors import (
    AmountMismatch,
    BookingNotPayable,
    Conflict,
    InvalidPrice,
    NoResolvedPrice,
    NotFound,
    ProviderError,
    Unauthorized,
)
from .booking_lifecycle import PAYABLE, TWO_PLACES, validate_price
from .payment_provider import PaymentProvider

logger = logging.getLogger(__name__)

# Ordered fallback used to pick the amount to charge
PRICE_PRECEDENCE = ("final_price", "adjusted_price", "quoted_price", "budget")

# failure_reason of a pending payment replaced by a newer intent
SUPERSEDED = "superseded"

STRIPE_EVENT_STATUS = {
    "payment_intent.succeeded": PaymentStatus.SUCCEEDED,
    "payment_intent.payment_failed": PaymentStatus.FAILED,
    "payment_intent.canceled": PaymentStatus.FAILED,
}


@dataclass(frozen=True)
class ConfirmResult:
    payment: models.Payment
    booking_status: BookingStatus
    # False when the call found the work already done
    applied: bool


def resolve_amount(booking: models.Booking) -> Decimal:
    """Return the first price field that is set, in ``PRICE_PRECEDENCE`` order.

    Zero counts as set; only ``None`` falls through to the next field.
    """
    for field in PRICE_PRECEDENCE:
        value = getattr(booking, field)
        if value is not None:
            return Decimal(value).quantize(TWO_PLACES, rounding=ROUND_HALF_UP)
    raise NoResolvedPrice()


def compute_split(amount: Decimal) -> Tuple[Decimal, Decimal]:
    """Split ``amount`` into (platform fee, vendor payout); the two always sum to it."""
    fee = (amount * settings.PLATFORM_COMMISSION_RATE).quantize(TWO_PLACES, rounding=ROUND_HALF_UP)
    return fee, amount - fee


def _reusable(payment: models.Payment, amount: Decimal, currency: str) -> bool:
    return (
        bool(payment.client_secret)
        and Decimal(payment.amount) == amount
        and payment.currency == currency
    )


def create_intent(
    db: Session,
    booking_id: int,
    payer_id: int,
    provider: PaymentProvider,
    expected_amount: Any = None,
) -> models.Payment:
    """Open (or reuse) a provider payment intent for the booking's resolved price."""
    if expected_amount is not None:
        expected_amount = validate_price(expected_amount, "expected_amount")
    booking = crud_booking.get_booking(db, booking_id)
    if booking is None:
        raise NotFound("Booking", booking_id)
    if payer_id != booking.client_id:
        raise Unauthorized("Only the client may pay for this booking")
    if booking.status not in PAYABLE:
        raise BookingNotPayable(booking.status.value)
    amount = resolve_amount(booking)
    if amount <= 0:
        raise InvalidPrice("Resolved booking price must be greater than zero")
    if expected_amount is not None and expected_amount != amount:
        raise AmountMismatch(str(expected_amount), str(amount))

    currency = settings.DEFAULT_CURRENCY
    pending = crud_payment.get_pending_payments_for_booking(db, booking.id)
    for existing in pending:
        if _reusable(existing, amount, currency):
            logger.info("Reusing pending payment %s for booking %s", existing.id, booking.id)
            return existing
    # Anything still pending was opened for a different price or never got
    # a client secret; it must not be completed anymore.
    for stale in pending:
        if crud_payment.compare_and_set_status(
            db, stale.id, [PaymentStatus.PENDING], PaymentStatus.FAILED, failure_reason=SUPERSEDED
        ):
            logger.info("Superseded stale payment %s for booking %s", stale.id, booking.id)
    db.commit()

    try:
        payment = crud_payment.create_payment(db, booking, payer_id, amount, currency)
    except IntegrityError:
        # A concurrent request opened the booking's pending payment first
        db.rollback()
        winner = next(iter(crud_payment.get_pending_payments_for_booking(db, booking.id)), None)
        if winner is not None and _reusable(winner, amount, currency):
            logger.info("Reusing concurrently opened payment %s for booking %s", winner.id, booking.id)
            return winner
        logger.warning("Lost payment intent race booking_id=%s", booking.id)
        raise Conflict("A payment is already being opened for this booking; retry")
    try:
        intent = provider.create_payment_intent(
            amount,
            currency,
            {"booking_id": booking.id, "payment_id": payment.id},
            idempotency_key=f"payment-{payment.id}",
        )
    except Exception as exc:
        reason = exc.message if isinstance(exc, ProviderError) else "provider error"
        logger.error(
            "Payment intent failed for payment %s booking %s: %s",
            payment.id,
            booking.id,
            exc,
            exc_info=not isinstance(exc, ProviderError),
        )
        crud_payment.compare_and_set_status(
            db, payment.id, [PaymentStatus.PENDING], PaymentStatus.FAILED, failure_reason=reason
        )
        db.commit()
        if isinstance(exc, ProviderError):
            raise
        raise ProviderError() from exc

    payment.provider_reference = intent.id
    payment.client_secret = intent.client_secret
    db.commit()
    db.refresh(payment)
    logger.info(
        "Payment %s opened for booking %s amount=%s %s ref=%s",
        payment.id,
        booking.id,
        amount,
        currency,
        intent.id,
    )
    return payment


def _already_succeeded(db: Session, payment: models.Payment) -> bool:
    db.refresh(payment)
    return payment.status == PaymentStatus.SUCCEEDED


def _apply_success(db: Session, payment: models.Payment) -> ConfirmResult:
    booking = payment.booking
    if booking.status not in PAYABLE:
        logger.error(
            "Payment %s succeeded but booking %s is %s",
            payment.id,
            booking.id,
            booking.status.value,
        )
        raise BookingNotPayable(booking.status.value)
    if payment.status == PaymentStatus.FAILED and payment.failure_reason == SUPERSEDED:
        logger.error("Payment %s succeeded after being superseded on booking %s", payment.id, booking.id)
        raise BookingNotPayable(
            booking.status.value, "Payment was superseded by a newer intent for this booking"
        )

    amount = Decimal(payment.amount)
    expected_status = booking.status
    resolved = resolve_amount(booking)
    if amount != resolved:
        logger.error(
            "Payment %s amount %s does not match booking %s price %s",
            payment.id,
            amount,
            booking.id,
            resolved,
        )
        raise AmountMismatch(str(amount), str(resolved))
    fee, payout = compute_split(amount)
    swapped = crud_payment.compare_and_set_status(
        db,
        payment.id,
        [PaymentStatus.PENDING, PaymentStatus.FAILED],
        PaymentStatus.SUCCEEDED,
        platform_fee=fee,
        vendor_payout=payout,
        payout_status=PayoutStatus.HELD,
        failure_reason=None,
    )
    if not swapped:
        db.rollback()
        if _already_succeeded(db, payment):
            return ConfirmResult(payment, payment.booking.status, applied=False)
        raise Conflict("Payment was modified concurrently; reload and retry")

    # Expect the status the price was resolved in; a negotiation step in
    # between changes it, so a stale amount cannot be written as final_price.
    swapped = crud_booking.compare_and_set_status(
        db,
        booking.id,
        [expected_status],
        BookingStatus.PAID,
        paid_amount=amount,
        final_price=amount,
        adjusted_price=None,
        price_adjustment_reason=None,
    )
    if not swapped:
        db.rollback()
        logger.warning("Lost PAID race booking_id=%s payment_id=%s", booking.id, payment.id)
        raise Conflict()

    for entry_type, value in (
        (LedgerEntryType.CHARGE, amount),
        (LedgerEntryType.PLATFORM_FEE, fee),
        (LedgerEntryType.VENDOR_PAYOUT_HELD, payout),
    ):
        crud_payment.add_ledger_entry(db, payment, entry_type, value)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        if _already_succeeded(db, payment):
            return ConfirmResult(payment, payment.booking.status, applied=False)
        raise Conflict("Payment was modified concurrently; reload and retry")

    db.refresh(payment)
    db.refresh(booking)
    logger.info(
        "Payment %s succeeded; booking %s PAID amount=%s fee=%s payout=%s",
        payment.id,
        booking.id,
        amount,
        fee,
        payout,
    )
    notifications.notify_payment_received(db, booking, payment)
    return ConfirmResult(payment, booking.status, applied=True)


def _apply_failure(db: Session, payment: models.Payment, reason: Optional[str]) -> ConfirmResult:
    if payment.status == PaymentStatus.SUCCEEDED:
        logger.warning("Ignoring failure report for succeeded payment %s", payment.id)
        return ConfirmResult(payment, payment.booking.status, applied=False)
    if payment.status == PaymentStatus.FAILED:
        return ConfirmResult(payment, payment.booking.status, applied=False)
    swapped = crud_payment.compare_and_set_status(
        db,
        payment.id,
        [PaymentStatus.PENDING],
        PaymentStatus.FAILED,
        failure_reason=reason or "payment failed",
    )
    if not swapped:
        db.rollback()
        db.refresh(payment)
        return ConfirmResult(payment, payment.booking.status, applied=False)
    db.commit()
    db.refresh(payment)
    logger.info("Payment %s failed for booking %s", payment.id, payment.booking_id)
    return ConfirmResult(payment, payment.booking.status, applied=True)


def _verify_with_provider(payment: models.Payment, provider: PaymentProvider) -> None:
    if not payment.provider_reference:
        raise ProviderError("Payment has no provider reference")
    remote = provider.retrieve_payment_intent(payment.provider_reference)
    if remote.status != PaymentStatus.SUCCEEDED:
        logger.warning(
            "Payment %s reported succeeded but provider says %s",
            payment.id,
            remote.status.value,
        )
        raise ProviderError("Payment has not been completed with the provider")
    if remote.amount != Decimal(payment.amount):
        raise AmountMismatch(str(remote.amount), str(payment.amount))


def confirm_payment(
    db: Session,
    payment_id: int,
    provider_status: PaymentStatus,
    *,
    actor_id: Optional[int] = None,
    provider: Optional[PaymentProvider] = None,
    failure_reason: Optional[str] = None,
) -> ConfirmResult:
    """Reconcile a provider outcome for ``payment_id``. Safe to call repeatedly.

    ``actor_id`` restricts the call to the payer; ``provider`` enables a
    cross-check of a claimed success against the provider's own record.
    """
    payment = crud_payment.get_payment(db, payment_id)
    if payment is None:
        raise NotFound("Payment", payment_id)
    if actor_id is not None and actor_id != payment.payer_id:
        raise Unauthorized("Only the payer may confirm this payment")

    if provider_status == PaymentStatus.SUCCEEDED:
        if payment.status == PaymentStatus.SUCCEEDED:
            logger.info("Payment %s already succeeded; nothing to do", payment.id)
            return ConfirmResult(payment, payment.booking.status, applied=False)
        if provider is not None:
            _verify_with_provider(payment, provider)
        return _apply_success(db, payment)
    if provider_status == PaymentStatus.FAILED:
        return _apply_failure(db, payment, failure_reason)
    return ConfirmResult(payment, payment.booking.status, applied=False)


def handle_provider_event(db: Session, event: dict) -> Optional[ConfirmResult]:
    """Apply a verified Stripe webhook event. Unknown events are ignored."""
    event_type = event.get("type")
    status = STRIPE_EVENT_STATUS.get(event_type)
    if status is None:
        logger.debug("Ignoring provider event %s", event_type)
        return None
    obj = (event.get("data") or {}).get("object") or {}
    reference = obj.get("id")
    payment = crud_payment.get_payment_by_reference(db, reference) if reference else None
    if payment is None:
        logger.warning("Provider event %s for unknown intent %s", event_type, reference)
        return None
    reason = None
    if status == PaymentStatus.FAILED:
        reason = ((obj.get("last_payment_error") or {}).get("message")) or event_type
    return confirm_payment(db, payment.id, status, failure_reason=reason)


def release_payout(db: Session, booking: models.Booking) -> Optional[models.Payment]:
    """Move the held vendor payout to released. Part of the caller's transaction.

    Returns the released payment, or None when nothing is held.
    """
    payment = crud_payment.get_succeeded_payment_for_booking(db, booking.id)
    if payment is None or payment.payout_status != PayoutStatus.HELD:
        return None
    if not crud_payment.compare_and_set_payout(
        db, payment.id, PayoutStatus.HELD, PayoutStatus.RELEASED_TO_VENDOR
    ):
        db.rollback()
        logger.warning("Lost payout release race payment_id=%s", payment.id)
        raise Conflict("Payout was released concurrently")
    crud_payment.add_ledger_entry(
        db, payment, LedgerEntryType.VENDOR_PAYOUT_RELEASED, Decimal(payment.vendor_payout)
    )
    logger.info(
        "Payout %s released to vendor %s for booking %s",
        payment.vendor_payout,
        booking.vendor_id,
        booking.id,
    )
    return payment


def list_payments(db: Session, user_id: int, skip: int = 0, limit: int = 20) -> List[models.Payment]:
    return crud_payment.get_payments_for_user(db, user_id, skip=skip, limit=limit)
