"""Best-effort in-app notifications for booking and payment events.

Every ``notify_*`` helper is called after the triggering transition has been
committed. Failures are logged and reported through ``NotificationResult``;
they never propagate to the caller.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Dict, Optional
import logging

from sqlalchemy.orm import Session

from .. import models
from ..models import NotificationType
from ..core.config import settings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NotificationResult:
    ok: bool
    notification_id: Optional[int] = None
    error: Optional[str] = None


TITLES: Dict[NotificationType, str] = {
    NotificationType.BOOKING_REQUEST: "New Booking Request",
    NotificationType.BOOKING_ACCEPTED: "Booking Accepted",
    NotificationType.BOOKING_DECLINED: "Booking Declined",
    NotificationType.BOOKING_CANCELLED: "Booking Cancelled",
    NotificationType.BOOKING_COMPLETED: "Booking Completed",
    NotificationType.PRICE_ADJUSTED: "Price Adjustment Proposed",
    NotificationType.PRICE_APPROVED: "Price Approved",
    NotificationType.PRICE_REJECTED: "Price Rejected",
    NotificationType.PAYMENT_RECEIVED: "Payment Received",
    NotificationType.PAYOUT_RELEASED: "Payout Released",
}


def _money(amount: Any) -> str:
    if amount is None:
        return ""
    try:
        return f"{settings.DEFAULT_CURRENCY} {Decimal(str(amount)):.2f}"
    except ArithmeticError:
        return str(amount)


def format_notification_message(ntype: NotificationType, **kwargs: Any) -> str:
    """Return a human friendly notification message."""
    name = kwargs.get("sender_name") or "Someone"
    event_type = kwargs.get("event_type") or "your event"
    amount = _money(kwargs.get("amount"))
    if ntype == NotificationType.BOOKING_REQUEST:
        return f"{name} has requested a booking for {event_type}"
    if ntype == NotificationType.BOOKING_ACCEPTED:
        if kwargs.get("amount") is not None:
            return f"{name} accepted your booking for {event_type} with a quote of {amount}"
        return f"{name} accepted your booking for {event_type}"
    if ntype == NotificationType.BOOKING_DECLINED:
        return f"{name} declined your booking for {event_type}"
    if ntype == NotificationType.BOOKING_CANCELLED:
        return f"{name} cancelled the booking for {event_type}"
    if ntype == NotificationType.BOOKING_COMPLETED:
        return f"{name} marked the booking for {event_type} as completed"
    if ntype == NotificationType.PRICE_ADJUSTED:
        reason = kwargs.get("reason")
        if reason:
            return f"{name} proposed a new price of {amount} for {event_type}: {reason}"
        return f"{name} proposed a new price of {amount} for {event_type}"
    if ntype == NotificationType.PRICE_APPROVED:
        return f"{name} approved the price of {amount} for {event_type}"
    if ntype == NotificationType.PRICE_REJECTED:
        return f"{name} rejected the proposed price for {event_type}"
    if ntype == NotificationType.PAYMENT_RECEIVED:
        return f"Payment of {amount} received for booking #{kwargs.get('booking_id')}"
    if ntype == NotificationType.PAYOUT_RELEASED:
        return f"Payout of {amount} released for booking #{kwargs.get('booking_id')}"
    return str(kwargs.get("content", ""))


def booking_link(booking_id: int) -> str:
    return f"{settings.FRONTEND_URL}/dashboard/bookings/{booking_id}"


def create_notification(
    db: Session,
    user_id: int,
    ntype: NotificationType,
    message: str,
    *,
    title: Optional[str] = None,
    action_url: Optional[str] = None,
    data: Optional[Dict[str, Any]] = None,
) -> NotificationResult:
    """Insert a notification row in its own commit, swallowing any failure."""
    from ..crud import crud_notification

    try:
        notif = crud_notification.create_notification(
            db,
            user_id=user_id,
            type=ntype,
            title=title or TITLES.get(ntype, ntype.value.replace("_", " ").title()),
            message=message,
            action_url=action_url,
            data=data,
        )
    except Exception as exc:
        logger.exception("Create notification failed user_id=%s type=%s", user_id, ntype.value)
        try:
            db.rollback()
        except Exception:
            logger.exception("Rollback after notification failure also failed")
        return NotificationResult(ok=False, error=str(exc))
    logger.info("Notify user_id=%s type=%s id=%s", user_id, ntype.value, notif.id)
    return NotificationResult(ok=True, notification_id=notif.id)


def _notify_booking_party(
    db: Session,
    booking: models.Booking,
    recipient_id: int,
    sender: Optional[models.User],
    ntype: NotificationType,
    **extra: Any,
) -> NotificationResult:
    sender_name = sender.display_name if sender is not None else None
    message = format_notification_message(
        ntype,
        sender_name=sender_name,
        event_type=booking.event_type,
        booking_id=booking.id,
        **extra,
    )
    data: Dict[str, Any] = {"booking_id": booking.id}
    for key, value in extra.items():
        if value is None:
            continue
        data[key] = str(value) if isinstance(value, Decimal) else value
    result = create_notification(
        db,
        recipient_id,
        ntype,
        message,
        action_url=booking_link(booking.id),
        data=data,
    )
    if not result.ok:
        logger.warning(
            "Notification %s for booking %s was not delivered: %s",
            ntype.value,
            booking.id,
            result.error,
        )
    return result


def notify_booking_request(db: Session, booking: models.Booking, client: models.User) -> NotificationResult:
    return _notify_booking_party(db, booking, booking.vendor_id, client, NotificationType.BOOKING_REQUEST)


def notify_booking_accepted(db: Session, booking: models.Booking, vendor: models.User) -> NotificationResult:
    return _notify_booking_party(
        db, booking, booking.client_id, vendor, NotificationType.BOOKING_ACCEPTED, amount=booking.quoted_price
    )


def notify_booking_declined(db: Session, booking: models.Booking, vendor: models.User) -> NotificationResult:
    return _notify_booking_party(db, booking, booking.client_id, vendor, NotificationType.BOOKING_DECLINED)


def notify_booking_cancelled(
    db: Session, booking: models.Booking, actor: models.User
) -> NotificationResult:
    recipient = booking.vendor_id if actor.id == booking.client_id else booking.client_id
    return _notify_booking_party(db, booking, recipient, actor, NotificationType.BOOKING_CANCELLED)


def notify_booking_completed(db: Session, booking: models.Booking, vendor: models.User) -> NotificationResult:
    return _notify_booking_party(db, booking, booking.client_id, vendor, NotificationType.BOOKING_COMPLETED)


def notify_price_adjusted(db: Session, booking: models.Booking, vendor: models.User) -> NotificationResult:
    return _notify_booking_party(
        db,
        booking,
        booking.client_id,
        vendor,
        NotificationType.PRICE_ADJUSTED,
        amount=booking.adjusted_price,
        reason=booking.price_adjustment_reason,
    )


def notify_price_approved(db: Session, booking: models.Booking, client: models.User) -> NotificationResult:
    return _notify_booking_party(
        db, booking, booking.vendor_id, client, NotificationType.PRICE_APPROVED, amount=booking.final_price
    )


def notify_price_rejected(db: Session, booking: models.Booking, client: models.User) -> NotificationResult:
    return _notify_booking_party(db, booking, booking.vendor_id, client, NotificationType.PRICE_REJECTED)


def notify_payment_received(
    db: Session, booking: models.Booking, payment: models.Payment
) -> NotificationResult:
    return _notify_booking_party(
        db,
        booking,
        booking.vendor_id,
        None,
        NotificationType.PAYMENT_RECEIVED,
        amount=payment.amount,
        payment_id=payment.id,
    )


def notify_payout_released(
    db: Session, booking: models.Booking, payment: models.Payment
) -> NotificationResult:
    return _notify_booking_party(
        db,
        booking,
        booking.vendor_id,
        None,
        NotificationType.PAYOUT_RELEASED,
        amount=payment.vendor_payout,
        payment_id=payment.id,
    )
