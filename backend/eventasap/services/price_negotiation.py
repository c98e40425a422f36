"""Price negotiation between vendor and client on top of a booking.

At most one proposal is open per booking: the booking's ``PRICE_PROPOSED``
status is the lock, and it is taken and released through the same
conditional update as every other transition.
"""

from typing import Any, Optional
import logging

from sqlalchemy.orm import Session

from .. import models
from ..utils import notifications
from ..crud import crud_user
from .booking_lifecycle import (
    Action,
    apply_transition,
    check_transition,
    load_for_actor,
    transition,
    validate_price,
)

logger = logging.getLogger(__name__)


def propose_price(
    db: Session,
    booking_id: int,
    vendor_id: int,
    amount: Any,
    reason: Optional[str] = None,
) -> models.Booking:
    """Vendor proposes ``amount`` as the new price; the client must respond."""
    adjusted = validate_price(amount)
    reason = (reason or "").strip() or None
    booking = transition(
        db,
        booking_id,
        vendor_id,
        Action.PROPOSE_PRICE,
        {"adjusted_price": adjusted, "price_adjustment_reason": reason},
        notifications.notify_price_adjusted,
    )
    logger.info("Price %s proposed on booking %s", adjusted, booking_id)
    return booking


def approve_price(db: Session, booking_id: int, client_id: int) -> models.Booking:
    """Client accepts the open proposal; it becomes the final price."""
    booking, role = load_for_actor(db, booking_id, client_id)
    check_transition(booking, role, Action.APPROVE_PRICE)
    # final_price must be the proposal that was read, so it goes into the
    # same conditional update as the status change
    apply_transition(db, booking, Action.APPROVE_PRICE, final_price=booking.adjusted_price)
    notifications.notify_price_approved(db, booking, crud_user.get_user(db, client_id))
    return booking


def reject_price(db: Session, booking_id: int, client_id: int) -> models.Booking:
    """Client rejects the open proposal; the proposed amount is discarded."""
    return transition(
        db, booking_id, client_id, Action.REJECT_PRICE, notify=notifications.notify_price_rejected
    )
