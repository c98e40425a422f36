"""Booking lifecycle: the transition graph and the operations that walk it.

Every transition is validated against ``TRANSITIONS`` and then persisted with
a single conditional UPDATE (``status`` must still equal the value that was
read). Losing that race raises ``Conflict`` rather than overwriting another
request's result.
"""

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Callable, Dict, FrozenSet, List, Optional, Tuple
import enum
import logging

from sqlalchemy.orm import Session

from .. import models
from ..core.config import settings
from ..crud import crud_booking, crud_user
from ..models import BookingStatus, UserType
from ..utils import notifications
from ..utils.errors import (
    Conflict,
    InvalidPrice,
    InvalidTransition,
    NotFound,
    ProposalInProgress,
    Unauthorized,
)

logger = logging.getLogger(__name__)

TWO_PLACES = Decimal("0.01")


class ActorRole(str, enum.Enum):
    CLIENT = "CLIENT"
    VENDOR = "VENDOR"


class Action(str, enum.Enum):
    ACCEPT = "accept"
    DECLINE = "decline"
    PROPOSE_PRICE = "propose_price"
    APPROVE_PRICE = "approve_price"
    REJECT_PRICE = "reject_price"
    PAY = "pay"
    COMPLETE = "complete"
    CANCEL = "cancel"


@dataclass(frozen=True)
class Edge:
    sources: FrozenSet[BookingStatus]
    target: BookingStatus
    roles: FrozenSet[ActorRole]


_CLIENT = frozenset({ActorRole.CLIENT})
_VENDOR = frozenset({ActorRole.VENDOR})
_EITHER = frozenset({ActorRole.CLIENT, ActorRole.VENDOR})

CANCELLABLE = frozenset({
    BookingStatus.PENDING,
    BookingStatus.ACCEPTED,
    BookingStatus.PRICE_PROPOSED,
    BookingStatus.PRICE_APPROVED,
})
PAYABLE = frozenset({BookingStatus.ACCEPTED, BookingStatus.PRICE_APPROVED})

TRANSITIONS: Dict[Action, Edge] = {
    Action.ACCEPT: Edge(frozenset({BookingStatus.PENDING}), BookingStatus.ACCEPTED, _VENDOR),
    Action.DECLINE: Edge(frozenset({BookingStatus.PENDING}), BookingStatus.DECLINED, _VENDOR),
    Action.PROPOSE_PRICE: Edge(
        frozenset({BookingStatus.PENDING, BookingStatus.ACCEPTED}),
        BookingStatus.PRICE_PROPOSED,
        _VENDOR,
    ),
    Action.APPROVE_PRICE: Edge(
        frozenset({BookingStatus.PRICE_PROPOSED}), BookingStatus.PRICE_APPROVED, _CLIENT
    ),
    Action.REJECT_PRICE: Edge(
        frozenset({BookingStatus.PRICE_PROPOSED}), BookingStatus.PRICE_REJECTED, _CLIENT
    ),
    Action.PAY: Edge(PAYABLE, BookingStatus.PAID, _CLIENT),
    Action.COMPLETE: Edge(frozenset({BookingStatus.PAID}), BookingStatus.COMPLETED, _VENDOR),
    Action.CANCEL: Edge(CANCELLABLE, BookingStatus.CANCELLED, _EITHER),
}

TERMINAL = frozenset({BookingStatus.DECLINED, BookingStatus.COMPLETED, BookingStatus.CANCELLED})


def allowed_sources(action: Action) -> FrozenSet[BookingStatus]:
    """Source states for ``action``, including the optional re-proposal edge."""
    sources = TRANSITIONS[action].sources
    if action == Action.PROPOSE_PRICE and settings.ALLOW_REPROPOSAL_AFTER_REJECTION:
        sources = sources | {BookingStatus.PRICE_REJECTED}
    return sources


def validate_price(value: Any, field: str = "amount") -> Decimal:
    """Return ``value`` as a 2dp Decimal, or raise InvalidPrice."""
    if value is None or isinstance(value, bool):
        raise InvalidPrice(f"{field} is required")
    try:
        amount = Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise InvalidPrice(f"{field} is not a valid amount")
    if not amount.is_finite():
        raise InvalidPrice(f"{field} is not a valid amount")
    amount = amount.quantize(TWO_PLACES, rounding=ROUND_HALF_UP)
    if amount <= 0:
        raise InvalidPrice(f"{field} must be greater than zero")
    if amount > settings.MAX_BOOKING_PRICE:
        raise InvalidPrice(f"{field} exceeds the maximum of {settings.MAX_BOOKING_PRICE}")
    return amount


def role_of(booking: models.Booking, actor_id: int) -> ActorRole:
    if actor_id == booking.client_id:
        return ActorRole.CLIENT
    if actor_id == booking.vendor_id:
        return ActorRole.VENDOR
    raise Unauthorized("Not a party to this booking")


def load_for_actor(db: Session, booking_id: int, actor_id: int) -> Tuple[models.Booking, ActorRole]:
    booking = crud_booking.get_booking(db, booking_id)
    if booking is None:
        raise NotFound("Booking", booking_id)
    return booking, role_of(booking, actor_id)


def check_transition(booking: models.Booking, role: ActorRole, action: Action) -> Edge:
    """Validate ``action`` by ``role`` against the booking's current status."""
    edge = TRANSITIONS[action]
    if role not in edge.roles:
        raise Unauthorized(f"Only the {' or '.join(r.value.lower() for r in edge.roles)} may {action.value.replace('_', ' ')}")
    if action == Action.PROPOSE_PRICE and booking.status == BookingStatus.PRICE_PROPOSED:
        raise ProposalInProgress()
    if booking.status not in allowed_sources(action):
        raise InvalidTransition(booking.status.value, action.value)
    return edge


def apply_transition(
    db: Session,
    booking: models.Booking,
    action: Action,
    *,
    commit: bool = True,
    **fields: Any,
) -> models.Booking:
    """Persist ``booking.status -> edge.target`` plus ``fields`` atomically.

    The expected state is the one that was read, so a concurrent request that
    moved the booking first makes this call fail with Conflict.
    """
    edge = TRANSITIONS[action]
    previous = booking.status
    if previous in (BookingStatus.PRICE_PROPOSED, BookingStatus.PRICE_APPROVED) and edge.target not in (
        BookingStatus.PRICE_PROPOSED,
        BookingStatus.PRICE_APPROVED,
    ):
        # adjusted_price only lives while a proposal is open or approved
        fields.setdefault("adjusted_price", None)
        fields.setdefault("price_adjustment_reason", None)
    swapped = crud_booking.compare_and_set_status(
        db, booking.id, [previous], edge.target, **fields
    )
    if not swapped:
        db.rollback()
        logger.warning(
            "Lost transition race booking_id=%s action=%s expected=%s",
            booking.id,
            action.value,
            previous.value,
        )
        raise Conflict()
    if commit:
        db.commit()
        db.refresh(booking)
        _log_transition(booking.id, action, previous)
    return booking


def _log_transition(booking_id: int, action: Action, previous: BookingStatus) -> None:
    logger.info(
        "Booking %s %s: %s -> %s",
        booking_id,
        action.value,
        previous.value,
        TRANSITIONS[action].target.value,
    )


def transition(
    db: Session,
    booking_id: int,
    actor_id: int,
    action: Action,
    fields: Optional[Dict[str, Any]] = None,
    notify: Optional[Callable[[Session, models.Booking, models.User], Any]] = None,
) -> models.Booking:
    """Validate and apply a single-step transition, then notify best-effort."""
    booking, role = load_for_actor(db, booking_id, actor_id)
    check_transition(booking, role, action)
    apply_transition(db, booking, action, **(fields or {}))
    if notify is not None:
        actor = crud_user.get_user(db, actor_id)
        notify(db, booking, actor)
    return booking


# ─── Entity operations ─────────────────────────────────────────────────────


def create_booking(db: Session, client: models.User, values: Dict[str, Any]) -> models.Booking:
    """Create a PENDING booking request from ``client`` to a vendor."""
    values = dict(values)
    values["budget"] = validate_price(values.get("budget"), "budget")
    vendor_id = values.get("vendor_id")
    if client.user_type != UserType.CLIENT:
        raise Unauthorized("Only clients may request bookings")
    if vendor_id == client.id:
        raise Unauthorized("You cannot book yourself")
    vendor = crud_user.get_user(db, vendor_id)
    if vendor is None or vendor.user_type != UserType.VENDOR or not vendor.is_active:
        raise NotFound("Vendor", vendor_id)
    booking = crud_booking.create_booking(db, client.id, values)
    logger.info("Booking %s requested by client %s for vendor %s", booking.id, client.id, vendor_id)
    notifications.notify_booking_request(db, booking, client)
    return booking


def get_booking_for_actor(db: Session, booking_id: int, actor_id: int) -> models.Booking:
    booking, _ = load_for_actor(db, booking_id, actor_id)
    return booking


def list_bookings(
    db: Session,
    user_id: int,
    role: Optional[UserType] = None,
    status: Optional[BookingStatus] = None,
    skip: int = 0,
    limit: int = 20,
) -> Tuple[List[models.Booking], int, Dict[str, int]]:
    items, total = crud_booking.get_bookings_for_user(
        db, user_id, role=role, status=status, skip=skip, limit=limit
    )
    stats = crud_booking.count_bookings_by_status(db, user_id, role=role)
    return items, total, stats


def accept_booking(
    db: Session, booking_id: int, vendor_id: int, quoted_price: Any = None
) -> models.Booking:
    fields: Dict[str, Any] = {}
    if quoted_price is not None:
        fields["quoted_price"] = validate_price(quoted_price, "quoted_price")
    return transition(
        db, booking_id, vendor_id, Action.ACCEPT, fields, notifications.notify_booking_accepted
    )


def decline_booking(db: Session, booking_id: int, vendor_id: int) -> models.Booking:
    return transition(
        db, booking_id, vendor_id, Action.DECLINE, notify=notifications.notify_booking_declined
    )


def cancel_booking(db: Session, booking_id: int, actor_id: int) -> models.Booking:
    return transition(
        db, booking_id, actor_id, Action.CANCEL, notify=notifications.notify_booking_cancelled
    )


def complete_booking(db: Session, booking_id: int, vendor_id: int) -> models.Booking:
    """Mark a paid booking as delivered and release the held vendor payout."""
    from . import payment_orchestrator

    booking, role = load_for_actor(db, booking_id, vendor_id)
    check_transition(booking, role, Action.COMPLETE)
    previous = booking.status
    apply_transition(db, booking, Action.COMPLETE, commit=False)
    released = payment_orchestrator.release_payout(db, booking)
    db.commit()
    db.refresh(booking)
    _log_transition(booking.id, Action.COMPLETE, previous)
    vendor = crud_user.get_user(db, vendor_id)
    notifications.notify_booking_completed(db, booking, vendor)
    if released is not None:
        notifications.notify_payout_released(db, booking, released)
    return booking
