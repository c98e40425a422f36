from sqlalchemy import func
from sqlalchemy.orm import Session
from typing import Any, Dict, Iterable, List, Optional, Tuple

from .. import models
from ..models.booking_status import BookingStatus


def get_booking(db: Session, booking_id: int) -> Optional[models.Booking]:
    return db.query(models.Booking).filter(models.Booking.id == booking_id).first()


def create_booking(db: Session, client_id: int, values: Dict[str, Any]) -> models.Booking:
    db_booking = models.Booking(
        **values,
        client_id=client_id,
        status=BookingStatus.PENDING,
    )
    db.add(db_booking)
    db.commit()
    db.refresh(db_booking)
    return db_booking


def _party_query(db: Session, user_id: int, role: Optional[models.UserType]):
    query = db.query(models.Booking)
    if role == models.UserType.CLIENT:
        return query.filter(models.Booking.client_id == user_id)
    if role == models.UserType.VENDOR:
        return query.filter(models.Booking.vendor_id == user_id)
    return query.filter(
        (models.Booking.client_id == user_id) | (models.Booking.vendor_id == user_id)
    )


def get_bookings_for_user(
    db: Session,
    user_id: int,
    role: Optional[models.UserType] = None,
    status: Optional[BookingStatus] = None,
    skip: int = 0,
    limit: int = 20,
) -> Tuple[List[models.Booking], int]:
    """Return a page of the user's bookings (newest event first) and the total."""
    query = _party_query(db, user_id, role)
    if status is not None:
        query = query.filter(models.Booking.status == status)
    total = query.count()
    items = (
        query.order_by(models.Booking.event_date.desc(), models.Booking.id.desc())
        .offset(skip)
        .limit(limit)
        .all()
    )
    return items, total


def count_bookings_by_status(
    db: Session, user_id: int, role: Optional[models.UserType] = None
) -> Dict[str, int]:
    rows = (
        _party_query(db, user_id, role)
        .with_entities(models.Booking.status, func.count(models.Booking.id))
        .group_by(models.Booking.status)
        .all()
    )
    counts = {s.value: 0 for s in BookingStatus}
    for status, count in rows:
        counts[status.value] = int(count)
    return counts


def compare_and_set_status(
    db: Session,
    booking_id: int,
    expected: Iterable[BookingStatus],
    new_status: BookingStatus,
    **fields: Any,
) -> bool:
    """Atomically move a booking to ``new_status`` if it is still in ``expected``.

    ``fields`` are written in the same UPDATE statement. Does not commit; the
    caller owns the unit of work. Returns False when no row matched, meaning
    the booking changed since it was read (or no longer exists).
    """
    values = {"status": new_status, **fields}
    updated = (
        db.query(models.Booking)
        .filter(
            models.Booking.id == booking_id,
            models.Booking.status.in_(list(expected)),
        )
        .update(values, synchronize_session=False)
    )
    return updated == 1
