# backend/eventasap/api/api_booking.py

import logging
from contextlib import contextmanager
from typing import Any, Optional

from fastapi import APIRouter, Body, Depends, Query, status
from fastapi.responses import ORJSONResponse
from sqlalchemy.orm import Session

from .. import models
from ..models import BookingStatus, UserType
from ..schemas.booking import (
    BookingAccept,
    BookingCreate,
    BookingListResponse,
    BookingResponse,
    Pagination,
    PriceProposal,
)
from ..services import booking_lifecycle, price_negotiation
from ..utils.errors import BookingError, ErrorCode, booking_error_response
from .dependencies import get_current_user, get_db

router = APIRouter(tags=["bookings"], default_response_class=ORJSONResponse)
logger = logging.getLogger(__name__)


@contextmanager
def booking_errors(price_field: Optional[str] = None):
    """Translate service errors into HTTP errors for the enclosed call."""
    try:
        yield
    except BookingError as exc:
        field = price_field if exc.code == ErrorCode.INVALID_PRICE else None
        raise booking_error_response(exc, field)


@router.post("/bookings", response_model=BookingResponse, status_code=status.HTTP_201_CREATED)
def create_booking(
    *,
    db: Session = Depends(get_db),
    booking_in: BookingCreate,
    current_user: models.User = Depends(get_current_user),
) -> Any:
    """Create a booking request from the current client to a vendor."""
    with booking_errors("budget"):
        return booking_lifecycle.create_booking(db, current_user, booking_in.model_dump())


@router.get("/bookings", response_model=BookingListResponse)
def list_my_bookings(
    role: Optional[UserType] = Query(None, description="Restrict to bookings where I am this party"),
    status_filter: Optional[BookingStatus] = Query(None, alias="status"),
    skip: int = Query(0, ge=0),
    limit: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
) -> Any:
    items, total, stats = booking_lifecycle.list_bookings(
        db, current_user.id, role=role, status=status_filter, skip=skip, limit=limit
    )
    return BookingListResponse(
        bookings=[BookingResponse.model_validate(b) for b in items],
        stats=stats,
        pagination=Pagination(skip=skip, limit=limit, total=total),
    )


@router.get("/bookings/{booking_id}", response_model=BookingResponse)
def read_booking(
    booking_id: int,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
) -> Any:
    with booking_errors():
        return booking_lifecycle.get_booking_for_actor(db, booking_id, current_user.id)


@router.post("/bookings/{booking_id}/accept", response_model=BookingResponse)
def accept_booking(
    booking_id: int,
    payload: Optional[BookingAccept] = Body(None),
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
) -> Any:
    """Vendor accepts a pending request, optionally with a quote."""
    quoted_price = payload.quoted_price if payload is not None else None
    with booking_errors("quoted_price"):
        return booking_lifecycle.accept_booking(db, booking_id, current_user.id, quoted_price)


@router.post("/bookings/{booking_id}/decline", response_model=BookingResponse)
def decline_booking(
    booking_id: int,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
) -> Any:
    with booking_errors():
        return booking_lifecycle.decline_booking(db, booking_id, current_user.id)


@router.post("/bookings/{booking_id}/propose-price", response_model=BookingResponse)
def propose_price(
    booking_id: int,
    proposal: PriceProposal,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
) -> Any:
    """Vendor proposes a new price; the client approves or rejects it."""
    with booking_errors("amount"):
        return price_negotiation.propose_price(
            db, booking_id, current_user.id, proposal.amount, proposal.reason
        )


@router.post("/bookings/{booking_id}/approve-price", response_model=BookingResponse)
def approve_price(
    booking_id: int,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
) -> Any:
    with booking_errors():
        return price_negotiation.approve_price(db, booking_id, current_user.id)


@router.post("/bookings/{booking_id}/reject-price", response_model=BookingResponse)
def reject_price(
    booking_id: int,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
) -> Any:
    with booking_errors():
        return price_negotiation.reject_price(db, booking_id, current_user.id)


@router.post("/bookings/{booking_id}/cancel", response_model=BookingResponse)
def cancel_booking(
    booking_id: int,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
) -> Any:
    with booking_errors():
        return booking_lifecycle.cancel_booking(db, booking_id, current_user.id)


@router.post("/bookings/{booking_id}/complete", response_model=BookingResponse)
def complete_booking(
    booking_id: int,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
) -> Any:
    """Vendor marks a paid booking as delivered; releases the held payout."""
    with booking_errors():
        return booking_lifecycle.complete_booking(db, booking_id, current_user.id)
