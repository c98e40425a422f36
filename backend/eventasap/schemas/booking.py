from pydantic import BaseModel, Field
from typing import Dict, List, Optional, Annotated
from datetime import datetime
from decimal import Decimal
from ..models.booking_status import BookingStatus

Price = Annotated[Decimal, Field(max_digits=12, decimal_places=2)]


class BookingCreate(BaseModel):
    vendor_id: int
    event_type: str = Field(min_length=1, max_length=100)
    event_date: datetime
    event_location: str = Field(min_length=1, max_length=255)
    # Range checks happen in the service so they report INVALID_PRICE
    budget: Price
    guests: Optional[int] = Field(default=None, ge=0)
    message: Optional[str] = Field(default=None, max_length=2000)


class BookingAccept(BaseModel):
    quoted_price: Optional[Price] = None


class PriceProposal(BaseModel):
    amount: Price
    reason: Optional[str] = Field(default=None, max_length=500)


class BookingResponse(BaseModel):
    id: int
    client_id: int
    vendor_id: int
    event_type: str
    event_date: datetime
    event_location: str
    guests: Optional[int] = None
    message: Optional[str] = None
    status: BookingStatus
    budget: Decimal
    quoted_price: Optional[Decimal] = None
    adjusted_price: Optional[Decimal] = None
    price_adjustment_reason: Optional[str] = None
    final_price: Optional[Decimal] = None
    paid_amount: Optional[Decimal] = None
    created_at: datetime
    updated_at: datetime

    model_config = {
        "from_attributes": True
    }


class Pagination(BaseModel):
    skip: int
    limit: int
    total: int


class BookingListResponse(BaseModel):
    bookings: List[BookingResponse]
    stats: Dict[str, int]
    pagination: Pagination
