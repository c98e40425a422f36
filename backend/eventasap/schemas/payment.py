from pydantic import BaseModel
from typing import Optional
from datetime import datetime
from decimal import Decimal

from ..models.booking_status import BookingStatus
from ..models.payment import PaymentStatus, PayoutStatus
from .booking import Price


class PaymentIntentCreate(BaseModel):
    booking_id: int
    # Amount the client saw; rejected if it no longer matches the booking
    expected_amount: Optional[Price] = None


class PaymentIntentResponse(BaseModel):
    payment_id: int
    client_secret: str
    amount: Decimal
    currency: str


class PaymentConfirm(BaseModel):
    payment_id: int
    provider_status: PaymentStatus


class PaymentConfirmResponse(BaseModel):
    payment_id: int
    payment_status: PaymentStatus
    booking_status: BookingStatus


class PaymentResponse(BaseModel):
    id: int
    booking_id: int
    payer_id: int
    amount: Decimal
    currency: str
    status: PaymentStatus
    platform_fee: Optional[Decimal] = None
    vendor_payout: Optional[Decimal] = None
    payout_status: Optional[PayoutStatus] = None
    created_at: datetime

    model_config = {"from_attributes": True}
