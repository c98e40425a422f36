# backend/eventasap/models/booking.py

from sqlalchemy import Column, Integer, DateTime, Enum, Numeric, ForeignKey, String, Text
from sqlalchemy.orm import relationship

from .base import BaseModel
from .booking_status import BookingStatus

class Booking(BaseModel):
    __tablename__ = "bookings"

    id             = Column(Integer, primary_key=True, index=True)
    client_id      = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    vendor_id      = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    event_type     = Column(String, nullable=False)
    event_date     = Column(DateTime, nullable=False)
    event_location = Column(String, nullable=False)
    guests         = Column(Integer, nullable=True)
    message        = Column(Text, nullable=True)
    status         = Column(Enum(BookingStatus), default=BookingStatus.PENDING, nullable=False, index=True)

    # Commercial terms
    budget                  = Column(Numeric(10, 2), nullable=False)
    quoted_price            = Column(Numeric(10, 2), nullable=True)
    # Only set while PRICE_PROPOSED / PRICE_APPROVED
    adjusted_price          = Column(Numeric(10, 2), nullable=True)
    price_adjustment_reason = Column(String, nullable=True)
    final_price             = Column(Numeric(10, 2), nullable=True)
    # Written once by the PAID transition
    paid_amount             = Column(Numeric(10, 2), nullable=True)

    # Relationships
    client   = relationship("User", foreign_keys=[client_id])
    vendor   = relationship("User", foreign_keys=[vendor_id])
    payments = relationship("Payment", back_populates="booking", order_by="Payment.id.desc()")
