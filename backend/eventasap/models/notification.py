from sqlalchemy import Column, Integer, String, Boolean, Enum, ForeignKey, Index, JSON
from sqlalchemy.orm import relationship
import enum

from .base import BaseModel

class NotificationType(str, enum.Enum):
    BOOKING_REQUEST = "BOOKING_REQUEST"
    BOOKING_ACCEPTED = "BOOKING_ACCEPTED"
    BOOKING_DECLINED = "BOOKING_DECLINED"
    BOOKING_CANCELLED = "BOOKING_CANCELLED"
    BOOKING_COMPLETED = "BOOKING_COMPLETED"
    PRICE_ADJUSTED = "PRICE_ADJUSTED"
    PRICE_APPROVED = "PRICE_APPROVED"
    PRICE_REJECTED = "PRICE_REJECTED"
    PAYMENT_RECEIVED = "PAYMENT_RECEIVED"
    PAYOUT_RELEASED = "PAYOUT_RELEASED"

class Notification(BaseModel):
    __tablename__ = "notifications"
    __table_args__ = (Index("ix_notifications_user_unread", "user_id", "is_read"),)

    id         = Column(Integer, primary_key=True, index=True)
    user_id    = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    type       = Column(Enum(NotificationType), nullable=False)
    title      = Column(String, nullable=False)
    message    = Column(String, nullable=False)
    action_url = Column(String, nullable=True)
    data       = Column(JSON, nullable=True)
    is_read    = Column(Boolean, default=False, nullable=False)

    user = relationship("User", backref="notifications")
