import enum

class BookingStatus(str, enum.Enum):
    """Booking lifecycle states."""
    PENDING = "PENDING"
    ACCEPTED = "ACCEPTED"
    DECLINED = "DECLINED"
    PRICE_PROPOSED = "PRICE_PROPOSED"
    PRICE_APPROVED = "PRICE_APPROVED"
    PRICE_REJECTED = "PRICE_REJECTED"
    PAID = "PAID"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"
