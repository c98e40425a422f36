from .user import User, UserType
from .booking import Booking
from .booking_status import BookingStatus
from .payment import Payment, PaymentStatus, PayoutStatus, LedgerEntry, LedgerEntryType
from .notification import Notification, NotificationType

__all__ = [
    "User",
    "UserType",
    "Booking",
    "BookingStatus",
    "Payment",
    "PaymentStatus",
    "PayoutStatus",
    "LedgerEntry",
    "LedgerEntryType",
    "Notification",
    "NotificationType",
]
