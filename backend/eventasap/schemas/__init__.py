from .user import UserBase, UserCreate, UserResponse, Token
from .booking import (
    BookingCreate,
    BookingAccept,
    PriceProposal,
    BookingResponse,
    BookingListResponse,
    Pagination,
)
from .payment import (
    PaymentIntentCreate,
    PaymentIntentResponse,
    PaymentConfirm,
    PaymentConfirmResponse,
    PaymentResponse,
)
from .notification import NotificationResponse, UnreadCountResponse, MarkAllReadResponse
from .vendor import VendorResponse, VendorListResponse
