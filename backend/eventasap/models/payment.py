from sqlalchemy import Column, Integer, Enum, Index, Numeric, ForeignKey, String, UniqueConstraint, text
from sqlalchemy.orm import relationship
import enum

from .base import BaseModel


class PaymentStatus(str, enum.Enum):
    PENDING = "PENDING"
    SUCCEEDED = "SUCCEEDED"
    FAILED = "FAILED"


class PayoutStatus(str, enum.Enum):
    HELD = "HELD"
    RELEASED_TO_VENDOR = "RELEASED_TO_VENDOR"


class LedgerEntryType(str, enum.Enum):
    CHARGE = "CHARGE"
    PLATFORM_FEE = "PLATFORM_FEE"
    VENDOR_PAYOUT_HELD = "VENDOR_PAYOUT_HELD"
    VENDOR_PAYOUT_RELEASED = "VENDOR_PAYOUT_RELEASED"


class Payment(BaseModel):
    __tablename__ = "payments"
    __table_args__ = (
        # At most one open intent per booking; a concurrent second insert fails
        Index(
            "uq_payments_pending_booking",
            "booking_id",
            unique=True,
            sqlite_where=text("status = 'PENDING'"),
            postgresql_where=text("status = 'PENDING'"),
        ),
    )

    id                 = Column(Integer, primary_key=True, index=True)
    booking_id         = Column(Integer, ForeignKey("bookings.id"), nullable=False, index=True)
    payer_id           = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    amount             = Column(Numeric(10, 2), nullable=False)
    currency           = Column(String(3), nullable=False)
    status             = Column(Enum(PaymentStatus), default=PaymentStatus.PENDING, nullable=False, index=True)
    # Payment intent id at the provider
    provider_reference = Column(String, nullable=True, unique=True)
    client_secret      = Column(String, nullable=True)
    failure_reason     = Column(String, nullable=True)

    # Escrow split, filled in when the payment succeeds
    platform_fee       = Column(Numeric(10, 2), nullable=True)
    vendor_payout      = Column(Numeric(10, 2), nullable=True)
    payout_status      = Column(Enum(PayoutStatus), nullable=True)

    booking        = relationship("Booking", back_populates="payments")
    payer          = relationship("User", foreign_keys=[payer_id])
    ledger_entries = relationship("LedgerEntry", back_populates="payment")


class LedgerEntry(BaseModel):
    """Append-only money movements; one row per (payment, entry type)."""

    __tablename__ = "ledger_entries"
    __table_args__ = (
        UniqueConstraint("payment_id", "entry_type", name="uq_ledger_payment_entry_type"),
    )

    id         = Column(Integer, primary_key=True, index=True)
    booking_id = Column(Integer, ForeignKey("bookings.id"), nullable=False, index=True)
    payment_id = Column(Integer, ForeignKey("payments.id"), nullable=False)
    entry_type = Column(Enum(LedgerEntryType), nullable=False)
    amount     = Column(Numeric(10, 2), nullable=False)
    currency   = Column(String(3), nullable=False)

    payment = relationship("Payment", back_populates="ledger_entries")
