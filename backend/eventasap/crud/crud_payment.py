from decimal import Decimal
from sqlalchemy.orm import Session
from typing import Any, Iterable, List, Optional

from .. import models
from ..models.payment import LedgerEntryType, PaymentStatus, PayoutStatus


def get_payment(db: Session, payment_id: int) -> Optional[models.Payment]:
    return db.query(models.Payment).filter(models.Payment.id == payment_id).first()


def get_payment_by_reference(db: Session, reference: str) -> Optional[models.Payment]:
    return (
        db.query(models.Payment)
        .filter(models.Payment.provider_reference == reference)
        .first()
    )


def get_pending_payments_for_booking(db: Session, booking_id: int) -> List[models.Payment]:
    return (
        db.query(models.Payment)
        .filter(
            models.Payment.booking_id == booking_id,
            models.Payment.status == PaymentStatus.PENDING,
        )
        .order_by(models.Payment.id.desc())
        .all()
    )


def get_succeeded_payment_for_booking(db: Session, booking_id: int) -> Optional[models.Payment]:
    return (
        db.query(models.Payment)
        .filter(
            models.Payment.booking_id == booking_id,
            models.Payment.status == PaymentStatus.SUCCEEDED,
        )
        .first()
    )


def get_payments_for_user(
    db: Session, user_id: int, skip: int = 0, limit: int = 20
) -> List[models.Payment]:
    """Payments the user made, plus payments made to the user as vendor."""
    return (
        db.query(models.Payment)
        .join(models.Booking, models.Booking.id == models.Payment.booking_id)
        .filter(
            (models.Payment.payer_id == user_id) | (models.Booking.vendor_id == user_id)
        )
        .order_by(models.Payment.created_at.desc(), models.Payment.id.desc())
        .offset(skip)
        .limit(limit)
        .all()
    )


def create_payment(
    db: Session, booking: models.Booking, payer_id: int, amount: Decimal, currency: str
) -> models.Payment:
    db_payment = models.Payment(
        booking_id=booking.id,
        payer_id=payer_id,
        amount=amount,
        currency=currency,
        status=PaymentStatus.PENDING,
    )
    db.add(db_payment)
    db.commit()
    db.refresh(db_payment)
    return db_payment


def compare_and_set_status(
    db: Session,
    payment_id: int,
    expected: Iterable[PaymentStatus],
    new_status: PaymentStatus,
    **fields: Any,
) -> bool:
    """Conditional status update for a payment; does not commit."""
    updated = (
        db.query(models.Payment)
        .filter(
            models.Payment.id == payment_id,
            models.Payment.status.in_(list(expected)),
        )
        .update({"status": new_status, **fields}, synchronize_session=False)
    )
    return updated == 1


def compare_and_set_payout(
    db: Session, payment_id: int, expected: PayoutStatus, new_status: PayoutStatus
) -> bool:
    updated = (
        db.query(models.Payment)
        .filter(
            models.Payment.id == payment_id,
            models.Payment.payout_status == expected,
        )
        .update({"payout_status": new_status}, synchronize_session=False)
    )
    return updated == 1


def add_ledger_entry(
    db: Session,
    payment: models.Payment,
    entry_type: LedgerEntryType,
    amount: Decimal,
) -> models.LedgerEntry:
    """Stage a ledger row; the unique (payment, type) key rejects duplicates at flush."""
    entry = models.LedgerEntry(
        booking_id=payment.booking_id,
        payment_id=payment.id,
        entry_type=entry_type,
        amount=amount,
        currency=payment.currency,
    )
    db.add(entry)
    return entry


def get_ledger_entries(db: Session, payment_id: int) -> List[models.LedgerEntry]:
    return (
        db.query(models.LedgerEntry)
        .filter(models.LedgerEntry.payment_id == payment_id)
        .order_by(models.LedgerEntry.id)
        .all()
    )
