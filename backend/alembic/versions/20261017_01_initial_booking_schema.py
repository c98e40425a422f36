"""
Initial schema: users, bookings, payments, ledger entries, notifications.

Revision ID: 20261017_01_initial_booking_schema
Revises:
Create Date: 2026-10-17
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa
from typing import Union

# revision identifiers, used by Alembic.
revision: str = '20261017_01_initial_booking_schema'
down_revision: Union[str, None] = None
branch_labels = None
depends_on = None

BOOKING_STATUSES = (
    'PENDING', 'ACCEPTED', 'DECLINED', 'PRICE_PROPOSED', 'PRICE_APPROVED',
    'PRICE_REJECTED', 'PAID', 'COMPLETED', 'CANCELLED',
)
NOTIFICATION_TYPES = (
    'BOOKING_REQUEST', 'BOOKING_ACCEPTED', 'BOOKING_DECLINED', 'BOOKING_CANCELLED',
    'BOOKING_COMPLETED', 'PRICE_ADJUSTED', 'PRICE_APPROVED', 'PRICE_REJECTED',
    'PAYMENT_RECEIVED', 'PAYOUT_RELEASED',
)


def _timestamps():
    return [
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
    ]


def upgrade() -> None:
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('email', sa.String(), nullable=False),
        sa.Column('password', sa.String(), nullable=False),
        sa.Column('first_name', sa.String(), nullable=False),
        sa.Column('last_name', sa.String(), nullable=False),
        sa.Column('phone_number', sa.String(), nullable=True),
        sa.Column('user_type', sa.Enum('CLIENT', 'VENDOR', name='usertype'), nullable=False),
        sa.Column('business_name', sa.String(), nullable=True),
        sa.Column('category', sa.String(), nullable=True),
        sa.Column('city', sa.String(), nullable=True),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=True),
        *_timestamps(),
    )
    op.create_index('ix_users_id', 'users', ['id'])
    op.create_index('ix_users_email', 'users', ['email'], unique=True)
    op.create_index('ix_users_category', 'users', ['category'])

    op.create_table(
        'bookings',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('client_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('vendor_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('event_type', sa.String(), nullable=False),
        sa.Column('event_date', sa.DateTime(), nullable=False),
        sa.Column('event_location', sa.String(), nullable=False),
        sa.Column('guests', sa.Integer(), nullable=True),
        sa.Column('message', sa.Text(), nullable=True),
        sa.Column('status', sa.Enum(*BOOKING_STATUSES, name='bookingstatus'), nullable=False),
        sa.Column('budget', sa.Numeric(10, 2), nullable=False),
        sa.Column('quoted_price', sa.Numeric(10, 2), nullable=True),
        sa.Column('adjusted_price', sa.Numeric(10, 2), nullable=True),
        sa.Column('price_adjustment_reason', sa.String(), nullable=True),
        sa.Column('final_price', sa.Numeric(10, 2), nullable=True),
        sa.Column('paid_amount', sa.Numeric(10, 2), nullable=True),
        *_timestamps(),
    )
    op.create_index('ix_bookings_id', 'bookings', ['id'])
    op.create_index('ix_bookings_client_id', 'bookings', ['client_id'])
    op.create_index('ix_bookings_vendor_id', 'bookings', ['vendor_id'])
    op.create_index('ix_bookings_status', 'bookings', ['status'])

    op.create_table(
        'payments',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('booking_id', sa.Integer(), sa.ForeignKey('bookings.id'), nullable=False),
        sa.Column('payer_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('amount', sa.Numeric(10, 2), nullable=False),
        sa.Column('currency', sa.String(length=3), nullable=False),
        sa.Column('status', sa.Enum('PENDING', 'SUCCEEDED', 'FAILED', name='paymentstatus'), nullable=False),
        sa.Column('provider_reference', sa.String(), nullable=True, unique=True),
        sa.Column('client_secret', sa.String(), nullable=True),
        sa.Column('failure_reason', sa.String(), nullable=True),
        sa.Column('platform_fee', sa.Numeric(10, 2), nullable=True),
        sa.Column('vendor_payout', sa.Numeric(10, 2), nullable=True),
        sa.Column('payout_status', sa.Enum('HELD', 'RELEASED_TO_VENDOR', name='payoutstatus'), nullable=True),
        *_timestamps(),
    )
    op.create_index('ix_payments_id', 'payments', ['id'])
    op.create_index('ix_payments_booking_id', 'payments', ['booking_id'])
    op.create_index('ix_payments_payer_id', 'payments', ['payer_id'])
    op.create_index('ix_payments_status', 'payments', ['status'])
    op.create_index(
        'uq_payments_pending_booking',
        'payments',
        ['booking_id'],
        unique=True,
        sqlite_where=sa.text("status = 'PENDING'"),
        postgresql_where=sa.text("status = 'PENDING'"),
    )

    op.create_table(
        'ledger_entries',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('booking_id', sa.Integer(), sa.ForeignKey('bookings.id'), nullable=False),
        sa.Column('payment_id', sa.Integer(), sa.ForeignKey('payments.id'), nullable=False),
        sa.Column(
            'entry_type',
            sa.Enum('CHARGE', 'PLATFORM_FEE', 'VENDOR_PAYOUT_HELD', 'VENDOR_PAYOUT_RELEASED', name='ledgerentrytype'),
            nullable=False,
        ),
        sa.Column('amount', sa.Numeric(10, 2), nullable=False),
        sa.Column('currency', sa.String(length=3), nullable=False),
        *_timestamps(),
        sa.UniqueConstraint('payment_id', 'entry_type', name='uq_ledger_payment_entry_type'),
    )
    op.create_index('ix_ledger_entries_id', 'ledger_entries', ['id'])
    op.create_index('ix_ledger_entries_booking_id', 'ledger_entries', ['booking_id'])

    op.create_table(
        'notifications',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('type', sa.Enum(*NOTIFICATION_TYPES, name='notificationtype'), nullable=False),
        sa.Column('title', sa.String(), nullable=False),
        sa.Column('message', sa.String(), nullable=False),
        sa.Column('action_url', sa.String(), nullable=True),
        sa.Column('data', sa.JSON(), nullable=True),
        sa.Column('is_read', sa.Boolean(), nullable=False, server_default=sa.false()),
        *_timestamps(),
    )
    op.create_index('ix_notifications_id', 'notifications', ['id'])
    op.create_index('ix_notifications_user_id', 'notifications', ['user_id'])
    # Unread badge count
    op.create_index('ix_notifications_user_unread', 'notifications', ['user_id', 'is_read'])


def downgrade() -> None:
    op.drop_table('notifications')
    op.drop_table('ledger_entries')
    op.drop_table('payments')
    op.drop_table('bookings')
    op.drop_table('users')
    for name in ('notificationtype', 'ledgerentrytype', 'payoutstatus', 'paymentstatus', 'bookingstatus', 'usertype'):
        sa.Enum(name=name).drop(op.get_bind(), checkfirst=True)
