"""Create fleet operations tables

Revision ID: a1f3c9d2e7b4
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = 'a1f3c9d2e7b4'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


role_enum = sa.Enum('ADMIN', 'SUBADMIN', 'USER', name='role')
claim_status_enum = sa.Enum('UNCLAIMED', 'CLAIMED', 'RELEASED', name='claimstatus')
settlement_status_enum = sa.Enum('PENDING', 'COMPLETED', 'REVERSED', name='settlementstatus')
transaction_type_enum = sa.Enum('CREDIT', 'DEBIT', name='transactiontype')
transaction_category_enum = sa.Enum('USER_WALLET', 'ADMIN_WALLET', 'TRANSFER', name='transactioncategory')


def _audit_columns():
    return [
        sa.Column('created_by', sa.String(length=64), nullable=True, comment='Actor that created the record'),
        sa.Column('modified_by', sa.String(length=64), nullable=True, comment='Actor that last modified the record'),
        sa.Column('created_on', sa.DateTime(), nullable=False, comment='Creation timestamp (UTC)'),
        sa.Column('updated_on', sa.DateTime(), nullable=False, comment='Last modification timestamp (UTC)'),
    ]


def _entry_columns():
    return [
        sa.Column('billing_items', sa.JSON(), nullable=False, comment='Itemized billing lines'),
        sa.Column('daily_allowance', sa.Numeric(precision=12, scale=2), nullable=False, server_default='0.00'),
        sa.Column('outstation_allowance', sa.Numeric(precision=12, scale=2), nullable=False, server_default='0.00'),
        sa.Column('night_allowance', sa.Numeric(precision=12, scale=2), nullable=False, server_default='0.00'),
        sa.Column('total_allowances', sa.Numeric(precision=12, scale=2), nullable=False, server_default='0.00', comment='daily + outstation + night'),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('submitted_by_role', sa.String(length=20), nullable=False, server_default='user', comment='Role of the actor that created the entry'),
        sa.Column('claim_status', claim_status_enum, nullable=False, server_default='UNCLAIMED'),
        sa.Column('claimed_by', sa.Integer(), nullable=True),
        sa.Column('claimed_by_role', sa.String(length=20), nullable=True),
        sa.Column('claimed_at', sa.DateTime(), nullable=True),
        sa.Column('released_by', sa.Integer(), nullable=True),
        sa.Column('released_at', sa.DateTime(), nullable=True),
        sa.Column('last_edited_by', sa.Integer(), nullable=True),
        sa.Column('last_edited_by_role', sa.String(length=20), nullable=True),
        sa.Column('last_edited_at', sa.DateTime(), nullable=True),
    ]


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table('admins',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=True),
        sa.Column('role', role_enum, nullable=False, comment='admin or subadmin'),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('wallet_balance', sa.Numeric(precision=12, scale=2), nullable=False, server_default='0.00', comment='Admin cash wallet. Credit increases, debit decreases, never negative'),
        *_audit_columns(),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('email')
    )

    op.create_table('drivers',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('driver_code', sa.String(length=50), nullable=False, comment='External driver code used by booking uploads'),
        sa.Column('full_name', sa.String(length=255), nullable=False),
        sa.Column('phone', sa.String(length=20), nullable=True),
        sa.Column('email', sa.String(length=255), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('wallet_balance', sa.Numeric(precision=12, scale=2), nullable=False, server_default='0.00', comment='Signed balance: positive = company owes driver'),
        *_audit_columns(),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_drivers_driver_code'), 'drivers', ['driver_code'], unique=True)

    op.create_table('bookings',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('driver_id', sa.Integer(), nullable=True, comment='Assigned driver. NULL means the booking is unassigned'),
        sa.Column('external_duty_id', sa.String(length=100), nullable=True, comment="External 'Duty Id' used to match uploaded rows to bookings"),
        sa.Column('data', sa.JSON(), nullable=False, comment='Ordered key/value trip attributes'),
        sa.Column('status', sa.Integer(), nullable=False, server_default='0', comment='0 = open, 1 = completed'),
        sa.Column('completed_at', sa.DateTime(), nullable=True),
        sa.Column('duty_record_id', sa.Integer(), nullable=True, comment='First duty record captured for this booking'),
        sa.Column('receiving_id', sa.Integer(), nullable=True, comment='Receiving entry captured for this booking'),
        *_audit_columns(),
        sa.ForeignKeyConstraint(['driver_id'], ['drivers.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('external_duty_id')
    )
    op.create_index(op.f('ix_bookings_driver_id'), 'bookings', ['driver_id'], unique=False)
    op.create_index('idx_bookings_driver_status', 'bookings', ['driver_id', 'status'], unique=False)

    op.create_table('labels',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.Column('color', sa.String(length=20), nullable=False, server_default='#888888', comment='Display color as a hex string'),
        sa.Column('created_by_role', sa.String(length=20), nullable=True),
        *_audit_columns(),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('name')
    )

    op.create_table('booking_labels',
        sa.Column('booking_id', sa.Integer(), nullable=False),
        sa.Column('label_id', sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(['booking_id'], ['bookings.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['label_id'], ['labels.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('booking_id', 'label_id')
    )

    op.create_table('duty_records',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('driver_id', sa.Integer(), nullable=False),
        sa.Column('booking_id', sa.Integer(), nullable=False),
        sa.Column('start_date', sa.Date(), nullable=False),
        sa.Column('start_time', sa.String(length=5), nullable=False, comment='HH:MM'),
        sa.Column('end_date', sa.Date(), nullable=False),
        sa.Column('end_time', sa.String(length=5), nullable=False, comment='HH:MM'),
        sa.Column('start_km', sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column('end_km', sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column('duty_type', sa.String(length=100), nullable=False),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('total_km', sa.Numeric(precision=12, scale=2), nullable=False, comment='end_km - start_km'),
        sa.Column('total_hours', sa.Numeric(precision=8, scale=2), nullable=False, comment='Elapsed hours, minimum 1'),
        sa.Column('total_days', sa.Integer(), nullable=False, comment='Inclusive day span, minimum 1'),
        sa.Column('created_by_role', sa.String(length=20), nullable=False, server_default='user', comment='Role of the actor that created the record'),
        sa.Column('last_edited_by', sa.Integer(), nullable=True),
        sa.Column('last_edited_by_role', sa.String(length=20), nullable=True),
        sa.Column('last_edited_at', sa.DateTime(), nullable=True),
        *_audit_columns(),
        sa.ForeignKeyConstraint(['booking_id'], ['bookings.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['driver_id'], ['drivers.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('driver_id', 'booking_id', name='uq_duty_records_driver_booking')
    )
    op.create_index(op.f('ix_duty_records_booking_id'), 'duty_records', ['booking_id'], unique=False)
    op.create_index(op.f('ix_duty_records_driver_id'), 'duty_records', ['driver_id'], unique=False)

    op.create_table('expenses',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('driver_id', sa.Integer(), nullable=False),
        sa.Column('booking_id', sa.Integer(), nullable=False),
        sa.Column('total_driver_expense', sa.Numeric(precision=12, scale=2), nullable=False, server_default='0.00', comment='total_allowances + sum of billing items'),
        *_entry_columns(),
        *_audit_columns(),
        sa.ForeignKeyConstraint(['booking_id'], ['bookings.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['driver_id'], ['drivers.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('driver_id', 'booking_id', name='uq_expenses_driver_booking')
    )
    op.create_index(op.f('ix_expenses_booking_id'), 'expenses', ['booking_id'], unique=False)
    op.create_index(op.f('ix_expenses_driver_id'), 'expenses', ['driver_id'], unique=False)

    op.create_table('receivings',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('driver_id', sa.Integer(), nullable=False),
        sa.Column('booking_id', sa.Integer(), nullable=False),
        sa.Column('received_from_client', sa.Numeric(precision=12, scale=2), nullable=False, server_default='0.00'),
        sa.Column('client_advance_amount', sa.Numeric(precision=12, scale=2), nullable=False, server_default='0.00'),
        sa.Column('client_bonus_amount', sa.Numeric(precision=12, scale=2), nullable=False, server_default='0.00'),
        sa.Column('incentive_amount', sa.Numeric(precision=12, scale=2), nullable=False, server_default='0.00'),
        sa.Column('total_receiving_amount', sa.Numeric(precision=12, scale=2), nullable=False, server_default='0.00', comment='total_allowances + client-side fields, billing items excluded'),
        *_entry_columns(),
        *_audit_columns(),
        sa.ForeignKeyConstraint(['booking_id'], ['bookings.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['driver_id'], ['drivers.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('driver_id', 'booking_id', name='uq_receivings_driver_booking')
    )
    op.create_index(op.f('ix_receivings_booking_id'), 'receivings', ['booking_id'], unique=False)
    op.create_index(op.f('ix_receivings_driver_id'), 'receivings', ['driver_id'], unique=False)

    op.create_table('wallet_transactions',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('driver_id', sa.Integer(), nullable=True),
        sa.Column('admin_id', sa.Integer(), nullable=True),
        sa.Column('actor_id', sa.Integer(), nullable=True),
        sa.Column('actor_role', sa.String(length=20), nullable=True),
        sa.Column('amount', sa.Numeric(precision=12, scale=2), nullable=False, comment='Always positive, direction is in type'),
        sa.Column('type', transaction_type_enum, nullable=False),
        sa.Column('category', transaction_category_enum, nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('balance_after', sa.Numeric(precision=12, scale=2), nullable=False, comment='Wallet balance right after this mutation'),
        sa.Column('booking_id', sa.Integer(), nullable=True),
        sa.Column('transfer_group', sa.String(length=36), nullable=True, comment='Shared id of the debit/credit legs of one transfer'),
        sa.Column('reverses_transaction_id', sa.Integer(), nullable=True, comment='Transaction this row reverses'),
        sa.Column('created_on', sa.DateTime(), nullable=False),
        sa.CheckConstraint('amount > 0', name='ck_wallet_transactions_amount_positive'),
        sa.CheckConstraint('(driver_id IS NULL) <> (admin_id IS NULL)', name='ck_wallet_transactions_single_owner'),
        sa.ForeignKeyConstraint(['admin_id'], ['admins.id'], ),
        sa.ForeignKeyConstraint(['booking_id'], ['bookings.id'], ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['driver_id'], ['drivers.id'], ),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_wallet_transactions_admin_id'), 'wallet_transactions', ['admin_id'], unique=False)
    op.create_index(op.f('ix_wallet_transactions_booking_id'), 'wallet_transactions', ['booking_id'], unique=False)
    op.create_index(op.f('ix_wallet_transactions_category'), 'wallet_transactions', ['category'], unique=False)
    op.create_index(op.f('ix_wallet_transactions_driver_id'), 'wallet_transactions', ['driver_id'], unique=False)
    op.create_index(op.f('ix_wallet_transactions_transfer_group'), 'wallet_transactions', ['transfer_group'], unique=False)
    op.create_index('idx_wallet_transactions_driver_created', 'wallet_transactions', ['driver_id', 'created_on'], unique=False)

    op.create_table('booking_settlements',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('booking_id', sa.Integer(), nullable=False, comment='One settlement record per booking'),
        sa.Column('status', settlement_status_enum, nullable=False, server_default='PENDING'),
        sa.Column('is_settled', sa.Boolean(), nullable=False),
        sa.Column('settlement_amount', sa.Numeric(precision=12, scale=2), nullable=True, comment='Applied amount including manual override and adjustments'),
        sa.Column('calculated_amount', sa.Numeric(precision=12, scale=2), nullable=True, comment='Expense total minus receiving total at settlement time'),
        sa.Column('admin_adjustments', sa.Numeric(precision=12, scale=2), nullable=False, server_default='0.00', comment='Manual delta added on top of the base amount'),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('settled_at', sa.DateTime(), nullable=True),
        sa.Column('settled_by', sa.Integer(), nullable=True),
        sa.Column('settled_by_role', sa.String(length=20), nullable=True),
        sa.Column('settled_by_name', sa.String(length=255), nullable=True),
        sa.Column('completed_by_settlement', sa.Boolean(), nullable=False, comment='True when settling also marked the booking completed'),
        sa.Column('transaction_id', sa.Integer(), nullable=True, comment='Driver wallet transaction created by the settlement'),
        sa.Column('admin_transaction_id', sa.Integer(), nullable=True, comment='Admin wallet transaction of the manual follow-up transfer'),
        sa.Column('admin_wallet_adjusted', sa.Boolean(), nullable=False, comment='True once the manual admin transfer was recorded'),
        sa.Column('admin_wallet_owner_id', sa.Integer(), nullable=True),
        sa.Column('reversed_at', sa.DateTime(), nullable=True),
        sa.Column('reversed_by', sa.Integer(), nullable=True),
        sa.Column('reversal_reason', sa.Text(), nullable=True),
        sa.Column('reversal_transaction_id', sa.Integer(), nullable=True),
        sa.Column('auto_reconciled_amount', sa.Numeric(precision=12, scale=2), nullable=False, server_default='0.00', comment='Net amount applied to the driver wallet by expense-save reconciliation'),
        *_audit_columns(),
        sa.ForeignKeyConstraint(['booking_id'], ['bookings.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['transaction_id'], ['wallet_transactions.id'], ),
        sa.ForeignKeyConstraint(['admin_transaction_id'], ['wallet_transactions.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('booking_id')
    )
    op.create_index(op.f('ix_booking_settlements_status'), 'booking_settlements', ['status'], unique=False)


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_index(op.f('ix_booking_settlements_status'), table_name='booking_settlements')
    op.drop_table('booking_settlements')

    op.drop_index('idx_wallet_transactions_driver_created', table_name='wallet_transactions')
    op.drop_index(op.f('ix_wallet_transactions_transfer_group'), table_name='wallet_transactions')
    op.drop_index(op.f('ix_wallet_transactions_driver_id'), table_name='wallet_transactions')
    op.drop_index(op.f('ix_wallet_transactions_category'), table_name='wallet_transactions')
    op.drop_index(op.f('ix_wallet_transactions_booking_id'), table_name='wallet_transactions')
    op.drop_index(op.f('ix_wallet_transactions_admin_id'), table_name='wallet_transactions')
    op.drop_table('wallet_transactions')

    op.drop_index(op.f('ix_receivings_driver_id'), table_name='receivings')
    op.drop_index(op.f('ix_receivings_booking_id'), table_name='receivings')
    op.drop_table('receivings')

    op.drop_index(op.f('ix_expenses_driver_id'), table_name='expenses')
    op.drop_index(op.f('ix_expenses_booking_id'), table_name='expenses')
    op.drop_table('expenses')

    op.drop_index(op.f('ix_duty_records_driver_id'), table_name='duty_records')
    op.drop_index(op.f('ix_duty_records_booking_id'), table_name='duty_records')
    op.drop_table('duty_records')

    op.drop_table('booking_labels')
    op.drop_table('labels')

    op.drop_index('idx_bookings_driver_status', table_name='bookings')
    op.drop_index(op.f('ix_bookings_driver_id'), table_name='bookings')
    op.drop_table('bookings')

    op.drop_index(op.f('ix_drivers_driver_code'), table_name='drivers')
    op.drop_table('drivers')
    op.drop_table('admins')

    for enum in (
        transaction_category_enum,
        transaction_type_enum,
        settlement_status_enum,
        claim_status_enum,
        role_enum,
    ):
        enum.drop(op.get_bind(), checkfirst=True)
