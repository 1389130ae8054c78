# fleetops/wallets/models.py

from datetime import datetime
from decimal import Decimal
from enum import Enum as PyEnum
from typing import Optional

from sqlalchemy import (
    CheckConstraint, DateTime, Enum, ForeignKey, Index, Integer, Numeric,
    String, Text
)
from sqlalchemy.orm import Mapped, mapped_column

from fleetops.core.db import Base
from fleetops.utils.general import utcnow


class TransactionType(str, PyEnum):
    CREDIT = "credit"
    DEBIT = "debit"


class TransactionCategory(str, PyEnum):
    USER_WALLET = "user_wallet"
    ADMIN_WALLET = "admin_wallet"
    TRANSFER = "transfer"


class OwnerType(str, PyEnum):
    DRIVER = "driver"
    ADMIN = "admin"


class WalletTransaction(Base):
    """
    Append-only audit record of one wallet mutation.

    Rows are written in the same database transaction as the balance change
    they describe and are never updated or deleted. Reversals are new rows.
    """

    __tablename__ = "wallet_transactions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    # Wallet owner, exactly one of the two is set
    driver_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("drivers.id"), nullable=True, index=True
    )
    admin_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("admins.id"), nullable=True, index=True
    )

    # Initiator
    actor_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    actor_role: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)

    amount: Mapped[Decimal] = mapped_column(
        Numeric(12, 2), nullable=False, comment="Always positive, direction is in type"
    )
    type: Mapped[TransactionType] = mapped_column(Enum(TransactionType), nullable=False)
    category: Mapped[TransactionCategory] = mapped_column(
        Enum(TransactionCategory), nullable=False, index=True
    )
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    balance_after: Mapped[Decimal] = mapped_column(
        Numeric(12, 2), nullable=False, comment="Wallet balance right after this mutation"
    )

    # Context
    booking_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("bookings.id", ondelete="SET NULL"), nullable=True, index=True
    )
    transfer_group: Mapped[Optional[str]] = mapped_column(
        String(36), nullable=True, index=True,
        comment="Shared id of the debit/credit legs of one transfer"
    )
    reverses_transaction_id: Mapped[Optional[int]] = mapped_column(
        Integer, nullable=True, comment="Transaction this row reverses"
    )

    created_on: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)

    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_wallet_transactions_amount_positive"),
        CheckConstraint(
            "(driver_id IS NULL) <> (admin_id IS NULL)",
            name="ck_wallet_transactions_single_owner",
        ),
        Index("idx_wallet_transactions_driver_created", "driver_id", "created_on"),
    )

    @property
    def owner_type(self) -> OwnerType:
        return OwnerType.DRIVER if self.driver_id is not None else OwnerType.ADMIN

    @property
    def signed_amount(self) -> Decimal:
        """Amount with the sign of its effect on the balance."""
        return self.amount if self.type == TransactionType.CREDIT else -self.amount

    def to_dict(self) -> dict:
        """Convert the WalletTransaction model to a dictionary for serialization."""
        return {
            "id": self.id,
            "owner_type": self.owner_type.value,
            "driver_id": self.driver_id,
            "admin_id": self.admin_id,
            "actor_id": self.actor_id,
            "actor_role": self.actor_role,
            "amount": float(self.amount),
            "type": self.type.value,
            "category": self.category.value,
            "description": self.description,
            "balance_after": float(self.balance_after),
            "booking_id": self.booking_id,
            "transfer_group": self.transfer_group,
            "reverses_transaction_id": self.reverses_transaction_id,
            "created_on": self.created_on.isoformat() if self.created_on else None,
        }
