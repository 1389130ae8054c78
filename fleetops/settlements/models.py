# fleetops/settlements/models.py

from datetime import datetime
from decimal import Decimal
from enum import Enum as PyEnum
from typing import Optional

from sqlalchemy import (
    Boolean, DateTime, Enum, ForeignKey, Integer, Numeric, String, Text
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from fleetops.core.db import Base
from fleetops.users.models import AuditMixin


class SettlementStatus(str, PyEnum):
    """Enumeration for booking settlement status."""

    PENDING = "pending"
    COMPLETED = "completed"
    REVERSED = "reversed"


class BookingSettlement(Base, AuditMixin):
    """
    Settlement sub-record of a booking, created empty alongside the booking.

    ``settlement_amount`` is the signed figure applied to the driver wallet:
    positive means the driver was credited (company owed the driver).
    """

    __tablename__ = "booking_settlements"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    booking_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("bookings.id", ondelete="CASCADE"), unique=True, nullable=False,
        comment="One settlement record per booking"
    )

    status: Mapped[SettlementStatus] = mapped_column(
        Enum(SettlementStatus), nullable=False, default=SettlementStatus.PENDING, index=True
    )
    is_settled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    # Amounts
    settlement_amount: Mapped[Optional[Decimal]] = mapped_column(
        Numeric(12, 2), nullable=True,
        comment="Applied amount including manual override and adjustments"
    )
    calculated_amount: Mapped[Optional[Decimal]] = mapped_column(
        Numeric(12, 2), nullable=True,
        comment="Expense total minus receiving total at settlement time"
    )
    admin_adjustments: Mapped[Decimal] = mapped_column(
        Numeric(12, 2), nullable=False, default=Decimal("0.00"),
        comment="Manual delta added on top of the base amount"
    )
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # Settlement audit
    settled_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    settled_by: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    settled_by_role: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    settled_by_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    completed_by_settlement: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False,
        comment="True when settling also marked the booking completed"
    )

    # Ledger references
    transaction_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("wallet_transactions.id"), nullable=True,
        comment="Driver wallet transaction created by the settlement"
    )
    admin_transaction_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("wallet_transactions.id"), nullable=True,
        comment="Admin wallet transaction of the manual follow-up transfer"
    )
    admin_wallet_adjusted: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False,
        comment="True once the manual admin transfer was recorded"
    )
    admin_wallet_owner_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    # Reversal audit
    reversed_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    reversed_by: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    reversal_reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    reversal_transaction_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    # Eager reconciliation fired from expense saves
    auto_reconciled_amount: Mapped[Decimal] = mapped_column(
        Numeric(12, 2), nullable=False, default=Decimal("0.00"),
        comment="Net amount applied to the driver wallet by expense-save reconciliation"
    )

    booking: Mapped["Booking"] = relationship("Booking", back_populates="settlement")

    def to_dict(self) -> dict:
        """Convert the BookingSettlement model to a dictionary for serialization."""
        return {
            "booking_id": self.booking_id,
            "status": self.status.value if self.status else None,
            "is_settled": self.is_settled,
            "settlement_amount": float(self.settlement_amount) if self.settlement_amount is not None else None,
            "calculated_amount": float(self.calculated_amount) if self.calculated_amount is not None else None,
            "admin_adjustments": float(self.admin_adjustments or 0),
            "notes": self.notes,
            "settled_at": self.settled_at.isoformat() if self.settled_at else None,
            "settled_by": self.settled_by,
            "settled_by_role": self.settled_by_role,
            "settled_by_name": self.settled_by_name,
            "transaction_id": self.transaction_id,
            "admin_transaction_id": self.admin_transaction_id,
            "admin_wallet_adjusted": self.admin_wallet_adjusted,
            "reversed_at": self.reversed_at.isoformat() if self.reversed_at else None,
            "reversed_by": self.reversed_by,
            "reversal_reason": self.reversal_reason,
            "auto_reconciled_amount": float(self.auto_reconciled_amount or 0),
        }
