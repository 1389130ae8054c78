# fleetops/expenses/models.py

from decimal import Decimal

from sqlalchemy import ForeignKey, Integer, Numeric, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from fleetops.core.db import Base
from fleetops.entries.models import LedgerEntryMixin
from fleetops.users.models import AuditMixin
from fleetops.utils.general import money


class Expense(Base, LedgerEntryMixin, AuditMixin):
    """
    Costs a driver incurred on a booking: itemized billing plus allowances.
    """

    __tablename__ = "expenses"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    driver_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("drivers.id"), nullable=False, index=True
    )
    booking_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("bookings.id", ondelete="CASCADE"), nullable=False, index=True
    )
    total_driver_expense: Mapped[Decimal] = mapped_column(
        Numeric(12, 2), nullable=False, default=Decimal("0.00"),
        comment="total_allowances + sum of billing items"
    )

    booking: Mapped["Booking"] = relationship("Booking", back_populates="expenses")
    driver: Mapped["Driver"] = relationship("Driver")

    __table_args__ = (
        UniqueConstraint("driver_id", "booking_id", name="uq_expenses_driver_booking"),
    )

    def recalculate_totals(self) -> None:
        self.recalculate_allowances()
        self.total_driver_expense = money(Decimal(self.total_allowances) + self.billing_total)

    def to_dict(self) -> dict:
        """Convert the Expense model to a dictionary for serialization."""
        return {
            "id": self.id,
            "driver_id": self.driver_id,
            "booking_id": self.booking_id,
            **self.entry_dict(),
            "total_driver_expense": float(self.total_driver_expense or 0),
            "created_by": self.created_by,
            "created_on": self.created_on.isoformat() if self.created_on else None,
            "updated_on": self.updated_on.isoformat() if self.updated_on else None,
        }
