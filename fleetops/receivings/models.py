# fleetops/receivings/models.py

from decimal import Decimal

from sqlalchemy import ForeignKey, Integer, Numeric, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from fleetops.core.db import Base
from fleetops.entries.models import LedgerEntryMixin
from fleetops.users.models import AuditMixin
from fleetops.utils.general import money

CLIENT_FIELDS = (
    "received_from_client",
    "client_advance_amount",
    "client_bonus_amount",
    "incentive_amount",
)


class Receiving(Base, LedgerEntryMixin, AuditMixin):
    """
    Money collected on a booking: itemized billing, allowances and the
    client-side receipts.
    """

    __tablename__ = "receivings"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    driver_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("drivers.id"), nullable=False, index=True
    )
    booking_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("bookings.id", ondelete="CASCADE"), nullable=False, index=True
    )

    received_from_client: Mapped[Decimal] = mapped_column(
        Numeric(12, 2), nullable=False, default=Decimal("0.00")
    )
    client_advance_amount: Mapped[Decimal] = mapped_column(
        Numeric(12, 2), nullable=False, default=Decimal("0.00")
    )
    client_bonus_amount: Mapped[Decimal] = mapped_column(
        Numeric(12, 2), nullable=False, default=Decimal("0.00")
    )
    incentive_amount: Mapped[Decimal] = mapped_column(
        Numeric(12, 2), nullable=False, default=Decimal("0.00")
    )
    total_receiving_amount: Mapped[Decimal] = mapped_column(
        Numeric(12, 2), nullable=False, default=Decimal("0.00"),
        comment="total_allowances + client-side fields, billing items excluded"
    )

    booking: Mapped["Booking"] = relationship("Booking")
    driver: Mapped["Driver"] = relationship("Driver")

    __table_args__ = (
        UniqueConstraint("driver_id", "booking_id", name="uq_receivings_driver_booking"),
    )

    def recalculate_totals(self) -> None:
        self.recalculate_allowances()
        client_total = sum((Decimal(getattr(self, name) or 0) for name in CLIENT_FIELDS), Decimal("0"))
        self.total_receiving_amount = money(Decimal(self.total_allowances) + client_total)

    @property
    def grand_total(self):
        """Billing items plus total_receiving_amount."""
        return money(self.billing_total + Decimal(self.total_receiving_amount or 0))

    def to_dict(self) -> dict:
        """Convert the Receiving model to a dictionary for serialization."""
        return {
            "id": self.id,
            "driver_id": self.driver_id,
            "booking_id": self.booking_id,
            **self.entry_dict(),
            "received_from_client": float(self.received_from_client or 0),
            "client_advance_amount": float(self.client_advance_amount or 0),
            "client_bonus_amount": float(self.client_bonus_amount or 0),
            "incentive_amount": float(self.incentive_amount or 0),
            "total_receiving_amount": float(self.total_receiving_amount or 0),
            "grand_total": float(self.grand_total),
            "created_by": self.created_by,
            "created_on": self.created_on.isoformat() if self.created_on else None,
            "updated_on": self.updated_on.isoformat() if self.updated_on else None,
        }
