# fleetops/bookings/models.py

from datetime import datetime
from enum import IntEnum
from typing import Any, Dict, List, Optional

from sqlalchemy import (
    JSON, Column, DateTime, ForeignKey, Index, Integer, String, Table
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from fleetops.core.db import Base
from fleetops.users.models import AuditMixin

DUTY_ID_KEY = "Duty Id"
DRIVER_CODE_KEY = "Driver Code"


class BookingStatus(IntEnum):
    """Numeric booking status."""

    OPEN = 0
    COMPLETED = 1


booking_labels = Table(
    "booking_labels",
    Base.metadata,
    Column("booking_id", Integer, ForeignKey("bookings.id", ondelete="CASCADE"), primary_key=True),
    Column("label_id", Integer, ForeignKey("labels.id", ondelete="CASCADE"), primary_key=True),
)


class Booking(Base, AuditMixin):
    """
    One trip/job. Trip attributes sourced from uploads are kept as an ordered
    list of ``{"key": ..., "value": ...}`` pairs with at most one entry per key.
    """

    __tablename__ = "bookings"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    driver_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("drivers.id", ondelete="SET NULL"), nullable=True, index=True,
        comment="Assigned driver. NULL means the booking is unassigned"
    )
    external_duty_id: Mapped[Optional[str]] = mapped_column(
        String(100), unique=True, nullable=True,
        comment="External 'Duty Id' used to match uploaded rows to bookings"
    )
    data: Mapped[List[Dict[str, Any]]] = mapped_column(
        JSON, nullable=False, default=list,
        comment="Ordered key/value trip attributes"
    )
    status: Mapped[int] = mapped_column(
        Integer, nullable=False, default=BookingStatus.OPEN,
        comment="0 = open, 1 = completed"
    )
    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    duty_record_id: Mapped[Optional[int]] = mapped_column(
        Integer, nullable=True,
        comment="First duty record captured for this booking"
    )
    receiving_id: Mapped[Optional[int]] = mapped_column(
        Integer, nullable=True,
        comment="Receiving entry captured for this booking"
    )

    # Relationships
    driver: Mapped[Optional["Driver"]] = relationship("Driver", back_populates="bookings")
    expenses: Mapped[List["Expense"]] = relationship(
        "Expense", back_populates="booking", order_by="Expense.id"
    )
    settlement: Mapped["BookingSettlement"] = relationship(
        "BookingSettlement", back_populates="booking", uselist=False,
        cascade="all, delete-orphan"
    )
    labels: Mapped[List["Label"]] = relationship(
        "Label", secondary=booking_labels, back_populates="bookings"
    )

    __table_args__ = (
        Index("idx_bookings_driver_status", "driver_id", "status"),
    )

    def expense_for(self, driver_id: Optional[int]) -> Optional["Expense"]:
        """
        The expense entry used for settlement math: the most recently updated
        entry of ``driver_id`` on this booking, ties broken by id.
        """
        entries = [e for e in self.expenses if driver_id is not None and e.driver_id == driver_id]
        if not entries:
            return None
        return max(entries, key=lambda e: (e.updated_on, e.id))

    def get_value(self, key: str) -> Any:
        """Return the value stored under ``key`` or None."""
        for item in self.data or []:
            if item.get("key") == key:
                return item.get("value")
        return None

    def to_dict(self) -> dict:
        """Convert the Booking model to a dictionary for serialization."""
        return {
            "id": self.id,
            "driver_id": self.driver_id,
            "external_duty_id": self.external_duty_id,
            "data": list(self.data or []),
            "status": self.status,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "duty_record_id": self.duty_record_id,
            "receiving_id": self.receiving_id,
            "label_ids": [label.id for label in self.labels],
            "created_on": self.created_on.isoformat() if self.created_on else None,
            "updated_on": self.updated_on.isoformat() if self.updated_on else None,
        }
