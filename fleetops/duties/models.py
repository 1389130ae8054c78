# fleetops/duties/models.py

import math
from datetime import date, datetime, time, timedelta
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

from sqlalchemy import (
    Date, DateTime, ForeignKey, Integer, Numeric, String, Text, UniqueConstraint
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from fleetops.core.db import Base
from fleetops.users.models import AuditMixin

HOURS_PRECISION = Decimal("0.01")


def parse_clock(value: str) -> time:
    """Parse an ``HH:MM`` (or ``H:MM``) string into a time."""
    hour, _, minute = value.strip().partition(":")
    return time(int(hour), int(minute or 0))


class DutyRecord(Base, AuditMixin):
    """
    Odometer and time log for one (driver, booking) pair. Totals are derived
    on every write through ``recalculate_totals``.
    """

    __tablename__ = "duty_records"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    driver_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("drivers.id"), nullable=False, index=True
    )
    booking_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("bookings.id", ondelete="CASCADE"), nullable=False, index=True
    )

    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    start_time: Mapped[str] = mapped_column(String(5), nullable=False, comment="HH:MM")
    end_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_time: Mapped[str] = mapped_column(String(5), nullable=False, comment="HH:MM")
    start_km: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    end_km: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    duty_type: Mapped[str] = mapped_column(String(100), nullable=False)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True, default="")

    # Derived
    total_km: Mapped[Decimal] = mapped_column(
        Numeric(12, 2), nullable=False, default=Decimal("0"),
        comment="end_km - start_km"
    )
    total_hours: Mapped[Decimal] = mapped_column(
        Numeric(8, 2), nullable=False, default=Decimal("0"),
        comment="Elapsed hours, minimum 1"
    )
    total_days: Mapped[int] = mapped_column(
        Integer, nullable=False, default=1,
        comment="Inclusive day span, minimum 1"
    )

    # Audit of the creation path and admin edits
    created_by_role: Mapped[str] = mapped_column(
        String(20), nullable=False, default="user",
        comment="Role of the actor that created the record"
    )
    last_edited_by: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    last_edited_by_role: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    last_edited_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    booking: Mapped["Booking"] = relationship("Booking")
    driver: Mapped["Driver"] = relationship("Driver")

    __table_args__ = (
        UniqueConstraint("driver_id", "booking_id", name="uq_duty_records_driver_booking"),
    )

    def recalculate_totals(self) -> None:
        """Recompute distance, elapsed hours and day span from the raw fields."""
        self.total_km = Decimal(self.end_km) - Decimal(self.start_km)

        day_span = (self.end_date - self.start_date).days
        self.total_days = max(1, math.ceil(day_span) + 1)

        start_dt = datetime.combine(self.start_date, parse_clock(self.start_time))
        end_dt = datetime.combine(self.end_date, parse_clock(self.end_time))
        # overnight shift logged on a single date
        if end_dt <= start_dt and self.start_date == self.end_date:
            end_dt += timedelta(days=1)

        hours = Decimal(str((end_dt - start_dt).total_seconds() / 3600)).quantize(
            HOURS_PRECISION, rounding=ROUND_HALF_UP
        )
        self.total_hours = hours if hours > 0 else Decimal("1.00")

    @property
    def formatted_duration(self) -> str:
        if not self.total_hours:
            return "0h 0m"
        hours = int(Decimal(self.total_hours))
        minutes = int((Decimal(self.total_hours) - hours) * 60 + Decimal("0.5"))
        return f"{hours}h {minutes}m"

    @property
    def date_range(self) -> str:
        if not self.start_date or not self.end_date:
            return ""
        start, end = self.start_date.isoformat(), self.end_date.isoformat()
        return start if start == end else f"{start} to {end}"

    @property
    def time_range(self) -> str:
        if not self.start_time or not self.end_time:
            return ""
        return f"{self.start_time} - {self.end_time}"

    def calculations(self) -> dict:
        """Derived totals and human readable strings."""
        return {
            "total_km": float(self.total_km),
            "total_hours": float(self.total_hours),
            "total_days": self.total_days,
            "formatted_duration": self.formatted_duration,
            "date_range": self.date_range,
            "time_range": self.time_range,
        }

    def to_dict(self) -> dict:
        """Convert the DutyRecord model to a dictionary for serialization."""
        return {
            "id": self.id,
            "driver_id": self.driver_id,
            "booking_id": self.booking_id,
            "start_date": self.start_date.isoformat() if self.start_date else None,
            "start_time": self.start_time,
            "end_date": self.end_date.isoformat() if self.end_date else None,
            "end_time": self.end_time,
            "start_km": float(self.start_km),
            "end_km": float(self.end_km),
            "duty_type": self.duty_type,
            "notes": self.notes,
            "created_by": self.created_by,
            "created_by_role": self.created_by_role,
            "last_edited_by": self.last_edited_by,
            "last_edited_by_role": self.last_edited_by_role,
            "last_edited_at": self.last_edited_at.isoformat() if self.last_edited_at else None,
            **self.calculations(),
        }
