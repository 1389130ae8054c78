# fleetops/labels/models.py

from typing import List, Optional

from sqlalchemy import Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from fleetops.bookings.models import booking_labels
from fleetops.core.db import Base
from fleetops.users.models import AuditMixin


class Label(Base, AuditMixin):
    """Free-form tag that admins attach to bookings."""

    __tablename__ = "labels"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    color: Mapped[str] = mapped_column(
        String(20), nullable=False, default="#888888",
        comment="Display color as a hex string"
    )
    created_by_role: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)

    bookings: Mapped[List["Booking"]] = relationship(
        "Booking", secondary=booking_labels, back_populates="labels"
    )

    def to_dict(self) -> dict:
        """Convert the Label model to a dictionary for serialization."""
        return {
            "id": self.id,
            "name": self.name,
            "color": self.color,
            "created_by": self.created_by,
            "created_by_role": self.created_by_role,
        }
