# fleetops/drivers/models.py

from decimal import Decimal
from typing import List, Optional

from sqlalchemy import Boolean, Integer, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from fleetops.core.db import Base
from fleetops.users.models import AuditMixin


class Driver(Base, AuditMixin):
    """
    Driver model. The wallet balance uses the signed driver convention:
    positive means the company owes the driver, negative means the driver
    owes the company.
    """

    __tablename__ = "drivers"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    driver_code: Mapped[str] = mapped_column(
        String(50), unique=True, index=True, nullable=False,
        comment="External driver code used by booking uploads"
    )
    full_name: Mapped[str] = mapped_column(String(255), nullable=False)
    phone: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    wallet_balance: Mapped[Decimal] = mapped_column(
        Numeric(12, 2), nullable=False, default=Decimal("0.00"),
        comment="Signed balance: positive = company owes driver"
    )

    bookings: Mapped[List["Booking"]] = relationship(
        "Booking", back_populates="driver"
    )

    def to_dict(self) -> dict:
        """Convert the Driver model to a dictionary for serialization."""
        return {
            "id": self.id,
            "driver_code": self.driver_code,
            "full_name": self.full_name,
            "phone": self.phone,
            "email": self.email,
            "is_active": self.is_active,
            "wallet_balance": float(self.wallet_balance or 0),
        }
