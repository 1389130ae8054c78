# fleetops/users/models.py

from datetime import datetime
from decimal import Decimal
from enum import Enum as PyEnum
from typing import Optional

from sqlalchemy import Boolean, DateTime, Enum, Integer, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column

from fleetops.core.db import Base
from fleetops.utils.general import utcnow


class Role(str, PyEnum):
    """Roles supplied by the upstream authentication layer."""

    ADMIN = "admin"
    SUBADMIN = "subadmin"
    USER = "user"


class AuditMixin:
    """Common audit columns shared by back office tables."""

    created_by: Mapped[Optional[str]] = mapped_column(
        String(64), nullable=True, comment="Actor that created the record"
    )
    modified_by: Mapped[Optional[str]] = mapped_column(
        String(64), nullable=True, comment="Actor that last modified the record"
    )
    created_on: Mapped[datetime] = mapped_column(
        DateTime, default=utcnow, nullable=False, comment="Creation timestamp (UTC)"
    )
    updated_on: Mapped[datetime] = mapped_column(
        DateTime, default=utcnow, onupdate=utcnow, nullable=False,
        comment="Last modification timestamp (UTC)"
    )


class Admin(Base, AuditMixin):
    """
    Back office actor (admin or subadmin) holding a company cash wallet.
    """

    __tablename__ = "admins"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[Optional[str]] = mapped_column(String(255), unique=True, nullable=True)
    role: Mapped[Role] = mapped_column(
        Enum(Role), nullable=False, default=Role.SUBADMIN,
        comment="admin or subadmin"
    )
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    wallet_balance: Mapped[Decimal] = mapped_column(
        Numeric(12, 2), nullable=False, default=Decimal("0.00"),
        comment="Admin cash wallet. Credit increases, debit decreases, never negative"
    )

    def to_dict(self) -> dict:
        """Convert the Admin model to a dictionary for serialization."""
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "role": self.role.value if self.role else None,
            "is_active": self.is_active,
            "wallet_balance": float(self.wallet_balance or 0),
        }
