# fleetops/entries/models.py

from datetime import datetime
from decimal import Decimal
from enum import Enum as PyEnum
from typing import Any, Dict, List, Optional

from sqlalchemy import JSON, DateTime, Enum, Integer, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from fleetops.utils.general import money


class BillingCategory(str, PyEnum):
    """Closed set of billing item categories."""

    PARKING = "Parking"
    TOLL = "Toll"
    MCD = "MCD"
    INTERSTATE_TAX = "InterstateTax"
    FUEL = "Fuel"
    OTHER = "Other"


class ClaimStatus(str, PyEnum):
    """Editor-of-record state of an expense or receiving entry."""

    UNCLAIMED = "unclaimed"
    CLAIMED = "claimed"
    RELEASED = "released"


ALLOWANCE_FIELDS = ("daily_allowance", "outstation_allowance", "night_allowance")


class LedgerEntryMixin:
    """
    Columns shared by expense and receiving entries: itemized billing, the
    three fixed allowances, the admin claim and audit fields.

    Billing items are stored as a JSON list of
    ``{"category", "amount", "image", "note"}`` with amounts as decimal strings.
    """

    billing_items: Mapped[List[Dict[str, Any]]] = mapped_column(
        JSON, nullable=False, default=list,
        comment="Itemized billing lines"
    )
    daily_allowance: Mapped[Decimal] = mapped_column(
        Numeric(12, 2), nullable=False, default=Decimal("0.00")
    )
    outstation_allowance: Mapped[Decimal] = mapped_column(
        Numeric(12, 2), nullable=False, default=Decimal("0.00")
    )
    night_allowance: Mapped[Decimal] = mapped_column(
        Numeric(12, 2), nullable=False, default=Decimal("0.00")
    )
    total_allowances: Mapped[Decimal] = mapped_column(
        Numeric(12, 2), nullable=False, default=Decimal("0.00"),
        comment="daily + outstation + night"
    )
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    submitted_by_role: Mapped[str] = mapped_column(
        String(20), nullable=False, default="user",
        comment="Role of the actor that created the entry"
    )

    # Claim state machine
    claim_status: Mapped[ClaimStatus] = mapped_column(
        Enum(ClaimStatus), nullable=False, default=ClaimStatus.UNCLAIMED
    )
    claimed_by: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    claimed_by_role: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    claimed_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    released_by: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    released_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    last_edited_by: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    last_edited_by_role: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    last_edited_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    @property
    def billing_total(self) -> Decimal:
        """Sum of billing item amounts."""
        return money(sum((Decimal(str(item.get("amount", 0))) for item in self.billing_items or []), Decimal("0")))

    def recalculate_allowances(self) -> None:
        self.total_allowances = money(
            sum((Decimal(getattr(self, name) or 0) for name in ALLOWANCE_FIELDS), Decimal("0"))
        )

    def entry_dict(self) -> dict:
        """Serialization of the shared columns."""
        return {
            "billing_items": list(self.billing_items or []),
            "billing_total": float(self.billing_total),
            "daily_allowance": float(self.daily_allowance or 0),
            "outstation_allowance": float(self.outstation_allowance or 0),
            "night_allowance": float(self.night_allowance or 0),
            "total_allowances": float(self.total_allowances or 0),
            "notes": self.notes,
            "submitted_by_role": self.submitted_by_role,
            "claim_status": self.claim_status.value if self.claim_status else None,
            "claimed_by": self.claimed_by,
            "claimed_by_role": self.claimed_by_role,
            "claimed_at": self.claimed_at.isoformat() if self.claimed_at else None,
            "released_by": self.released_by,
            "released_at": self.released_at.isoformat() if self.released_at else None,
            "last_edited_by": self.last_edited_by,
            "last_edited_by_role": self.last_edited_by_role,
            "last_edited_at": self.last_edited_at.isoformat() if self.last_edited_at else None,
        }
