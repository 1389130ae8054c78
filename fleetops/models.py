# fleetops/models.py

"""
Model registry. Importing this module registers every table on
``Base.metadata`` so string relationships resolve and Alembic sees the
full schema.
"""

from fleetops.users.models import Admin, AuditMixin, Role
from fleetops.drivers.models import Driver
from fleetops.bookings.models import Booking, BookingStatus, booking_labels
from fleetops.labels.models import Label
from fleetops.duties.models import DutyRecord
from fleetops.expenses.models import Expense
from fleetops.receivings.models import Receiving
from fleetops.settlements.models import BookingSettlement, SettlementStatus
from fleetops.wallets.models import (
    OwnerType,
    TransactionCategory,
    TransactionType,
    WalletTransaction,
)

__all__ = [
    "Admin",
    "AuditMixin",
    "Role",
    "Driver",
    "Booking",
    "BookingStatus",
    "booking_labels",
    "Label",
    "DutyRecord",
    "Expense",
    "Receiving",
    "BookingSettlement",
    "SettlementStatus",
    "OwnerType",
    "TransactionCategory",
    "TransactionType",
    "WalletTransaction",
]
