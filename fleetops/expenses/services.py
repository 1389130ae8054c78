# fleetops/expenses/services.py

from typing import Any, Dict

from fleetops.bookings.models import Booking
from fleetops.core.dependencies import Actor
from fleetops.entries.models import ALLOWANCE_FIELDS
from fleetops.entries.services import EntryService
from fleetops.expenses.models import Expense
from fleetops.expenses.repository import ExpenseRepository
from fleetops.settlements.services import SettlementService
from fleetops.utils.logger import get_logger

logger = get_logger(__name__)


class ExpenseService(EntryService):
    """
    Expense entry workflow. Saving an expense links it to the booking and,
    once a receiving entry exists, reconciles the driver wallet eagerly.
    """

    entry_name = "Expense"
    repo_class = ExpenseRepository
    amount_fields = ALLOWANCE_FIELDS

    def after_save(self, booking: Booking, entry: Expense, actor: Actor, created: bool) -> Dict[str, Any]:
        if entry not in booking.expenses:
            booking.expenses.append(entry)

        duty = self.duty_service.find_for_pair(entry.driver_id, booking.id)
        reconciliation = SettlementService(self.db).auto_reconcile(booking, actor)
        if reconciliation.get("reason") == "insufficient_balance":
            logger.warning(
                "Expense saved without wallet reconciliation",
                booking_id=booking.id,
                expense_id=entry.id,
            )

        return {
            "totals": {
                "billing_total": entry.billing_total,
                "total_allowances": entry.total_allowances,
                "total_driver_expense": entry.total_driver_expense,
            },
            "duty_summary": duty.calculations() if duty else None,
            "reconciliation": reconciliation,
        }
