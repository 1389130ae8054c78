# fleetops/receivings/services.py

from typing import Any, Dict

from fleetops.bookings.models import Booking
from fleetops.core.dependencies import Actor
from fleetops.entries.models import ALLOWANCE_FIELDS
from fleetops.entries.services import EntryService
from fleetops.receivings.models import CLIENT_FIELDS, Receiving
from fleetops.receivings.repository import ReceivingRepository
from fleetops.settlements.calculator import calculate_settlement


class ReceivingService(EntryService):
    """
    Receiving entry workflow. Saving never touches a wallet; the response
    carries an informational comparison with the booking's expense.
    """

    entry_name = "Receiving"
    repo_class = ReceivingRepository
    amount_fields = ALLOWANCE_FIELDS + CLIENT_FIELDS

    def after_save(self, booking: Booking, entry: Receiving, actor: Actor, created: bool) -> Dict[str, Any]:
        booking.receiving_id = entry.id

        comparison = None
        expense = booking.expense_for(entry.driver_id)
        if expense is not None:
            calculation = calculate_settlement(expense, entry)
            comparison = {
                "expense_total": calculation.expense_total,
                "receiving_total": calculation.receiving_total,
                "difference": calculation.difference,
                "explanation": calculation.explanation,
            }

        return {
            "totals": {
                "billing_total": entry.billing_total,
                "total_allowances": entry.total_allowances,
                "total_receiving_amount": entry.total_receiving_amount,
                "grand_total": entry.grand_total,
            },
            "reconciliation_preview": comparison,
        }
