# fleetops/settlements/calculator.py

"""
Pure settlement math. No database access.

Sign convention for the driver wallet: a positive difference means the
driver spent more than they collected, so the company owes the driver.
A negative difference means the driver owes the company.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Any

from fleetops.utils.general import money


@dataclass(frozen=True)
class SettlementCalculation:
    expense_billing_total: Decimal
    expense_allowances: Decimal
    receiving_billing_total: Decimal
    receiving_amount: Decimal

    @property
    def expense_total(self) -> Decimal:
        return money(self.expense_billing_total + self.expense_allowances)

    @property
    def receiving_total(self) -> Decimal:
        return money(self.receiving_billing_total + self.receiving_amount)

    @property
    def difference(self) -> Decimal:
        return money(self.expense_total - self.receiving_total)

    @property
    def action(self) -> str:
        """credit: driver wallet goes up, debit: it goes down."""
        if self.difference > 0:
            return "credit"
        if self.difference < 0:
            return "debit"
        return "none"

    @property
    def explanation(self) -> str:
        return explain_difference(self.difference, self.expense_total, self.receiving_total)

    def to_dict(self) -> dict:
        return {
            "expense_billing_total": self.expense_billing_total,
            "expense_allowances": self.expense_allowances,
            "expense_total": self.expense_total,
            "receiving_billing_total": self.receiving_billing_total,
            "receiving_amount": self.receiving_amount,
            "receiving_total": self.receiving_total,
            "difference": self.difference,
            "action": self.action,
            "explanation": self.explanation,
        }


def explain_difference(difference: Decimal, expense_total: Decimal, receiving_total: Decimal) -> str:
    """Which party owes whom, in words."""
    if difference > 0:
        return (
            f"Company owes driver {difference}: expenses {expense_total} "
            f"exceed receivings {receiving_total}"
        )
    if difference < 0:
        return (
            f"Driver owes company {abs(difference)}: receivings {receiving_total} "
            f"exceed expenses {expense_total}"
        )
    return "Expenses and receivings match, nothing to settle"


def calculate_settlement(expense: Any, receiving: Any) -> SettlementCalculation:
    """
    expense total   = expense billing items + expense total_allowances
    receiving total = receiving billing items + receiving total_receiving_amount
    difference      = round(expense total - receiving total, 2)
    """
    return SettlementCalculation(
        expense_billing_total=money(expense.billing_total),
        expense_allowances=money(expense.total_allowances or 0),
        receiving_billing_total=money(receiving.billing_total),
        receiving_amount=money(receiving.total_receiving_amount or 0),
    )
