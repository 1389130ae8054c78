# fleetops/tests/test_calculator.py

from decimal import Decimal
from types import SimpleNamespace

from fleetops.settlements.calculator import calculate_settlement


def entry(billing, allowances=None, receiving=None):
    return SimpleNamespace(
        billing_total=Decimal(billing),
        total_allowances=Decimal(allowances or "0"),
        total_receiving_amount=Decimal(receiving or "0"),
    )


class TestSettlementCalculation:
    """Expense minus receiving, rounded half up to cents"""

    def test_company_owes_driver(self):
        result = calculate_settlement(entry("300", allowances="500"), entry("0", receiving="450"))

        assert result.expense_total == Decimal("800.00")
        assert result.receiving_total == Decimal("450.00")
        assert result.difference == Decimal("350.00")
        assert result.action == "credit"
        assert result.explanation == "Company owes driver 350.00: expenses 800.00 exceed receivings 450.00"

    def test_driver_owes_company(self):
        result = calculate_settlement(entry("100"), entry("50", receiving="250"))

        assert result.difference == Decimal("-200.00")
        assert result.action == "debit"
        assert result.explanation.startswith("Driver owes company 200.00")

    def test_balanced(self):
        result = calculate_settlement(entry("10", allowances="5"), entry("15"))

        assert result.difference == Decimal("0.00")
        assert result.action == "none"
        assert result.explanation == "Expenses and receivings match, nothing to settle"

    def test_rounding_half_up(self):
        result = calculate_settlement(entry("10.005"), entry("0"))

        assert result.expense_total == Decimal("10.01")
        assert result.to_dict()["difference"] == Decimal("10.01")
