# fleetops/expenses/repository.py

from fleetops.entries.repository import EntryRepository
from fleetops.expenses.models import Expense


class ExpenseRepository(EntryRepository[Expense]):
    """
    Data Access Layer for expense entries.
    """

    model = Expense
