# fleetops/wallets/exceptions.py

from decimal import Decimal

from fleetops.core.exceptions import (
    InsufficientBalanceError,
    NotFoundError,
    ValidationError,
)


class WalletOwnerNotFoundError(NotFoundError):
    """Raised when the driver or admin owning a wallet does not exist."""
    def __init__(self, owner_type: str, owner_id: int):
        self.owner_type = owner_type
        super().__init__(owner_type.capitalize(), owner_id)


class InvalidWalletAmountError(ValidationError):
    """Raised when an amount is missing, non-numeric or not positive."""
    def __init__(self, amount):
        self.amount = amount
        super().__init__([f"Amount must be a positive number, got '{amount}'"])


class AdminWalletInsufficientError(InsufficientBalanceError):
    """Raised when an admin wallet cannot cover a debit."""
    def __init__(self, admin_id: int, balance: Decimal, amount: Decimal):
        self.admin_id = admin_id
        self.balance = balance
        self.amount = amount
        super().__init__(
            f"Insufficient balance in admin wallet: available {balance}, requested {amount}",
            available=float(balance),
            requested=float(amount),
        )
