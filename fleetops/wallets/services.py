# fleetops/wallets/services.py

import uuid
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Dict, Optional, Union

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from fleetops.core.dependencies import Actor
from fleetops.core.exceptions import FleetOpsError, ForbiddenError, ServerError, ValidationError
from fleetops.drivers.models import Driver
from fleetops.drivers.repository import DriverRepository
from fleetops.users.models import Admin
from fleetops.users.repository import AdminRepository
from fleetops.utils.general import ZERO, money, paginate, to_decimal
from fleetops.utils.logger import get_logger
from fleetops.wallets.exceptions import (
    AdminWalletInsufficientError,
    InvalidWalletAmountError,
    WalletOwnerNotFoundError,
)
from fleetops.wallets.models import (
    OwnerType,
    TransactionCategory,
    TransactionType,
    WalletTransaction,
)
from fleetops.wallets.repository import WalletTransactionRepository

logger = get_logger(__name__)

DRIVER_CATEGORIES = (TransactionCategory.USER_WALLET, TransactionCategory.TRANSFER)
ADMIN_CATEGORIES = (TransactionCategory.ADMIN_WALLET, TransactionCategory.TRANSFER)


@dataclass(frozen=True)
class WalletOwner:
    """Identifies the wallet a mutation targets."""

    type: OwnerType
    id: int

    @classmethod
    def driver(cls, driver_id: int) -> "WalletOwner":
        return cls(OwnerType.DRIVER, driver_id)

    @classmethod
    def admin(cls, admin_id: int) -> "WalletOwner":
        return cls(OwnerType.ADMIN, admin_id)


def explain_balance(owner_type: OwnerType, balance: Decimal) -> str:
    """Human readable meaning of a wallet balance."""
    if owner_type == OwnerType.ADMIN:
        return "Available funds" if balance > 0 else "No funds available"
    if balance < 0:
        return "Negative balance: Driver owes money to company"
    if balance > 0:
        return "Positive balance: Company owes money to driver"
    return "Account is balanced"


class WalletService:
    """
    Business Logic Layer for driver and admin wallets.

    Every balance change is paired with exactly one WalletTransaction row
    inside the same database transaction. ``post_entry`` leaves committing to
    the caller so larger operations (settlements, transfers) stay atomic; the
    public operations commit on success and roll back on any failure.
    """

    def __init__(self, db: Session):
        self.db = db
        self.repo = WalletTransactionRepository(db)
        self.driver_repo = DriverRepository(db)
        self.admin_repo = AdminRepository(db)

    # ------------------------------------------------------------------
    # Building blocks
    # ------------------------------------------------------------------

    def _validate_amount(self, amount: Any) -> Decimal:
        try:
            value = to_decimal(amount, default=None)
        except ValueError as e:
            raise InvalidWalletAmountError(amount) from e
        if value is None or value <= 0:
            raise InvalidWalletAmountError(amount)
        return money(value)

    def lock_owner(self, owner: WalletOwner) -> Union[Driver, Admin]:
        """Load the wallet owner with a row lock, raising if it does not exist."""
        if owner.type == OwnerType.DRIVER:
            entity = self.driver_repo.get_for_update(owner.id)
        else:
            entity = self.admin_repo.get_for_update(owner.id)
        if entity is None:
            raise WalletOwnerNotFoundError(owner.type.value, owner.id)
        return entity

    def post_entry(
        self,
        owner: WalletOwner,
        entry_type: TransactionType,
        amount: Any,
        description: Optional[str] = None,
        actor: Optional[Actor] = None,
        category: Optional[TransactionCategory] = None,
        booking_id: Optional[int] = None,
        transfer_group: Optional[str] = None,
        reverses_transaction_id: Optional[int] = None,
    ) -> WalletTransaction:
        """
        Apply one credit or debit to a wallet and write its ledger row.
        The caller is responsible for committing the transaction.

        Raises:
            InvalidWalletAmountError: amount is not a positive number
            WalletOwnerNotFoundError: the driver/admin does not exist
            AdminWalletInsufficientError: admin debit larger than the balance
        """
        value = self._validate_amount(amount)
        entity = self.lock_owner(owner)
        balance = Decimal(entity.wallet_balance or 0)

        if entry_type == TransactionType.DEBIT:
            if owner.type == OwnerType.ADMIN and balance < value:
                raise AdminWalletInsufficientError(owner.id, balance, value)
            new_balance = balance - value
        else:
            new_balance = balance + value

        if category is None:
            category = (
                TransactionCategory.USER_WALLET
                if owner.type == OwnerType.DRIVER
                else TransactionCategory.ADMIN_WALLET
            )

        entity.wallet_balance = money(new_balance)
        transaction = WalletTransaction(
            driver_id=owner.id if owner.type == OwnerType.DRIVER else None,
            admin_id=owner.id if owner.type == OwnerType.ADMIN else None,
            actor_id=actor.id if actor else None,
            actor_role=actor.role.value if actor else None,
            amount=value,
            type=entry_type,
            category=category,
            description=description,
            balance_after=entity.wallet_balance,
            booking_id=booking_id,
            transfer_group=transfer_group,
            reverses_transaction_id=reverses_transaction_id,
        )
        self.repo.add(transaction)
        logger.info(
            "Wallet entry posted",
            owner_type=owner.type.value,
            owner_id=owner.id,
            type=entry_type.value,
            amount=str(value),
            balance_after=str(entity.wallet_balance),
            transaction_id=transaction.id,
        )
        return transaction

    def apply_signed(
        self,
        owner: WalletOwner,
        signed_amount: Decimal,
        description: Optional[str] = None,
        **kwargs: Any,
    ) -> Optional[WalletTransaction]:
        """
        Add a signed amount to a wallet: positive credits, negative debits.
        Returns None and writes nothing for a zero amount.
        The caller is responsible for committing the transaction.
        """
        signed_amount = money(signed_amount)
        if signed_amount == 0:
            return None
        entry_type = TransactionType.CREDIT if signed_amount > 0 else TransactionType.DEBIT
        return self.post_entry(owner, entry_type, abs(signed_amount), description, **kwargs)

    def _commit(self, operation: str, func, *args, **kwargs):
        """Run a unit of wallet work, committing on success and rolling back on failure."""
        try:
            result = func(*args, **kwargs)
            self.db.commit()
            return result
        except FleetOpsError:
            self.db.rollback()
            raise
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error("Wallet operation failed", operation=operation, error=str(e), exc_info=True)
            raise ServerError(f"Wallet {operation} failed") from e

    # ------------------------------------------------------------------
    # Public operations
    # ------------------------------------------------------------------

    def credit(
        self,
        owner: WalletOwner,
        amount: Any,
        description: Optional[str] = None,
        actor: Optional[Actor] = None,
        **kwargs: Any,
    ) -> WalletTransaction:
        """Increase a wallet balance and record the credit."""
        return self._commit(
            "credit", self.post_entry, owner, TransactionType.CREDIT, amount,
            description, actor, **kwargs
        )

    def debit(
        self,
        owner: WalletOwner,
        amount: Any,
        description: Optional[str] = None,
        actor: Optional[Actor] = None,
        **kwargs: Any,
    ) -> WalletTransaction:
        """
        Decrease a wallet balance and record the debit. Driver wallets may go
        negative; admin wallets may not.
        """
        return self._commit(
            "debit", self.post_entry, owner, TransactionType.DEBIT, amount,
            description, actor, **kwargs
        )

    def _transfer(
        self,
        source: WalletOwner,
        target: WalletOwner,
        amount: Any,
        description: Optional[str],
        actor: Optional[Actor],
    ) -> Dict[str, Any]:
        if source == target:
            raise ValidationError(["Source and target wallets must differ"])
        group = str(uuid.uuid4())
        out_tx = self.post_entry(
            source, TransactionType.DEBIT, amount,
            description or f"Transfer to {target.type.value} {target.id}",
            actor, category=TransactionCategory.TRANSFER, transfer_group=group,
        )
        in_tx = self.post_entry(
            target, TransactionType.CREDIT, amount,
            description or f"Received from {source.type.value} {source.id}",
            actor, category=TransactionCategory.TRANSFER, transfer_group=group,
        )
        return {"transfer_group": group, "debit": out_tx, "credit": in_tx}

    def transfer(
        self,
        source: WalletOwner,
        target: WalletOwner,
        amount: Any,
        description: Optional[str] = None,
        actor: Optional[Actor] = None,
    ) -> Dict[str, Any]:
        """
        Move money between two wallets: one debit plus one credit sharing a
        transfer group id, committed together.
        """
        result = self._commit("transfer", self._transfer, source, target, amount, description, actor)
        logger.info(
            "Wallet transfer completed",
            source=f"{source.type.value}:{source.id}",
            target=f"{target.type.value}:{target.id}",
            transfer_group=result["transfer_group"],
        )
        return result

    def adjust_admin_wallet(
        self,
        actor: Actor,
        admin_id: int,
        amount: Any,
        entry_type: TransactionType,
        description: Optional[str] = None,
    ) -> WalletTransaction:
        """
        Manual admin wallet credit/debit. Admins may adjust any admin wallet,
        subadmins are not allowed to.
        """
        if not actor.is_superadmin:
            raise ForbiddenError("Only admins can adjust admin wallets")
        default_description = (
            f"Admin wallet credit by {actor.role.value}"
            if entry_type == TransactionType.CREDIT
            else f"Admin wallet deduction by {actor.role.value}"
        )
        return self._commit(
            "admin adjustment", self.post_entry, WalletOwner.admin(admin_id), entry_type,
            amount, description or default_description, actor,
            category=TransactionCategory.ADMIN_WALLET,
        )

    def adjust_driver_wallet(
        self,
        actor: Actor,
        driver_id: int,
        amount: Any,
        entry_type: TransactionType,
        description: Optional[str] = None,
    ) -> WalletTransaction:
        """Manual driver wallet correction by an admin or subadmin."""
        if not actor.is_admin:
            raise ForbiddenError("Only admins can adjust driver wallets")
        default_description = (
            f"Driver wallet credit by {actor.role.value}"
            if entry_type == TransactionType.CREDIT
            else f"Driver wallet deduction by {actor.role.value}"
        )
        return self._commit(
            "driver adjustment", self.post_entry, WalletOwner.driver(driver_id), entry_type,
            amount, description or default_description, actor,
            category=TransactionCategory.USER_WALLET,
        )

    def _cash_to_driver(
        self,
        actor: Actor,
        driver_id: int,
        amount: Decimal,
        description: str,
    ) -> Dict[str, Any]:
        group = str(uuid.uuid4())
        admin_tx = self.post_entry(
            WalletOwner.admin(actor.id), TransactionType.DEBIT, amount, description,
            actor, category=TransactionCategory.TRANSFER, transfer_group=group,
        )
        driver_tx = self.post_entry(
            WalletOwner.driver(driver_id), TransactionType.DEBIT, amount, description,
            actor, category=TransactionCategory.TRANSFER, transfer_group=group,
        )
        return {"transfer_group": group, "admin_transaction": admin_tx, "driver_transaction": driver_tx}

    def advance_to_driver(
        self,
        actor: Actor,
        driver_id: int,
        amount: Any,
        description: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Hand cash to a driver ahead of settlement. The admin wallet is debited
        and the driver wallet is debited (the driver now owes the advance).
        """
        if not actor.is_admin:
            raise ForbiddenError("Only admins can advance money to drivers")
        value = self._validate_amount(amount)
        return self._commit(
            "advance", self._cash_to_driver, actor, driver_id, value,
            description or f"Company advance to driver by {actor.role.value}",
        )

    def _pay_driver(self, actor: Actor, driver_id: int, value: Decimal, description: str):
        driver = self.lock_owner(WalletOwner.driver(driver_id))
        owed = Decimal(driver.wallet_balance or 0)
        if owed <= 0:
            raise ValidationError(["Company does not owe this driver any money"])
        if value > owed:
            raise ValidationError([f"Amount exceeds the amount owed to the driver ({owed})"])
        return self._cash_to_driver(actor, driver_id, value, description)

    def pay_driver(
        self,
        actor: Actor,
        driver_id: int,
        amount: Any,
        description: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Pay out money the company owes a driver. Requires a positive driver
        balance and the amount may not exceed it.
        """
        if not actor.is_admin:
            raise ForbiddenError("Only admins can pay drivers")
        value = self._validate_amount(amount)
        return self._commit(
            "payment", self._pay_driver, actor, driver_id, value,
            description or f"Company payment to driver by {actor.role.value}",
        )

    def _collect(self, actor: Actor, driver_id: int, value: Decimal, description: Optional[str]):
        driver = self.lock_owner(WalletOwner.driver(driver_id))
        debt = -Decimal(driver.wallet_balance or 0)
        if debt <= 0:
            raise ValidationError(["Driver has no outstanding debt to collect"])
        if value > debt:
            raise ValidationError([f"Amount exceeds the driver's outstanding debt ({debt})"])

        group = str(uuid.uuid4())
        driver_tx = self.post_entry(
            WalletOwner.driver(driver_id), TransactionType.CREDIT, value,
            description or f"Debt payment collected by {actor.role.value}",
            actor, category=TransactionCategory.TRANSFER, transfer_group=group,
        )
        admin_tx = self.post_entry(
            WalletOwner.admin(actor.id), TransactionType.CREDIT, value,
            description or f"Debt collection from driver {driver.full_name}",
            actor, category=TransactionCategory.TRANSFER, transfer_group=group,
        )
        return {"transfer_group": group, "driver_transaction": driver_tx, "admin_transaction": admin_tx}

    def collect_from_driver(
        self,
        actor: Actor,
        driver_id: int,
        amount: Any,
        description: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Collect cash a driver owes. The driver wallet is credited (debt
        shrinks) and the collecting admin's wallet is credited.
        """
        if not actor.is_admin:
            raise ForbiddenError("Only admins can collect money from drivers")
        value = self._validate_amount(amount)
        return self._commit("collection", self._collect, actor, driver_id, value, description)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def _owner_entity(self, owner: WalletOwner) -> Union[Driver, Admin]:
        if owner.type == OwnerType.DRIVER:
            entity = self.driver_repo.get_by_id(owner.id)
        else:
            entity = self.admin_repo.get_by_id(owner.id)
        if entity is None:
            raise WalletOwnerNotFoundError(owner.type.value, owner.id)
        return entity

    def get_balance(self, owner: WalletOwner) -> Decimal:
        return money(self._owner_entity(owner).wallet_balance or ZERO)

    def get_wallet_details(self, owner: WalletOwner) -> Dict[str, Any]:
        """Balance, credit/debit totals, transaction count and an explanation."""
        entity = self._owner_entity(owner)
        balance = money(entity.wallet_balance or ZERO)
        categories = DRIVER_CATEGORIES if owner.type == OwnerType.DRIVER else ADMIN_CATEGORIES
        totals = self.repo.totals_by_type(
            driver_id=owner.id if owner.type == OwnerType.DRIVER else None,
            admin_id=owner.id if owner.type == OwnerType.ADMIN else None,
            categories=categories,
        )
        total_credit, credit_count = totals[TransactionType.CREDIT]
        total_debit, debit_count = totals[TransactionType.DEBIT]
        return {
            "owner_type": owner.type.value,
            "owner_id": owner.id,
            "balance": balance,
            "total_credit": money(total_credit),
            "total_debit": money(total_debit),
            "transaction_count": credit_count + debit_count,
            "explanation": explain_balance(owner.type, balance),
        }

    def list_transactions(
        self,
        owner: WalletOwner,
        page: int = 1,
        per_page: int = 20,
        category: Optional[TransactionCategory] = None,
        transaction_type: Optional[TransactionType] = None,
    ) -> Dict[str, Any]:
        """Paginated ledger rows of one wallet, newest first."""
        self._owner_entity(owner)
        offset, limit = paginate(page, per_page)
        items, total = self.repo.list_for_owner(
            driver_id=owner.id if owner.type == OwnerType.DRIVER else None,
            admin_id=owner.id if owner.type == OwnerType.ADMIN else None,
            categories=[category] if category else None,
            transaction_type=transaction_type,
            offset=offset,
            limit=limit,
        )
        return {"items": items, "total_items": total, "page": page, "per_page": per_page}
