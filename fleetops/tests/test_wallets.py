# fleetops/tests/test_wallets.py

from decimal import Decimal

import pytest

from fleetops.core.exceptions import ForbiddenError, InsufficientBalanceError, ValidationError
from fleetops.tests.factories import admin_actor, create_test_admin, create_test_driver
from fleetops.users.models import Role
from fleetops.wallets.exceptions import InvalidWalletAmountError, WalletOwnerNotFoundError
from fleetops.wallets.models import OwnerType, TransactionCategory, TransactionType
from fleetops.wallets.services import WalletOwner, WalletService, explain_balance


@pytest.fixture
def wallet_service(db_session):
    """Wallet service fixture"""
    return WalletService(db_session)


@pytest.fixture
def admin(db_session):
    return create_test_admin(db_session, balance="500.00")


class TestWalletEntries:
    """Credits, debits and their ledger rows"""

    def test_credit_writes_one_row(self, db_session, wallet_service):
        driver = create_test_driver(db_session)

        tx = wallet_service.credit(WalletOwner.driver(driver.id), "125.50", "Bonus")

        assert tx.type == TransactionType.CREDIT
        assert tx.category == TransactionCategory.USER_WALLET
        assert tx.balance_after == Decimal("125.50")
        items = wallet_service.list_transactions(WalletOwner.driver(driver.id))["items"]
        assert [item.id for item in items] == [tx.id]

    def test_driver_wallet_may_go_negative(self, db_session, wallet_service):
        driver = create_test_driver(db_session)

        wallet_service.debit(WalletOwner.driver(driver.id), "40")

        assert wallet_service.get_balance(WalletOwner.driver(driver.id)) == Decimal("-40.00")

    def test_admin_wallet_may_not_go_negative(self, db_session, wallet_service, admin):
        with pytest.raises(InsufficientBalanceError) as exc:
            wallet_service.debit(WalletOwner.admin(admin.id), "500.01")

        assert exc.value.to_dict()["available"] == 500.0
        db_session.refresh(admin)
        assert admin.wallet_balance == Decimal("500.00")
        assert wallet_service.list_transactions(WalletOwner.admin(admin.id))["total_items"] == 0

    @pytest.mark.parametrize("amount", ["0", "-5", "abc", None, "NaN"])
    def test_invalid_amounts(self, db_session, wallet_service, amount):
        driver = create_test_driver(db_session)
        with pytest.raises(InvalidWalletAmountError):
            wallet_service.credit(WalletOwner.driver(driver.id), amount)

    def test_unknown_owner(self, wallet_service):
        with pytest.raises(WalletOwnerNotFoundError):
            wallet_service.credit(WalletOwner.driver(404), "10")


class TestWalletTransfers:
    """Two-legged movements share a transfer group"""

    def test_transfer_admin_to_driver(self, db_session, wallet_service, admin):
        driver = create_test_driver(db_session)

        result = wallet_service.transfer(
            WalletOwner.admin(admin.id), WalletOwner.driver(driver.id), "200", actor=admin_actor(admin)
        )

        assert result["debit"].transfer_group == result["credit"].transfer_group
        assert result["debit"].category == TransactionCategory.TRANSFER
        assert wallet_service.get_balance(WalletOwner.admin(admin.id)) == Decimal("300.00")
        assert wallet_service.get_balance(WalletOwner.driver(driver.id)) == Decimal("200.00")

    def test_failed_transfer_rolls_back_both_legs(self, db_session, wallet_service, admin):
        driver = create_test_driver(db_session)

        with pytest.raises(InsufficientBalanceError):
            wallet_service.transfer(WalletOwner.admin(admin.id), WalletOwner.driver(driver.id), "900")

        assert wallet_service.get_balance(WalletOwner.driver(driver.id)) == Decimal("0.00")
        assert wallet_service.list_transactions(WalletOwner.driver(driver.id))["total_items"] == 0

    def test_same_wallet_rejected(self, wallet_service, admin):
        with pytest.raises(ValidationError):
            wallet_service.transfer(WalletOwner.admin(admin.id), WalletOwner.admin(admin.id), "10")


class TestDriverCashMovements:
    """Advances, payments and debt collection"""

    def test_advance_debits_both_wallets(self, db_session, wallet_service, admin):
        driver = create_test_driver(db_session)

        result = wallet_service.advance_to_driver(admin_actor(admin), driver.id, "100")

        assert result["admin_transaction"].type == TransactionType.DEBIT
        assert result["driver_transaction"].type == TransactionType.DEBIT
        assert wallet_service.get_balance(WalletOwner.driver(driver.id)) == Decimal("-100.00")
        assert wallet_service.get_balance(WalletOwner.admin(admin.id)) == Decimal("400.00")

    def test_pay_requires_money_owed(self, db_session, wallet_service, admin):
        driver = create_test_driver(db_session, balance="0")

        with pytest.raises(ValidationError):
            wallet_service.pay_driver(admin_actor(admin), driver.id, "10")

    def test_pay_may_not_exceed_amount_owed(self, db_session, wallet_service, admin):
        driver = create_test_driver(db_session, balance="150")

        with pytest.raises(ValidationError):
            wallet_service.pay_driver(admin_actor(admin), driver.id, "151")

        wallet_service.pay_driver(admin_actor(admin), driver.id, "150")
        assert wallet_service.get_balance(WalletOwner.driver(driver.id)) == Decimal("0.00")
        assert wallet_service.get_balance(WalletOwner.admin(admin.id)) == Decimal("350.00")

    def test_collect_reduces_debt_and_funds_admin(self, db_session, wallet_service, admin):
        driver = create_test_driver(db_session, balance="-80")

        with pytest.raises(ValidationError):
            wallet_service.collect_from_driver(admin_actor(admin), driver.id, "100")

        wallet_service.collect_from_driver(admin_actor(admin), driver.id, "80")
        assert wallet_service.get_balance(WalletOwner.driver(driver.id)) == Decimal("0.00")
        assert wallet_service.get_balance(WalletOwner.admin(admin.id)) == Decimal("580.00")

    def test_collect_requires_debt(self, db_session, wallet_service, admin):
        driver = create_test_driver(db_session, balance="20")

        with pytest.raises(ValidationError):
            wallet_service.collect_from_driver(admin_actor(admin), driver.id, "10")


class TestWalletAdministration:
    """Manual adjustments and wallet details"""

    def test_subadmin_cannot_adjust_admin_wallets(self, db_session, wallet_service, admin):
        subadmin = create_test_admin(db_session, role=Role.SUBADMIN, name="Sub")

        with pytest.raises(ForbiddenError):
            wallet_service.adjust_admin_wallet(admin_actor(subadmin), admin.id, "10", TransactionType.CREDIT)

    def test_admin_adjusts_admin_wallet(self, wallet_service, admin):
        tx = wallet_service.adjust_admin_wallet(admin_actor(admin), admin.id, "10", TransactionType.CREDIT)

        assert tx.category == TransactionCategory.ADMIN_WALLET
        assert tx.description == "Admin wallet credit by admin"
        assert tx.actor_role == "admin"

    def test_details(self, db_session, wallet_service):
        driver = create_test_driver(db_session)
        owner = WalletOwner.driver(driver.id)
        wallet_service.credit(owner, "100")
        wallet_service.debit(owner, "30")

        details = wallet_service.get_wallet_details(owner)

        assert details["balance"] == Decimal("70.00")
        assert details["total_credit"] == Decimal("100.00")
        assert details["total_debit"] == Decimal("30.00")
        assert details["transaction_count"] == 2
        assert details["explanation"] == "Positive balance: Company owes money to driver"

    def test_balance_explanations(self):
        assert explain_balance(OwnerType.DRIVER, Decimal("-1")) == "Negative balance: Driver owes money to company"
        assert explain_balance(OwnerType.DRIVER, Decimal("0")) == "Account is balanced"
        assert explain_balance(OwnerType.ADMIN, Decimal("0")) == "No funds available"
        assert explain_balance(OwnerType.ADMIN, Decimal("5")) == "Available funds"
