# fleetops/tests/test_settlements.py

from decimal import Decimal

import pytest

from fleetops.bookings.models import BookingStatus
from fleetops.bookings.services import BookingService
from fleetops.core.config import settings
from fleetops.core.exceptions import AlreadySettledError, ForbiddenError, NotSettledError, ValidationError
from fleetops.duties.services import DutyService
from fleetops.expenses.services import ExpenseService
from fleetops.receivings.services import ReceivingService
from fleetops.settlements.exceptions import SettlementNotEligibleError, SettlementTransferError
from fleetops.settlements.models import SettlementStatus
from fleetops.settlements.services import SettlementService
from fleetops.tests.factories import (
    admin_actor,
    create_test_admin,
    create_test_booking,
    create_test_driver,
    driver_actor,
    duty_fields,
    expense_fields,
    receiving_fields,
)
from fleetops.users.models import Role
from fleetops.wallets.repository import WalletTransactionRepository


@pytest.fixture(autouse=True)
def no_auto_reconcile(monkeypatch):
    """Keep expense saves from touching the wallet so settlement math is isolated."""
    monkeypatch.setattr(settings, "auto_reconcile_on_expense_save", False)


@pytest.fixture
def settlement_service(db_session):
    """Settlement service fixture"""
    return SettlementService(db_session)


@pytest.fixture
def driver(db_session):
    return create_test_driver(db_session)


@pytest.fixture
def admin(db_session):
    return create_test_admin(db_session, balance="1000.00")


@pytest.fixture
def booking(db_session, driver):
    return create_test_booking(db_session, driver)


def capture_entries(db_session, storage, driver, booking, expense=None, receiving=None):
    """Duty, expense and receiving for the booking, saved by its driver."""
    actor = driver_actor(driver)
    DutyService(db_session).upsert_duty(actor, booking.id, duty_fields())
    ExpenseService(db_session, storage=storage).upsert(actor, booking.id, expense or expense_fields())
    ReceivingService(db_session, storage=storage).upsert(actor, booking.id, receiving or receiving_fields())


def booking_transactions(db_session, booking_id):
    return WalletTransactionRepository(db_session).count_for_booking(booking_id)


class TestProcessSettlement:
    """Settling applies the signed difference to the driver wallet once"""

    def test_company_owes_driver(self, db_session, storage, settlement_service, driver, admin, booking):
        capture_entries(db_session, storage, driver, booking)

        result = settlement_service.process_settlement(admin_actor(admin), booking.id)

        assert result["calculation"]["difference"] == Decimal("350.00")
        assert result["final_amount"] == Decimal("350.00")
        assert result["driver_balance"] == Decimal("350.00")
        assert result["follow_up"]["direction"] == "company_to_driver"

        settlement = result["settlement"]
        assert settlement.is_settled is True
        assert settlement.status == SettlementStatus.COMPLETED
        assert settlement.settled_by == admin.id
        assert settlement.transaction_id == result["transaction"].id
        assert booking_transactions(db_session, booking.id) == 1

        db_session.refresh(booking)
        assert booking.status == BookingStatus.COMPLETED
        db_session.refresh(admin)
        assert admin.wallet_balance == Decimal("1000.00")

    def test_driver_owes_company(self, db_session, storage, settlement_service, driver, admin, booking):
        capture_entries(
            db_session, storage, driver, booking,
            expense=expense_fields(billing="100", daily="0"),
            receiving=receiving_fields(received="300"),
        )

        result = settlement_service.process_settlement(admin_actor(admin), booking.id)

        assert result["final_amount"] == Decimal("-200.00")
        assert result["calculation"]["action"] == "debit"
        assert result["driver_balance"] == Decimal("-200.00")
        assert result["follow_up"]["direction"] == "driver_to_company"

    def test_manual_amount_and_adjustment(self, db_session, storage, settlement_service, driver, admin, booking):
        capture_entries(db_session, storage, driver, booking)

        result = settlement_service.process_settlement(
            admin_actor(admin), booking.id, manual_amount="300", admin_adjustment="-25.50",
            notes="Toll receipt missing", mark_completed=False,
        )

        assert result["final_amount"] == Decimal("274.50")
        assert result["settlement"].calculated_amount == Decimal("350.00")
        assert result["settlement"].admin_adjustments == Decimal("-25.50")
        db_session.refresh(booking)
        assert booking.status == BookingStatus.OPEN

    def test_zero_difference_settles_without_transaction(self, db_session, storage, settlement_service, driver, admin, booking):
        capture_entries(
            db_session, storage, driver, booking,
            receiving=receiving_fields(received="800"),
        )

        result = settlement_service.process_settlement(admin_actor(admin), booking.id)

        assert result["transaction"] is None
        assert result["manual_transfer_required"] is False
        assert result["settlement"].is_settled is True
        assert booking_transactions(db_session, booking.id) == 0

    def test_second_settlement_is_rejected(self, db_session, storage, settlement_service, driver, admin, booking):
        capture_entries(db_session, storage, driver, booking)
        settlement_service.process_settlement(admin_actor(admin), booking.id)

        with pytest.raises(AlreadySettledError):
            settlement_service.process_settlement(admin_actor(admin), booking.id)

        db_session.refresh(driver)
        assert driver.wallet_balance == Decimal("350.00")
        assert booking_transactions(db_session, booking.id) == 1

    def test_missing_receiving_is_not_eligible(self, db_session, storage, settlement_service, driver, admin, booking):
        actor = driver_actor(driver)
        DutyService(db_session).upsert_duty(actor, booking.id, duty_fields())
        ExpenseService(db_session, storage=storage).upsert(actor, booking.id, expense_fields())

        with pytest.raises(SettlementNotEligibleError) as exc:
            settlement_service.process_settlement(admin_actor(admin), booking.id)

        assert isinstance(exc.value, ValidationError)
        assert exc.value.errors == ["No receiving entry found for this booking"]

    def test_reassigned_booking_settles_with_new_driver_entries(
        self, db_session, storage, settlement_service, driver, admin, booking
    ):
        capture_entries(db_session, storage, driver, booking)
        replacement = create_test_driver(db_session, code="DRV-002")
        BookingService(db_session).assign_driver(admin_actor(admin), booking.id, replacement.id)

        with pytest.raises(SettlementNotEligibleError) as exc:
            settlement_service.process_settlement(admin_actor(admin), booking.id)

        assert exc.value.errors == [
            "No expense entry found for this booking",
            "No receiving entry found for this booking",
        ]
        assert booking_transactions(db_session, booking.id) == 0

        capture_entries(
            db_session, storage, replacement, booking,
            expense=expense_fields(billing="100", daily="0"),
            receiving=receiving_fields(received="300"),
        )
        result = settlement_service.process_settlement(admin_actor(admin), booking.id)

        assert result["calculation"]["difference"] == Decimal("-200.00")
        assert result["driver_balance"] == Decimal("-200.00")
        db_session.refresh(driver)
        assert driver.wallet_balance == Decimal("0.00")

    def test_auto_reconciled_amount_is_reported(
        self, monkeypatch, db_session, storage, settlement_service, driver, admin, booking
    ):
        monkeypatch.setattr(settings, "auto_reconcile_on_expense_save", True)
        actor = driver_actor(driver)
        DutyService(db_session).upsert_duty(actor, booking.id, duty_fields())
        ReceivingService(db_session, storage=storage).upsert(actor, booking.id, receiving_fields())
        ExpenseService(db_session, storage=storage).upsert(actor, booking.id, expense_fields())

        result = settlement_service.process_settlement(admin_actor(admin), booking.id)

        assert result["auto_reconciled_amount"] == Decimal("350.00")
        assert "350.00" in result["follow_up"]["warning"]
        assert result["driver_balance"] == Decimal("700.00")

    def test_drivers_cannot_settle(self, settlement_service, driver, booking):
        with pytest.raises(ForbiddenError):
            settlement_service.process_settlement(driver_actor(driver), booking.id)


class TestReverseSettlement:
    """Reversal writes opposite ledger rows and reopens the booking"""

    def test_reversal_restores_balance(self, db_session, storage, settlement_service, driver, admin, booking):
        capture_entries(db_session, storage, driver, booking)
        settlement_service.process_settlement(admin_actor(admin), booking.id)

        result = settlement_service.reverse_settlement(admin_actor(admin), booking.id, "Wrong receipt")

        assert result["driver_balance"] == Decimal("0.00")
        assert result["driver_transaction"].reverses_transaction_id == result["settlement"].transaction_id
        assert result["settlement"].status == SettlementStatus.REVERSED
        assert result["settlement"].is_settled is False
        assert result["settlement"].reversal_reason == "Wrong receipt"
        assert booking_transactions(db_session, booking.id) == 2
        db_session.refresh(booking)
        assert booking.status == BookingStatus.OPEN

    def test_reversed_booking_can_be_settled_again(self, db_session, storage, settlement_service, driver, admin, booking):
        capture_entries(db_session, storage, driver, booking)
        settlement_service.process_settlement(admin_actor(admin), booking.id)
        settlement_service.reverse_settlement(admin_actor(admin), booking.id, "Recount")

        result = settlement_service.process_settlement(admin_actor(admin), booking.id)

        assert result["driver_balance"] == Decimal("350.00")
        assert booking_transactions(db_session, booking.id) == 3

    def test_subadmin_cannot_reverse(self, db_session, storage, settlement_service, driver, admin, booking):
        subadmin = create_test_admin(db_session, role=Role.SUBADMIN, name="Sub")
        capture_entries(db_session, storage, driver, booking)
        settlement_service.process_settlement(admin_actor(subadmin), booking.id)

        with pytest.raises(ForbiddenError):
            settlement_service.reverse_settlement(admin_actor(subadmin), booking.id, "Mistake")

    def test_reason_required(self, settlement_service, admin, booking):
        with pytest.raises(ValidationError):
            settlement_service.reverse_settlement(admin_actor(admin), booking.id, "  ")

    def test_unsettled_booking_cannot_be_reversed(self, settlement_service, admin, booking):
        with pytest.raises(NotSettledError):
            settlement_service.reverse_settlement(admin_actor(admin), booking.id, "Mistake")


class TestManualTransfer:
    """Company-side cash movement recorded after settling"""

    def test_transfer_and_reversal(self, db_session, storage, settlement_service, driver, admin, booking):
        capture_entries(db_session, storage, driver, booking)
        settlement_service.process_settlement(admin_actor(admin), booking.id)

        settlement = settlement_service.record_manual_transfer(admin_actor(admin), booking.id)
        assert settlement.admin_wallet_adjusted is True
        db_session.refresh(admin)
        assert admin.wallet_balance == Decimal("650.00")

        with pytest.raises(SettlementTransferError):
            settlement_service.record_manual_transfer(admin_actor(admin), booking.id)

        result = settlement_service.reverse_settlement(admin_actor(admin), booking.id, "Duplicate trip")
        assert result["admin_transaction"] is not None
        db_session.refresh(admin)
        db_session.refresh(driver)
        assert admin.wallet_balance == Decimal("1000.00")
        assert driver.wallet_balance == Decimal("0.00")

    def test_transfer_requires_settlement(self, settlement_service, admin, booking):
        with pytest.raises(NotSettledError):
            settlement_service.record_manual_transfer(admin_actor(admin), booking.id)


class TestSettlementReads:
    """Preview and pending lists never write"""

    def test_preview(self, db_session, storage, settlement_service, driver, booking):
        capture_entries(db_session, storage, driver, booking)

        preview = settlement_service.get_preview(booking.id)

        assert preview["difference"] == Decimal("350.00")
        assert preview["projected_balance"] == Decimal("350.00")
        assert preview["is_settled"] is False
        assert booking_transactions(db_session, booking.id) == 0

    def test_pending_lists_missing_entries(self, db_session, storage, settlement_service, driver, booking):
        capture_entries(db_session, storage, driver, booking)
        create_test_booking(db_session, driver, duty_id="DUTY-2")

        pending = settlement_service.get_pending_settlements()

        by_booking = {item["booking_id"]: item for item in pending["items"]}
        assert by_booking[booking.id]["requires_action"] is True
        assert by_booking[booking.id]["calculation"]["difference"] == Decimal("350.00")
        other = next(item for item in pending["items"] if item["booking_id"] != booking.id)
        assert other["requires_action"] is False
        assert "No expense entry found for this booking" in other["missing"]
