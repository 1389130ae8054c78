# fleetops/tests/test_expenses.py

from decimal import Decimal
from io import BytesIO

import pytest

from fleetops.core.exceptions import (
    DutyInfoRequiredError,
    ForbiddenError,
    InvalidFormatError,
    ValidationError,
)
from fleetops.duties.services import DutyService
from fleetops.entries.exceptions import (
    AttachmentUploadError,
    ClaimConflictError,
    ClaimNotHeldError,
    EntryAlreadyExistsError,
)
from fleetops.entries.models import ClaimStatus
from fleetops.entries.validators import Attachment
from fleetops.expenses.repository import ExpenseRepository
from fleetops.expenses.services import ExpenseService
from fleetops.receivings.services import ReceivingService
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


@pytest.fixture
def expense_service(db_session, storage):
    """Expense service fixture"""
    return ExpenseService(db_session, storage=storage)


@pytest.fixture
def receiving_service(db_session, storage):
    return ReceivingService(db_session, storage=storage)


@pytest.fixture
def driver(db_session):
    return create_test_driver(db_session)


@pytest.fixture
def booking(db_session, driver):
    return create_test_booking(db_session, driver)


@pytest.fixture
def with_duty(db_session, driver, booking):
    """Booking with the duty record already captured."""
    return DutyService(db_session).upsert_duty(driver_actor(driver), booking.id, duty_fields())


class TestExpenseDutyGate:
    """Expense entry requires duty information first"""

    def test_expense_before_duty_is_rejected(self, expense_service, driver, booking):
        with pytest.raises(DutyInfoRequiredError) as exc:
            expense_service.upsert(driver_actor(driver), booking.id, expense_fields())

        assert exc.value.to_dict()["dutyInfoRequired"] is True

    def test_expense_after_duty_is_saved(self, expense_service, driver, booking, with_duty):
        expense, extras = expense_service.upsert(driver_actor(driver), booking.id, expense_fields())

        assert expense.total_allowances == Decimal("500.00")
        assert expense.total_driver_expense == Decimal("800.00")
        assert expense.billing_items[0]["amount"] == "300.00"
        assert extras["totals"]["billing_total"] == Decimal("300.00")
        assert extras["duty_summary"]["total_km"] == 150.0
        assert extras["reconciliation"]["reason"] == "receiving_missing"
        assert expense.claim_status == ClaimStatus.UNCLAIMED


class TestExpenseValidation:
    """Billing validation collects every problem"""

    def test_three_problems_reported_together(self, expense_service, driver, booking, with_duty):
        fields = {
            "billing_items": [
                {"category": "Snacks", "amount": 10},
                {"category": "Toll", "amount": "abc"},
                {"category": "Fuel", "amount": 5},
            ],
            "daily_allowance": "-5",
        }
        with pytest.raises(ValidationError) as exc:
            expense_service.upsert(driver_actor(driver), booking.id, fields)

        errors = exc.value.errors
        assert len(errors) == 3
        assert errors[0].startswith("Item 0: invalid category 'Snacks'")
        assert errors[1] == "Item 1: amount must be a finite number"
        assert errors[2] == "daily_allowance cannot be negative"

    def test_billing_items_must_be_valid_json(self, expense_service, driver, booking, with_duty):
        with pytest.raises(InvalidFormatError) as exc:
            expense_service.upsert(driver_actor(driver), booking.id, {"billing_items": "[{bad"})

        assert exc.value.message == "billingItems invalid JSON"

    def test_billing_items_accepted_as_json_string(self, expense_service, driver, booking, with_duty):
        fields = {"billing_items": '[{"category": "Toll", "amount": "120.5"}]'}
        expense, _ = expense_service.upsert(driver_actor(driver), booking.id, fields)

        assert expense.total_driver_expense == Decimal("120.50")


class TestExpenseClaims:
    """The first admin to save becomes the editor of record"""

    def test_second_admin_is_rejected(self, db_session, expense_service, booking, with_duty):
        first = admin_actor(create_test_admin(db_session, name="First"))
        second = admin_actor(create_test_admin(db_session, name="Second"))

        expense, _ = expense_service.upsert(first, booking.id, expense_fields())
        assert expense.claim_status == ClaimStatus.CLAIMED
        assert expense.claimed_by == first.id

        with pytest.raises(ClaimConflictError) as exc:
            expense_service.upsert(second, booking.id, expense_fields(daily="600"))
        assert isinstance(exc.value, ForbiddenError)
        assert exc.value.to_dict()["claimedBy"] == first.id

        expense, _ = expense_service.upsert(first, booking.id, expense_fields(daily="600"))
        assert expense.total_driver_expense == Decimal("900.00")

    def test_driver_edits_are_not_subject_to_claims(self, db_session, expense_service, driver, booking, with_duty):
        admin = admin_actor(create_test_admin(db_session))
        expense_service.upsert(admin, booking.id, expense_fields())

        expense, _ = expense_service.upsert(driver_actor(driver), booking.id, expense_fields(daily="100"))

        assert expense.total_driver_expense == Decimal("400.00")
        assert expense.claimed_by == admin.id

    def test_release_lets_another_admin_claim(self, db_session, expense_service, booking, with_duty):
        first = admin_actor(create_test_admin(db_session, name="First"))
        second = admin_actor(create_test_admin(db_session, name="Second"))
        expense, _ = expense_service.upsert(first, booking.id, expense_fields())

        released = expense_service.release_claim(first, expense.id)
        assert released.claim_status == ClaimStatus.RELEASED
        assert released.released_by == first.id

        expense, _ = expense_service.upsert(second, booking.id, expense_fields())
        assert expense.claimed_by == second.id

    def test_release_requires_a_claim(self, db_session, expense_service, driver, booking, with_duty):
        admin = admin_actor(create_test_admin(db_session))
        expense, _ = expense_service.upsert(driver_actor(driver), booking.id, expense_fields())

        with pytest.raises(ClaimNotHeldError):
            expense_service.release_claim(admin, expense.id)


class TestExpenseAttachments:
    """Receipt images are stored and preserved across edits"""

    def test_upload_sets_item_image(self, expense_service, storage, driver, booking, with_duty):
        attachment = Attachment("billingItems[0].image", "receipt.jpg", BytesIO(b"jpg"), "image/jpeg")
        expense, _ = expense_service.upsert(driver_actor(driver), booking.id, expense_fields(), [attachment])

        assert expense.billing_items[0]["image"] == "billing-attachments/expense/receipt.jpg"
        storage.upload_file.assert_called_once()

    def test_image_carried_over_when_not_resent(self, expense_service, driver, booking, with_duty):
        attachment = Attachment("billingItems[0].image", "receipt.jpg", BytesIO(b"jpg"), "image/jpeg")
        expense_service.upsert(driver_actor(driver), booking.id, expense_fields(), [attachment])

        expense, _ = expense_service.upsert(driver_actor(driver), booking.id, expense_fields(billing="350"))

        assert expense.billing_items[0]["amount"] == "350.00"
        assert expense.billing_items[0]["image"] == "billing-attachments/expense/receipt.jpg"

    def test_items_kept_when_omitted(self, expense_service, driver, booking, with_duty):
        expense_service.upsert(driver_actor(driver), booking.id, expense_fields())

        expense, _ = expense_service.upsert(driver_actor(driver), booking.id, {"night_allowance": "50"})

        assert len(expense.billing_items) == 1
        assert expense.daily_allowance == Decimal("500.00")
        assert expense.total_driver_expense == Decimal("850.00")

    def test_failed_upload_aborts_the_save(self, expense_service, storage, driver, booking, with_duty):
        storage.upload_file.return_value = False
        attachment = Attachment("billingItems[0].image", "receipt.jpg", BytesIO(b"jpg"))

        with pytest.raises(AttachmentUploadError):
            expense_service.upsert(driver_actor(driver), booking.id, expense_fields(), [attachment])


class TestExpenseReconciliation:
    """Expense saves reconcile the driver wallet once a receiving exists"""

    def test_wallet_follows_the_difference(self, db_session, expense_service, receiving_service, driver, booking, with_duty):
        actor = driver_actor(driver)
        receiving_service.upsert(actor, booking.id, receiving_fields())

        _, extras = expense_service.upsert(actor, booking.id, expense_fields())
        assert extras["reconciliation"]["applied"] is True
        assert extras["reconciliation"]["delta"] == Decimal("350.00")
        db_session.refresh(driver)
        assert driver.wallet_balance == Decimal("350.00")

        _, extras = expense_service.upsert(actor, booking.id, expense_fields())
        assert extras["reconciliation"]["reason"] == "unchanged"
        db_session.refresh(driver)
        assert driver.wallet_balance == Decimal("350.00")

        _, extras = expense_service.upsert(actor, booking.id, expense_fields(daily="600"))
        assert extras["reconciliation"]["delta"] == Decimal("100.00")
        db_session.refresh(driver)
        assert driver.wallet_balance == Decimal("450.00")

    def test_debit_skipped_on_insufficient_balance(self, db_session, expense_service, receiving_service, driver, booking, with_duty):
        actor = driver_actor(driver)
        receiving_service.upsert(actor, booking.id, receiving_fields(received="900"))

        expense, extras = expense_service.upsert(actor, booking.id, expense_fields())

        assert expense.id is not None
        assert extras["reconciliation"]["reason"] == "insufficient_balance"
        assert extras["reconciliation"]["pending_delta"] == Decimal("-100.00")
        db_session.refresh(driver)
        assert driver.wallet_balance == Decimal("0.00")


class TestExpenseConcurrency:
    """Two first saves of the same pair: the loser fails cleanly"""

    def test_concurrent_create_loses_cleanly(self, monkeypatch, db_session, expense_service, driver, booking, with_duty):
        expense_service.upsert(driver_actor(driver), booking.id, expense_fields())
        # second request read the pair before the first one committed
        monkeypatch.setattr(expense_service.repo, "get_by_driver_and_booking", lambda driver_id, booking_id: None)

        with pytest.raises(EntryAlreadyExistsError) as exc:
            expense_service.upsert(driver_actor(driver), booking.id, expense_fields(daily="900"))

        assert exc.value.status_code == 409
        assert exc.value.to_dict()["kind"] == "DuplicateRecord"
        items, total = ExpenseRepository(db_session).list_entries(driver_id=driver.id)
        assert total == 1
        assert items[0].total_driver_expense == Decimal("800.00")
