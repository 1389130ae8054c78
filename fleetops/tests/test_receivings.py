# fleetops/tests/test_receivings.py

from decimal import Decimal

import pytest

from fleetops.core.exceptions import DutyInfoRequiredError
from fleetops.duties.services import DutyService
from fleetops.expenses.services import ExpenseService
from fleetops.receivings.services import ReceivingService
from fleetops.tests.factories import (
    create_test_booking,
    create_test_driver,
    driver_actor,
    duty_fields,
    expense_fields,
)


@pytest.fixture
def receiving_service(db_session, storage):
    """Receiving service fixture"""
    return ReceivingService(db_session, storage=storage)


@pytest.fixture
def driver(db_session):
    return create_test_driver(db_session)


@pytest.fixture
def booking(db_session, driver):
    return create_test_booking(db_session, driver)


class TestReceivingEntry:
    """Receiving entry totals and the informational comparison"""

    def test_duty_required(self, receiving_service, driver, booking):
        with pytest.raises(DutyInfoRequiredError):
            receiving_service.upsert(driver_actor(driver), booking.id, {"received_from_client": "100"})

    def test_totals(self, db_session, receiving_service, driver, booking):
        DutyService(db_session).upsert_duty(driver_actor(driver), booking.id, duty_fields())
        fields = {
            "billing_items": [{"category": "Toll", "amount": "50"}],
            "daily_allowance": "100",
            "night_allowance": "20",
            "received_from_client": "400",
            "client_bonus_amount": "30",
        }
        receiving, extras = receiving_service.upsert(driver_actor(driver), booking.id, fields)

        assert receiving.total_allowances == Decimal("120.00")
        assert receiving.total_receiving_amount == Decimal("550.00")
        assert receiving.grand_total == Decimal("600.00")
        assert extras["totals"]["billing_total"] == Decimal("50.00")
        assert extras["reconciliation_preview"] is None
        db_session.refresh(booking)
        assert booking.receiving_id == receiving.id

    def test_preview_against_expense_leaves_wallet_alone(self, db_session, storage, receiving_service, driver, booking):
        actor = driver_actor(driver)
        DutyService(db_session).upsert_duty(actor, booking.id, duty_fields())
        ExpenseService(db_session, storage=storage).upsert(actor, booking.id, expense_fields())

        _, extras = receiving_service.upsert(actor, booking.id, {"received_from_client": "450"})

        preview = extras["reconciliation_preview"]
        assert preview["expense_total"] == Decimal("800.00")
        assert preview["receiving_total"] == Decimal("450.00")
        assert preview["difference"] == Decimal("350.00")
        assert preview["explanation"].startswith("Company owes driver 350.00")
        db_session.refresh(driver)
        assert driver.wallet_balance == Decimal("0.00")
