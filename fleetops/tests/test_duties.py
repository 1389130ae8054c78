# fleetops/tests/test_duties.py

from decimal import Decimal

import pytest

from fleetops.core.exceptions import ForbiddenError, NotFoundError, ValidationError
from fleetops.duties.exceptions import DutyAlreadyExistsError
from fleetops.duties.repository import DutyRepository
from fleetops.duties.services import DutyService
from fleetops.tests.factories import (
    admin_actor,
    create_test_admin,
    create_test_booking,
    create_test_driver,
    driver_actor,
    duty_fields,
)


@pytest.fixture
def duty_service(db_session):
    """Duty service fixture"""
    return DutyService(db_session)


@pytest.fixture
def driver(db_session):
    return create_test_driver(db_session)


@pytest.fixture
def booking(db_session, driver):
    return create_test_booking(db_session, driver)


class TestDutyUpsert:
    """Duty record creation and derived totals"""

    def test_single_day_duty_totals(self, duty_service, driver, booking):
        record = duty_service.upsert_duty(driver_actor(driver), booking.id, duty_fields())

        assert record.total_km == Decimal("150")
        assert record.total_hours == Decimal("9.00")
        assert record.total_days == 1
        assert record.formatted_duration == "9h 0m"
        assert record.created_by_role == "user"
        assert booking.duty_record_id == record.id

    def test_overnight_shift_on_one_date(self, duty_service, driver, booking):
        fields = duty_fields(start_time="22:00", end_time="06:30")
        record = duty_service.upsert_duty(driver_actor(driver), booking.id, fields)

        assert record.total_hours == Decimal("8.50")
        assert record.total_days == 1

    def test_multi_day_duty_counts_days_inclusively(self, duty_service, driver, booking):
        fields = duty_fields(end_date="2024-03-03", end_time="08:00")
        record = duty_service.upsert_duty(driver_actor(driver), booking.id, fields)

        assert record.total_days == 3
        assert record.total_hours == Decimal("48.00")
        assert record.date_range == "2024-03-01 to 2024-03-03"

    def test_second_save_updates_the_same_record(self, duty_service, driver, booking):
        first = duty_service.upsert_duty(driver_actor(driver), booking.id, duty_fields())
        second = duty_service.upsert_duty(driver_actor(driver), booking.id, duty_fields(end_km="1200"))

        assert second.id == first.id
        assert second.total_km == Decimal("200")

    def test_concurrent_create_loses_cleanly(self, monkeypatch, duty_service, driver, booking):
        duty_service.upsert_duty(driver_actor(driver), booking.id, duty_fields())
        # second request read the pair before the first one committed
        monkeypatch.setattr(duty_service.repo, "get_by_driver_and_booking", lambda driver_id, booking_id: None)

        with pytest.raises(DutyAlreadyExistsError) as exc:
            duty_service.upsert_duty(driver_actor(driver), booking.id, duty_fields(end_km="1200"))

        assert exc.value.status_code == 409
        assert exc.value.to_dict()["kind"] == "DuplicateRecord"
        items, total = DutyRepository(duty_service.db).list_duties(booking_id=booking.id)
        assert total == 1
        assert items[0].total_km == Decimal("150")

    def test_admin_saves_on_behalf_of_assigned_driver(self, db_session, duty_service, driver, booking):
        admin = create_test_admin(db_session)
        record = duty_service.upsert_duty(admin_actor(admin), booking.id, duty_fields())

        assert record.driver_id == driver.id
        assert record.last_edited_by == admin.id
        assert record.last_edited_by_role == "admin"


class TestDutyValidation:
    """Every validation problem is reported in one error"""

    def test_missing_fields_are_batched(self, duty_service, driver, booking):
        with pytest.raises(ValidationError) as exc:
            duty_service.upsert_duty(driver_actor(driver), booking.id, {"duty_type": "Local"})

        errors = exc.value.errors
        assert "Duty start date is required" in errors
        assert "Duty end KM is required" in errors
        assert len(errors) == 6

    def test_invalid_values_are_batched(self, duty_service, driver, booking):
        fields = duty_fields(start_time="25:00", start_km="abc", end_date="not-a-date")
        with pytest.raises(ValidationError) as exc:
            duty_service.upsert_duty(driver_actor(driver), booking.id, fields)

        assert exc.value.errors == [
            "Invalid end date format",
            "Invalid start time format",
            "Start KM must be a valid positive number",
        ]

    def test_end_km_before_start_km(self, duty_service, driver, booking):
        with pytest.raises(ValidationError) as exc:
            duty_service.upsert_duty(driver_actor(driver), booking.id, duty_fields(end_km="900"))

        assert exc.value.errors == ["End KM cannot be less than start KM"]


class TestDutyAccess:
    """Ownership rules of the duty record"""

    def test_driver_cannot_touch_another_drivers_booking(self, db_session, duty_service, booking):
        other = create_test_driver(db_session, code="DRV-002")
        with pytest.raises(ForbiddenError):
            duty_service.upsert_duty(driver_actor(other), booking.id, duty_fields())

    def test_admin_needs_an_assigned_driver(self, db_session, duty_service):
        admin = create_test_admin(db_session)
        unassigned = create_test_booking(db_session, duty_id="DUTY-UNASSIGNED")
        with pytest.raises(ValidationError):
            duty_service.upsert_duty(admin_actor(admin), unassigned.id, duty_fields())

    def test_unknown_booking(self, duty_service, driver):
        with pytest.raises(NotFoundError):
            duty_service.upsert_duty(driver_actor(driver), 12345, duty_fields())

    def test_delete_clears_booking_reference(self, db_session, duty_service, driver, booking):
        admin = create_test_admin(db_session)
        record = duty_service.upsert_duty(driver_actor(driver), booking.id, duty_fields())

        duty_service.delete_duty(admin_actor(admin), record.id)

        db_session.refresh(booking)
        assert booking.duty_record_id is None
        assert duty_service.find_for_pair(driver.id, booking.id) is None
