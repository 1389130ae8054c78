# fleetops/tests/test_bookings.py

from datetime import date, datetime
from io import BytesIO

import pytest

from fleetops.bookings.exceptions import DuplicateDutyIdError
from fleetops.bookings.ingest import BookingIngestor, merge_data, read_upload, row_to_pairs
from fleetops.bookings.repository import BookingRepository
from fleetops.bookings.services import BookingService
from fleetops.bookings.utils import normalize_cell, normalize_date, parse_display_date
from fleetops.core.exceptions import ForbiddenError, InvalidFormatError
from fleetops.drivers.exceptions import DriverNotFoundError
from fleetops.settlements.models import SettlementStatus
from fleetops.tests.factories import (
    admin_actor,
    create_test_admin,
    create_test_booking,
    create_test_driver,
    driver_actor,
)


@pytest.fixture
def admin(db_session):
    return create_test_admin(db_session)


@pytest.fixture
def booking_service(db_session):
    """Booking service fixture"""
    return BookingService(db_session)


class TestDateNormalization:
    """Spreadsheet dates are stored as DD-MM-YYYY"""

    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("5/1/24", "05-01-2024"),
            ("2024-03-02", "02-03-2024"),
            ("2024-03-02 00:00:00", "02-03-2024"),
            ("02-03-2024", "02-03-2024"),
            (45000, "15-03-2023"),
            (45000.0, "15-03-2023"),
            (date(2024, 3, 2), "02-03-2024"),
            (datetime(2024, 3, 2, 10, 30), "02-03-2024"),
            ("", ""),
            (None, ""),
            ("tomorrow", "tomorrow"),
        ],
    )
    def test_normalize_date(self, raw, expected):
        assert normalize_date(raw) == expected

    def test_parse_display_date(self):
        assert parse_display_date("02-03-2024") == date(2024, 3, 2)
        assert parse_display_date("2024/03/02") is None
        assert parse_display_date("") is None

    def test_non_date_cells(self):
        assert normalize_cell("Vehicle", 12.0) == "12"
        assert normalize_cell("Vehicle", float("nan")) == ""
        assert normalize_cell("Vehicle", "  DL1C 1234 ") == "DL1C 1234"
        assert normalize_cell("Start Date", 45000) == "15-03-2023"


class TestMergeData:
    """Existing keys keep their place, blanks never overwrite"""

    def test_merge(self):
        existing = [{"key": "A", "value": "x"}, {"key": "B", "value": "y"}]
        incoming = [{"key": "B", "value": "z"}, {"key": "C", "value": "w"}, {"key": "A", "value": ""}]

        assert merge_data(existing, incoming) == [
            {"key": "A", "value": "x"},
            {"key": "B", "value": "z"},
            {"key": "C", "value": "w"},
        ]

    def test_duplicate_existing_keys_collapse(self):
        existing = [{"key": "A", "value": "1"}, {"key": "A", "value": "2"}]

        assert merge_data(existing, []) == [{"key": "A", "value": "1"}]

    def test_row_to_pairs_skips_unnamed_columns(self):
        pairs = row_to_pairs({"Duty Id": "D1", "Unnamed: 3": "junk", " ": "blank", "Start Date": "1/2/24"})

        assert pairs == [{"key": "Duty Id", "value": "D1"}, {"key": "Start Date", "value": "01-02-2024"}]


class TestBookingIngest:
    """Upload rows create or merge bookings matched on Duty Id"""

    def test_create_then_reassign_then_unassign(self, db_session, admin):
        first = create_test_driver(db_session, code="DRV-1")
        second = create_test_driver(db_session, code="DRV-2")
        ingestor = BookingIngestor(db_session)
        actor = admin_actor(admin)

        result = ingestor.ingest_rows(actor, [{"Duty Id": "D1", "Driver Code": "DRV-1", "Guest": "Asha"}])
        assert result.created == 1
        booking = BookingRepository(db_session).get_by_external_duty_id("D1")
        assert booking.driver_id == first.id
        assert booking.settlement.status == SettlementStatus.PENDING

        result = ingestor.ingest_rows(actor, [{"Duty Id": "D1", "Driver Code": "DRV-2", "Guest": ""}])
        assert (result.updated, result.reassigned) == (1, 1)
        db_session.refresh(booking)
        assert booking.driver_id == second.id
        assert booking.get_value("Guest") == "Asha"

        result = ingestor.ingest_rows(actor, [{"Duty Id": "D1", "Driver Code": "", "Guest": "Ravi"}])
        assert (result.updated, result.unassigned) == (1, 1)
        db_session.refresh(booking)
        assert booking.driver_id is None
        assert booking.get_value("Guest") == "Ravi"

    def test_unknown_driver_code_keeps_assignment(self, db_session, admin):
        driver = create_test_driver(db_session, code="DRV-1")
        booking = create_test_booking(db_session, driver, duty_id="D1")

        result = BookingIngestor(db_session).ingest_rows(
            admin_actor(admin), [{"Duty Id": "D1", "Driver Code": "NOPE"}]
        )

        assert result.updated == 1
        assert result.warnings == [{"row": 1, "warning": "Driver code 'NOPE' not found; assignment left unchanged"}]
        db_session.refresh(booking)
        assert booking.driver_id == driver.id

    def test_bad_rows_do_not_abort_the_batch(self, db_session, admin):
        rows = [
            {"Duty Id": "D1", "Guest": "Asha"},
            "not a row",
            {"Duty Id": "", "Guest": ""},
            {"Duty Id": "D2", "Guest": "Ravi"},
        ]

        result = BookingIngestor(db_session).ingest_rows(admin_actor(admin), rows)

        assert result.to_dict() == {
            "created": 2,
            "updated": 0,
            "reassigned": 0,
            "unassigned": 0,
            "skipped": 1,
            "failed": 1,
            "errors": [{"row": 2, "error": "Row is not a key/value record"}],
            "warnings": [],
        }

    def test_read_csv_upload(self):
        content = b"Duty Id,Start Date,Guest\nD1,2024-03-02,Asha\n"

        rows = read_upload(BytesIO(content), "bookings.csv")

        assert rows == [{"Duty Id": "D1", "Start Date": "2024-03-02", "Guest": "Asha"}]

    def test_rejects_unknown_extension(self):
        with pytest.raises(InvalidFormatError):
            read_upload(BytesIO(b"x"), "bookings.pdf")

    def test_upload_through_service(self, db_session, admin, booking_service):
        content = b"Duty Id,Start Date\nD9,5/1/24\n"

        result = booking_service.upload_bookings(admin_actor(admin), BytesIO(content), "upload.csv")

        assert result.created == 1
        listing = booking_service.list_bookings(admin_actor(admin))
        assert listing["items"][0].get_value("Start Date") == "05-01-2024"


class TestBookingService:
    """Manual creation, assignment and listing"""

    def test_create_booking_with_pending_settlement(self, db_session, admin, booking_service):
        driver = create_test_driver(db_session)

        booking = booking_service.create_booking(
            admin_actor(admin), [{"key": "Duty Id", "value": "M1"}, {"key": "Guest", "value": "Asha"}], driver.id
        )

        assert booking.external_duty_id == "M1"
        assert booking.driver_id == driver.id
        assert booking.settlement.status == SettlementStatus.PENDING

        with pytest.raises(DuplicateDutyIdError):
            booking_service.create_booking(admin_actor(admin), [{"key": "Duty Id", "value": "M1"}])

    def test_create_with_unknown_driver(self, admin, booking_service):
        with pytest.raises(DriverNotFoundError):
            booking_service.create_booking(admin_actor(admin), [{"key": "Guest", "value": "Asha"}], 404)

    def test_assign_and_unassign(self, db_session, admin, booking_service):
        driver = create_test_driver(db_session)
        booking = create_test_booking(db_session)

        booking_service.assign_driver(admin_actor(admin), booking.id, driver.id)
        db_session.refresh(booking)
        assert booking.driver_id == driver.id

        booking_service.assign_driver(admin_actor(admin), booking.id, None)
        db_session.refresh(booking)
        assert booking.driver_id is None

    def test_driver_sees_only_own_bookings(self, db_session, booking_service):
        mine = create_test_driver(db_session, code="DRV-1")
        other = create_test_driver(db_session, code="DRV-2")
        own = create_test_booking(db_session, mine, duty_id="D1")
        foreign = create_test_booking(db_session, other, duty_id="D2")

        listing = booking_service.list_bookings(driver_actor(mine), driver_id=other.id)

        assert [b.id for b in listing["items"]] == [own.id]
        with pytest.raises(ForbiddenError):
            booking_service.get_booking(driver_actor(mine), foreign.id)

    def test_date_window(self, db_session, admin, booking_service):
        march = create_test_booking(
            db_session, duty_id="D1", data=[{"key": "Duty Id", "value": "D1"}, {"key": "Start Date", "value": "02-03-2024"}]
        )
        create_test_booking(
            db_session, duty_id="D2", data=[{"key": "Duty Id", "value": "D2"}, {"key": "Start Date", "value": "15-04-2024"}]
        )
        create_test_booking(db_session, duty_id="D3")

        listing = booking_service.list_bookings(
            admin_actor(admin), start_date=date(2024, 3, 1), end_date=date(2024, 3, 31)
        )

        assert listing["total_items"] == 1
        assert listing["items"][0].id == march.id
