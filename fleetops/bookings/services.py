# fleetops/bookings/services.py

from datetime import date
from typing import IO, Any, Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from fleetops.bookings.exceptions import BookingNotFoundError, DuplicateDutyIdError
from fleetops.bookings.ingest import BookingIngestor, IngestResult, merge_data, read_upload, row_to_pairs
from fleetops.bookings.models import DUTY_ID_KEY, Booking, BookingStatus
from fleetops.bookings.repository import BookingRepository
from fleetops.bookings.utils import parse_display_date
from fleetops.core.dependencies import Actor
from fleetops.core.exceptions import FleetOpsError, ForbiddenError, ServerError
from fleetops.drivers.exceptions import DriverNotFoundError
from fleetops.drivers.repository import DriverRepository
from fleetops.settlements.models import BookingSettlement, SettlementStatus
from fleetops.utils.general import utcnow
from fleetops.utils.logger import get_logger

logger = get_logger(__name__)

START_DATE_KEY = "Start Date"


class BookingService:
    """
    Service layer for bookings: manual creation, spreadsheet upload, driver
    assignment and listing.
    """

    def __init__(self, db: Session):
        self.db = db
        self.repo = BookingRepository(db)
        self.driver_repo = DriverRepository(db)

    def _commit(self, operation: str, func, *args):
        try:
            result = func(*args)
            self.db.commit()
            return result
        except FleetOpsError:
            self.db.rollback()
            raise
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error("Booking operation failed", operation=operation, error=str(e), exc_info=True)
            raise ServerError("Failed to save booking") from e

    def get_booking(self, actor: Actor, booking_id: int) -> Booking:
        booking = self.repo.get_by_id(booking_id)
        if not booking:
            raise BookingNotFoundError(booking_id)
        if not actor.is_admin and booking.driver_id != actor.id:
            raise ForbiddenError("Not authorized to view this booking")
        return booking

    def _create(self, actor: Actor, data: List[Dict[str, Any]], driver_id: Optional[int]) -> Booking:
        pairs = row_to_pairs({item["key"]: item.get("value", "") for item in data})
        duty_id = next((p["value"] for p in pairs if p["key"] == DUTY_ID_KEY), "") or None
        if duty_id and self.repo.get_by_external_duty_id(duty_id):
            raise DuplicateDutyIdError(duty_id)

        driver = None
        if driver_id is not None:
            driver = self.driver_repo.get_by_id(driver_id)
            if not driver:
                raise DriverNotFoundError(driver_id)

        booking = Booking(
            external_duty_id=duty_id,
            data=merge_data([], pairs),
            driver=driver,
            created_by=actor.audit_name,
        )
        booking.settlement = BookingSettlement(status=SettlementStatus.PENDING)
        return self.repo.create(booking)

    def create_booking(
        self, actor: Actor, data: List[Dict[str, Any]], driver_id: Optional[int] = None
    ) -> Booking:
        """
        Create a booking from key/value pairs. The settlement sub-record is
        created alongside it in the pending state.
        """
        booking = self._commit("create", self._create, actor, data, driver_id)
        logger.info("Booking created", booking_id=booking.id, driver_id=booking.driver_id)
        return booking

    def _assign(self, actor: Actor, booking_id: int, driver_id: Optional[int]) -> Booking:
        booking = self.repo.get_by_id(booking_id)
        if not booking:
            raise BookingNotFoundError(booking_id)

        if driver_id is None:
            booking.driver = None
        else:
            driver = self.driver_repo.get_by_id(driver_id)
            if not driver:
                raise DriverNotFoundError(driver_id)
            # Assigning through the collection keeps a single link per booking
            if booking not in driver.bookings:
                driver.bookings.append(booking)
        booking.modified_by = actor.audit_name
        return self.repo.update(booking)

    def assign_driver(self, actor: Actor, booking_id: int, driver_id: Optional[int]) -> Booking:
        """Assign a booking to a driver, or unassign it when ``driver_id`` is None."""
        booking = self._commit("assign", self._assign, actor, booking_id, driver_id)
        logger.info("Booking driver assigned", booking_id=booking_id, driver_id=driver_id, by=actor.id)
        return booking

    def _set_status(self, actor: Actor, booking_id: int, status: BookingStatus) -> Booking:
        booking = self.repo.get_by_id(booking_id)
        if not booking:
            raise BookingNotFoundError(booking_id)
        booking.status = int(status)
        booking.completed_at = utcnow() if status == BookingStatus.COMPLETED else None
        booking.modified_by = actor.audit_name
        return self.repo.update(booking)

    def set_status(self, actor: Actor, booking_id: int, status: BookingStatus) -> Booking:
        return self._commit("status", self._set_status, actor, booking_id, status)

    def upload_bookings(self, actor: Actor, file: IO, filename: str) -> IngestResult:
        """Read an uploaded spreadsheet and merge every row into bookings."""
        rows = read_upload(file, filename)
        logger.info("Booking upload received", filename=filename, rows=len(rows), by=actor.id)
        return BookingIngestor(self.db).ingest_rows(actor, rows)

    def list_bookings(
        self,
        actor: Actor,
        page: int = 1,
        per_page: int = 20,
        driver_id: Optional[int] = None,
        status: Optional[int] = None,
        label_id: Optional[int] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> Dict[str, Any]:
        """
        List bookings newest first. Drivers only ever see their own bookings.
        The date window applies to the booking's "Start Date" attribute.
        """
        if not actor.is_admin:
            driver_id = actor.id

        bookings = self.repo.list_bookings(driver_id=driver_id, status=status, label_id=label_id)
        if start_date or end_date:
            bookings = [b for b in bookings if _in_window(b, start_date, end_date)]

        total = len(bookings)
        offset = (max(page, 1) - 1) * per_page
        return {
            "items": bookings[offset:offset + per_page],
            "total_items": total,
            "page": page,
            "per_page": per_page,
        }


def _in_window(booking: Booking, start_date: Optional[date], end_date: Optional[date]) -> bool:
    value = parse_display_date(booking.get_value(START_DATE_KEY))
    if value is None:
        return False
    if start_date and value < start_date:
        return False
    if end_date and value > end_date:
        return False
    return True
