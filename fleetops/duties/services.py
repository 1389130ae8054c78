# fleetops/duties/services.py

from typing import Any, Dict, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from fleetops.bookings.models import Booking
from fleetops.bookings.repository import BookingRepository
from fleetops.core.dependencies import Actor
from fleetops.core.exceptions import (
    FleetOpsError,
    ForbiddenError,
    NotFoundError,
    ServerError,
    ValidationError,
)
from fleetops.duties.exceptions import DutyAlreadyExistsError, DutyNotFoundError
from fleetops.duties.models import DutyRecord
from fleetops.duties.repository import DutyRepository
from fleetops.duties.validators import validate_duty_fields
from fleetops.utils.general import paginate, utcnow
from fleetops.utils.logger import get_logger

logger = get_logger(__name__)

EDITABLE_FIELDS = (
    "start_date", "start_time", "end_date", "end_time",
    "start_km", "end_km", "duty_type", "notes",
)


class DutyService:
    """
    Service layer for duty records, the prerequisite for expense and
    receiving entry.
    """

    def __init__(self, db: Session):
        self.db = db
        self.repo = DutyRepository(db)
        self.booking_repo = BookingRepository(db)

    def _get_booking(self, booking_id: int) -> Booking:
        booking = self.booking_repo.get_by_id(booking_id)
        if not booking:
            raise NotFoundError("Booking", booking_id)
        return booking

    def resolve_driver_id(self, actor: Actor, booking: Booking) -> int:
        """
        Work out whose duty record an actor is acting on.

        Drivers act on their own records and may not touch a booking assigned
        to somebody else. Admins act on behalf of the assigned driver, so the
        booking must have one.
        """
        if actor.is_admin:
            if booking.driver_id is None:
                raise ValidationError(["Booking has no assigned driver"])
            return booking.driver_id
        if booking.driver_id is not None and booking.driver_id != actor.id:
            raise ForbiddenError("Not authorized to manage duty info for this booking")
        return actor.id

    def _apply(self, record: DutyRecord, cleaned: Dict[str, Any]) -> None:
        for name in EDITABLE_FIELDS:
            setattr(record, name, cleaned[name])
        record.recalculate_totals()

    def _save(self, operation: str, func, *args):
        try:
            result = func(*args)
            self.db.commit()
            self.db.refresh(result)
            return result
        except IntegrityError as e:
            self.db.rollback()
            logger.warning("Duplicate duty record rejected", operation=operation, error=str(e))
            raise DutyAlreadyExistsError() from e
        except FleetOpsError:
            self.db.rollback()
            raise
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error("Duty operation failed", operation=operation, error=str(e), exc_info=True)
            raise ServerError("Failed to save duty information") from e

    def _upsert(self, actor: Actor, booking_id: int, fields: Dict[str, Any]) -> DutyRecord:
        booking = self._get_booking(booking_id)
        driver_id = self.resolve_driver_id(actor, booking)
        cleaned = validate_duty_fields(fields)

        record = self.repo.get_by_driver_and_booking(driver_id, booking_id)
        if record is None:
            record = DutyRecord(
                driver_id=driver_id,
                booking_id=booking_id,
                created_by=actor.audit_name,
                created_by_role=actor.role.value,
            )
            self._apply(record, cleaned)
            self.repo.create(record)
        else:
            self._apply(record, cleaned)
            record.modified_by = actor.audit_name

        if actor.is_admin:
            record.last_edited_by = actor.id
            record.last_edited_by_role = actor.role.value
            record.last_edited_at = utcnow()

        if booking.duty_record_id is None:
            booking.duty_record_id = record.id
        self.db.flush()
        return record

    def upsert_duty(self, actor: Actor, booking_id: int, fields: Dict[str, Any]) -> DutyRecord:
        """
        Create or update the duty record of the (driver, booking) pair.

        Raises:
            NotFoundError: booking does not exist
            ForbiddenError: a driver acting on another driver's booking
            ValidationError: every missing or invalid field at once
            DutyAlreadyExistsError: a concurrent request created the record first
        """
        record = self._save("upsert", self._upsert, actor, booking_id, fields)
        logger.info(
            "Duty information saved",
            duty_id=record.id,
            booking_id=booking_id,
            driver_id=record.driver_id,
            role=actor.role.value,
        )
        return record

    def _update(self, actor: Actor, duty_id: int, fields: Dict[str, Any]) -> DutyRecord:
        record = self.repo.get_by_id(duty_id)
        if not record:
            raise DutyNotFoundError(duty_id=duty_id)
        merged = {name: getattr(record, name) for name in EDITABLE_FIELDS}
        merged.update({k: v for k, v in fields.items() if v is not None})
        self._apply(record, validate_duty_fields(merged))
        record.modified_by = actor.audit_name
        record.last_edited_by = actor.id
        record.last_edited_by_role = actor.role.value
        record.last_edited_at = utcnow()
        self.db.flush()
        return record

    def update_duty(self, actor: Actor, duty_id: int, fields: Dict[str, Any]) -> DutyRecord:
        """Admin partial update of a duty record by id."""
        if not actor.is_admin:
            raise ForbiddenError("Only admins can edit duty records by id")
        return self._save("update", self._update, actor, duty_id, fields)

    def delete_duty(self, actor: Actor, duty_id: int) -> None:
        """Admin removal of a duty record. Clears the booking reference to it."""
        if not actor.is_admin:
            raise ForbiddenError("Only admins can delete duty records")
        record = self.repo.get_by_id(duty_id)
        if not record:
            raise DutyNotFoundError(duty_id=duty_id)
        try:
            booking = self.booking_repo.get_by_id(record.booking_id)
            if booking and booking.duty_record_id == record.id:
                booking.duty_record_id = None
            self.repo.delete(record)
            self.db.commit()
            logger.info("Duty record deleted", duty_id=duty_id, deleted_by=actor.id)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error("Failed to delete duty record", duty_id=duty_id, error=str(e), exc_info=True)
            raise ServerError("Failed to delete duty information") from e

    def get_for_booking(self, actor: Actor, booking_id: int) -> DutyRecord:
        """Duty record of the booking as seen by the actor."""
        booking = self._get_booking(booking_id)
        driver_id = self.resolve_driver_id(actor, booking)
        record = self.repo.get_by_driver_and_booking(driver_id, booking_id)
        if not record:
            raise DutyNotFoundError(booking_id=booking_id)
        return record

    def find_for_pair(self, driver_id: int, booking_id: int) -> Optional[DutyRecord]:
        return self.repo.get_by_driver_and_booking(driver_id, booking_id)

    def list_duties(
        self,
        page: int = 1,
        per_page: int = 20,
        driver_id: Optional[int] = None,
        booking_id: Optional[int] = None,
        duty_type: Optional[str] = None,
    ) -> Dict[str, Any]:
        offset, limit = paginate(page, per_page)
        items, total = self.repo.list_duties(
            driver_id=driver_id, booking_id=booking_id, duty_type=duty_type,
            offset=offset, limit=limit,
        )
        return {"items": items, "total_items": total, "page": page, "per_page": per_page}
