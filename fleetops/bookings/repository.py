# fleetops/bookings/repository.py

from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from fleetops.bookings.models import Booking
from fleetops.utils.logger import get_logger

logger = get_logger(__name__)


class BookingRepository:
    """
    Data Access Layer for Bookings.
    """

    def __init__(self, db: Session):
        self.db = db

    def get_by_id(self, booking_id: int) -> Optional[Booking]:
        """
        Fetches a single booking by primary key.
        Returns None if not found.
        """
        stmt = select(Booking).where(Booking.id == booking_id)
        return self.db.execute(stmt).scalar_one_or_none()

    def get_for_update(self, booking_id: int) -> Optional[Booking]:
        """Fetch a booking with a row lock, used by settlement state changes."""
        stmt = select(Booking).where(Booking.id == booking_id).with_for_update()
        return self.db.execute(stmt).scalar_one_or_none()

    def get_by_external_duty_id(self, duty_id: str) -> Optional[Booking]:
        stmt = select(Booking).where(Booking.external_duty_id == duty_id)
        return self.db.execute(stmt).scalar_one_or_none()

    def list_bookings(
        self,
        driver_id: Optional[int] = None,
        status: Optional[int] = None,
        label_id: Optional[int] = None,
    ) -> List[Booking]:
        """Fetch bookings newest first, filtered by driver, status and label."""
        stmt = select(Booking).options(selectinload(Booking.labels)).order_by(Booking.id.desc())
        if driver_id is not None:
            stmt = stmt.where(Booking.driver_id == driver_id)
        if status is not None:
            stmt = stmt.where(Booking.status == status)
        if label_id is not None:
            stmt = stmt.where(Booking.labels.any(id=label_id))
        return list(self.db.execute(stmt).scalars().all())

    def create(self, booking: Booking) -> Booking:
        """
        Adds a new Booking record to the session.
        The caller is responsible for committing the transaction.
        """
        self.db.add(booking)
        self.db.flush()
        logger.info("Created new Booking", booking_id=booking.id, duty_id=booking.external_duty_id)
        return booking

    def update(self, booking: Booking) -> Booking:
        """
        Flushes pending changes of an existing Booking.
        The caller is responsible for committing the transaction.
        """
        self.db.flush()
        return booking
