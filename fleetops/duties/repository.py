# fleetops/duties/repository.py

from typing import List, Optional, Tuple

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from fleetops.duties.models import DutyRecord
from fleetops.utils.logger import get_logger

logger = get_logger(__name__)


class DutyRepository:
    """
    Data Access Layer for duty records.
    """

    def __init__(self, db: Session):
        self.db = db

    def get_by_id(self, duty_id: int) -> Optional[DutyRecord]:
        stmt = select(DutyRecord).where(DutyRecord.id == duty_id)
        return self.db.execute(stmt).scalar_one_or_none()

    def get_by_driver_and_booking(self, driver_id: int, booking_id: int) -> Optional[DutyRecord]:
        """
        Fetches the duty record of a (driver, booking) pair.
        Returns None if not found.
        """
        stmt = select(DutyRecord).where(
            DutyRecord.driver_id == driver_id,
            DutyRecord.booking_id == booking_id,
        )
        return self.db.execute(stmt).scalar_one_or_none()

    def list_duties(
        self,
        driver_id: Optional[int] = None,
        booking_id: Optional[int] = None,
        duty_type: Optional[str] = None,
        offset: int = 0,
        limit: int = 20,
    ) -> Tuple[List[DutyRecord], int]:
        """Newest-first duty records matching the filters, plus the total count."""
        stmt = select(DutyRecord)
        if driver_id is not None:
            stmt = stmt.where(DutyRecord.driver_id == driver_id)
        if booking_id is not None:
            stmt = stmt.where(DutyRecord.booking_id == booking_id)
        if duty_type:
            stmt = stmt.where(DutyRecord.duty_type == duty_type)

        total = self.db.execute(select(func.count()).select_from(stmt.subquery())).scalar_one()
        stmt = stmt.order_by(DutyRecord.id.desc()).offset(offset).limit(limit)
        return list(self.db.execute(stmt).scalars().all()), total

    def create(self, record: DutyRecord) -> DutyRecord:
        """
        Adds a new DutyRecord to the session.
        The caller is responsible for committing the transaction.
        """
        self.db.add(record)
        self.db.flush()
        logger.info("Created duty record", duty_id=record.id, booking_id=record.booking_id)
        return record

    def delete(self, record: DutyRecord) -> None:
        """
        Removes a DutyRecord.
        The caller is responsible for committing the transaction.
        """
        self.db.delete(record)
        self.db.flush()
