# fleetops/entries/repository.py

from typing import Generic, List, Optional, Tuple, Type, TypeVar

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from fleetops.utils.logger import get_logger

logger = get_logger(__name__)

EntryT = TypeVar("EntryT")


class EntryRepository(Generic[EntryT]):
    """
    Data Access Layer shared by expense and receiving entries, both keyed by
    (driver_id, booking_id). Subclasses set ``model``.
    """

    model: Type[EntryT]

    def __init__(self, db: Session):
        self.db = db

    def get_by_id(self, entry_id: int) -> Optional[EntryT]:
        stmt = select(self.model).where(self.model.id == entry_id)
        return self.db.execute(stmt).scalar_one_or_none()

    def get_by_driver_and_booking(self, driver_id: int, booking_id: int) -> Optional[EntryT]:
        """
        Fetches the entry of a (driver, booking) pair.
        Returns None if not found.
        """
        stmt = select(self.model).where(
            self.model.driver_id == driver_id,
            self.model.booking_id == booking_id,
        )
        return self.db.execute(stmt).scalar_one_or_none()

    def list_entries(
        self,
        driver_id: Optional[int] = None,
        offset: int = 0,
        limit: int = 20,
    ) -> Tuple[List[EntryT], int]:
        stmt = select(self.model)
        if driver_id is not None:
            stmt = stmt.where(self.model.driver_id == driver_id)
        total = self.db.execute(select(func.count()).select_from(stmt.subquery())).scalar_one()
        stmt = stmt.order_by(self.model.id.desc()).offset(offset).limit(limit)
        return list(self.db.execute(stmt).scalars().all()), total

    def create(self, entry: EntryT) -> EntryT:
        """
        Adds a new entry to the session.
        The caller is responsible for committing the transaction.
        """
        self.db.add(entry)
        self.db.flush()
        logger.info(
            "Created ledger entry",
            entry_type=self.model.__name__,
            entry_id=entry.id,
            booking_id=entry.booking_id,
        )
        return entry
