# fleetops/drivers/repository.py

from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from fleetops.drivers.models import Driver


class DriverRepository:
    """
    Data Access Layer for Drivers.
    """

    def __init__(self, db: Session):
        self.db = db

    def get_by_id(self, driver_id: int) -> Optional[Driver]:
        stmt = select(Driver).where(Driver.id == driver_id)
        return self.db.execute(stmt).scalar_one_or_none()

    def get_by_code(self, driver_code: str) -> Optional[Driver]:
        """Fetch a driver by external driver code. Returns None if not found."""
        stmt = select(Driver).where(Driver.driver_code == driver_code)
        return self.db.execute(stmt).scalar_one_or_none()

    def get_for_update(self, driver_id: int) -> Optional[Driver]:
        """
        Fetch a driver with a row lock held until the current transaction ends.
        Used by every wallet mutation.
        """
        stmt = select(Driver).where(Driver.id == driver_id).with_for_update()
        return self.db.execute(stmt).scalar_one_or_none()

    def list_drivers(self, active_only: bool = True) -> List[Driver]:
        stmt = select(Driver).order_by(Driver.full_name)
        if active_only:
            stmt = stmt.where(Driver.is_active.is_(True))
        return list(self.db.execute(stmt).scalars().all())

    def create(self, driver: Driver) -> Driver:
        """
        Adds a new Driver record to the session.
        The caller is responsible for committing the transaction.
        """
        self.db.add(driver)
        self.db.flush()
        self.db.refresh(driver)
        return driver
