# fleetops/users/repository.py

from typing import Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from fleetops.users.models import Admin


class AdminRepository:
    """
    Data Access Layer for admin actors.
    """

    def __init__(self, db: Session):
        self.db = db

    def get_by_id(self, admin_id: int) -> Optional[Admin]:
        stmt = select(Admin).where(Admin.id == admin_id)
        return self.db.execute(stmt).scalar_one_or_none()

    def get_for_update(self, admin_id: int) -> Optional[Admin]:
        """Fetch an admin with a row lock held until the transaction ends."""
        stmt = select(Admin).where(Admin.id == admin_id).with_for_update()
        return self.db.execute(stmt).scalar_one_or_none()

    def create(self, admin: Admin) -> Admin:
        """
        Adds a new Admin record to the session.
        The caller is responsible for committing the transaction.
        """
        self.db.add(admin)
        self.db.flush()
        self.db.refresh(admin)
        return admin
