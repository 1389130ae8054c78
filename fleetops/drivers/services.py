# fleetops/drivers/services.py

from typing import Any, Dict, List

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from fleetops.core.dependencies import Actor
from fleetops.core.exceptions import ServerError, ValidationError
from fleetops.drivers.exceptions import DriverCodeExistsError, DriverNotFoundError
from fleetops.drivers.models import Driver
from fleetops.drivers.repository import DriverRepository
from fleetops.utils.logger import get_logger

logger = get_logger(__name__)


class DriverService:
    """Driver registry used by booking uploads and wallet operations."""

    def __init__(self, db: Session):
        self.db = db
        self.repo = DriverRepository(db)

    def get_driver(self, driver_id: int) -> Driver:
        driver = self.repo.get_by_id(driver_id)
        if not driver:
            raise DriverNotFoundError(driver_id)
        return driver

    def list_drivers(self, active_only: bool = True) -> List[Driver]:
        return self.repo.list_drivers(active_only=active_only)

    def create_driver(self, actor: Actor, data: Dict[str, Any]) -> Driver:
        """
        Register a driver. The driver code is what upload rows reference in
        their "Driver Code" column.
        """
        code = (data.get("driver_code") or "").strip()
        name = (data.get("full_name") or "").strip()
        errors = []
        if not code:
            errors.append("Driver code is required")
        if not name:
            errors.append("Full name is required")
        if errors:
            raise ValidationError(errors)
        if self.repo.get_by_code(code):
            raise DriverCodeExistsError(code)

        driver = Driver(
            driver_code=code,
            full_name=name,
            phone=data.get("phone"),
            email=data.get("email"),
            created_by=actor.audit_name,
        )
        try:
            self.repo.create(driver)
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            raise DriverCodeExistsError(code) from e
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error("Failed to create driver", driver_code=code, error=str(e), exc_info=True)
            raise ServerError("Failed to create driver") from e

        logger.info("Driver created", driver_id=driver.id, driver_code=code)
        return driver

    def set_active(self, actor: Actor, driver_id: int, is_active: bool) -> Driver:
        driver = self.get_driver(driver_id)
        driver.is_active = is_active
        driver.modified_by = actor.audit_name
        try:
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error("Failed to update driver", driver_id=driver_id, error=str(e), exc_info=True)
            raise ServerError("Failed to update driver") from e
        return driver
