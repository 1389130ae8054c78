# fleetops/drivers/router.py

from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from fleetops.core.db import get_db
from fleetops.core.dependencies import Actor, require_admin
from fleetops.core.exceptions import FleetOpsError, ServerError
from fleetops.drivers.schemas import DriverCreateRequest, DriverResponse, DriverStatusRequest
from fleetops.drivers.services import DriverService
from fleetops.utils.logger import get_logger

logger = get_logger(__name__)
router = APIRouter(prefix="/drivers", tags=["Drivers"])


# Dependency to inject the DriverService
def get_driver_service(db: Session = Depends(get_db)) -> DriverService:
    """Provides an instance of DriverService with the current DB session."""
    return DriverService(db)


@router.get("", response_model=List[DriverResponse], summary="List Drivers")
def list_drivers(
    active_only: bool = Query(True),
    driver_service: DriverService = Depends(get_driver_service),
    actor: Actor = Depends(require_admin),
):
    try:
        return driver_service.list_drivers(active_only=active_only)
    except FleetOpsError as e:
        logger.warning("Business logic error in list_drivers", error=str(e))
        raise HTTPException(status_code=e.status_code, detail=e.to_dict()) from e
    except Exception as e:
        logger.error("Error listing drivers", error=str(e), exc_info=True)
        raise HTTPException(status_code=500, detail=ServerError().to_dict()) from e


@router.post("", response_model=DriverResponse, status_code=status.HTTP_201_CREATED, summary="Register a Driver")
def create_driver(
    request: DriverCreateRequest,
    driver_service: DriverService = Depends(get_driver_service),
    actor: Actor = Depends(require_admin),
):
    try:
        return driver_service.create_driver(actor, request.model_dump())
    except FleetOpsError as e:
        logger.warning("Business logic error in create_driver", error=str(e))
        raise HTTPException(status_code=e.status_code, detail=e.to_dict()) from e
    except Exception as e:
        logger.error("Error creating driver", error=str(e), exc_info=True)
        raise HTTPException(status_code=500, detail=ServerError().to_dict()) from e


@router.get("/{driver_id}", response_model=DriverResponse, summary="Get Driver Details")
def get_driver(
    driver_id: int,
    driver_service: DriverService = Depends(get_driver_service),
    actor: Actor = Depends(require_admin),
):
    try:
        return driver_service.get_driver(driver_id)
    except FleetOpsError as e:
        logger.warning("Business logic error in get_driver", error=str(e))
        raise HTTPException(status_code=e.status_code, detail=e.to_dict()) from e
    except Exception as e:
        logger.error("Error getting driver", driver_id=driver_id, error=str(e), exc_info=True)
        raise HTTPException(status_code=500, detail=ServerError().to_dict()) from e


@router.put("/{driver_id}/status", response_model=DriverResponse, summary="Activate or Deactivate a Driver")
def set_driver_status(
    driver_id: int,
    request: DriverStatusRequest,
    driver_service: DriverService = Depends(get_driver_service),
    actor: Actor = Depends(require_admin),
):
    try:
        return driver_service.set_active(actor, driver_id, request.is_active)
    except FleetOpsError as e:
        logger.warning("Business logic error in set_driver_status", error=str(e))
        raise HTTPException(status_code=e.status_code, detail=e.to_dict()) from e
    except Exception as e:
        logger.error("Error updating driver", driver_id=driver_id, error=str(e), exc_info=True)
        raise HTTPException(status_code=500, detail=ServerError().to_dict()) from e
