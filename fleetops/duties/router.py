# fleetops/duties/router.py

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from fleetops.core.config import settings
from fleetops.core.db import get_db
from fleetops.core.dependencies import Actor, get_current_actor, require_admin
from fleetops.core.exceptions import FleetOpsError, ServerError
from fleetops.duties.schemas import DutyRequest
from fleetops.duties.services import DutyService
from fleetops.utils.general import to_response
from fleetops.utils.logger import get_logger

logger = get_logger(__name__)
router = APIRouter(prefix="/duties", tags=["Duty Records"])


# Dependency to inject the DutyService
def get_duty_service(db: Session = Depends(get_db)) -> DutyService:
    """Provides an instance of DutyService with the current DB session."""
    return DutyService(db)


@router.put("/bookings/{booking_id}", summary="Create or Update Duty Information")
def upsert_duty(
    booking_id: int,
    request: DutyRequest,
    duty_service: DutyService = Depends(get_duty_service),
    actor: Actor = Depends(get_current_actor),
):
    """
    Save the duty record of a booking. Drivers save their own; admins and
    subadmins save on behalf of the assigned driver.
    """
    try:
        record = duty_service.upsert_duty(actor, booking_id, request.model_dump())
        return {"message": "Duty information saved", "duty": to_response(record)}
    except FleetOpsError as e:
        logger.warning("Business logic error in upsert_duty", error=str(e))
        raise HTTPException(status_code=e.status_code, detail=e.to_dict()) from e
    except Exception as e:
        logger.error("Error saving duty for booking", booking_id=booking_id, error=str(e), exc_info=True)
        raise HTTPException(status_code=500, detail=ServerError().to_dict()) from e


@router.get("/bookings/{booking_id}", summary="Get Duty Information of a Booking")
def get_booking_duty(
    booking_id: int,
    duty_service: DutyService = Depends(get_duty_service),
    actor: Actor = Depends(get_current_actor),
):
    try:
        record = duty_service.get_for_booking(actor, booking_id)
        return to_response(record)
    except FleetOpsError as e:
        logger.warning("Business logic error in get_booking_duty", error=str(e))
        raise HTTPException(status_code=e.status_code, detail=e.to_dict()) from e
    except Exception as e:
        logger.error("Error fetching duty for booking", booking_id=booking_id, error=str(e), exc_info=True)
        raise HTTPException(status_code=500, detail=ServerError().to_dict()) from e


@router.get("", summary="List Duty Records")
def list_duties(
    page: int = Query(1, ge=1),
    per_page: int = Query(settings.default_page_size, ge=1, le=settings.max_page_size),
    driver_id: Optional[int] = Query(None),
    booking_id: Optional[int] = Query(None),
    duty_type: Optional[str] = Query(None),
    duty_service: DutyService = Depends(get_duty_service),
    actor: Actor = Depends(require_admin),
):
    """
    Retrieves a paginated and filterable list of duty records.
    """
    try:
        result = duty_service.list_duties(
            page=page, per_page=per_page, driver_id=driver_id,
            booking_id=booking_id, duty_type=duty_type,
        )
        return to_response(result)
    except FleetOpsError as e:
        logger.warning("Business logic error in list_duties", error=str(e))
        raise HTTPException(status_code=e.status_code, detail=e.to_dict()) from e
    except Exception as e:
        logger.error("Error listing duties", error=str(e), exc_info=True)
        raise HTTPException(status_code=500, detail=ServerError().to_dict()) from e


@router.patch("/{duty_id}", summary="Edit a Duty Record")
def update_duty(
    duty_id: int,
    request: DutyRequest,
    duty_service: DutyService = Depends(get_duty_service),
    actor: Actor = Depends(require_admin),
):
    try:
        record = duty_service.update_duty(actor, duty_id, request.model_dump(exclude_unset=True))
        return {"message": "Duty information updated", "duty": to_response(record)}
    except FleetOpsError as e:
        logger.warning("Business logic error in update_duty", error=str(e))
        raise HTTPException(status_code=e.status_code, detail=e.to_dict()) from e
    except Exception as e:
        logger.error("Error updating duty", duty_id=duty_id, error=str(e), exc_info=True)
        raise HTTPException(status_code=500, detail=ServerError().to_dict()) from e


@router.delete("/{duty_id}", status_code=status.HTTP_204_NO_CONTENT, summary="Delete a Duty Record")
def delete_duty(
    duty_id: int,
    duty_service: DutyService = Depends(get_duty_service),
    actor: Actor = Depends(require_admin),
):
    try:
        duty_service.delete_duty(actor, duty_id)
    except FleetOpsError as e:
        logger.warning("Business logic error in delete_duty", error=str(e))
        raise HTTPException(status_code=e.status_code, detail=e.to_dict()) from e
    except Exception as e:
        logger.error("Error deleting duty", duty_id=duty_id, error=str(e), exc_info=True)
        raise HTTPException(status_code=500, detail=ServerError().to_dict()) from e
