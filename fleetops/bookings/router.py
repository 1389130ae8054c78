# fleetops/bookings/router.py

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, File, HTTPException, Query, UploadFile, status
from sqlalchemy.orm import Session

from fleetops.bookings.schemas import (
    AssignDriverRequest,
    BookingCreateRequest,
    BookingStatusRequest,
    IngestResultResponse,
)
from fleetops.bookings.services import BookingService
from fleetops.core.config import settings
from fleetops.core.db import get_db
from fleetops.core.dependencies import Actor, get_current_actor, require_admin
from fleetops.core.exceptions import FleetOpsError, ServerError
from fleetops.utils.general import to_response
from fleetops.utils.logger import get_logger

logger = get_logger(__name__)
router = APIRouter(prefix="/bookings", tags=["Bookings"])


# Dependency to inject the BookingService
def get_booking_service(db: Session = Depends(get_db)) -> BookingService:
    """Provides an instance of BookingService with the current DB session."""
    return BookingService(db)


@router.get("", summary="List Bookings")
def list_bookings(
    page: int = Query(1, ge=1),
    per_page: int = Query(settings.default_page_size, ge=1, le=settings.max_page_size),
    driver_id: Optional[int] = Query(None),
    status: Optional[int] = Query(None, ge=0, le=1),
    label_id: Optional[int] = Query(None),
    start_date: Optional[date] = Query(None, description="Earliest trip start date"),
    end_date: Optional[date] = Query(None, description="Latest trip start date"),
    booking_service: BookingService = Depends(get_booking_service),
    actor: Actor = Depends(get_current_actor),
):
    """
    Retrieves a paginated and filterable list of bookings. Drivers only see
    bookings assigned to them.
    """
    try:
        result = booking_service.list_bookings(
            actor,
            page=page,
            per_page=per_page,
            driver_id=driver_id,
            status=status,
            label_id=label_id,
            start_date=start_date,
            end_date=end_date,
        )
        return to_response(result)
    except FleetOpsError as e:
        logger.warning("Business logic error in list_bookings", error=str(e))
        raise HTTPException(status_code=e.status_code, detail=e.to_dict()) from e
    except Exception as e:
        logger.error("Error listing bookings", error=str(e), exc_info=True)
        raise HTTPException(status_code=500, detail=ServerError().to_dict()) from e


@router.post("", status_code=status.HTTP_201_CREATED, summary="Create a Booking")
def create_booking(
    request: BookingCreateRequest,
    booking_service: BookingService = Depends(get_booking_service),
    actor: Actor = Depends(require_admin),
):
    try:
        data = [item.model_dump() for item in request.data]
        booking = booking_service.create_booking(actor, data, driver_id=request.driver_id)
        return to_response(booking)
    except FleetOpsError as e:
        logger.warning("Business logic error in create_booking", error=str(e))
        raise HTTPException(status_code=e.status_code, detail=e.to_dict()) from e
    except Exception as e:
        logger.error("Error creating booking", error=str(e), exc_info=True)
        raise HTTPException(status_code=500, detail=ServerError().to_dict()) from e


@router.post("/upload", response_model=IngestResultResponse, summary="Upload Bookings Spreadsheet")
def upload_bookings(
    file: UploadFile = File(...),
    booking_service: BookingService = Depends(get_booking_service),
    actor: Actor = Depends(require_admin),
):
    """
    Create or merge bookings from the first sheet of an .xlsx, .xls or .csv
    file. Rows are matched on "Duty Id"; failed rows are reported without
    stopping the batch.
    """
    try:
        result = booking_service.upload_bookings(actor, file.file, file.filename)
        return result.to_dict()
    except FleetOpsError as e:
        logger.warning("Business logic error in upload_bookings", error=str(e))
        raise HTTPException(status_code=e.status_code, detail=e.to_dict()) from e
    except Exception as e:
        logger.error("Error uploading bookings", filename=file.filename, error=str(e), exc_info=True)
        raise HTTPException(status_code=500, detail=ServerError().to_dict()) from e


@router.get("/{booking_id}", summary="Get Booking Details")
def get_booking(
    booking_id: int,
    booking_service: BookingService = Depends(get_booking_service),
    actor: Actor = Depends(get_current_actor),
):
    try:
        return to_response(booking_service.get_booking(actor, booking_id))
    except FleetOpsError as e:
        logger.warning("Business logic error in get_booking", error=str(e))
        raise HTTPException(status_code=e.status_code, detail=e.to_dict()) from e
    except Exception as e:
        logger.error("Error getting booking", booking_id=booking_id, error=str(e), exc_info=True)
        raise HTTPException(status_code=500, detail=ServerError().to_dict()) from e


@router.put("/{booking_id}/driver", summary="Assign a Driver")
def assign_driver(
    booking_id: int,
    request: AssignDriverRequest,
    booking_service: BookingService = Depends(get_booking_service),
    actor: Actor = Depends(require_admin),
):
    try:
        booking = booking_service.assign_driver(actor, booking_id, request.driver_id)
        return {"message": "Driver assigned", "booking": to_response(booking)}
    except FleetOpsError as e:
        logger.warning("Business logic error in assign_driver", error=str(e))
        raise HTTPException(status_code=e.status_code, detail=e.to_dict()) from e
    except Exception as e:
        logger.error("Error assigning driver to booking", booking_id=booking_id, error=str(e), exc_info=True)
        raise HTTPException(status_code=500, detail=ServerError().to_dict()) from e


@router.put("/{booking_id}/status", summary="Change Booking Status")
def set_booking_status(
    booking_id: int,
    request: BookingStatusRequest,
    booking_service: BookingService = Depends(get_booking_service),
    actor: Actor = Depends(require_admin),
):
    try:
        booking = booking_service.set_status(actor, booking_id, request.status)
        return to_response(booking)
    except FleetOpsError as e:
        logger.warning("Business logic error in set_booking_status", error=str(e))
        raise HTTPException(status_code=e.status_code, detail=e.to_dict()) from e
    except Exception as e:
        logger.error("Error updating status of booking", booking_id=booking_id, error=str(e), exc_info=True)
        raise HTTPException(status_code=500, detail=ServerError().to_dict()) from e
