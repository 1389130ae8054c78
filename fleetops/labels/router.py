# fleetops/labels/router.py

from typing import List

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from fleetops.core.db import get_db
from fleetops.core.dependencies import Actor, require_admin
from fleetops.core.exceptions import FleetOpsError, ServerError
from fleetops.labels.schemas import BookingLabelsRequest, LabelCreateRequest, LabelResponse
from fleetops.labels.services import LabelService
from fleetops.utils.general import to_response
from fleetops.utils.logger import get_logger

logger = get_logger(__name__)
router = APIRouter(prefix="/labels", tags=["Labels"])


def get_label_service(db: Session = Depends(get_db)) -> LabelService:
    """Provides an instance of LabelService with the current DB session."""
    return LabelService(db)


@router.get("", response_model=List[LabelResponse], summary="List Labels")
def list_labels(
    label_service: LabelService = Depends(get_label_service),
    actor: Actor = Depends(require_admin),
):
    try:
        return label_service.list_labels()
    except FleetOpsError as e:
        logger.warning("Business logic error in list_labels", error=str(e))
        raise HTTPException(status_code=e.status_code, detail=e.to_dict()) from e
    except Exception as e:
        logger.error("Error listing labels", error=str(e), exc_info=True)
        raise HTTPException(status_code=500, detail=ServerError().to_dict()) from e


@router.post("", response_model=LabelResponse, status_code=status.HTTP_201_CREATED, summary="Create a Label")
def create_label(
    request: LabelCreateRequest,
    label_service: LabelService = Depends(get_label_service),
    actor: Actor = Depends(require_admin),
):
    try:
        return label_service.create_label(actor, request.name, request.color)
    except FleetOpsError as e:
        logger.warning("Business logic error in create_label", error=str(e))
        raise HTTPException(status_code=e.status_code, detail=e.to_dict()) from e
    except Exception as e:
        logger.error("Error creating label", error=str(e), exc_info=True)
        raise HTTPException(status_code=500, detail=ServerError().to_dict()) from e


@router.delete("/{label_id}", status_code=status.HTTP_204_NO_CONTENT, summary="Delete a Label")
def delete_label(
    label_id: int,
    label_service: LabelService = Depends(get_label_service),
    actor: Actor = Depends(require_admin),
):
    try:
        label_service.delete_label(actor, label_id)
    except FleetOpsError as e:
        logger.warning("Business logic error in delete_label", error=str(e))
        raise HTTPException(status_code=e.status_code, detail=e.to_dict()) from e
    except Exception as e:
        logger.error("Error deleting label", label_id=label_id, error=str(e), exc_info=True)
        raise HTTPException(status_code=500, detail=ServerError().to_dict()) from e


@router.put("/bookings/{booking_id}", summary="Set Booking Labels")
def set_booking_labels(
    booking_id: int,
    request: BookingLabelsRequest,
    label_service: LabelService = Depends(get_label_service),
    actor: Actor = Depends(require_admin),
):
    """
    Replace, add or remove labels on a booking.
    """
    try:
        booking = label_service.set_booking_labels(actor, booking_id, request.label_ids, request.mode)
        return {"message": "Booking labels updated", "booking": to_response(booking)}
    except FleetOpsError as e:
        logger.warning("Business logic error in set_booking_labels", error=str(e))
        raise HTTPException(status_code=e.status_code, detail=e.to_dict()) from e
    except Exception as e:
        logger.error("Error updating labels of booking", booking_id=booking_id, error=str(e), exc_info=True)
        raise HTTPException(status_code=500, detail=ServerError().to_dict()) from e
