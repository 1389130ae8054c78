# fleetops/receivings/router.py

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlalchemy.orm import Session

from fleetops.core.config import settings
from fleetops.core.db import get_db
from fleetops.core.dependencies import Actor, get_current_actor, require_admin
from fleetops.core.exceptions import FleetOpsError, ServerError
from fleetops.entries.forms import read_entry_payload
from fleetops.receivings.services import ReceivingService
from fleetops.utils.general import to_response
from fleetops.utils.logger import get_logger

logger = get_logger(__name__)
router = APIRouter(prefix="/receivings", tags=["Receivings"])


# Dependency to inject the ReceivingService
def get_receiving_service(db: Session = Depends(get_db)) -> ReceivingService:
    """Provides an instance of ReceivingService with the current DB session."""
    return ReceivingService(db)


@router.put("/bookings/{booking_id}", summary="Create or Update Receiving Entry")
async def upsert_receiving(
    booking_id: int,
    request: Request,
    receiving_service: ReceivingService = Depends(get_receiving_service),
    actor: Actor = Depends(get_current_actor),
):
    """
    Save the receiving entry of a booking. Accepts JSON or a multipart form
    carrying receipt images as ``billingItems[<index>].image`` files.
    Duty information must exist for the booking first.
    """
    try:
        fields, attachments = await read_entry_payload(request)
        receiving, extras = receiving_service.upsert(actor, booking_id, fields, attachments)
        return to_response({"message": "Receiving saved", "receiving": receiving, **extras})
    except FleetOpsError as e:
        logger.warning("Business logic error in upsert_receiving", error=str(e))
        raise HTTPException(status_code=e.status_code, detail=e.to_dict()) from e
    except Exception as e:
        logger.error("Error saving receiving for booking", booking_id=booking_id, error=str(e), exc_info=True)
        raise HTTPException(status_code=500, detail=ServerError().to_dict()) from e


@router.get("/bookings/{booking_id}", summary="Get Receiving Entry of a Booking")
def get_booking_receiving(
    booking_id: int,
    receiving_service: ReceivingService = Depends(get_receiving_service),
    actor: Actor = Depends(get_current_actor),
):
    try:
        return to_response(receiving_service.get_for_booking(actor, booking_id))
    except FleetOpsError as e:
        logger.warning("Business logic error in get_booking_receiving", error=str(e))
        raise HTTPException(status_code=e.status_code, detail=e.to_dict()) from e
    except Exception as e:
        logger.error("Error fetching receiving for booking", booking_id=booking_id, error=str(e), exc_info=True)
        raise HTTPException(status_code=500, detail=ServerError().to_dict()) from e


@router.get("", summary="List Receiving Entries")
def list_receivings(
    page: int = Query(1, ge=1),
    per_page: int = Query(settings.default_page_size, ge=1, le=settings.max_page_size),
    driver_id: Optional[int] = Query(None),
    receiving_service: ReceivingService = Depends(get_receiving_service),
    actor: Actor = Depends(require_admin),
):
    try:
        return to_response(receiving_service.list_entries(page=page, per_page=per_page, driver_id=driver_id))
    except FleetOpsError as e:
        logger.warning("Business logic error in list_receivings", error=str(e))
        raise HTTPException(status_code=e.status_code, detail=e.to_dict()) from e
    except Exception as e:
        logger.error("Error listing receivings", error=str(e), exc_info=True)
        raise HTTPException(status_code=500, detail=ServerError().to_dict()) from e


@router.post("/{receiving_id}/release", summary="Release Receiving Claim")
def release_receiving_claim(
    receiving_id: int,
    receiving_service: ReceivingService = Depends(get_receiving_service),
    actor: Actor = Depends(require_admin),
):
    """
    Give up the editor-of-record claim so another admin can edit the entry.
    """
    try:
        receiving = receiving_service.release_claim(actor, receiving_id)
        return {"message": "Claim released", "receiving": to_response(receiving)}
    except FleetOpsError as e:
        logger.warning("Business logic error in release_receiving_claim", error=str(e))
        raise HTTPException(status_code=e.status_code, detail=e.to_dict()) from e
    except Exception as e:
        logger.error("Error releasing claim on receiving", receiving_id=receiving_id, error=str(e), exc_info=True)
        raise HTTPException(status_code=500, detail=ServerError().to_dict()) from e
