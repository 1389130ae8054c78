# fleetops/settlements/router.py

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from fleetops.core.config import settings
from fleetops.core.db import get_db
from fleetops.core.dependencies import Actor, get_current_actor, require_admin, require_superadmin
from fleetops.core.exceptions import FleetOpsError, ForbiddenError, ServerError
from fleetops.settlements.models import SettlementStatus
from fleetops.settlements.schemas import (
    ManualTransferRequest,
    ProcessSettlementRequest,
    ReverseSettlementRequest,
)
from fleetops.settlements.services import SettlementService
from fleetops.utils.general import to_response
from fleetops.utils.logger import get_logger

logger = get_logger(__name__)
router = APIRouter(prefix="/settlements", tags=["Settlements"])


# Dependency to inject the SettlementService
def get_settlement_service(db: Session = Depends(get_db)) -> SettlementService:
    """Provides an instance of SettlementService with the current DB session."""
    return SettlementService(db)


@router.get("/pending", summary="List Bookings Awaiting Settlement")
def list_pending_settlements(
    page: int = Query(1, ge=1),
    per_page: int = Query(settings.default_page_size, ge=1, le=settings.max_page_size),
    settlement_service: SettlementService = Depends(get_settlement_service),
    actor: Actor = Depends(require_admin),
):
    try:
        return to_response(settlement_service.get_pending_settlements(page=page, per_page=per_page))
    except FleetOpsError as e:
        logger.warning("Business logic error in list_pending_settlements", error=str(e))
        raise HTTPException(status_code=e.status_code, detail=e.to_dict()) from e
    except Exception as e:
        logger.error("Error listing pending settlements", error=str(e), exc_info=True)
        raise HTTPException(status_code=500, detail=ServerError().to_dict()) from e


@router.get("/bookings/{booking_id}/preview", summary="Preview Booking Settlement")
def preview_settlement(
    booking_id: int,
    settlement_service: SettlementService = Depends(get_settlement_service),
    actor: Actor = Depends(require_admin),
):
    """
    Show the expense vs receiving difference and what settling would do to
    the driver wallet. Nothing is written.
    """
    try:
        return to_response(settlement_service.get_preview(booking_id))
    except FleetOpsError as e:
        logger.warning("Business logic error in preview_settlement", error=str(e))
        raise HTTPException(status_code=e.status_code, detail=e.to_dict()) from e
    except Exception as e:
        logger.error("Error previewing settlement for booking", booking_id=booking_id, error=str(e), exc_info=True)
        raise HTTPException(status_code=500, detail=ServerError().to_dict()) from e


@router.post("/bookings/{booking_id}", summary="Process Booking Settlement")
def process_settlement(
    booking_id: int,
    request: ProcessSettlementRequest,
    settlement_service: SettlementService = Depends(get_settlement_service),
    actor: Actor = Depends(require_admin),
):
    try:
        result = settlement_service.process_settlement(
            actor,
            booking_id,
            manual_amount=request.manual_amount,
            admin_adjustment=request.admin_adjustment,
            notes=request.notes,
            mark_completed=request.mark_completed,
        )
        return to_response({"message": "Settlement processed", **result})
    except FleetOpsError as e:
        logger.warning("Business logic error in process_settlement", error=str(e))
        raise HTTPException(status_code=e.status_code, detail=e.to_dict()) from e
    except Exception as e:
        logger.error("Error processing settlement for booking", booking_id=booking_id, error=str(e), exc_info=True)
        raise HTTPException(status_code=500, detail=ServerError().to_dict()) from e


@router.post("/bookings/{booking_id}/transfer", summary="Record Manual Settlement Transfer")
def record_settlement_transfer(
    booking_id: int,
    request: ManualTransferRequest,
    settlement_service: SettlementService = Depends(get_settlement_service),
    actor: Actor = Depends(require_admin),
):
    """
    Record the company-side cash movement of a settled booking on the acting
    admin's wallet.
    """
    try:
        settlement = settlement_service.record_manual_transfer(actor, booking_id, request.description)
        return {"message": "Settlement transfer recorded", "settlement": to_response(settlement)}
    except FleetOpsError as e:
        logger.warning("Business logic error in record_settlement_transfer", error=str(e))
        raise HTTPException(status_code=e.status_code, detail=e.to_dict()) from e
    except Exception as e:
        logger.error("Error recording transfer for booking", booking_id=booking_id, error=str(e), exc_info=True)
        raise HTTPException(status_code=500, detail=ServerError().to_dict()) from e


@router.post("/bookings/{booking_id}/reverse", summary="Reverse Booking Settlement")
def reverse_settlement(
    booking_id: int,
    request: ReverseSettlementRequest,
    settlement_service: SettlementService = Depends(get_settlement_service),
    actor: Actor = Depends(require_superadmin),
):
    try:
        result = settlement_service.reverse_settlement(actor, booking_id, request.reason)
        return to_response({"message": "Settlement reversed", **result})
    except FleetOpsError as e:
        logger.warning("Business logic error in reverse_settlement", error=str(e))
        raise HTTPException(status_code=e.status_code, detail=e.to_dict()) from e
    except Exception as e:
        logger.error("Error reversing settlement for booking", booking_id=booking_id, error=str(e), exc_info=True)
        raise HTTPException(status_code=500, detail=ServerError().to_dict()) from e


@router.get("/drivers/{driver_id}", summary="Driver Settlement History")
def get_driver_settlements(
    driver_id: int,
    page: int = Query(1, ge=1),
    per_page: int = Query(settings.default_page_size, ge=1, le=settings.max_page_size),
    status: Optional[SettlementStatus] = Query(None),
    settlement_service: SettlementService = Depends(get_settlement_service),
    actor: Actor = Depends(get_current_actor),
):
    """
    Settlement history of a driver with the total settled amount and the
    current wallet balance. Drivers may only read their own.
    """
    try:
        if not actor.is_admin and actor.id != driver_id:
            raise ForbiddenError("Not authorized to view these settlements")
        result = settlement_service.get_driver_settlements(
            driver_id, page=page, per_page=per_page, status=status
        )
        return to_response(result)
    except FleetOpsError as e:
        logger.warning("Business logic error in get_driver_settlements", error=str(e))
        raise HTTPException(status_code=e.status_code, detail=e.to_dict()) from e
    except Exception as e:
        logger.error("Error fetching settlements for driver", driver_id=driver_id, error=str(e), exc_info=True)
        raise HTTPException(status_code=500, detail=ServerError().to_dict()) from e
