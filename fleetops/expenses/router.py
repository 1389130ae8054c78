# fleetops/expenses/router.py

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlalchemy.orm import Session

from fleetops.core.config import settings
from fleetops.core.db import get_db
from fleetops.core.dependencies import Actor, get_current_actor, require_admin
from fleetops.core.exceptions import FleetOpsError, ServerError
from fleetops.entries.forms import read_entry_payload
from fleetops.expenses.services import ExpenseService
from fleetops.utils.general import to_response
from fleetops.utils.logger import get_logger

logger = get_logger(__name__)
router = APIRouter(prefix="/expenses", tags=["Expenses"])


# Dependency to inject the ExpenseService
def get_expense_service(db: Session = Depends(get_db)) -> ExpenseService:
    """Provides an instance of ExpenseService with the current DB session."""
    return ExpenseService(db)


@router.put("/bookings/{booking_id}", summary="Create or Update Expense Entry")
async def upsert_expense(
    booking_id: int,
    request: Request,
    expense_service: ExpenseService = Depends(get_expense_service),
    actor: Actor = Depends(get_current_actor),
):
    """
    Save the expense entry of a booking. Accepts JSON or a multipart form
    carrying receipt images as ``billingItems[<index>].image`` files.
    Duty information must exist for the booking first.
    """
    try:
        fields, attachments = await read_entry_payload(request)
        expense, extras = expense_service.upsert(actor, booking_id, fields, attachments)
        return to_response({"message": "Expense saved", "expense": expense, **extras})
    except FleetOpsError as e:
        logger.warning("Business logic error in upsert_expense", error=str(e))
        raise HTTPException(status_code=e.status_code, detail=e.to_dict()) from e
    except Exception as e:
        logger.error("Error saving expense for booking", booking_id=booking_id, error=str(e), exc_info=True)
        raise HTTPException(status_code=500, detail=ServerError().to_dict()) from e


@router.get("/bookings/{booking_id}", summary="Get Expense Entry of a Booking")
def get_booking_expense(
    booking_id: int,
    expense_service: ExpenseService = Depends(get_expense_service),
    actor: Actor = Depends(get_current_actor),
):
    try:
        return to_response(expense_service.get_for_booking(actor, booking_id))
    except FleetOpsError as e:
        logger.warning("Business logic error in get_booking_expense", error=str(e))
        raise HTTPException(status_code=e.status_code, detail=e.to_dict()) from e
    except Exception as e:
        logger.error("Error fetching expense for booking", booking_id=booking_id, error=str(e), exc_info=True)
        raise HTTPException(status_code=500, detail=ServerError().to_dict()) from e


@router.get("", summary="List Expense Entries")
def list_expenses(
    page: int = Query(1, ge=1),
    per_page: int = Query(settings.default_page_size, ge=1, le=settings.max_page_size),
    driver_id: Optional[int] = Query(None),
    expense_service: ExpenseService = Depends(get_expense_service),
    actor: Actor = Depends(require_admin),
):
    try:
        return to_response(expense_service.list_entries(page=page, per_page=per_page, driver_id=driver_id))
    except FleetOpsError as e:
        logger.warning("Business logic error in list_expenses", error=str(e))
        raise HTTPException(status_code=e.status_code, detail=e.to_dict()) from e
    except Exception as e:
        logger.error("Error listing expenses", error=str(e), exc_info=True)
        raise HTTPException(status_code=500, detail=ServerError().to_dict()) from e


@router.post("/{expense_id}/release", summary="Release Expense Claim")
def release_expense_claim(
    expense_id: int,
    expense_service: ExpenseService = Depends(get_expense_service),
    actor: Actor = Depends(require_admin),
):
    """
    Give up the editor-of-record claim so another admin can edit the entry.
    """
    try:
        expense = expense_service.release_claim(actor, expense_id)
        return {"message": "Claim released", "expense": to_response(expense)}
    except FleetOpsError as e:
        logger.warning("Business logic error in release_expense_claim", error=str(e))
        raise HTTPException(status_code=e.status_code, detail=e.to_dict()) from e
    except Exception as e:
        logger.error("Error releasing claim on expense", expense_id=expense_id, error=str(e), exc_info=True)
        raise HTTPException(status_code=500, detail=ServerError().to_dict()) from e
