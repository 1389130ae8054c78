# fleetops/wallets/router.py

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from fleetops.core.config import settings
from fleetops.core.db import get_db
from fleetops.core.dependencies import Actor, get_current_actor, require_admin, require_superadmin
from fleetops.core.exceptions import FleetOpsError, ForbiddenError, ServerError
from fleetops.utils.general import to_response
from fleetops.utils.logger import get_logger
from fleetops.wallets.models import OwnerType, TransactionCategory, TransactionType
from fleetops.wallets.schemas import WalletAdjustmentRequest, WalletAmountRequest, WalletTransferRequest
from fleetops.wallets.services import WalletOwner, WalletService

logger = get_logger(__name__)
router = APIRouter(prefix="/wallets", tags=["Wallets"])


# Dependency to inject the WalletService
def get_wallet_service(db: Session = Depends(get_db)) -> WalletService:
    """Provides an instance of WalletService with the current DB session."""
    return WalletService(db)


def _ensure_can_read_driver(actor: Actor, driver_id: int) -> None:
    if not actor.is_admin and actor.id != driver_id:
        raise ForbiddenError("Not authorized to view this wallet")


@router.get("/drivers/{driver_id}", summary="Driver Wallet Details")
def get_driver_wallet(
    driver_id: int,
    wallet_service: WalletService = Depends(get_wallet_service),
    actor: Actor = Depends(get_current_actor),
):
    """
    Balance, credit/debit totals and a plain explanation of the sign:
    positive means the company owes the driver.
    """
    try:
        _ensure_can_read_driver(actor, driver_id)
        return to_response(wallet_service.get_wallet_details(WalletOwner.driver(driver_id)))
    except FleetOpsError as e:
        logger.warning("Business logic error in get_driver_wallet", error=str(e))
        raise HTTPException(status_code=e.status_code, detail=e.to_dict()) from e
    except Exception as e:
        logger.error("Error fetching wallet of driver", driver_id=driver_id, error=str(e), exc_info=True)
        raise HTTPException(status_code=500, detail=ServerError().to_dict()) from e


@router.get("/drivers/{driver_id}/transactions", summary="Driver Wallet Transactions")
def list_driver_transactions(
    driver_id: int,
    page: int = Query(1, ge=1),
    per_page: int = Query(settings.default_page_size, ge=1, le=settings.max_page_size),
    category: Optional[TransactionCategory] = Query(None),
    type: Optional[TransactionType] = Query(None),
    wallet_service: WalletService = Depends(get_wallet_service),
    actor: Actor = Depends(get_current_actor),
):
    try:
        _ensure_can_read_driver(actor, driver_id)
        result = wallet_service.list_transactions(
            WalletOwner.driver(driver_id), page=page, per_page=per_page,
            category=category, transaction_type=type,
        )
        return to_response(result)
    except FleetOpsError as e:
        logger.warning("Business logic error in list_driver_transactions", error=str(e))
        raise HTTPException(status_code=e.status_code, detail=e.to_dict()) from e
    except Exception as e:
        logger.error("Error listing transactions of driver", driver_id=driver_id, error=str(e), exc_info=True)
        raise HTTPException(status_code=500, detail=ServerError().to_dict()) from e


@router.get("/admins/{admin_id}", summary="Admin Wallet Details")
def get_admin_wallet(
    admin_id: int,
    wallet_service: WalletService = Depends(get_wallet_service),
    actor: Actor = Depends(require_admin),
):
    try:
        return to_response(wallet_service.get_wallet_details(WalletOwner.admin(admin_id)))
    except FleetOpsError as e:
        logger.warning("Business logic error in get_admin_wallet", error=str(e))
        raise HTTPException(status_code=e.status_code, detail=e.to_dict()) from e
    except Exception as e:
        logger.error("Error fetching wallet of admin", admin_id=admin_id, error=str(e), exc_info=True)
        raise HTTPException(status_code=500, detail=ServerError().to_dict()) from e


@router.get("/admins/{admin_id}/transactions", summary="Admin Wallet Transactions")
def list_admin_transactions(
    admin_id: int,
    page: int = Query(1, ge=1),
    per_page: int = Query(settings.default_page_size, ge=1, le=settings.max_page_size),
    category: Optional[TransactionCategory] = Query(None),
    type: Optional[TransactionType] = Query(None),
    wallet_service: WalletService = Depends(get_wallet_service),
    actor: Actor = Depends(require_admin),
):
    try:
        result = wallet_service.list_transactions(
            WalletOwner.admin(admin_id), page=page, per_page=per_page,
            category=category, transaction_type=type,
        )
        return to_response(result)
    except FleetOpsError as e:
        logger.warning("Business logic error in list_admin_transactions", error=str(e))
        raise HTTPException(status_code=e.status_code, detail=e.to_dict()) from e
    except Exception as e:
        logger.error("Error listing transactions of admin", admin_id=admin_id, error=str(e), exc_info=True)
        raise HTTPException(status_code=500, detail=ServerError().to_dict()) from e


@router.post("/admins/{admin_id}/adjust", summary="Credit or Debit an Admin Wallet")
def adjust_admin_wallet(
    admin_id: int,
    request: WalletAdjustmentRequest,
    wallet_service: WalletService = Depends(get_wallet_service),
    actor: Actor = Depends(require_superadmin),
):
    try:
        transaction = wallet_service.adjust_admin_wallet(
            actor, admin_id, request.amount, request.type, request.description
        )
        return {"message": "Admin wallet updated", "transaction": to_response(transaction)}
    except FleetOpsError as e:
        logger.warning("Business logic error in adjust_admin_wallet", error=str(e))
        raise HTTPException(status_code=e.status_code, detail=e.to_dict()) from e
    except Exception as e:
        logger.error("Error adjusting wallet of admin", admin_id=admin_id, error=str(e), exc_info=True)
        raise HTTPException(status_code=500, detail=ServerError().to_dict()) from e


@router.post("/drivers/{driver_id}/adjust", summary="Credit or Debit a Driver Wallet")
def adjust_driver_wallet(
    driver_id: int,
    request: WalletAdjustmentRequest,
    wallet_service: WalletService = Depends(get_wallet_service),
    actor: Actor = Depends(require_admin),
):
    try:
        transaction = wallet_service.adjust_driver_wallet(
            actor, driver_id, request.amount, request.type, request.description
        )
        return {"message": "Driver wallet updated", "transaction": to_response(transaction)}
    except FleetOpsError as e:
        logger.warning("Business logic error in adjust_driver_wallet", error=str(e))
        raise HTTPException(status_code=e.status_code, detail=e.to_dict()) from e
    except Exception as e:
        logger.error("Error adjusting wallet of driver", driver_id=driver_id, error=str(e), exc_info=True)
        raise HTTPException(status_code=500, detail=ServerError().to_dict()) from e


@router.post("/transfer", summary="Transfer Between Wallets")
def transfer_funds(
    request: WalletTransferRequest,
    wallet_service: WalletService = Depends(get_wallet_service),
    actor: Actor = Depends(require_admin),
):
    """
    Move money out of an admin wallet into a driver or admin wallet. Only an
    admin may draw on a wallet other than their own.
    """
    try:
        if request.source_type != OwnerType.ADMIN:
            raise ForbiddenError("Transfers must originate from an admin wallet")
        source_id = request.source_id if request.source_id is not None else actor.id
        if source_id != actor.id and not actor.is_superadmin:
            raise ForbiddenError("Only admins can transfer from another admin's wallet")
        target = (
            WalletOwner.driver(request.target_id)
            if request.target_type == OwnerType.DRIVER
            else WalletOwner.admin(request.target_id)
        )
        result = wallet_service.transfer(
            WalletOwner.admin(source_id), target, request.amount, request.description, actor
        )
        return to_response({"message": "Transfer completed", **result})
    except FleetOpsError as e:
        logger.warning("Business logic error in transfer_funds", error=str(e))
        raise HTTPException(status_code=e.status_code, detail=e.to_dict()) from e
    except Exception as e:
        logger.error("Error transferring funds", error=str(e), exc_info=True)
        raise HTTPException(status_code=500, detail=ServerError().to_dict()) from e


@router.post("/drivers/{driver_id}/advance", summary="Advance Money to a Driver")
def advance_to_driver(
    driver_id: int,
    request: WalletAmountRequest,
    wallet_service: WalletService = Depends(get_wallet_service),
    actor: Actor = Depends(require_admin),
):
    try:
        result = wallet_service.advance_to_driver(actor, driver_id, request.amount, request.description)
        return to_response({"message": "Advance recorded", **result})
    except FleetOpsError as e:
        logger.warning("Business logic error in advance_to_driver", error=str(e))
        raise HTTPException(status_code=e.status_code, detail=e.to_dict()) from e
    except Exception as e:
        logger.error("Error advancing money to driver", driver_id=driver_id, error=str(e), exc_info=True)
        raise HTTPException(status_code=500, detail=ServerError().to_dict()) from e


@router.post("/drivers/{driver_id}/pay", summary="Pay a Driver")
def pay_driver(
    driver_id: int,
    request: WalletAmountRequest,
    wallet_service: WalletService = Depends(get_wallet_service),
    actor: Actor = Depends(require_admin),
):
    try:
        result = wallet_service.pay_driver(actor, driver_id, request.amount, request.description)
        return to_response({"message": "Payment recorded", **result})
    except FleetOpsError as e:
        logger.warning("Business logic error in pay_driver", error=str(e))
        raise HTTPException(status_code=e.status_code, detail=e.to_dict()) from e
    except Exception as e:
        logger.error("Error paying driver", driver_id=driver_id, error=str(e), exc_info=True)
        raise HTTPException(status_code=500, detail=ServerError().to_dict()) from e


@router.post("/drivers/{driver_id}/collect", summary="Collect Money from a Driver")
def collect_from_driver(
    driver_id: int,
    request: WalletAmountRequest,
    wallet_service: WalletService = Depends(get_wallet_service),
    actor: Actor = Depends(require_admin),
):
    """
    Record cash collected against a driver's debt.
    """
    try:
        result = wallet_service.collect_from_driver(actor, driver_id, request.amount, request.description)
        return to_response({"message": "Collection recorded", **result})
    except FleetOpsError as e:
        logger.warning("Business logic error in collect_from_driver", error=str(e))
        raise HTTPException(status_code=e.status_code, detail=e.to_dict()) from e
    except Exception as e:
        logger.error("Error collecting money from driver", driver_id=driver_id, error=str(e), exc_info=True)
        raise HTTPException(status_code=500, detail=ServerError().to_dict()) from e
