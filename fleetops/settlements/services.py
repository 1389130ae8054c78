# fleetops/settlements/services.py

from decimal import Decimal
from typing import Any, Dict, Optional, Tuple

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from fleetops.bookings.models import Booking, BookingStatus
from fleetops.bookings.repository import BookingRepository
from fleetops.core.config import settings
from fleetops.core.dependencies import Actor
from fleetops.core.exceptions import (
    AlreadySettledError,
    FleetOpsError,
    ForbiddenError,
    NotFoundError,
    NotSettledError,
    ServerError,
    ValidationError,
)
from fleetops.expenses.models import Expense
from fleetops.receivings.models import Receiving
from fleetops.receivings.repository import ReceivingRepository
from fleetops.settlements.calculator import SettlementCalculation, calculate_settlement
from fleetops.settlements.exceptions import SettlementNotEligibleError, SettlementTransferError
from fleetops.settlements.models import BookingSettlement, SettlementStatus
from fleetops.settlements.repository import SettlementRepository
from fleetops.utils.general import ZERO, money, paginate, to_decimal, utcnow
from fleetops.utils.logger import get_logger
from fleetops.wallets.models import TransactionCategory
from fleetops.wallets.services import WalletOwner, WalletService

logger = get_logger(__name__)


class SettlementService:
    """
    Settlement engine: turns a booking's expense and receiving entries into a
    signed adjustment of the driver wallet, and reverses it on request.

    Settling only touches the driver wallet. Company cash movement is a
    separate manual step recorded through ``record_manual_transfer``.
    """

    def __init__(self, db: Session):
        self.db = db
        self.repo = SettlementRepository(db)
        self.booking_repo = BookingRepository(db)
        self.receiving_repo = ReceivingRepository(db)
        self.wallets = WalletService(db)

    # ------------------------------------------------------------------
    # Loading and eligibility
    # ------------------------------------------------------------------

    def _get_booking(self, booking_id: int, lock: bool = False) -> Booking:
        if lock:
            booking = self.booking_repo.get_for_update(booking_id)
        else:
            booking = self.booking_repo.get_by_id(booking_id)
        if not booking:
            raise NotFoundError("Booking", booking_id)
        return booking

    def _settlement_for(self, booking: Booking) -> BookingSettlement:
        """Settlement record of a booking, created pending if missing."""
        if booking.settlement is None:
            booking.settlement = BookingSettlement(status=SettlementStatus.PENDING)
            self.db.flush()
        return booking.settlement

    def receiving_for(self, booking: Booking) -> Optional[Receiving]:
        """The receiving entry the assigned driver captured for the booking."""
        if booking.driver_id is None:
            return None
        return self.receiving_repo.get_by_driver_and_booking(booking.driver_id, booking.id)

    def _eligible_entries(self, booking: Booking) -> Tuple[Expense, Receiving]:
        reasons = []
        if booking.driver_id is None:
            reasons.append("Booking has no assigned driver")
        expense = booking.expense_for(booking.driver_id)
        if expense is None:
            reasons.append("No expense entry found for this booking")
        receiving = self.receiving_for(booking)
        if receiving is None:
            reasons.append("No receiving entry found for this booking")
        if reasons:
            raise SettlementNotEligibleError(booking.id, reasons)
        return expense, receiving

    def calculate(self, booking: Booking) -> SettlementCalculation:
        expense, receiving = self._eligible_entries(booking)
        return calculate_settlement(expense, receiving)

    # ------------------------------------------------------------------
    # Preview
    # ------------------------------------------------------------------

    def get_preview(self, booking_id: int) -> Dict[str, Any]:
        """
        Read-only view of what settling the booking would do to the driver
        wallet. Nothing is written.
        """
        booking = self._get_booking(booking_id)
        calculation = self.calculate(booking)
        current_balance = self.wallets.get_balance(WalletOwner.driver(booking.driver_id))
        settlement = booking.settlement

        return {
            "booking_id": booking.id,
            "driver_id": booking.driver_id,
            **calculation.to_dict(),
            "amount": abs(calculation.difference),
            "current_balance": current_balance,
            "projected_balance": money(current_balance + calculation.difference),
            "is_settled": bool(settlement and settlement.is_settled),
            "status": settlement.status.value if settlement else SettlementStatus.PENDING.value,
            "auto_reconciled_amount": money(settlement.auto_reconciled_amount) if settlement else ZERO,
        }

    # ------------------------------------------------------------------
    # Process
    # ------------------------------------------------------------------

    def _process(
        self,
        actor: Actor,
        booking_id: int,
        manual_amount: Optional[Decimal],
        admin_adjustment: Decimal,
        notes: Optional[str],
        mark_completed: bool,
    ) -> Dict[str, Any]:
        booking = self._get_booking(booking_id, lock=True)
        settlement = self._settlement_for(booking)
        if settlement.is_settled:
            raise AlreadySettledError(booking_id)

        calculation = self.calculate(booking)
        base_amount = manual_amount if manual_amount is not None else calculation.difference
        final_amount = money(base_amount + admin_adjustment)

        transaction = self.wallets.apply_signed(
            WalletOwner.driver(booking.driver_id),
            final_amount,
            description=f"Settlement for booking {booking.id}",
            actor=actor,
            category=TransactionCategory.USER_WALLET,
            booking_id=booking.id,
        )

        now = utcnow()
        settlement.is_settled = True
        settlement.status = SettlementStatus.COMPLETED
        settlement.settlement_amount = final_amount
        settlement.calculated_amount = calculation.difference
        settlement.admin_adjustments = money(admin_adjustment)
        settlement.notes = notes
        settlement.settled_at = now
        settlement.settled_by = actor.id
        settlement.settled_by_role = actor.role.value
        settlement.settled_by_name = actor.name
        settlement.transaction_id = transaction.id if transaction else None
        settlement.admin_transaction_id = None
        settlement.admin_wallet_adjusted = False
        settlement.admin_wallet_owner_id = None
        settlement.modified_by = actor.audit_name

        settlement.completed_by_settlement = False
        if mark_completed and booking.status != BookingStatus.COMPLETED:
            booking.status = BookingStatus.COMPLETED
            booking.completed_at = now
            settlement.completed_by_settlement = True

        self.db.flush()
        driver_balance = self.wallets.get_balance(WalletOwner.driver(booking.driver_id))

        follow_up = None
        if final_amount > 0:
            follow_up = {
                "manual_transfer_required": True,
                "direction": "company_to_driver",
                "amount": final_amount,
                "message": "Manual transfer required: pay the driver from an admin wallet",
            }
        elif final_amount < 0:
            follow_up = {
                "manual_transfer_required": True,
                "direction": "driver_to_company",
                "amount": abs(final_amount),
                "message": "Manual transfer required: collect the amount from the driver",
            }

        auto_reconciled = money(settlement.auto_reconciled_amount or 0)
        if follow_up is not None and auto_reconciled != 0:
            follow_up["warning"] = (
                f"Automatic reconciliation already moved {auto_reconciled} on this wallet; "
                "use admin_adjustment to offset it if needed"
            )

        return {
            "booking_id": booking.id,
            "settlement": settlement,
            "calculation": calculation.to_dict(),
            "final_amount": final_amount,
            "auto_reconciled_amount": auto_reconciled,
            "transaction": transaction,
            "driver_balance": driver_balance,
            "manual_transfer_required": follow_up is not None,
            "follow_up": follow_up,
        }

    def process_settlement(
        self,
        actor: Actor,
        booking_id: int,
        manual_amount: Any = None,
        admin_adjustment: Any = 0,
        notes: Optional[str] = None,
        mark_completed: bool = True,
    ) -> Dict[str, Any]:
        """
        Settle a booking: finalAmount = (manual_amount or calculated
        difference) + admin_adjustment, added to the driver wallet with
        exactly one ledger row.

        Raises:
            ForbiddenError: actor is not an admin or subadmin
            NotFoundError: booking does not exist
            AlreadySettledError: booking settled and not reversed since
            SettlementNotEligibleError: missing driver, expense or receiving
        """
        if not actor.is_admin:
            raise ForbiddenError("Only admins can process settlements")
        try:
            manual = to_decimal(manual_amount, default=None)
            adjustment = to_decimal(admin_adjustment)
        except ValueError as e:
            raise ValidationError([str(e)]) from e

        try:
            result = self._process(actor, booking_id, manual, adjustment, notes, mark_completed)
            self.db.commit()
        except FleetOpsError:
            self.db.rollback()
            raise
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error("Settlement failed", booking_id=booking_id, error=str(e), exc_info=True)
            raise ServerError("Failed to process settlement") from e

        logger.info(
            "Settlement processed",
            booking_id=booking_id,
            final_amount=str(result["final_amount"]),
            calculated_amount=str(result["calculation"]["difference"]),
            settled_by=actor.id,
        )
        return result

    # ------------------------------------------------------------------
    # Manual company-side transfer
    # ------------------------------------------------------------------

    def _record_transfer(self, actor: Actor, booking_id: int, description: Optional[str]) -> BookingSettlement:
        booking = self._get_booking(booking_id, lock=True)
        settlement = self._settlement_for(booking)
        if not settlement.is_settled:
            raise NotSettledError(booking_id)
        if settlement.admin_wallet_adjusted:
            raise SettlementTransferError(f"Manual transfer already recorded for booking '{booking_id}'")
        amount = money(settlement.settlement_amount or 0)
        if amount == 0:
            raise SettlementTransferError("Settlement amount is zero, nothing to transfer")

        # company pays out a positive settlement, takes in a negative one
        transaction = self.wallets.apply_signed(
            WalletOwner.admin(actor.id),
            -amount,
            description=description or f"Settlement transfer for booking {booking.id}",
            actor=actor,
            category=TransactionCategory.TRANSFER,
            booking_id=booking.id,
        )
        settlement.admin_wallet_adjusted = True
        settlement.admin_transaction_id = transaction.id
        settlement.admin_wallet_owner_id = actor.id
        self.db.flush()
        return settlement

    def record_manual_transfer(
        self, actor: Actor, booking_id: int, description: Optional[str] = None
    ) -> BookingSettlement:
        """
        Record the company-side cash movement of a settled booking on the
        acting admin's wallet and flag it so a reversal undoes it as well.
        """
        if not actor.is_admin:
            raise ForbiddenError("Only admins can record settlement transfers")
        try:
            settlement = self._record_transfer(actor, booking_id, description)
            self.db.commit()
        except FleetOpsError:
            self.db.rollback()
            raise
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error("Settlement transfer failed", booking_id=booking_id, error=str(e), exc_info=True)
            raise ServerError("Failed to record settlement transfer") from e
        logger.info("Settlement transfer recorded", booking_id=booking_id, admin_id=actor.id)
        return settlement

    # ------------------------------------------------------------------
    # Reverse
    # ------------------------------------------------------------------

    def _reverse(self, actor: Actor, booking_id: int, reason: str) -> Dict[str, Any]:
        booking = self._get_booking(booking_id, lock=True)
        settlement = self._settlement_for(booking)
        if not settlement.is_settled:
            raise NotSettledError(booking_id)

        amount = money(settlement.settlement_amount or 0)
        driver_id = booking.driver_id
        if settlement.transaction_id is not None:
            original = self.wallets.repo.get_by_id(settlement.transaction_id)
            if original is not None:
                driver_id = original.driver_id
        driver_tx = None
        if driver_id is not None:
            driver_tx = self.wallets.apply_signed(
                WalletOwner.driver(driver_id),
                -amount,
                description=f"Reversal of settlement for booking {booking.id}: {reason}",
                actor=actor,
                category=TransactionCategory.USER_WALLET,
                booking_id=booking.id,
                reverses_transaction_id=settlement.transaction_id,
            )

        admin_tx = None
        original_admin = None
        if settlement.admin_wallet_adjusted and settlement.admin_transaction_id is not None:
            original_admin = self.wallets.repo.get_by_id(settlement.admin_transaction_id)
        if original_admin is not None:
            admin_tx = self.wallets.apply_signed(
                WalletOwner.admin(original_admin.admin_id),
                -original_admin.signed_amount,
                description=f"Reversal of settlement transfer for booking {booking.id}: {reason}",
                actor=actor,
                category=TransactionCategory.TRANSFER,
                booking_id=booking.id,
                reverses_transaction_id=original_admin.id,
            )
            settlement.admin_wallet_adjusted = False

        settlement.is_settled = False
        settlement.status = SettlementStatus.REVERSED
        settlement.reversed_at = utcnow()
        settlement.reversed_by = actor.id
        settlement.reversal_reason = reason
        settlement.reversal_transaction_id = driver_tx.id if driver_tx else None
        settlement.modified_by = actor.audit_name

        if settlement.completed_by_settlement:
            booking.status = BookingStatus.OPEN
            booking.completed_at = None
            settlement.completed_by_settlement = False

        self.db.flush()
        return {
            "booking_id": booking.id,
            "settlement": settlement,
            "driver_transaction": driver_tx,
            "admin_transaction": admin_tx,
            "driver_balance": self.wallets.get_balance(WalletOwner.driver(driver_id)) if driver_id else None,
        }

    def reverse_settlement(self, actor: Actor, booking_id: int, reason: str) -> Dict[str, Any]:
        """
        Undo a completed settlement with new, opposite ledger rows. Admin only.

        Raises:
            ForbiddenError: actor is not an admin
            NotSettledError: booking is not currently settled
        """
        if not actor.is_superadmin:
            raise ForbiddenError("Only admins can reverse settlements")
        if not reason or not reason.strip():
            raise ValidationError(["Reversal reason is required"])
        try:
            result = self._reverse(actor, booking_id, reason.strip())
            self.db.commit()
        except FleetOpsError:
            self.db.rollback()
            raise
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error("Settlement reversal failed", booking_id=booking_id, error=str(e), exc_info=True)
            raise ServerError("Failed to reverse settlement") from e
        logger.info("Settlement reversed", booking_id=booking_id, reversed_by=actor.id, reason=reason)
        return result

    # ------------------------------------------------------------------
    # Eager reconciliation on expense save
    # ------------------------------------------------------------------

    def auto_reconcile(self, booking: Booking, actor: Actor) -> Dict[str, Any]:
        """
        Bring the driver wallet in line with the current expense/receiving
        difference of an unsettled booking.

        Only the change since the last reconciliation is applied, so saving
        the same expense twice moves the wallet once. Debits larger than the
        driver's balance are skipped and reported.
        The caller is responsible for committing the transaction.
        """
        if not settings.auto_reconcile_on_expense_save:
            return {"applied": False, "reason": "disabled"}
        if booking.driver_id is None:
            return {"applied": False, "reason": "no_driver"}
        settlement = self._settlement_for(booking)
        if settlement.is_settled:
            return {"applied": False, "reason": "already_settled"}

        expense = booking.expense_for(booking.driver_id)
        receiving = self.receiving_for(booking)
        if expense is None or receiving is None:
            return {"applied": False, "reason": "receiving_missing"}

        calculation = calculate_settlement(expense, receiving)
        already_applied = money(settlement.auto_reconciled_amount or 0)
        delta = money(calculation.difference - already_applied)
        if delta == 0:
            return {"applied": False, "reason": "unchanged", "difference": calculation.difference}

        owner = WalletOwner.driver(booking.driver_id)
        if delta < 0:
            balance = self.wallets.lock_owner(owner).wallet_balance
            if Decimal(balance or 0) < abs(delta):
                logger.warning(
                    "Auto reconciliation debit skipped: insufficient driver balance",
                    booking_id=booking.id,
                    driver_id=booking.driver_id,
                    balance=str(balance),
                    debit=str(abs(delta)),
                )
                return {
                    "applied": False,
                    "reason": "insufficient_balance",
                    "difference": calculation.difference,
                    "pending_delta": delta,
                }

        transaction = self.wallets.apply_signed(
            owner,
            delta,
            description=f"Automatic reconciliation for booking {booking.id}",
            actor=actor,
            category=TransactionCategory.USER_WALLET,
            booking_id=booking.id,
        )
        settlement.auto_reconciled_amount = money(already_applied + delta)
        self.db.flush()
        logger.info(
            "Auto reconciliation applied",
            booking_id=booking.id,
            delta=str(delta),
            total_applied=str(settlement.auto_reconciled_amount),
        )
        return {
            "applied": True,
            "difference": calculation.difference,
            "delta": delta,
            "transaction_id": transaction.id,
        }

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_driver_settlements(
        self,
        driver_id: int,
        page: int = 1,
        per_page: int = 20,
        status: Optional[SettlementStatus] = None,
    ) -> Dict[str, Any]:
        """Settlement history of a driver with totals and the current balance."""
        current_balance = self.wallets.get_balance(WalletOwner.driver(driver_id))
        offset, limit = paginate(page, per_page)
        items, total = self.repo.list_for_driver(driver_id, status=status, offset=offset, limit=limit)
        return {
            "items": items,
            "total_items": total,
            "page": page,
            "per_page": per_page,
            "summary": {
                "total_settled_amount": money(self.repo.total_settled_for_driver(driver_id)),
                "current_wallet_balance": current_balance,
            },
        }

    def get_pending_settlements(self, page: int = 1, per_page: int = 20) -> Dict[str, Any]:
        """Unsettled bookings with their calculated figures where computable."""
        offset, limit = paginate(page, per_page)
        settlements, total = self.repo.list_unsettled(offset=offset, limit=limit)
        items = []
        for settlement in settlements:
            booking = settlement.booking
            entry = {
                "booking_id": booking.id,
                "driver_id": booking.driver_id,
                "status": settlement.status.value,
                "requires_action": False,
                "calculation": None,
                "missing": [],
            }
            try:
                entry["calculation"] = self.calculate(booking).to_dict()
                entry["requires_action"] = True
            except SettlementNotEligibleError as e:
                entry["missing"] = e.errors
            items.append(entry)
        return {"items": items, "total_items": total, "page": page, "per_page": per_page}
