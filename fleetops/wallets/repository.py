# fleetops/wallets/repository.py

from decimal import Decimal
from typing import Dict, List, Optional, Sequence, Tuple

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from fleetops.wallets.models import (
    TransactionCategory,
    TransactionType,
    WalletTransaction,
)


class WalletTransactionRepository:
    """
    Data Access Layer for wallet transactions.
    Exposes inserts and reads only; ledger rows are never updated.
    """

    def __init__(self, db: Session):
        self.db = db

    def get_by_id(self, transaction_id: int) -> Optional[WalletTransaction]:
        stmt = select(WalletTransaction).where(WalletTransaction.id == transaction_id)
        return self.db.execute(stmt).scalar_one_or_none()

    def add(self, transaction: WalletTransaction) -> WalletTransaction:
        """
        Adds a ledger row to the session.
        The caller is responsible for committing the transaction.
        """
        self.db.add(transaction)
        self.db.flush()
        return transaction

    def _owner_filter(self, stmt, driver_id: Optional[int], admin_id: Optional[int]):
        if driver_id is not None:
            return stmt.where(WalletTransaction.driver_id == driver_id)
        return stmt.where(WalletTransaction.admin_id == admin_id)

    def list_for_owner(
        self,
        driver_id: Optional[int] = None,
        admin_id: Optional[int] = None,
        categories: Optional[Sequence[TransactionCategory]] = None,
        transaction_type: Optional[TransactionType] = None,
        offset: int = 0,
        limit: Optional[int] = None,
    ) -> Tuple[List[WalletTransaction], int]:
        """Newest-first ledger rows of one wallet plus the total count."""
        stmt = self._owner_filter(select(WalletTransaction), driver_id, admin_id)
        if categories:
            stmt = stmt.where(WalletTransaction.category.in_(list(categories)))
        if transaction_type is not None:
            stmt = stmt.where(WalletTransaction.type == transaction_type)

        total = self.db.execute(
            select(func.count()).select_from(stmt.subquery())
        ).scalar_one()

        stmt = stmt.order_by(WalletTransaction.id.desc()).offset(offset)
        if limit is not None:
            stmt = stmt.limit(limit)
        return list(self.db.execute(stmt).scalars().all()), total

    def totals_by_type(
        self,
        driver_id: Optional[int] = None,
        admin_id: Optional[int] = None,
        categories: Optional[Sequence[TransactionCategory]] = None,
    ) -> Dict[TransactionType, Tuple[Decimal, int]]:
        """Sum and count of amounts per transaction type for one wallet."""
        stmt = self._owner_filter(
            select(
                WalletTransaction.type,
                func.coalesce(func.sum(WalletTransaction.amount), 0),
                func.count(WalletTransaction.id),
            ),
            driver_id,
            admin_id,
        )
        if categories:
            stmt = stmt.where(WalletTransaction.category.in_(list(categories)))
        stmt = stmt.group_by(WalletTransaction.type)

        totals = {t: (Decimal("0.00"), 0) for t in TransactionType}
        for tx_type, amount, count in self.db.execute(stmt).all():
            totals[TransactionType(tx_type)] = (Decimal(str(amount)), count)
        return totals

    def count_for_booking(self, booking_id: int) -> int:
        stmt = select(func.count(WalletTransaction.id)).where(
            WalletTransaction.booking_id == booking_id
        )
        return self.db.execute(stmt).scalar_one()
