# fleetops/settlements/repository.py

from decimal import Decimal
from typing import List, Optional, Tuple

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from fleetops.bookings.models import Booking
from fleetops.settlements.models import BookingSettlement, SettlementStatus


class SettlementRepository:
    """
    Data Access Layer for booking settlement records.
    """

    def __init__(self, db: Session):
        self.db = db

    def get_by_booking_id(self, booking_id: int) -> Optional[BookingSettlement]:
        stmt = select(BookingSettlement).where(BookingSettlement.booking_id == booking_id)
        return self.db.execute(stmt).scalar_one_or_none()

    def create(self, settlement: BookingSettlement) -> BookingSettlement:
        """
        Adds a new settlement record to the session.
        The caller is responsible for committing the transaction.
        """
        self.db.add(settlement)
        self.db.flush()
        return settlement

    def list_for_driver(
        self,
        driver_id: int,
        status: Optional[SettlementStatus] = None,
        offset: int = 0,
        limit: int = 20,
    ) -> Tuple[List[BookingSettlement], int]:
        """Settlement records of bookings currently assigned to a driver."""
        stmt = (
            select(BookingSettlement)
            .join(Booking, Booking.id == BookingSettlement.booking_id)
            .where(Booking.driver_id == driver_id)
        )
        if status is not None:
            stmt = stmt.where(BookingSettlement.status == status)
        total = self.db.execute(select(func.count()).select_from(stmt.subquery())).scalar_one()
        stmt = stmt.order_by(BookingSettlement.id.desc()).offset(offset).limit(limit)
        return list(self.db.execute(stmt).scalars().all()), total

    def total_settled_for_driver(self, driver_id: int) -> Decimal:
        stmt = (
            select(func.coalesce(func.sum(BookingSettlement.settlement_amount), 0))
            .join(Booking, Booking.id == BookingSettlement.booking_id)
            .where(
                Booking.driver_id == driver_id,
                BookingSettlement.status == SettlementStatus.COMPLETED,
            )
        )
        return Decimal(str(self.db.execute(stmt).scalar_one()))

    def list_unsettled(self, offset: int = 0, limit: int = 20) -> Tuple[List[BookingSettlement], int]:
        """Pending or reversed settlements of bookings that have a driver."""
        stmt = (
            select(BookingSettlement)
            .join(Booking, Booking.id == BookingSettlement.booking_id)
            .where(
                BookingSettlement.is_settled.is_(False),
                Booking.driver_id.is_not(None),
            )
        )
        total = self.db.execute(select(func.count()).select_from(stmt.subquery())).scalar_one()
        stmt = stmt.order_by(BookingSettlement.booking_id.desc()).offset(offset).limit(limit)
        return list(self.db.execute(stmt).scalars().all()), total
