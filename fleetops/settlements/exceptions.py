# fleetops/settlements/exceptions.py

from typing import List

from fleetops.core.exceptions import FleetOpsError, ValidationError


class SettlementNotEligibleError(ValidationError):
    """Raised when a booking lacks a driver, an expense or a receiving entry."""
    def __init__(self, booking_id: int, reasons: List[str]):
        self.booking_id = booking_id
        super().__init__(reasons, message=f"Booking '{booking_id}' is not eligible for settlement")


class SettlementTransferError(FleetOpsError):
    """Raised for invalid manual transfer bookkeeping on a settlement."""
    kind = "InvalidSettlementOperation"
    status_code = 409
