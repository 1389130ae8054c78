# fleetops/duties/exceptions.py

from fleetops.core.exceptions import DuplicateRecordError, NotFoundError


class DutyNotFoundError(NotFoundError):
    """Raised when a duty record cannot be found."""
    def __init__(self, duty_id: int = None, booking_id: int = None):
        if duty_id:
            super().__init__("Duty record", duty_id)
        elif booking_id:
            self.booking_id = booking_id
            super().__init__(f"Duty record for booking '{booking_id}'")
        else:
            super().__init__("Duty record")


class DutyAlreadyExistsError(DuplicateRecordError):
    """Raised when a concurrent request created the same (driver, booking) record."""
    def __init__(self):
        super().__init__("Duty information already exists for this booking")
