# fleetops/bookings/exceptions.py

from fleetops.core.exceptions import DuplicateRecordError, NotFoundError


class BookingNotFoundError(NotFoundError):
    """Raised when a booking cannot be found."""
    def __init__(self, booking_id: int):
        self.booking_id = booking_id
        super().__init__("Booking", booking_id)


class DuplicateDutyIdError(DuplicateRecordError):
    """Raised when a manual booking reuses an external duty id."""
    def __init__(self, duty_id: str):
        self.duty_id = duty_id
        super().__init__(f"A booking with Duty Id '{duty_id}' already exists")
