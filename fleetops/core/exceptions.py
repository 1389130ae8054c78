# fleetops/core/exceptions.py

from typing import Any, Dict, List, Optional


class FleetOpsError(Exception):
    """
    Base exception for all business rule violations.

    Every error carries a stable ``kind`` and an HTTP status so routers can turn
    it into a structured response without inspecting the concrete class.
    """

    kind = "Error"
    status_code = 400

    def __init__(self, message: str, errors: Optional[List[str]] = None, **extra: Any):
        super().__init__(message)
        self.message = message
        self.errors = errors or []
        self.extra = extra

    def to_dict(self) -> Dict[str, Any]:
        """Serialize the error for an API response body."""
        body: Dict[str, Any] = {"kind": self.kind, "message": self.message}
        if self.errors:
            body["errors"] = list(self.errors)
        body.update(self.extra)
        return body


class ValidationError(FleetOpsError):
    """Raised with the complete list of field problems."""

    kind = "ValidationError"
    status_code = 400

    def __init__(self, errors: List[str], message: str = "Validation failed"):
        super().__init__(message, errors=errors)


class NotFoundError(FleetOpsError):
    """Raised when a referenced entity does not exist."""

    kind = "NotFound"
    status_code = 404

    def __init__(self, entity: str, identifier: Any = None):
        self.entity = entity
        self.identifier = identifier
        if identifier is not None:
            super().__init__(f"{entity} with ID '{identifier}' not found.")
        else:
            super().__init__(f"{entity} not found.")


class DutyInfoRequiredError(FleetOpsError):
    """Raised when expense or receiving data is submitted before duty info."""

    kind = "DutyInfoRequired"
    status_code = 400

    def __init__(self, message: str = "Duty information must be submitted first"):
        super().__init__(message, dutyInfoRequired=True)


class ForbiddenError(FleetOpsError):
    """Raised on a role check failure or an ownership claim conflict."""

    kind = "Forbidden"
    status_code = 403


class AlreadySettledError(FleetOpsError):
    kind = "AlreadySettled"
    status_code = 409

    def __init__(self, booking_id: int):
        self.booking_id = booking_id
        super().__init__(f"Booking '{booking_id}' is already settled.")


class NotSettledError(FleetOpsError):
    kind = "NotSettled"
    status_code = 409

    def __init__(self, booking_id: int):
        self.booking_id = booking_id
        super().__init__(f"Booking '{booking_id}' is not settled.")


class InsufficientBalanceError(FleetOpsError):
    """Raised when an admin wallet cannot cover a debit."""

    kind = "InsufficientBalance"
    status_code = 400


class InvalidFormatError(FleetOpsError):
    """Raised when a JSON sub-payload cannot be parsed."""

    kind = "InvalidFormat"
    status_code = 400


class DuplicateRecordError(FleetOpsError):
    """Raised when a unique (driver, booking) record already exists."""

    kind = "DuplicateRecord"
    status_code = 409


class ServerError(FleetOpsError):
    kind = "ServerError"
    status_code = 500

    def __init__(self, message: str = "An unexpected error occurred."):
        super().__init__(message)
