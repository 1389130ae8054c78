# fleetops/entries/exceptions.py

from fleetops.core.exceptions import (
    DuplicateRecordError,
    ForbiddenError,
    NotFoundError,
    ServerError,
    ValidationError,
)


class EntryNotFoundError(NotFoundError):
    """Raised when an expense or receiving entry cannot be found."""
    def __init__(self, entry_name: str, booking_id: int = None):
        if booking_id:
            self.booking_id = booking_id
            super().__init__(f"{entry_name} for booking '{booking_id}'")
        else:
            super().__init__(entry_name)


class ClaimConflictError(ForbiddenError):
    """Raised when an admin edits an entry claimed by a different admin."""
    def __init__(self, entry_name: str, claimed_by: int):
        self.claimed_by = claimed_by
        super().__init__(
            f"{entry_name} is claimed by another admin and cannot be edited",
            claimedBy=claimed_by,
        )


class ClaimNotHeldError(ValidationError):
    """Raised when releasing an entry that is not currently claimed."""
    def __init__(self, entry_name: str):
        super().__init__([f"{entry_name} is not claimed"])


class EntryAlreadyExistsError(DuplicateRecordError):
    def __init__(self, entry_name: str):
        super().__init__(f"{entry_name} already exists for this booking")


class AttachmentUploadError(ServerError):
    def __init__(self, filename: str):
        self.filename = filename
        super().__init__(f"Failed to store attachment '{filename}'")
