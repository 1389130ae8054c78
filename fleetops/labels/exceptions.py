# fleetops/labels/exceptions.py

from fleetops.core.exceptions import DuplicateRecordError, NotFoundError, ValidationError


class LabelNotFoundError(NotFoundError):
    def __init__(self, label_id: int):
        super().__init__("Label", label_id)


class LabelExistsError(DuplicateRecordError):
    """Raised when a label name is already taken."""
    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Label '{name}' already exists")


class InvalidLabelModeError(ValidationError):
    def __init__(self, mode: str):
        super().__init__([f"Invalid mode '{mode}'. Use replace, add or remove"])
