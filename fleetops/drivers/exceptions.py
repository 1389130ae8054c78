# fleetops/drivers/exceptions.py

from fleetops.core.exceptions import DuplicateRecordError, NotFoundError


class DriverNotFoundError(NotFoundError):
    def __init__(self, driver_id: int):
        super().__init__("Driver", driver_id)


class DriverCodeExistsError(DuplicateRecordError):
    def __init__(self, driver_code: str):
        super().__init__(f"Driver code '{driver_code}' is already in use")
