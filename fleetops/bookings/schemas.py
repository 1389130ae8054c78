# fleetops/bookings/schemas.py

from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from fleetops.bookings.models import BookingStatus


class BookingDataItem(BaseModel):
    """One key/value trip attribute."""
    key: str = Field(..., min_length=1, description="Attribute name, e.g. 'Duty Id'")
    value: Any = Field("", description="Attribute value as sent by the source system")


class BookingCreateRequest(BaseModel):
    """
    Request schema for creating a booking by hand.
    """
    model_config = ConfigDict(json_schema_extra={
        "examples": [
            {
                "data": [
                    {"key": "Duty Id", "value": "D-1001"},
                    {"key": "Start Date", "value": "5/1/24"},
                    {"key": "Guest Name", "value": "A. Kumar"},
                ],
                "driver_id": 12,
            }
        ]
    })

    data: List[BookingDataItem] = Field(default_factory=list)
    driver_id: Optional[int] = Field(None, description="Driver to assign on creation")


class AssignDriverRequest(BaseModel):
    driver_id: Optional[int] = Field(None, description="Driver to assign, null to unassign")


class BookingStatusRequest(BaseModel):
    status: BookingStatus = Field(..., description="0 = open, 1 = completed")


class IngestResultResponse(BaseModel):
    """
    Counters of a booking upload plus per-row failures.
    """
    created: int
    updated: int
    reassigned: int
    unassigned: int
    skipped: int
    failed: int
    errors: List[dict] = Field(default_factory=list)
    warnings: List[dict] = Field(default_factory=list)
