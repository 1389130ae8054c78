# fleetops/labels/schemas.py

from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class LabelCreateRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    color: Optional[str] = Field(None, description="Hex color, defaults to #888888")


class LabelResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    color: str
    created_by: Optional[str] = None
    created_by_role: Optional[str] = None


class BookingLabelsRequest(BaseModel):
    """
    Request schema for changing the labels on a booking.
    """
    label_ids: List[int] = Field(default_factory=list)
    mode: Literal["replace", "add", "remove"] = "replace"
