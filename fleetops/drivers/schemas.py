# fleetops/drivers/schemas.py

from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class DriverCreateRequest(BaseModel):
    driver_code: str = Field(..., min_length=1, max_length=50, description="Code used by booking uploads")
    full_name: str = Field(..., min_length=1, max_length=255)
    phone: Optional[str] = Field(None, max_length=20)
    email: Optional[str] = Field(None, max_length=255)


class DriverStatusRequest(BaseModel):
    is_active: bool


class DriverResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    driver_code: str
    full_name: str
    phone: Optional[str] = None
    email: Optional[str] = None
    is_active: bool
    wallet_balance: Decimal
