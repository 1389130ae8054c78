# fleetops/settlements/schemas.py

from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class ProcessSettlementRequest(BaseModel):
    """
    Request schema for settling a booking.
    """
    model_config = ConfigDict(populate_by_name=True, json_schema_extra={
        "examples": [
            {"adminAdjustment": 0, "notes": "Settled after trip review", "markCompleted": True},
            {"manualAmount": 300.00, "adminAdjustment": -25.00, "notes": "Toll receipt missing"},
        ]
    })

    manual_amount: Optional[Decimal] = Field(
        None, alias="manualAmount", description="Overrides the calculated difference when given"
    )
    admin_adjustment: Decimal = Field(
        Decimal("0"), alias="adminAdjustment", description="Signed delta added on top"
    )
    notes: Optional[str] = Field(None, max_length=1000)
    mark_completed: bool = Field(True, alias="markCompleted")


class ReverseSettlementRequest(BaseModel):
    reason: str = Field(..., min_length=1, max_length=1000)


class ManualTransferRequest(BaseModel):
    description: Optional[str] = Field(None, max_length=500)
