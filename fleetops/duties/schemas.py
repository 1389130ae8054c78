# fleetops/duties/schemas.py

from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class DutyRequest(BaseModel):
    """
    Duty information for a booking. Values are validated by the service so
    every problem is reported at once; fields are therefore loosely typed.
    """
    model_config = ConfigDict(populate_by_name=True, json_schema_extra={
        "examples": [
            {
                "startDate": "2024-01-01",
                "startTime": "09:00",
                "endDate": "2024-01-01",
                "endTime": "18:00",
                "startKm": 100,
                "endKm": 250,
                "dutyType": "Local 8h/80km",
                "notes": "",
            }
        ]
    })

    start_date: Optional[str] = Field(None, alias="startDate")
    start_time: Optional[str] = Field(None, alias="startTime")
    end_date: Optional[str] = Field(None, alias="endDate")
    end_time: Optional[str] = Field(None, alias="endTime")
    start_km: Optional[Union[float, str]] = Field(None, alias="startKm")
    end_km: Optional[Union[float, str]] = Field(None, alias="endKm")
    duty_type: Optional[str] = Field(None, alias="dutyType")
    notes: Optional[str] = None
