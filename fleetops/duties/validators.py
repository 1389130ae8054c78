# fleetops/duties/validators.py

import re
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional

from fleetops.core.exceptions import ValidationError
from fleetops.utils.general import to_decimal

CLOCK_PATTERN = re.compile(r"^([01]?\d|2[0-3]):[0-5]\d$")

REQUIRED_FIELDS = {
    "start_date": "Duty start date is required",
    "start_time": "Duty start time is required",
    "end_date": "Duty end date is required",
    "end_time": "Duty end time is required",
    "start_km": "Duty start KM is required",
    "end_km": "Duty end KM is required",
    "duty_type": "Duty type is required",
}


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and value.strip() == "")


def _parse_date(value: Any) -> Optional[date]:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value).strip()
    try:
        return datetime.fromisoformat(text.replace("Z", "+00:00")).date()
    except ValueError:
        return None


def _parse_km(value: Any) -> Optional[Decimal]:
    try:
        km = to_decimal(value, default=None)
    except ValueError:
        return None
    if km is None or km < 0:
        return None
    return km


def validate_duty_fields(fields: Dict[str, Any]) -> Dict[str, Any]:
    """
    Validate raw duty input and return the cleaned values.

    Every problem is collected; a single ValidationError lists all of them.
    """
    errors: List[str] = []
    for name, message in REQUIRED_FIELDS.items():
        if _is_blank(fields.get(name)):
            errors.append(message)

    cleaned: Dict[str, Any] = {}

    for name, label in (("start_date", "start date"), ("end_date", "end date")):
        if not _is_blank(fields.get(name)):
            parsed = _parse_date(fields[name])
            if parsed is None:
                errors.append(f"Invalid {label} format")
            cleaned[name] = parsed

    for name, label in (("start_time", "start time"), ("end_time", "end time")):
        if not _is_blank(fields.get(name)):
            value = str(fields[name]).strip()
            if not CLOCK_PATTERN.match(value):
                errors.append(f"Invalid {label} format")
            else:
                hour, minute = value.split(":")
                cleaned[name] = f"{int(hour):02d}:{minute}"

    for name, label in (("start_km", "Start KM"), ("end_km", "End KM")):
        if not _is_blank(fields.get(name)):
            km = _parse_km(fields[name])
            if km is None:
                errors.append(f"{label} must be a valid positive number")
            cleaned[name] = km

    start_km, end_km = cleaned.get("start_km"), cleaned.get("end_km")
    if start_km is not None and end_km is not None and end_km < start_km:
        errors.append("End KM cannot be less than start KM")

    if errors:
        raise ValidationError(errors)

    cleaned["duty_type"] = str(fields["duty_type"]).strip()
    notes = fields.get("notes")
    cleaned["notes"] = notes if notes is not None else ""
    return cleaned
