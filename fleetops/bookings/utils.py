# fleetops/bookings/utils.py

import math
import re
from datetime import date, datetime, timedelta
from typing import Any, Optional

# Columns whose values are rendered as DD-MM-YYYY on ingest
DATE_KEYS = (
    "Start Date",
    "End Date",
    "Actual Start Date",
    "Allotment Date",
    "Dispatched Date",
    "Cancelled On",
    "Duty Slip Entry Date",
    "Duty created at",
)

EXCEL_EPOCH = date(1899, 12, 30)
DATE_FORMAT = "%d-%m-%Y"

_SEPARATORS = re.compile(r"[-/]")


def _from_serial(serial: float) -> str:
    """Excel stores dates as days since 1899-12-30."""
    return (EXCEL_EPOCH + timedelta(days=int(serial))).strftime(DATE_FORMAT)


def normalize_date(value: Any) -> str:
    """
    Render a spreadsheet date cell as DD-MM-YYYY.

    Accepts Excel serial numbers, date/datetime objects and the usual
    D/M/YY, DD-MM-YYYY and YYYY-MM-DD text forms. Anything unrecognised is
    returned as a trimmed string.
    """
    if value is None:
        return ""
    if isinstance(value, bool):
        return str(value)
    if isinstance(value, (int, float)):
        if isinstance(value, float) and (math.isnan(value) or math.isinf(value)):
            return ""
        return _from_serial(value)
    if isinstance(value, (datetime, date)):
        return value.strftime(DATE_FORMAT)

    text = str(value).strip()
    if not text:
        return ""

    # Drop a trailing time portion such as "2024-03-02 00:00:00"
    text = text.split(" ")[0].split("T")[0]
    parts = _SEPARATORS.split(text)
    if len(parts) != 3 or not all(p.isdigit() for p in parts):
        return text

    first, second, third = parts
    if int(first) > 1900:
        first, third = third, first
    if len(third) == 2:
        third = f"20{third}"
    return f"{first.zfill(2)}-{second.zfill(2)}-{third}"


def parse_display_date(value: Any) -> Optional[date]:
    """Parse a DD-MM-YYYY value back into a date, or None when it does not parse."""
    if not value:
        return None
    try:
        return datetime.strptime(str(value).strip(), DATE_FORMAT).date()
    except ValueError:
        return None


def normalize_cell(key: str, value: Any) -> str:
    """Convert a raw cell into the string stored on the booking."""
    if key in DATE_KEYS:
        return normalize_date(value)
    if value is None:
        return ""
    if isinstance(value, float):
        if math.isnan(value) or math.isinf(value):
            return ""
        if value.is_integer():
            return str(int(value))
    if isinstance(value, (datetime, date)):
        return value.strftime(DATE_FORMAT)
    return str(value).strip()
