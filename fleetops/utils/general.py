# fleetops/utils/general.py

import math
from datetime import date, datetime, timezone
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from enum import Enum
from typing import Any, Optional

CENT = Decimal("0.01")
ZERO = Decimal("0.00")


def utcnow() -> datetime:
    """Naive UTC timestamp, the form stored in DateTime columns."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def money(value: Any) -> Decimal:
    """Quantize a numeric value to two decimal places, rounding half up."""
    return to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def to_decimal(value: Any, default: Optional[Decimal] = ZERO) -> Optional[Decimal]:
    """
    Convert user supplied numbers (int, float, str, Decimal) to Decimal.

    Blank strings and None fall back to ``default``. Non-numeric and
    non-finite input raises ValueError.
    """
    if value is None or (isinstance(value, str) and value.strip() == ""):
        return default
    if isinstance(value, bool):
        raise ValueError(f"Not a number: {value!r}")
    if isinstance(value, float) and not math.isfinite(value):
        raise ValueError(f"Not a finite number: {value!r}")
    try:
        result = Decimal(str(value).strip())
    except (InvalidOperation, ValueError) as e:
        raise ValueError(f"Not a number: {value!r}") from e
    if not result.is_finite():
        raise ValueError(f"Not a finite number: {value!r}")
    return result


def paginate(page: int, per_page: int) -> tuple[int, int]:
    """Return (offset, limit) for a 1-based page number."""
    page = max(page, 1)
    return (page - 1) * per_page, per_page


def to_response(value: Any) -> Any:
    """
    Make service results JSON friendly: models become their ``to_dict()``,
    Decimals become floats, dates become ISO strings.
    """
    if isinstance(value, Enum):
        return value.value
    if value is None or isinstance(value, (str, int, float, bool)):
        return value
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if hasattr(value, "to_dict"):
        return to_response(value.to_dict())
    if isinstance(value, dict):
        return {key: to_response(item) for key, item in value.items()}
    if isinstance(value, (list, tuple, set)):
        return [to_response(item) for item in value]
    return str(value)
