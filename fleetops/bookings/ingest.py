# fleetops/bookings/ingest.py

import os
from dataclasses import dataclass, field
from typing import IO, Any, Dict, List, Mapping, Optional, Sequence

import pandas as pd
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from fleetops.bookings.models import DRIVER_CODE_KEY, DUTY_ID_KEY, Booking
from fleetops.bookings.repository import BookingRepository
from fleetops.bookings.utils import normalize_cell
from fleetops.core.config import settings
from fleetops.core.dependencies import Actor
from fleetops.core.exceptions import FleetOpsError, InvalidFormatError
from fleetops.drivers.models import Driver
from fleetops.drivers.repository import DriverRepository
from fleetops.settlements.models import BookingSettlement, SettlementStatus
from fleetops.utils.logger import get_logger

logger = get_logger(__name__)


@dataclass
class IngestResult:
    """Aggregate counters and row level failures for a booking upload."""
    created: int = 0
    updated: int = 0
    reassigned: int = 0
    unassigned: int = 0
    skipped: int = 0
    errors: List[Dict[str, Any]] = field(default_factory=list)
    warnings: List[Dict[str, Any]] = field(default_factory=list)

    def record_created(self) -> None:
        self.created += 1

    def record_updated(self, reassigned: bool = False, unassigned: bool = False) -> None:
        self.updated += 1
        if reassigned:
            self.reassigned += 1
        if unassigned:
            self.unassigned += 1

    def record_skipped(self) -> None:
        self.skipped += 1

    def record_failed(self, row: int, reason: str) -> None:
        self.errors.append({"row": row, "error": reason})

    def record_warning(self, row: int, message: str) -> None:
        self.warnings.append({"row": row, "warning": message})

    def to_dict(self) -> Dict[str, Any]:
        return {
            "created": self.created,
            "updated": self.updated,
            "reassigned": self.reassigned,
            "unassigned": self.unassigned,
            "skipped": self.skipped,
            "failed": len(self.errors),
            "errors": list(self.errors),
            "warnings": list(self.warnings),
        }


def merge_data(
    existing: Sequence[Mapping[str, Any]], incoming: Sequence[Mapping[str, Any]]
) -> List[Dict[str, Any]]:
    """
    Merge incoming key/value pairs into an existing attribute list.

    Existing keys keep their position and are overwritten only by a non-blank
    incoming value. New keys are appended in incoming order. The result holds
    at most one entry per key.
    """
    merged: List[Dict[str, Any]] = []
    positions: Dict[str, int] = {}

    for item in existing or []:
        key = item.get("key")
        if key in positions:
            continue
        positions[key] = len(merged)
        merged.append({"key": key, "value": item.get("value", "")})

    for item in incoming or []:
        key = item.get("key")
        value = item.get("value", "")
        blank = value is None or str(value).strip() == ""
        if key in positions:
            if not blank:
                merged[positions[key]]["value"] = value
            continue
        positions[key] = len(merged)
        merged.append({"key": key, "value": "" if value is None else value})

    return merged


def row_to_pairs(row: Mapping[Any, Any]) -> List[Dict[str, str]]:
    """Convert a spreadsheet row into ordered key/value pairs with normalised values."""
    pairs: List[Dict[str, str]] = []
    for raw_key, raw_value in row.items():
        key = str(raw_key).strip()
        if not key or key.startswith("Unnamed:"):
            continue
        pairs.append({"key": key, "value": normalize_cell(key, raw_value)})
    return pairs


def _value_of(pairs: List[Dict[str, str]], key: str) -> str:
    for item in pairs:
        if item["key"] == key:
            return item["value"]
    return ""


def read_upload(file: IO, filename: str) -> List[Dict[str, Any]]:
    """
    Read the first sheet of an uploaded workbook or CSV into row dicts.

    Raises:
        InvalidFormatError: the file extension is not allowed or the file cannot be parsed
    """
    extension = os.path.splitext(filename or "")[1].lower()
    if extension not in settings.upload_extensions:
        raise InvalidFormatError(
            f"Unsupported file type '{extension or filename}'. "
            f"Allowed: {', '.join(settings.upload_extensions)}"
        )

    try:
        if extension == ".csv":
            df = pd.read_csv(file, dtype=str, keep_default_na=False)
        else:
            df = pd.read_excel(file, sheet_name=0)
    except (ValueError, OSError, ImportError) as e:
        logger.warning("Unable to parse booking upload", filename=filename, error=str(e))
        raise InvalidFormatError(f"Unable to read file '{filename}'") from e

    df = df.astype(object).where(pd.notnull(df), "")
    return df.to_dict(orient="records")


class BookingIngestor:
    """
    Applies uploaded rows to bookings, matching on the external duty id.

    Each row is committed on its own so one bad row never blocks the rest of
    the batch.
    """

    def __init__(self, db: Session):
        self.db = db
        self.bookings = BookingRepository(db)
        self.drivers = DriverRepository(db)

    def _resolve_driver(self, code: str, row: int, result: IngestResult) -> Optional[Driver]:
        if not code:
            return None
        driver = self.drivers.get_by_code(code)
        if driver is None:
            result.record_warning(row, f"Driver code '{code}' not found; assignment left unchanged")
        return driver

    def _apply_row(self, actor: Actor, row: int, pairs: List[Dict[str, str]], result: IngestResult) -> None:
        duty_id = _value_of(pairs, DUTY_ID_KEY)
        driver_code = _value_of(pairs, DRIVER_CODE_KEY)
        driver = self._resolve_driver(driver_code, row, result)
        driver_unresolved = bool(driver_code) and driver is None

        booking = self.bookings.get_by_external_duty_id(duty_id) if duty_id else None
        if booking is None:
            booking = Booking(
                external_duty_id=duty_id or None,
                data=merge_data([], pairs),
                driver=driver,
                created_by=actor.audit_name,
            )
            booking.settlement = BookingSettlement(status=SettlementStatus.PENDING)
            self.bookings.create(booking)
            result.record_created()
            return

        # JSON columns only detect reassignment, so always hand over a new list
        booking.data = merge_data(booking.data, pairs)
        booking.modified_by = actor.audit_name

        reassigned = unassigned = False
        if driver is not None and driver.id != booking.driver_id:
            booking.driver = driver
            reassigned = True
        elif not driver_code and booking.driver_id is not None:
            booking.driver = None
            unassigned = True
        elif driver_unresolved:
            logger.warning("Unknown driver code in upload", row=row, driver_code=driver_code)

        self.bookings.update(booking)
        result.record_updated(reassigned=reassigned, unassigned=unassigned)

    def ingest_rows(self, actor: Actor, rows: Sequence[Mapping[Any, Any]]) -> IngestResult:
        """
        Create or merge one booking per row. Rows are numbered from 1 in the
        result, matching spreadsheet data rows under the header.
        """
        result = IngestResult()
        for index, raw in enumerate(rows, start=1):
            try:
                if not isinstance(raw, Mapping):
                    raise InvalidFormatError("Row is not a key/value record")
                pairs = row_to_pairs(raw)
                if not any(item["value"] for item in pairs):
                    result.record_skipped()
                    continue

                self._apply_row(actor, index, pairs, result)
                self.db.commit()
            except FleetOpsError as e:
                self.db.rollback()
                logger.warning("Booking row rejected", row=index, error=e.message)
                result.record_failed(index, e.message)
            except SQLAlchemyError as e:
                self.db.rollback()
                logger.error("Booking row failed", row=index, error=str(e), exc_info=True)
                result.record_failed(index, "Failed to save booking row")

        logger.info(
            "Booking upload processed",
            created=result.created,
            updated=result.updated,
            reassigned=result.reassigned,
            unassigned=result.unassigned,
            skipped=result.skipped,
            failed=len(result.errors),
        )
        return result
