# fleetops/entries/validators.py

"""
Validation shared by expense and receiving entries.

Problems are collected across every billing item and amount field so the
caller receives one ValidationError listing all of them.
"""

import json
import re
from dataclasses import dataclass
from typing import Any, BinaryIO, Dict, Iterable, List, Optional, Sequence, Tuple

from fleetops.core.exceptions import InvalidFormatError, ValidationError
from fleetops.entries.models import BillingCategory
from fleetops.utils.general import money, to_decimal

ATTACHMENT_FIELD_PATTERN = re.compile(r"^billingItems\[(\d+)\]\.image$")
CATEGORY_VALUES = {category.value for category in BillingCategory}


@dataclass
class Attachment:
    """An uploaded file handed over by the transport layer."""

    field_name: str
    filename: str
    file: Optional[BinaryIO] = None
    content_type: Optional[str] = None


def parse_billing_items(raw: Any) -> List[Dict[str, Any]]:
    """
    Accept billing items as a list or as a JSON encoded string (multipart
    forms). Missing input means no items.
    """
    if raw is None or (isinstance(raw, str) and raw.strip() == ""):
        return []
    if isinstance(raw, str):
        try:
            raw = json.loads(raw)
        except json.JSONDecodeError as e:
            raise InvalidFormatError("billingItems invalid JSON") from e
    if not isinstance(raw, list):
        raise InvalidFormatError("billingItems must be an array")
    items = []
    for item in raw:
        if hasattr(item, "model_dump"):
            item = item.model_dump()
        items.append(item)
    return items


def collect_billing_item_errors(items: Sequence[Any]) -> Tuple[List[Dict[str, Any]], List[str]]:
    """Validate every item, returning cleaned items and all error messages."""
    cleaned: List[Dict[str, Any]] = []
    errors: List[str] = []
    for index, item in enumerate(items):
        if not isinstance(item, dict):
            errors.append(f"Item {index}: must be an object")
            continue

        category = item.get("category")
        if category not in CATEGORY_VALUES:
            errors.append(
                f"Item {index}: invalid category '{category}'. "
                f"Allowed: {', '.join(sorted(CATEGORY_VALUES))}"
            )

        amount = None
        try:
            amount = to_decimal(item.get("amount"), default=None)
        except ValueError:
            amount = None
        if amount is None:
            errors.append(f"Item {index}: amount must be a finite number")

        cleaned.append({
            "category": category,
            "amount": str(money(amount)) if amount is not None else None,
            "image": item.get("image") or None,
            "note": item.get("note") or "",
        })
    return cleaned, errors


def collect_amount_errors(fields: Dict[str, Any], names: Iterable[str]) -> Tuple[Dict[str, Any], List[str]]:
    """Validate optional non-negative amount fields. Blank means zero."""
    cleaned: Dict[str, Any] = {}
    errors: List[str] = []
    for name in names:
        try:
            value = to_decimal(fields.get(name))
        except ValueError:
            errors.append(f"{name} must be a finite number")
            continue
        if value < 0:
            errors.append(f"{name} cannot be negative")
            continue
        cleaned[name] = money(value)
    return cleaned, errors


def validate_entry_payload(
    fields: Dict[str, Any],
    amount_fields: Sequence[str],
) -> Tuple[List[Dict[str, Any]], Dict[str, Any]]:
    """
    Parse and validate billing items plus the amount fields of an entry.

    Raises:
        InvalidFormatError: billing items string is not valid JSON
        ValidationError: every item and amount problem at once
    """
    items = parse_billing_items(fields.get("billing_items"))
    cleaned_items, item_errors = collect_billing_item_errors(items)
    amounts, amount_errors = collect_amount_errors(fields, amount_fields)
    errors = item_errors + amount_errors
    if errors:
        raise ValidationError(errors, message="Billing validation failed")
    return cleaned_items, amounts


def match_attachments(attachments: Iterable[Attachment], item_count: int) -> Dict[int, Attachment]:
    """
    Map uploads to billing item positions using the
    ``billingItems[<index>].image`` field name. Anything else is ignored.
    """
    matched: Dict[int, Attachment] = {}
    for attachment in attachments or []:
        match = ATTACHMENT_FIELD_PATTERN.match(attachment.field_name or "")
        if not match:
            continue
        index = int(match.group(1))
        if index < item_count:
            matched[index] = attachment
    return matched


def carry_over_images(
    items: List[Dict[str, Any]],
    previous_items: Optional[Sequence[Dict[str, Any]]],
    uploaded: Dict[int, str],
) -> List[Dict[str, Any]]:
    """
    Resolve the image reference of each item: a fresh upload wins, then a
    reference sent by the client, then the reference previously stored at
    the same position.
    """
    previous_items = previous_items or []
    for index, item in enumerate(items):
        if index in uploaded:
            item["image"] = uploaded[index]
        elif not item.get("image") and index < len(previous_items):
            item["image"] = previous_items[index].get("image")
    return items
