# fleetops/entries/forms.py

import re
from typing import Any, Dict, List, Tuple

from fastapi import Request
from starlette.datastructures import UploadFile

from fleetops.core.exceptions import InvalidFormatError
from fleetops.entries.validators import Attachment

_CAMEL_BOUNDARY = re.compile(r"(?<!^)(?=[A-Z])")


def to_snake(name: str) -> str:
    """billingItems -> billing_items, dailyAllowance -> daily_allowance."""
    return _CAMEL_BOUNDARY.sub("_", name).lower()


async def read_entry_payload(request: Request) -> Tuple[Dict[str, Any], List[Attachment]]:
    """
    Split an expense/receiving request into plain fields and file uploads.

    JSON bodies and multipart forms are both accepted. In a form, billing
    items travel as a JSON string and receipt images as
    ``billingItems[<index>].image`` file fields.
    """
    content_type = request.headers.get("content-type", "")
    fields: Dict[str, Any] = {}
    attachments: List[Attachment] = []

    if content_type.startswith("application/json"):
        try:
            body = await request.json()
        except ValueError as e:
            raise InvalidFormatError("Request body is not valid JSON") from e
        if not isinstance(body, dict):
            raise InvalidFormatError("Request body must be an object")
        return {to_snake(key): value for key, value in body.items()}, attachments

    form = await request.form()
    for key, value in form.multi_items():
        if isinstance(value, UploadFile):
            attachments.append(
                Attachment(
                    field_name=key,
                    filename=value.filename or "",
                    file=value.file,
                    content_type=value.content_type,
                )
            )
        else:
            fields[to_snake(key)] = value
    return fields, attachments
