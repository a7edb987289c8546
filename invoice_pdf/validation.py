"""Request body decoding and schema validation."""

from __future__ import annotations

import json
import math
from typing import Any, Callable, Dict, List, Optional, Tuple

from .errors import MalformedRequest, ValidationError
from .fields import last_day_of_previous_month, parse_request_date

InvoiceRequest = Dict[str, Any]
FieldCheck = Callable[[str, Any], Optional[str]]


def decode_body(body: bytes) -> Any:
    try:
        text = body.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise MalformedRequest("Body must be UTF-8 encoded JSON.") from exc
    try:
        return json.loads(text)
    except json.JSONDecodeError as exc:
        raise MalformedRequest(f"{exc.msg} (line {exc.lineno}, column {exc.colno})") from exc


def check_string(key: str, value: Any) -> Optional[str]:
    if not isinstance(value, str):
        return f'"{key}" must be a string'
    if not value:
        return f'"{key}" is not allowed to be empty'
    return None


def check_number(key: str, value: Any) -> Optional[str]:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return f'"{key}" must be a number'
    if isinstance(value, float) and not math.isfinite(value):
        return f'"{key}" must be a finite number'
    return None


def check_iso_date(key: str, value: Any) -> Optional[str]:
    if not isinstance(value, str):
        return f'"{key}" must be a valid ISO 8601 date'
    try:
        invoice_date = parse_request_date(value)
    except (ValueError, OverflowError):
        return f'"{key}" must be a valid ISO 8601 date'
    try:
        last_day_of_previous_month(invoice_date)
    except (ValueError, OverflowError):
        return f'"{key}" must not be earlier than 0001-02-01'
    return None


def check_object(key: str, value: Any) -> Optional[str]:
    if not isinstance(value, dict):
        return f'"{key}" must be an object'
    return None


# key -> (required, check)
INVOICE_REQUEST_SCHEMA: Dict[str, Tuple[bool, FieldCheck]] = {
    "buyerId": (True, check_string),
    "sellerId": (True, check_string),
    "date": (True, check_iso_date),
    "hours": (True, check_number),
    "price": (True, check_number),
    "invoice": (False, check_object),
}


def validate_invoice_request(payload: Any) -> InvoiceRequest:
    """Return the payload unchanged when it matches the schema, else raise."""
    if not isinstance(payload, dict):
        raise ValidationError(['"value" must be an object'])

    problems: List[str] = []
    for key, (required, check) in INVOICE_REQUEST_SCHEMA.items():
        if key not in payload:
            if required:
                problems.append(f'"{key}" is required')
            continue
        problem = check(key, payload[key])
        if problem is not None:
            problems.append(problem)

    for key in payload:
        if key not in INVOICE_REQUEST_SCHEMA:
            problems.append(f'"{key}" is not allowed')

    if problems:
        raise ValidationError(problems)
    return payload
