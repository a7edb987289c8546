"""Error taxonomy and its mapping onto HTTP responses."""

from __future__ import annotations

from typing import Any, Dict, List, Optional


class InvoiceError(Exception):
    """Base class for failures surfaced to the HTTP caller."""

    status_code = 500

    @property
    def name(self) -> str:
        return type(self).__name__


class ValidationError(InvoiceError):
    """Raised when the request body does not match the invoice schema."""

    status_code = 400

    def __init__(self, details: List[str]) -> None:
        super().__init__("; ".join(details))
        self.details = list(details)


class MalformedRequest(InvoiceError):
    """Raised when the body is not a UTF-8 encoded JSON object."""

    status_code = 400


class InvoiceNotFound(InvoiceError):
    """Raised when no default configuration exists for a tag."""

    def __init__(self, tag: str) -> None:
        super().__init__(f"Invoice template not found for '{tag}'")
        self.tag = tag


class ConfigurationError(InvoiceError):
    """Raised when a stored configuration cannot be used."""


class RenderError(InvoiceError):
    """Raised when the HTML template cannot be rendered."""


class ConversionError(InvoiceError):
    """Raised when HTML to PDF conversion fails."""


class DependencyError(RuntimeError):
    """Raised when a required runtime dependency is missing."""


CLIENT_ERRORS = (ValidationError, MalformedRequest)
STATUS_ATTRIBUTES = ("status_code", "statusCode", "status", "code")


def _http_status(value: Any) -> Optional[int]:
    if isinstance(value, bool) or not isinstance(value, int):
        return None
    return value if 400 <= value <= 599 else None


def error_status(exc: BaseException) -> int:
    if isinstance(exc, CLIENT_ERRORS):
        return 400
    for attribute in STATUS_ATTRIBUTES:
        status = _http_status(getattr(exc, attribute, None))
        if status is not None:
            return status
    return 500


def error_body(exc: BaseException) -> Dict[str, Any]:
    name = getattr(exc, "name", None)
    if not isinstance(name, str):
        name = type(exc).__name__
    return {
        "statusCode": error_status(exc),
        "error": name,
        "message": str(exc),
    }
