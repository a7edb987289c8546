"""Public package API for invoice PDF generation."""

from __future__ import annotations

from typing import Any, Dict, Optional

from .config import DEFAULT_CONFIG_DIR, Settings


def validate(body: Any) -> Dict[str, Any]:
    from .validation import validate_invoice_request

    return validate_invoice_request(body)


def resolve(request: Dict[str, Any], config_dir: str = DEFAULT_CONFIG_DIR) -> Dict[str, Any]:
    from .resolver import ConfigResolver
    from .store import ConfigStore

    return ConfigResolver(ConfigStore.from_directory(config_dir)).resolve(request)


def run(settings: Optional[Settings] = None) -> None:
    from .config import load_settings
    from .server import run as _run

    _run(settings if settings is not None else load_settings())


__all__ = ["Settings", "resolve", "run", "validate"]
