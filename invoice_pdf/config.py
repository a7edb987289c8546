"""Runtime settings loaded once from environment variables."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping, Optional


def env_int(name: str, default: int, minimum: int = 1, environ: Optional[Mapping[str, str]] = None) -> int:
    raw = (os.environ if environ is None else environ).get(name)
    if raw is None:
        return default
    try:
        value = int(raw)
    except ValueError:
        return default
    return value if value >= minimum else default


def env_str(name: str, default: str, environ: Optional[Mapping[str, str]] = None) -> str:
    raw = (os.environ if environ is None else environ).get(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip()


def env_bool(name: str, default: bool, environ: Optional[Mapping[str, str]] = None) -> bool:
    raw = (os.environ if environ is None else environ).get(name)
    if raw is None:
        return default
    value = raw.strip().lower()
    if value in ("1", "true", "yes", "on"):
        return True
    if value in ("0", "false", "no", "off"):
        return False
    return default


DEFAULT_HOST = "0.0.0.0"
DEFAULT_PORT = 8080
DEFAULT_TEMPLATE_PATH = "./templates/invoice.html"
DEFAULT_CONFIG_DIR = "./config/invoices"
DEFAULT_MAX_BODY_BYTES = 1024 * 1024


@dataclass(frozen=True)
class Settings:
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    template_path: str = DEFAULT_TEMPLATE_PATH
    config_dir: str = DEFAULT_CONFIG_DIR
    max_body_bytes: int = DEFAULT_MAX_BODY_BYTES
    print_background: bool = True
    log_level: str = "INFO"


def load_settings(environ: Optional[Mapping[str, str]] = None) -> Settings:
    return Settings(
        host=env_str("INVOICE_HOST", DEFAULT_HOST, environ),
        port=env_int("INVOICE_PORT", DEFAULT_PORT, minimum=1, environ=environ),
        template_path=env_str("INVOICE_TEMPLATE_PATH", DEFAULT_TEMPLATE_PATH, environ),
        config_dir=env_str("INVOICE_CONFIG_DIR", DEFAULT_CONFIG_DIR, environ),
        max_body_bytes=env_int(
            "INVOICE_MAX_BODY_BYTES",
            DEFAULT_MAX_BODY_BYTES,
            minimum=1024,
            environ=environ,
        ),
        print_background=env_bool("INVOICE_PRINT_BACKGROUND", True, environ),
        log_level=env_str("INVOICE_LOG_LEVEL", "INFO", environ).upper(),
    )
