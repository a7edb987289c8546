"""Keyed lookup of per seller/buyer default invoice configuration."""

from __future__ import annotations

import copy
import json
import logging
import os
from typing import Any, Dict, Iterator, Mapping, Optional

from .errors import ConfigurationError, InvoiceNotFound

logger = logging.getLogger(__name__)

CONFIG_SUFFIX = ".json"


def make_tag(buyer_id: str, seller_id: str) -> str:
    return f"{seller_id}@{buyer_id}"


def _read_config_file(path: str) -> Dict[str, Any]:
    try:
        with open(path, "r", encoding="utf-8") as handle:
            record = json.load(handle)
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise ConfigurationError(f"Cannot read invoice configuration {path}: {exc}") from exc
    if not isinstance(record, dict):
        raise ConfigurationError(f"Invoice configuration {path} must contain a JSON object.")
    return record


class ConfigStore:
    """Read-only table of tag -> default configuration.

    Tags have the form ``sellerId@buyerId``; lookups are exact, there is no
    fallback record.
    """

    def __init__(self, records: Optional[Mapping[str, Dict[str, Any]]] = None) -> None:
        self._records: Dict[str, Dict[str, Any]] = {
            tag: copy.deepcopy(record) for tag, record in (records or {}).items()
        }

    @classmethod
    def from_directory(cls, directory: str) -> "ConfigStore":
        records: Dict[str, Dict[str, Any]] = {}
        if not os.path.isdir(directory):
            logger.warning("Invoice configuration directory %s does not exist", directory)
            return cls(records)

        for filename in sorted(os.listdir(directory)):
            if not filename.endswith(CONFIG_SUFFIX):
                continue
            path = os.path.join(directory, filename)
            if not os.path.isfile(path):
                continue
            tag = filename[: -len(CONFIG_SUFFIX)]
            records[tag] = _read_config_file(path)

        logger.info("Loaded %d invoice configuration(s) from %s", len(records), directory)
        return cls(records)

    def lookup(self, buyer_id: str, seller_id: str) -> Dict[str, Any]:
        tag = make_tag(buyer_id, seller_id)
        try:
            record = self._records[tag]
        except KeyError:
            raise InvoiceNotFound(tag) from None
        return copy.deepcopy(record)

    def __contains__(self, tag: object) -> bool:
        return tag in self._records

    def __iter__(self) -> Iterator[str]:
        return iter(sorted(self._records))

    def __len__(self) -> int:
        return len(self._records)
