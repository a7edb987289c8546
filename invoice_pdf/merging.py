"""Recursive merge of JSON-like trees."""

from __future__ import annotations

import copy
from typing import Any, Dict, Mapping


def deep_merge(*sources: Mapping[str, Any]) -> Dict[str, Any]:
    """Merge mappings left to right into a new dict.

    Later sources win on key collisions. Two mappings under the same key are
    merged recursively; anything else (lists, scalars, None) replaces the
    earlier value wholesale. Inputs are never mutated.
    """
    result: Dict[str, Any] = {}
    for source in sources:
        _merge_into(result, source)
    return result


def _merge_into(target: Dict[str, Any], source: Mapping[str, Any]) -> None:
    for key, value in source.items():
        current = target.get(key)
        if isinstance(value, Mapping):
            if isinstance(current, dict):
                _merge_into(current, value)
            else:
                merged: Dict[str, Any] = {}
                _merge_into(merged, value)
                target[key] = merged
        else:
            target[key] = copy.deepcopy(value)
