"""Resolution of the final template context for an invoice request."""

from __future__ import annotations

import datetime as dt
from typing import Any, Callable, Dict, Mapping, Optional

from .fields import compute_fields
from .merging import deep_merge
from .store import ConfigStore

FieldsComputer = Callable[..., Dict[str, Any]]


class ConfigResolver:
    """Merge stored defaults, computed fields and the request, in that order."""

    def __init__(
        self,
        store: ConfigStore,
        computer: FieldsComputer = compute_fields,
        clock: Optional[Callable[[], dt.date]] = None,
    ) -> None:
        self.store = store
        self.computer = computer
        self.clock = clock or dt.date.today

    def resolve(self, request: Mapping[str, Any]) -> Dict[str, Any]:
        default_config = self.store.lookup(request["buyerId"], request["sellerId"])
        computed = self.computer(request, default_config, today=self.clock())
        return deep_merge(default_config, computed, request)
