"""JSON formatter for QueryResult output."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING

from pgscope.formatters.base import registry

if TYPE_CHECKING:
    from collections.abc import Iterator

    from pgscope.core.models import QueryResult


class JSONFormatter:
    def __init__(self, compact: bool = False) -> None:
        self.compact = compact

    def format(self, result: QueryResult) -> Iterator[str]:
        # Rows are already name-keyed in column order.
        if self.compact:
            yield json.dumps(result.rows, default=str)
        else:
            yield json.dumps(result.rows, indent=2, default=str)


registry.register("json", JSONFormatter)
