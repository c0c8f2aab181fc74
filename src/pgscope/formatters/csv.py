"""CSV formatter for QueryResult output (RFC 4180 compliant)."""

from __future__ import annotations

import csv
import json
from io import StringIO
from typing import TYPE_CHECKING

from pgscope.formatters.base import registry, row_values

if TYPE_CHECKING:
    from collections.abc import Iterator

    from pgscope.core.models import CellValue, QueryResult


def _cell(value: CellValue) -> str:
    if value is None:
        return ""
    if isinstance(value, (dict, list)):
        return json.dumps(value, default=str)
    return str(value)


def _write_row(values: list[str]) -> str:
    buf = StringIO()
    writer = csv.writer(buf)
    writer.writerow(values)
    return buf.getvalue().rstrip("\r\n")


class CSVFormatter:
    def __init__(self, no_header: bool = False) -> None:
        self.no_header = no_header

    def format(self, result: QueryResult) -> Iterator[str]:
        if not self.no_header:
            yield _write_row([field.name for field in result.fields])

        for values in row_values(result):
            yield _write_row([_cell(v) for v in values])


registry.register("csv", CSVFormatter)
