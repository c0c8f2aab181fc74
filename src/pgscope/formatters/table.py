"""Rich table formatter for QueryResult output."""

from __future__ import annotations

import json
import shutil
from io import StringIO
from typing import TYPE_CHECKING

from rich.console import Console
from rich.table import Table
from rich.text import Text

from pgscope.formatters.base import registry, row_values

if TYPE_CHECKING:
    from collections.abc import Iterator

    from pgscope.core.models import CellValue, QueryResult

_NO_RESULTS = "No results"
_NULL = "NULL"


def _truncate(value: str, width: int) -> str:
    if len(value) <= width:
        return value
    return value[: width - 1] + "…"


def _display(value: CellValue) -> str:
    if value is None:
        return _NULL
    if isinstance(value, (dict, list)):
        return json.dumps(value, default=str)
    return str(value)


class TableFormatter:
    def __init__(self, width: int = 40) -> None:
        self.width = width

    def format(self, result: QueryResult) -> Iterator[str]:
        if not result.rows:
            yield _NO_RESULTS
            return

        table = Table(show_edge=True, pad_edge=True)
        for field in result.fields:
            table.add_column(field.name, no_wrap=True)

        for values in row_values(result):
            table.add_row(*(Text(_truncate(_display(v), self.width)) for v in values))

        buf = StringIO()
        term_width = shutil.get_terminal_size((120, 24)).columns
        console = Console(file=buf, force_terminal=True, width=term_width)
        console.print(table)
        yield buf.getvalue().rstrip("\n")


registry.register("table", TableFormatter)
