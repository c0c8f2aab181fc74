"""Output formatters for pgscope."""

from pgscope.formatters.base import Formatter, FormatterRegistry, registry
from pgscope.formatters.csv import CSVFormatter
from pgscope.formatters.json import JSONFormatter
from pgscope.formatters.table import TableFormatter

__all__ = [
    "CSVFormatter",
    "Formatter",
    "FormatterRegistry",
    "JSONFormatter",
    "TableFormatter",
    "registry",
]
