"""Formatter protocol and registry for output formatting."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Iterator

    from pgscope.core.models import CellValue, QueryResult


@runtime_checkable
class Formatter(Protocol):
    """Transforms a successful QueryResult into lines of text.

    Yielding lines keeps large result sets streaming to stdout.
    """

    def format(self, result: QueryResult) -> Iterator[str]: ...


class FormatterRegistry:
    """Registry for looking up formatters by name."""

    def __init__(self) -> None:
        self._formatters: dict[str, type[Formatter]] = {}

    def register(self, name: str, formatter_class: type[Formatter]) -> None:
        self._formatters[name] = formatter_class

    def get(self, name: str, **kwargs: object) -> Formatter:
        """Return a formatter instance by name.

        Raises KeyError if the format name is not registered.
        """
        if name not in self._formatters:
            available = ", ".join(sorted(self._formatters))
            msg = f"Unknown format {name!r}. Available: {available}"
            raise KeyError(msg)
        return self._formatters[name](**kwargs)

    @property
    def available(self) -> list[str]:
        return sorted(self._formatters)


def row_values(result: QueryResult) -> Iterator[list[CellValue]]:
    """Yield each row's cells in field order."""
    names = [field.name for field in result.fields]
    for row in result.rows:
        yield [row.get(name) for name in names]


# Populated by the formatter modules on import.
registry = FormatterRegistry()
