"""Type-id naming and cell value normalization.

The default table covers the common built-in PostgreSQL types. It is an
ordinary object handed to the session, so extension types can be added
at runtime without touching this module.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Mapping

    from pgscope.core.models import CellValue

DEFAULT_TYPE_NAMES: dict[int, str] = {
    16: "boolean",
    20: "bigint",
    21: "smallint",
    23: "integer",
    25: "text",
    114: "json",
    700: "real",
    701: "double precision",
    1043: "varchar",
    1082: "date",
    1083: "time",
    1114: "timestamp",
    1184: "timestamptz",
    2950: "uuid",
    3802: "jsonb",
}


class TypeNames:
    """Lookup table from type OID to display name.

    Unknown OIDs render as ``oid:<id>``.
    """

    def __init__(self, names: Mapping[int, str] | None = None) -> None:
        self._names: dict[int, str] = dict(
            DEFAULT_TYPE_NAMES if names is None else names
        )

    def __contains__(self, type_id: object) -> bool:
        return type_id in self._names

    def __len__(self) -> int:
        return len(self._names)

    def name_for(self, type_id: int) -> str:
        return self._names.get(type_id, f"oid:{type_id}")

    def register(self, type_id: int, name: str) -> None:
        self._names[type_id] = name

    def merged(self, extra: Mapping[int, str]) -> TypeNames:
        """Return a new table with ``extra`` layered over this one."""
        return TypeNames({**self._names, **extra})


def normalize_cell(value: Any) -> CellValue:
    """Coerce a driver value into the cell variant.

    JSON documents arrive as dicts/lists and are kept as is. Everything
    outside null/bool/number/text/JSON (Decimal, datetime, UUID, bytes,
    ranges) is rendered as text.
    """
    if value is None or isinstance(value, (bool, int, float, str)):
        return value
    if isinstance(value, (list, dict)):
        return value
    if isinstance(value, (bytes, bytearray, memoryview)):
        return "\\x" + bytes(value).hex()
    return str(value)
