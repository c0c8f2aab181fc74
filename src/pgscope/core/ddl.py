"""DDL synthesizer: approximate CREATE TABLE from catalog metadata.

The server is never asked for its own DDL. Column lines come first in
ordinal order, then PRIMARY KEY, FOREIGN KEY and UNIQUE lines. Check
constraints, generated columns and storage options are not emitted, and
multi-column foreign/unique constraints render as one line per column.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from pgscope.core import catalog
from pgscope.core.catalog import quote_ident
from pgscope.core.exceptions import InputError
from pgscope.core.models import DDLResult

if TYPE_CHECKING:
    from pgscope.core.models import Row
    from pgscope.core.session import DatabaseSession

DDL_FAILED_MESSAGE = "Failed to generate DDL"

_INDENT = "  "


def _column_line(row: Row) -> str:
    line = f"{quote_ident(str(row['column_name']))} {row['data_type']}"
    if row.get("is_nullable") != "YES":
        line += " NOT NULL"
    default = row.get("column_default")
    if default:
        line += f" DEFAULT {default}"
    return _INDENT + line


def _append_unique(lines: list[str], line: str) -> None:
    if line not in lines:
        lines.append(line)


def synthesize_ddl(
    schema: str,
    table: str,
    columns: list[Row],
    constraints: list[Row],
) -> str:
    """Assemble the CREATE TABLE statement from column and constraint rows.

    ``columns`` rows carry column_name, data_type, is_nullable and
    column_default; ``constraints`` rows carry constraint_type,
    column_name and, for foreign keys, foreign_table_name and
    foreign_column_name.
    """
    lines = [_column_line(row) for row in columns]

    pk_columns: list[str] = []
    fk_lines: list[str] = []
    unique_lines: list[str] = []
    for row in constraints:
        column_name = row.get("column_name")
        if column_name is None:
            continue
        column = quote_ident(str(column_name))
        constraint_type = row.get("constraint_type")
        if constraint_type == "PRIMARY KEY":
            _append_unique(pk_columns, column)
        elif constraint_type == "FOREIGN KEY":
            target_table = quote_ident(str(row.get("foreign_table_name")))
            target_column = quote_ident(str(row.get("foreign_column_name")))
            _append_unique(
                fk_lines,
                f"{_INDENT}FOREIGN KEY ({column}) REFERENCES {target_table} ({target_column})",
            )
        elif constraint_type == "UNIQUE":
            _append_unique(unique_lines, f"{_INDENT}UNIQUE ({column})")

    if pk_columns:
        lines.append(f"{_INDENT}PRIMARY KEY ({', '.join(pk_columns)})")
    lines.extend(fk_lines)
    lines.extend(unique_lines)

    header = f"CREATE TABLE {quote_ident(schema)}.{quote_ident(table)} (\n"
    return header + ",\n".join(lines) + "\n);"


async def get_table_ddl(
    session: DatabaseSession,
    table: str,
    schema: str = catalog.DEFAULT_SCHEMA,
) -> DDLResult:
    """Reconstruct DDL for ``schema.table`` from two catalog queries."""
    log = structlog.get_logger()
    try:
        columns_sql = catalog.ddl_columns_sql(table, schema)
        constraints_sql = catalog.ddl_constraints_sql(table, schema)
    except InputError as e:
        return DDLResult(success=False, error=e.message)

    columns = await session.query(columns_sql)
    if not columns.success:
        log.warning("ddl column query failed", table=table, error=columns.error)
        return DDLResult(success=False, error=columns.error or DDL_FAILED_MESSAGE)
    if not columns.rows:
        return DDLResult(success=False, error=DDL_FAILED_MESSAGE)

    constraints = await session.query(constraints_sql)
    if not constraints.success:
        log.warning("ddl constraint query failed", table=table, error=constraints.error)

    ddl = synthesize_ddl(
        schema,
        table,
        columns.rows,
        constraints.rows if constraints.success else [],
    )
    return DDLResult(success=True, ddl=ddl)
