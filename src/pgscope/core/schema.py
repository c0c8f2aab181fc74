"""Schema browser: schemas, tables, columns and functions.

Each call issues one catalog query and converts the rows into typed
records. A failed catalog query yields an empty list; the failure is
logged.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from pgscope.core import catalog
from pgscope.core.models import ColumnInfo, FunctionInfo, SchemaInfo, TableInfo

if TYPE_CHECKING:
    from pgscope.core.models import QueryResult, Row
    from pgscope.core.session import DatabaseSession


async def _catalog_rows(session: DatabaseSession, sql: str, what: str) -> list[Row]:
    result: QueryResult = await session.query(sql)
    if not result.success:
        structlog.get_logger().warning(
            "catalog query failed", target=what, error=result.error
        )
        return []
    return result.rows


def _text(value: object) -> str:
    return "" if value is None else str(value)


def _optional_text(value: object) -> str | None:
    return None if value is None else str(value)


async def get_schemas(session: DatabaseSession) -> list[SchemaInfo]:
    """List user schemas, excluding the system ones."""
    rows = await _catalog_rows(session, catalog.schemas_sql(), "schemas")
    return [
        SchemaInfo(name=_text(row["name"]), owner=_text(row["owner"]))
        for row in rows
    ]


async def get_tables(
    session: DatabaseSession, schema: str | None = None
) -> list[TableInfo]:
    """List tables and views, optionally restricted to one schema."""
    rows = await _catalog_rows(session, catalog.tables_sql(schema), "tables")
    return [
        TableInfo(
            name=_text(row["name"]),
            schema=_text(row["schema"]),
            kind="view" if row["kind"] == "view" else "table",
        )
        for row in rows
    ]


async def get_columns(
    session: DatabaseSession,
    table: str,
    schema: str = catalog.DEFAULT_SCHEMA,
) -> list[ColumnInfo]:
    rows = await _catalog_rows(session, catalog.columns_sql(table, schema), "columns")
    return [
        ColumnInfo(
            name=_text(row["name"]),
            data_type=_text(row["data_type"]),
            nullable=bool(row["nullable"]),
            default_value=_optional_text(row["default_value"]),
            is_primary_key=row["is_primary_key"] in (True, "true"),
        )
        for row in rows
    ]


async def get_functions(
    session: DatabaseSession, schema: str | None = None
) -> list[FunctionInfo]:
    rows = await _catalog_rows(session, catalog.functions_sql(schema), "functions")
    return [
        FunctionInfo(
            name=_text(row["name"]),
            schema=_text(row["schema"]),
            return_type=_optional_text(row["return_type"]),
            arguments_signature=_text(row["arguments_signature"]),
        )
        for row in rows
    ]
