"""Relationship graph builder for entity-relationship diagrams.

One wide catalog join gives every column of a schema together with its
primary-key membership and, for foreign-key columns, the referenced
table/column and referential rules. Rows are folded into ERDTable records
(first-seen table order, ordinal column order) and TableRelationship
edges.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, cast

import structlog

from pgscope.core import catalog
from pgscope.core.exceptions import InputError
from pgscope.core.models import (
    ERDColumn,
    ERDData,
    ERDResult,
    ERDTable,
    RelationshipsResult,
    TableRelationship,
)

if TYPE_CHECKING:
    from pgscope.core.models import ReferentialAction, Row
    from pgscope.core.session import DatabaseSession

FOREIGN_KEY = "FOREIGN KEY"
NO_ACTION = "NO ACTION"

_ACTIONS = frozenset({"CASCADE", "SET NULL", "SET DEFAULT", "RESTRICT", NO_ACTION})


def _action(value: object) -> ReferentialAction:
    if isinstance(value, str) and value.upper() in _ACTIONS:
        return cast("ReferentialAction", value.upper())
    return NO_ACTION


def _is_true(value: object) -> bool:
    return value is True or value == "true"


def build_erd(schema: str, rows: list[Row]) -> ERDData:
    """Fold ERD join rows into tables and relationships.

    A column that sits in several key constraints comes back once per
    constraint; those rows are merged into the first column record.
    """
    tables: dict[str, ERDTable] = {}
    columns: dict[tuple[str, str], ERDColumn] = {}
    relationships: list[TableRelationship] = []

    for row in rows:
        table_name = str(row["table_name"])
        column_name = str(row["column_name"])

        table = tables.get(table_name)
        if table is None:
            table = ERDTable(name=table_name, schema=schema, columns=[])
            tables[table_name] = table

        is_fk = row.get("constraint_type") == FOREIGN_KEY
        column = columns.get((table_name, column_name))
        if column is None:
            default_value = row.get("default_value")
            column = ERDColumn(
                name=column_name,
                data_type=str(row["data_type"]),
                nullable=_is_true(row.get("nullable", True)),
                default_value=None if default_value is None else str(default_value),
                is_primary_key=_is_true(row.get("is_primary_key")),
            )
            columns[(table_name, column_name)] = column
            table.columns.append(column)
        elif _is_true(row.get("is_primary_key")):
            column.is_primary_key = True

        if not is_fk:
            continue

        target_table = row.get("fk_table_name")
        target_column = row.get("fk_column_name")
        column.is_foreign_key = True
        if target_table is None or target_column is None:
            continue
        if column.foreign_table is None:
            column.foreign_table = str(target_table)
            column.foreign_column = str(target_column)

        constraint_name = row.get("constraint_name")
        relationships.append(
            TableRelationship(
                constraint_name=(
                    str(constraint_name)
                    if constraint_name
                    else f"fk_{table_name}_{column_name}"
                ),
                source_table=table_name,
                source_column=column_name,
                target_table=str(target_table),
                target_column=str(target_column),
                on_delete=_action(row.get("delete_rule")),
                on_update=_action(row.get("update_rule")),
            )
        )

    return ERDData(tables=list(tables.values()), relationships=relationships)


async def get_erd_data(
    session: DatabaseSession, schema: str = catalog.DEFAULT_SCHEMA
) -> ERDResult:
    """Build the ERD graph for ``schema``.

    A failed catalog query is reported as an error, never as an empty graph.
    """
    log = structlog.get_logger()
    try:
        sql = catalog.erd_sql(schema)
    except InputError as e:
        return ERDResult(success=False, error=e.message)

    result = await session.query(sql)
    if not result.success:
        log.warning("erd query failed", schema=schema, error=result.error)
        return ERDResult(success=False, error=result.error or "Failed to get ERD data")

    data = build_erd(schema, result.rows)
    log.debug(
        "erd built",
        schema=schema,
        tables=len(data.tables),
        relationships=len(data.relationships),
    )
    return ERDResult(success=True, data=data)


async def get_table_relationships(
    session: DatabaseSession,
    table: str,
    schema: str = catalog.DEFAULT_SCHEMA,
) -> RelationshipsResult:
    """Foreign keys declared on one table."""
    try:
        sql = catalog.table_relationships_sql(table, schema)
    except InputError as e:
        return RelationshipsResult(success=False, error=e.message)

    result = await session.query(sql)
    if not result.success:
        structlog.get_logger().warning(
            "relationship query failed", table=table, schema=schema, error=result.error
        )
        return RelationshipsResult(
            success=False, error=result.error or "Failed to get table relationships"
        )

    relationships = [
        TableRelationship(
            constraint_name=str(
                row.get("constraint_name")
                or f"fk_{row['source_table']}_{row['source_column']}"
            ),
            source_table=str(row["source_table"]),
            source_column=str(row["source_column"]),
            target_table=str(row["target_table"]),
            target_column=str(row["target_column"]),
            on_delete=_action(row.get("delete_rule")),
            on_update=_action(row.get("update_rule")),
        )
        for row in result.rows
    ]
    return RelationshipsResult(success=True, relationships=relationships)
