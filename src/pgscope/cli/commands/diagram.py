"""ERD graph, foreign-key and DDL commands."""

from __future__ import annotations

from typing import Annotated, Any

import typer

from pgscope.cli.commands._shared import (
    default_schema,
    is_json_format,
    output_result,
    parse_table_arg,
    raise_for_error,
    records_result,
    with_session,
)
from pgscope.core.ddl import get_table_ddl
from pgscope.core.diagram import get_erd_data, get_table_relationships
from pgscope.core.models import ERDData, FieldInfo, QueryResult

SchemaOption = Annotated[
    str | None,
    typer.Option("--schema", "-s", help="Schema to inspect"),
]

_RELATIONSHIP_COLUMNS = [
    "constraint_name",
    "source_table",
    "source_column",
    "target_table",
    "target_column",
    "on_delete",
    "on_update",
]

_ERD_COLUMNS = ["table", "column", "data_type", "pk", "fk", "references"]


def _erd_rows(data: ERDData) -> QueryResult:
    rows: list[dict[str, Any]] = []
    for table in data.tables:
        for column in table.columns:
            references = (
                f"{column.foreign_table}.{column.foreign_column}"
                if column.foreign_table
                else None
            )
            rows.append(
                {
                    "table": table.name,
                    "column": column.name,
                    "data_type": column.data_type,
                    "pk": column.is_primary_key,
                    "fk": column.is_foreign_key,
                    "references": references,
                }
            )
    return QueryResult.ok(
        rows=rows,
        fields=[FieldInfo(name=n, type_id=25, type_name="text") for n in _ERD_COLUMNS],
        row_count=len(rows),
        duration_ms=0.0,
    )


def erd_command(
    ctx: typer.Context,
    schema: SchemaOption = None,
    relationships: Annotated[
        bool,
        typer.Option("--relationships", "-r", help="Show only the foreign-key edges"),
    ] = False,
) -> None:
    """
    Show the entity-relationship graph of a schema.

    JSON output is the full graph (tables with columns, plus relationships);
    table and CSV output list one row per column, or one row per foreign
    key with --relationships.
    """
    target = default_schema(ctx, schema)
    result = with_session(ctx, lambda session: get_erd_data(session, target))
    raise_for_error(result.success, result.error)
    data = result.data or ERDData.empty()

    if is_json_format(ctx) and not relationships:
        typer.echo(data.model_dump_json(indent=2, by_alias=True))
    elif relationships:
        output_result(ctx, records_result(data.relationships, _RELATIONSHIP_COLUMNS))
    else:
        output_result(ctx, _erd_rows(data))


def relationships_command(
    ctx: typer.Context,
    table: Annotated[str, typer.Argument(help="Table name, optionally schema.table")],
    schema: SchemaOption = None,
) -> None:
    """List the foreign keys declared on one table."""
    schema_name, table_name = parse_table_arg(table, default_schema(ctx, schema))
    result = with_session(
        ctx, lambda session: get_table_relationships(session, table_name, schema_name)
    )
    raise_for_error(result.success, result.error)
    output_result(ctx, records_result(result.relationships or [], _RELATIONSHIP_COLUMNS))


def ddl_command(
    ctx: typer.Context,
    table: Annotated[str, typer.Argument(help="Table name, optionally schema.table")],
    schema: SchemaOption = None,
) -> None:
    """Print a CREATE TABLE statement reconstructed from the catalog."""
    schema_name, table_name = parse_table_arg(table, default_schema(ctx, schema))
    result = with_session(
        ctx, lambda session: get_table_ddl(session, table_name, schema_name)
    )
    raise_for_error(result.success, result.error)
    typer.echo(result.ddl)
