"""Schema browsing commands: schemas, tables, columns, functions."""

from __future__ import annotations

from typing import Annotated

import typer

from pgscope.cli.commands._shared import (
    default_schema,
    output_result,
    parse_table_arg,
    records_result,
    with_session,
)
from pgscope.core.schema import get_columns, get_functions, get_schemas, get_tables

SchemaOption = Annotated[
    str | None,
    typer.Option("--schema", "-s", help="Restrict to one schema"),
]


def schemas_command(ctx: typer.Context) -> None:
    """List user schemas with their owners."""
    schemas = with_session(ctx, get_schemas)
    output_result(ctx, records_result(schemas, ["name", "owner"]))


def tables_command(
    ctx: typer.Context,
    schema: SchemaOption = None,
    all_schemas: Annotated[
        bool,
        typer.Option("--all", "-a", help="List tables of every user schema"),
    ] = False,
) -> None:
    """List tables and views."""
    target = None if all_schemas else default_schema(ctx, schema)
    tables = with_session(ctx, lambda session: get_tables(session, target))
    output_result(ctx, records_result(tables, ["schema", "name", "kind"]))


def columns_command(
    ctx: typer.Context,
    table: Annotated[str, typer.Argument(help="Table name, optionally schema.table")],
    schema: SchemaOption = None,
) -> None:
    """Describe the columns of a table in ordinal order."""
    schema_name, table_name = parse_table_arg(table, default_schema(ctx, schema))
    columns = with_session(
        ctx, lambda session: get_columns(session, table_name, schema_name)
    )
    output_result(
        ctx,
        records_result(
            columns,
            ["name", "data_type", "nullable", "default_value", "is_primary_key"],
        ),
    )


def functions_command(
    ctx: typer.Context,
    schema: SchemaOption = None,
) -> None:
    """List functions, across all user schemas unless --schema is given."""
    functions = with_session(ctx, lambda session: get_functions(session, schema))
    output_result(
        ctx,
        records_result(
            functions, ["schema", "name", "return_type", "arguments_signature"]
        ),
    )
