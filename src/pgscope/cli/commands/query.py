"""Ad-hoc SQL execution command."""

from __future__ import annotations

import sys
from typing import Annotated

import structlog
import typer

from pgscope.cli.commands._shared import (
    output_result,
    raise_for_error,
    with_session,
)
from pgscope.core.exceptions import InputError
from pgscope.core.exit_codes import ExitCode
from pgscope.core.query_source import resolve_query_source


def query_command(
    ctx: typer.Context,
    file: Annotated[
        str | None,
        typer.Argument(help="SQL file to execute"),
    ] = None,
    execute: Annotated[
        str | None,
        typer.Option("--execute", "-e", help="Execute inline SQL query"),
    ] = None,
) -> None:
    """Execute a SQL query from file, inline (-e), or stdin."""
    try:
        is_tty = sys.stdin.isatty()
    except (ValueError, AttributeError):
        is_tty = False
    if execute is None and file is None and is_tty:
        typer.echo(ctx.get_help())
        raise typer.Exit()

    try:
        sql = resolve_query_source(inline=execute, file_path=file)
    except InputError as exc:
        typer.echo(str(exc), err=True)
        raise typer.Exit(ExitCode.INPUT_ERROR) from exc

    result = with_session(ctx, lambda session: session.query(sql))
    raise_for_error(result.success, result.error)

    structlog.get_logger().info(
        "query finished",
        row_count=result.row_count,
        duration_ms=f"{result.duration_ms:.1f}",
    )
    if result.fields:
        output_result(ctx, result)
    else:
        typer.echo(f"OK, {result.row_count} row(s) affected ({result.duration_ms:.1f} ms)")
