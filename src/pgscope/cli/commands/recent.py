"""Recent connection history commands."""

from __future__ import annotations

from typing import Annotated

import typer

from pgscope.cli.commands._shared import output_result
from pgscope.core.models import FieldInfo, QueryResult
from pgscope.core.recent import RecentConnectionsStore

recent_app = typer.Typer(help="Recently used connections (passwords are never stored)")


def _store(ctx: typer.Context) -> RecentConnectionsStore:
    return RecentConnectionsStore(ctx.ensure_object(dict).get("recent_file"))


@recent_app.callback(invoke_without_command=True)
def recent_callback(ctx: typer.Context) -> None:
    if not ctx.invoked_subcommand:
        recent_list(ctx)


@recent_app.command("list")
def recent_list(ctx: typer.Context) -> None:
    """List recent connections, newest first."""
    entries = _store(ctx).entries()
    rows = [
        {
            "id": entry.id,
            "name": entry.name,
            "tls": entry.config.use_tls,
            "last_used": entry.last_used.isoformat(timespec="seconds"),
        }
        for entry in entries
    ]
    output_result(
        ctx,
        QueryResult.ok(
            rows=rows,
            fields=[
                FieldInfo(name="id", type_id=25, type_name="text"),
                FieldInfo(name="name", type_id=25, type_name="text"),
                FieldInfo(name="tls", type_id=16, type_name="boolean"),
                FieldInfo(name="last_used", type_id=25, type_name="text"),
            ],
            row_count=len(rows),
            duration_ms=0.0,
        ),
    )


@recent_app.command("remove")
def recent_remove(
    ctx: typer.Context,
    entry_id: Annotated[str, typer.Argument(help="Entry id (host:port:database:user)")],
) -> None:
    """Forget one recent connection."""
    if not _store(ctx).remove(entry_id):
        typer.echo(f"No recent connection with id '{entry_id}'", err=True)
        raise typer.Exit(1)
    typer.echo(f"Removed {entry_id}")


@recent_app.command("clear")
def recent_clear(ctx: typer.Context) -> None:
    """Forget every recent connection."""
    _store(ctx).clear()
    typer.echo("Connection history cleared")
