"""pgscope main entry point and command registration."""

from __future__ import annotations

import atexit
from pathlib import Path  # noqa: TC003
from typing import Annotated

import sentry_sdk
import typer

from pgscope.__about__ import __version__
from pgscope.cli.commands.browse import (
    columns_command,
    functions_command,
    schemas_command,
    tables_command,
)
from pgscope.cli.commands.config import config_app
from pgscope.cli.commands.connection import probe_command
from pgscope.cli.commands.diagram import ddl_command, erd_command, relationships_command
from pgscope.cli.commands.query import query_command
from pgscope.cli.commands.recent import recent_app
from pgscope.cli.output import OutputFormat  # noqa: TC001
from pgscope.core.exceptions import PgScopeError
from pgscope.core.logging import setup_logging
from pgscope.core.monitoring import setup_sentry

app = typer.Typer(
    help="pgscope - PostgreSQL browser: queries, schema, ERD and DDL",
    no_args_is_help=True,
)

app.add_typer(config_app, name="config")
app.add_typer(recent_app, name="recent")
app.command("test")(probe_command)
app.command("query")(query_command)
app.command("schemas")(schemas_command)
app.command("tables")(tables_command)
app.command("columns")(columns_command)
app.command("functions")(functions_command)
app.command("erd")(erd_command)
app.command("relationships")(relationships_command)
app.command("ddl")(ddl_command)


def version_callback(value: bool) -> None:
    if value:
        typer.echo(f"pgscope {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    ctx: typer.Context,
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            "-V",
            help="Show version and exit",
            callback=version_callback,
            is_eager=True,
        ),
    ] = False,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", help="Enable verbose logging"),
    ] = False,
    log_json: Annotated[
        bool,
        typer.Option("--log-json", help="Emit logs as JSON lines on stderr"),
    ] = False,
    profile: Annotated[
        str | None,
        typer.Option("--profile", "-P", help="Named connection profile"),
    ] = None,
    host: Annotated[
        str | None,
        typer.Option("--host", "-H", help="PostgreSQL host"),
    ] = None,
    port: Annotated[
        int | None,
        typer.Option("--port", "-p", help="PostgreSQL port"),
    ] = None,
    database: Annotated[
        str | None,
        typer.Option("--database", "-d", help="Database name"),
    ] = None,
    user: Annotated[
        str | None,
        typer.Option("--user", "-U", help="User name"),
    ] = None,
    password: Annotated[
        str | None,
        typer.Option("--password", "-W", help="Password"),
    ] = None,
    tls: Annotated[
        bool | None,
        typer.Option("--tls/--no-tls", help="Require an encrypted connection"),
    ] = None,
    dsn: Annotated[
        str | None,
        typer.Option("--dsn", help="Connection DSN"),
    ] = None,
    config_file: Annotated[
        Path | None,
        typer.Option("--config", help="Path to config file"),
    ] = None,
    recent_file: Annotated[
        Path | None,
        typer.Option("--history", help="Path to the recent connections file"),
    ] = None,
    format: Annotated[
        OutputFormat | None,
        typer.Option("--format", "-f", help="Output format: table|json|csv"),
    ] = None,
    compact: Annotated[
        bool,
        typer.Option("--compact", help="Compact JSON output (no indentation)"),
    ] = False,
    width: Annotated[
        int,
        typer.Option("--width", help="Column width for table format"),
    ] = 40,
    no_header: Annotated[
        bool,
        typer.Option("--no-header", help="Suppress header row in CSV output"),
    ] = False,
) -> None:
    """pgscope - PostgreSQL browser: queries, schema, ERD and DDL."""
    setup_logging(verbose, json_output=log_json)
    if setup_sentry():
        transaction = sentry_sdk.start_transaction(
            op="cli", name=ctx.invoked_subcommand or "pgscope"
        )
        transaction.__enter__()

        def cleanup() -> None:
            transaction.__exit__(None, None, None)
            sentry_sdk.flush(timeout=2)

        atexit.register(cleanup)

    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["profile"] = profile
    ctx.obj["host"] = host
    ctx.obj["port"] = port
    ctx.obj["database"] = database
    ctx.obj["user"] = user
    ctx.obj["password"] = password
    ctx.obj["tls"] = tls
    ctx.obj["dsn"] = dsn
    ctx.obj["config_file"] = config_file
    ctx.obj["recent_file"] = recent_file

    ctx.obj["format"] = format.value if format else None
    ctx.obj["compact"] = compact
    ctx.obj["width"] = width
    ctx.obj["no_header"] = no_header


def run() -> None:
    """Entry point with global error handling."""
    try:
        app()
    except PgScopeError as e:
        sentry_sdk.capture_exception(e)
        typer.echo(f"Error: {e.message}", err=True)
        raise SystemExit(e.exit_code) from None
    except SystemExit:
        raise
    except KeyboardInterrupt:
        raise SystemExit(130) from None
    except Exception as e:
        sentry_sdk.capture_exception(e)
        typer.echo(f"Error: {e}", err=True)
        raise SystemExit(1) from None
