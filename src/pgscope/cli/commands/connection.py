"""Connection probe command."""

from __future__ import annotations

import typer

from pgscope.cli.commands._shared import connection_error, get_resolved_config, run_async
from pgscope.core.session import DatabaseSession


def probe_command(ctx: typer.Context) -> None:
    """Check that the server is reachable and the credentials work.

    Opens a separate short-lived probe connection (5s bound), runs
    SELECT 1 and closes it again. Nothing is recorded in the history.
    """
    config = get_resolved_config(ctx).to_connection_config()
    result = run_async(DatabaseSession().test_connection(config))
    if not result.success:
        raise connection_error(result.error)

    latency = result.latency_ms or 0.0
    typer.echo(
        f"Connection OK: {config.user or '(default user)'}@{config.host}:"
        f"{config.port}/{config.database} ({latency:.1f} ms)"
    )
