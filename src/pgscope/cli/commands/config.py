"""Configuration management CLI commands."""

from __future__ import annotations

from typing import TYPE_CHECKING

import typer

from pgscope.cli.commands._shared import get_resolved_config
from pgscope.core.config import DEFAULT_CONFIG_PATH, load_config

if TYPE_CHECKING:
    from pathlib import Path

config_app = typer.Typer(help="Configuration management commands")


@config_app.callback(invoke_without_command=True)
def config_callback(ctx: typer.Context) -> None:
    if not ctx.invoked_subcommand:
        typer.echo(ctx.get_help())
        raise typer.Exit()


def _mask_password(value: str) -> str:
    return "***" if value else "not set"


@config_app.command("show")
def config_show(ctx: typer.Context) -> None:
    """Display resolved connection settings with source attribution."""
    resolved = get_resolved_config(ctx)
    config_path: Path | None = ctx.obj.get("config_file")
    sources = resolved.sources

    typer.echo("Connection Settings (resolved):")
    connection_fields = [
        ("host", resolved.host),
        ("port", str(resolved.port)),
        ("database", resolved.database),
        ("user", resolved.user or "not set"),
        ("password", _mask_password(resolved.password)),
        ("use_tls", "yes" if resolved.use_tls else "no"),
    ]
    for field_name, value in connection_fields:
        source = sources.get(field_name, "default")
        typer.echo(f"  {field_name}: {value} ({source})")

    typer.echo("")
    typer.echo("General:")
    typer.echo(f"  schema: {resolved.default_schema}")
    typer.echo(f"  format: {resolved.default_format or 'auto'}")

    typer.echo("")
    typer.echo(f"Active Profile: {resolved.active_profile or 'none'}")
    typer.echo(f"Config File: {config_path or DEFAULT_CONFIG_PATH}")


@config_app.command("profiles")
def config_profiles(ctx: typer.Context) -> None:
    """List available connection profiles."""
    config_path: Path | None = ctx.obj.get("config_file")
    app_config = load_config(config_path)
    active_profile = ctx.obj.get("profile") or app_config.default_profile

    if not app_config.profiles:
        typer.echo("No profiles configured.")
        typer.echo(f"Add profiles to: {config_path or DEFAULT_CONFIG_PATH}")
        return

    typer.echo("Available Profiles:")
    typer.echo("")
    for name, profile in sorted(app_config.profiles.items()):
        is_active = name == active_profile
        marker = "* " if is_active else "  "
        label = " (active)" if is_active else ""
        typer.echo(f"{marker}{name}{label}")

        display_fields = [
            ("host", profile.host),
            ("port", str(profile.port)),
            ("database", profile.database),
        ]
        if profile.user:
            display_fields.append(("user", profile.user))
        if profile.use_tls:
            display_fields.append(("tls", "yes"))

        for field_name, value in display_fields:
            typer.echo(f"      {field_name}: {value}")
        typer.echo("")
