"""Shared CLI plumbing for command modules.

Config resolution, session lifecycle, result-to-exception mapping and
output helpers.
"""

from __future__ import annotations

import asyncio
import contextlib
from typing import TYPE_CHECKING, Any, TypeVar

import structlog

from pgscope.cli.output import get_formatter, resolve_format, write_output
from pgscope.core.config import load_config, resolve_config
from pgscope.core.exceptions import (
    ConfigError,
    NetworkError,
    QueryError,
    TimeoutError,
)
from pgscope.core.executor import LINK_LOST_MESSAGE
from pgscope.core.models import FieldInfo, QueryResult
from pgscope.core.recent import RecentConnectionsStore
from pgscope.core.session import NOT_CONNECTED_MESSAGE, DatabaseSession

if TYPE_CHECKING:
    from collections.abc import (
        AsyncIterator,
        Awaitable,
        Callable,
        Coroutine,
        Sequence,
    )

    import typer
    from pydantic import BaseModel

    from pgscope.core.config import ResolvedConfig
    from pgscope.core.models import ConnectionConfig, ConnectionStatus

T = TypeVar("T")

_TEXT_TYPE_ID = 25


def get_resolved_config(ctx: typer.Context) -> ResolvedConfig:
    obj = ctx.ensure_object(dict)
    config = load_config(obj.get("config_file"))

    cli_overrides: dict[str, Any] = {}
    for key in ("host", "port", "database", "user", "password", "tls", "schema"):
        val = obj.get(key)
        if val is not None:
            cli_overrides[key] = val

    return resolve_config(
        config,
        profile_name=obj.get("profile"),
        dsn=obj.get("dsn"),
        **cli_overrides,
    )


def default_schema(ctx: typer.Context, schema: str | None = None) -> str:
    if schema:
        return schema
    return get_resolved_config(ctx).default_schema


def run_async(coro: Coroutine[Any, Any, T]) -> T:
    return asyncio.run(coro)


def _log_status(status: ConnectionStatus) -> None:
    log = structlog.get_logger()
    if status.connected:
        log.info("session connected", server_version=status.server_version)
    else:
        log.warning("session disconnected", reason=status.reason)


def _remember(ctx: typer.Context, config: ConnectionConfig) -> None:
    store = RecentConnectionsStore(ctx.ensure_object(dict).get("recent_file"))
    try:
        store.add(config)
    except (ConfigError, OSError) as e:
        structlog.get_logger().warning("could not update connection history", error=str(e))


@contextlib.asynccontextmanager
async def open_session(ctx: typer.Context) -> AsyncIterator[DatabaseSession]:
    """Connect a DatabaseSession for one command and always disconnect it."""
    config = get_resolved_config(ctx).to_connection_config()
    session = DatabaseSession()
    session.subscribe(_log_status)

    result = await session.connect(config)
    if not result.success:
        raise connection_error(result.error)
    _remember(ctx, config)

    try:
        yield session
    finally:
        await session.disconnect()


def with_session(
    ctx: typer.Context,
    operation: Callable[[DatabaseSession], Awaitable[T]],
) -> T:
    """Run one async operation against a freshly connected session."""

    async def _run() -> T:
        async with open_session(ctx) as session:
            return await operation(session)

    return run_async(_run())


def connection_error(message: str | None) -> NetworkError:
    text = message or "Connection failed"
    if text.startswith("Connection timed out"):
        return TimeoutError(text)
    return NetworkError(text)


def raise_for_error(success: bool, error: str | None) -> None:
    """Turn a failed structured result into the matching exception."""
    if success:
        return
    if error in (LINK_LOST_MESSAGE, NOT_CONNECTED_MESSAGE):
        raise NetworkError(error or LINK_LOST_MESSAGE)
    raise QueryError(error or "Query failed")


def records_result(records: Sequence[BaseModel], columns: Sequence[str]) -> QueryResult:
    """Tabulate catalog records as a text-typed QueryResult."""
    rows = []
    for record in records:
        data = record.model_dump(by_alias=True)
        rows.append({name: data.get(name) for name in columns})
    return QueryResult.ok(
        rows=rows,
        fields=[
            FieldInfo(name=name, type_id=_TEXT_TYPE_ID, type_name="text")
            for name in columns
        ],
        row_count=len(rows),
        duration_ms=0.0,
    )


def format_options(ctx: typer.Context) -> dict[str, Any]:
    obj = ctx.ensure_object(dict)
    format_flag = obj.get("format")
    if format_flag is None:
        format_flag = load_config(obj.get("config_file")).default_format
    return {
        "format_flag": format_flag,
        "compact": obj.get("compact", False),
        "width": obj.get("width", 40),
        "no_header": obj.get("no_header", False),
    }


def is_json_format(ctx: typer.Context) -> bool:
    return resolve_format(format_options(ctx)["format_flag"]) == "json"


def output_result(ctx: typer.Context, result: QueryResult) -> None:
    opts = format_options(ctx)
    formatter = get_formatter(**opts)
    write_output(formatter, result)


def parse_table_arg(table_arg: str, schema: str) -> tuple[str, str]:
    """Split ``schema.table``; a bare name uses ``schema``."""
    if "." in table_arg:
        schema_part, table = table_arg.split(".", 1)
        return schema_part, table
    return schema, table_arg
