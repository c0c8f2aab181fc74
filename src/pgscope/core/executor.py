"""Query execution: run one statement, time it, classify failures.

Every outcome is a QueryResult. Failures whose message looks like a
dropped link invalidate the owning session through ``on_link_lost`` and
are reported with a fixed message; anything else surfaces the driver's
message unchanged.
"""

from __future__ import annotations

import time
from typing import TYPE_CHECKING

import sentry_sdk
import structlog

from pgscope.core.exceptions import PgScopeError
from pgscope.core.models import FieldInfo, QueryResult
from pgscope.core.types import TypeNames, normalize_cell

if TYPE_CHECKING:
    from collections.abc import Callable

    from pgscope.core.driver import Driver, DriverResult

LINK_LOST_MESSAGE = "Connection to database was lost"
QUERY_FAILED_MESSAGE = "Query failed"

LINK_LOSS_PATTERNS: tuple[str, ...] = (
    "connection terminated",
    "connection reset",
    "socket hang up",
    "econnreset",
    "connection refused",
    "database connection",
    "connection lost",
    # psycopg / libpq wording
    "server closed the connection",
    "connection is closed",
    "terminating connection",
)


def is_link_loss(message: str) -> bool:
    """True if ``message`` names a dropped connection (case-insensitive)."""
    lowered = message.lower()
    return any(pattern in lowered for pattern in LINK_LOSS_PATTERNS)


def error_message(error: BaseException, fallback: str) -> str:
    """The error's own message, or ``fallback`` when it carries none."""
    if isinstance(error, PgScopeError):
        return error.message or fallback
    return str(error) or fallback


def build_fields(raw: DriverResult, type_names: TypeNames) -> list[FieldInfo]:
    return [
        FieldInfo(
            name=field.name,
            type_id=field.type_id,
            type_name=type_names.name_for(field.type_id),
        )
        for field in raw.fields
    ]


async def execute_query(
    driver: Driver,
    sql: str,
    *,
    type_names: TypeNames | None = None,
    on_link_lost: Callable[[], None] | None = None,
) -> QueryResult:
    """Execute ``sql`` verbatim on ``driver`` and normalize the outcome."""
    log = structlog.get_logger()
    names = type_names or TypeNames()

    sql_normalized = " ".join(sql.split())
    log.debug("executing query", sql=sql_normalized)
    with sentry_sdk.start_span(op="db.query", description=sql_normalized[:100]) as span:
        start_time = time.monotonic()
        try:
            raw = await driver.query(sql)
        except Exception as e:
            duration_ms = (time.monotonic() - start_time) * 1000
            span.set_data("duration_ms", duration_ms)
            message = error_message(e, QUERY_FAILED_MESSAGE)
            if is_link_loss(message):
                span.set_status("unavailable")
                log.error("connection lost during query", error=message)
                if on_link_lost is not None:
                    on_link_lost()
                return QueryResult.failure(LINK_LOST_MESSAGE, duration_ms)

            span.set_status("invalid_argument")
            log.error("query failed", sql=sql_normalized, error=message)
            return QueryResult.failure(message, duration_ms)

        duration_ms = (time.monotonic() - start_time) * 1000
        rows = [
            {name: normalize_cell(value) for name, value in row.items()}
            for row in raw.rows
        ]
        span.set_data("row_count", len(rows))
        span.set_data("duration_ms", duration_ms)
        log.debug(
            "query complete",
            duration_ms=f"{duration_ms:.1f}",
            row_count=len(rows),
        )

        return QueryResult.ok(
            rows=rows,
            fields=build_fields(raw, names),
            row_count=raw.row_count or 0,
            duration_ms=duration_ms,
        )
