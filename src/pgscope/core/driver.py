"""Database driver protocol and the psycopg v3 adapter.

The session only talks to a driver through this narrow interface:
connect with a timeout, run one SQL string, close, and subscribe to
``error``/``end`` signals. The psycopg adapter maps driver exceptions
onto the PgScopeError hierarchy.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Literal, Protocol, TypeAlias, runtime_checkable

import psycopg
import structlog
from psycopg.rows import dict_row
from pydantic import BaseModel, ConfigDict

from pgscope.core.exceptions import NetworkError, QueryError

if TYPE_CHECKING:
    from collections.abc import Callable

    from pgscope.core.models import ConnectionConfig

DriverEvent: TypeAlias = Literal["error", "end"]
Listener: TypeAlias = "Callable[[BaseException | None], None]"

APPLICATION_NAME = "pgscope"


class DriverField(BaseModel):
    """Raw field descriptor as reported by the driver."""

    name: str
    type_id: int


class DriverResult(BaseModel):
    """Raw outcome of one statement, before normalization."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    fields: list[DriverField]
    rows: list[dict[str, Any]]
    row_count: int | None = None


@runtime_checkable
class Driver(Protocol):
    """A single physical connection to the database server."""

    async def connect(self, timeout: float) -> None:
        """Open the connection, failing after ``timeout`` seconds."""
        ...

    async def query(self, sql: str) -> DriverResult:
        """Execute ``sql`` verbatim and fetch every row."""
        ...

    async def close(self) -> None:
        """Close the connection. Emits ``end`` to attached listeners."""
        ...

    def on(self, event: DriverEvent, callback: Listener) -> None: ...

    def remove_all_listeners(self, event: DriverEvent | None = None) -> None: ...


DriverFactory: TypeAlias = "Callable[[ConnectionConfig], Driver]"


class PsycopgDriver:
    """Asynchronous PostgreSQL driver using psycopg v3.

    psycopg has no callback for a socket that drops while idle, so a
    server-side disconnect between queries surfaces as ``error`` on the
    next query. ``end`` fires only when a caller closes the driver while
    listeners are still attached.
    """

    def __init__(self, config: ConnectionConfig) -> None:
        self.config = config
        self._connection: psycopg.AsyncConnection[Any] | None = None
        self._listeners: dict[str, list[Listener]] = {"error": [], "end": []}

    def on(self, event: DriverEvent, callback: Listener) -> None:
        self._listeners[event].append(callback)

    def remove_all_listeners(self, event: DriverEvent | None = None) -> None:
        if event is None:
            for callbacks in self._listeners.values():
                callbacks.clear()
        else:
            self._listeners[event].clear()

    def _emit(self, event: DriverEvent, error: BaseException | None) -> None:
        for callback in list(self._listeners[event]):
            callback(error)

    async def connect(self, timeout: float) -> None:
        log = structlog.get_logger()
        log.debug(
            "opening connection",
            host=self.config.host,
            port=self.config.port,
            database=self.config.database,
            sslmode=self.config.sslmode,
        )
        try:
            self._connection = await psycopg.AsyncConnection.connect(
                host=self.config.host,
                port=self.config.port,
                dbname=self.config.database,
                user=self.config.user or None,
                password=self.config.password or None,
                sslmode=self.config.sslmode,
                connect_timeout=max(2, int(timeout)),
                application_name=APPLICATION_NAME,
                autocommit=True,
            )
        except psycopg.Error as e:
            raise NetworkError(str(e)) from e

    def _require_connection(self) -> psycopg.AsyncConnection[Any]:
        if self._connection is None or self._connection.closed:
            raise NetworkError("connection is closed")
        return self._connection

    async def query(self, sql: str) -> DriverResult:
        conn = self._require_connection()
        try:
            async with conn.cursor(row_factory=dict_row) as cur:
                await cur.execute(sql)

                fields: list[DriverField] = []
                rows: list[dict[str, Any]] = []
                if cur.description:
                    fields = [
                        DriverField(name=desc.name, type_id=desc.type_code)
                        for desc in cur.description
                    ]
                    rows = await cur.fetchall()

                return DriverResult(
                    fields=fields,
                    rows=rows,
                    row_count=cur.rowcount if cur.rowcount >= 0 else None,
                )
        except psycopg.OperationalError as e:
            if conn.broken:
                structlog.get_logger().warning("connection broken", error=str(e))
                self._emit("error", e)
            raise NetworkError(str(e)) from e
        except psycopg.Error as e:
            raise QueryError(str(e)) from e

    async def close(self) -> None:
        conn, self._connection = self._connection, None
        if conn is not None and not conn.closed:
            await conn.close()
            self._emit("end", None)
