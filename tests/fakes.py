"""In-memory driver doubles for session and catalog tests."""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Mapping
from typing import Any

from pgscope.core.driver import DriverField, DriverResult

SERVER_VERSION = "PostgreSQL 16.2 on x86_64-pc-linux-gnu"

Handler = Callable[[str], DriverResult]


def make_result(
    rows: list[dict[str, Any]],
    fields: list[tuple[str, int]] | None = None,
    row_count: int | None = None,
) -> DriverResult:
    """Build a DriverResult; fields default to text columns named after row keys."""
    if fields is None:
        fields = [(name, 25) for name in (rows[0] if rows else {})]
    return DriverResult(
        fields=[DriverField(name=name, type_id=type_id) for name, type_id in fields],
        rows=rows,
        row_count=len(rows) if row_count is None else row_count,
    )


def default_handler(sql: str) -> DriverResult:
    if sql == "SELECT version()":
        return make_result([{"version": SERVER_VERSION}])
    if sql == "SELECT 1":
        return make_result([{"?column?": 1}], fields=[("?column?", 23)])
    return make_result([], row_count=0)


def routing_handler(routes: Mapping[str, DriverResult | Exception]) -> Handler:
    """Answer by the first route whose key occurs in the SQL text."""

    def handle(sql: str) -> DriverResult:
        for fragment, outcome in routes.items():
            if fragment in sql:
                if isinstance(outcome, Exception):
                    raise outcome
                return outcome
        return default_handler(sql)

    return handle


class FakeDriver:
    """Driver double that records calls and lets tests fire link signals."""

    def __init__(
        self,
        config=None,
        *,
        handler: Handler | None = None,
        connect_error: Exception | None = None,
        close_error: Exception | None = None,
        gate: asyncio.Event | None = None,
    ) -> None:
        self.config = config
        self.handler = handler or default_handler
        self.connect_error = connect_error
        self.close_error = close_error
        self.gate = gate
        self.queries: list[str] = []
        self.connect_timeout: float | None = None
        self.connected = False
        self.close_calls = 0
        self._listeners: dict[str, list[Callable[[BaseException | None], None]]] = {
            "error": [],
            "end": [],
        }

    @property
    def closed(self) -> bool:
        return self.close_calls > 0

    def listener_count(self) -> int:
        return sum(len(callbacks) for callbacks in self._listeners.values())

    def on(self, event, callback) -> None:
        self._listeners[event].append(callback)

    def remove_all_listeners(self, event=None) -> None:
        if event is None:
            for callbacks in self._listeners.values():
                callbacks.clear()
        else:
            self._listeners[event].clear()

    def emit(self, event: str, error: BaseException | None = None) -> None:
        for callback in list(self._listeners[event]):
            callback(error)

    async def connect(self, timeout: float) -> None:
        self.connect_timeout = timeout
        if self.gate is not None:
            await self.gate.wait()
        if self.connect_error is not None:
            raise self.connect_error
        self.connected = True

    async def query(self, sql: str) -> DriverResult:
        self.queries.append(sql)
        return self.handler(sql)

    async def close(self) -> None:
        self.close_calls += 1
        self.connected = False
        if self.close_error is not None:
            raise self.close_error
        self.emit("end")


class FakeDriverFactory:
    """Callable DriverFactory that keeps every driver it built."""

    def __init__(self, **driver_kwargs: Any) -> None:
        self.driver_kwargs = driver_kwargs
        self.drivers: list[FakeDriver] = []

    def __call__(self, config) -> FakeDriver:
        driver = FakeDriver(config, **self.driver_kwargs)
        self.drivers.append(driver)
        return driver

    @property
    def last(self) -> FakeDriver:
        return self.drivers[-1]
