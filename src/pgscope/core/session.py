"""Connection manager: owns the single live database session.

A DatabaseSession holds at most one driver handle. It serializes connect
attempts with an in-progress flag, watches the driver for link loss and
pushes status changes to every attached observer. Queries are not
serialized here; the driver orders them on its one physical connection.

Nothing in this module raises for database failures: every operation
returns a structured result.
"""

from __future__ import annotations

import asyncio
import time
from typing import TYPE_CHECKING

import structlog

from pgscope.core.broadcast import StatusBroadcaster
from pgscope.core.driver import PsycopgDriver
from pgscope.core.executor import LINK_LOST_MESSAGE, error_message, execute_query
from pgscope.core.models import (
    ConnectionResult,
    ConnectionState,
    ConnectionStatus,
    QueryResult,
    TestResult,
)
from pgscope.core.types import TypeNames

if TYPE_CHECKING:
    from collections.abc import Callable

    from pgscope.core.broadcast import StatusObserver
    from pgscope.core.driver import Driver, DriverFactory
    from pgscope.core.models import ConnectionConfig

CONNECT_TIMEOUT = 10.0
PROBE_TIMEOUT = 5.0

CONNECT_IN_PROGRESS_MESSAGE = "Connection already in progress"
NOT_CONNECTED_MESSAGE = "Not connected to database"
UNKNOWN_ERROR_MESSAGE = "Unknown error"
PROBE_FAILED_MESSAGE = "Connection failed"


class DatabaseSession:
    """One application, one connection.

    Pass the session to whatever needs database access instead of
    reaching for a global; tests build their own with a fake driver
    factory.
    """

    def __init__(
        self,
        driver_factory: DriverFactory | None = None,
        *,
        type_names: TypeNames | None = None,
        broadcaster: StatusBroadcaster | None = None,
    ) -> None:
        self.driver_factory = driver_factory or PsycopgDriver
        self.type_names = type_names or TypeNames()
        self.broadcaster = broadcaster or StatusBroadcaster()
        self.state = ConnectionState.DISCONNECTED
        self.server_version: str | None = None
        self.last_error: str | None = None
        self._driver: Driver | None = None
        self._is_connecting = False

    async def __aenter__(self) -> DatabaseSession:
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.disconnect()

    @property
    def is_connecting(self) -> bool:
        return self._is_connecting

    def is_connected(self) -> bool:
        """Last known state only; the link is not probed."""
        return self._driver is not None

    def subscribe(self, observer: StatusObserver) -> Callable[[], None]:
        return self.broadcaster.subscribe(observer)

    async def connect(self, config: ConnectionConfig) -> ConnectionResult:
        if self._is_connecting:
            return ConnectionResult(success=False, error=CONNECT_IN_PROGRESS_MESSAGE)

        log = structlog.get_logger()
        self._is_connecting = True
        try:
            if self._driver is not None:
                await self.disconnect()

            self.state = ConnectionState.CONNECTING
            log.info(
                "connecting",
                host=config.host,
                port=config.port,
                database=config.database,
                user=config.user,
            )
            driver = self.driver_factory(config)
            self._driver = driver
            driver.on("error", lambda err: self._handle_link_loss(driver, err))
            driver.on("end", lambda err: self._handle_link_loss(driver, err))

            try:
                await asyncio.wait_for(driver.connect(CONNECT_TIMEOUT), CONNECT_TIMEOUT)
                raw = await driver.query("SELECT version()")
                if self._driver is not driver:
                    raise ConnectionAbortedError(LINK_LOST_MESSAGE)
            except Exception as e:
                if isinstance(e, asyncio.TimeoutError):
                    message = f"Connection timed out after {CONNECT_TIMEOUT:g}s"
                else:
                    message = error_message(e, UNKNOWN_ERROR_MESSAGE)
                if self._driver is driver:
                    self._driver = None
                await _close_quietly(driver)
                self.state = ConnectionState.ERROR
                self.last_error = message
                log.error("connection failed", host=config.host, error=message)
                return ConnectionResult(success=False, error=message)

            server_version = None
            if raw.rows:
                value = next(iter(raw.rows[0].values()), None)
                server_version = str(value) if value is not None else None

            self.state = ConnectionState.CONNECTED
            self.server_version = server_version
            self.last_error = None
            log.info("connected", server_version=server_version)
            self.broadcaster.publish(
                ConnectionStatus(connected=True, server_version=server_version)
            )
            return ConnectionResult(success=True, server_version=server_version)
        finally:
            self._is_connecting = False

    def _handle_link_loss(self, driver: Driver, error: BaseException | None) -> None:
        # Signals from a handle that was already replaced or closed are stale.
        if self._driver is not driver:
            return

        log = structlog.get_logger()
        log.warning(
            "database connection lost",
            error=str(error) if error is not None else None,
        )
        self._driver = None
        self.server_version = None
        self.state = ConnectionState.DISCONNECTED
        driver.remove_all_listeners()
        self.broadcaster.publish(
            ConnectionStatus(connected=False, reason=LINK_LOST_MESSAGE)
        )

    async def disconnect(self) -> None:
        driver, self._driver = self._driver, None
        self.server_version = None
        self.state = ConnectionState.DISCONNECTED
        if driver is None:
            return
        structlog.get_logger().info("disconnecting")
        await _close_quietly(driver)

    async def query(self, sql: str) -> QueryResult:
        driver = self._driver
        if driver is None:
            return QueryResult.failure(NOT_CONNECTED_MESSAGE)
        result = await execute_query(
            driver,
            sql,
            type_names=self.type_names,
            on_link_lost=lambda: self._handle_link_loss(driver, None),
        )
        # The driver may signal loss with wording none of the patterns know.
        if not result.success and self._driver is not driver:
            return result.model_copy(update={"error": LINK_LOST_MESSAGE})
        return result

    async def cancel_query(self) -> None:
        """Accepted for interface parity; in-flight queries run to completion."""
        structlog.get_logger().info("query cancellation requested, not supported")

    async def test_connection(self, config: ConnectionConfig) -> TestResult:
        """Probe reachability and credentials on a separate short-lived driver.

        The probe is bounded by PROBE_TIMEOUT and always closed.
        """
        log = structlog.get_logger()
        probe = self.driver_factory(config)
        start_time = time.monotonic()
        try:
            await asyncio.wait_for(_run_probe(probe), PROBE_TIMEOUT)
            latency_ms = (time.monotonic() - start_time) * 1000
        except Exception as e:
            if isinstance(e, asyncio.TimeoutError):
                message = f"Connection timed out after {PROBE_TIMEOUT:g}s"
            else:
                message = error_message(e, PROBE_FAILED_MESSAGE)
            log.info("connection test failed", host=config.host, error=message)
            return TestResult(success=False, error=message)
        finally:
            await _close_quietly(probe)

        log.info("connection test succeeded", latency_ms=f"{latency_ms:.1f}")
        return TestResult(success=True, latency_ms=latency_ms)


async def _run_probe(probe: Driver) -> None:
    await probe.connect(PROBE_TIMEOUT)
    await probe.query("SELECT 1")


async def _close_quietly(driver: Driver) -> None:
    """Detach listeners, then close; close errors are dropped."""
    driver.remove_all_listeners()
    try:
        await driver.close()
    except Exception as e:
        structlog.get_logger().debug("ignoring close error", error=str(e))
