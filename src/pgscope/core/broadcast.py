"""Fan-out of connection status changes to every attached observer."""

from __future__ import annotations

import asyncio
import inspect
from typing import TYPE_CHECKING, Any, TypeAlias

import structlog

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from pgscope.core.models import ConnectionStatus

StatusObserver: TypeAlias = "Callable[[ConnectionStatus], Awaitable[Any] | None]"


class StatusBroadcaster:
    """Fire-and-forget publisher of ConnectionStatus payloads.

    Plain callables run inline; coroutine results are scheduled on the
    running loop and never awaited by the publisher. Observer errors are
    logged and dropped so one bad observer cannot stall the session.
    """

    def __init__(self) -> None:
        self._observers: list[StatusObserver] = []
        self._pending: set[asyncio.Task[Any]] = set()

    def __len__(self) -> int:
        return len(self._observers)

    def subscribe(self, observer: StatusObserver) -> Callable[[], None]:
        """Attach ``observer``; returns a callable that detaches it."""
        self._observers.append(observer)

        def unsubscribe() -> None:
            if observer in self._observers:
                self._observers.remove(observer)

        return unsubscribe

    def publish(self, status: ConnectionStatus) -> None:
        log = structlog.get_logger()
        log.debug(
            "broadcasting status",
            connected=status.connected,
            observers=len(self._observers),
        )
        for observer in list(self._observers):
            try:
                outcome = observer(status)
            except Exception as e:
                log.warning("status observer failed", error=str(e))
                continue
            if inspect.isawaitable(outcome):
                self._schedule(outcome)

    def _schedule(self, awaitable: Awaitable[Any]) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            structlog.get_logger().warning("no running loop for async observer")
            if inspect.iscoroutine(awaitable):
                awaitable.close()
            return
        task = loop.create_task(_guard(awaitable))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)


async def _guard(awaitable: Awaitable[Any]) -> None:
    try:
        await awaitable
    except Exception as e:
        structlog.get_logger().warning("status observer failed", error=str(e))
