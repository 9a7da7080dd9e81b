"""Debounced callbacks over the event loop's timer.

The store schedules search refreshes through the Scheduler protocol, so
tests can swap in a scheduler that runs immediately instead of faking
time.
"""

import asyncio
import inspect
from collections.abc import Awaitable, Callable
from typing import Any, Protocol

from taskindex.observability.logging import get_logger

logger = get_logger(__name__)

Callback = Callable[[], Awaitable[Any] | Any]


class Scheduler(Protocol):
    """Single-slot deferred execution."""

    def schedule(self, callback: Callback, delay: float) -> None:
        """Run ``callback`` after ``delay`` seconds, replacing any pending one."""
        ...

    def cancel_pending(self) -> None:
        """Drop the pending callback, if any."""
        ...

    async def flush(self) -> None:
        """Run the pending callback now, if any."""
        ...


class Debouncer:
    """Scheduler backed by ``loop.call_later``.

    Each ``schedule`` call cancels the pending timer, so a burst of calls
    collapses into one callback fired ``delay`` seconds after the last.
    Must be used from within a running event loop.
    """

    def __init__(self) -> None:
        self._handle: asyncio.TimerHandle | None = None
        self._callback: Callback | None = None
        self._running: set[asyncio.Task[Any]] = set()

    @property
    def pending(self) -> bool:
        return self._handle is not None

    def schedule(self, callback: Callback, delay: float) -> None:
        self.cancel_pending()
        loop = asyncio.get_running_loop()
        self._callback = callback
        self._handle = loop.call_later(delay, self._fire)

    def cancel_pending(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
        self._handle = None
        self._callback = None

    async def flush(self) -> None:
        callback = self._callback
        self.cancel_pending()
        if callback is not None:
            result = callback()
            if inspect.isawaitable(result):
                await result
        if self._running:
            await asyncio.gather(*self._running)

    def _fire(self) -> None:
        callback = self._callback
        self._handle = None
        self._callback = None
        if callback is None:
            return
        result = callback()
        if inspect.isawaitable(result):
            task = asyncio.ensure_future(result)
            self._running.add(task)
            task.add_done_callback(self._done)

    def _done(self, task: "asyncio.Task[Any]") -> None:
        self._running.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.error("debounced_callback_failed", error=str(task.exception()))
