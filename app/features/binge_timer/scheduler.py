"""Cancellable repeating tasks on the asyncio event loop"""
import asyncio
import logging
from typing import Callable, Optional, Protocol

logger = logging.getLogger(__name__)


class RepeatingTask(Protocol):
    """Handle for a periodic callback"""

    def cancel(self) -> None:
        """Stop the callback. No invocation happens after this returns."""
        ...

    @property
    def cancelled(self) -> bool:
        ...


class Scheduler(Protocol):
    """Factory for repeating tasks"""

    def call_repeating(self, interval: float, callback: Callable[[], None]) -> RepeatingTask:
        ...


class LoopRepeatingTask:
    """Repeating callback chained through loop.call_later.

    Cancelling drops the pending timer handle synchronously, so the callback
    cannot fire again once cancel() returns.
    """

    def __init__(self, loop: asyncio.AbstractEventLoop, interval: float, callback: Callable[[], None]):
        self._loop = loop
        self._interval = interval
        self._callback = callback
        self._handle: Optional[asyncio.TimerHandle] = None
        self._cancelled = False
        self._schedule_next()

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def _schedule_next(self) -> None:
        self._handle = self._loop.call_later(self._interval, self._fire)

    def _fire(self) -> None:
        if self._cancelled:
            return
        try:
            self._callback()
        except Exception as e:
            logger.error(f"Repeating task callback failed: {e}", exc_info=True)
        if not self._cancelled:
            self._schedule_next()

    def cancel(self) -> None:
        self._cancelled = True
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None


class AsyncioScheduler:
    """Scheduler bound to the running event loop"""

    def call_repeating(self, interval: float, callback: Callable[[], None]) -> LoopRepeatingTask:
        if interval <= 0:
            raise ValueError(f"Repeat interval must be positive, got {interval}")
        loop = asyncio.get_running_loop()
        return LoopRepeatingTask(loop, interval, callback)
