"""Binge-free timer state machine"""
import asyncio
import logging
from datetime import datetime
from typing import Awaitable, Callable, List, Optional

from app.models.binge_free_period import BingeFreePeriodCreate

from .clock import Clock, DEFAULT_CLOCK, seconds_between
from .domain import (
    IdleState,
    PersistenceResult,
    Reconciliation,
    RunningState,
    TimerSnapshot,
    TimerState,
    TransitionResult,
)
from .errors import TimerError
from .formatting import format_elapsed
from .gateway import PersistenceGateway
from .reconciler import Reconciler
from .ticker import DisplayTicker

logger = logging.getLogger(__name__)

PeriodListener = Callable[[BingeFreePeriodCreate], Awaitable[None]]


class BingeFreeTimer:
    """
    Idle/Running state machine for one user's binge-free timer.

    Every transition is applied to the in-memory state (and the display
    ticker) synchronously, before the matching persistence call is awaited.
    Persistence failures are logged and returned in the TransitionResult;
    they never roll back the local transition and are not retried here.
    Operations are serialized by a lock.
    """

    def __init__(
        self,
        gateway: PersistenceGateway,
        ticker: DisplayTicker,
        clock: Clock = DEFAULT_CLOCK,
        reconciler: Optional[Reconciler] = None,
    ):
        self._gateway = gateway
        self._ticker = ticker
        self._clock = clock
        self._reconciler = reconciler or Reconciler(gateway, clock)
        self._state: TimerState = IdleState()
        self._lock = asyncio.Lock()
        self._period_listeners: List[PeriodListener] = []
        self._initialized = False

    @property
    def user_id(self) -> str:
        return self._gateway.user_id

    @property
    def state(self) -> TimerState:
        return self._state

    @property
    def ticker(self) -> DisplayTicker:
        return self._ticker

    @property
    def is_running(self) -> bool:
        return isinstance(self._state, RunningState)

    @property
    def initialized(self) -> bool:
        return self._initialized

    # ============================================================================
    # LIFECYCLE
    # ============================================================================

    async def init(self) -> Optional[Reconciliation]:
        """
        Reconcile with the persisted record once per session.

        A failed read is logged and leaves the timer Idle but unreconciled:
        the next init() or transition reads the store again.
        """
        async with self._lock:
            if self._initialized:
                return None
            try:
                return await self._reconcile_locked()
            except TimerError as e:
                logger.error(f"Initial reconciliation failed for user {self.user_id}, will retry: {e}")
                return None

    async def shutdown(self) -> None:
        """Stop ticking and drop listeners. The persisted record is left as is."""
        self._ticker.stop()
        self._period_listeners.clear()
        self._initialized = False
        logger.info(f"Timer for user {self.user_id} shut down")

    def add_period_listener(self, listener: PeriodListener) -> None:
        """Register a coroutine run after each period is durably logged"""
        self._period_listeners.append(listener)

    # ============================================================================
    # READS
    # ============================================================================

    def _elapsed_at(self, now: datetime) -> float:
        state = self._state
        if isinstance(state, RunningState):
            return max(0.0, seconds_between(state.start_time, now))
        return state.elapsed_at_stop

    def elapsed(self) -> float:
        """Current elapsed seconds, from the clock while running"""
        return self._elapsed_at(self._clock.now())

    def snapshot(self) -> TimerSnapshot:
        state = self._state
        elapsed = self.elapsed()
        return TimerSnapshot(
            status=state.status,
            start_time=state.start_time if isinstance(state, RunningState) else None,
            elapsed=elapsed,
            display=format_elapsed(elapsed),
        )

    # ============================================================================
    # TRANSITIONS
    # ============================================================================

    def _set_state(self, state: TimerState) -> None:
        """Replace the mirror and bring the ticker in line, without suspending"""
        self._state = state
        if isinstance(state, RunningState):
            self._ticker.start(state.start_time)
        else:
            self._ticker.stop()
            self._ticker.publish(self.snapshot())

    def _unchanged(self, operation: str) -> TransitionResult:
        return TransitionResult(
            operation=operation,
            changed=False,
            state=self._state,
            elapsed=self.elapsed(),
        )

    def _report(self, result: PersistenceResult) -> None:
        if not result.success:
            logger.error(
                f"{result.operation.value} failed for user {self.user_id}; "
                f"local state kept, record needs reconciliation: {result.error}"
            )

    async def _ensure_reconciled(self) -> None:
        """
        Reconcile before the first transition if init() could not.

        Writing from an unreconciled mirror could overwrite a running
        interval stored by an earlier session, so a failed read is raised.
        """
        if not self._initialized:
            await self._reconcile_locked()

    async def start(self) -> TransitionResult:
        """
        Begin an interval now.

        Starting while already running is a no-op: the original start time
        is preserved and nothing is persisted.

        Raises:
            PersistenceUnavailable: If the timer was never reconciled and the
                store still cannot be read
        """
        async with self._lock:
            await self._ensure_reconciled()
            if isinstance(self._state, RunningState):
                logger.info(
                    f"Start ignored for user {self.user_id}: running since "
                    f"{self._state.start_time.isoformat()}"
                )
                return self._unchanged("start")

            now = self._clock.now()
            running = RunningState(start_time=now)
            self._set_state(running)
            logger.info(f"Timer started for user {self.user_id} at {now.isoformat()}")

            result = await self._gateway.save_start(now)
            self._report(result)
            return TransitionResult(
                operation="start",
                changed=True,
                state=running,
                elapsed=0.0,
                persistence=[result],
            )

    async def stop(self) -> TransitionResult:
        """End the interval without logging a period. No-op while Idle."""
        async with self._lock:
            await self._ensure_reconciled()
            if not isinstance(self._state, RunningState):
                logger.debug(f"Stop ignored for user {self.user_id}: timer is idle")
                return self._unchanged("stop")

            now = self._clock.now()
            elapsed = self._elapsed_at(now)
            idle = IdleState(elapsed_at_stop=elapsed)
            self._set_state(idle)
            logger.info(f"Timer stopped for user {self.user_id} after {elapsed:.2f}s")

            result = await self._gateway.save_stop(elapsed)
            self._report(result)
            return TransitionResult(
                operation="stop",
                changed=True,
                state=idle,
                elapsed=elapsed,
                persistence=[result],
            )

    async def stop_and_log(self) -> TransitionResult:
        """
        End the interval and record it as a binge-free period.

        The timer is Idle and the ticker cancelled before any I/O starts.
        save_stop is attempted first, then append_period; each runs exactly
        once regardless of the other's outcome. Period listeners run after a
        successful append, outside the lock.
        """
        async with self._lock:
            await self._ensure_reconciled()
            if not isinstance(self._state, RunningState):
                logger.debug(f"Log ignored for user {self.user_id}: timer is idle")
                return self._unchanged("stop_and_log")

            start_time = self._state.start_time
            now = self._clock.now()
            elapsed = self._elapsed_at(now)
            idle = IdleState(elapsed_at_stop=elapsed)
            self._set_state(idle)

            period = BingeFreePeriodCreate(
                user_id=self.user_id,
                start_time=start_time,
                end_time=now,
                duration=elapsed,
            )
            logger.info(f"Timer stopped and logged for user {self.user_id}: period {period.id}, {elapsed:.2f}s")

            stop_result = await self._gateway.save_stop(elapsed)
            self._report(stop_result)
            append_result = await self._gateway.append_period(period)
            self._report(append_result)

            transition = TransitionResult(
                operation="stop_and_log",
                changed=True,
                state=idle,
                elapsed=elapsed,
                persistence=[stop_result, append_result],
                period=period,
            )

        if append_result.success:
            await self._notify_period_listeners(period)
        return transition

    async def reset(self) -> TransitionResult:
        """Stop (if running) and clear the stored duration to zero"""
        async with self._lock:
            await self._ensure_reconciled()
            state = self._state
            if isinstance(state, IdleState) and state.elapsed_at_stop == 0.0:
                logger.debug(f"Reset ignored for user {self.user_id}: already cleared")
                return self._unchanged("reset")

            idle = IdleState()
            self._set_state(idle)
            logger.info(f"Timer reset for user {self.user_id}")

            result = await self._gateway.save_stop(0.0)
            self._report(result)
            return TransitionResult(
                operation="reset",
                changed=True,
                state=idle,
                elapsed=0.0,
                persistence=[result],
            )

    async def reconcile(self) -> Reconciliation:
        """
        Overwrite the mirror from the persisted record.

        Raises:
            PersistenceUnavailable: If the store cannot be read
            MalformedRecord: If the stored record is inconsistent
        """
        async with self._lock:
            return await self._reconcile_locked()

    async def _reconcile_locked(self) -> Reconciliation:
        result = await self._reconciler.reconcile()
        self._set_state(result.state)
        self._initialized = True
        return result

    async def _notify_period_listeners(self, period: BingeFreePeriodCreate) -> None:
        for listener in list(self._period_listeners):
            try:
                await listener(period)
            except Exception as e:
                logger.error(f"Period listener failed for period {period.id}: {e}", exc_info=True)

