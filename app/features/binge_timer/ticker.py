"""Display ticker - republishes the running elapsed time"""
import logging
from datetime import datetime
from typing import Callable, List, Optional

from app import config

from .clock import Clock, DEFAULT_CLOCK, seconds_between
from .domain import TimerSnapshot, TimerStatus
from .formatting import format_elapsed
from .scheduler import RepeatingTask, Scheduler

logger = logging.getLogger(__name__)

SnapshotListener = Callable[[TimerSnapshot], None]


class DisplayTicker:
    """
    Periodic callback active only while the timer runs.

    Every tick recomputes now - start_time from the clock and publishes the
    snapshot to subscribers. Nothing is accumulated between ticks, so a late
    or skipped tick never drifts the displayed value. Ticks do no I/O.
    """

    def __init__(
        self,
        scheduler: Scheduler,
        clock: Clock = DEFAULT_CLOCK,
        interval: float = config.TIMER_TICK_INTERVAL_SECONDS,
    ):
        self._scheduler = scheduler
        self._clock = clock
        self._interval = interval
        self._task: Optional[RepeatingTask] = None
        self._start_time: Optional[datetime] = None
        self._listeners: List[SnapshotListener] = []
        self.latest: Optional[TimerSnapshot] = None

    @property
    def running(self) -> bool:
        return self._task is not None

    def start(self, start_time: datetime) -> None:
        """(Re)start ticking for an interval that began at start_time"""
        self.stop()
        self._start_time = start_time
        self._task = self._scheduler.call_repeating(self._interval, self.tick)
        self.tick()

    def stop(self) -> None:
        """Cancel ticking immediately"""
        if self._task is not None:
            self._task.cancel()
            self._task = None
        self._start_time = None

    def tick(self) -> None:
        if self._start_time is None:
            return
        elapsed = max(0.0, seconds_between(self._start_time, self._clock.now()))
        self.publish(
            TimerSnapshot(
                status=TimerStatus.RUNNING,
                start_time=self._start_time,
                elapsed=elapsed,
                display=format_elapsed(elapsed),
            )
        )

    def publish(self, snapshot: TimerSnapshot) -> None:
        """Hand a snapshot to every subscriber"""
        self.latest = snapshot
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception as e:
                logger.error(f"Display listener failed: {e}")

    def subscribe(self, listener: SnapshotListener) -> Callable[[], None]:
        """Register a listener; returns a callable that unsubscribes it"""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe
