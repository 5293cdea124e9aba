"""Clock abstraction.

Wall-clock time is the only source trusted for duration math: a running
interval is always measured as now - start_time, so the clock must agree
with the timestamps stored remotely. Production code uses SystemClock;
tests inject a fake that advances on demand.
"""

from datetime import datetime, timezone
from typing import Protocol


class Clock(Protocol):
    """Source of the current wall-clock instant."""

    def now(self) -> datetime:
        """Return the current time as a timezone-aware UTC datetime."""
        ...


class SystemClock:
    """Production clock backed by the system wall clock."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


def seconds_between(start: datetime, end: datetime) -> float:
    """Seconds from start to end. Naive datetimes are taken as UTC."""
    if start.tzinfo is None:
        start = start.replace(tzinfo=timezone.utc)
    if end.tzinfo is None:
        end = end.replace(tzinfo=timezone.utc)
    return (end - start).total_seconds()


DEFAULT_CLOCK: Clock = SystemClock()
