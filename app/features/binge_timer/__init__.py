"""Binge-free timer feature module"""

from app.features.binge_timer.domain import (
    IdleState,
    PersistenceOperation,
    PersistenceResult,
    Reconciliation,
    RunningState,
    TimerSnapshot,
    TimerState,
    TimerStatus,
    TransitionResult,
)
from app.features.binge_timer.errors import (
    MalformedRecord,
    IdentityUnavailable,
    NotAuthenticated,
    PersistenceUnavailable,
    TimerError,
)
from app.features.binge_timer.clock import Clock, SystemClock
from app.features.binge_timer.formatting import format_elapsed
from app.features.binge_timer.gateway import (
    PersistenceGateway,
    RetryingGateway,
    SupabaseTimerGateway,
    create_gateway,
)
from app.features.binge_timer.reconciler import Reconciler
from app.features.binge_timer.scheduler import AsyncioScheduler, Scheduler
from app.features.binge_timer.ticker import DisplayTicker
from app.features.binge_timer.service import BingeFreeTimer
from app.features.binge_timer.registry import TimerRegistry

__all__ = [
    "BingeFreeTimer",
    "TimerRegistry",
    "Reconciler",
    "DisplayTicker",
    "Clock",
    "SystemClock",
    "Scheduler",
    "AsyncioScheduler",
    "PersistenceGateway",
    "SupabaseTimerGateway",
    "RetryingGateway",
    "create_gateway",
    "format_elapsed",
    "IdleState",
    "RunningState",
    "TimerState",
    "TimerStatus",
    "TimerSnapshot",
    "Reconciliation",
    "TransitionResult",
    "PersistenceOperation",
    "PersistenceResult",
    "TimerError",
    "NotAuthenticated",
    "IdentityUnavailable",
    "PersistenceUnavailable",
    "MalformedRecord",
]
