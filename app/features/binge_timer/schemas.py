"""Request and response schemas for the timer API"""

from typing import List, Optional

from pydantic import BaseModel

from app.models.binge_free_period import BingeFreePeriod, BingeFreePeriodCreate

from .domain import PersistenceResult, Reconciliation, TimerSnapshot, TransitionResult
from .formatting import format_elapsed


class TransitionResponse(BaseModel):
    """Response model for start / stop / log / reset"""
    operation: str
    changed: bool
    persisted: bool
    timer: TimerSnapshot
    persistence: List[PersistenceResult]
    period: Optional[BingeFreePeriodCreate] = None

    @classmethod
    def from_result(cls, result: TransitionResult, snapshot: TimerSnapshot) -> "TransitionResponse":
        return cls(
            operation=result.operation,
            changed=result.changed,
            persisted=result.persisted,
            timer=snapshot,
            persistence=result.persistence,
            period=result.period,
        )


class ReconcileResponse(BaseModel):
    """Response model for an on-demand reconciliation"""
    status: str
    elapsed: float
    display: str

    @classmethod
    def from_reconciliation(cls, result: Reconciliation) -> "ReconcileResponse":
        return cls(
            status=result.state.status.value,
            elapsed=result.elapsed,
            display=format_elapsed(result.elapsed),
        )


class PeriodListResponse(BaseModel):
    """Response model for the period history"""
    periods: List[BingeFreePeriod]
    count: int
