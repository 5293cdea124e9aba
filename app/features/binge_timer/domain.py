"""Domain models for the binge-free timer feature"""

from datetime import datetime
from enum import Enum
from typing import Annotated, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from app.models.binge_free_period import BingeFreePeriodCreate


class TimerStatus(str, Enum):
    """Timer status enum"""
    IDLE = "idle"
    RUNNING = "running"


class IdleState(BaseModel):
    """No interval in progress; carries the last stopped duration"""
    model_config = ConfigDict(frozen=True)

    status: Literal[TimerStatus.IDLE] = TimerStatus.IDLE
    elapsed_at_stop: float = 0.0


class RunningState(BaseModel):
    """Interval in progress since start_time"""
    model_config = ConfigDict(frozen=True)

    status: Literal[TimerStatus.RUNNING] = TimerStatus.RUNNING
    start_time: datetime


# A running state without a start time cannot be constructed
TimerState = Annotated[Union[IdleState, RunningState], Field(discriminator="status")]


class PersistenceOperation(str, Enum):
    """Gateway write operations"""
    SAVE_START = "save_start"
    SAVE_STOP = "save_stop"
    APPEND_PERIOD = "append_period"


class PersistenceResult(BaseModel):
    """Outcome of one gateway write. Failures are values, not exceptions."""
    operation: PersistenceOperation
    success: bool
    error: Optional[str] = None
    attempts: int = 1

    @classmethod
    def ok(cls, operation: PersistenceOperation) -> "PersistenceResult":
        return cls(operation=operation, success=True)

    @classmethod
    def failed(cls, operation: PersistenceOperation, error: str) -> "PersistenceResult":
        return cls(operation=operation, success=False, error=error)


class Reconciliation(BaseModel):
    """State derived from the persisted record"""
    state: TimerState
    elapsed: float


class TimerSnapshot(BaseModel):
    """Point-in-time view of the timer for presentation"""
    status: TimerStatus
    start_time: Optional[datetime] = None
    elapsed: float
    display: str


class TransitionResult(BaseModel):
    """Outcome of a state machine operation"""
    operation: str
    changed: bool
    state: TimerState
    elapsed: float
    persistence: List[PersistenceResult] = Field(default_factory=list)
    period: Optional[BingeFreePeriodCreate] = None

    @property
    def persisted(self) -> bool:
        """True when every issued write succeeded"""
        return all(result.success for result in self.persistence)
