"""Timer record domain model (one persisted document per user)"""
from datetime import datetime
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field


class TimerRecordBase(BaseModel):
    """Base timer record fields, stored under their document names"""
    model_config = ConfigDict(populate_by_name=True, from_attributes=True)

    timer_start_time: Optional[datetime] = Field(default=None, alias="timerStartTime")
    is_timer_running: bool = Field(default=False, alias="isTimerRunning")
    elapsed_time_at_stop: Optional[float] = Field(default=None, alias="elapsedTimeAtStop")  # seconds


class TimerRecordUpsert(TimerRecordBase):
    """Timer record upsert model - only explicitly set fields are written"""
    user_id: str


class TimerRecord(TimerRecordBase):
    """Complete timer record model from database"""
    user_id: str
    updated_at: Optional[datetime] = None
