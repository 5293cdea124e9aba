"""Timer records repository"""
from datetime import datetime
from typing import Optional

from supabase import Client  # type: ignore

from app import config
from app.models.timer_record import TimerRecord, TimerRecordUpsert

from .base import BaseRepository


class TimerRecordRepository(BaseRepository[TimerRecord, TimerRecordUpsert]):
    """Repository for per-user timer records (1:1 with users)"""

    def __init__(self, client: Client):
        super().__init__(client, config.TIMER_RECORDS_TABLE, TimerRecord)

    async def find_by_user(self, user_id: str) -> Optional[TimerRecord]:
        """Find the timer record for a user"""
        return await self.find_one_by("user_id", user_id)

    async def upsert_started(self, user_id: str, start_time: datetime) -> TimerRecord:
        """Mark the user's timer as running since start_time.

        elapsedTimeAtStop is left untouched.
        """
        record = await self.upsert(
            TimerRecordUpsert(user_id=user_id, timer_start_time=start_time, is_timer_running=True),
            on_conflict="user_id",
        )
        if record is None:
            raise ValueError("Failed to upsert timer start")
        return record

    async def upsert_stopped(self, user_id: str, elapsed_seconds: float) -> TimerRecord:
        """Mark the user's timer as stopped, clearing the start time"""
        record = await self.upsert(
            TimerRecordUpsert(
                user_id=user_id,
                timer_start_time=None,
                is_timer_running=False,
                elapsed_time_at_stop=elapsed_seconds,
            ),
            on_conflict="user_id",
        )
        if record is None:
            raise ValueError("Failed to upsert timer stop")
        return record
