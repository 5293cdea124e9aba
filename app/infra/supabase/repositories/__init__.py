"""Repository exports"""
from .timer_records import TimerRecordRepository
from .binge_free_periods import BingeFreePeriodRepository

__all__ = [
    'TimerRecordRepository',
    'BingeFreePeriodRepository',
]
