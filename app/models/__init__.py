"""Persisted document models"""
from .timer_record import TimerRecord, TimerRecordUpsert
from .binge_free_period import BingeFreePeriod, BingeFreePeriodCreate

__all__ = [
    'TimerRecord', 'TimerRecordUpsert',
    'BingeFreePeriod', 'BingeFreePeriodCreate',
]
