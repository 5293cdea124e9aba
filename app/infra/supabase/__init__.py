"""Supabase storage for timer records and binge-free periods"""
from .client import get_supabase_client, reset_supabase_client
from .repositories import BingeFreePeriodRepository, TimerRecordRepository

__all__ = [
    'get_supabase_client',
    'reset_supabase_client',
    'TimerRecordRepository',
    'BingeFreePeriodRepository',
]
