"""Binge-free period domain model (append-only, one per logged interval)"""
from datetime import datetime
from typing import Optional
from uuid import uuid4
from pydantic import BaseModel, ConfigDict, Field


class BingeFreePeriodBase(BaseModel):
    """Base binge-free period fields"""
    model_config = ConfigDict(populate_by_name=True, from_attributes=True)

    start_time: datetime = Field(alias="startTime")
    end_time: datetime = Field(alias="endTime")
    duration: float  # seconds, end_time - start_time


class BingeFreePeriodCreate(BingeFreePeriodBase):
    """Binge-free period creation model.

    The id is generated client-side so a repeated insert of the same
    period can be recognised by the store and ignored.
    """
    id: str = Field(default_factory=lambda: str(uuid4()))
    user_id: str


class BingeFreePeriod(BingeFreePeriodBase):
    """Complete binge-free period model from database"""
    id: str
    user_id: str
    created_at: Optional[datetime] = None
