"""Binge-free periods repository"""
from typing import List, Optional

from supabase import Client  # type: ignore

from app import config
from app.models.binge_free_period import BingeFreePeriod, BingeFreePeriodCreate

from .base import BaseRepository


class BingeFreePeriodRepository(BaseRepository[BingeFreePeriod, BingeFreePeriodCreate]):
    """Repository for append-only binge-free periods"""

    def __init__(self, client: Client):
        super().__init__(client, config.BINGE_FREE_PERIODS_TABLE, BingeFreePeriod)

    async def append(self, data: BingeFreePeriodCreate) -> Optional[BingeFreePeriod]:
        """Insert a period; an existing row with the same id is never updated.

        Returns None when the id was already stored.
        """
        return await self.upsert(data, on_conflict="id", ignore_duplicates=True, exclude_unset=False)

    async def find_by_user(self, user_id: str, limit: Optional[int] = None) -> List[BingeFreePeriod]:
        """List a user's periods, newest first"""
        return await self.find_by_filters(
            {"user_id": user_id},
            limit=limit,
            order_by="endTime",
            descending=True,
        )
