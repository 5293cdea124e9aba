"""Base repository with common document store operations"""
import asyncio
from typing import Generic, TypeVar, Type, Optional, List, Dict, Any
from pydantic import BaseModel
from supabase import Client  # type: ignore

T = TypeVar('T', bound=BaseModel)
CreateT = TypeVar('CreateT', bound=BaseModel)


class BaseRepository(Generic[T, CreateT]):
    """
    Base repository providing common document store operations.
    Hides Supabase implementation details from the rest of the application.
    Documents are written and read under their field aliases.
    """

    def __init__(self, client: Client, table_name: str, model_class: Type[T]):
        self._client = client
        self._table_name = table_name
        self._model_class = model_class

    def _to_model(self, data: Dict[str, Any]) -> T:
        """Convert database dict to domain model"""
        return self._model_class(**data)

    def _to_models(self, data: List[Dict[str, Any]]) -> List[T]:
        """Convert list of database dicts to domain models"""
        return [self._to_model(item) for item in data]

    def _dump(self, data: BaseModel, exclude_unset: bool = True) -> Dict[str, Any]:
        """Convert domain model to a JSON-ready database dict"""
        return data.model_dump(exclude_unset=exclude_unset, by_alias=True, mode='json')

    async def _execute(self, query: Any) -> Any:
        """Run a built query in a worker thread; the Supabase client is blocking"""
        return await asyncio.to_thread(query.execute)

    async def find_one_by(self, column: str, value: Any) -> Optional[T]:
        """Find a single record by a column value"""
        query = self._client.table(self._table_name).select("*").eq(column, value).limit(1)
        response = await self._execute(query)

        if not response.data:
            return None

        return self._to_model(response.data[0])

    async def find_by_filters(
        self,
        filters: Dict[str, Any],
        limit: Optional[int] = None,
        order_by: Optional[str] = None,
        descending: bool = False,
    ) -> List[T]:
        """Find records matching filters"""
        query = self._client.table(self._table_name).select("*")

        for key, value in filters.items():
            query = query.eq(key, value)

        if order_by:
            query = query.order(order_by, desc=descending)

        if limit:
            query = query.limit(limit)

        response = await self._execute(query)
        return self._to_models(response.data)

    async def upsert(
        self,
        data: CreateT,
        on_conflict: str,
        ignore_duplicates: bool = False,
        exclude_unset: bool = True,
    ) -> Optional[T]:
        """Create or update a record keyed by a unique column.

        Returns None when the store reports no row, which is expected
        when ignore_duplicates skipped an existing row.
        """
        query = self._client.table(self._table_name).upsert(
            self._dump(data, exclude_unset=exclude_unset),
            on_conflict=on_conflict,
            ignore_duplicates=ignore_duplicates,
        )
        response = await self._execute(query)

        if not response.data:
            return None

        return self._to_model(response.data[0])
