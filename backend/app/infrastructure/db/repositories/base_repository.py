"""
Base Repository for ARTI Ed

Generic async repository over one SQLModel table. Concrete repositories add
their own queries and map rows to domain entities.
"""

from typing import Any, TypeVar, Generic, Optional, Type

from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import SQLModel


ModelType = TypeVar("ModelType", bound=SQLModel)


class BaseRepository(Generic[ModelType]):
    """
    Generic async repository with the common CRUD operations.

    Args:
        model: The SQLModel class to operate on
        session: Async database session
    """

    def __init__(self, model: Type[ModelType], session: AsyncSession):
        self._model = model
        self._session = session

    @property
    def session(self) -> AsyncSession:
        """Get the current session."""
        return self._session

    async def get_by_id(self, id: Any) -> Optional[ModelType]:
        """
        Get a single record by its primary key.

        Args:
            id: primary key value

        Returns:
            Model instance or None if not found
        """
        return await self._session.get(self._model, id)

    async def add(self, db_obj: ModelType) -> ModelType:
        """
        Insert a new record and load server-side values.

        Flushes but does not commit; the caller owns the transaction.
        """
        self._session.add(db_obj)
        await self._session.flush()
        await self._session.refresh(db_obj)
        return db_obj

    def insert(self):
        """
        Dialect-specific INSERT construct supporting ``on_conflict_*``.

        Postgres in production, SQLite for local runs and tests.
        """
        if self._session.bind.dialect.name == "sqlite":
            return sqlite_insert(self._model)
        return pg_insert(self._model)
