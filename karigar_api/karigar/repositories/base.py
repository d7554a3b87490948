from __future__ import annotations

from typing import Any, Iterable, Optional, Type, TypeVar
from uuid import UUID

from sqlalchemy import Executable, select
from sqlalchemy.ext.asyncio import AsyncSession

T = TypeVar("T")


class BaseRepository:
    """
    Base class for repositories providing common helpers.

    Note:
      Merchant isolation is enforced by Postgres RLS using the `app.merchant_id` GUC.
      The session must be bound via merchant_context (see karigar.core.deps.get_merchant_session).
    """

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def execute(self, statement: Executable, params: Optional[dict[str, Any]] = None):
        """Execute a SQLAlchemy statement."""
        return await self.session.execute(statement, params or {})

    async def scalars(self, statement: Executable, params: Optional[dict[str, Any]] = None):
        """Execute and return scalars."""
        result = await self.execute(statement, params)
        return result.scalars()

    async def scalar_one_or_none(self, statement: Executable, params: Optional[dict[str, Any]] = None):
        """Execute and return a single scalar or None."""
        result = await self.execute(statement, params)
        return result.scalar_one_or_none()

    async def get_by_id(self, model: Type[T], entity_id: UUID) -> Optional[T]:
        """Load a row by primary key, refreshing any copy already in the session."""
        stmt = select(model).where(model.id == entity_id).execution_options(populate_existing=True)
        return await self.scalar_one_or_none(stmt)

    async def commit(self) -> None:
        """Commit current transaction."""
        await self.session.commit()

    async def flush(self) -> None:
        """Send pending changes without committing (assigns server defaults and ids)."""
        await self.session.flush()

    async def add_all(self, entities: Iterable[Any]) -> None:
        """Add multiple entities to session."""
        self.session.add_all(list(entities))

    async def add(self, entity: Any) -> None:
        """Add a single entity to session."""
        self.session.add(entity)

    async def delete(self, entity: Any) -> None:
        """Mark an entity for deletion."""
        await self.session.delete(entity)
