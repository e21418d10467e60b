"""Shared persistence operations for post-owned records."""
from typing import Any, Dict, Generic, Optional, Type, TypeVar
from uuid import UUID

from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from shotshare.core.database import Base
from shotshare.core.exceptions import NotFoundException

ModelType = TypeVar("ModelType", bound=Base)


class BaseRepository(Generic[ModelType]):
    """
    Primary-key lookups and writes over a single mapped table.

    Writes flush but never commit; the caller owns the transaction so that
    ingestion can roll back blob uploads when the record write fails.
    """

    def __init__(self, model: Type[ModelType], db: AsyncSession):
        self.model = model
        self.db = db

    def _by_key(self, key: UUID):
        return self.model.id == key

    async def get_by_id(self, key: UUID) -> Optional[ModelType]:
        result = await self.db.execute(select(self.model).where(self._by_key(key)))
        return result.scalar_one_or_none()

    async def get_by_id_or_fail(self, key: UUID) -> ModelType:
        """
        Load a row or raise.

        Raises:
            NotFoundException: If no row has this key
        """
        row = await self.get_by_id(key)
        if row is None:
            raise NotFoundException(resource=self.model.__tablename__, identifier=str(key))
        return row

    async def exists(self, key: UUID) -> bool:
        result = await self.db.execute(
            select(func.count()).select_from(self.model).where(self._by_key(key))
        )
        return result.scalar_one() > 0

    async def count(self) -> int:
        result = await self.db.execute(select(func.count()).select_from(self.model))
        return result.scalar_one()

    async def create(self, row: ModelType) -> ModelType:
        """Add a row and return it with server defaults populated."""
        self.db.add(row)
        await self.db.flush()
        await self.db.refresh(row)
        return row

    async def update(self, key: UUID, values: Dict[str, Any]) -> Optional[ModelType]:
        """Apply column values to one row; None when the row has gone."""
        await self.db.execute(
            update(self.model)
            .where(self._by_key(key))
            .values(**values)
        )
        await self.db.flush()
        return await self.get_by_id(key)

    async def delete(self, key: UUID) -> bool:
        """Returns True when a row was removed."""
        result = await self.db.execute(delete(self.model).where(self._by_key(key)))
        await self.db.flush()
        return result.rowcount > 0
