from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession


class BaseRepository:
    """Thin base class that holds the database session.

    Every concrete repository receives an ``AsyncSession`` at
    construction time so that the allocator can read the counter, the
    lead, the ID Registry and the Uniqueness Index inside one transaction.
    """

    def __init__(self, db: AsyncSession) -> None:
        self._db = db

    async def commit(self) -> None:
        """Commit the current transaction."""
        await self._db.commit()

    async def _delete_instance(self, instance: Any) -> None:
        await self._db.delete(instance)
