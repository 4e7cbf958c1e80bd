from typing import Optional

from sqlalchemy import select

from edunity_intake.models.counter import LeadCounter
from edunity_intake.repositories.base import BaseRepository


class CounterRepository(BaseRepository):
    """Queries against the ``lead_counters`` table."""

    async def get(self, name: str) -> Optional[LeadCounter]:
        result = await self._db.execute(
            select(LeadCounter).where(LeadCounter.name == name)
        )
        return result.scalar_one_or_none()

    async def get_for_update(self, name: str) -> Optional[LeadCounter]:
        """Read the counter row with a row lock held until commit.

        Concurrent allocators for the same lead type queue up here.
        """
        result = await self._db.execute(
            select(LeadCounter).where(LeadCounter.name == name).with_for_update()
        )
        return result.scalar_one_or_none()

    async def set_current(
        self, name: str, value: int, counter: Optional[LeadCounter] = None
    ) -> LeadCounter:
        """Store *value* as the counter's ``current``.

        Pass the already-loaded *counter* to avoid a second read.  A missing
        row is inserted; if another transaction inserts it first, the commit
        fails with ``IntegrityError``.
        """
        if counter is None:
            counter = await self.get(name)
        if counter is None:
            counter = LeadCounter(name=name, current=value)
            self._db.add(counter)
        else:
            counter.current = value
        return counter
