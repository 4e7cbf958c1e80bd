from typing import List, Optional

from sqlalchemy import select

from edunity_intake.models.id_registry import LeadIdRegistryEntry
from edunity_intake.repositories.base import BaseRepository


class IdRegistryRepository(BaseRepository):
    """Queries against the ``lead_id_registry`` table."""

    async def get(self, lead_type: str, edunity_id: str) -> Optional[LeadIdRegistryEntry]:
        return await self._db.get(LeadIdRegistryEntry, (lead_type, edunity_id))

    async def list_by_type(self, lead_type: str) -> List[LeadIdRegistryEntry]:
        result = await self._db.execute(
            select(LeadIdRegistryEntry).where(
                LeadIdRegistryEntry.lead_type == lead_type
            )
        )
        return list(result.scalars().all())

    async def upsert(
        self,
        lead_type: str,
        edunity_id: str,
        lead_id: str,
        serial: int,
        existing: Optional[LeadIdRegistryEntry] = None,
    ) -> LeadIdRegistryEntry:
        entry = existing if existing is not None else await self.get(lead_type, edunity_id)
        if entry is None:
            entry = LeadIdRegistryEntry(
                lead_type=lead_type,
                edunity_id=edunity_id,
                lead_id=lead_id,
                edunity_id_serial=serial,
            )
            self._db.add(entry)
        else:
            entry.lead_id = lead_id
            entry.edunity_id_serial = serial
        return entry

    async def delete(self, lead_type: str, edunity_id: str) -> bool:
        entry = await self.get(lead_type, edunity_id)
        if entry is None:
            return False
        await self._delete_instance(entry)
        return True
