from typing import List, Optional

from sqlalchemy import select

from edunity_intake.models.unique_key import LeadUniqueKey
from edunity_intake.repositories.base import BaseRepository


class UniqueKeyRepository(BaseRepository):
    """Queries against the ``lead_unique_keys`` table (Uniqueness Index)."""

    async def get(self, lead_type: str, key: str) -> Optional[LeadUniqueKey]:
        return await self._db.get(LeadUniqueKey, (lead_type, key))

    async def list_by_type(self, lead_type: str) -> List[LeadUniqueKey]:
        result = await self._db.execute(
            select(LeadUniqueKey).where(LeadUniqueKey.lead_type == lead_type)
        )
        return list(result.scalars().all())

    async def upsert(
        self,
        lead_type: str,
        key: str,
        key_type: str,
        value: str,
        lead_id: str,
        existing: Optional[LeadUniqueKey] = None,
    ) -> LeadUniqueKey:
        """Point *key* at *lead_id*, creating the entry if needed."""
        entry = existing if existing is not None else await self.get(lead_type, key)
        if entry is None:
            entry = LeadUniqueKey(
                lead_type=lead_type,
                key=key,
                key_type=key_type,
                value=value,
                lead_id=lead_id,
            )
            self._db.add(entry)
        else:
            entry.key_type = key_type
            entry.value = value
            entry.lead_id = lead_id
        return entry

    async def delete(self, lead_type: str, key: str) -> bool:
        entry = await self.get(lead_type, key)
        if entry is None:
            return False
        await self._delete_instance(entry)
        return True
