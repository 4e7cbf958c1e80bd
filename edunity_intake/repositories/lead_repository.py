from typing import Any, List, Optional

from sqlalchemy import func, select

from edunity_intake.models.lead import Lead
from edunity_intake.repositories.base import BaseRepository


class LeadRepository(BaseRepository):
    """Encapsulates every SQL query that touches the ``leads`` table."""

    async def get_by_id(self, lead_id: str) -> Optional[Lead]:
        """Return a single lead by storage key, or ``None``."""
        return await self._db.get(Lead, lead_id)

    async def exists(self, lead_id: str) -> bool:
        """Return ``True`` if a live lead is stored under *lead_id*."""
        result = await self._db.execute(
            select(func.count()).select_from(Lead).where(Lead.lead_id == lead_id)
        )
        return result.scalar_one() > 0

    async def find_by_edunity_id(
        self, lead_type: str, edunity_id: str
    ) -> Optional[Lead]:
        """Find a lead by storage key first, then by its ``edunity_id`` column.

        The two differ only for leads whose ID was reassigned by
        reconciliation.
        """
        lead = await self.get_by_id(edunity_id)
        if lead is not None and lead.lead_type == lead_type:
            return lead
        result = await self._db.execute(
            select(Lead)
            .where(Lead.lead_type == lead_type, Lead.edunity_id == edunity_id)
            .order_by(Lead.lead_id)
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def get_highest_edunity_id(self, lead_type: str) -> Optional[str]:
        """Return the lexically greatest ``edunity_id`` for *lead_type*.

        Legacy ``ED-ON-T-`` IDs sort below every ``EDU-ON-T-`` ID, so this
        only sees legacy serials while no current-prefix ID exists; see
        :meth:`get_highest_serial`.
        """
        result = await self._db.execute(
            select(Lead.edunity_id)
            .where(Lead.lead_type == lead_type, Lead.edunity_id.is_not(None))
            .order_by(Lead.edunity_id.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def get_highest_serial(self, lead_type: str) -> Optional[int]:
        """Return the largest stored ``edunity_id_serial`` for *lead_type*."""
        result = await self._db.execute(
            select(func.max(Lead.edunity_id_serial)).where(Lead.lead_type == lead_type)
        )
        return result.scalar_one_or_none()

    async def list_by_type(self, lead_type: str) -> List[Lead]:
        """Load every lead of *lead_type* (reconciliation scans all of them)."""
        result = await self._db.execute(
            select(Lead).where(Lead.lead_type == lead_type).order_by(Lead.lead_id)
        )
        return list(result.scalars().all())

    async def create(self, **kwargs: Any) -> Lead:
        """Insert a new lead and return the model instance."""
        lead = Lead(**kwargs)
        self._db.add(lead)
        return lead

    async def update_fields(self, lead_id: str, values: dict) -> Optional[Lead]:
        """Apply *values* to the lead stored under *lead_id*."""
        lead = await self.get_by_id(lead_id)
        if lead is None:
            return None
        for field, value in values.items():
            setattr(lead, field, value)
        return lead

    async def delete(self, lead_id: str) -> bool:
        """Hard-delete a lead row; archival is the caller's job."""
        lead = await self.get_by_id(lead_id)
        if lead is None:
            return False
        await self._delete_instance(lead)
        return True
