"""Assignment repository: lead-assignment database operations."""

from typing import Optional

from sqlalchemy import select

from edunity_intake.models.assignment import LeadAssignment
from edunity_intake.repositories.base import BaseRepository


class AssignmentRepository(BaseRepository):
    """Encapsulates queries against the ``lead_assignments`` table."""

    async def get_by_lead_id(self, lead_id: str) -> Optional[LeadAssignment]:
        """Return the assignment for a given lead, or ``None``."""
        result = await self._db.execute(
            select(LeadAssignment).where(LeadAssignment.lead_id == lead_id)
        )
        return result.scalar_one_or_none()

    async def upsert(self, lead_id: str, lead_type: str, **fields) -> LeadAssignment:
        """Create the lead's assignment, or overwrite the existing one."""
        assignment = await self.get_by_lead_id(lead_id)
        if assignment is None:
            assignment = LeadAssignment(lead_id=lead_id, lead_type=lead_type)
            self._db.add(assignment)
        for field, value in fields.items():
            setattr(assignment, field, value)
        return assignment

    async def delete(self, assignment: LeadAssignment) -> None:
        await self._delete_instance(assignment)
