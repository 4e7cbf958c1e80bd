import logging
from datetime import datetime, timezone
from typing import Optional

from edunity_intake.core.exceptions import AssignmentNotFoundError, LeadNotFoundError
from edunity_intake.core.lead_types import LeadTypeConfig
from edunity_intake.models.assignment import LeadAssignment
from edunity_intake.repositories.assignment_repository import AssignmentRepository
from edunity_intake.repositories.lead_repository import LeadRepository
from edunity_intake.schemas.assignment import AssignmentUpdate

logger = logging.getLogger(__name__)


class LeadAssignmentService:
    """Assigns leads to staff members; one owner per lead."""

    def __init__(
        self, lead_repo: LeadRepository, assignment_repo: AssignmentRepository
    ) -> None:
        self._lead_repo = lead_repo
        self._assignment_repo = assignment_repo

    async def get_assignment(
        self, lead_type: LeadTypeConfig, lead_id: str
    ) -> LeadAssignment:
        await self._require_lead(lead_type, lead_id)
        assignment = await self._assignment_repo.get_by_lead_id(lead_id)
        if assignment is None:
            raise AssignmentNotFoundError(f"Lead {lead_id} is not assigned")
        return assignment

    async def assign(
        self, lead_type: LeadTypeConfig, lead_id: str, data: AssignmentUpdate
    ) -> LeadAssignment:
        """Create or overwrite the lead's assignment and commit."""
        await self._require_lead(lead_type, lead_id)
        previous: Optional[LeadAssignment] = await self._assignment_repo.get_by_lead_id(
            lead_id
        )
        previous_user = previous.assigned_user_id if previous is not None else None

        assignment = await self._assignment_repo.upsert(
            lead_id,
            lead_type.name,
            assigned_user_id=data.assigned_user_id,
            assigned_user_name=data.assigned_user_name,
            assigned_by_user_id=data.assigned_by_user_id,
            assigned_by_name=data.assigned_by_name,
            assigned_at=datetime.now(timezone.utc),
        )
        await self._assignment_repo.commit()

        if previous_user and previous_user != data.assigned_user_id:
            logger.info(
                "Lead %s reassigned from %s to %s", lead_id, previous_user, data.assigned_user_id
            )
        else:
            logger.info("Lead %s assigned to %s", lead_id, data.assigned_user_id)
        return assignment

    async def unassign(self, lead_type: LeadTypeConfig, lead_id: str) -> None:
        assignment = await self.get_assignment(lead_type, lead_id)
        await self._assignment_repo.delete(assignment)
        await self._assignment_repo.commit()
        logger.info("Lead %s unassigned", lead_id)

    async def _require_lead(self, lead_type: LeadTypeConfig, lead_id: str) -> None:
        lead = await self._lead_repo.get_by_id(lead_id)
        if lead is None or lead.lead_type != lead_type.name:
            raise LeadNotFoundError(f"No {lead_type.name} lead with id {lead_id}")
