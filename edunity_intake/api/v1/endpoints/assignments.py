from fastapi import APIRouter, Depends

from edunity_intake.api.deps import get_assignment_service
from edunity_intake.core.lead_types import get_lead_type
from edunity_intake.schemas.assignment import AssignmentOut, AssignmentUpdate
from edunity_intake.schemas.common import SuccessResponse
from edunity_intake.services.lead_assignment_service import LeadAssignmentService

router = APIRouter(prefix="/leads", tags=["Assignments"])


@router.get("/{lead_type}/{lead_id}/assignment", response_model=AssignmentOut)
async def get_assignment(
    lead_type: str,
    lead_id: str,
    service: LeadAssignmentService = Depends(get_assignment_service),
) -> AssignmentOut:
    assignment = await service.get_assignment(get_lead_type(lead_type), lead_id)
    return AssignmentOut.model_validate(assignment)


@router.put("/{lead_type}/{lead_id}/assignment", response_model=AssignmentOut)
async def assign_lead(
    lead_type: str,
    lead_id: str,
    data: AssignmentUpdate,
    service: LeadAssignmentService = Depends(get_assignment_service),
) -> AssignmentOut:
    """Assign the lead to a staff member, replacing any current owner."""
    assignment = await service.assign(get_lead_type(lead_type), lead_id, data)
    return AssignmentOut.model_validate(assignment)


@router.delete("/{lead_type}/{lead_id}/assignment", response_model=SuccessResponse)
async def unassign_lead(
    lead_type: str,
    lead_id: str,
    service: LeadAssignmentService = Depends(get_assignment_service),
) -> SuccessResponse:
    await service.unassign(get_lead_type(lead_type), lead_id)
    return SuccessResponse()
