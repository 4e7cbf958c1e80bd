from fastapi import APIRouter, Depends, Request

from edunity_intake.api.deps import get_parent_intake_service
from edunity_intake.core.config import settings
from edunity_intake.core.rate_limit import limiter
from edunity_intake.schemas.lead import LeadIntakeResponse, ParentRequestCreate
from edunity_intake.services.lead_intake_service import LeadIntakeService

router = APIRouter(prefix="/parent-requests", tags=["Parent requests"])


@router.post("", response_model=LeadIntakeResponse, status_code=201)
@limiter.limit(settings.INTAKE_RATE_LIMIT)
async def submit_parent_request(
    request: Request,
    request_body: ParentRequestCreate,
    service: LeadIntakeService = Depends(get_parent_intake_service),
) -> LeadIntakeResponse:
    """Register a parent's tutoring request under a new ``ED-PR-`` ID."""
    allocated = await service.submit_parent_request(request_body)
    return LeadIntakeResponse(
        lead_id=allocated.lead_id,
        edunity_id=allocated.edunity_id,
        edunity_id_serial=allocated.edunity_id_serial,
    )
