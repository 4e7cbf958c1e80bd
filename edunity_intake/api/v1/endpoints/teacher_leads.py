from dataclasses import asdict

from fastapi import APIRouter, Depends, Request

from edunity_intake.api.deps import (
    get_document_service,
    get_lead_repo,
    get_teacher_intake_service,
)
from edunity_intake.core.config import settings
from edunity_intake.core.edunity_id import normalize_id
from edunity_intake.core.exceptions import LeadNotFoundError
from edunity_intake.core.lead_types import TEACHER
from edunity_intake.core.rate_limit import limiter
from edunity_intake.repositories.lead_repository import LeadRepository
from edunity_intake.schemas.documents import DocumentProgressOut, FollowUpDocumentsUpdate
from edunity_intake.schemas.lead import LeadIntakeResponse, LeadOut, TeacherLeadCreate
from edunity_intake.services.follow_up_documents import FollowUpDocumentService
from edunity_intake.services.lead_intake_service import LeadIntakeService

router = APIRouter(prefix="/teacher-leads", tags=["Teacher leads"])


@router.post("", response_model=LeadIntakeResponse, status_code=201)
@limiter.limit(settings.INTAKE_RATE_LIMIT)
async def submit_teacher_lead(
    request: Request,
    request_body: TeacherLeadCreate,
    service: LeadIntakeService = Depends(get_teacher_intake_service),
) -> LeadIntakeResponse:
    """Register a teacher onboarding submission.

    Rate-limited per IP.  The lead is stored under its newly allocated
    ``EDU-ON-T-`` ID; duplicates of an existing email or phone get a 409.
    """
    allocated = await service.submit_teacher_lead(request_body)
    return LeadIntakeResponse(
        lead_id=allocated.lead_id,
        edunity_id=allocated.edunity_id,
        edunity_id_serial=allocated.edunity_id_serial,
    )


@router.get("/{edunity_id}", response_model=LeadOut)
async def get_teacher_lead(
    edunity_id: str,
    lead_repo: LeadRepository = Depends(get_lead_repo),
) -> LeadOut:
    """Look up a teacher by Edunity ID; legacy ``ED-ON-T-`` IDs are accepted."""
    canonical_id = normalize_id(TEACHER, edunity_id)
    if not canonical_id:
        raise LeadNotFoundError(f"Invalid teacher ID: {edunity_id}")
    lead = await lead_repo.find_by_edunity_id(TEACHER.name, canonical_id)
    if lead is None:
        raise LeadNotFoundError(f"No teacher lead with ID {canonical_id}")
    return LeadOut.model_validate(lead)


@router.put("/{edunity_id}/documents", response_model=DocumentProgressOut)
async def update_follow_up_documents(
    edunity_id: str,
    update: FollowUpDocumentsUpdate,
    service: FollowUpDocumentService = Depends(get_document_service),
) -> DocumentProgressOut:
    progress = await service.record_documents(edunity_id, update)
    return DocumentProgressOut(
        edunity_id=normalize_id(TEACHER, edunity_id), **asdict(progress)
    )


@router.get("/{edunity_id}/documents/progress", response_model=DocumentProgressOut)
async def get_document_progress(
    edunity_id: str,
    service: FollowUpDocumentService = Depends(get_document_service),
) -> DocumentProgressOut:
    progress = await service.get_progress(edunity_id)
    return DocumentProgressOut(
        edunity_id=normalize_id(TEACHER, edunity_id), **asdict(progress)
    )
