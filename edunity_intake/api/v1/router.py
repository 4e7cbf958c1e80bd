from fastapi import APIRouter

from edunity_intake.api.v1.endpoints import (
    assignments,
    health,
    parent_requests,
    teacher_leads,
)

router = APIRouter(prefix="/api/v1")

router.include_router(teacher_leads.router)
router.include_router(parent_requests.router)
router.include_router(assignments.router)
router.include_router(health.router)
