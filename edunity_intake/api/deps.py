"""API-layer dependency functions.

Re-exports all dependency factories from ``edunity_intake.dependencies``
so that endpoint modules only need to import from ``edunity_intake.api.deps``.
"""

from edunity_intake.core.database import get_db, get_session_factory
from edunity_intake.dependencies import (
    # Repository factories
    get_lead_repo,
    get_assignment_repo,
    get_document_repo,
    # Service factories
    get_cache_service,
    get_teacher_allocator,
    get_parent_allocator,
    get_teacher_intake_service,
    get_parent_intake_service,
    get_assignment_service,
    get_document_service,
    # Redis
    get_redis_client,
)

__all__ = [
    "get_db",
    "get_session_factory",
    "get_lead_repo",
    "get_assignment_repo",
    "get_document_repo",
    "get_cache_service",
    "get_teacher_allocator",
    "get_parent_allocator",
    "get_teacher_intake_service",
    "get_parent_intake_service",
    "get_assignment_service",
    "get_document_service",
    "get_redis_client",
]
