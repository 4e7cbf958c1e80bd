from typing import AsyncGenerator, Optional

from fastapi import Depends
from redis.asyncio import Redis
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from edunity_intake.core.cache import connect_redis
from edunity_intake.core.config import settings
from edunity_intake.core.database import get_db, get_session_factory
from edunity_intake.core.lead_types import PARENT, TEACHER
from edunity_intake.services.id_allocator import LeadIdAllocator
from edunity_intake.services.lead_intake_service import LeadIntakeService


# ---------------------------------------------------------------------------
# Redis client factory
# ---------------------------------------------------------------------------


async def get_redis_client() -> AsyncGenerator[Optional[Redis], None]:
    """Yield a Redis client for the request, closing it afterwards.

    Yields ``None`` when Redis is unreachable; the cache then degrades to
    a no-op.
    """
    client = await connect_redis(settings.REDIS_URL)
    try:
        yield client
    finally:
        if client is not None:
            await client.aclose()


# ---------------------------------------------------------------------------
# Repository factory functions (one per repository, each gets the shared db)
# ---------------------------------------------------------------------------


async def get_lead_repo(
    db: AsyncSession = Depends(get_db),
):
    from edunity_intake.repositories.lead_repository import LeadRepository

    return LeadRepository(db)


async def get_assignment_repo(
    db: AsyncSession = Depends(get_db),
):
    from edunity_intake.repositories.assignment_repository import AssignmentRepository

    return AssignmentRepository(db)


async def get_document_repo(
    db: AsyncSession = Depends(get_db),
):
    from edunity_intake.repositories.follow_up_document_repository import (
        FollowUpDocumentRepository,
    )

    return FollowUpDocumentRepository(db)


# ---------------------------------------------------------------------------
# Cache service factory
# ---------------------------------------------------------------------------


async def get_cache_service(
    redis_client: Optional[Redis] = Depends(get_redis_client),
):
    """Build a :class:`CacheService` backed by the shared Redis client."""
    from edunity_intake.core.cache import CacheService

    return CacheService(redis_client=redis_client)


# ---------------------------------------------------------------------------
# Service factory functions
# ---------------------------------------------------------------------------


async def get_teacher_allocator(
    session_factory: async_sessionmaker = Depends(get_session_factory),
) -> LeadIdAllocator:
    return LeadIdAllocator(session_factory, TEACHER)


async def get_parent_allocator(
    session_factory: async_sessionmaker = Depends(get_session_factory),
) -> LeadIdAllocator:
    return LeadIdAllocator(session_factory, PARENT)


async def get_teacher_intake_service(
    allocator: LeadIdAllocator = Depends(get_teacher_allocator),
    cache=Depends(get_cache_service),
) -> LeadIntakeService:
    """Build a :class:`LeadIntakeService` for teacher onboarding forms."""
    return LeadIntakeService(allocator=allocator, cache=cache)


async def get_parent_intake_service(
    allocator: LeadIdAllocator = Depends(get_parent_allocator),
    cache=Depends(get_cache_service),
) -> LeadIntakeService:
    """Build a :class:`LeadIntakeService` for parent tutoring requests."""
    return LeadIntakeService(allocator=allocator, cache=cache)


async def get_assignment_service(
    lead_repo=Depends(get_lead_repo),
    assignment_repo=Depends(get_assignment_repo),
):
    from edunity_intake.services.lead_assignment_service import LeadAssignmentService

    return LeadAssignmentService(lead_repo=lead_repo, assignment_repo=assignment_repo)


async def get_document_service(
    lead_repo=Depends(get_lead_repo),
    document_repo=Depends(get_document_repo),
):
    """Build a :class:`FollowUpDocumentService` with injected repositories."""
    from edunity_intake.services.follow_up_documents import FollowUpDocumentService

    return FollowUpDocumentService(lead_repo=lead_repo, document_repo=document_repo)
