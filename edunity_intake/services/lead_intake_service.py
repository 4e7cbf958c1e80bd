import logging
from typing import Any, Dict, Optional

from edunity_intake.core.cache import CacheService
from edunity_intake.core.config import settings
from edunity_intake.core.constants import (
    EMAIL_KEY_TYPE,
    PARENT_FORM_SOURCE,
    PHONE_KEY_TYPE,
    TEACHER_FORM_SOURCE,
)
from edunity_intake.core.edunity_id import contact_key, normalize_email, normalize_phone
from edunity_intake.core.exceptions import (
    DuplicateEmailError,
    DuplicatePhoneError,
    MissingContactKeyError,
)
from edunity_intake.schemas.lead import ParentRequestCreate, TeacherLeadCreate
from edunity_intake.services.id_allocator import AllocatedLead, LeadIdAllocator

logger = logging.getLogger(__name__)


class LeadIntakeService:
    """Turns a validated form submission into a persisted lead.

    Dependencies are injected via the constructor so the class remains
    stateless and easily testable.
    """

    def __init__(
        self,
        allocator: LeadIdAllocator,
        cache: Optional[CacheService] = None,
    ) -> None:
        self._allocator = allocator
        self._cache: CacheService = cache or CacheService()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def submit_teacher_lead(self, form: TeacherLeadCreate) -> AllocatedLead:
        payload: Dict[str, Any] = {
            "full_name": form.full_name,
            "email": form.email,
            "phone": form.phone,
            "state": form.state,
            "lga": form.lga,
            "area": form.area,
            "subjects": form.subjects,
            "min_class": form.min_class,
            "max_class": form.max_class,
            "exam_focus": form.exam_focus,
            "availability": form.availability,
            "lesson_type": form.lesson_type,
            "private_tutoring": form.private_tutoring,
            "teaching_experience": form.teaching_experience,
            "consent": form.consent,
            "source": TEACHER_FORM_SOURCE,
        }
        return await self.submit(payload)

    async def submit_parent_request(self, form: ParentRequestCreate) -> AllocatedLead:
        payload: Dict[str, Any] = {
            "full_name": form.parent_full_name,
            "email": form.parent_email,
            "phone": form.parent_phone,
            "relationship_to_learner": form.relationship_to_learner,
            "learner_name": form.learner_name,
            "number_of_learners": form.number_of_learners,
            "learner_class": form.learner_class,
            "learners": [learner.model_dump() for learner in form.learners],
            "state": form.state,
            "lga": form.lga,
            "area": form.area,
            "requested_subjects": form.requested_subjects,
            "exam_focus": form.exam_focus,
            "lesson_type": form.lesson_type,
            "preferred_schedule": form.preferred_schedule,
            "urgency": form.urgency,
            "additional_notes": form.additional_notes,
            "consent": form.consent,
            "status": "new",
            "source": PARENT_FORM_SOURCE,
        }
        return await self.submit(payload)

    async def submit(self, payload: Dict[str, Any]) -> AllocatedLead:
        """Run the intake pipeline for an already-built lead payload.

        Steps:
        1. Normalize contact keys; refuse to continue without both
        2. Pre-flight duplicate check against the Redis contact cache
        3. Transactional allocation (authoritative uniqueness check)
        4. Cache the new contact claims

        Raises:
            MissingContactKeyError: Email or phone empty after normalization.
            DuplicateEmailError / DuplicatePhoneError: Contact already claimed.
            AllocationExhaustedError: Retry budget consumed.
        """
        email = normalize_email(payload.get("email"))
        phone = normalize_phone(payload.get("phone"))
        if not email or not phone:
            raise MissingContactKeyError()

        await self._check_cached_claims(email, phone)

        allocated = await self._allocator.allocate(
            {**payload, "email": email, "phone": phone}
        )

        await self._cache_claims(email, phone, allocated.lead_id)
        return allocated

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    async def _check_cached_claims(self, email: str, phone: str) -> None:
        """Reject early when Redis knows a live lead owns the contact.

        A cached claim is only a hint: it is confirmed against the lead it
        names before rejecting, and dropped when that lead is gone or no
        longer carries the contact.  A miss, or Redis being down, always
        falls through to the allocator's transactional check.
        """
        if await self._claim_confirmed(EMAIL_KEY_TYPE, email):
            raise DuplicateEmailError()
        if await self._claim_confirmed(PHONE_KEY_TYPE, phone):
            raise DuplicatePhoneError()

    async def _claim_confirmed(self, key_type: str, value: str) -> bool:
        lead_type = self._allocator.lead_type.name
        key = contact_key(key_type, value)
        lead_id = await self._cache.get_contact_claim(lead_type, key)
        if not lead_id:
            return False
        if await self._allocator.owns_contact(lead_id, key_type, value):
            return True
        logger.info("Dropping stale %s contact claim %s -> %s", lead_type, key, lead_id)
        await self._cache.delete_contact_claim(lead_type, key)
        return False

    async def _cache_claims(self, email: str, phone: str, lead_id: str) -> None:
        lead_type = self._allocator.lead_type.name
        for key in (
            contact_key(EMAIL_KEY_TYPE, email),
            contact_key(PHONE_KEY_TYPE, phone),
        ):
            await self._cache.set_contact_claim(
                lead_type, key, lead_id, ttl=settings.REDIS_CONTACT_CLAIM_TTL
            )
