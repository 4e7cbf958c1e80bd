"""Transactional allocation of sequential Edunity IDs.

Each attempt reads the Serial Counter, the candidate lead key, the ID
Registry entry and both Uniqueness Index entries, then writes the lead,
the counter, the registry entry and the index entries, all inside one
database transaction.  The database's isolation (a row lock on the
counter plus primary-key constraints on the side tables) is the only
concurrency control; this module just retries a bounded number of times.
"""

import enum
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

from sqlalchemy.exc import DBAPIError, IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from edunity_intake.core.config import settings
from edunity_intake.core.constants import EMAIL_KEY_TYPE, MIN_SERIAL, PHONE_KEY_TYPE
from edunity_intake.core.edunity_id import (
    contact_key,
    format_id,
    normalize_email,
    normalize_phone,
    parse_serial,
)
from edunity_intake.core.exceptions import (
    AllocationExhaustedError,
    DuplicateEmailError,
    DuplicatePhoneError,
    MissingContactKeyError,
)
from edunity_intake.core.lead_types import LeadTypeConfig
from edunity_intake.repositories.counter_repository import CounterRepository
from edunity_intake.repositories.id_registry_repository import IdRegistryRepository
from edunity_intake.repositories.lead_repository import LeadRepository
from edunity_intake.repositories.unique_key_repository import UniqueKeyRepository

logger = logging.getLogger(__name__)

# PostgreSQL serialization_failure / deadlock_detected
_RETRYABLE_SQLSTATES = frozenset({"40001", "40P01"})

# Columns of ``leads`` a payload may set directly; everything else goes
# into ``details``.
_LEAD_COLUMNS = frozenset({"full_name", "status", "source"})


@dataclass(frozen=True)
class AllocatedLead:
    lead_id: str
    edunity_id: str
    edunity_id_serial: int


class AttemptOutcome(enum.Enum):
    ALLOCATED = "allocated"
    ID_COLLISION = "id_collision"
    CONFLICT = "conflict"
    DUPLICATE_EMAIL = "duplicate_email"
    DUPLICATE_PHONE = "duplicate_phone"

    @property
    def retryable(self) -> bool:
        return self in (AttemptOutcome.ID_COLLISION, AttemptOutcome.CONFLICT)


@dataclass(frozen=True)
class AttemptResult:
    outcome: AttemptOutcome
    serial: int
    allocated: Optional[AllocatedLead] = None


def is_retryable_conflict(exc: DBAPIError) -> bool:
    """Return ``True`` for commit-time errors caused by a concurrent writer.

    Integrity errors here can only come from two transactions inserting
    the same counter, lead, registry or index row.
    """
    if isinstance(exc, IntegrityError):
        return True
    orig = getattr(exc, "orig", None)
    sqlstate = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
    return sqlstate in _RETRYABLE_SQLSTATES


class LeadIdAllocator:
    """Allocates a collision-free Edunity ID and persists the lead.

    One instance serves one lead type.  ``session_factory`` must produce
    fresh sessions; every attempt gets its own transaction.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker,
        lead_type: LeadTypeConfig,
        max_attempts: Optional[int] = None,
    ) -> None:
        self._session_factory = session_factory
        self._lead_type = lead_type
        self._max_attempts = max_attempts or settings.ID_ALLOCATION_MAX_ATTEMPTS

    @property
    def lead_type(self) -> LeadTypeConfig:
        return self._lead_type

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def allocate(self, payload: Dict[str, Any]) -> AllocatedLead:
        """Persist *payload* as a new lead with a unique sequential ID.

        ``payload`` must carry ``email`` and ``phone`` (or their
        ``*_normalized`` variants); both are normalized again here.

        Raises:
            MissingContactKeyError: Email or phone is empty after normalization.
            DuplicateEmailError: Another live lead owns the email.
            DuplicatePhoneError: Another live lead owns the phone.
            AllocationExhaustedError: Every attempt hit a retryable collision.
        """
        email = normalize_email(payload.get("email_normalized") or payload.get("email"))
        phone = normalize_phone(payload.get("phone_normalized") or payload.get("phone"))
        if not email or not phone:
            raise MissingContactKeyError()

        observed_max = await self._observed_max_serial()
        floor = max(MIN_SERIAL - 1, observed_max)

        for attempt in range(1, self._max_attempts + 1):
            result = await self._run_attempt(payload, email, phone, floor)

            if result.outcome is AttemptOutcome.ALLOCATED:
                logger.info(
                    "Allocated %s for %s lead (attempt %d)",
                    result.allocated.edunity_id,
                    self._lead_type.name,
                    attempt,
                )
                return result.allocated

            if result.outcome is AttemptOutcome.DUPLICATE_EMAIL:
                logger.info("Rejected %s lead: duplicate email", self._lead_type.name)
                raise DuplicateEmailError()
            if result.outcome is AttemptOutcome.DUPLICATE_PHONE:
                logger.info("Rejected %s lead: duplicate phone", self._lead_type.name)
                raise DuplicatePhoneError()

            logger.warning(
                "Retrying %s ID allocation after %s on serial %d (attempt %d/%d)",
                self._lead_type.name,
                result.outcome.value,
                result.serial,
                attempt,
                self._max_attempts,
            )
            if result.outcome is AttemptOutcome.ID_COLLISION:
                floor = max(floor, result.serial)

        logger.error(
            "Gave up allocating a %s ID after %d attempts",
            self._lead_type.name,
            self._max_attempts,
        )
        raise AllocationExhaustedError()

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    async def _observed_max_serial(self) -> int:
        """Highest serial currently stored on a lead (best effort).

        A stale counter can then never hand out an already-used serial.
        The transaction does not depend on this, so query failures only
        lower the floor back to ``MIN_SERIAL - 1``.
        """
        try:
            async with self._session_factory() as session:
                leads = LeadRepository(session)
                highest = await leads.get_highest_edunity_id(self._lead_type.name)
                highest_serial = await leads.get_highest_serial(self._lead_type.name)
        except SQLAlchemyError:
            logger.warning(
                "Could not read highest %s ID; relying on the counter alone",
                self._lead_type.name,
                exc_info=True,
            )
            return MIN_SERIAL - 1
        serial = parse_serial(self._lead_type, highest)
        return max(MIN_SERIAL - 1, serial or 0, highest_serial or 0)

    async def owns_contact(self, lead_id: str, key_type: str, value: str) -> bool:
        """Return ``True`` if live lead *lead_id* still carries the contact.

        Used to confirm a cached claim before rejecting a submission; a
        failed lookup counts as unconfirmed.
        """
        try:
            async with self._session_factory() as session:
                lead = await LeadRepository(session).get_by_id(lead_id)
        except SQLAlchemyError:
            logger.warning("Could not confirm cached claim on %s", lead_id, exc_info=True)
            return False
        if lead is None or lead.lead_type != self._lead_type.name:
            return False
        if key_type == EMAIL_KEY_TYPE:
            return normalize_email(lead.email_normalized or lead.email) == value
        return normalize_phone(lead.phone_normalized or lead.phone) == value

    async def _run_attempt(
        self, payload: Dict[str, Any], email: str, phone: str, floor: int
    ) -> AttemptResult:
        """Run one attempt in its own transaction.

        Commit-time conflicts with a concurrent writer are reported as
        ``CONFLICT`` instead of propagating.
        """
        try:
            async with self._session_factory() as session:
                async with session.begin():
                    return await self._attempt(session, payload, email, phone, floor)
        except DBAPIError as exc:
            if not is_retryable_conflict(exc):
                raise
            return AttemptResult(AttemptOutcome.CONFLICT, serial=floor + 1)

    async def _attempt(
        self,
        session: AsyncSession,
        payload: Dict[str, Any],
        email: str,
        phone: str,
        floor: int,
    ) -> AttemptResult:
        lead_type = self._lead_type
        counters = CounterRepository(session)
        leads = LeadRepository(session)
        registry = IdRegistryRepository(session)
        unique_keys = UniqueKeyRepository(session)

        counter = await counters.get_for_update(lead_type.counter_name)
        current = counter.current if counter is not None else MIN_SERIAL - 1
        next_serial = max(MIN_SERIAL, current + 1, floor + 1)
        edunity_id = format_id(lead_type, next_serial)

        if await leads.exists(edunity_id):
            # The serial is owned by a live lead, so moving the counter onto
            # it keeps the counter invariant and guarantees progress.
            await counters.set_current(lead_type.counter_name, next_serial, counter)
            return AttemptResult(AttemptOutcome.ID_COLLISION, serial=next_serial)

        registry_entry = None
        if lead_type.uses_id_registry:
            registry_entry = await registry.get(lead_type.name, edunity_id)
            if await self._claimed_by_other(leads, registry_entry, edunity_id):
                await counters.set_current(lead_type.counter_name, next_serial, counter)
                return AttemptResult(AttemptOutcome.ID_COLLISION, serial=next_serial)

        email_key = contact_key(EMAIL_KEY_TYPE, email)
        phone_key = contact_key(PHONE_KEY_TYPE, phone)
        email_entry = await unique_keys.get(lead_type.name, email_key)
        phone_entry = await unique_keys.get(lead_type.name, phone_key)

        if await self._claimed_by_other(leads, email_entry, edunity_id):
            return AttemptResult(AttemptOutcome.DUPLICATE_EMAIL, serial=next_serial)
        if await self._claimed_by_other(leads, phone_entry, edunity_id):
            return AttemptResult(AttemptOutcome.DUPLICATE_PHONE, serial=next_serial)

        await counters.set_current(lead_type.counter_name, next_serial, counter)
        await leads.create(**self._lead_row(payload, edunity_id, next_serial, email, phone))
        if lead_type.uses_id_registry:
            await registry.upsert(
                lead_type.name, edunity_id, edunity_id, next_serial, registry_entry
            )
        await unique_keys.upsert(
            lead_type.name, email_key, EMAIL_KEY_TYPE, email, edunity_id, email_entry
        )
        await unique_keys.upsert(
            lead_type.name, phone_key, PHONE_KEY_TYPE, phone, edunity_id, phone_entry
        )

        return AttemptResult(
            AttemptOutcome.ALLOCATED,
            serial=next_serial,
            allocated=AllocatedLead(
                lead_id=edunity_id,
                edunity_id=edunity_id,
                edunity_id_serial=next_serial,
            ),
        )

    @staticmethod
    async def _claimed_by_other(leads: LeadRepository, entry, lead_id: str) -> bool:
        """True if *entry* points at a different lead that still exists.

        Entries left behind by deleted leads are stale and may be reused.
        """
        if entry is None or entry.lead_id == lead_id:
            return False
        return await leads.exists(entry.lead_id)

    def _lead_row(
        self,
        payload: Dict[str, Any],
        edunity_id: str,
        serial: int,
        email: str,
        phone: str,
    ) -> Dict[str, Any]:
        skip = {"email", "phone", "email_normalized", "phone_normalized"}
        details = {
            k: v for k, v in payload.items() if k not in _LEAD_COLUMNS and k not in skip
        }
        row = {k: payload[k] for k in _LEAD_COLUMNS if payload.get(k) is not None}
        row.update(
            lead_id=edunity_id,
            lead_type=self._lead_type.name,
            edunity_id=edunity_id,
            edunity_id_serial=serial,
            email=email,
            email_normalized=email,
            phone=phone,
            phone_normalized=phone,
            details=details,
        )
        return row
