"""Offline duplicate reconciliation for one lead type.

Leads that share a normalized email or phone, directly or through a chain
of other leads, form one duplicate group.  The earliest-created lead of
each group survives; the rest are archived.  The Uniqueness Index, the
ID Registry and the Serial Counter are then repaired to match the
surviving leads.

Planning is pure (``plan_reconciliation``) so a dry run never writes.
Applying commits bounded batches sequentially; it is not atomic end to
end, but re-running converges.
"""

import logging
import math
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from edunity_intake.core.cache import CacheService
from edunity_intake.core.config import settings
from edunity_intake.core.constants import (
    ARCHIVE_REASON_DUPLICATE,
    EMAIL_KEY_TYPE,
    MIN_SERIAL,
    PHONE_KEY_TYPE,
)
from edunity_intake.core.edunity_id import (
    contact_key,
    format_id,
    normalize_email,
    normalize_phone,
    parse_serial,
)
from edunity_intake.core.lead_types import LeadTypeConfig
from edunity_intake.models.lead import Lead
from edunity_intake.repositories.archive_repository import ArchiveRepository
from edunity_intake.repositories.counter_repository import CounterRepository
from edunity_intake.repositories.id_registry_repository import IdRegistryRepository
from edunity_intake.repositories.lead_repository import LeadRepository
from edunity_intake.repositories.unique_key_repository import UniqueKeyRepository

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Disjoint set
# ---------------------------------------------------------------------------


class DisjointSet:
    """Array-backed union-find with path compression and union by rank."""

    def __init__(self, size: int) -> None:
        self._parent = list(range(size))
        self._rank = [0] * size

    def find(self, x: int) -> int:
        root = x
        while self._parent[root] != root:
            root = self._parent[root]
        while self._parent[x] != root:
            self._parent[x], x = root, self._parent[x]
        return root

    def union(self, a: int, b: int) -> None:
        ra, rb = self.find(a), self.find(b)
        if ra == rb:
            return
        if self._rank[ra] < self._rank[rb]:
            ra, rb = rb, ra
        self._parent[rb] = ra
        if self._rank[ra] == self._rank[rb]:
            self._rank[ra] += 1

    def groups(self) -> List[List[int]]:
        """Members of every component, each sorted, in first-seen order."""
        components: Dict[int, List[int]] = {}
        for i in range(len(self._parent)):
            components.setdefault(self.find(i), []).append(i)
        return list(components.values())


# ---------------------------------------------------------------------------
# Plan model
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class LeadRecord:
    """The fields of a lead that reconciliation looks at."""

    lead_id: str
    edunity_id: Optional[str] = None
    edunity_id_serial: Optional[int] = None
    email: Optional[str] = None
    email_normalized: Optional[str] = None
    phone: Optional[str] = None
    phone_normalized: Optional[str] = None
    created_at: Optional[datetime] = None

    @classmethod
    def from_model(cls, lead: Lead) -> "LeadRecord":
        return cls(
            lead_id=lead.lead_id,
            edunity_id=lead.edunity_id,
            edunity_id_serial=lead.edunity_id_serial,
            email=lead.email,
            email_normalized=lead.email_normalized,
            phone=lead.phone,
            phone_normalized=lead.phone_normalized,
            created_at=lead.created_at,
        )

    @property
    def contact_email(self) -> str:
        return normalize_email(self.email_normalized or self.email)

    @property
    def contact_phone(self) -> str:
        return normalize_phone(self.phone_normalized or self.phone)


@dataclass(frozen=True)
class ArchivePlan:
    lead_id: str
    canonical_lead_id: str
    email: str
    phone: str


@dataclass(frozen=True)
class IdReassignment:
    lead_id: str
    from_id: str
    to_id: str


@dataclass(frozen=True)
class CanonicalUpdate:
    lead_id: str
    values: Dict[str, Any]
    id_reassigned: bool = False


@dataclass(frozen=True)
class UniqueKeyUpsert:
    key: str
    key_type: str
    value: str
    lead_id: str


@dataclass(frozen=True)
class RegistryUpsert:
    edunity_id: str
    lead_id: str
    serial: int


@dataclass
class ReconciliationPlan:
    lead_type: str
    total_leads: int = 0
    duplicate_email_groups: int = 0
    duplicate_phone_groups: int = 0
    duplicate_components: int = 0
    canonical_count: int = 0
    archives: List[ArchivePlan] = field(default_factory=list)
    updates: List[CanonicalUpdate] = field(default_factory=list)
    id_reassignments: List[IdReassignment] = field(default_factory=list)
    unique_key_upserts: List[UniqueKeyUpsert] = field(default_factory=list)
    unique_key_deletes: List[str] = field(default_factory=list)
    registry_upserts: List[RegistryUpsert] = field(default_factory=list)
    registry_deletes: List[str] = field(default_factory=list)
    counter_current: Optional[int] = None
    counter_target: Optional[int] = None

    @property
    def counter_changes(self) -> bool:
        return self.counter_target is not None and self.counter_target != self.counter_current

    @property
    def pending_mutations(self) -> int:
        return (
            2 * len(self.archives)
            + len(self.updates)
            + len(self.unique_key_upserts)
            + len(self.unique_key_deletes)
            + len(self.registry_upserts)
            + len(self.registry_deletes)
            + (1 if self.counter_changes else 0)
        )

    def summary(self) -> Dict[str, int]:
        return {
            "total_leads": self.total_leads,
            "duplicate_email_groups": self.duplicate_email_groups,
            "duplicate_phone_groups": self.duplicate_phone_groups,
            "duplicate_contact_components": self.duplicate_components,
            "leads_to_archive_and_delete": len(self.archives),
            "canonical_leads": self.canonical_count,
            "leads_to_update": len(self.updates),
            "leads_with_id_reassignments": len(self.id_reassignments),
            "unique_keys_to_upsert": len(self.unique_key_upserts),
            "unique_keys_to_delete": len(self.unique_key_deletes),
            "id_registry_to_upsert": len(self.registry_upserts),
            "id_registry_to_delete": len(self.registry_deletes),
            "pending_mutations": self.pending_mutations,
        }


# ---------------------------------------------------------------------------
# Planning
# ---------------------------------------------------------------------------


def _created_at_sort_value(value: Optional[datetime]) -> float:
    # Missing timestamps sort after every real one.
    if value is None:
        return math.inf
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.timestamp()


def canonical_sort_key(record: LeadRecord) -> Tuple[float, str]:
    return (_created_at_sort_value(record.created_at), record.lead_id)


def _index_by(records: Sequence[LeadRecord], attr: str) -> Dict[str, List[int]]:
    index: Dict[str, List[int]] = {}
    for i, record in enumerate(records):
        value = getattr(record, attr)
        if value:
            index.setdefault(value, []).append(i)
    return index


def plan_reconciliation(
    lead_type: LeadTypeConfig,
    records: Sequence[LeadRecord],
    unique_keys: Mapping[str, str],
    registry: Mapping[str, Tuple[str, int]],
    counter_current: Optional[int],
) -> ReconciliationPlan:
    """Compute every write needed to reconcile *records*.

    Args:
        unique_keys: Current Uniqueness Index for this lead type,
            ``key -> lead_id``.
        registry: Current ID Registry for this lead type,
            ``edunity_id -> (lead_id, serial)``.  Ignored for lead types
            without a registry.
        counter_current: Current Serial Counter value, ``None`` if unset.
    """
    plan = ReconciliationPlan(
        lead_type=lead_type.name,
        total_leads=len(records),
        counter_current=counter_current,
    )
    if not records:
        return plan

    by_email = _index_by(records, "contact_email")
    by_phone = _index_by(records, "contact_phone")
    email_groups = [idx for idx in by_email.values() if len(idx) > 1]
    phone_groups = [idx for idx in by_phone.values() if len(idx) > 1]
    plan.duplicate_email_groups = len(email_groups)
    plan.duplicate_phone_groups = len(phone_groups)

    dsu = DisjointSet(len(records))
    for idx in email_groups + phone_groups:
        for other in idx[1:]:
            dsu.union(idx[0], other)

    removed = set()
    for members in dsu.groups():
        if len(members) < 2:
            continue
        plan.duplicate_components += 1
        ordered = sorted((records[i] for i in members), key=canonical_sort_key)
        canonical = ordered[0]
        for duplicate in ordered[1:]:
            removed.add(duplicate.lead_id)
            plan.archives.append(
                ArchivePlan(
                    lead_id=duplicate.lead_id,
                    canonical_lead_id=canonical.lead_id,
                    email=duplicate.contact_email,
                    phone=duplicate.contact_phone,
                )
            )

    canonicals = sorted(
        (r for r in records if r.lead_id not in removed), key=canonical_sort_key
    )
    plan.canonical_count = len(canonicals)

    observed = [parse_serial(lead_type, r.edunity_id) for r in canonicals]
    max_observed = max((s for s in observed if s is not None), default=MIN_SERIAL - 1)
    next_serial = max(MIN_SERIAL, max_observed + 1)
    claimed = set()

    desired_keys: Dict[str, UniqueKeyUpsert] = {}
    desired_registry: Dict[str, RegistryUpsert] = {}
    final_max = MIN_SERIAL - 1

    for record, serial in zip(canonicals, observed):
        if serial is not None and serial not in claimed:
            final_serial = serial
        else:
            while next_serial in claimed:
                next_serial += 1
            final_serial = next_serial
            next_serial += 1
        claimed.add(final_serial)
        final_max = max(final_max, final_serial)
        final_id = format_id(lead_type, final_serial)

        values: Dict[str, Any] = {}
        current_id = (record.edunity_id or "").strip()
        id_reassigned = False
        if current_id != final_id:
            values["edunity_id"] = final_id
            values["edunity_id_serial"] = final_serial
            if current_id:
                values["id_reassigned_from"] = current_id
            id_reassigned = True
            plan.id_reassignments.append(
                IdReassignment(record.lead_id, current_id or "(empty)", final_id)
            )
        elif record.edunity_id_serial != final_serial:
            values["edunity_id_serial"] = final_serial

        email, phone = record.contact_email, record.contact_phone
        if email and (record.email != email or record.email_normalized != email):
            values["email"] = email
            values["email_normalized"] = email
        if phone and (record.phone != phone or record.phone_normalized != phone):
            values["phone"] = phone
            values["phone_normalized"] = phone
        if values:
            plan.updates.append(CanonicalUpdate(record.lead_id, values, id_reassigned))

        desired_registry[final_id] = RegistryUpsert(final_id, record.lead_id, final_serial)
        for key_type, value in ((EMAIL_KEY_TYPE, email), (PHONE_KEY_TYPE, phone)):
            if not value:
                continue
            key = contact_key(key_type, value)
            desired_keys.setdefault(
                key, UniqueKeyUpsert(key, key_type, value, record.lead_id)
            )

    plan.unique_key_upserts = [
        entry for key, entry in desired_keys.items() if unique_keys.get(key) != entry.lead_id
    ]
    plan.unique_key_deletes = sorted(k for k in unique_keys if k not in desired_keys)

    if lead_type.uses_id_registry:
        plan.registry_upserts = [
            entry
            for edunity_id, entry in desired_registry.items()
            if registry.get(edunity_id) != (entry.lead_id, entry.serial)
        ]
        plan.registry_deletes = sorted(k for k in registry if k not in desired_registry)

    # The counter only ever moves forward.
    current = counter_current if counter_current is not None else MIN_SERIAL - 1
    plan.counter_target = max(current, final_max)
    return plan


# ---------------------------------------------------------------------------
# Applying
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class WriteOp:
    kind: str
    args: Tuple[Any, ...]


def build_write_units(plan: ReconciliationPlan) -> List[List[WriteOp]]:
    """Group the plan's writes into units that must commit together."""
    units: List[List[WriteOp]] = []
    for archive in plan.archives:
        units.append(
            [
                WriteOp("archive_lead", (archive.lead_id, archive.canonical_lead_id)),
                WriteOp("delete_lead", (archive.lead_id,)),
            ]
        )
    for update in plan.updates:
        units.append([WriteOp("update_lead", (update.lead_id, update.values, update.id_reassigned))])
    for upsert in plan.unique_key_upserts:
        units.append([WriteOp("upsert_unique_key", (upsert,))])
    for key in plan.unique_key_deletes:
        units.append([WriteOp("delete_unique_key", (key,))])
    for entry in plan.registry_upserts:
        units.append([WriteOp("upsert_registry", (entry,))])
    for edunity_id in plan.registry_deletes:
        units.append([WriteOp("delete_registry", (edunity_id,))])
    if plan.counter_changes:
        units.append([WriteOp("set_counter", (plan.counter_target,))])
    return units


def pack_batches(units: Iterable[List[WriteOp]], max_writes: int) -> List[List[WriteOp]]:
    """Greedily pack *units* into batches of at most *max_writes* ops.

    A unit is never split across batches.
    """
    batches: List[List[WriteOp]] = []
    current: List[WriteOp] = []
    for unit in units:
        if current and len(current) + len(unit) > max_writes:
            batches.append(current)
            current = []
        current.extend(unit)
    if current:
        batches.append(current)
    return batches


def _json_safe(value: Any) -> Any:
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, Decimal):
        return str(value)
    return value


def snapshot_lead(lead: Lead) -> Dict[str, Any]:
    """Copy every column of *lead* into a JSON-serialisable dict."""
    return {
        column.name: _json_safe(getattr(lead, column.key))
        for column in Lead.__table__.columns
    }


class LeadReconciler:
    """Loads reconciliation state for one lead type and applies plans."""

    def __init__(
        self,
        session_factory: async_sessionmaker,
        lead_type: LeadTypeConfig,
        batch_size: Optional[int] = None,
        cache: Optional[CacheService] = None,
    ) -> None:
        self._session_factory = session_factory
        self._lead_type = lead_type
        self._batch_size = batch_size or settings.RECONCILE_BATCH_SIZE
        self._cache = cache or CacheService()

    async def build_plan(self) -> ReconciliationPlan:
        async with self._session_factory() as session:
            leads = await LeadRepository(session).list_by_type(self._lead_type.name)
            keys = await UniqueKeyRepository(session).list_by_type(self._lead_type.name)
            registry: Dict[str, Tuple[str, int]] = {}
            if self._lead_type.uses_id_registry:
                entries = await IdRegistryRepository(session).list_by_type(
                    self._lead_type.name
                )
                registry = {e.edunity_id: (e.lead_id, e.edunity_id_serial) for e in entries}
            counter = await CounterRepository(session).get(self._lead_type.counter_name)

        logger.info("Loaded %d %s leads for reconciliation", len(leads), self._lead_type.name)
        return plan_reconciliation(
            self._lead_type,
            [LeadRecord.from_model(lead) for lead in leads],
            {k.key: k.lead_id for k in keys},
            registry,
            counter.current if counter is not None else None,
        )

    async def apply(self, plan: ReconciliationPlan) -> int:
        """Commit the plan batch by batch; return the number of write ops."""
        batches = pack_batches(build_write_units(plan), self._batch_size)
        committed = 0
        for number, batch in enumerate(batches, start=1):
            async with self._session_factory() as session:
                async with session.begin():
                    for op in batch:
                        await self._execute(session, op)
            await self._sync_contact_claims(batch)
            committed += len(batch)
            logger.info(
                "Committed reconciliation batch %d/%d (%d writes)",
                number,
                len(batches),
                len(batch),
            )
        return committed

    async def _sync_contact_claims(self, batch: List[WriteOp]) -> None:
        """Point cached contact claims at the owners a committed batch left."""
        lead_type = self._lead_type.name
        for op in batch:
            if op.kind == "upsert_unique_key":
                (entry,) = op.args
                await self._cache.set_contact_claim(
                    lead_type,
                    entry.key,
                    entry.lead_id,
                    ttl=settings.REDIS_CONTACT_CLAIM_TTL,
                )
            elif op.kind == "delete_unique_key":
                await self._cache.delete_contact_claim(lead_type, op.args[0])

    async def _execute(self, session: AsyncSession, op: WriteOp) -> None:
        lead_type = self._lead_type.name
        leads = LeadRepository(session)

        if op.kind == "archive_lead":
            lead_id, canonical_lead_id = op.args
            lead = await leads.get_by_id(lead_id)
            if lead is None:
                logger.warning("Lead %s already gone; skipping archive", lead_id)
                return
            await ArchiveRepository(session).archive(
                lead_type,
                lead_id,
                canonical_lead_id,
                ARCHIVE_REASON_DUPLICATE,
                snapshot_lead(lead),
            )
        elif op.kind == "delete_lead":
            await leads.delete(op.args[0])
        elif op.kind == "update_lead":
            lead_id, values, id_reassigned = op.args
            values = dict(values)
            if id_reassigned:
                values["id_reassigned_at"] = datetime.now(timezone.utc)
            await leads.update_fields(lead_id, values)
        elif op.kind == "upsert_unique_key":
            (entry,) = op.args
            await UniqueKeyRepository(session).upsert(
                lead_type, entry.key, entry.key_type, entry.value, entry.lead_id
            )
        elif op.kind == "delete_unique_key":
            await UniqueKeyRepository(session).delete(lead_type, op.args[0])
        elif op.kind == "upsert_registry":
            (entry,) = op.args
            await IdRegistryRepository(session).upsert(
                lead_type, entry.edunity_id, entry.lead_id, entry.serial
            )
        elif op.kind == "delete_registry":
            await IdRegistryRepository(session).delete(lead_type, op.args[0])
        elif op.kind == "set_counter":
            await CounterRepository(session).set_current(
                self._lead_type.counter_name, op.args[0]
            )
        else:
            raise ValueError(f"Unknown reconciliation write: {op.kind}")
