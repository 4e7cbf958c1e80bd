"""Teacher follow-up document collection and progress tracking."""

import logging
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, List, Mapping, Optional

from edunity_intake.core.constants import (
    CONSENT_KEYS,
    NYSC_DOCUMENT_KEY,
    OPTIONAL_DOCUMENT_KEYS,
    REQUIRED_DOCUMENT_KEYS_BASE,
)
from edunity_intake.core.edunity_id import normalize_id
from edunity_intake.core.exceptions import LeadNotFoundError
from edunity_intake.core.lead_types import TEACHER
from edunity_intake.models.follow_up_document import TeacherFollowUpDocument
from edunity_intake.repositories.follow_up_document_repository import (
    FollowUpDocumentRepository,
)
from edunity_intake.repositories.lead_repository import LeadRepository
from edunity_intake.schemas.documents import FollowUpDocumentsUpdate

logger = logging.getLogger(__name__)

_UNSAFE_SEGMENT = re.compile(r"[^a-z0-9._-]+")
_REPEATED_DASH = re.compile(r"-+")


@dataclass(frozen=True)
class DocumentProgress:
    status: str
    required_uploaded: int
    required_total: int
    missing_required_keys: List[str] = field(default_factory=list)
    consents_all_yes: bool = False
    has_any_upload: bool = False


def required_document_keys(nysc_applicable: bool) -> List[str]:
    if nysc_applicable:
        return REQUIRED_DOCUMENT_KEYS_BASE + [NYSC_DOCUMENT_KEY]
    return list(REQUIRED_DOCUMENT_KEYS_BASE)


def _has_upload(documents: Mapping[str, Any], key: str) -> bool:
    entry = documents.get(key) or {}
    url = entry.get("download_url") if isinstance(entry, Mapping) else None
    return bool(url and str(url).strip())


def compute_document_progress(
    documents: Optional[Mapping[str, Any]],
    consents: Optional[Mapping[str, Any]],
    nysc_applicable: bool = False,
    status: Optional[str] = None,
    pushed_to_sales_at: Optional[datetime] = None,
) -> DocumentProgress:
    """Derive the documentation status of a teacher from what was collected.

    ``pushed_to_sales`` is sticky.  Otherwise a record is ``complete``
    once every required document is uploaded and all consents are given,
    ``partial`` once anything at all was provided, else ``pending``.
    """
    documents = documents or {}
    consents = consents or {}
    required = required_document_keys(nysc_applicable)

    missing = [key for key in required if not _has_upload(documents, key)]
    uploaded = len(required) - len(missing)
    has_any_upload = any(
        _has_upload(documents, key) for key in required + OPTIONAL_DOCUMENT_KEYS
    )
    consent_values = [bool(consents.get(key)) for key in CONSENT_KEYS]
    consents_all_yes = all(consent_values)

    if status == "pushed_to_sales" or pushed_to_sales_at is not None:
        derived = "pushed_to_sales"
    elif not missing and consents_all_yes:
        derived = "complete"
    elif uploaded > 0 or has_any_upload or any(consent_values):
        derived = "partial"
    else:
        derived = "pending"

    return DocumentProgress(
        status=derived,
        required_uploaded=uploaded,
        required_total=len(required),
        missing_required_keys=missing,
        consents_all_yes=consents_all_yes,
        has_any_upload=has_any_upload,
    )


def _sanitize_segment(value: str) -> str:
    cleaned = _UNSAFE_SEGMENT.sub("-", value.strip().lower())
    return _REPEATED_DASH.sub("-", cleaned).strip("-")


def build_document_storage_path(
    edunity_id: str, key: str, file_name: str, now: Optional[datetime] = None
) -> str:
    """Object-storage path for an uploaded teacher document."""
    now = now or datetime.now(timezone.utc)
    millis = int(now.timestamp() * 1000)
    safe_id = _sanitize_segment(edunity_id)
    safe_name = _sanitize_segment(file_name) or f"{key}-file"
    return f"teacher-follow-up/{safe_id}/{key}/{millis}-{safe_name}"


class FollowUpDocumentService:
    """Stores teacher follow-up documents and reports their progress."""

    def __init__(
        self, lead_repo: LeadRepository, document_repo: FollowUpDocumentRepository
    ) -> None:
        self._lead_repo = lead_repo
        self._document_repo = document_repo

    async def get_progress(self, edunity_id: str) -> DocumentProgress:
        canonical_id = await self._resolve_teacher_id(edunity_id)
        record = await self._document_repo.get_by_edunity_id(canonical_id)
        if record is None:
            return compute_document_progress({}, {})
        return self._progress_for(record)

    async def record_documents(
        self, edunity_id: str, update: FollowUpDocumentsUpdate
    ) -> DocumentProgress:
        """Merge uploaded documents and consents, persist the new status."""
        canonical_id = await self._resolve_teacher_id(edunity_id)
        lead = await self._lead_repo.find_by_edunity_id(TEACHER.name, canonical_id)

        record = await self._document_repo.get_by_edunity_id(canonical_id)
        if record is None:
            record = await self._document_repo.create(
                edunity_id=canonical_id,
                lead_id=lead.lead_id,
                documents={},
                consents={key: False for key in CONSENT_KEYS},
                nysc_applicable=False,
                status="pending",
            )

        if update.nysc_applicable is not None:
            record.nysc_applicable = update.nysc_applicable
        if update.reference_contact is not None:
            record.reference_contact = update.reference_contact.strip()
        if update.documents:
            merged = dict(record.documents or {})
            for key, document in update.documents.items():
                merged[key] = document.model_dump(mode="json")
            # JSON columns only notice reassignment, not in-place mutation
            record.documents = merged
        if update.consents is not None:
            consents = dict(record.consents or {})
            consents.update(update.consents)
            record.consents = consents

        progress = self._progress_for(record)
        record.status = progress.status
        await self._document_repo.commit()
        logger.info(
            "Teacher %s documentation now %s (%d/%d required)",
            canonical_id,
            progress.status,
            progress.required_uploaded,
            progress.required_total,
        )
        return progress

    async def _resolve_teacher_id(self, edunity_id: str) -> str:
        canonical_id = normalize_id(TEACHER, edunity_id)
        if not canonical_id:
            raise LeadNotFoundError(f"Invalid teacher ID: {edunity_id}")
        lead = await self._lead_repo.find_by_edunity_id(TEACHER.name, canonical_id)
        if lead is None:
            raise LeadNotFoundError(f"No teacher lead with ID {canonical_id}")
        return canonical_id

    @staticmethod
    def _progress_for(record: TeacherFollowUpDocument) -> DocumentProgress:
        return compute_document_progress(
            record.documents,
            record.consents,
            nysc_applicable=bool(record.nysc_applicable),
            status=record.status,
            pushed_to_sales_at=record.pushed_to_sales_at,
        )
