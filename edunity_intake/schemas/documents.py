"""Teacher follow-up document schemas."""

from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, Field, field_validator

from edunity_intake.core.constants import CONSENT_KEYS, DOCUMENT_KEYS
from edunity_intake.schemas.common import DocumentationStatus


class UploadedDocument(BaseModel):
    file_name: str
    storage_path: str = ""
    download_url: str = ""
    content_type: str = ""
    size_bytes: int = Field(0, ge=0)
    uploaded_at: Optional[datetime] = None


class FollowUpDocumentsUpdate(BaseModel):
    """Request body for PUT /api/v1/teacher-leads/{edunity_id}/documents.

    Documents are merged into what is already stored; consents replace it.
    """

    nysc_applicable: Optional[bool] = None
    reference_contact: Optional[str] = None
    documents: Dict[str, UploadedDocument] = Field(default_factory=dict)
    consents: Optional[Dict[str, bool]] = None

    @field_validator("documents")
    @classmethod
    def known_document_keys(cls, value: Dict[str, UploadedDocument]):
        unknown = sorted(set(value) - DOCUMENT_KEYS)
        if unknown:
            raise ValueError(f"Unknown document keys: {', '.join(unknown)}")
        return value

    @field_validator("consents")
    @classmethod
    def known_consent_keys(cls, value: Optional[Dict[str, bool]]):
        if value is None:
            return value
        unknown = sorted(set(value) - set(CONSENT_KEYS))
        if unknown:
            raise ValueError(f"Unknown consent keys: {', '.join(unknown)}")
        return value


class DocumentProgressOut(BaseModel):
    edunity_id: str
    status: DocumentationStatus
    required_uploaded: int
    required_total: int
    missing_required_keys: List[str]
    consents_all_yes: bool
    has_any_upload: bool
