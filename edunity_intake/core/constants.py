from typing import FrozenSet, List

# Lowest serial the allocator will ever hand out; keeps real IDs visually
# distinct from low test/debug numbers.
MIN_SERIAL: int = 101

SERIAL_DIGITS: int = 5

EMAIL_KEY_TYPE: str = "email"
PHONE_KEY_TYPE: str = "phone"

ARCHIVE_REASON_DUPLICATE: str = "duplicate_contact"

TEACHER_FORM_SOURCE: str = "teacher_form"
PARENT_FORM_SOURCE: str = "parent_form"

# Teacher follow-up documents
REQUIRED_DOCUMENT_KEYS_BASE: List[str] = [
    "cv_pdf",
    "passport_photo",
    "valid_id",
    "highest_qualification_certificate",
]
NYSC_DOCUMENT_KEY: str = "nysc_certificate"
OPTIONAL_DOCUMENT_KEYS: List[str] = [
    "trcn_certificate",
    "other_supporting_document",
]
DOCUMENT_KEYS: FrozenSet[str] = frozenset(
    REQUIRED_DOCUMENT_KEYS_BASE + [NYSC_DOCUMENT_KEY] + OPTIONAL_DOCUMENT_KEYS
)

CONSENT_KEYS: List[str] = [
    "background_check_consent",
    "safeguarding_policy_acknowledgement",
    "data_processing_consent",
]
