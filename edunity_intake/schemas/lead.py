"""Lead intake schemas (teacher interest, parent request, responses)."""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from edunity_intake.schemas.common import SuccessResponse


def _strip(value: Any) -> Any:
    return value.strip() if isinstance(value, str) else value


# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------


class TeacherLeadCreate(BaseModel):
    """Teacher-interest form submission.

    ``email`` and ``phone`` are deliberately plain strings: emptiness is
    reported by the allocator as ``MISSING_CONTACT_KEY`` (HTTP 400)
    rather than as a schema error.
    """

    full_name: str = Field(..., min_length=1, max_length=200)
    email: str = Field("", max_length=255)
    phone: str = Field("", max_length=32)
    state: str = ""
    lga: str = ""
    area: str = ""
    subjects: List[str] = Field(default_factory=list)
    min_class: str = ""
    max_class: str = ""
    exam_focus: List[str] = Field(default_factory=list)
    availability: str = ""
    lesson_type: str = ""
    private_tutoring: str = ""
    teaching_experience: str = ""
    consent: bool = False

    @field_validator("full_name", mode="before")
    @classmethod
    def strip_name(cls, value: Any) -> Any:
        return _strip(value)


class LearnerIn(BaseModel):
    name: str = ""
    learner_class: str = ""


class ParentRequestCreate(BaseModel):
    """Parent tutoring-request form submission."""

    parent_full_name: str = Field(..., min_length=1, max_length=200)
    parent_email: str = Field("", max_length=255)
    parent_phone: str = Field("", max_length=32)
    relationship_to_learner: str = Field(..., min_length=1)
    learner_name: str = Field(..., min_length=1)
    requested_subjects: List[str] = Field(..., min_length=1)
    number_of_learners: int = Field(1, ge=1)
    learner_class: str = ""
    learners: List[LearnerIn] = Field(default_factory=list)
    state: str = ""
    lga: str = ""
    area: str = ""
    exam_focus: List[str] = Field(default_factory=list)
    lesson_type: str = ""
    preferred_schedule: str = ""
    urgency: str = ""
    additional_notes: str = ""
    consent: bool = False

    @field_validator(
        "parent_full_name",
        "relationship_to_learner",
        "learner_name",
        "preferred_schedule",
        "additional_notes",
        mode="before",
    )
    @classmethod
    def strip_text(cls, value: Any) -> Any:
        return _strip(value)

    @field_validator("requested_subjects")
    @classmethod
    def drop_blank_subjects(cls, value: List[str]) -> List[str]:
        subjects = [s.strip() for s in value if s and s.strip()]
        if not subjects:
            raise ValueError("requested_subjects must contain at least one subject")
        return subjects


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class LeadIntakeResponse(SuccessResponse):
    """Returned after a lead has been persisted with its Edunity ID."""

    lead_id: str
    edunity_id: str
    edunity_id_serial: int


class LeadOut(BaseModel):
    """Read model for a single lead."""

    model_config = ConfigDict(from_attributes=True)

    lead_id: str
    lead_type: str
    edunity_id: Optional[str] = None
    edunity_id_serial: Optional[int] = None
    full_name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    status: str
    source: Optional[str] = None
    details: Dict[str, Any] = Field(default_factory=dict)
    id_reassigned_from: Optional[str] = None
    created_at: Optional[datetime] = None
