from edunity_intake.schemas.common import (
    DocumentationStatus,
    SuccessResponse,
)
from edunity_intake.schemas.lead import (
    LeadIntakeResponse,
    LeadOut,
    ParentRequestCreate,
    TeacherLeadCreate,
)
from edunity_intake.schemas.assignment import AssignmentOut, AssignmentUpdate
from edunity_intake.schemas.documents import (
    DocumentProgressOut,
    FollowUpDocumentsUpdate,
    UploadedDocument,
)

__all__ = [
    "DocumentationStatus",
    "SuccessResponse",
    "LeadIntakeResponse",
    "LeadOut",
    "ParentRequestCreate",
    "TeacherLeadCreate",
    "AssignmentOut",
    "AssignmentUpdate",
    "DocumentProgressOut",
    "FollowUpDocumentsUpdate",
    "UploadedDocument",
]
