from edunity_intake.models.base import Base
from edunity_intake.models.lead import Lead
from edunity_intake.models.counter import LeadCounter
from edunity_intake.models.unique_key import LeadUniqueKey
from edunity_intake.models.id_registry import LeadIdRegistryEntry
from edunity_intake.models.archive import LeadArchive
from edunity_intake.models.assignment import LeadAssignment
from edunity_intake.models.follow_up_document import TeacherFollowUpDocument

# Import event listeners to register them
from edunity_intake.models import listeners  # noqa: F401

__all__ = [
    "Base",
    "Lead",
    "LeadCounter",
    "LeadUniqueKey",
    "LeadIdRegistryEntry",
    "LeadArchive",
    "LeadAssignment",
    "TeacherFollowUpDocument",
]
