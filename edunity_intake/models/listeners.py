from datetime import datetime, timezone

from sqlalchemy import event

from edunity_intake.models.lead import Lead
from edunity_intake.models.counter import LeadCounter
from edunity_intake.models.unique_key import LeadUniqueKey
from edunity_intake.models.id_registry import LeadIdRegistryEntry
from edunity_intake.models.follow_up_document import TeacherFollowUpDocument


# Auto updated_at
@event.listens_for(Lead, "before_update")
@event.listens_for(LeadCounter, "before_update")
@event.listens_for(LeadUniqueKey, "before_update")
@event.listens_for(LeadIdRegistryEntry, "before_update")
@event.listens_for(TeacherFollowUpDocument, "before_update")
def update_timestamp(mapper, connection, target):
    target.updated_at = datetime.now(timezone.utc)
