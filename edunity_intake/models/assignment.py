from sqlalchemy import Column, DateTime, ForeignKey, String
from sqlalchemy.sql import func

from edunity_intake.models.base import Base


class LeadAssignment(Base):
    """Staff member currently responsible for a lead.

    Each lead has at most one assignment; re-assigning overwrites it.
    """

    __tablename__ = "lead_assignments"
    lead_id = Column(
        String(64),
        ForeignKey("leads.lead_id", ondelete="CASCADE"),
        primary_key=True,
    )
    lead_type = Column(String(20), nullable=False)
    assigned_user_id = Column(String(100), nullable=False)
    assigned_user_name = Column(String(200), nullable=False, server_default="")
    assigned_by_user_id = Column(String(100), nullable=False, server_default="")
    assigned_by_name = Column(String(200), nullable=False, server_default="")
    assigned_at = Column(DateTime(timezone=True), server_default=func.now())
