from sqlalchemy import Column, DateTime, JSON, String
from sqlalchemy.sql import func

from edunity_intake.models.base import Base


class LeadArchive(Base):
    """Duplicate lead moved out of ``leads`` by reconciliation.

    ``snapshot`` is the verbatim row; the remaining columns are audit fields.
    """

    __tablename__ = "lead_archive"
    lead_type = Column(String(20), primary_key=True)
    source_lead_id = Column(String(64), primary_key=True)
    canonical_lead_id = Column(String(64), nullable=False)
    archive_reason = Column(String(50), nullable=False)
    snapshot = Column(JSON, nullable=False)
    archived_at = Column(DateTime(timezone=True), server_default=func.now())
