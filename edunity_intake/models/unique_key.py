from sqlalchemy import CheckConstraint, Column, DateTime, String
from sqlalchemy.sql import func

from edunity_intake.models.base import Base


class LeadUniqueKey(Base):
    """Uniqueness Index entry: ``email:<v>`` / ``phone:<v>`` -> owning lead.

    An entry must exist exactly while a live lead claims that identity.
    """

    __tablename__ = "lead_unique_keys"
    lead_type = Column(String(20), primary_key=True)
    key = Column(String(300), primary_key=True)
    key_type = Column(String(10), nullable=False)
    value = Column(String(255), nullable=False)
    lead_id = Column(String(64), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    __table_args__ = (
        CheckConstraint("key_type IN ('email', 'phone')", name="ck_unique_key_type"),
    )
