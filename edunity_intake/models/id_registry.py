from sqlalchemy import Column, DateTime, Integer, String
from sqlalchemy.sql import func

from edunity_intake.models.base import Base


class LeadIdRegistryEntry(Base):
    """ID Registry entry: which storage key currently owns an Edunity ID."""

    __tablename__ = "lead_id_registry"
    lead_type = Column(String(20), primary_key=True)
    edunity_id = Column(String(32), primary_key=True)
    lead_id = Column(String(64), nullable=False)
    edunity_id_serial = Column(Integer, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )
