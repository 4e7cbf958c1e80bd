from sqlalchemy import Column, DateTime, Integer, String
from sqlalchemy.sql import func

from edunity_intake.models.base import Base


class LeadCounter(Base):
    """Serial Counter: the highest serial ever allocated for one lead type.

    ``current`` only moves forward.  Every value it has held was
    allocated to exactly one lead at some point.
    """

    __tablename__ = "lead_counters"
    name = Column(String(64), primary_key=True)
    current = Column(Integer, nullable=False)
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

