from sqlalchemy import Boolean, Column, DateTime, JSON, String, Text
from sqlalchemy.sql import func

from edunity_intake.models.base import Base


class TeacherFollowUpDocument(Base):
    """Documents and consents collected from a teacher lead after intake.

    ``documents`` maps a document key (see ``DOCUMENT_KEYS``) to upload
    metadata; ``consents`` maps a consent key to a boolean.
    """

    __tablename__ = "teacher_follow_up_documents"
    edunity_id = Column(String(32), primary_key=True)
    lead_id = Column(String(64), nullable=False)
    nysc_applicable = Column(Boolean, nullable=False, default=False)
    reference_contact = Column(String(255))
    documents = Column(JSON, nullable=False, default=dict)
    consents = Column(JSON, nullable=False, default=dict)
    status = Column(String(30), nullable=False, default="pending")
    pushed_to_sales_at = Column(DateTime(timezone=True))
    pushed_to_sales_by_user_id = Column(String(100))
    sales_note = Column(Text)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )
