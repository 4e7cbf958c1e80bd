from sqlalchemy import Column, DateTime, Index, Integer, JSON, String
from sqlalchemy.sql import func

from edunity_intake.models.base import Base


class Lead(Base):
    """Teacher-interest or parent-request record submitted through a form.

    ``lead_id`` is the opaque storage key.  It equals the Edunity ID handed
    out at creation and never changes afterwards, even if reconciliation
    later reassigns ``edunity_id`` (the prior value is kept in
    ``id_reassigned_from``).  Form-specific fields live in ``details``.
    """

    __tablename__ = "leads"
    lead_id = Column(String(64), primary_key=True)
    lead_type = Column(String(20), nullable=False)
    edunity_id = Column(String(32))
    edunity_id_serial = Column(Integer)
    full_name = Column(String(200))
    email = Column(String(255))
    email_normalized = Column(String(255))
    phone = Column(String(32))
    phone_normalized = Column(String(32))
    status = Column(String(30), nullable=False, server_default="new")
    source = Column(String(50))
    details = Column(JSON, nullable=False, default=dict)
    id_reassigned_from = Column(String(32))
    id_reassigned_at = Column(DateTime(timezone=True))
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    __table_args__ = (
        # NOTE: no UNIQUE on edunity_id or the contact columns.  Legacy and
        # fallback-imported rows may violate them until reconciliation runs;
        # uniqueness for new rows is enforced by lead_unique_keys and
        # lead_id_registry inside the allocation transaction.
        Index("idx_leads_type_edunity_id", "lead_type", "edunity_id"),
        Index("idx_leads_type_email", "lead_type", "email_normalized"),
        Index("idx_leads_type_phone", "lead_type", "phone_normalized"),
    )
