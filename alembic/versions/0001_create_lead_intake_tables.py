"""create lead intake tables

Revision ID: 0001_lead_intake
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "0001_lead_intake"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps():
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    ]


def upgrade() -> None:
    # leads: no UNIQUE on edunity_id or contacts; side tables enforce those
    op.create_table(
        "leads",
        sa.Column("lead_id", sa.String(64), primary_key=True),
        sa.Column("lead_type", sa.String(20), nullable=False),
        sa.Column("edunity_id", sa.String(32)),
        sa.Column("edunity_id_serial", sa.Integer()),
        sa.Column("full_name", sa.String(200)),
        sa.Column("email", sa.String(255)),
        sa.Column("email_normalized", sa.String(255)),
        sa.Column("phone", sa.String(32)),
        sa.Column("phone_normalized", sa.String(32)),
        sa.Column("status", sa.String(30), nullable=False, server_default="new"),
        sa.Column("source", sa.String(50)),
        sa.Column("details", sa.JSON(), nullable=False),
        sa.Column("id_reassigned_from", sa.String(32)),
        sa.Column("id_reassigned_at", sa.DateTime(timezone=True)),
        *_timestamps(),
    )
    op.create_index("idx_leads_type_edunity_id", "leads", ["lead_type", "edunity_id"])
    op.create_index("idx_leads_type_email", "leads", ["lead_type", "email_normalized"])
    op.create_index("idx_leads_type_phone", "leads", ["lead_type", "phone_normalized"])

    op.create_table(
        "lead_counters",
        sa.Column("name", sa.String(64), primary_key=True),
        sa.Column("current", sa.Integer(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    op.create_table(
        "lead_unique_keys",
        sa.Column("lead_type", sa.String(20), primary_key=True),
        sa.Column("key", sa.String(300), primary_key=True),
        sa.Column("key_type", sa.String(10), nullable=False),
        sa.Column("value", sa.String(255), nullable=False),
        sa.Column("lead_id", sa.String(64), nullable=False),
        *_timestamps(),
        sa.CheckConstraint("key_type IN ('email', 'phone')", name="ck_unique_key_type"),
    )

    op.create_table(
        "lead_id_registry",
        sa.Column("lead_type", sa.String(20), primary_key=True),
        sa.Column("edunity_id", sa.String(32), primary_key=True),
        sa.Column("lead_id", sa.String(64), nullable=False),
        sa.Column("edunity_id_serial", sa.Integer(), nullable=False),
        *_timestamps(),
    )

    op.create_table(
        "lead_archive",
        sa.Column("lead_type", sa.String(20), primary_key=True),
        sa.Column("source_lead_id", sa.String(64), primary_key=True),
        sa.Column("canonical_lead_id", sa.String(64), nullable=False),
        sa.Column("archive_reason", sa.String(50), nullable=False),
        sa.Column("snapshot", sa.JSON(), nullable=False),
        sa.Column("archived_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    op.create_table(
        "lead_assignments",
        sa.Column(
            "lead_id",
            sa.String(64),
            sa.ForeignKey("leads.lead_id", ondelete="CASCADE"),
            primary_key=True,
        ),
        sa.Column("lead_type", sa.String(20), nullable=False),
        sa.Column("assigned_user_id", sa.String(100), nullable=False),
        sa.Column("assigned_user_name", sa.String(200), nullable=False, server_default=""),
        sa.Column("assigned_by_user_id", sa.String(100), nullable=False, server_default=""),
        sa.Column("assigned_by_name", sa.String(200), nullable=False, server_default=""),
        sa.Column("assigned_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    op.create_table(
        "teacher_follow_up_documents",
        sa.Column("edunity_id", sa.String(32), primary_key=True),
        sa.Column("lead_id", sa.String(64), nullable=False),
        sa.Column("nysc_applicable", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("reference_contact", sa.String(255)),
        sa.Column("documents", sa.JSON(), nullable=False),
        sa.Column("consents", sa.JSON(), nullable=False),
        sa.Column("status", sa.String(30), nullable=False, server_default="pending"),
        sa.Column("pushed_to_sales_at", sa.DateTime(timezone=True)),
        sa.Column("pushed_to_sales_by_user_id", sa.String(100)),
        sa.Column("sales_note", sa.Text()),
        *_timestamps(),
    )


def downgrade() -> None:
    op.drop_table("teacher_follow_up_documents")
    op.drop_table("lead_assignments")
    op.drop_table("lead_archive")
    op.drop_table("lead_id_registry")
    op.drop_table("lead_unique_keys")
    op.drop_table("lead_counters")
    op.drop_index("idx_leads_type_phone", table_name="leads")
    op.drop_index("idx_leads_type_email", table_name="leads")
    op.drop_index("idx_leads_type_edunity_id", table_name="leads")
    op.drop_table("leads")
