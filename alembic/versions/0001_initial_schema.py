"""initial bazaar schema

Revision ID: 0001_initial_schema
Revises:
Create Date: 2026-10-18 00:00:00
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


revision: str = "0001_initial_schema"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    ]


def upgrade() -> None:
    op.create_table(
        "vendors",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("company_name", sa.String(255), nullable=False),
        sa.Column("is_verified", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("verification_status", sa.String(20), nullable=False, server_default="pending"),
        sa.Column("logo_url", sa.String(500), nullable=True),
        sa.Column("tax_card_url", sa.String(500), nullable=True),
        sa.Column("documents_url", sa.String(500), nullable=True),
        sa.Column("loyalty_forum", sa.String(500), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_vendors_email", "vendors", ["email"], unique=True)
    op.create_index("ix_vendors_company_name", "vendors", ["company_name"])

    op.create_table(
        "events",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("event_type", sa.String(50), nullable=False),
        sa.Column("location", sa.String(100), nullable=True),
        sa.Column("start_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("end_date", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_events_event_type", "events", ["event_type"])

    op.create_table(
        "bazaar_applications",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column(
            "vendor_id",
            sa.String(36),
            sa.ForeignKey("vendors.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("event_id", sa.String(36), nullable=False),
        sa.Column("status", sa.String(20), nullable=False),
        sa.Column("application_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("decision_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("rejection_reason", sa.Text(), nullable=True),
        sa.Column("attendees", sa.JSON(), nullable=False),
        sa.Column("booth_size", sa.String(10), nullable=False),
        sa.Column("booth_location", sa.String(255), nullable=True),
        sa.Column("booth_start_time", sa.DateTime(timezone=True), nullable=True),
        sa.Column("booth_end_time", sa.DateTime(timezone=True), nullable=True),
        sa.Column("booth_duration_weeks", sa.Float(), nullable=True),
        sa.Column("payment_amount", sa.Numeric(12, 3), nullable=True),
        sa.Column("payment_currency", sa.String(3), nullable=True),
        sa.Column("payment_status", sa.String(20), nullable=True),
        sa.Column("payment_due_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("paid_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("receipt_number", sa.String(50), nullable=True),
        sa.Column("transaction_reference", sa.String(255), nullable=True),
        sa.Column("qr_codes", sa.JSON(), nullable=False),
        *_timestamps(),
        sa.UniqueConstraint("vendor_id", "event_id", name="uq_application_vendor_event"),
    )
    op.create_index("ix_bazaar_applications_vendor_id", "bazaar_applications", ["vendor_id"])
    op.create_index("ix_bazaar_applications_event_id", "bazaar_applications", ["event_id"])
    op.create_index("ix_bazaar_applications_status", "bazaar_applications", ["status"])
    op.create_index(
        "ix_bazaar_applications_payment_status", "bazaar_applications", ["payment_status"]
    )
    op.create_index(
        "ix_bazaar_applications_transaction_reference",
        "bazaar_applications",
        ["transaction_reference"],
    )

    op.create_table(
        "audit_trail",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("actor_id", sa.String(64), nullable=True),
        sa.Column("actor_role", sa.String(30), nullable=True),
        sa.Column("action", sa.String(100), nullable=False),
        sa.Column("entity_type", sa.String(100), nullable=False),
        sa.Column("entity_id", sa.String(36), nullable=True),
        sa.Column("old_value", sa.JSON(), nullable=True),
        sa.Column("new_value", sa.JSON(), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("ix_audit_trail_actor_id", "audit_trail", ["actor_id"])
    op.create_index("ix_audit_trail_action", "audit_trail", ["action"])
    op.create_index("ix_audit_trail_entity_type", "audit_trail", ["entity_type"])
    op.create_index("ix_audit_trail_entity_id", "audit_trail", ["entity_id"])
    op.create_index("ix_audit_trail_created_at", "audit_trail", ["created_at"])


def downgrade() -> None:
    op.drop_table("audit_trail")
    op.drop_table("bazaar_applications")
    op.drop_table("events")
    op.drop_table("vendors")
