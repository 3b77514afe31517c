"""calendar slot engine tables

Revision ID: 0001
Revises:
Create Date: 2025-06-16
"""
from alembic import op
import sqlalchemy as sa

revision = "0001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        "businesses",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("name", sa.Text, nullable=False),
        sa.Column("timezone", sa.Text),
        sa.Column("business_hours", sa.Text),
        sa.Column("slot_duration_minutes", sa.Integer, nullable=False, server_default=sa.text("60")),
        sa.Column("slot_step_minutes", sa.Integer, nullable=False, server_default=sa.text("30")),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.text("true")),
        sa.Column("onboarding_completed", sa.Boolean, nullable=False, server_default=sa.text("false")),
        sa.Column("created_at", sa.DateTime, server_default=sa.text("CURRENT_TIMESTAMP")),
    )

    op.create_table(
        "service_types",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("business_id", sa.Integer, sa.ForeignKey("businesses.id", ondelete="CASCADE"), nullable=False),
        sa.Column("name", sa.Text, nullable=False),
        sa.Column("duration_minutes", sa.Integer, nullable=False, server_default=sa.text("60")),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.text("true")),
    )

    op.create_table(
        "calendar_slots",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("business_id", sa.Integer, sa.ForeignKey("businesses.id", ondelete="CASCADE"), nullable=False),
        sa.Column("slot_start", sa.DateTime, nullable=False),
        sa.Column("slot_end", sa.DateTime, nullable=False),
        sa.Column("is_available", sa.Boolean, nullable=False, server_default=sa.text("true")),
        sa.Column("is_blocked", sa.Boolean, nullable=False, server_default=sa.text("false")),
        sa.Column("block_reason", sa.Text),
        sa.Column("created_at", sa.DateTime, server_default=sa.text("CURRENT_TIMESTAMP")),
        sa.UniqueConstraint("business_id", "slot_start", name="uq_calendar_slots_business_start"),
    )
    op.create_index(
        "idx_calendar_slots_bookable",
        "calendar_slots",
        ["business_id", "slot_start"],
        postgresql_where=sa.text("is_available AND NOT is_blocked"),
        sqlite_where=sa.text("is_available AND NOT is_blocked"),
    )

    op.create_table(
        "appointments",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("business_id", sa.Integer, sa.ForeignKey("businesses.id", ondelete="CASCADE"), nullable=False),
        sa.Column("service_type_id", sa.Integer, sa.ForeignKey("service_types.id", ondelete="SET NULL")),
        sa.Column("start_time", sa.DateTime, nullable=False),
        sa.Column("end_time", sa.DateTime, nullable=False),
        sa.Column("duration_minutes", sa.Integer, nullable=False),
        sa.Column("status", sa.Text, nullable=False, server_default=sa.text("'scheduled'")),
        sa.Column("customer_name", sa.Text),
        sa.Column("customer_phone", sa.Text),
        sa.Column("customer_email", sa.Text),
        sa.Column("customer_address", sa.Text),
        sa.Column("issue_description", sa.Text),
        sa.Column("booking_source", sa.Text),
        sa.Column("call_sid", sa.Text),
        sa.Column("created_at", sa.DateTime, server_default=sa.text("CURRENT_TIMESTAMP")),
    )
    op.create_index("idx_appointments_business_time", "appointments", ["business_id", "start_time"])


def downgrade():
    op.drop_index("idx_appointments_business_time", table_name="appointments")
    op.drop_table("appointments")
    op.drop_index("idx_calendar_slots_bookable", table_name="calendar_slots")
    op.drop_table("calendar_slots")
    op.drop_table("service_types")
    op.drop_table("businesses")
