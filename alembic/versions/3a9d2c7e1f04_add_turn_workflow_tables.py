"""add turn workflow tables

Revision ID: 3a9d2c7e1f04
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "3a9d2c7e1f04"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table(
        "properties",
        sa.Column("id", sa.BigInteger(), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("address", sa.String(), nullable=False),
        sa.Column("city", sa.String(), nullable=True),
        sa.Column("state", sa.String(), nullable=True),
        sa.Column("zip", sa.String(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_properties_id", "properties", ["id"], unique=False)

    op.create_table(
        "vendors",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("email", sa.String(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_vendors_id", "vendors", ["id"], unique=False)

    op.create_table(
        "app_users",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("email", sa.String(), nullable=False),
        sa.Column("name", sa.String(), nullable=True),
        sa.Column("role", sa.String(), nullable=False, server_default="PROPERTY_MANAGER"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_app_users_id", "app_users", ["id"], unique=False)
    op.create_index("ix_app_users_email", "app_users", ["email"], unique=True)
    op.create_index("ix_app_users_role", "app_users", ["role"], unique=False)

    op.create_table(
        "turn_stages",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("key", sa.String(length=50), nullable=False),
        sa.Column("sequence", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("color", sa.String(length=20), nullable=True),
        sa.Column("description", sa.String(length=500), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("is_default", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("is_final", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("requires_approval", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("requires_vendor", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("requires_amount", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("requires_lock_box", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("auto_status", sa.String(length=20), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_turn_stages_id", "turn_stages", ["id"], unique=False)
    op.create_index("ix_turn_stages_key", "turn_stages", ["key"], unique=True)
    op.create_index("ix_turn_stages_sequence", "turn_stages", ["sequence"], unique=False)

    op.create_table(
        "turns",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("turn_number", sa.String(length=50), nullable=False),
        sa.Column("property_id", sa.BigInteger(), sa.ForeignKey("properties.id"), nullable=False),
        sa.Column("vendor_id", sa.String(length=36), sa.ForeignKey("vendors.id"), nullable=True),
        sa.Column("stage_id", sa.String(length=36), sa.ForeignKey("turn_stages.id"), nullable=True),
        sa.Column("status", sa.String(), nullable=False, server_default="draft"),
        sa.Column("priority", sa.String(), nullable=False, server_default="medium"),
        sa.Column("estimated_cost", sa.Numeric(10, 2), nullable=True),
        sa.Column("actual_cost", sa.Numeric(10, 2), nullable=True),
        sa.Column("needs_dfo_approval", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("needs_ho_approval", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("dfo_approved_by", sa.String(), nullable=True),
        sa.Column("dfo_approved_at", sa.BigInteger(), nullable=True),
        sa.Column("ho_approved_by", sa.String(), nullable=True),
        sa.Column("ho_approved_at", sa.BigInteger(), nullable=True),
        sa.Column("rejection_reason", sa.Text(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("stage_entered_at", sa.BigInteger(), nullable=True),
        sa.Column("created_at", sa.BigInteger(), nullable=False),
        sa.Column("updated_at", sa.BigInteger(), nullable=False),
        sa.Column("version", sa.Integer(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_turns_id", "turns", ["id"], unique=False)
    op.create_index("ix_turns_turn_number", "turns", ["turn_number"], unique=True)
    op.create_index("ix_turns_property_id", "turns", ["property_id"], unique=False)
    op.create_index("ix_turns_vendor_id", "turns", ["vendor_id"], unique=False)
    op.create_index("ix_turns_stage_id", "turns", ["stage_id"], unique=False)
    op.create_index("ix_turns_status", "turns", ["status"], unique=False)

    op.create_table(
        "turn_stage_history",
        sa.Column("id", sa.BigInteger(), nullable=False),
        sa.Column("turn_id", sa.String(length=36), sa.ForeignKey("turns.id"), nullable=False),
        sa.Column("from_stage_id", sa.String(length=36), sa.ForeignKey("turn_stages.id"), nullable=True),
        sa.Column("to_stage_id", sa.String(length=36), sa.ForeignKey("turn_stages.id"), nullable=False),
        sa.Column("transitioned_by", sa.String(), nullable=False),
        sa.Column("transition_reason", sa.Text(), nullable=True),
        sa.Column("duration_in_stage", sa.BigInteger(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_turn_stage_history_id", "turn_stage_history", ["id"], unique=False)
    op.create_index("ix_turn_stage_history_turn_id", "turn_stage_history", ["turn_id"], unique=False)

    op.create_table(
        "approval_thresholds",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("min_amount", sa.Numeric(10, 2), nullable=False),
        sa.Column("max_amount", sa.Numeric(10, 2), nullable=True),
        sa.Column("approval_type", sa.String(), nullable=False),
        sa.Column("requires_sequential", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_approval_thresholds_id", "approval_thresholds", ["id"], unique=False)
    op.create_index("ix_approval_thresholds_approval_type", "approval_thresholds", ["approval_type"], unique=False)
    op.create_index("ix_approval_thresholds_is_active", "approval_thresholds", ["is_active"], unique=False)

    op.create_table(
        "approvals",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("turn_id", sa.String(length=36), sa.ForeignKey("turns.id"), nullable=False),
        sa.Column("type", sa.String(), nullable=False),
        sa.Column("status", sa.String(), nullable=False, server_default="pending"),
        sa.Column("requested_by", sa.String(), nullable=False),
        sa.Column("amount", sa.Numeric(10, 2), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("approved_by", sa.String(), nullable=True),
        sa.Column("approved_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("rejected_by", sa.String(), nullable=True),
        sa.Column("rejected_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("rejection_reason", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_approvals_id", "approvals", ["id"], unique=False)
    op.create_index("ix_approvals_turn_id", "approvals", ["turn_id"], unique=False)
    op.create_index("ix_approvals_requested_by", "approvals", ["requested_by"], unique=False)
    op.create_index(
        "uq_approvals_turn_type_pending",
        "approvals",
        ["turn_id", "type"],
        unique=True,
        postgresql_where=sa.text("status = 'pending'"),
    )

    op.create_table(
        "audit_logs",
        sa.Column("id", sa.BigInteger(), nullable=False),
        sa.Column("table_name", sa.String(length=100), nullable=False),
        sa.Column("record_id", sa.String(), nullable=False),
        sa.Column("action", sa.String(length=20), nullable=False),
        sa.Column("user_id", sa.String(), nullable=False),
        sa.Column("user_email", sa.String(), nullable=True),
        sa.Column("user_role", sa.String(), nullable=True),
        sa.Column("old_values", sa.JSON(), nullable=True),
        sa.Column("new_values", sa.JSON(), nullable=True),
        sa.Column("changed_fields", sa.JSON(), nullable=True),
        sa.Column("property_id", sa.BigInteger(), nullable=True),
        sa.Column("turn_id", sa.String(length=36), nullable=True),
        sa.Column("vendor_id", sa.String(length=36), nullable=True),
        sa.Column("context", sa.Text(), nullable=True),
        sa.Column("metadata", sa.JSON(), nullable=True),
        sa.Column("ip_address", sa.String(length=64), nullable=True),
        sa.Column("user_agent", sa.String(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_audit_logs_id", "audit_logs", ["id"], unique=False)
    op.create_index("ix_audit_logs_table_name", "audit_logs", ["table_name"], unique=False)
    op.create_index("ix_audit_logs_record_id", "audit_logs", ["record_id"], unique=False)
    op.create_index("ix_audit_logs_action", "audit_logs", ["action"], unique=False)
    op.create_index("ix_audit_logs_user_id", "audit_logs", ["user_id"], unique=False)
    op.create_index("ix_audit_logs_user_email", "audit_logs", ["user_email"], unique=False)
    op.create_index("ix_audit_logs_property_id", "audit_logs", ["property_id"], unique=False)
    op.create_index("ix_audit_logs_turn_id", "audit_logs", ["turn_id"], unique=False)
    op.create_index("ix_audit_logs_vendor_id", "audit_logs", ["vendor_id"], unique=False)
    op.create_index("ix_audit_logs_created_at", "audit_logs", ["created_at"], unique=False)


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_table("audit_logs")
    op.drop_index("uq_approvals_turn_type_pending", table_name="approvals")
    op.drop_table("approvals")
    op.drop_table("approval_thresholds")
    op.drop_table("turn_stage_history")
    op.drop_table("turns")
    op.drop_table("turn_stages")
    op.drop_table("app_users")
    op.drop_table("vendors")
    op.drop_table("properties")
