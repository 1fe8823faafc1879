"""Baseline migration - tenants, quotes, orders, activity ledger, notifications

Revision ID: 0001_baseline
Revises:
Create Date: 2026-10-19

Fresh baseline for quotedesk. UUIDs are generated client-side so the schema
runs unchanged on PostgreSQL and SQLite.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '0001_baseline'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamp(name: str = "created_at") -> sa.Column:
    return sa.Column(name, sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now())


def upgrade() -> None:
    """Create all tables."""

    # ==========================================================================
    # Tenants and users
    # ==========================================================================
    op.create_table(
        "organizations",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("slug", sa.String(100), nullable=False, unique=True),
        sa.Column("org_number", sa.String(20), nullable=True),
        _timestamp(),
    )

    op.create_table(
        "users",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("email", sa.String(255), nullable=False, unique=True),
        sa.Column("display_name", sa.String(255), nullable=False),
        sa.Column("phone", sa.String(50), nullable=True),
        sa.Column("token_version", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        _timestamp(),
    )

    op.create_table(
        "memberships",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("user_id", sa.Uuid(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, unique=True),
        sa.Column("organization_id", sa.Uuid(), sa.ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False),
        sa.Column("role", sa.String(50), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        _timestamp(),
    )
    op.create_index("idx_memberships_org_id", "memberships", ["organization_id"])

    op.create_table(
        "teams",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("organization_id", sa.Uuid(), sa.ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("team_leader_id", sa.Uuid(), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        _timestamp(),
        sa.UniqueConstraint("organization_id", "name", name="uq_team_org_name"),
    )

    op.create_table(
        "team_members",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("team_id", sa.Uuid(), sa.ForeignKey("teams.id", ondelete="CASCADE"), nullable=False),
        sa.Column("user_id", sa.Uuid(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("role_in_team", sa.String(50), nullable=True),
        sa.UniqueConstraint("team_id", "user_id", name="uq_team_member"),
    )

    op.create_table(
        "customers",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("organization_id", sa.Uuid(), sa.ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("email", sa.String(255), nullable=True),
        sa.Column("phone_number", sa.String(50), nullable=True),
        sa.Column("address", sa.String(255), nullable=True),
        sa.Column("postal_code", sa.String(20), nullable=True),
        sa.Column("city", sa.String(100), nullable=True),
        _timestamp(),
    )
    op.create_index("idx_customers_org", "customers", ["organization_id"])

    # ==========================================================================
    # Quotes
    # ==========================================================================
    op.create_table(
        "quotes",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("organization_id", sa.Uuid(), sa.ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False),
        sa.Column("customer_id", sa.Uuid(), sa.ForeignKey("customers.id", ondelete="SET NULL"), nullable=True),
        sa.Column("created_by_user_id", sa.Uuid(), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        sa.Column("quote_number", sa.String(20), nullable=False),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("total_amount", sa.Numeric(12, 2), nullable=False, server_default="0"),
        sa.Column("status", sa.String(20), nullable=False),
        sa.Column("valid_until", sa.Date(), nullable=True),
        sa.Column("acceptance_token", sa.String(64), nullable=True),
        sa.Column("token_expires_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("accepted_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("accepted_by_ip", sa.String(64), nullable=True),
        sa.Column("order_id", sa.Uuid(), nullable=True),
        sa.Column("include_rot", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("rot_personal_id", sa.String(13), nullable=True),
        sa.Column("rot_org_id", sa.String(11), nullable=True),
        sa.Column("rot_property_designation", sa.String(255), nullable=True),
        sa.Column("rot_amount", sa.Numeric(14, 4), nullable=True),
        _timestamp(),
        _timestamp("updated_at"),
        sa.UniqueConstraint("organization_id", "quote_number", name="uq_quote_org_number"),
        sa.UniqueConstraint("acceptance_token", name="uq_quote_acceptance_token"),
        sa.CheckConstraint(
            "status IN ('draft', 'sent', 'accepted', 'declined')",
            name="ck_quotes_status",
        ),
        sa.CheckConstraint(
            "rot_personal_id IS NULL OR rot_org_id IS NULL",
            name="ck_quotes_rot_identifier_exclusive",
        ),
    )
    op.create_index("idx_quotes_org_status", "quotes", ["organization_id", "status"])

    op.create_table(
        "quote_line_items",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("quote_id", sa.Uuid(), sa.ForeignKey("quotes.id", ondelete="CASCADE"), nullable=False),
        sa.Column("description", sa.String(500), nullable=False),
        sa.Column("quantity", sa.Numeric(10, 2), nullable=False),
        sa.Column("unit_price", sa.Numeric(12, 2), nullable=False),
        sa.Column("total", sa.Numeric(12, 2), nullable=False),
        sa.Column("sort_order", sa.Integer(), nullable=False, server_default="0"),
    )
    op.create_index("idx_quote_line_items_quote", "quote_line_items", ["quote_id"])

    # ==========================================================================
    # Orders and activity ledger
    # ==========================================================================
    op.create_table(
        "orders",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("organization_id", sa.Uuid(), sa.ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False),
        sa.Column("customer_id", sa.Uuid(), sa.ForeignKey("customers.id", ondelete="SET NULL"), nullable=True),
        sa.Column("source_quote_id", sa.Uuid(), sa.ForeignKey("quotes.id", ondelete="SET NULL"), nullable=True, unique=True),
        sa.Column("source", sa.String(20), nullable=False),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("value", sa.Numeric(12, 2), nullable=True),
        sa.Column("status", sa.String(30), nullable=False),
        sa.Column("assigned_to_user_id", sa.Uuid(), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        sa.Column("assigned_to_team_id", sa.Uuid(), sa.ForeignKey("teams.id", ondelete="SET NULL"), nullable=True),
        sa.Column("include_rot", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("rot_personal_id", sa.String(13), nullable=True),
        sa.Column("rot_org_id", sa.String(11), nullable=True),
        sa.Column("rot_property_designation", sa.String(255), nullable=True),
        sa.Column("rot_amount", sa.Numeric(14, 4), nullable=True),
        _timestamp(),
        _timestamp("updated_at"),
        sa.CheckConstraint(
            "assigned_to_user_id IS NULL OR assigned_to_team_id IS NULL",
            name="ck_orders_single_assignment",
        ),
        sa.CheckConstraint(
            "rot_personal_id IS NULL OR rot_org_id IS NULL",
            name="ck_orders_rot_identifier_exclusive",
        ),
    )
    op.create_index("idx_orders_org_status", "orders", ["organization_id", "status"])
    op.create_index("idx_orders_assignee", "orders", ["assigned_to_user_id"])

    op.create_table(
        "order_activities",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("order_id", sa.Uuid(), sa.ForeignKey("orders.id", ondelete="CASCADE"), nullable=False),
        sa.Column("organization_id", sa.Uuid(), sa.ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False),
        sa.Column("actor_user_id", sa.Uuid(), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        sa.Column("activity_type", sa.String(50), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("old_value", sa.String(255), nullable=True),
        sa.Column("new_value", sa.String(255), nullable=True),
        _timestamp(),
    )
    op.create_index("idx_order_activities_order", "order_activities", ["order_id", "created_at"])

    op.create_table(
        "order_notes",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("order_id", sa.Uuid(), sa.ForeignKey("orders.id", ondelete="CASCADE"), nullable=False),
        sa.Column("organization_id", sa.Uuid(), sa.ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False),
        sa.Column("author_id", sa.Uuid(), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("include_in_invoice", sa.Boolean(), nullable=False, server_default=sa.false()),
        _timestamp(),
    )
    op.create_index("idx_order_notes_order", "order_notes", ["order_id", "created_at"])

    # ==========================================================================
    # Notifications
    # ==========================================================================
    op.create_table(
        "notifications",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("organization_id", sa.Uuid(), sa.ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False),
        sa.Column("user_id", sa.Uuid(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("type", sa.String(50), nullable=False),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("body", sa.Text(), nullable=True),
        sa.Column("action_url", sa.String(500), nullable=True),
        sa.Column("payload", sa.JSON(), nullable=True),
        sa.Column("entity_type", sa.String(50), nullable=True),
        sa.Column("entity_id", sa.Uuid(), nullable=True),
        sa.Column("dedupe_key", sa.String(255), nullable=True),
        sa.Column("read_at", sa.DateTime(timezone=True), nullable=True),
        _timestamp(),
    )
    op.create_index("idx_notif_user_unread", "notifications", ["user_id", "read_at", "created_at"])
    op.create_index("idx_notif_dedupe", "notifications", ["dedupe_key", "created_at"])


def downgrade() -> None:
    """Drop all tables (reverse dependency order)."""
    for table in (
        "notifications",
        "order_notes",
        "order_activities",
        "orders",
        "quote_line_items",
        "quotes",
        "customers",
        "team_members",
        "teams",
        "memberships",
        "users",
        "organizations",
    ):
        op.drop_table(table)
