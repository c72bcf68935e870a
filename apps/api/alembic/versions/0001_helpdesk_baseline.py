"""Baseline migration - tenants, users, tickets, responses, events, billing

Revision ID: 0001_baseline
Revises:
Create Date: 2026-10-18

Portable column types: runs on PostgreSQL and SQLite.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "0001_baseline"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


USER_ROLE = sa.Enum("superadmin", "admin", "agent", "customer", name="user_role")
TICKET_STATUS = sa.Enum(
    "open", "in_progress", "on_hold", "pending", "resolved", "archived", name="ticket_status"
)
TICKET_PRIORITY = sa.Enum("low", "medium", "high", "urgent", name="ticket_priority")
TICKET_EVENT_TYPE = sa.Enum(
    "ticket_created", "ticket_updated", "response_added", "ticket_reopened", name="ticket_event_type"
)
ORG_SUBSCRIPTION_STATUS = sa.Enum(
    "trial", "active", "cancelled", "expired", name="organization_subscription_status"
)
SUBSCRIPTION_STATUS = sa.Enum("active", "cancelled", "expired", name="subscription_status")
BILLING_CYCLE = sa.Enum("monthly", "yearly", name="billing_cycle")


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    ]


def upgrade() -> None:
    # ==========================================================================
    # Organizations
    # ==========================================================================
    op.create_table(
        "organizations",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("max_users", sa.Integer(), nullable=False, server_default="5"),
        sa.Column(
            "subscription_status",
            ORG_SUBSCRIPTION_STATUS,
            nullable=False,
            server_default="trial",
        ),
        *_timestamps(),
        sa.CheckConstraint("max_users >= 1", name="ck_organizations_max_users"),
    )

    # ==========================================================================
    # Users
    # ==========================================================================
    op.create_table(
        "users",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("email", sa.String(320), nullable=False, unique=True),
        sa.Column("first_name", sa.String(100), nullable=False),
        sa.Column("last_name", sa.String(100), nullable=False),
        sa.Column("password_hash", sa.String(255), nullable=False),
        sa.Column("role", USER_ROLE, nullable=False),
        sa.Column("organization_id", sa.Uuid(), sa.ForeignKey("organizations.id"), nullable=True),
        sa.Column(
            "parent_user_id",
            sa.Uuid(),
            sa.ForeignKey("users.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("token_version", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("last_login_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.CheckConstraint(
            "organization_id IS NOT NULL OR role = 'superadmin'",
            name="ck_users_org_required",
        ),
    )
    op.create_index("idx_users_org_active", "users", ["organization_id", "is_active"])

    # ==========================================================================
    # Tickets
    # ==========================================================================
    op.create_table(
        "tickets",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("organization_id", sa.Uuid(), sa.ForeignKey("organizations.id"), nullable=False),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("category", sa.String(100), nullable=False),
        sa.Column("priority", TICKET_PRIORITY, nullable=False, server_default="medium"),
        sa.Column("status", TICKET_STATUS, nullable=False, server_default="open"),
        sa.Column("created_by", sa.Uuid(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column(
            "assigned_to",
            sa.Uuid(),
            sa.ForeignKey("users.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("resolved_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("version", sa.Integer(), nullable=False),
        *_timestamps(),
    )
    op.create_index("idx_tickets_org_updated", "tickets", ["organization_id", "updated_at"])
    op.create_index("idx_tickets_org_status", "tickets", ["organization_id", "status"])
    op.create_index("idx_tickets_org_created_by", "tickets", ["organization_id", "created_by"])
    op.create_index("idx_tickets_org_assigned_to", "tickets", ["organization_id", "assigned_to"])

    op.create_table(
        "ticket_responses",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column(
            "ticket_id",
            sa.Uuid(),
            sa.ForeignKey("tickets.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("user_id", sa.Uuid(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("is_internal", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index(
        "idx_ticket_responses_ticket_created", "ticket_responses", ["ticket_id", "created_at"]
    )

    op.create_table(
        "ticket_events",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("organization_id", sa.Uuid(), sa.ForeignKey("organizations.id"), nullable=False),
        sa.Column(
            "ticket_id",
            sa.Uuid(),
            sa.ForeignKey("tickets.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "actor_user_id",
            sa.Uuid(),
            sa.ForeignKey("users.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("event_type", TICKET_EVENT_TYPE, nullable=False),
        sa.Column("event_data", sa.JSON(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index(
        "idx_ticket_events_ticket_created", "ticket_events", ["ticket_id", "created_at"]
    )

    # ==========================================================================
    # Billing
    # ==========================================================================
    op.create_table(
        "pricing_plans",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("description", sa.Text(), nullable=False, server_default=""),
        sa.Column("price", sa.Numeric(10, 2), nullable=False),
        sa.Column("billing_cycle", BILLING_CYCLE, nullable=False, server_default="monthly"),
        sa.Column("features", sa.JSON(), nullable=False),
        sa.Column("max_users", sa.Integer(), nullable=False, server_default="5"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
        sa.CheckConstraint("max_users >= 1", name="ck_pricing_plans_max_users"),
        sa.CheckConstraint("price >= 0", name="ck_pricing_plans_price"),
    )

    op.create_table(
        "subscriptions",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("organization_id", sa.Uuid(), sa.ForeignKey("organizations.id"), nullable=False),
        sa.Column("plan_id", sa.Uuid(), sa.ForeignKey("pricing_plans.id"), nullable=False),
        sa.Column("status", SUBSCRIPTION_STATUS, nullable=False, server_default="active"),
        sa.Column("start_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("end_date", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
    )
    op.create_index(
        "idx_subscriptions_org_status", "subscriptions", ["organization_id", "status"]
    )


def downgrade() -> None:
    op.drop_table("subscriptions")
    op.drop_table("pricing_plans")
    op.drop_table("ticket_events")
    op.drop_table("ticket_responses")
    op.drop_table("tickets")
    op.drop_table("users")
    op.drop_table("organizations")

    bind = op.get_bind()
    for enum_type in (
        BILLING_CYCLE,
        SUBSCRIPTION_STATUS,
        ORG_SUBSCRIPTION_STATUS,
        TICKET_EVENT_TYPE,
        TICKET_PRIORITY,
        TICKET_STATUS,
        USER_ROLE,
    ):
        enum_type.drop(bind, checkfirst=True)
