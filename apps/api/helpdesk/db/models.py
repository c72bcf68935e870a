"""SQLAlchemy ORM models."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    Enum,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from helpdesk.db.base import Base
from helpdesk.db.enums import (
    DEFAULT_TICKET_PRIORITY,
    DEFAULT_TICKET_STATUS,
    BillingCycle,
    OrganizationSubscriptionStatus,
    Role,
    SubscriptionStatus,
    TicketEventType,
    TicketPriority,
    TicketStatus,
)


def _now_utc() -> datetime:
    return datetime.now(timezone.utc)


def _enum_type(enum_cls, *, name: str) -> Enum:
    """Bind Python str-enums to their value strings."""
    return Enum(
        enum_cls,
        name=name,
        values_callable=lambda members: [member.value for member in members],
        validate_strings=True,
    )


class Organization(Base):
    """
    A tenant in the multi-tenant system.

    All users (except superadmins) and tickets belong to an organization
    and must be scoped by organization_id in all queries.
    """

    __tablename__ = "organizations"
    __table_args__ = (CheckConstraint("max_users >= 1", name="ck_organizations_max_users"),)

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    max_users: Mapped[int] = mapped_column(Integer, default=5, nullable=False)
    subscription_status: Mapped[OrganizationSubscriptionStatus] = mapped_column(
        _enum_type(OrganizationSubscriptionStatus, name="organization_subscription_status"),
        default=OrganizationSubscriptionStatus.TRIAL,
        nullable=False,
    )
    created_at: Mapped[datetime] = mapped_column(default=_now_utc, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(default=_now_utc, nullable=False)

    users: Mapped[list["User"]] = relationship(back_populates="organization")
    tickets: Mapped[list["Ticket"]] = relationship(back_populates="organization")
    subscriptions: Mapped[list["Subscription"]] = relationship(back_populates="organization")


class User(Base):
    """
    Application user.

    parent_user_id points at the admin who provisioned the user. The admin
    created at signup has none and is the organization's root admin.
    """

    __tablename__ = "users"
    __table_args__ = (
        Index("idx_users_org_active", "organization_id", "is_active"),
        CheckConstraint(
            "organization_id IS NOT NULL OR role = 'superadmin'",
            name="ck_users_org_required",
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    email: Mapped[str] = mapped_column(String(320), unique=True, nullable=False)
    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    last_name: Mapped[str] = mapped_column(String(100), nullable=False)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    role: Mapped[Role] = mapped_column(_enum_type(Role, name="user_role"), nullable=False)
    organization_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("organizations.id"), nullable=True
    )
    parent_user_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    token_version: Mapped[int] = mapped_column(Integer, default=1, nullable=False)
    last_login_at: Mapped[datetime | None] = mapped_column(nullable=True)
    created_at: Mapped[datetime] = mapped_column(default=_now_utc, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(default=_now_utc, nullable=False)

    organization: Mapped["Organization | None"] = relationship(back_populates="users")

    @property
    def is_root_admin(self) -> bool:
        return self.role == Role.ADMIN and self.parent_user_id is None

    @property
    def display_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


class Ticket(Base):
    """
    Support ticket.

    organization_id and created_by are fixed at creation. resolved_at is set
    exactly while status is resolved. version backs compare-and-swap writes.
    """

    __tablename__ = "tickets"
    __table_args__ = (
        Index("idx_tickets_org_updated", "organization_id", "updated_at"),
        Index("idx_tickets_org_status", "organization_id", "status"),
        Index("idx_tickets_org_created_by", "organization_id", "created_by"),
        Index("idx_tickets_org_assigned_to", "organization_id", "assigned_to"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    organization_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("organizations.id"), nullable=False
    )
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    category: Mapped[str] = mapped_column(String(100), nullable=False)
    priority: Mapped[TicketPriority] = mapped_column(
        _enum_type(TicketPriority, name="ticket_priority"),
        default=DEFAULT_TICKET_PRIORITY,
        nullable=False,
    )
    status: Mapped[TicketStatus] = mapped_column(
        _enum_type(TicketStatus, name="ticket_status"),
        default=DEFAULT_TICKET_STATUS,
        nullable=False,
    )
    created_by: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("users.id"), nullable=False)
    assigned_to: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    resolved_at: Mapped[datetime | None] = mapped_column(nullable=True)
    version: Mapped[int] = mapped_column(Integer, nullable=False)
    created_at: Mapped[datetime] = mapped_column(default=_now_utc, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(default=_now_utc, nullable=False)

    __mapper_args__ = {"version_id_col": version}

    organization: Mapped["Organization"] = relationship(back_populates="tickets")
    creator: Mapped["User"] = relationship(foreign_keys=[created_by])
    assignee: Mapped["User | None"] = relationship(foreign_keys=[assigned_to])
    responses: Mapped[list["TicketResponse"]] = relationship(
        back_populates="ticket",
        cascade="all, delete-orphan",
        order_by="TicketResponse.created_at",
    )
    events: Mapped[list["TicketEvent"]] = relationship(
        back_populates="ticket", cascade="all, delete-orphan"
    )


class TicketResponse(Base):
    """Reply or internal note on a ticket. Internal notes are hidden from customers."""

    __tablename__ = "ticket_responses"
    __table_args__ = (Index("idx_ticket_responses_ticket_created", "ticket_id", "created_at"),)

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    ticket_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("tickets.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("users.id"), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    is_internal: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    created_at: Mapped[datetime] = mapped_column(default=_now_utc, nullable=False)

    ticket: Mapped["Ticket"] = relationship(back_populates="responses")
    author: Mapped["User"] = relationship()


class TicketEvent(Base):
    """Append-only audit trail for ticket changes."""

    __tablename__ = "ticket_events"
    __table_args__ = (Index("idx_ticket_events_ticket_created", "ticket_id", "created_at"),)

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    organization_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("organizations.id"), nullable=False
    )
    ticket_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("tickets.id", ondelete="CASCADE"), nullable=False
    )
    actor_user_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    event_type: Mapped[TicketEventType] = mapped_column(
        _enum_type(TicketEventType, name="ticket_event_type"), nullable=False
    )
    event_data: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    created_at: Mapped[datetime] = mapped_column(default=_now_utc, nullable=False)

    ticket: Mapped["Ticket"] = relationship(back_populates="events")


class PricingPlan(Base):
    """Plan offered by the platform. max_users is the entitlement ceiling."""

    __tablename__ = "pricing_plans"
    __table_args__ = (
        CheckConstraint("max_users >= 1", name="ck_pricing_plans_max_users"),
        CheckConstraint("price >= 0", name="ck_pricing_plans_price"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    billing_cycle: Mapped[BillingCycle] = mapped_column(
        _enum_type(BillingCycle, name="billing_cycle"),
        default=BillingCycle.MONTHLY,
        nullable=False,
    )
    features: Mapped[list] = mapped_column(JSON, default=list, nullable=False)
    max_users: Mapped[int] = mapped_column(Integer, default=5, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(default=_now_utc, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(default=_now_utc, nullable=False)


class Subscription(Base):
    """Binds an organization to a pricing plan for a period."""

    __tablename__ = "subscriptions"
    __table_args__ = (Index("idx_subscriptions_org_status", "organization_id", "status"),)

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    organization_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("organizations.id"), nullable=False
    )
    plan_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("pricing_plans.id"), nullable=False
    )
    status: Mapped[SubscriptionStatus] = mapped_column(
        _enum_type(SubscriptionStatus, name="subscription_status"),
        default=SubscriptionStatus.ACTIVE,
        nullable=False,
    )
    start_date: Mapped[datetime] = mapped_column(default=_now_utc, nullable=False)
    end_date: Mapped[datetime | None] = mapped_column(nullable=True)
    created_at: Mapped[datetime] = mapped_column(default=_now_utc, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(default=_now_utc, nullable=False)

    organization: Mapped["Organization"] = relationship(back_populates="subscriptions")
    plan: Mapped["PricingPlan"] = relationship()
