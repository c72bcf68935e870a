"""Enum definitions for application constants."""

from enum import Enum
from typing import TypeVar

from helpdesk.core.errors import HelpdeskError, InvalidEnumValueError

E = TypeVar("E", bound=Enum)


class Role(str, Enum):
    """
    User roles. Flat, not hierarchical.

    - SUPERADMIN: Platform operator (plans, organizations). Belongs to no tenant.
    - ADMIN: Organization admin (users, billing, every ticket)
    - AGENT: Support staff (every ticket, internal notes)
    - CUSTOMER: Files tickets and sees only their own
    """

    SUPERADMIN = "superadmin"
    ADMIN = "admin"
    AGENT = "agent"
    CUSTOMER = "customer"

    @classmethod
    def has_value(cls, value: str) -> bool:
        """Check if value is a valid role."""
        return value in cls._value2member_map_


class TicketStatus(str, Enum):
    """Ticket lifecycle status."""

    OPEN = "open"
    IN_PROGRESS = "in_progress"
    ON_HOLD = "on_hold"
    PENDING = "pending"
    RESOLVED = "resolved"
    ARCHIVED = "archived"


class TicketPriority(str, Enum):
    """Ticket priority level."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


class TicketEventType(str, Enum):
    """Audit trail event types for tickets."""

    TICKET_CREATED = "ticket_created"
    TICKET_UPDATED = "ticket_updated"
    RESPONSE_ADDED = "response_added"
    TICKET_REOPENED = "ticket_reopened"


class OrganizationSubscriptionStatus(str, Enum):
    """Billing state mirrored on the organization."""

    TRIAL = "trial"
    ACTIVE = "active"
    CANCELLED = "cancelled"
    EXPIRED = "expired"


class SubscriptionStatus(str, Enum):
    ACTIVE = "active"
    CANCELLED = "cancelled"
    EXPIRED = "expired"


class BillingCycle(str, Enum):
    MONTHLY = "monthly"
    YEARLY = "yearly"


DEFAULT_TICKET_STATUS: TicketStatus = TicketStatus.OPEN
DEFAULT_TICKET_PRIORITY: TicketPriority = TicketPriority.MEDIUM

# Roles that work tickets (see every tenant ticket, write internal notes, take assignments)
ROLES_STAFF = {Role.ADMIN, Role.AGENT}

# Roles an admin may hand out to users in their organization
ROLES_ASSIGNABLE = {Role.ADMIN, Role.AGENT, Role.CUSTOMER}


def parse_enum(
    enum_cls: type[E],
    value: str,
    *,
    field: str,
    error_cls: type[HelpdeskError] = InvalidEnumValueError,
) -> E:
    """Validate an external string against a closed enum."""
    try:
        return enum_cls(value)
    except ValueError as exc:
        allowed = ", ".join(member.value for member in enum_cls)
        raise error_cls(f"Invalid {field} '{value}'. Allowed: {allowed}") from exc
