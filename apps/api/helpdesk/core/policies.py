"""Centralized authorization rules for users, tickets and responses.

``authorize`` is pure: it reads the actor and a target snapshot and returns
a Decision. It never loads data and never mutates anything; services fetch
the target, ask for a decision, then act on it.

Rules are evaluated in order and the first match wins:

1. Tenant isolation - target outside the actor's organization is denied for
   every role and operation (superadmins belong to no tenant).
2. Users - only admins may list/read/create/update/delete users.
3. Users - the root admin can never be deleted or deactivated.
4. Ticket create - any in-tenant actor.
5. Ticket read/list - staff see all, customers only their own.
6. Ticket update - staff write every field; the customer who created the
   ticket writes title/description/category only.
7. Ticket delete - admin only.
8. Respond - whoever may read the ticket; internal notes for staff only.
9. Response read - as ticket read; the visible subset is decided by
   ``helpdesk.core.response_visibility``.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING
from uuid import UUID

from helpdesk.core.errors import ErrorKind, error_for
from helpdesk.db.enums import ROLES_STAFF, Role

if TYPE_CHECKING:
    from helpdesk.db.models import Ticket, User
    from helpdesk.schemas.auth import Actor


class Operation(str, Enum):
    READ = "read"
    LIST = "list"
    CREATE = "create"
    UPDATE = "update"
    RESPOND = "respond"
    DELETE = "delete"
    DEACTIVATE = "deactivate"


class EntityKind(str, Enum):
    USER = "user"
    TICKET = "ticket"
    RESPONSE = "response"


TICKET_FIELDS: frozenset[str] = frozenset(
    {"title", "description", "category", "status", "priority", "assigned_to"}
)
CUSTOMER_TICKET_FIELDS: frozenset[str] = frozenset({"title", "description", "category"})
USER_FIELDS: frozenset[str] = frozenset({"first_name", "last_name", "role", "is_active"})


@dataclass(frozen=True)
class Target:
    """Snapshot of the fields of an entity that authorization depends on."""

    kind: EntityKind
    organization_id: UUID | None
    created_by: UUID | None = None
    assigned_to: UUID | None = None
    parent_user_id: UUID | None = None
    role: Role | None = None

    @property
    def is_root_admin(self) -> bool:
        return (
            self.kind == EntityKind.USER
            and self.role == Role.ADMIN
            and self.parent_user_id is None
        )

    @classmethod
    def for_ticket(cls, ticket: "Ticket") -> "Target":
        return cls(
            kind=EntityKind.TICKET,
            organization_id=ticket.organization_id,
            created_by=ticket.created_by,
            assigned_to=ticket.assigned_to,
        )

    @classmethod
    def for_response(cls, ticket: "Ticket") -> "Target":
        """A response inherits its organization and reporter from its ticket."""
        return cls(
            kind=EntityKind.RESPONSE,
            organization_id=ticket.organization_id,
            created_by=ticket.created_by,
            assigned_to=ticket.assigned_to,
        )

    @classmethod
    def for_user(cls, user: "User") -> "Target":
        return cls(
            kind=EntityKind.USER,
            organization_id=user.organization_id,
            parent_user_id=user.parent_user_id,
            role=user.role,
        )

    @classmethod
    def new_ticket(cls, actor: "Actor") -> "Target":
        """Target for a ticket about to be created: creator and org come from the actor."""
        return cls(kind=EntityKind.TICKET, organization_id=actor.org_id, created_by=actor.user_id)

    @classmethod
    def new_user(cls, actor: "Actor") -> "Target":
        return cls(kind=EntityKind.USER, organization_id=actor.org_id, parent_user_id=actor.user_id)

    @classmethod
    def organization_scope(cls, kind: EntityKind, actor: "Actor") -> "Target":
        """Target for a tenant-wide list query."""
        return cls(kind=kind, organization_id=actor.org_id)


@dataclass(frozen=True)
class Decision:
    """Outcome of an authorization check."""

    allowed: bool
    reason: ErrorKind | None = None
    message: str = ""
    writable_fields: frozenset[str] = frozenset()
    allow_internal: bool = False
    # Listing allowed, but only rows the actor created
    own_only: bool = False

    @classmethod
    def allow(
        cls,
        *,
        writable_fields: frozenset[str] = frozenset(),
        allow_internal: bool = False,
        own_only: bool = False,
    ) -> "Decision":
        return cls(
            allowed=True,
            writable_fields=writable_fields,
            allow_internal=allow_internal,
            own_only=own_only,
        )

    @classmethod
    def deny(cls, reason: ErrorKind, message: str) -> "Decision":
        return cls(allowed=False, reason=reason, message=message)

    def raise_for_denial(self) -> None:
        """Raise the domain error for a denied decision; no-op when allowed."""
        if not self.allowed:
            raise error_for(self.reason or ErrorKind.INSUFFICIENT_ROLE, self.message)


def authorize(actor: "Actor", operation: Operation, target: Target) -> Decision:
    """Decide whether actor may perform operation on target."""
    if actor.org_id is None or target.organization_id != actor.org_id:
        return Decision.deny(
            ErrorKind.CROSS_TENANT_ACCESS,
            f"This {target.kind.value} belongs to another organization",
        )

    if target.kind == EntityKind.USER:
        return _authorize_user(actor, operation, target)
    if target.kind == EntityKind.TICKET:
        return _authorize_ticket(actor, operation, target)
    return _authorize_response(actor, operation, target)


def is_staff(actor: "Actor") -> bool:
    """Admins and agents work tickets."""
    return actor.role in ROLES_STAFF


# =============================================================================
# Per-entity rules
# =============================================================================


def _authorize_user(actor: "Actor", operation: Operation, target: Target) -> Decision:
    if actor.role != Role.ADMIN:
        return Decision.deny(ErrorKind.INSUFFICIENT_ROLE, "Only admins can manage users")

    if operation in (Operation.DELETE, Operation.DEACTIVATE) and target.is_root_admin:
        return Decision.deny(
            ErrorKind.PROTECTED_ACCOUNT,
            f"Cannot {operation.value} the main admin account",
        )

    if operation == Operation.RESPOND:
        return _unsupported(operation, target)

    return Decision.allow(writable_fields=USER_FIELDS)


def _authorize_ticket(actor: "Actor", operation: Operation, target: Target) -> Decision:
    if operation == Operation.CREATE:
        return Decision.allow(writable_fields=TICKET_FIELDS - {"status", "assigned_to"})

    if operation == Operation.LIST and target.created_by is None:
        # Tenant-wide listing; customers are narrowed to their own tickets
        return Decision.allow(own_only=not is_staff(actor))

    if operation in (Operation.READ, Operation.LIST):
        return _check_ticket_read(actor, target)

    if operation == Operation.UPDATE:
        if is_staff(actor):
            return Decision.allow(writable_fields=TICKET_FIELDS)
        if actor.role == Role.CUSTOMER and target.created_by == actor.user_id:
            return Decision.allow(writable_fields=CUSTOMER_TICKET_FIELDS)
        if actor.role == Role.CUSTOMER:
            return Decision.deny(ErrorKind.NOT_OWNER, "You can only update tickets you created")
        return Decision.deny(ErrorKind.INSUFFICIENT_ROLE, "Not authorized to update this ticket")

    if operation == Operation.DELETE:
        if actor.role == Role.ADMIN:
            return Decision.allow()
        return Decision.deny(ErrorKind.INSUFFICIENT_ROLE, "Only admins can delete tickets")

    if operation == Operation.RESPOND:
        return _check_respond(actor, target)

    return _unsupported(operation, target)


def _authorize_response(actor: "Actor", operation: Operation, target: Target) -> Decision:
    if operation in (Operation.CREATE, Operation.RESPOND):
        return _check_respond(actor, target)
    if operation in (Operation.READ, Operation.LIST):
        return _check_ticket_read(actor, target)
    return _unsupported(operation, target)


def _check_ticket_read(actor: "Actor", target: Target) -> Decision:
    if is_staff(actor):
        return Decision.allow()
    if actor.role == Role.CUSTOMER and target.created_by == actor.user_id:
        return Decision.allow()
    return Decision.deny(ErrorKind.INSUFFICIENT_ROLE, "Not authorized to access this ticket")


def _check_respond(actor: "Actor", target: Target) -> Decision:
    read = _check_ticket_read(actor, target)
    if not read.allowed:
        return Decision.deny(ErrorKind.INSUFFICIENT_ROLE, "Not authorized to respond to this ticket")
    return Decision.allow(allow_internal=is_staff(actor))


def _unsupported(operation: Operation, target: Target) -> Decision:
    return Decision.deny(
        ErrorKind.INSUFFICIENT_ROLE,
        f"Operation '{operation.value}' is not supported on {target.kind.value}s",
    )
