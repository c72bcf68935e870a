"""Ticket status transition rules by role.

The policy is flat: staff may move a ticket from any status to any other,
customers may not change status at all.
"""

from datetime import datetime

from helpdesk.db.enums import Role, TicketStatus

_ALL_STATUSES: frozenset[TicketStatus] = frozenset(TicketStatus)

# from-status -> statuses the role may set
STATUS_TRANSITIONS: dict[Role, dict[TicketStatus, frozenset[TicketStatus]]] = {
    Role.ADMIN: {status: _ALL_STATUSES for status in TicketStatus},
    Role.AGENT: {status: _ALL_STATUSES for status in TicketStatus},
    Role.CUSTOMER: {status: frozenset({status}) for status in TicketStatus},
    Role.SUPERADMIN: {status: frozenset({status}) for status in TicketStatus},
}

# A new response on a closed ticket reopens it, whoever wrote it
REOPEN_ON_RESPONSE_FROM: frozenset[TicketStatus] = frozenset(
    {TicketStatus.RESOLVED, TicketStatus.ARCHIVED}
)
REOPEN_TO: TicketStatus = TicketStatus.OPEN


def can_transition(role: Role, current: TicketStatus, target: TicketStatus) -> bool:
    return target in STATUS_TRANSITIONS.get(role, {}).get(current, frozenset())


def should_reopen(current: TicketStatus) -> bool:
    return current in REOPEN_ON_RESPONSE_FROM


def resolved_at_for(
    target: TicketStatus,
    *,
    current: TicketStatus,
    current_resolved_at: datetime | None,
    now: datetime,
) -> datetime | None:
    """resolved_at after moving to target: set on entering resolved, kept while resolved, else cleared."""
    if target != TicketStatus.RESOLVED:
        return None
    if current == TicketStatus.RESOLVED and current_resolved_at is not None:
        return current_resolved_at
    return now
