"""Ticket lifecycle: create, list, read, update, respond and delete.

Every operation takes the calling Actor explicitly, loads the target, asks
``helpdesk.core.policies.authorize`` for a decision and only then mutates.
Writes to an existing ticket are compare-and-swap on ``Ticket.version`` and
are retried against fresh state on conflict.
"""

from __future__ import annotations

import base64
import json
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Iterable, TypeVar
from uuid import UUID, uuid4

from sqlalchemy import and_, or_
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from helpdesk.core.config import settings
from helpdesk.core.errors import (
    ErrorKind,
    HelpdeskError,
    InvalidAssigneeError,
    InvalidCursorError,
    InvalidStatusError,
    NotFoundError,
    StorageUnavailableError,
)
from helpdesk.core.policies import Decision, EntityKind, Operation, Target, authorize
from helpdesk.core.response_visibility import filter_responses
from helpdesk.core.status_rules import REOPEN_TO, can_transition, resolved_at_for, should_reopen
from helpdesk.core.structured_logging import build_log_context
from helpdesk.db.enums import (
    ROLES_STAFF,
    TicketEventType,
    TicketPriority,
    TicketStatus,
    parse_enum,
)
from helpdesk.db.models import Ticket, TicketEvent, TicketResponse, User
from helpdesk.schemas.auth import Actor
from helpdesk.schemas.ticketing import TicketCreate, TicketUpdate

logger = logging.getLogger(__name__)

T = TypeVar("T")

MAX_PAGE_SIZE = 100
DEFAULT_PAGE_SIZE = 25


@dataclass
class TicketListPage:
    items: list[Ticket]
    next_cursor: str | None = None


@dataclass
class TicketDetail:
    """A ticket with the responses visible to the caller, oldest first."""

    ticket: Ticket
    responses: list[TicketResponse] = field(default_factory=list)


def _now_utc() -> datetime:
    return datetime.now(timezone.utc)


# =============================================================================
# Cursor helpers
# =============================================================================


def _encode_cursor(*, sort_ts: datetime, row_id: UUID) -> str:
    payload = {"sort_ts": sort_ts.isoformat(), "id": str(row_id)}
    return base64.urlsafe_b64encode(json.dumps(payload).encode("utf-8")).decode("utf-8")


def _decode_cursor(cursor: str) -> tuple[datetime, UUID]:
    try:
        decoded = base64.urlsafe_b64decode(cursor.encode("utf-8")).decode("utf-8")
        payload = json.loads(decoded)
        sort_ts = datetime.fromisoformat(payload["sort_ts"])
        row_id = UUID(payload["id"])
    except (ValueError, TypeError, KeyError) as exc:
        raise InvalidCursorError("Invalid cursor") from exc
    if sort_ts.tzinfo is None:
        sort_ts = sort_ts.replace(tzinfo=timezone.utc)
    return sort_ts, row_id


# =============================================================================
# Access helpers
# =============================================================================


def _lock_ticket(db: Session, ticket_id: UUID) -> Ticket | None:
    """Load a ticket for writing (row lock where the database supports it)."""
    return db.query(Ticket).filter(Ticket.id == ticket_id).with_for_update().one_or_none()


def _get_ticket(db: Session, ticket_id: UUID) -> Ticket | None:
    return db.query(Ticket).filter(Ticket.id == ticket_id).one_or_none()


def _check_access(actor: Actor, operation: Operation, target: Target, ticket_id: UUID) -> Decision:
    """
    Authorize or raise.

    Another tenant's ticket is reported as missing so ids cannot be probed.
    """
    decision = authorize(actor, operation, target)
    if decision.allowed:
        return decision

    context = build_log_context(
        user_id=actor.user_id,
        org_id=actor.org_id,
        ticket_id=ticket_id,
        operation=operation.value,
        reason=decision.reason.value if decision.reason else None,
    )
    if decision.reason == ErrorKind.CROSS_TENANT_ACCESS:
        logger.warning("Cross-tenant ticket access masked as not found", extra=context)
        raise NotFoundError("Ticket not found")

    logger.info("Ticket access denied", extra=context)
    decision.raise_for_denial()
    return decision


def _load_for(
    db: Session,
    actor: Actor,
    ticket_id: UUID,
    operation: Operation,
    *,
    kind: EntityKind = EntityKind.TICKET,
    lock: bool = False,
) -> tuple[Ticket, Decision]:
    ticket = _lock_ticket(db, ticket_id) if lock else _get_ticket(db, ticket_id)
    if not ticket:
        raise NotFoundError("Ticket not found")
    target = Target.for_response(ticket) if kind == EntityKind.RESPONSE else Target.for_ticket(ticket)
    decision = _check_access(actor, operation, target, ticket_id)
    return ticket, decision


def _run_ticket_write(db: Session, ticket_id: UUID, operation: str, apply: Callable[[], T]) -> T:
    """
    Run apply() and commit, re-running it against fresh state when a
    concurrent commit bumped the ticket version first.

    Domain errors roll back and propagate unchanged.
    """
    attempts = settings.TICKET_WRITE_MAX_RETRIES + 1
    for attempt in range(1, attempts + 1):
        try:
            result = apply()
            db.commit()
            return result
        except StaleDataError:
            db.rollback()
            logger.info(
                "Ticket write conflict, retrying",
                extra=build_log_context(ticket_id=ticket_id, operation=operation, attempt=attempt),
            )
        except HelpdeskError:
            db.rollback()
            raise
    logger.warning(
        "Ticket write gave up after repeated conflicts",
        extra=build_log_context(ticket_id=ticket_id, operation=operation, attempts=attempts),
    )
    raise StorageUnavailableError("Ticket is being modified concurrently, retry the request")


def _record_event(
    db: Session,
    ticket: Ticket,
    actor: Actor,
    event_type: TicketEventType,
    event_data: dict[str, Any] | None = None,
) -> None:
    db.add(
        TicketEvent(
            organization_id=ticket.organization_id,
            ticket_id=ticket.id,
            actor_user_id=actor.user_id,
            event_type=event_type,
            event_data=event_data,
        )
    )


def _validate_assignee(db: Session, org_id: UUID, user_id: UUID) -> User:
    """Assignee must be an active admin or agent of the ticket's organization."""
    user = db.get(User, user_id)
    if not user or user.organization_id != org_id:
        raise InvalidAssigneeError("Assignee not found in this organization")
    if not user.is_active:
        raise InvalidAssigneeError("Assignee is deactivated")
    if user.role not in ROLES_STAFF:
        raise InvalidAssigneeError("Tickets can only be assigned to admins or agents")
    return user


# =============================================================================
# Operations
# =============================================================================


def create_ticket(db: Session, actor: Actor, data: TicketCreate) -> Ticket:
    """Create a ticket owned by the actor in the actor's organization."""
    decision = authorize(actor, Operation.CREATE, Target.new_ticket(actor))
    decision.raise_for_denial()

    priority = parse_enum(TicketPriority, data.priority, field="priority")
    now = _now_utc()
    ticket = Ticket(
        id=uuid4(),
        organization_id=actor.org_id,
        created_by=actor.user_id,
        title=data.title.strip(),
        description=data.description,
        category=data.category.strip(),
        priority=priority,
        status=TicketStatus.OPEN,
        created_at=now,
        updated_at=now,
    )
    db.add(ticket)
    _record_event(
        db,
        ticket,
        actor,
        TicketEventType.TICKET_CREATED,
        {"priority": priority.value, "category": ticket.category},
    )
    db.commit()
    db.refresh(ticket)

    logger.info(
        "Ticket created",
        extra=build_log_context(user_id=actor.user_id, org_id=actor.org_id, ticket_id=ticket.id),
    )
    return ticket


def list_tickets(
    db: Session,
    actor: Actor,
    *,
    limit: int = DEFAULT_PAGE_SIZE,
    cursor: str | None = None,
    status_filter: str | None = None,
    priority_filter: str | None = None,
    assigned_to: UUID | None = None,
    q: str | None = None,
) -> TicketListPage:
    """List tickets visible to the actor, newest activity first."""
    decision = authorize(actor, Operation.LIST, Target.organization_scope(EntityKind.TICKET, actor))
    decision.raise_for_denial()

    page_limit = max(1, min(limit, MAX_PAGE_SIZE))
    query = (
        db.query(Ticket)
        .filter(Ticket.organization_id == actor.org_id)
        .order_by(Ticket.updated_at.desc(), Ticket.id.desc())
    )
    if decision.own_only:
        query = query.filter(Ticket.created_by == actor.user_id)

    if status_filter:
        status = parse_enum(
            TicketStatus, status_filter, field="status", error_cls=InvalidStatusError
        )
        query = query.filter(Ticket.status == status)
    if priority_filter:
        priority = parse_enum(TicketPriority, priority_filter, field="priority")
        query = query.filter(Ticket.priority == priority)
    if assigned_to:
        query = query.filter(Ticket.assigned_to == assigned_to)

    if q and q.strip():
        search = f"%{q.strip()}%"
        query = query.filter(
            or_(
                Ticket.title.ilike(search),
                Ticket.description.ilike(search),
                Ticket.category.ilike(search),
            )
        )

    if cursor:
        cursor_sort_ts, cursor_id = _decode_cursor(cursor)
        query = query.filter(
            or_(
                Ticket.updated_at < cursor_sort_ts,
                and_(Ticket.updated_at == cursor_sort_ts, Ticket.id < cursor_id),
            )
        )

    rows = query.limit(page_limit + 1).all()
    has_more = len(rows) > page_limit
    items = rows[:page_limit]

    next_cursor = None
    if has_more and items:
        last = items[-1]
        next_cursor = _encode_cursor(sort_ts=last.updated_at, row_id=last.id)

    return TicketListPage(items=items, next_cursor=next_cursor)


def get_ticket(db: Session, actor: Actor, ticket_id: UUID) -> TicketDetail:
    """Ticket detail with the responses the actor may see."""
    ticket, _ = _load_for(db, actor, ticket_id, Operation.READ)
    responses = (
        db.query(TicketResponse)
        .filter(TicketResponse.ticket_id == ticket.id)
        .order_by(TicketResponse.created_at.asc(), TicketResponse.id.asc())
        .all()
    )
    return TicketDetail(ticket=ticket, responses=filter_responses(actor, ticket, responses))


def update_ticket(
    db: Session,
    actor: Actor,
    ticket_id: UUID,
    data: TicketUpdate,
    fields_set: Iterable[str] | None = None,
) -> Ticket:
    """
    Apply a partial update.

    Only fields present in the request and writable for the actor are
    applied; anything else the actor sent is ignored and logged. A request
    that changes nothing writes nothing.
    """
    requested = data.model_dump(include=set(fields_set if fields_set is not None else data.model_fields_set))

    def apply() -> Ticket:
        ticket, decision = _load_for(db, actor, ticket_id, Operation.UPDATE, lock=True)

        ignored = sorted(set(requested) - decision.writable_fields)
        if ignored:
            logger.info(
                "Ignored ticket fields outside the actor's writable set",
                extra=build_log_context(
                    user_id=actor.user_id,
                    org_id=actor.org_id,
                    ticket_id=ticket_id,
                    ignored_fields=ignored,
                ),
            )
        writable = {name: value for name, value in requested.items() if name in decision.writable_fields}
        changes = _apply_changes(db, actor, ticket, writable)
        if not changes:
            return ticket

        ticket.updated_at = _now_utc()
        _record_event(db, ticket, actor, TicketEventType.TICKET_UPDATED, {"changes": changes})
        return ticket

    ticket = _run_ticket_write(db, ticket_id, "update", apply)
    db.refresh(ticket)
    return ticket


def _apply_changes(
    db: Session, actor: Actor, ticket: Ticket, writable: dict[str, Any]
) -> dict[str, Any]:
    changes: dict[str, Any] = {}

    for name in ("title", "description", "category"):
        value = writable.get(name)
        if value is not None and getattr(ticket, name) != value:
            setattr(ticket, name, value)
            changes[name] = value

    if writable.get("priority") is not None:
        priority = parse_enum(TicketPriority, writable["priority"], field="priority")
        if ticket.priority != priority:
            changes["priority"] = {"from": ticket.priority.value, "to": priority.value}
            ticket.priority = priority

    if writable.get("status") is not None:
        status = parse_enum(
            TicketStatus, writable["status"], field="status", error_cls=InvalidStatusError
        )
        if not can_transition(actor.role, ticket.status, status):
            raise InvalidStatusError(
                f"Cannot move ticket from '{ticket.status.value}' to '{status.value}'"
            )
        if ticket.status != status:
            changes["status"] = {"from": ticket.status.value, "to": status.value}
            ticket.resolved_at = resolved_at_for(
                status,
                current=ticket.status,
                current_resolved_at=ticket.resolved_at,
                now=_now_utc(),
            )
            ticket.status = status

    # Explicit null unassigns
    if "assigned_to" in writable:
        assignee_id = writable["assigned_to"]
        if assignee_id is not None:
            _validate_assignee(db, ticket.organization_id, assignee_id)
        if ticket.assigned_to != assignee_id:
            changes["assigned_to"] = {
                "from": str(ticket.assigned_to) if ticket.assigned_to else None,
                "to": str(assignee_id) if assignee_id else None,
            }
            ticket.assigned_to = assignee_id

    return changes


def add_response(
    db: Session,
    actor: Actor,
    ticket_id: UUID,
    content: str,
    is_internal: bool = False,
) -> TicketResponse:
    """
    Add a response to a ticket.

    A response on a resolved or archived ticket reopens it in the same
    transaction. Customers cannot write internal notes; the flag is dropped.
    """

    def apply() -> TicketResponse:
        ticket, decision = _load_for(
            db, actor, ticket_id, Operation.RESPOND, kind=EntityKind.RESPONSE, lock=True
        )
        internal = bool(is_internal and decision.allow_internal)
        if is_internal and not internal:
            logger.info(
                "Internal flag dropped for non-staff response",
                extra=build_log_context(user_id=actor.user_id, org_id=actor.org_id, ticket_id=ticket_id),
            )

        now = _now_utc()
        response = TicketResponse(
            id=uuid4(),
            ticket_id=ticket.id,
            user_id=actor.user_id,
            content=content,
            is_internal=internal,
            created_at=now,
        )
        db.add(response)
        # Touch the ticket so concurrent writers conflict on its version
        ticket.updated_at = now
        _record_event(
            db,
            ticket,
            actor,
            TicketEventType.RESPONSE_ADDED,
            {"response_id": str(response.id), "is_internal": internal},
        )

        if should_reopen(ticket.status):
            previous = ticket.status
            ticket.status = REOPEN_TO
            ticket.resolved_at = None
            _record_event(
                db,
                ticket,
                actor,
                TicketEventType.TICKET_REOPENED,
                {"from": previous.value, "to": REOPEN_TO.value},
            )
            logger.info(
                "Ticket reopened by response",
                extra=build_log_context(user_id=actor.user_id, org_id=actor.org_id, ticket_id=ticket_id),
            )
        return response

    response = _run_ticket_write(db, ticket_id, "respond", apply)
    db.refresh(response)
    return response


def delete_ticket(db: Session, actor: Actor, ticket_id: UUID) -> None:
    """Delete a ticket with its responses and events (admin only)."""

    def apply() -> None:
        ticket, _ = _load_for(db, actor, ticket_id, Operation.DELETE, lock=True)
        db.delete(ticket)

    _run_ticket_write(db, ticket_id, "delete", apply)
    logger.info(
        "Ticket deleted",
        extra=build_log_context(user_id=actor.user_id, org_id=actor.org_id, ticket_id=ticket_id),
    )
