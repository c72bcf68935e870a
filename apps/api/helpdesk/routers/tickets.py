"""Ticket list/detail/update/respond APIs."""

from __future__ import annotations

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from helpdesk.core.deps import get_current_actor, get_db
from helpdesk.db.models import Ticket, TicketResponse
from helpdesk.schemas.auth import Actor
from helpdesk.schemas.ticketing import (
    ResponseCreate,
    ResponseRead,
    TicketCreate,
    TicketDetailRead,
    TicketListItem,
    TicketListResponse,
    TicketRead,
    TicketUpdate,
)
from helpdesk.services import ticket_service

router = APIRouter(prefix="/tickets", tags=["Tickets"])


def _ticket_read(ticket: Ticket) -> TicketRead:
    return TicketRead(
        id=ticket.id,
        organization_id=ticket.organization_id,
        title=ticket.title,
        description=ticket.description,
        category=ticket.category,
        status=ticket.status,
        priority=ticket.priority,
        created_by=ticket.created_by,
        creator_name=ticket.creator.display_name if ticket.creator else None,
        assigned_to=ticket.assigned_to,
        assignee_name=ticket.assignee.display_name if ticket.assignee else None,
        resolved_at=ticket.resolved_at,
        version=ticket.version,
        created_at=ticket.created_at,
        updated_at=ticket.updated_at,
    )


def _response_read(response: TicketResponse) -> ResponseRead:
    return ResponseRead(
        id=response.id,
        ticket_id=response.ticket_id,
        user_id=response.user_id,
        author_name=response.author.display_name if response.author else None,
        content=response.content,
        is_internal=response.is_internal,
        created_at=response.created_at,
    )


@router.get("", response_model=TicketListResponse)
def list_tickets(
    limit: Annotated[int, Query(ge=1, le=100)] = 25,
    cursor: str | None = None,
    status: str | None = None,
    priority: str | None = None,
    assigned_to: UUID | None = None,
    q: str | None = None,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
) -> TicketListResponse:
    """List tickets with cursor pagination. Customers only see their own."""
    page = ticket_service.list_tickets(
        db,
        actor,
        limit=limit,
        cursor=cursor,
        status_filter=status,
        priority_filter=priority,
        assigned_to=assigned_to,
        q=q,
    )
    items = [TicketListItem.model_validate(ticket) for ticket in page.items]
    return TicketListResponse(items=items, next_cursor=page.next_cursor)


@router.post("", response_model=TicketRead, status_code=status.HTTP_201_CREATED)
def create_ticket(
    data: TicketCreate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
) -> TicketRead:
    ticket = ticket_service.create_ticket(db, actor, data)
    return _ticket_read(ticket)


@router.get("/{ticket_id}", response_model=TicketDetailRead)
def get_ticket(
    ticket_id: UUID,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
) -> TicketDetailRead:
    """Ticket with the responses visible to the caller."""
    detail = ticket_service.get_ticket(db, actor, ticket_id)
    return TicketDetailRead(
        **_ticket_read(detail.ticket).model_dump(),
        responses=[_response_read(response) for response in detail.responses],
    )


@router.patch("/{ticket_id}", response_model=TicketRead)
def update_ticket(
    ticket_id: UUID,
    data: TicketUpdate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
) -> TicketRead:
    ticket = ticket_service.update_ticket(db, actor, ticket_id, data, data.model_fields_set)
    return _ticket_read(ticket)


@router.post(
    "/{ticket_id}/responses",
    response_model=ResponseRead,
    status_code=status.HTTP_201_CREATED,
)
def add_response(
    ticket_id: UUID,
    data: ResponseCreate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
) -> ResponseRead:
    """Reply on a ticket. A reply on a resolved or archived ticket reopens it."""
    response = ticket_service.add_response(
        db, actor, ticket_id, data.content, is_internal=data.is_internal
    )
    return _response_read(response)


@router.delete("/{ticket_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_ticket(
    ticket_id: UUID,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
) -> None:
    ticket_service.delete_ticket(db, actor, ticket_id)
