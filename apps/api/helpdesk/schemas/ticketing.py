"""Pydantic schemas for tickets and ticket responses."""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from helpdesk.db.enums import DEFAULT_TICKET_PRIORITY, TicketPriority, TicketStatus


class TicketCreate(BaseModel):
    """Request to create a ticket. Priority is validated by the service."""

    title: str = Field(..., min_length=1, max_length=255)
    description: str = Field(..., min_length=1, max_length=20000)
    category: str = Field(..., min_length=1, max_length=100)
    priority: str = DEFAULT_TICKET_PRIORITY.value


class TicketUpdate(BaseModel):
    """
    Partial ticket update.

    Only fields present in the request are considered; an explicit
    ``assigned_to: null`` unassigns. status/priority are plain strings so
    unknown values surface as InvalidStatus/InvalidEnumValue.
    """

    title: str | None = Field(None, min_length=1, max_length=255)
    description: str | None = Field(None, min_length=1, max_length=20000)
    category: str | None = Field(None, min_length=1, max_length=100)
    status: str | None = None
    priority: str | None = None
    assigned_to: UUID | None = None


class ResponseCreate(BaseModel):
    content: str = Field(..., min_length=1, max_length=20000)
    is_internal: bool = False


class ResponseRead(BaseModel):
    id: UUID
    ticket_id: UUID
    user_id: UUID
    author_name: str | None = None
    content: str
    is_internal: bool
    created_at: datetime


class TicketListItem(BaseModel):
    """Inbox row for a ticket."""

    id: UUID
    title: str
    category: str
    status: TicketStatus
    priority: TicketPriority
    created_by: UUID
    assigned_to: UUID | None = None
    resolved_at: datetime | None = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class TicketRead(TicketListItem):
    """Full ticket with creator/assignee names."""

    organization_id: UUID
    description: str
    creator_name: str | None = None
    assignee_name: str | None = None
    version: int


class TicketDetailRead(TicketRead):
    """Ticket plus the responses visible to the caller, oldest first."""

    responses: list[ResponseRead] = Field(default_factory=list)


class TicketListResponse(BaseModel):
    """Ticket list response with cursor pagination."""

    items: list[TicketListItem]
    next_cursor: str | None = None
