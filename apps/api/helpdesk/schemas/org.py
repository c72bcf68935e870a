"""Pydantic schemas for organizations."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel

from helpdesk.db.enums import OrganizationSubscriptionStatus


class OrganizationRead(BaseModel):
    id: UUID
    name: str
    max_users: int
    subscription_status: OrganizationSubscriptionStatus
    created_at: datetime

    model_config = {"from_attributes": True}


class OrganizationSummary(OrganizationRead):
    """Platform view: adds current usage against the effective ceiling."""

    active_users: int
    effective_max_users: int
