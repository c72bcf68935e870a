"""Pydantic schemas for user administration."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field

from helpdesk.db.enums import Role


class UserCreate(BaseModel):
    """Admin provisions a user in their organization. Role is validated by the service."""

    email: EmailStr
    password: str = Field(..., min_length=8, max_length=256)
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    role: str = Role.CUSTOMER.value


class UserUpdate(BaseModel):
    """Partial user update (only provided fields are applied)."""

    first_name: str | None = Field(None, min_length=1, max_length=100)
    last_name: str | None = Field(None, min_length=1, max_length=100)
    role: str | None = None
    is_active: bool | None = None


class UserRead(BaseModel):
    id: UUID
    email: str
    first_name: str
    last_name: str
    role: Role
    organization_id: UUID | None
    parent_user_id: UUID | None = None
    is_active: bool
    is_root_admin: bool
    last_login_at: datetime | None = None
    created_at: datetime

    model_config = {"from_attributes": True}
