"""Authentication-related Pydantic schemas."""

from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from helpdesk.db.enums import Role


class TokenPayload(BaseModel):
    """Decoded JWT payload structure."""
    sub: UUID  # user_id
    org_id: UUID | None = None
    role: str
    token_version: int


class Actor(BaseModel):
    """
    Identity of the caller for every core decision.

    Resolved from the bearer token by get_current_actor and passed
    explicitly to services and the authorization engine.
    """
    model_config = ConfigDict(frozen=True)

    user_id: UUID
    org_id: UUID | None  # None only for superadmin
    role: Role  # Validated enum
    email: str = ""


class SignupRequest(BaseModel):
    organization_name: str = Field(..., min_length=1, max_length=255)
    email: EmailStr
    password: str = Field(..., min_length=8, max_length=256)
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1, max_length=256)


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"


class MeResponse(BaseModel):
    """Response schema for GET /auth/me endpoint."""
    user_id: UUID
    email: str
    first_name: str
    last_name: str
    role: Role
    org_id: UUID | None
    org_name: str | None = None
    subscription_status: str | None = None
