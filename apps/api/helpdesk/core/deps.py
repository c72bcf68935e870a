"""FastAPI dependencies for authentication, authorization, and database access."""

import logging
from typing import Generator
from uuid import UUID

import jwt
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pydantic import ValidationError
from sqlalchemy.orm import Session

from helpdesk.core.errors import InsufficientRoleError, UnauthenticatedError
from helpdesk.core.security import decode_session_token
from helpdesk.core.structured_logging import build_log_context
from helpdesk.db.enums import Role
from helpdesk.db.models import User
from helpdesk.db.session import SessionLocal
from helpdesk.schemas.auth import Actor, TokenPayload

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


def get_db() -> Generator[Session, None, None]:
    """
    Database session dependency.

    Yields a database session and ensures it's closed after the request.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_current_actor(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    db: Session = Depends(get_db),
) -> Actor:
    """
    Resolve the bearer token into an Actor.

    Validates:
    - Authorization header carries a bearer token
    - JWT is valid and not expired
    - User exists and is active
    - Token version matches (for revocation support)
    - Role and organization in the token still match the user

    Fails closed: any problem is Unauthenticated.
    """
    if credentials is None or not credentials.credentials:
        raise UnauthenticatedError("Not authenticated")

    try:
        payload = TokenPayload.model_validate(decode_session_token(credentials.credentials))
    except (jwt.InvalidTokenError, ValidationError):
        raise UnauthenticatedError("Invalid session")

    user = db.get(User, payload.sub)
    if not user:
        raise UnauthenticatedError("User not found")
    if not user.is_active:
        raise UnauthenticatedError("Account disabled")
    if user.token_version != payload.token_version:
        raise UnauthenticatedError("Session revoked")

    # Role or tenant changed since the token was issued
    if not Role.has_value(payload.role) or Role(payload.role) != user.role:
        raise UnauthenticatedError("Session revoked")
    if payload.org_id != user.organization_id:
        raise UnauthenticatedError("Session revoked")

    return Actor(
        user_id=user.id,
        org_id=user.organization_id,
        role=user.role,
        email=user.email,
    )


def require_roles(allowed_roles: list[Role]):
    """
    Dependency factory for role-based authorization.

    Usage:
        @router.get("/users", dependencies=[Depends(require_roles([Role.ADMIN]))])
    """

    def dependency(actor: Actor = Depends(get_current_actor)) -> Actor:
        if actor.role not in allowed_roles:
            logger.info(
                "role_denied",
                extra=build_log_context(
                    user_id=actor.user_id, org_id=actor.org_id, role=actor.role.value
                ),
            )
            raise InsufficientRoleError(f"Role '{actor.role.value}' not authorized for this action")
        return actor

    return dependency


def get_org_scope(actor: Actor = Depends(get_current_actor)) -> UUID:
    """
    Get org_id for query scoping.

    Tenant endpoints only: superadmins have no organization.
    """
    if actor.org_id is None:
        raise InsufficientRoleError("This endpoint requires an organization member")
    return actor.org_id
