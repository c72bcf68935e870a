"""Organization signup, login and lookup."""

import logging
from datetime import datetime, timezone
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from helpdesk.core.config import settings
from helpdesk.core.errors import ConflictError, NotFoundError, UnauthenticatedError
from helpdesk.core.security import hash_password, verify_password
from helpdesk.core.structured_logging import build_log_context
from helpdesk.db.enums import OrganizationSubscriptionStatus, Role
from helpdesk.db.models import Organization, User
from helpdesk.services.user_service import get_user_by_email, normalize_email

logger = logging.getLogger(__name__)


def signup(
    db: Session,
    *,
    organization_name: str,
    email: str,
    password: str,
    first_name: str,
    last_name: str,
) -> User:
    """
    Create an organization and its root admin in one transaction.

    The root admin is the only admin without a parent user.
    """
    email = normalize_email(email)
    if get_user_by_email(db, email):
        raise ConflictError("A user with this email already exists")

    now = datetime.now(timezone.utc)
    org = Organization(
        name=organization_name.strip(),
        max_users=settings.DEFAULT_MAX_USERS,
        subscription_status=OrganizationSubscriptionStatus.TRIAL,
        created_at=now,
        updated_at=now,
    )
    db.add(org)
    db.flush()

    user = User(
        email=email,
        first_name=first_name.strip(),
        last_name=last_name.strip(),
        password_hash=hash_password(password),
        role=Role.ADMIN,
        organization_id=org.id,
        parent_user_id=None,
        is_active=True,
        created_at=now,
        updated_at=now,
    )
    db.add(user)
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise ConflictError("A user with this email already exists") from exc
    db.refresh(user)

    logger.info("Organization signed up", extra=build_log_context(user_id=user.id, org_id=org.id))
    return user


def authenticate(db: Session, email: str, password: str) -> User:
    """Return the active user for these credentials or raise Unauthenticated."""
    user = get_user_by_email(db, email)
    if not user or not verify_password(password, user.password_hash):
        logger.info("Login failed")
        raise UnauthenticatedError("Invalid email or password")
    if not user.is_active:
        logger.info("Login refused for deactivated user", extra=build_log_context(user_id=user.id))
        raise UnauthenticatedError("Account disabled")

    user.last_login_at = datetime.now(timezone.utc)
    db.commit()
    db.refresh(user)
    return user


def get_organization(db: Session, org_id: UUID) -> Organization:
    org = db.get(Organization, org_id)
    if not org:
        raise NotFoundError("Organization not found")
    return org
