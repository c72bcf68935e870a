"""User administration within an organization (admin only)."""

import logging
from datetime import datetime, timezone
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from helpdesk.core.errors import (
    ConflictError,
    ErrorKind,
    InvalidEnumValueError,
    NotFoundError,
    ProtectedAccountError,
)
from helpdesk.core.policies import Decision, EntityKind, Operation, Target, authorize
from helpdesk.core.security import hash_password
from helpdesk.core.structured_logging import build_log_context
from helpdesk.db.enums import ROLES_ASSIGNABLE, ROLES_STAFF, Role, parse_enum
from helpdesk.db.models import Organization, Ticket, TicketResponse, User
from helpdesk.schemas.auth import Actor
from helpdesk.schemas.user import UserCreate, UserUpdate
from helpdesk.services import entitlement_service

logger = logging.getLogger(__name__)


def _now_utc() -> datetime:
    return datetime.now(timezone.utc)


def normalize_email(email: str) -> str:
    return email.strip().lower()


def get_user_by_email(db: Session, email: str) -> User | None:
    return db.query(User).filter(User.email == normalize_email(email)).first()


def _parse_assignable_role(value: str) -> Role:
    role = parse_enum(Role, value, field="role")
    if role not in ROLES_ASSIGNABLE:
        allowed = ", ".join(sorted(r.value for r in ROLES_ASSIGNABLE))
        raise InvalidEnumValueError(f"Invalid role '{value}'. Allowed: {allowed}")
    return role


def _check_access(actor: Actor, operation: Operation, target: Target, user_id: UUID | None) -> Decision:
    """Authorize or raise; another tenant's user is reported as missing."""
    decision = authorize(actor, operation, target)
    if decision.allowed:
        return decision

    context = build_log_context(
        user_id=actor.user_id,
        org_id=actor.org_id,
        target_user_id=user_id,
        operation=operation.value,
        reason=decision.reason.value if decision.reason else None,
    )
    if decision.reason == ErrorKind.CROSS_TENANT_ACCESS and user_id is not None:
        logger.warning("Cross-tenant user access masked as not found", extra=context)
        raise NotFoundError("User not found")

    logger.info("User access denied", extra=context)
    decision.raise_for_denial()
    return decision


def _load_for(db: Session, actor: Actor, user_id: UUID, operation: Operation) -> User:
    user = db.get(User, user_id)
    if not user:
        raise NotFoundError("User not found")
    _check_access(actor, operation, Target.for_user(user), user_id)
    return user


def _check_quota(db: Session, actor: Actor) -> None:
    org = db.get(Organization, actor.org_id)
    if not org:
        raise NotFoundError("Organization not found")
    entitlement_service.can_add_user(db, org).raise_for_denial()


def list_users(db: Session, actor: Actor) -> list[User]:
    _check_access(actor, Operation.LIST, Target.organization_scope(EntityKind.USER, actor), None)
    return (
        db.query(User)
        .filter(User.organization_id == actor.org_id)
        .order_by(User.created_at.asc())
        .all()
    )


def get_user(db: Session, actor: Actor, user_id: UUID) -> User:
    return _load_for(db, actor, user_id, Operation.READ)


def create_user(db: Session, actor: Actor, data: UserCreate) -> User:
    """
    Provision a user in the actor's organization.

    The quota gate runs before anything is written; on denial nothing is
    persisted.
    """
    _check_access(actor, Operation.CREATE, Target.new_user(actor), None)
    role = _parse_assignable_role(data.role)

    email = normalize_email(data.email)
    if get_user_by_email(db, email):
        raise ConflictError("A user with this email already exists")

    _check_quota(db, actor)

    now = _now_utc()
    user = User(
        email=email,
        first_name=data.first_name.strip(),
        last_name=data.last_name.strip(),
        password_hash=hash_password(data.password),
        role=role,
        organization_id=actor.org_id,
        parent_user_id=actor.user_id,
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

    logger.info(
        "User created",
        extra=build_log_context(
            user_id=actor.user_id, org_id=actor.org_id, target_user_id=user.id, role=role.value
        ),
    )
    return user


def _release_assignments(db: Session, user_id: UUID) -> int:
    """Unassign every ticket held by a user who can no longer work tickets."""
    released = 0
    for ticket in db.query(Ticket).filter(Ticket.assigned_to == user_id).all():
        ticket.assigned_to = None
        ticket.updated_at = _now_utc()
        released += 1
    return released


def update_user(db: Session, actor: Actor, user_id: UUID, data: UserUpdate) -> User:
    """
    Partial update of names, role and active flag.

    Every check runs before anything is changed, so a denied request leaves
    the session clean. Deactivation is authorized as DEACTIVATE and revokes
    the user's sessions; reactivation goes through the quota gate. Losing the
    ability to work tickets (demotion to customer, deactivation) releases the
    user's ticket assignments.
    """
    user = _load_for(db, actor, user_id, Operation.UPDATE)
    update_data = data.model_dump(exclude_unset=True)

    new_role = None
    if update_data.get("role") is not None:
        role = _parse_assignable_role(update_data["role"])
        if role != user.role:
            if user.is_root_admin:
                raise ProtectedAccountError("Cannot change the role of the main admin account")
            new_role = role

    is_active = update_data.get("is_active")
    deactivating = is_active is False and user.is_active
    reactivating = is_active is True and not user.is_active
    if deactivating:
        _check_access(actor, Operation.DEACTIVATE, Target.for_user(user), user_id)
    elif reactivating:
        _check_quota(db, actor)

    if update_data.get("first_name") is not None:
        user.first_name = update_data["first_name"].strip()
    if update_data.get("last_name") is not None:
        user.last_name = update_data["last_name"].strip()

    if new_role is not None:
        user.role = new_role
        # Role is carried in the token
        user.token_version += 1

    if deactivating:
        user.is_active = False
        user.token_version += 1
        logger.info(
            "User deactivated",
            extra=build_log_context(user_id=actor.user_id, org_id=actor.org_id, target_user_id=user_id),
        )
    elif reactivating:
        user.is_active = True

    if deactivating or (new_role is not None and new_role not in ROLES_STAFF):
        released = _release_assignments(db, user.id)
        if released:
            logger.info(
                "Ticket assignments released",
                extra=build_log_context(
                    user_id=actor.user_id, org_id=actor.org_id, target_user_id=user_id, tickets=released
                ),
            )

    if db.is_modified(user) or db.dirty:
        user.updated_at = _now_utc()
        db.commit()
        db.refresh(user)
    return user


def delete_user(db: Session, actor: Actor, user_id: UUID) -> None:
    """
    Delete a user who never authored tickets or responses.

    Tickets assigned to them become unassigned. Users with history must be
    deactivated instead.
    """
    user = _load_for(db, actor, user_id, Operation.DELETE)

    authored = (
        db.query(func.count(Ticket.id)).filter(Ticket.created_by == user.id).scalar() or 0
    ) + (
        db.query(func.count(TicketResponse.id)).filter(TicketResponse.user_id == user.id).scalar()
        or 0
    )
    if authored:
        raise ConflictError("User has ticket history; deactivate the account instead")

    _release_assignments(db, user.id)

    # Re-parent users they provisioned; a null parent would make an admin the root admin
    db.query(User).filter(User.parent_user_id == user.id).update(
        {User.parent_user_id: user.parent_user_id}, synchronize_session=False
    )

    db.delete(user)
    db.commit()
    logger.info(
        "User deleted",
        extra=build_log_context(user_id=actor.user_id, org_id=actor.org_id, target_user_id=user_id),
    )
