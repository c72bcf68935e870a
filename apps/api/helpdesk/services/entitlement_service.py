"""Active-user ceiling per organization, derived from its subscription plan."""

import logging
from datetime import datetime, timezone
from uuid import UUID

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from helpdesk.core.errors import ErrorKind
from helpdesk.core.policies import Decision
from helpdesk.core.structured_logging import build_log_context
from helpdesk.db.enums import SubscriptionStatus
from helpdesk.db.models import Organization, PricingPlan, Subscription, User

logger = logging.getLogger(__name__)


def get_active_plan(db: Session, organization_id: UUID) -> PricingPlan | None:
    """Plan behind the organization's current active subscription, if any."""
    now = datetime.now(timezone.utc)
    return (
        db.query(PricingPlan)
        .join(Subscription, Subscription.plan_id == PricingPlan.id)
        .filter(
            Subscription.organization_id == organization_id,
            Subscription.status == SubscriptionStatus.ACTIVE,
            or_(Subscription.end_date.is_(None), Subscription.end_date > now),
        )
        .order_by(Subscription.start_date.desc())
        .first()
    )


def effective_max_users(db: Session, organization: Organization) -> int:
    """Active plan's ceiling, else the organization's own max_users."""
    plan = get_active_plan(db, organization.id)
    if plan is not None:
        return plan.max_users
    return organization.max_users


def count_active_users(db: Session, organization_id: UUID) -> int:
    return (
        db.query(func.count(User.id))
        .filter(User.organization_id == organization_id, User.is_active.is_(True))
        .scalar()
        or 0
    )


def can_add_user(db: Session, organization: Organization) -> Decision:
    """
    Whether one more active user fits under the organization's ceiling.

    Check-then-act: two concurrent adds may both pass; the overshoot is
    tolerated.
    """
    limit = effective_max_users(db, organization)
    active = count_active_users(db, organization.id)
    if active >= limit:
        logger.info(
            "User quota reached",
            extra=build_log_context(org_id=organization.id, active_users=active, max_users=limit),
        )
        return Decision.deny(
            ErrorKind.QUOTA_EXCEEDED,
            f"Your plan allows {limit} active users. Upgrade to add more.",
        )
    return Decision.allow()
