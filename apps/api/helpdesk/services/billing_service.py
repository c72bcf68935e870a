"""Pricing plans and the local subscription lifecycle (no payment provider)."""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from uuid import UUID

from sqlalchemy.orm import Session

from helpdesk.core.errors import NotFoundError
from helpdesk.core.structured_logging import build_log_context
from helpdesk.db.enums import OrganizationSubscriptionStatus, SubscriptionStatus
from helpdesk.db.models import Organization, PricingPlan, Subscription
from helpdesk.schemas.billing import PlanCreate, PlanUpdate
from helpdesk.services import entitlement_service
from helpdesk.services.org_service import get_organization

logger = logging.getLogger(__name__)


@dataclass
class OrganizationUsage:
    organization: Organization
    active_users: int
    effective_max_users: int


def _now_utc() -> datetime:
    return datetime.now(timezone.utc)


# =============================================================================
# Plans
# =============================================================================


def list_plans(db: Session, *, include_inactive: bool = False) -> list[PricingPlan]:
    query = db.query(PricingPlan)
    if not include_inactive:
        query = query.filter(PricingPlan.is_active.is_(True))
    return query.order_by(PricingPlan.price.asc(), PricingPlan.name.asc()).all()


def create_plan(db: Session, data: PlanCreate) -> PricingPlan:
    now = _now_utc()
    plan = PricingPlan(**data.model_dump(), created_at=now, updated_at=now)
    db.add(plan)
    db.commit()
    db.refresh(plan)
    logger.info("Pricing plan created", extra=build_log_context(plan_id=str(plan.id)))
    return plan


def update_plan(db: Session, plan_id: UUID, data: PlanUpdate) -> PricingPlan:
    plan = db.get(PricingPlan, plan_id)
    if not plan:
        raise NotFoundError("Plan not found")
    for field, value in data.model_dump(exclude_unset=True).items():
        if value is not None:
            setattr(plan, field, value)
    plan.updated_at = _now_utc()
    db.commit()
    db.refresh(plan)
    return plan


# =============================================================================
# Subscriptions
# =============================================================================


def get_current_subscription(db: Session, org_id: UUID) -> Subscription:
    """Most recent active or cancelled subscription."""
    subscription = (
        db.query(Subscription)
        .filter(
            Subscription.organization_id == org_id,
            Subscription.status.in_([SubscriptionStatus.ACTIVE, SubscriptionStatus.CANCELLED]),
        )
        .order_by(Subscription.start_date.desc())
        .first()
    )
    if not subscription:
        raise NotFoundError("No subscription found")
    return subscription


def subscribe(db: Session, org_id: UUID, plan_id: UUID) -> Subscription:
    """Switch the organization to plan, ending any active subscription."""
    plan = db.get(PricingPlan, plan_id)
    if not plan or not plan.is_active:
        raise NotFoundError("Plan not found or inactive")
    org = get_organization(db, org_id)

    now = _now_utc()
    active = (
        db.query(Subscription)
        .filter(
            Subscription.organization_id == org_id,
            Subscription.status == SubscriptionStatus.ACTIVE,
        )
        .all()
    )
    for existing in active:
        existing.status = SubscriptionStatus.CANCELLED
        existing.end_date = now
        existing.updated_at = now

    subscription = Subscription(
        organization_id=org_id,
        plan_id=plan.id,
        status=SubscriptionStatus.ACTIVE,
        start_date=now,
        created_at=now,
        updated_at=now,
    )
    db.add(subscription)
    org.subscription_status = OrganizationSubscriptionStatus.ACTIVE
    org.updated_at = now
    db.commit()
    db.refresh(subscription)

    logger.info(
        "Subscription started",
        extra=build_log_context(org_id=org_id, plan_id=str(plan.id), replaced=len(active)),
    )
    return subscription


def cancel_subscription(db: Session, org_id: UUID) -> Subscription:
    subscription = (
        db.query(Subscription)
        .filter(
            Subscription.organization_id == org_id,
            Subscription.status == SubscriptionStatus.ACTIVE,
        )
        .order_by(Subscription.start_date.desc())
        .first()
    )
    if not subscription:
        raise NotFoundError("No active subscription found")

    org = get_organization(db, org_id)
    now = _now_utc()
    subscription.status = SubscriptionStatus.CANCELLED
    subscription.end_date = now
    subscription.updated_at = now
    org.subscription_status = OrganizationSubscriptionStatus.CANCELLED
    org.updated_at = now
    db.commit()
    db.refresh(subscription)

    logger.info("Subscription cancelled", extra=build_log_context(org_id=org_id))
    return subscription


# =============================================================================
# Platform
# =============================================================================


def list_organizations(db: Session) -> list[OrganizationUsage]:
    orgs = db.query(Organization).order_by(Organization.created_at.asc()).all()
    return [
        OrganizationUsage(
            organization=org,
            active_users=entitlement_service.count_active_users(db, org.id),
            effective_max_users=entitlement_service.effective_max_users(db, org),
        )
        for org in orgs
    ]
