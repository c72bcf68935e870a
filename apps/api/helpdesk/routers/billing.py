"""Subscription APIs: plans, current subscription, subscribe and cancel."""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from helpdesk.core.deps import get_current_actor, get_db, get_org_scope, require_roles
from helpdesk.db.enums import Role
from helpdesk.schemas.auth import Actor
from helpdesk.schemas.billing import PlanRead, SubscribeRequest, SubscriptionRead
from helpdesk.services import billing_service

router = APIRouter(prefix="/subscriptions", tags=["Billing"])


@router.get("/plans", response_model=list[PlanRead])
def list_plans(
    db: Session = Depends(get_db),
    _actor: Actor = Depends(get_current_actor),
):
    return billing_service.list_plans(db)


@router.get("/current", response_model=SubscriptionRead)
def get_current_subscription(
    db: Session = Depends(get_db),
    org_id=Depends(get_org_scope),
):
    return billing_service.get_current_subscription(db, org_id)


@router.post("/subscribe", response_model=SubscriptionRead)
def subscribe(
    data: SubscribeRequest,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_roles([Role.ADMIN])),
):
    """Switch the organization to a plan; its user limit applies immediately."""
    return billing_service.subscribe(db, actor.org_id, data.plan_id)


@router.post("/cancel", response_model=SubscriptionRead)
def cancel_subscription(
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_roles([Role.ADMIN])),
):
    return billing_service.cancel_subscription(db, actor.org_id)
