"""Platform operator APIs (superadmin only): organizations and pricing plans."""

from uuid import UUID

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from helpdesk.core.deps import get_db, require_roles
from helpdesk.db.enums import Role
from helpdesk.schemas.billing import PlanCreate, PlanRead, PlanUpdate
from helpdesk.schemas.org import OrganizationSummary
from helpdesk.services import billing_service

router = APIRouter(
    prefix="/platform",
    tags=["Platform"],
    dependencies=[Depends(require_roles([Role.SUPERADMIN]))],
)


@router.get("/organizations", response_model=list[OrganizationSummary])
def list_organizations(db: Session = Depends(get_db)):
    return [
        OrganizationSummary(
            id=usage.organization.id,
            name=usage.organization.name,
            max_users=usage.organization.max_users,
            subscription_status=usage.organization.subscription_status,
            created_at=usage.organization.created_at,
            active_users=usage.active_users,
            effective_max_users=usage.effective_max_users,
        )
        for usage in billing_service.list_organizations(db)
    ]


@router.get("/plans", response_model=list[PlanRead])
def list_plans(db: Session = Depends(get_db)):
    return billing_service.list_plans(db, include_inactive=True)


@router.post("/plans", response_model=PlanRead, status_code=status.HTTP_201_CREATED)
def create_plan(data: PlanCreate, db: Session = Depends(get_db)):
    return billing_service.create_plan(db, data)


@router.patch("/plans/{plan_id}", response_model=PlanRead)
def update_plan(plan_id: UUID, data: PlanUpdate, db: Session = Depends(get_db)):
    return billing_service.update_plan(db, plan_id, data)
