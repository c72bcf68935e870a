"""Pydantic schemas for pricing plans and subscriptions."""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, Field

from helpdesk.db.enums import BillingCycle, SubscriptionStatus


class PlanRead(BaseModel):
    id: UUID
    name: str
    description: str
    price: Decimal
    billing_cycle: BillingCycle
    features: list[str]
    max_users: int
    is_active: bool

    model_config = {"from_attributes": True}


class PlanCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: str = Field("", max_length=2000)
    price: Decimal = Field(..., ge=0, max_digits=10, decimal_places=2)
    billing_cycle: BillingCycle = BillingCycle.MONTHLY
    features: list[str] = Field(default_factory=list)
    max_users: int = Field(5, ge=1)
    is_active: bool = True


class PlanUpdate(BaseModel):
    """Partial plan update."""

    name: str | None = Field(None, min_length=1, max_length=100)
    description: str | None = Field(None, max_length=2000)
    price: Decimal | None = Field(None, ge=0, max_digits=10, decimal_places=2)
    billing_cycle: BillingCycle | None = None
    features: list[str] | None = None
    max_users: int | None = Field(None, ge=1)
    is_active: bool | None = None


class SubscribeRequest(BaseModel):
    plan_id: UUID


class SubscriptionRead(BaseModel):
    id: UUID
    organization_id: UUID
    plan_id: UUID
    status: SubscriptionStatus
    start_date: datetime
    end_date: datetime | None = None
    plan: PlanRead

    model_config = {"from_attributes": True}
