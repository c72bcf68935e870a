"""User administration APIs. Only organization admins pass the authorization engine."""

from uuid import UUID

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from helpdesk.core.deps import get_current_actor, get_db
from helpdesk.schemas.auth import Actor
from helpdesk.schemas.user import UserCreate, UserRead, UserUpdate
from helpdesk.services import user_service

router = APIRouter(prefix="/users", tags=["Users"])


@router.get("", response_model=list[UserRead])
def list_users(
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    return user_service.list_users(db, actor)


@router.post("", response_model=UserRead, status_code=status.HTTP_201_CREATED)
def create_user(
    data: UserCreate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    """Provision an admin, agent or customer, subject to the plan's user limit."""
    return user_service.create_user(db, actor, data)


@router.get("/{user_id}", response_model=UserRead)
def get_user(
    user_id: UUID,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    return user_service.get_user(db, actor, user_id)


@router.patch("/{user_id}", response_model=UserRead)
def update_user(
    user_id: UUID,
    data: UserUpdate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    return user_service.update_user(db, actor, user_id, data)


@router.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_user(
    user_id: UUID,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
) -> None:
    user_service.delete_user(db, actor, user_id)
