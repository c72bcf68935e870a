"""Authentication router: signup, login and current user."""

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.orm import Session

from helpdesk.core.deps import get_current_actor, get_db
from helpdesk.core.rate_limit import AUTH_LIMIT, limiter
from helpdesk.core.security import create_session_token
from helpdesk.db.models import Organization, User
from helpdesk.schemas.auth import Actor, LoginRequest, MeResponse, SignupRequest, TokenResponse
from helpdesk.services import org_service

router = APIRouter(prefix="/auth", tags=["Auth"])


def _token_for(user: User) -> TokenResponse:
    return TokenResponse(
        access_token=create_session_token(
            user_id=user.id,
            org_id=user.organization_id,
            role=user.role.value,
            token_version=user.token_version,
        )
    )


@router.post("/signup", response_model=TokenResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit(AUTH_LIMIT)
def signup(request: Request, data: SignupRequest, db: Session = Depends(get_db)):
    """Create an organization; the signing-up user becomes its root admin."""
    user = org_service.signup(
        db,
        organization_name=data.organization_name,
        email=data.email,
        password=data.password,
        first_name=data.first_name,
        last_name=data.last_name,
    )
    return _token_for(user)


@router.post("/login", response_model=TokenResponse)
@limiter.limit(AUTH_LIMIT)
def login(request: Request, data: LoginRequest, db: Session = Depends(get_db)):
    user = org_service.authenticate(db, data.email, data.password)
    return _token_for(user)


@router.get("/me", response_model=MeResponse)
def get_me(
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
):
    """Current user with organization context (none for superadmins)."""
    user = db.get(User, actor.user_id)
    org = db.get(Organization, actor.org_id) if actor.org_id else None
    return MeResponse(
        user_id=user.id,
        email=user.email,
        first_name=user.first_name,
        last_name=user.last_name,
        role=user.role,
        org_id=user.organization_id,
        org_name=org.name if org else None,
        subscription_status=org.subscription_status.value if org else None,
    )
