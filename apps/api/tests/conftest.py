"""
Test configuration and fixtures.

Provides:
- A fresh SQLite schema per test (file-backed so separate sessions see
  each other's commits, as concurrent requests would)
- Two tenants with an admin, an agent and two customers each
- JWT token minting for authenticated API tests
- HTTPX AsyncClient against the ASGI app
"""
import os
import tempfile
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import AsyncGenerator, Generator

_DB_DIR = tempfile.mkdtemp(prefix="helpdesk-tests-")
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_DB_DIR, 'test.db')}"
os.environ["TESTING"] = "1"
os.environ["ENV"] = "test"
os.environ["JWT_SECRET"] = "test-secret-key-with-enough-length-for-hs256"
os.environ["PASSWORD_HASH_ITERATIONS"] = "1000"

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.orm import Session

from helpdesk.core.security import create_session_token, hash_password
from helpdesk.db.base import Base
from helpdesk.db.enums import Role
from helpdesk.db.models import Organization, User
from helpdesk.db.session import SessionLocal, engine
from helpdesk.main import app
from helpdesk.schemas.auth import Actor


# =============================================================================
# Database Fixtures
# =============================================================================

@pytest.fixture(scope="function")
def db() -> Generator[Session, None, None]:
    """Session on a freshly created schema; dropped after the test."""
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


def make_org(db: Session, name: str = "Acme Support", max_users: int = 5) -> Organization:
    now = datetime.now(timezone.utc)
    org = Organization(id=uuid.uuid4(), name=name, max_users=max_users, created_at=now, updated_at=now)
    db.add(org)
    db.commit()
    return org


def make_user(
    db: Session,
    org: Organization | None,
    role: Role,
    *,
    parent: User | None = None,
    is_active: bool = True,
    password: str = "password123",
) -> User:
    now = datetime.now(timezone.utc)
    user = User(
        id=uuid.uuid4(),
        email=f"{role.value}-{uuid.uuid4().hex[:8]}@example.com",
        first_name=role.value.title(),
        last_name="Tester",
        password_hash=hash_password(password),
        role=role,
        organization_id=org.id if org else None,
        parent_user_id=parent.id if parent else None,
        is_active=is_active,
        created_at=now,
        updated_at=now,
    )
    db.add(user)
    db.commit()
    return user


def actor_for(user: User) -> Actor:
    return Actor(user_id=user.id, org_id=user.organization_id, role=user.role, email=user.email)


@dataclass
class Tenant:
    """An organization with one user per role (plus a second customer)."""

    org: Organization
    admin: User
    agent: User
    customer: User
    other_customer: User

    @property
    def admin_actor(self) -> Actor:
        return actor_for(self.admin)

    @property
    def agent_actor(self) -> Actor:
        return actor_for(self.agent)

    @property
    def customer_actor(self) -> Actor:
        return actor_for(self.customer)

    @property
    def other_customer_actor(self) -> Actor:
        return actor_for(self.other_customer)


def make_tenant(db: Session, name: str, max_users: int = 10) -> Tenant:
    org = make_org(db, name=name, max_users=max_users)
    admin = make_user(db, org, Role.ADMIN)
    return Tenant(
        org=org,
        admin=admin,
        agent=make_user(db, org, Role.AGENT, parent=admin),
        customer=make_user(db, org, Role.CUSTOMER, parent=admin),
        other_customer=make_user(db, org, Role.CUSTOMER, parent=admin),
    )


@pytest.fixture(scope="function")
def tenant(db: Session) -> Tenant:
    return make_tenant(db, "Acme Support")


@pytest.fixture(scope="function")
def other_tenant(db: Session) -> Tenant:
    return make_tenant(db, "Globex Support")


@pytest.fixture(scope="function")
def superadmin(db: Session) -> User:
    return make_user(db, None, Role.SUPERADMIN)


# =============================================================================
# Auth / Client Fixtures
# =============================================================================

def _auth_headers(user: User) -> dict[str, str]:
    token = create_session_token(
        user_id=user.id,
        org_id=user.organization_id,
        role=user.role.value,
        token_version=user.token_version,
    )
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture(scope="function")
async def client(db: Session) -> AsyncGenerator[AsyncClient, None]:
    """
    AsyncClient against the app.

    Requests use the app's own get_db (one session per request) on the
    same test database as the db fixture.
    """
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
        yield c


@pytest.fixture
def auth_headers():
    """Bearer headers for a user: ``auth_headers(user)``."""
    return _auth_headers


@pytest.fixture
def user_factory(db: Session):
    """Create extra users: ``user_factory(org, role, parent=..., is_active=...)``."""

    def factory(org: Organization | None, role: Role, **kwargs) -> User:
        return make_user(db, org, role, **kwargs)

    return factory
