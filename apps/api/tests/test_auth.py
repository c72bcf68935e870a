"""Tests for signup, login and the current-user endpoint."""
import pytest
from httpx import AsyncClient

from helpdesk.db.enums import Role
from helpdesk.db.models import Organization, User


SIGNUP = {
    "organization_name": "Initech Help",
    "email": "Founder@Initech.example",
    "password": "correct-horse",
    "first_name": "Bill",
    "last_name": "Lumbergh",
}


@pytest.mark.asyncio
async def test_signup_creates_org_and_root_admin(client: AsyncClient, db):
    response = await client.post("/auth/signup", json=SIGNUP)
    assert response.status_code == 201
    token = response.json()["access_token"]

    user = db.query(User).filter(User.email == "founder@initech.example").one()
    org = db.get(Organization, user.organization_id)
    assert org.name == "Initech Help"
    assert user.role == Role.ADMIN
    assert user.parent_user_id is None
    assert user.is_root_admin

    me = await client.get("/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert me.status_code == 200
    assert me.json()["org_name"] == "Initech Help"
    assert me.json()["subscription_status"] == "trial"


@pytest.mark.asyncio
async def test_signup_duplicate_email_conflicts(client: AsyncClient, db):
    assert (await client.post("/auth/signup", json=SIGNUP)).status_code == 201
    response = await client.post("/auth/signup", json={**SIGNUP, "organization_name": "Other"})
    assert response.status_code == 409
    assert response.json()["error"] == "Conflict"
    assert db.query(Organization).count() == 1


@pytest.mark.asyncio
async def test_login_and_me(client: AsyncClient, tenant):
    response = await client.post(
        "/auth/login", json={"email": tenant.agent.email, "password": "password123"}
    )
    assert response.status_code == 200
    token = response.json()["access_token"]

    me = await client.get("/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert me.status_code == 200
    assert me.json()["user_id"] == str(tenant.agent.id)
    assert me.json()["role"] == "agent"


@pytest.mark.asyncio
async def test_login_wrong_password(client: AsyncClient, tenant):
    response = await client.post(
        "/auth/login", json={"email": tenant.agent.email, "password": "wrong-password"}
    )
    assert response.status_code == 401
    assert response.json() == {"error": "Unauthenticated", "detail": "Invalid email or password"}


@pytest.mark.asyncio
async def test_login_deactivated_user(client: AsyncClient, tenant, user_factory):
    dormant = user_factory(tenant.org, Role.AGENT, parent=tenant.admin, is_active=False)
    response = await client.post("/auth/login", json={"email": dormant.email, "password": "password123"})
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_superadmin_me_has_no_organization(client: AsyncClient, superadmin, auth_headers):
    response = await client.get("/auth/me", headers=auth_headers(superadmin))
    assert response.status_code == 200
    body = response.json()
    assert body["role"] == "superadmin"
    assert body["org_id"] is None
    assert body["org_name"] is None


@pytest.mark.asyncio
async def test_health(client: AsyncClient, db):
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"
