"""Tests for the ticket HTTP API: auth, error bodies, visibility and tenant masking."""

import pytest
from httpx import AsyncClient


async def _create(client: AsyncClient, headers, **overrides) -> dict:
    payload = {
        "title": "Printer offline",
        "description": "Third floor printer is not reachable",
        "category": "hardware",
    }
    payload.update(overrides)
    response = await client.post("/tickets", json=payload, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()


@pytest.mark.asyncio
async def test_tickets_require_bearer_token(client: AsyncClient, tenant):
    response = await client.get("/tickets")
    assert response.status_code == 401
    assert response.json() == {"error": "Unauthenticated", "detail": "Not authenticated"}


@pytest.mark.asyncio
async def test_garbage_token_is_unauthenticated(client: AsyncClient, tenant):
    response = await client.get("/tickets", headers={"Authorization": "Bearer not-a-jwt"})
    assert response.status_code == 401
    assert response.json()["error"] == "Unauthenticated"


@pytest.mark.asyncio
async def test_customer_creates_ticket_with_defaults(client: AsyncClient, tenant, auth_headers):
    body = await _create(client, auth_headers(tenant.customer), priority="high")

    assert body["status"] == "open"
    assert body["priority"] == "high"
    assert body["created_by"] == str(tenant.customer.id)
    assert body["organization_id"] == str(tenant.org.id)
    assert body["assigned_to"] is None
    assert body["resolved_at"] is None


@pytest.mark.asyncio
async def test_invalid_priority_is_rejected(client: AsyncClient, tenant, auth_headers):
    response = await client.post(
        "/tickets",
        json={"title": "x", "description": "y", "category": "z", "priority": "critical"},
        headers=auth_headers(tenant.customer),
    )
    assert response.status_code == 422
    assert response.json()["error"] == "InvalidEnumValue"


@pytest.mark.asyncio
async def test_customer_list_shows_only_own_tickets(client: AsyncClient, tenant, auth_headers):
    mine = await _create(client, auth_headers(tenant.customer), title="Mine")
    await _create(client, auth_headers(tenant.other_customer), title="Theirs")

    response = await client.get("/tickets", headers=auth_headers(tenant.customer))
    assert response.status_code == 200
    assert [item["id"] for item in response.json()["items"]] == [mine["id"]]

    response = await client.get("/tickets", headers=auth_headers(tenant.agent))
    assert len(response.json()["items"]) == 2


@pytest.mark.asyncio
async def test_internal_notes_hidden_from_customer(client: AsyncClient, tenant, auth_headers):
    ticket = await _create(client, auth_headers(tenant.customer))
    url = f"/tickets/{ticket['id']}/responses"

    response = await client.post(
        url, json={"content": "Checked the switch port", "is_internal": True}, headers=auth_headers(tenant.agent)
    )
    assert response.status_code == 201
    assert response.json()["is_internal"] is True
    await client.post(url, json={"content": "On it"}, headers=auth_headers(tenant.agent))

    customer_view = await client.get(f"/tickets/{ticket['id']}", headers=auth_headers(tenant.customer))
    agent_view = await client.get(f"/tickets/{ticket['id']}", headers=auth_headers(tenant.agent))

    assert [r["content"] for r in customer_view.json()["responses"]] == ["On it"]
    assert [r["content"] for r in agent_view.json()["responses"]] == ["Checked the switch port", "On it"]


@pytest.mark.asyncio
async def test_customer_internal_flag_is_dropped(client: AsyncClient, tenant, auth_headers):
    ticket = await _create(client, auth_headers(tenant.customer))
    response = await client.post(
        f"/tickets/{ticket['id']}/responses",
        json={"content": "Secret?", "is_internal": True},
        headers=auth_headers(tenant.customer),
    )
    assert response.status_code == 201
    assert response.json()["is_internal"] is False


@pytest.mark.asyncio
async def test_other_tenant_ticket_is_not_found(
    client: AsyncClient, tenant, other_tenant, auth_headers
):
    ticket = await _create(client, auth_headers(tenant.customer))
    outsider = auth_headers(other_tenant.admin)

    for method, path, body in [
        ("GET", f"/tickets/{ticket['id']}", None),
        ("PATCH", f"/tickets/{ticket['id']}", {"status": "resolved"}),
        ("POST", f"/tickets/{ticket['id']}/responses", {"content": "hi"}),
        ("DELETE", f"/tickets/{ticket['id']}", None),
    ]:
        response = await client.request(method, path, json=body, headers=outsider)
        assert response.status_code == 404, (method, path)
        assert response.json() == {"error": "NotFound", "detail": "Ticket not found"}


@pytest.mark.asyncio
async def test_customer_status_change_is_ignored(client: AsyncClient, tenant, auth_headers):
    ticket = await _create(client, auth_headers(tenant.customer))

    response = await client.patch(
        f"/tickets/{ticket['id']}",
        json={"status": "resolved", "title": "Printer still offline"},
        headers=auth_headers(tenant.customer),
    )

    assert response.status_code == 200
    body = response.json()
    assert body["title"] == "Printer still offline"
    assert body["status"] == "open"


@pytest.mark.asyncio
async def test_customer_cannot_update_someone_elses_ticket(client: AsyncClient, tenant, auth_headers):
    ticket = await _create(client, auth_headers(tenant.customer))
    response = await client.patch(
        f"/tickets/{ticket['id']}",
        json={"title": "Hijacked"},
        headers=auth_headers(tenant.other_customer),
    )
    assert response.status_code == 403
    assert response.json()["error"] == "NotOwner"


@pytest.mark.asyncio
async def test_resolve_then_customer_reply_reopens(client: AsyncClient, tenant, auth_headers):
    ticket = await _create(client, auth_headers(tenant.customer))
    path = f"/tickets/{ticket['id']}"

    resolved = await client.patch(path, json={"status": "resolved"}, headers=auth_headers(tenant.agent))
    assert resolved.json()["status"] == "resolved"
    assert resolved.json()["resolved_at"] is not None

    reply = await client.post(
        f"{path}/responses", json={"content": "Still broken"}, headers=auth_headers(tenant.customer)
    )
    assert reply.status_code == 201

    detail = (await client.get(path, headers=auth_headers(tenant.customer))).json()
    assert detail["status"] == "open"
    assert detail["resolved_at"] is None


@pytest.mark.asyncio
async def test_invalid_status_value(client: AsyncClient, tenant, auth_headers):
    ticket = await _create(client, auth_headers(tenant.customer))
    response = await client.patch(
        f"/tickets/{ticket['id']}", json={"status": "done"}, headers=auth_headers(tenant.agent)
    )
    assert response.status_code == 422
    assert response.json()["error"] == "InvalidStatus"


@pytest.mark.asyncio
async def test_assign_and_unassign(client: AsyncClient, tenant, auth_headers):
    ticket = await _create(client, auth_headers(tenant.customer))
    path = f"/tickets/{ticket['id']}"
    headers = auth_headers(tenant.admin)

    assigned = await client.patch(path, json={"assigned_to": str(tenant.agent.id)}, headers=headers)
    assert assigned.json()["assigned_to"] == str(tenant.agent.id)
    assert assigned.json()["assignee_name"] == tenant.agent.display_name

    refused = await client.patch(path, json={"assigned_to": str(tenant.customer.id)}, headers=headers)
    assert refused.status_code == 422
    assert refused.json()["error"] == "InvalidAssignee"

    cleared = await client.patch(path, json={"assigned_to": None}, headers=headers)
    assert cleared.json()["assigned_to"] is None


@pytest.mark.asyncio
async def test_pagination_cursor(client: AsyncClient, tenant, auth_headers):
    headers = auth_headers(tenant.customer)
    for i in range(3):
        await _create(client, headers, title=f"Ticket {i}")

    first = (await client.get("/tickets", params={"limit": 2}, headers=headers)).json()
    assert len(first["items"]) == 2
    assert first["next_cursor"]

    second = (
        await client.get("/tickets", params={"limit": 2, "cursor": first["next_cursor"]}, headers=headers)
    ).json()
    assert len(second["items"]) == 1
    assert second["next_cursor"] is None
    seen = {item["id"] for item in first["items"]} | {item["id"] for item in second["items"]}
    assert len(seen) == 3

    bad = await client.get("/tickets", params={"cursor": "!!"}, headers=headers)
    assert bad.status_code == 400
    assert bad.json()["error"] == "InvalidCursor"


@pytest.mark.asyncio
async def test_delete_is_admin_only(client: AsyncClient, tenant, auth_headers):
    ticket = await _create(client, auth_headers(tenant.customer))
    path = f"/tickets/{ticket['id']}"

    response = await client.delete(path, headers=auth_headers(tenant.agent))
    assert response.status_code == 403
    assert response.json()["error"] == "InsufficientRole"

    response = await client.delete(path, headers=auth_headers(tenant.admin))
    assert response.status_code == 204
    assert (await client.get(path, headers=auth_headers(tenant.admin))).status_code == 404


@pytest.mark.asyncio
async def test_superadmin_has_no_ticket_access(client: AsyncClient, tenant, superadmin, auth_headers):
    ticket = await _create(client, auth_headers(tenant.customer))
    response = await client.get(f"/tickets/{ticket['id']}", headers=auth_headers(superadmin))
    assert response.status_code == 404
