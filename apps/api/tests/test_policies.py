"""
Authorization engine tests (pure, no database).

Tests cover:
- Tenant isolation for every role and operation
- User administration is admin-only; root admin is protected
- Ticket read/list/update/delete per role
- Respond and internal-note permission
"""

import uuid

import pytest

from helpdesk.core.errors import (
    CrossTenantAccessError,
    ErrorKind,
    InsufficientRoleError,
    NotOwnerError,
    ProtectedAccountError,
)
from helpdesk.core.policies import (
    CUSTOMER_TICKET_FIELDS,
    TICKET_FIELDS,
    EntityKind,
    Operation,
    Target,
    authorize,
)
from helpdesk.db.enums import Role
from helpdesk.schemas.auth import Actor

ORG_A = uuid.uuid4()
ORG_B = uuid.uuid4()


def _actor(role: Role, org_id=ORG_A) -> Actor:
    return Actor(user_id=uuid.uuid4(), org_id=org_id, role=role)


def _ticket(created_by, org_id=ORG_A) -> Target:
    return Target(kind=EntityKind.TICKET, organization_id=org_id, created_by=created_by)


def _user(role: Role, parent_user_id=None, org_id=ORG_A) -> Target:
    return Target(
        kind=EntityKind.USER,
        organization_id=org_id,
        role=role,
        parent_user_id=parent_user_id,
    )


# =============================================================================
# Tenant isolation
# =============================================================================


@pytest.mark.parametrize("role", [Role.ADMIN, Role.AGENT, Role.CUSTOMER])
@pytest.mark.parametrize("operation", list(Operation))
@pytest.mark.parametrize("kind", list(EntityKind))
def test_cross_tenant_always_denied(role, operation, kind):
    actor = _actor(role)
    target = Target(kind=kind, organization_id=ORG_B, created_by=actor.user_id)

    decision = authorize(actor, operation, target)

    assert decision.allowed is False
    assert decision.reason == ErrorKind.CROSS_TENANT_ACCESS


def test_superadmin_never_reaches_tenant_entities():
    actor = Actor(user_id=uuid.uuid4(), org_id=None, role=Role.SUPERADMIN)

    for kind in EntityKind:
        decision = authorize(actor, Operation.READ, Target(kind=kind, organization_id=ORG_A))
        assert decision.reason == ErrorKind.CROSS_TENANT_ACCESS


def test_superadmin_denied_even_for_orgless_targets():
    actor = Actor(user_id=uuid.uuid4(), org_id=None, role=Role.SUPERADMIN)
    decision = authorize(actor, Operation.READ, Target(kind=EntityKind.USER, organization_id=None))
    assert decision.allowed is False


def test_raise_for_denial_raises_matching_error():
    decision = authorize(_actor(Role.ADMIN), Operation.READ, _ticket(uuid.uuid4(), org_id=ORG_B))
    with pytest.raises(CrossTenantAccessError):
        decision.raise_for_denial()


# =============================================================================
# Users
# =============================================================================


@pytest.mark.parametrize("role", [Role.AGENT, Role.CUSTOMER])
@pytest.mark.parametrize(
    "operation", [Operation.LIST, Operation.READ, Operation.CREATE, Operation.UPDATE, Operation.DELETE]
)
def test_non_admin_cannot_manage_users(role, operation):
    decision = authorize(_actor(role), operation, _user(Role.AGENT, parent_user_id=uuid.uuid4()))
    assert decision.reason == ErrorKind.INSUFFICIENT_ROLE


def test_admin_can_manage_sub_users():
    admin = _actor(Role.ADMIN)
    target = _user(Role.AGENT, parent_user_id=admin.user_id)

    for operation in (Operation.READ, Operation.UPDATE, Operation.DELETE, Operation.DEACTIVATE):
        assert authorize(admin, operation, target).allowed


@pytest.mark.parametrize("operation", [Operation.DELETE, Operation.DEACTIVATE])
def test_root_admin_is_protected(operation):
    root = _user(Role.ADMIN, parent_user_id=None)
    decision = authorize(_actor(Role.ADMIN), operation, root)

    assert decision.reason == ErrorKind.PROTECTED_ACCOUNT
    with pytest.raises(ProtectedAccountError):
        decision.raise_for_denial()


def test_sub_admin_is_not_root():
    sub_admin = _user(Role.ADMIN, parent_user_id=uuid.uuid4())
    assert authorize(_actor(Role.ADMIN), Operation.DELETE, sub_admin).allowed


def test_root_admin_can_still_be_read_and_updated():
    root = _user(Role.ADMIN, parent_user_id=None)
    assert authorize(_actor(Role.ADMIN), Operation.READ, root).allowed
    assert authorize(_actor(Role.ADMIN), Operation.UPDATE, root).allowed


# =============================================================================
# Tickets
# =============================================================================


@pytest.mark.parametrize("role", [Role.ADMIN, Role.AGENT, Role.CUSTOMER])
def test_any_tenant_member_can_create_ticket(role):
    actor = _actor(role)
    assert authorize(actor, Operation.CREATE, Target.new_ticket(actor)).allowed


@pytest.mark.parametrize("role", [Role.ADMIN, Role.AGENT])
def test_staff_read_every_ticket(role):
    assert authorize(_actor(role), Operation.READ, _ticket(uuid.uuid4())).allowed


def test_customer_reads_only_own_tickets():
    customer = _actor(Role.CUSTOMER)

    assert authorize(customer, Operation.READ, _ticket(customer.user_id)).allowed
    other = authorize(customer, Operation.READ, _ticket(uuid.uuid4()))
    assert other.reason == ErrorKind.INSUFFICIENT_ROLE


def test_tenant_wide_list_is_narrowed_for_customers():
    customer = _actor(Role.CUSTOMER)
    agent = _actor(Role.AGENT)

    customer_list = authorize(
        customer, Operation.LIST, Target.organization_scope(EntityKind.TICKET, customer)
    )
    agent_list = authorize(agent, Operation.LIST, Target.organization_scope(EntityKind.TICKET, agent))

    assert customer_list.allowed and customer_list.own_only
    assert agent_list.allowed and not agent_list.own_only


@pytest.mark.parametrize("role", [Role.ADMIN, Role.AGENT])
def test_staff_update_every_field(role):
    decision = authorize(_actor(role), Operation.UPDATE, _ticket(uuid.uuid4()))
    assert decision.writable_fields == TICKET_FIELDS


def test_customer_updates_own_ticket_content_only():
    customer = _actor(Role.CUSTOMER)
    decision = authorize(customer, Operation.UPDATE, _ticket(customer.user_id))

    assert decision.allowed
    assert decision.writable_fields == CUSTOMER_TICKET_FIELDS
    assert "status" not in decision.writable_fields
    assert "priority" not in decision.writable_fields
    assert "assigned_to" not in decision.writable_fields


def test_customer_cannot_update_someone_elses_ticket():
    decision = authorize(_actor(Role.CUSTOMER), Operation.UPDATE, _ticket(uuid.uuid4()))

    assert decision.reason == ErrorKind.NOT_OWNER
    with pytest.raises(NotOwnerError):
        decision.raise_for_denial()


def test_only_admin_deletes_tickets():
    assert authorize(_actor(Role.ADMIN), Operation.DELETE, _ticket(uuid.uuid4())).allowed

    for role in (Role.AGENT, Role.CUSTOMER):
        actor = _actor(role)
        decision = authorize(actor, Operation.DELETE, _ticket(actor.user_id))
        assert decision.reason == ErrorKind.INSUFFICIENT_ROLE
        with pytest.raises(InsufficientRoleError):
            decision.raise_for_denial()


# =============================================================================
# Responses
# =============================================================================


@pytest.mark.parametrize("role", [Role.ADMIN, Role.AGENT])
def test_staff_respond_with_internal_notes(role):
    ticket = Target(kind=EntityKind.RESPONSE, organization_id=ORG_A, created_by=uuid.uuid4())
    decision = authorize(_actor(role), Operation.RESPOND, ticket)

    assert decision.allowed
    assert decision.allow_internal is True


def test_customer_responds_to_own_ticket_without_internal_notes():
    customer = _actor(Role.CUSTOMER)
    own = Target(kind=EntityKind.RESPONSE, organization_id=ORG_A, created_by=customer.user_id)

    decision = authorize(customer, Operation.RESPOND, own)

    assert decision.allowed
    assert decision.allow_internal is False


def test_customer_cannot_respond_to_others_ticket():
    other = Target(kind=EntityKind.RESPONSE, organization_id=ORG_A, created_by=uuid.uuid4())
    decision = authorize(_actor(Role.CUSTOMER), Operation.RESPOND, other)
    assert decision.reason == ErrorKind.INSUFFICIENT_ROLE


def test_responses_cannot_be_edited_or_deleted():
    target = Target(kind=EntityKind.RESPONSE, organization_id=ORG_A, created_by=uuid.uuid4())
    for operation in (Operation.UPDATE, Operation.DELETE):
        assert not authorize(_actor(Role.ADMIN), operation, target).allowed
