"""Organization & Tenancy — tests for invites, member management and tenant isolation.

Tests cover:
    - Invites queue an e-mail; re-inviting refreshes the TTL without a new seat
    - Free seat cap counts members plus pending invites
    - The cap is re-checked when an expired invite is re-sent and when any invite is accepted
    - Accepting creates a verified member with plan-derived permissions
    - Expired / used invites are rejected
    - Admins cannot change their own permissions or remove themselves
    - A foreign id behaves exactly like a missing one (404)
    - Users without an organization list nothing and cannot write
"""

from datetime import timedelta
from uuid import uuid4

import pytest
from sqlalchemy import select

from qoro.core.domain_types import PlanId
from qoro.core.errors import (
    BusinessRuleError, ConflictError, OrganizationNotReadyError,
    PermissionDeniedError, PlanLimitReachedError, ResourceNotFoundError,
)
from qoro.core.time_utils import utc_now
from qoro.models.invite import Invite
from qoro.models.outbound_email import OutboundEmail
from qoro.models.user import User
from qoro.services import crm_service, organization_service, task_service
from qoro.services.org_context import load_actor


async def _mails(db, template):
    result = await db.execute(
        select(OutboundEmail).where(OutboundEmail.template_name == template),
    )
    return list(result.scalars().all())


# ─── Invites ─────────────────────────────────────────────────────

async def test_invite_queues_email(test_db, growth_actor, settings):
    invite = await organization_service.invite_user(
        test_db, growth_actor, "Novo@Empresa.com", settings,
    )
    assert invite.email == "novo@empresa.com"
    assert invite.status == "pending"
    mails = await _mails(test_db, "convite")
    assert len(mails) == 1
    assert mails[0].to == "novo@empresa.com"
    assert str(invite.id) in mails[0].template_data["action_url"]
    assert mails[0].template_data["organization_name"] == growth_actor.organization_name


async def test_reinvite_refreshes_same_invite(test_db, free_actor, settings):
    first = await organization_service.invite_user(
        test_db, free_actor, "novo@empresa.com", settings,
    )
    second = await organization_service.invite_user(
        test_db, free_actor, "novo@empresa.com", settings,
    )
    assert first.id == second.id
    count = len((await test_db.execute(select(Invite))).scalars().all())
    assert count == 1


async def test_free_seat_cap_counts_pending_invites(test_db, free_actor, settings):
    await organization_service.invite_user(test_db, free_actor, "a@empresa.com", settings)
    with pytest.raises(PlanLimitReachedError):
        await organization_service.invite_user(
            test_db, free_actor, "b@empresa.com", settings,
        )


async def test_refreshing_expired_invite_rechecks_seats(
    test_db, free_actor, add_member, settings,
):
    invite = await organization_service.invite_user(
        test_db, free_actor, "a@empresa.com", settings,
    )
    invite.expires_at = utc_now() - timedelta(days=1)
    await test_db.commit()
    await add_member(free_actor)

    with pytest.raises(PlanLimitReachedError):
        await organization_service.invite_user(
            test_db, free_actor, "a@empresa.com", settings,
        )


async def test_accept_rechecks_seat_cap(test_db, free_actor, add_member, settings):
    invite = await organization_service.invite_user(
        test_db, free_actor, "a@empresa.com", settings,
    )
    await add_member(free_actor)

    with pytest.raises(PlanLimitReachedError):
        await organization_service.accept_invite(
            test_db, invite.id, "Carla", "senha-forte-123",
        )
    await test_db.rollback()
    members = (await test_db.execute(
        select(User).where(User.organization_id == free_actor.organization_id),
    )).scalars().all()
    assert len(members) == 2


async def test_member_cannot_invite(test_db, growth_actor, add_member, settings):
    member = await add_member(growth_actor)
    with pytest.raises(PermissionDeniedError):
        await organization_service.invite_user(test_db, member, "x@empresa.com", settings)


async def test_invite_existing_user_conflicts(test_db, growth_actor, settings):
    with pytest.raises(ConflictError):
        await organization_service.invite_user(
            test_db, growth_actor, growth_actor.email, settings,
        )


async def test_accept_invite_creates_member(test_db, performance_actor, settings):
    invite = await organization_service.invite_user(
        test_db, performance_actor, "novo@empresa.com", settings,
    )
    user = await organization_service.accept_invite(
        test_db, invite.id, "Carla Nova", "senha-forte-123",
    )
    assert user.organization_id == performance_actor.organization_id
    assert user.role == "member"
    assert user.email_verified is True
    assert user.permissions["qoroPulse"] is True

    await test_db.refresh(invite)
    assert invite.status == "accepted"
    assert invite.accepted_by == user.id
    with pytest.raises(BusinessRuleError):
        await organization_service.validate_invite(test_db, invite.id)


async def test_expired_invite_rejected(test_db, growth_actor, settings):
    invite = await organization_service.invite_user(
        test_db, growth_actor, "novo@empresa.com", settings,
    )
    invite.expires_at = utc_now() - timedelta(minutes=1)
    await test_db.commit()
    with pytest.raises(BusinessRuleError) as exc:
        await organization_service.accept_invite(test_db, invite.id, "Carla", "senha-forte-123")
    assert exc.value.code == "INVITE_INVALID"


async def test_unknown_invite_rejected(test_db):
    with pytest.raises(BusinessRuleError):
        await organization_service.validate_invite(test_db, uuid4())


# ─── Members ─────────────────────────────────────────────────────

async def test_admin_updates_member_permissions(test_db, growth_actor, add_member):
    member = await add_member(growth_actor)
    view = await organization_service.update_user_permissions(
        test_db, growth_actor, member.user_id,
        {"qoroCrm": False, "qoroPulse": True, "qoroTask": True, "qoroFinance": True},
    )
    assert view["permissions"]["qoroCrm"] is False
    # growth never unlocks pulse, whatever is stored
    assert view["permissions"]["qoroPulse"] is False


async def test_admin_cannot_edit_self(test_db, growth_actor):
    with pytest.raises(PermissionDeniedError):
        await organization_service.update_user_permissions(
            test_db, growth_actor, growth_actor.user_id, {"qoroCrm": False},
        )
    with pytest.raises(PermissionDeniedError):
        await organization_service.delete_user(
            test_db, growth_actor, growth_actor.user_id,
        )


async def test_admin_removes_member(test_db, growth_actor, add_member):
    member = await add_member(growth_actor)
    await organization_service.delete_user(test_db, growth_actor, member.user_id)
    users = await organization_service.list_users(test_db, growth_actor)
    assert [u["id"] for u in users] == [growth_actor.user_id]


async def test_update_organization_skips_blank_fields(test_db, growth_actor):
    org = await organization_service.update_organization_details(
        test_db, growth_actor, {"name": "  Nova Razão  ", "contact_phone": "   "},
    )
    assert org.name == "Nova Razão"
    assert org.contact_phone is None


# ─── Tenant isolation ────────────────────────────────────────────

async def test_foreign_customer_is_not_found(test_db, create_admin):
    tenant_a = await create_admin(PlanId.GROWTH, name="Tenant A")
    tenant_b = await create_admin(PlanId.GROWTH, name="Tenant B")
    customer = await crm_service.create_customer(test_db, tenant_a, {"name": "Cliente A"})

    with pytest.raises(ResourceNotFoundError) as foreign:
        await crm_service.get_customer(test_db, tenant_b, customer.id)
    with pytest.raises(ResourceNotFoundError) as missing:
        await crm_service.get_customer(test_db, tenant_b, uuid4())
    assert foreign.value.message == missing.value.message
    assert await crm_service.list_customers(test_db, tenant_b) == []


async def test_foreign_member_is_not_found(test_db, create_admin, add_member):
    tenant_a = await create_admin(PlanId.GROWTH, name="Tenant A")
    tenant_b = await create_admin(PlanId.GROWTH, name="Tenant B")
    member_b = await add_member(tenant_b)
    with pytest.raises(ResourceNotFoundError):
        await organization_service.delete_user(test_db, tenant_a, member_b.user_id)


async def test_user_without_organization(test_db):
    user = User(email="solo@example.com", name="Solo", email_verified=True, permissions={})
    test_db.add(user)
    await test_db.commit()
    actor = await load_actor(test_db, user.id)

    assert actor.has_organization is False
    assert await crm_service.list_customers(test_db, actor) == []
    assert await task_service.list_tasks(test_db, actor) == []
    assert organization_service.get_user_access_info(actor) is None
    with pytest.raises(OrganizationNotReadyError):
        await crm_service.create_customer(test_db, actor, {"name": "X"})
