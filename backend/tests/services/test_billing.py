"""Billing — tests for Stripe checkout, portal, upgrade and webhook sync.

Tests cover:
    - Webhook rejects missing / forged signatures (400) before touching the DB
    - Irrelevant events are acknowledged untouched
    - checkout.session.completed creates the paid profile from subscription metadata
    - checkout.session.completed without a subscription id answers 500 for redelivery
    - subscription updates move the plan; lapsed subscriptions fall back to free
    - Upgrade checkout is admin-only and tagged so the webhook treats it as an update
    - Unconfigured Stripe answers 502 on billing actions
"""

from datetime import datetime, timezone
from uuid import uuid4

import pytest

from qoro.api.deps import get_stripe_gateway
from qoro.core.domain_types import PlanId
from qoro.core.errors import BusinessRuleError, PermissionDeniedError
from qoro.infrastructure.stripe_gateway import (
    StripeCustomer, StripeEvent, StripeSubscription,
)
from qoro.main import app
from qoro.models.organization import Organization
from qoro.models.user import User
from qoro.services import billing_service
from tests.services.stripe_events import event, signed_event

PERIOD_END = datetime(2030, 1, 1, tzinfo=timezone.utc)


async def _pending_user(db, email="pago@empresa.com"):
    user = User(email=email, name="Paula Paga", email_verified=True, permissions={})
    db.add(user)
    await db.commit()
    return user


# ─── Webhook signature ───────────────────────────────────────────

async def test_webhook_without_signature_is_400(client, fake_stripe):
    response = await client.post(
        "/api/v1/billing/webhook", content=b'{"type": "invoice.paid"}',
    )
    assert response.status_code == 400
    assert response.json()["error"]["code"] == "WEBHOOK_SIGNATURE_INVALID"


async def test_webhook_with_forged_signature_is_400(client, fake_stripe):
    payload, headers = signed_event(event("invoice.paid", {}), "whsec_wrong")
    response = await client.post(
        "/api/v1/billing/webhook", content=payload, headers=headers,
    )
    assert response.status_code == 400


async def test_webhook_unconfigured_is_400(client):
    app.dependency_overrides[get_stripe_gateway] = lambda: None
    response = await client.post(
        "/api/v1/billing/webhook", content=b"{}",
        headers={"stripe-signature": "t=1,v1=abc"},
    )
    assert response.status_code == 400


async def test_irrelevant_event_acknowledged(client, fake_stripe, settings):
    payload, headers = signed_event(
        event("invoice.paid", {"id": "in_1"}), settings.stripe_webhook_secret,
    )
    response = await client.post(
        "/api/v1/billing/webhook", content=payload, headers=headers,
    )
    assert response.status_code == 200
    assert response.json() == {"received": True}


# ─── Webhook sync ────────────────────────────────────────────────

async def test_checkout_completed_creates_paid_profile(
    client, test_db, fake_stripe, settings,
):
    user = await _pending_user(test_db)
    fake_stripe.subscriptions["sub_1"] = StripeSubscription(
        id="sub_1", customer_id="cus_1", status="active",
        price_id=settings.stripe_performance_price_id,
        current_period_end=PERIOD_END,
        metadata={
            "user_id": str(user.id), "organizationName": "Paga Ltda",
            "cnpj": "11.222.333/0001-44", "planId": "performance",
        },
    )
    payload, headers = signed_event(
        event("checkout.session.completed", {"subscription": "sub_1", "metadata": {}}),
        settings.stripe_webhook_secret,
    )
    response = await client.post(
        "/api/v1/billing/webhook", content=payload, headers=headers,
    )
    assert response.status_code == 200

    await test_db.refresh(user)
    assert user.organization_id is not None
    assert user.role == "admin"
    org = await test_db.get(Organization, user.organization_id)
    assert org.name == "Paga Ltda"
    assert org.plan_id == "performance"
    assert org.stripe_customer_id == "cus_1"
    assert org.stripe_subscription_status == "active"


async def test_handler_failure_answers_500(client, test_db, fake_stripe, settings):
    fake_stripe.subscriptions["sub_x"] = StripeSubscription(
        id="sub_x", customer_id="cus_x", status="active", price_id=None,
        current_period_end=None, metadata={},
    )
    payload, headers = signed_event(
        event("checkout.session.completed", {"subscription": "sub_x"}),
        settings.stripe_webhook_secret,
    )
    response = await client.post(
        "/api/v1/billing/webhook", content=payload, headers=headers,
    )
    assert response.status_code == 500
    assert response.json() == {
        "error": "Webhook handler failed. View logs for more details.",
    }


async def test_subscription_update_changes_plan(test_db, growth_actor, fake_stripe, settings):
    org = await test_db.get(Organization, growth_actor.organization_id)
    org.stripe_customer_id = "cus_g"
    await test_db.commit()
    fake_stripe.customers["cus_g"] = StripeCustomer(
        id="cus_g", metadata={"user_id": str(growth_actor.user_id)},
    )
    fake_stripe.subscriptions["sub_g"] = StripeSubscription(
        id="sub_g", customer_id="cus_g", status="active",
        price_id=settings.stripe_performance_price_id,
        current_period_end=PERIOD_END,
    )
    await billing_service.update_subscription(
        test_db, fake_stripe, settings, "sub_g", is_creating=False,
    )
    await test_db.refresh(org)
    assert org.plan_id == "performance"
    assert org.stripe_subscription_id == "sub_g"


async def test_canceled_subscription_falls_back_to_free(
    test_db, performance_actor, fake_stripe, settings,
):
    org = await test_db.get(Organization, performance_actor.organization_id)
    org.stripe_customer_id = "cus_p"
    await test_db.commit()
    # no user_id in customer metadata: the organization is found by customer id
    fake_stripe.customers["cus_p"] = StripeCustomer(id="cus_p")
    fake_stripe.subscriptions["sub_p"] = StripeSubscription(
        id="sub_p", customer_id="cus_p", status="canceled",
        price_id=settings.stripe_performance_price_id,
        current_period_end=PERIOD_END,
    )
    await billing_service.update_subscription(
        test_db, fake_stripe, settings, "sub_p", is_creating=False,
    )
    await test_db.refresh(org)
    assert org.plan_id == "free"
    assert org.stripe_subscription_status == "canceled"


# ─── Checkout / portal / upgrade ─────────────────────────────────

async def test_checkout_rejects_unknown_price(fake_stripe, settings):
    with pytest.raises(BusinessRuleError) as exc:
        await billing_service.create_checkout_session(
            fake_stripe, settings, user_id=uuid4(), email="a@b.com",
            name="A", price_id="price_unknown", organization_name="X", cnpj="1",
        )
    assert exc.value.code == "INVALID_PRICE"


async def test_checkout_metadata_carries_profile(fake_stripe, settings):
    url = await billing_service.create_checkout_session(
        fake_stripe, settings, user_id=uuid4(), email="a@b.com",
        name="A", price_id=settings.stripe_growth_price_id,
        organization_name="Empresa X", cnpj="11.222.333/0001-44",
    )
    assert url.startswith("https://checkout.stripe.test/")
    metadata = fake_stripe.checkouts[0]["metadata"]
    assert metadata["planId"] == "growth"
    assert metadata["organizationName"] == "Empresa X"
    assert metadata["contactEmail"] == "a@b.com"


async def test_upgrade_is_admin_only(test_db, growth_actor, add_member, fake_stripe, settings):
    member = await add_member(growth_actor)
    with pytest.raises(PermissionDeniedError):
        await billing_service.create_upgrade_session(fake_stripe, settings, member)


async def test_upgrade_targets_next_tier(growth_actor, fake_stripe, settings):
    await billing_service.create_upgrade_session(fake_stripe, settings, growth_actor)
    checkout = fake_stripe.checkouts[0]
    assert checkout["price_id"] == settings.stripe_performance_price_id
    assert checkout["metadata"]["upgrade"] == "true"
    assert checkout["metadata"]["planId"] == PlanId.PERFORMANCE.value


async def test_no_upgrade_from_top_tier(performance_actor, fake_stripe, settings):
    with pytest.raises(BusinessRuleError) as exc:
        await billing_service.create_upgrade_session(fake_stripe, settings, performance_actor)
    assert exc.value.code == "NO_UPGRADE_AVAILABLE"


async def test_portal_requires_stripe_customer(growth_actor, fake_stripe, settings):
    with pytest.raises(BusinessRuleError) as exc:
        await billing_service.create_billing_portal_session(
            fake_stripe, settings, growth_actor,
        )
    assert exc.value.code == "STRIPE_CUSTOMER_MISSING"


async def test_billing_actions_without_stripe_are_502(client, growth_actor, auth_headers):
    app.dependency_overrides[get_stripe_gateway] = lambda: None
    response = await client.post(
        "/api/v1/billing/upgrade", headers=auth_headers(growth_actor),
    )
    assert response.status_code == 502


async def test_checkout_without_subscription_id_answers_500(
    client, test_db, fake_stripe, settings,
):
    user = await _pending_user(test_db, email="sem-assinatura@empresa.com")
    payload, headers = signed_event(
        event("checkout.session.completed", {
            "id": "cs_1", "subscription": None,
            "metadata": {"user_id": str(user.id)},
        }),
        settings.stripe_webhook_secret,
    )
    response = await client.post(
        "/api/v1/billing/webhook", content=payload, headers=headers,
    )
    assert response.status_code == 500
    await test_db.refresh(user)
    assert user.organization_id is None


async def test_event_without_subscription_id_raises(test_db, fake_stripe, settings):
    with pytest.raises(BusinessRuleError) as exc:
        await billing_service.handle_webhook_event(
            test_db, fake_stripe, settings,
            StripeEvent(id="evt_1", type="checkout.session.completed", object={}),
        )
    assert exc.value.code == "SUBSCRIPTION_ID_MISSING"
