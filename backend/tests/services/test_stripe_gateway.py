"""Stripe Gateway — tests for the conversion of real SDK objects into plain dataclasses.

Tests cover:
    - Subscriptions built by the SDK keep id, customer, status, price and period end
    - Customers built by the SDK keep id, e-mail and metadata
    - A signed event parses into its real type and object payload
    - find_or_create_customer reuses a listed customer or creates one
    - Checkout and portal sessions return the hosted URL
"""

from datetime import datetime, timezone

import pytest
import stripe

from qoro.core.errors import PaymentProviderError, WebhookSignatureError
from qoro.infrastructure.stripe_gateway import (
    StripeGateway, _to_customer, _to_subscription,
)
from tests.services.stripe_events import event, signed_event

API_KEY = "sk_test_fake"
SECRET = "whsec_gateway_test"
PERIOD_END = 1893456000  # 2030-01-01


def _subscription(**overrides):
    values = {
        "id": "sub_1",
        "object": "subscription",
        "customer": "cus_1",
        "status": "active",
        "metadata": {"user_id": "u-1"},
        "items": {
            "object": "list",
            "data": [{
                "id": "si_1",
                "object": "subscription_item",
                "price": {"id": "price_growth_test", "object": "price"},
                "current_period_end": PERIOD_END,
            }],
        },
    }
    values.update(overrides)
    return stripe.Subscription.construct_from(values, API_KEY)


def _customer(customer_id="cus_1", email="ana@empresa.com"):
    return stripe.Customer.construct_from({
        "id": customer_id, "object": "customer", "email": email,
        "metadata": {"user_id": "u-1"},
    }, API_KEY)


def _list(*objects):
    return stripe.ListObject.construct_from({
        "object": "list", "data": [o.to_dict() for o in objects],
    }, API_KEY)


# ─── Conversion ──────────────────────────────────────────────────

def test_subscription_from_sdk_object():
    sub = _to_subscription(_subscription())
    assert sub.id == "sub_1"
    assert sub.customer_id == "cus_1"
    assert sub.status == "active"
    assert sub.price_id == "price_growth_test"
    assert sub.current_period_end == datetime(2030, 1, 1, tzinfo=timezone.utc)
    assert sub.metadata == {"user_id": "u-1"}


def test_subscription_period_end_falls_back_to_top_level():
    sub = _to_subscription(_subscription(
        items={"object": "list", "data": []}, current_period_end=PERIOD_END,
    ))
    assert sub.price_id is None
    assert sub.current_period_end == datetime(2030, 1, 1, tzinfo=timezone.utc)


def test_subscription_with_expanded_customer():
    sub = _to_subscription(_subscription(
        customer={"id": "cus_9", "object": "customer"},
    ))
    assert sub.customer_id == "cus_9"


def test_customer_from_sdk_object():
    customer = _to_customer(_customer())
    assert customer.id == "cus_1"
    assert customer.email == "ana@empresa.com"
    assert customer.metadata == {"user_id": "u-1"}


# ─── Webhook parsing ─────────────────────────────────────────────

def test_signed_event_keeps_type_and_object():
    gateway = StripeGateway(API_KEY, SECRET)
    payload, headers = signed_event(
        event("checkout.session.completed", {
            "id": "cs_1", "object": "checkout.session",
            "subscription": "sub_1", "metadata": {"user_id": "u-1"},
        }, event_id="evt_42"),
        SECRET,
    )
    parsed = gateway.construct_event(payload, headers["stripe-signature"])
    assert parsed.id == "evt_42"
    assert parsed.type == "checkout.session.completed"
    assert parsed.object["subscription"] == "sub_1"
    assert parsed.object["metadata"] == {"user_id": "u-1"}
    assert isinstance(parsed.object, dict)


def test_wrong_secret_rejected():
    gateway = StripeGateway(API_KEY, SECRET)
    payload, headers = signed_event(event("invoice.paid", {}), "whsec_other")
    with pytest.raises(WebhookSignatureError):
        gateway.construct_event(payload, headers["stripe-signature"])


# ─── Network-facing calls ────────────────────────────────────────

async def test_existing_customer_reused(monkeypatch):
    calls = []
    monkeypatch.setattr(
        stripe.Customer, "list", lambda **kw: calls.append(kw) or _list(_customer()),
    )

    def _no_create(**kwargs):
        raise AssertionError("customer must not be created")

    monkeypatch.setattr(stripe.Customer, "create", _no_create)

    customer = await StripeGateway(API_KEY).find_or_create_customer(
        email="ana@empresa.com", name="Ana", user_id="u-1",
    )
    assert customer.id == "cus_1"
    assert calls[0]["email"] == "ana@empresa.com"
    assert calls[0]["api_key"] == API_KEY


async def test_missing_customer_created(monkeypatch):
    created = []
    monkeypatch.setattr(stripe.Customer, "list", lambda **kw: _list())

    def _create(**kwargs):
        created.append(kwargs)
        return _customer("cus_new", kwargs["email"])

    monkeypatch.setattr(stripe.Customer, "create", _create)

    customer = await StripeGateway(API_KEY).find_or_create_customer(
        email="novo@empresa.com", name="Novo", user_id="u-2",
    )
    assert customer.id == "cus_new"
    assert created[0]["metadata"] == {"user_id": "u-2"}


async def test_checkout_session_url(monkeypatch):
    def _create(**kwargs):
        return stripe.checkout.Session.construct_from({
            "id": "cs_1", "object": "checkout.session",
            "url": "https://checkout.stripe.com/c/cs_1",
        }, API_KEY)

    monkeypatch.setattr(stripe.checkout.Session, "create", _create)

    url = await StripeGateway(API_KEY).create_checkout_session(
        customer_id="cus_1", price_id="price_growth_test",
        success_url="https://app/ok", cancel_url="https://app/cancel",
        metadata={"user_id": "u-1"},
    )
    assert url == "https://checkout.stripe.com/c/cs_1"


async def test_checkout_session_without_url_fails(monkeypatch):
    monkeypatch.setattr(
        stripe.checkout.Session, "create",
        lambda **kw: stripe.checkout.Session.construct_from(
            {"id": "cs_1", "object": "checkout.session", "url": None}, API_KEY,
        ),
    )
    with pytest.raises(PaymentProviderError):
        await StripeGateway(API_KEY).create_checkout_session(
            customer_id="cus_1", price_id="price_growth_test",
            success_url="https://app/ok", cancel_url="https://app/cancel",
            metadata={},
        )


async def test_sdk_error_mapped(monkeypatch):
    def _fail(*args, **kwargs):
        raise stripe.InvalidRequestError("No such subscription", "id")

    monkeypatch.setattr(stripe.Subscription, "retrieve", _fail)
    with pytest.raises(PaymentProviderError):
        await StripeGateway(API_KEY).retrieve_subscription("sub_missing")
