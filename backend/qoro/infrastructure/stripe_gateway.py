"""Stripe Gateway — thin async facade over the official stripe SDK.

Invariants:
    - Every SDK call runs in a worker thread (asyncio.to_thread); the event loop never blocks
    - Every stripe.StripeError is mapped to PaymentProviderError (core/errors.py)
    - Webhook payloads are verified against the raw body before any parsing is trusted
    - Callers receive plain dataclasses, never SDK objects

Design Decisions:
    - Resource classes with explicit api_key (stripe.Customer.list(..., api_key=...))
      over global stripe.api_key: no process-wide mutable state, testable per instance
    - SDK objects flattened with their own to_dict() before any field is read:
      StripeObject is not a dict subclass in current SDK releases
    - Period end read from the first subscription item when present: newer Stripe
      API versions moved current_period_end there
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone

import stripe

from qoro.core.errors import PaymentProviderError, WebhookSignatureError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StripeCustomer:
    id: str
    email: str | None = None
    metadata: dict = field(default_factory=dict)


@dataclass(frozen=True)
class StripeSubscription:
    id: str
    customer_id: str
    status: str
    price_id: str | None
    current_period_end: datetime | None
    metadata: dict = field(default_factory=dict)


@dataclass(frozen=True)
class StripeEvent:
    id: str
    type: str
    object: dict


def _plain(obj) -> dict:
    """Recursively copy a StripeObject (or dict) into plain dicts/lists."""
    if obj is None:
        return {}
    if hasattr(obj, "to_dict"):
        obj = obj.to_dict()
    if isinstance(obj, dict):
        return {k: _plain_value(v) for k, v in obj.items()}
    return {}


def _plain_value(value):
    if isinstance(value, list):
        return [_plain_value(v) for v in value]
    if isinstance(value, dict) or hasattr(value, "to_dict"):
        return _plain(value)
    return value


def _timestamp(value) -> datetime | None:
    if not value:
        return None
    return datetime.fromtimestamp(int(value), tz=timezone.utc)


def _to_subscription(raw) -> StripeSubscription:
    data = _plain(raw)
    items = (data.get("items") or {}).get("data") or []
    first = items[0] if items else {}
    customer = data.get("customer")
    if isinstance(customer, dict):
        customer = customer.get("id")
    return StripeSubscription(
        id=data["id"],
        customer_id=customer,
        status=data.get("status", ""),
        price_id=(first.get("price") or {}).get("id"),
        current_period_end=_timestamp(
            first.get("current_period_end") or data.get("current_period_end"),
        ),
        metadata=data.get("metadata") or {},
    )


def _to_customer(raw) -> StripeCustomer:
    data = _plain(raw)
    return StripeCustomer(
        id=data["id"], email=data.get("email"),
        metadata=data.get("metadata") or {},
    )


class StripeGateway:
    """Async wrapper for the handful of Stripe operations billing needs."""

    def __init__(self, api_key: str, webhook_secret: str = ""):
        self.api_key = api_key
        self.webhook_secret = webhook_secret

    async def _call(self, operation: str, fn, *args, **kwargs):
        try:
            return await asyncio.to_thread(fn, *args, api_key=self.api_key, **kwargs)
        except stripe.StripeError as e:
            logger.error(
                f"Stripe {operation} failed: {e}",
                extra={"error_code": getattr(e, "code", None)},
            )
            raise PaymentProviderError(str(e), operation)

    async def find_or_create_customer(
        self, *, email: str, name: str, user_id: str,
    ) -> StripeCustomer:
        found = await self._call(
            "customer_lookup", stripe.Customer.list, email=email, limit=1,
        )
        matches = _plain(found).get("data") or []
        if matches:
            return _to_customer(matches[0])
        created = await self._call(
            "customer_create", stripe.Customer.create,
            email=email, name=name, metadata={"user_id": user_id},
        )
        customer = _to_customer(created)
        logger.info(
            "Stripe customer created",
            extra={"user_id": user_id, "stripe_object_id": customer.id},
        )
        return customer

    async def retrieve_customer(self, customer_id: str) -> StripeCustomer:
        raw = await self._call(
            "customer_retrieve", stripe.Customer.retrieve, customer_id,
        )
        return _to_customer(raw)

    async def retrieve_subscription(self, subscription_id: str) -> StripeSubscription:
        raw = await self._call(
            "subscription_retrieve", stripe.Subscription.retrieve, subscription_id,
        )
        return _to_subscription(raw)

    async def create_checkout_session(
        self, *, customer_id: str, price_id: str, success_url: str,
        cancel_url: str, metadata: dict[str, str],
    ) -> str:
        """Create a subscription checkout; returns the hosted page URL."""
        session = await self._call(
            "checkout_create", stripe.checkout.Session.create,
            mode="subscription",
            payment_method_types=["card"],
            billing_address_collection="required",
            customer=customer_id,
            line_items=[{"price": price_id, "quantity": 1}],
            success_url=success_url,
            cancel_url=cancel_url,
            metadata=metadata,
            subscription_data={"metadata": metadata},
        )
        url = _plain(session).get("url")
        if not url:
            raise PaymentProviderError(
                "checkout session has no URL", "checkout_create",
            )
        return url

    async def create_portal_session(self, *, customer_id: str, return_url: str) -> str:
        session = await self._call(
            "portal_create", stripe.billing_portal.Session.create,
            customer=customer_id, return_url=return_url,
        )
        return _plain(session).get("url") or ""

    def construct_event(self, payload: bytes, signature: str | None) -> StripeEvent:
        """Verify the signature header and parse the event.

        Raises WebhookSignatureError on a missing header, missing secret,
        bad signature or malformed payload.
        """
        if not signature or not self.webhook_secret:
            raise WebhookSignatureError("Webhook secret not configured")
        try:
            event = stripe.Webhook.construct_event(
                payload, signature, self.webhook_secret,
            )
        except stripe.SignatureVerificationError as e:
            raise WebhookSignatureError(f"Webhook error: {e}")
        except ValueError as e:
            raise WebhookSignatureError(f"Webhook error: {e}")
        data = _plain(event)
        return StripeEvent(
            id=data.get("id", ""),
            type=data.get("type", ""),
            object=(data.get("data") or {}).get("object") or {},
        )
