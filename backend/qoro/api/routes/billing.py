"""Billing Routes — Stripe checkout, billing portal, plan upgrade and webhook.

Invariants:
    - The webhook is public and trusts nothing but the stripe-signature header
    - Missing or invalid signatures answer 400 before any read or write
    - Irrelevant events answer 200 {"received": true} without touching the DB
    - A failing handler rolls back and answers 500 so Stripe retries the event

Design Decisions:
    - Webhook failures answer a fixed body, not the QoroError envelope: Stripe
      only reads the status code and the details belong in the logs
"""

import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from qoro.api.deps import get_current_actor, get_stripe_gateway
from qoro.config import Settings, get_settings
from qoro.core.errors import PaymentProviderError, QoroError, WebhookSignatureError
from qoro.infrastructure.database import get_db
from qoro.infrastructure.stripe_gateway import StripeGateway
from qoro.schemas.billing import CheckoutRequest, RedirectResponse, WebhookAck
from qoro.services import billing_service
from qoro.services.org_context import ActorContext

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/billing", tags=["billing"])

WEBHOOK_FAILED = "Webhook handler failed. View logs for more details."


def _require_gateway(gateway: StripeGateway | None) -> StripeGateway:
    if gateway is None:
        raise PaymentProviderError("Stripe is not configured", "configuration")
    return gateway


@router.post("/checkout", response_model=RedirectResponse)
async def create_checkout(
    body: CheckoutRequest,
    actor: ActorContext = Depends(get_current_actor),
    settings: Settings = Depends(get_settings),
    gateway: StripeGateway | None = Depends(get_stripe_gateway),
):
    url = await billing_service.create_checkout_session(
        _require_gateway(gateway), settings,
        user_id=actor.user_id,
        email=actor.email,
        name=actor.name,
        price_id=body.price_id,
        organization_name=body.organization_name,
        cnpj=body.cnpj,
        contact_email=body.contact_email,
        contact_phone=body.contact_phone,
    )
    return {"url": url}


@router.post("/portal", response_model=RedirectResponse)
async def create_portal(
    actor: ActorContext = Depends(get_current_actor),
    settings: Settings = Depends(get_settings),
    gateway: StripeGateway | None = Depends(get_stripe_gateway),
):
    url = await billing_service.create_billing_portal_session(
        _require_gateway(gateway), settings, actor,
    )
    return {"url": url}


@router.post("/upgrade", response_model=RedirectResponse)
async def create_upgrade(
    actor: ActorContext = Depends(get_current_actor),
    settings: Settings = Depends(get_settings),
    gateway: StripeGateway | None = Depends(get_stripe_gateway),
):
    url = await billing_service.create_upgrade_session(
        _require_gateway(gateway), settings, actor,
    )
    return {"url": url}


@router.post("/webhook", response_model=WebhookAck)
async def stripe_webhook(
    request: Request,
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
    gateway: StripeGateway | None = Depends(get_stripe_gateway),
):
    payload = await request.body()
    signature = request.headers.get("stripe-signature")
    if gateway is None:
        raise WebhookSignatureError("Webhook secret not configured")
    event = gateway.construct_event(payload, signature)

    try:
        await billing_service.handle_webhook_event(db, gateway, settings, event)
    except Exception as e:
        await db.rollback()
        code = e.code if isinstance(e, QoroError) else "INTERNAL_ERROR"
        logger.error(
            f"Webhook handler failed for {event.type}: {e}",
            exc_info=not isinstance(e, QoroError),
            extra={"event_type": event.type, "error_code": code},
        )
        return JSONResponse(status_code=500, content={"error": WEBHOOK_FAILED})
    return {"received": True}
