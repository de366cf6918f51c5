"""Billing Service — Stripe checkout/portal/upgrade sessions and subscription sync.

Invariants:
    - Only configured price ids (growth, performance) can be sold
    - Checkout metadata carries user_id plus the organization fields the
      webhook needs to create the profile
    - update_subscription(creating) is idempotent through create_user_profile
    - update_subscription(updating) never changes anything but the Stripe
      mirror columns and the plan id
    - Lapsed subscriptions (canceled, unpaid, incomplete_expired) drop the plan to free
    - A relevant event without a subscription id raises, so Stripe redelivers it

Design Decisions:
    - Subscription state is always re-read from Stripe by id instead of trusting
      the event payload: out-of-order deliveries converge on the latest state
    - Customer lookup falls back to organizations.stripe_customer_id when the
      Stripe customer predates the user_id metadata
"""

import logging
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from qoro.config import Settings
from qoro.core.domain_types import PlanId
from qoro.core.enforce_plan import coerce_plan
from qoro.core.enforce_roles import check_admin
from qoro.core.errors import BusinessRuleError, ResourceNotFoundError
from qoro.core.subscription_rules import (
    checkout_plan, plan_for_price, resolve_plan, route_event, upgrade_price,
)
from qoro.infrastructure.stripe_gateway import StripeEvent, StripeGateway
from qoro.models.organization import Organization
from qoro.models.user import User
from qoro.services.org_context import ActorContext
from qoro.services.organization_service import create_user_profile

logger = logging.getLogger(__name__)


def _parse_uuid(value: str | None) -> UUID | None:
    try:
        return UUID(value) if value else None
    except ValueError:
        return None


async def create_checkout_session(
    gateway: StripeGateway,
    settings: Settings,
    *,
    user_id: UUID,
    email: str,
    name: str,
    price_id: str,
    organization_name: str,
    cnpj: str,
    contact_email: str | None = None,
    contact_phone: str | None = None,
) -> str:
    """Hosted checkout URL for a paid sign-up."""
    if not price_id or price_id not in (
        settings.stripe_growth_price_id, settings.stripe_performance_price_id,
    ):
        raise BusinessRuleError("Plano selecionado inválido.", "INVALID_PRICE")

    plan = checkout_plan(price_id, settings.stripe_growth_price_id)
    customer = await gateway.find_or_create_customer(
        email=email, name=name, user_id=str(user_id),
    )
    metadata = {
        "user_id": str(user_id),
        "organizationName": organization_name,
        "cnpj": cnpj,
        "contactEmail": contact_email or email,
        "contactPhone": contact_phone or "",
        "planId": plan.value,
        "stripePriceId": price_id,
    }
    url = await gateway.create_checkout_session(
        customer_id=customer.id,
        price_id=price_id,
        success_url=f"{settings.site_url}/login?payment_success=true",
        cancel_url=(
            f"{settings.site_url}/signup?plan={plan.value}&payment_cancelled=true"
        ),
        metadata=metadata,
    )
    logger.info(
        "Checkout session created",
        extra={"user_id": str(user_id), "stripe_object_id": customer.id},
    )
    return url


async def create_billing_portal_session(
    gateway: StripeGateway, settings: Settings, actor: ActorContext,
) -> str:
    if not actor.has_organization:
        raise BusinessRuleError(
            "Organização do usuário não encontrada ou não sincronizada.",
            "ORGANIZATION_NOT_SYNCED",
        )
    if not actor.stripe_customer_id:
        raise BusinessRuleError(
            "Customer ID do Stripe não encontrado para esta organização.",
            "STRIPE_CUSTOMER_MISSING",
        )
    return await gateway.create_portal_session(
        customer_id=actor.stripe_customer_id,
        return_url=f"{settings.site_url}/dashboard/settings",
    )


async def create_upgrade_session(
    gateway: StripeGateway, settings: Settings, actor: ActorContext,
) -> str:
    """Checkout for the next tier; the webhook treats it as an update."""
    organization_id = actor.require_organization()
    check_admin(actor.role, "Apenas administradores podem alterar o plano.")
    price_id = upgrade_price(
        actor.plan_id, settings.stripe_growth_price_id,
        settings.stripe_performance_price_id,
    )
    if price_id is None:
        raise BusinessRuleError(
            "Não há um plano superior disponível ou os IDs de preço não estão configurados.",
            "NO_UPGRADE_AVAILABLE",
        )
    customer_id = actor.stripe_customer_id
    if not customer_id:
        customer = await gateway.find_or_create_customer(
            email=actor.email, name=actor.name, user_id=str(actor.user_id),
        )
        customer_id = customer.id
    target = plan_for_price(
        price_id, settings.stripe_growth_price_id,
        settings.stripe_performance_price_id,
    )
    return await gateway.create_checkout_session(
        customer_id=customer_id,
        price_id=price_id,
        success_url=f"{settings.site_url}/dashboard/settings?upgrade_success=true",
        cancel_url=f"{settings.site_url}/dashboard/settings",
        metadata={
            "user_id": str(actor.user_id),
            "organizationId": str(organization_id),
            "planId": target.value if target else "",
            "stripePriceId": price_id,
            "upgrade": "true",
        },
    )


# ─── Webhook sync ────────────────────────────────────────────────

async def _create_from_subscription(
    db: AsyncSession, gateway: StripeGateway, settings: Settings,
    subscription_id: str,
) -> None:
    sub = await gateway.retrieve_subscription(subscription_id)
    user_id = _parse_uuid(sub.metadata.get("user_id"))
    if user_id is None:
        raise BusinessRuleError(
            "ID do usuário não encontrado nos metadados da assinatura.",
            "SUBSCRIPTION_METADATA_MISSING",
        )
    user = await db.get(User, user_id)
    if user is None:
        raise ResourceNotFoundError("User", str(user_id))

    plan = plan_for_price(
        sub.price_id, settings.stripe_growth_price_id,
        settings.stripe_performance_price_id,
    ) or coerce_plan(sub.metadata.get("planId"))
    org = await create_user_profile(
        db,
        user,
        organization_name=sub.metadata.get("organizationName") or user.name,
        cnpj=sub.metadata.get("cnpj") or None,
        contact_email=sub.metadata.get("contactEmail") or None,
        contact_phone=sub.metadata.get("contactPhone") or None,
        plan=plan,
        stripe_customer_id=sub.customer_id,
        stripe_subscription_id=sub.id,
        stripe_price_id=sub.price_id,
        subscription_status=sub.status,
    )
    if org.stripe_current_period_end is None:
        org.stripe_current_period_end = sub.current_period_end
    await db.commit()


async def _find_subscriber(
    db: AsyncSession, gateway: StripeGateway, customer_id: str,
) -> tuple[User | None, Organization | None]:
    customer = await gateway.retrieve_customer(customer_id)
    user_id = _parse_uuid(customer.metadata.get("user_id"))
    if user_id is not None:
        user = await db.get(User, user_id)
        if user is None or user.organization_id is None:
            return user, None
        return user, await db.get(Organization, user.organization_id)

    org = await db.scalar(
        select(Organization).where(Organization.stripe_customer_id == customer_id),
    )
    if org is None:
        raise BusinessRuleError(
            "ID do usuário não encontrado nos metadados do cliente.",
            "CUSTOMER_METADATA_MISSING",
        )
    owner = await db.get(User, org.owner_id) if org.owner_id else None
    return owner, org


async def _update_from_subscription(
    db: AsyncSession, gateway: StripeGateway, settings: Settings,
    subscription_id: str,
) -> None:
    sub = await gateway.retrieve_subscription(subscription_id)
    user, org = await _find_subscriber(db, gateway, sub.customer_id)
    if user is None or org is None:
        raise ResourceNotFoundError(
            "Organization", sub.customer_id,
            "Usuário ou organização não encontrado durante a atualização da assinatura.",
        )

    price_plan = plan_for_price(
        sub.price_id, settings.stripe_growth_price_id,
        settings.stripe_performance_price_id,
    )
    previous = coerce_plan(org.plan_id)
    plan = resolve_plan(previous, sub.status, price_plan)

    org.stripe_customer_id = sub.customer_id
    org.stripe_subscription_id = sub.id
    org.stripe_price_id = sub.price_id
    org.stripe_subscription_status = sub.status
    org.stripe_current_period_end = sub.current_period_end
    org.plan_id = plan.value
    user.stripe_subscription_status = sub.status
    await db.commit()

    extra = {
        "organization_id": str(org.id),
        "user_id": str(user.id),
        "stripe_object_id": sub.id,
    }
    if plan is not previous:
        logger.info(f"Plan changed {previous.value} -> {plan.value}", extra=extra)
    else:
        logger.info("Subscription synced", extra=extra)


async def update_subscription(
    db: AsyncSession, gateway: StripeGateway, settings: Settings,
    subscription_id: str, is_creating: bool,
) -> None:
    if is_creating:
        await _create_from_subscription(db, gateway, settings, subscription_id)
    else:
        await _update_from_subscription(db, gateway, settings, subscription_id)


async def handle_webhook_event(
    db: AsyncSession, gateway: StripeGateway, settings: Settings,
    event: StripeEvent,
) -> bool:
    """Apply a verified event. Returns False when the event is ignored."""
    change = route_event(event.type, event.object)
    if change is None:
        logger.info("Webhook event ignored", extra={"event_type": event.type})
        return False
    if change.subscription_id is None:
        raise BusinessRuleError(
            "ID da assinatura não encontrado na sessão de checkout.",
            "SUBSCRIPTION_ID_MISSING",
        )
    logger.info(
        "Webhook event received",
        extra={"event_type": event.type, "stripe_object_id": change.subscription_id},
    )
    await update_subscription(
        db, gateway, settings, change.subscription_id, change.is_creating,
    )
    return True


def price_for_plan(settings: Settings, plan: PlanId) -> str | None:
    if plan is PlanId.GROWTH:
        return settings.stripe_growth_price_id or None
    if plan is PlanId.PERFORMANCE:
        return settings.stripe_performance_price_id or None
    return None
