"""Subscription Rules — webhook event routing and Stripe price/status -> plan mapping.

Invariants:
    - Only RELEVANT_EVENTS cause writes; every other event is acknowledged untouched
    - checkout.session.completed creates a profile, unless its metadata marks an upgrade
    - canceled / unpaid / incomplete_expired subscriptions fall back to the free plan
    - Free organizations start `active`; paid ones stay `pending` until Stripe confirms

Design Decisions:
    - Price ids come from settings and are passed in: core stays config-free
"""

from dataclasses import dataclass

from qoro.core.domain_types import PlanId, SubscriptionStatus
from qoro.core.enforce_plan import next_plan


CHECKOUT_COMPLETED = "checkout.session.completed"
SUBSCRIPTION_EVENTS = frozenset({
    "customer.subscription.updated",
    "customer.subscription.deleted",
    "customer.subscription.paused",
    "customer.subscription.resumed",
})
RELEVANT_EVENTS = SUBSCRIPTION_EVENTS | {CHECKOUT_COMPLETED}

_LAPSED_STATUSES = frozenset({
    SubscriptionStatus.CANCELED.value,
    SubscriptionStatus.UNPAID.value,
    SubscriptionStatus.INCOMPLETE_EXPIRED.value,
})


@dataclass(frozen=True)
class SubscriptionChange:
    """What a relevant webhook event asks the billing service to do."""
    subscription_id: str | None
    is_creating: bool


def route_event(event_type: str, obj: dict) -> SubscriptionChange | None:
    """Map a webhook event to a subscription change; None when irrelevant."""
    if event_type == CHECKOUT_COMPLETED:
        subscription = obj.get("subscription")
        if not isinstance(subscription, str):
            subscription = None
        metadata = obj.get("metadata") or {}
        return SubscriptionChange(
            subscription_id=subscription,
            is_creating=metadata.get("upgrade") != "true",
        )
    if event_type in SUBSCRIPTION_EVENTS:
        return SubscriptionChange(subscription_id=obj.get("id"), is_creating=False)
    return None


def plan_for_price(
    price_id: str | None, growth_price_id: str, performance_price_id: str,
) -> PlanId | None:
    if price_id and price_id == growth_price_id:
        return PlanId.GROWTH
    if price_id and price_id == performance_price_id:
        return PlanId.PERFORMANCE
    return None


def checkout_plan(price_id: str, growth_price_id: str) -> PlanId:
    """Checkout only sells paid tiers: anything that isn't growth is performance."""
    if price_id == growth_price_id:
        return PlanId.GROWTH
    return PlanId.PERFORMANCE


def resolve_plan(
    current: PlanId, status: str, price_plan: PlanId | None,
) -> PlanId:
    """Plan an organization holds after a subscription update."""
    if status in _LAPSED_STATUSES:
        return PlanId.FREE
    return price_plan or current


def initial_subscription_status(plan: PlanId) -> str:
    if plan is PlanId.FREE:
        return SubscriptionStatus.ACTIVE.value
    return SubscriptionStatus.PENDING.value


def upgrade_price(
    plan: str | PlanId, growth_price_id: str, performance_price_id: str,
) -> str | None:
    """Price id of the next tier, None at the top or when unconfigured."""
    target = next_plan(plan)
    if target is PlanId.GROWTH:
        return growth_price_id or None
    if target is PlanId.PERFORMANCE:
        return performance_price_id or None
    return None
