"""Plan Enforcement — static plan x feature table, record quotas and module access.

Invariants:
    - PLAN_FEATURES is the only place that states which tier unlocks what
    - Free-plan quotas: 15 customers, 10 transactions, 2 users; paid tiers unlimited
    - Effective module access = module enabled by plan AND user's stored flag
    - Pulse is never enabled below the performance tier, whatever the stored flag says

Design Decisions:
    - Pure functions raising typed errors: services call check_* right before
      the write, so the rule lives next to the count query that feeds it
    - Messages mirror the product copy shown to users (pt-BR)
"""

from qoro.core.domain_types import Feature, LimitedResource, Module, PlanId
from qoro.core.errors import (
    PermissionDeniedError, PlanFeatureUnavailableError, PlanLimitReachedError,
)


PLAN_FEATURES: dict[PlanId, frozenset[Feature]] = {
    PlanId.FREE: frozenset(),
    PlanId.GROWTH: frozenset({Feature.PRODUCTS, Feature.SERVICES}),
    PlanId.PERFORMANCE: frozenset({
        Feature.PRODUCTS, Feature.SERVICES, Feature.QUOTES, Feature.PULSE,
    }),
}

PLAN_MODULES: dict[PlanId, frozenset[Module]] = {
    PlanId.FREE: frozenset({Module.CRM, Module.TASK, Module.FINANCE}),
    PlanId.GROWTH: frozenset({Module.CRM, Module.TASK, Module.FINANCE}),
    PlanId.PERFORMANCE: frozenset(Module),
}

FREE_PLAN_LIMITS: dict[LimitedResource, int] = {
    LimitedResource.CUSTOMERS: 15,
    LimitedResource.TRANSACTIONS: 10,
    LimitedResource.USERS: 2,
}

_FEATURE_MESSAGES = {
    Feature.PRODUCTS: "O cadastro de produtos não está disponível no plano gratuito.",
    Feature.SERVICES: "O cadastro de serviços não está disponível no plano gratuito.",
    Feature.QUOTES: "A criação de orçamentos está disponível apenas no plano Performance.",
    Feature.PULSE: "O QoroPulse está disponível apenas no plano Performance.",
}

_LIMIT_MESSAGES = {
    LimitedResource.CUSTOMERS: (
        "Limite de {limit} clientes atingido no plano gratuito. "
        "Faça upgrade para adicionar mais."
    ),
    LimitedResource.TRANSACTIONS: (
        "Limite de {limit} transações atingido no plano gratuito. "
        "Faça upgrade para adicionar mais."
    ),
    LimitedResource.USERS: (
        "O plano gratuito permite apenas {limit} usuários. "
        "Faça upgrade para convidar mais membros."
    ),
}

_MODULE_LABELS = {
    Module.CRM: "QoroCRM",
    Module.PULSE: "QoroPulse",
    Module.TASK: "QoroTask",
    Module.FINANCE: "QoroFinance",
}

_UPGRADE_PATH = {
    PlanId.FREE: PlanId.GROWTH,
    PlanId.GROWTH: PlanId.PERFORMANCE,
}


def coerce_plan(plan: str | PlanId | None) -> PlanId:
    """Unknown or missing plan ids degrade to free."""
    try:
        return PlanId(plan)
    except ValueError:
        return PlanId.FREE


def plan_allows(plan: str | PlanId, feature: Feature) -> bool:
    return feature in PLAN_FEATURES[coerce_plan(plan)]


def check_plan_feature(plan: str | PlanId, feature: Feature) -> None:
    """Raise PlanFeatureUnavailableError when the tier lacks the feature."""
    if not plan_allows(plan, feature):
        raise PlanFeatureUnavailableError(feature.value, _FEATURE_MESSAGES[feature])


def plan_limit(plan: str | PlanId, resource: LimitedResource) -> int | None:
    """Quota for resource under plan, None when unlimited."""
    if coerce_plan(plan) is PlanId.FREE:
        return FREE_PLAN_LIMITS[resource]
    return None


def check_plan_limit(
    plan: str | PlanId, resource: LimitedResource,
    current_count: int, adding: int = 1,
) -> None:
    """Raise PlanLimitReachedError if adding records would exceed the quota."""
    limit = plan_limit(plan, resource)
    if limit is None:
        return
    if current_count + adding > limit:
        raise PlanLimitReachedError(
            resource.value, limit,
            _LIMIT_MESSAGES[resource].format(limit=limit),
        )


def default_permissions(plan: str | PlanId) -> dict[str, bool]:
    """Permissions granted to a new user, derived from the plan."""
    modules = PLAN_MODULES[coerce_plan(plan)]
    return {module.value: module in modules for module in Module}


def effective_permissions(
    plan: str | PlanId, stored: dict | None,
) -> dict[str, bool]:
    """Merge stored flags over plan defaults, then mask by what the plan allows.

    Missing keys fall back to the plan default, so users created before a
    module existed still see it.
    """
    modules = PLAN_MODULES[coerce_plan(plan)]
    merged = default_permissions(plan)
    merged.update({k: bool(v) for k, v in (stored or {}).items() if k in merged})
    return {
        module.value: merged[module.value] and module in modules
        for module in Module
    }


def check_module_access(
    plan: str | PlanId, stored: dict | None, module: Module,
) -> None:
    if not effective_permissions(plan, stored)[module.value]:
        raise PermissionDeniedError(
            f"Você não tem acesso ao módulo {_MODULE_LABELS[module]}.",
        )


def next_plan(plan: str | PlanId) -> PlanId | None:
    """Tier an upgrade moves to; None at the top tier."""
    return _UPGRADE_PATH.get(coerce_plan(plan))
