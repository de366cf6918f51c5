"""Plan Enforcement — tests for the plan x feature table, free quotas and module access.

Tests cover:
    - Feature availability per tier
    - Free-plan quotas (customers, transactions, users) and unlimited paid tiers
    - Default and effective module permissions
    - check_module_access raises PermissionDeniedError with the module label
    - Upgrade path
"""

import pytest

from qoro.core.domain_types import Feature, LimitedResource, Module, PlanId
from qoro.core.enforce_plan import (
    check_module_access, check_plan_feature, check_plan_limit, coerce_plan,
    default_permissions, effective_permissions, next_plan, plan_allows, plan_limit,
)
from qoro.core.errors import (
    PermissionDeniedError, PlanFeatureUnavailableError, PlanLimitReachedError,
)


# ─── Features ────────────────────────────────────────────────────

def test_free_plan_has_no_gated_features():
    for feature in Feature:
        assert not plan_allows(PlanId.FREE, feature)


def test_growth_unlocks_catalogue_but_not_quotes_or_pulse():
    assert plan_allows("growth", Feature.PRODUCTS)
    assert plan_allows("growth", Feature.SERVICES)
    assert not plan_allows("growth", Feature.QUOTES)
    assert not plan_allows("growth", Feature.PULSE)


def test_performance_unlocks_everything():
    for feature in Feature:
        assert plan_allows(PlanId.PERFORMANCE, feature)


def test_check_plan_feature_raises_403():
    with pytest.raises(PlanFeatureUnavailableError) as exc:
        check_plan_feature(PlanId.GROWTH, Feature.QUOTES)
    assert exc.value.http_status == 403
    assert "Performance" in exc.value.message


def test_unknown_plan_degrades_to_free():
    assert coerce_plan("enterprise") is PlanId.FREE
    assert coerce_plan(None) is PlanId.FREE
    assert coerce_plan("growth") is PlanId.GROWTH


# ─── Quotas ──────────────────────────────────────────────────────

def test_free_limits():
    assert plan_limit(PlanId.FREE, LimitedResource.CUSTOMERS) == 15
    assert plan_limit(PlanId.FREE, LimitedResource.TRANSACTIONS) == 10
    assert plan_limit(PlanId.FREE, LimitedResource.USERS) == 2


def test_paid_plans_are_unlimited():
    assert plan_limit(PlanId.GROWTH, LimitedResource.CUSTOMERS) is None
    check_plan_limit(PlanId.PERFORMANCE, LimitedResource.TRANSACTIONS, 10_000)


def test_check_plan_limit_allows_up_to_the_limit():
    check_plan_limit(PlanId.FREE, LimitedResource.CUSTOMERS, 14)


def test_check_plan_limit_blocks_past_the_limit():
    with pytest.raises(PlanLimitReachedError) as exc:
        check_plan_limit(PlanId.FREE, LimitedResource.CUSTOMERS, 15)
    assert exc.value.http_status == 403
    assert "15 clientes" in exc.value.message


def test_check_plan_limit_counts_batch_size():
    check_plan_limit(PlanId.FREE, LimitedResource.TRANSACTIONS, 5, adding=5)
    with pytest.raises(PlanLimitReachedError):
        check_plan_limit(PlanId.FREE, LimitedResource.TRANSACTIONS, 5, adding=6)


# ─── Permissions ─────────────────────────────────────────────────

def test_default_permissions_free_excludes_pulse():
    perms = default_permissions(PlanId.FREE)
    assert perms == {
        "qoroCrm": True, "qoroPulse": False, "qoroTask": True, "qoroFinance": True,
    }


def test_default_permissions_performance_includes_pulse():
    assert default_permissions(PlanId.PERFORMANCE)["qoroPulse"] is True


def test_effective_permissions_masks_stored_pulse_flag_below_performance():
    perms = effective_permissions(PlanId.GROWTH, {"qoroPulse": True})
    assert perms["qoroPulse"] is False


def test_effective_permissions_respects_revoked_flag():
    perms = effective_permissions(PlanId.PERFORMANCE, {"qoroFinance": False})
    assert perms["qoroFinance"] is False
    assert perms["qoroCrm"] is True


def test_effective_permissions_ignores_unknown_keys():
    perms = effective_permissions(PlanId.FREE, {"qoroHr": True})
    assert set(perms) == {m.value for m in Module}


def test_check_module_access_names_the_module():
    with pytest.raises(PermissionDeniedError) as exc:
        check_module_access(PlanId.FREE, {}, Module.PULSE)
    assert exc.value.message == "Você não tem acesso ao módulo QoroPulse."


def test_check_module_access_passes_when_enabled():
    check_module_access(PlanId.FREE, {"qoroCrm": True}, Module.CRM)


def test_next_plan():
    assert next_plan(PlanId.FREE) is PlanId.GROWTH
    assert next_plan(PlanId.GROWTH) is PlanId.PERFORMANCE
    assert next_plan(PlanId.PERFORMANCE) is None
