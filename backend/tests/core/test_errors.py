"""Errors — tests for the QoroError hierarchy and its response envelope."""

from qoro.core.errors import (
    AssistantUnavailableError, AuthenticationError, BusinessRuleError,
    ConflictError, ErrorContext, OrganizationNotReadyError,
    PaymentProviderError, ResourceNotFoundError, WebhookSignatureError,
)


def test_to_response_envelope():
    ctx = ErrorContext(organization_id="org-1", conversation_id="conv-1")
    error = BusinessRuleError("Regra violada.", "RULE", ctx)
    body = error.to_response()["error"]
    assert body["code"] == "RULE"
    assert body["message"] == "Regra violada."
    assert body["category"] == "business_rule"
    assert body["severity"] == "error"
    assert body["context"]["organization_id"] == "org-1"
    assert body["context"]["conversation_id"] == "conv-1"
    assert "timestamp" in body


def test_http_statuses():
    assert BusinessRuleError("x").http_status == 400
    assert ResourceNotFoundError("Customer", "1").http_status == 404
    assert AuthenticationError().http_status == 401
    assert OrganizationNotReadyError().http_status == 409
    assert ConflictError("x").http_status == 409
    assert WebhookSignatureError("x").http_status == 400
    assert AssistantUnavailableError().http_status == 503
    assert PaymentProviderError("x", "checkout_create").http_status == 502


def test_authentication_default_code():
    assert AuthenticationError().code == "AUTHENTICATION_REQUIRED"


def test_not_found_default_message():
    error = ResourceNotFoundError("Customer", "abc")
    assert "abc" in error.message
    assert error.resource_type == "Customer"
