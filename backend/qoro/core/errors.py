"""Error Hierarchy — typed, categorized exceptions for all Qoro failure modes.

Invariants:
    - Every error has a code (str), category (ErrorCategory), severity (ErrorSeverity)
    - Domain errors (400-level) are recoverable; infrastructure errors (500-level) are critical
    - to_response() produces the REST envelope used by every error handler
    - Messages are user-facing pt-BR text; internal details go to logs only

Design Decisions:
    - Single hierarchy with QoroError base: FastAPI global handler catches all (ADR: uniform error shape)
    - ErrorContext as dataclass: rich observability without coupling to logging framework
    - Cross-tenant access raises ResourceNotFoundError, not PermissionDeniedError:
      a foreign id must be indistinguishable from a missing one
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any
from datetime import datetime, timezone


class ErrorSeverity(str, Enum):
    """Error severity for observability and client handling."""
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class ErrorCategory(str, Enum):
    """High-level error categories for routing and handling."""
    VALIDATION = "validation"
    BUSINESS_RULE = "business_rule"
    RESOURCE_NOT_FOUND = "resource_not_found"
    AUTHENTICATION = "authentication"
    AUTHORIZATION = "authorization"
    PLAN = "plan"
    DATABASE = "database"
    EXTERNAL_API = "external_api"
    INTERNAL = "internal"
    CONFLICT = "conflict"


@dataclass
class ErrorContext:
    """Rich context for error observability and debugging."""
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    organization_id: str | None = None
    user_id: str | None = None
    conversation_id: str | None = None
    tool_name: str | None = None
    debug_info: dict[str, Any] | None = None
    retry_after_ms: int | None = None


class QoroError(Exception):
    """Base exception for all Qoro errors."""

    def __init__(
        self,
        message: str,
        code: str,
        category: ErrorCategory,
        severity: ErrorSeverity = ErrorSeverity.ERROR,
        context: ErrorContext | None = None,
        http_status: int = 500,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.category = category
        self.severity = severity
        self.context = context or ErrorContext()
        self.http_status = http_status

    def to_response(self) -> dict:
        """Convert to standardized REST error response."""
        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "category": self.category.value,
                "severity": self.severity.value,
                "timestamp": self.context.timestamp.isoformat(),
                "context": {
                    "organization_id": self.context.organization_id,
                    "conversation_id": self.context.conversation_id,
                    "tool_name": self.context.tool_name,
                    "retry_after_ms": self.context.retry_after_ms,
                },
            }
        }


# ─── Domain Errors (400-level) ──────────────────────────────────

class BusinessRuleError(QoroError):
    """A business invariant blocked the operation."""
    def __init__(
        self, message: str, code: str = "BUSINESS_RULE_VIOLATION",
        context: ErrorContext | None = None,
    ):
        super().__init__(
            message, code, ErrorCategory.BUSINESS_RULE,
            ErrorSeverity.ERROR, context, 400,
        )


class ResourceNotFoundError(QoroError):
    """Requested resource does not exist (or belongs to another organization)."""
    def __init__(
        self, resource_type: str, resource_id: str,
        message: str | None = None, context: ErrorContext | None = None,
    ):
        super().__init__(
            message or f"{resource_type} '{resource_id}' não encontrado.",
            "RESOURCE_NOT_FOUND", ErrorCategory.RESOURCE_NOT_FOUND,
            ErrorSeverity.ERROR, context, 404,
        )
        self.resource_type = resource_type
        self.resource_id = resource_id


class AuthenticationError(QoroError):
    """Missing, invalid or expired credentials."""
    def __init__(
        self, message: str = "Autenticação necessária.",
        code: str = "AUTHENTICATION_REQUIRED", context: ErrorContext | None = None,
    ):
        super().__init__(
            message, code, ErrorCategory.AUTHENTICATION,
            ErrorSeverity.WARNING, context, 401,
        )


class EmailNotVerifiedError(QoroError):
    """Login attempted before the e-mail address was confirmed."""
    def __init__(self, context: ErrorContext | None = None):
        super().__init__(
            "Por favor, verifique seu e-mail antes de fazer login.",
            "EMAIL_NOT_VERIFIED", ErrorCategory.AUTHENTICATION,
            ErrorSeverity.WARNING, context, 403,
        )


class PermissionDeniedError(QoroError):
    """Actor lacks the role or module permission for the operation."""
    def __init__(self, message: str, context: ErrorContext | None = None):
        super().__init__(
            message, "PERMISSION_DENIED", ErrorCategory.AUTHORIZATION,
            ErrorSeverity.WARNING, context, 403,
        )


class PlanFeatureUnavailableError(QoroError):
    """Feature is not part of the organization's plan."""
    def __init__(
        self, feature: str, message: str, context: ErrorContext | None = None,
    ):
        super().__init__(
            message, "PLAN_FEATURE_UNAVAILABLE", ErrorCategory.PLAN,
            ErrorSeverity.WARNING, context, 403,
        )
        self.feature = feature


class PlanLimitReachedError(QoroError):
    """Record quota of the plan is exhausted."""
    def __init__(
        self, resource: str, limit: int, message: str,
        context: ErrorContext | None = None,
    ):
        super().__init__(
            message, "PLAN_LIMIT_REACHED", ErrorCategory.PLAN,
            ErrorSeverity.WARNING, context, 403,
        )
        self.resource = resource
        self.limit = limit


class OrganizationNotReadyError(QoroError):
    """Actor has no organization yet (profile creation pending)."""
    def __init__(self, context: ErrorContext | None = None):
        super().__init__(
            "A organização do usuário não está pronta.",
            "ORGANIZATION_NOT_READY", ErrorCategory.CONFLICT,
            ErrorSeverity.WARNING, context, 409,
        )


class ConflictError(QoroError):
    """Operation conflicts with existing data (duplicates, references)."""
    def __init__(
        self, message: str, code: str = "CONFLICT",
        context: ErrorContext | None = None,
    ):
        super().__init__(
            message, code, ErrorCategory.CONFLICT,
            ErrorSeverity.ERROR, context, 409,
        )


class WebhookSignatureError(QoroError):
    """Stripe webhook signature missing or invalid."""
    def __init__(self, message: str, context: ErrorContext | None = None):
        super().__init__(
            message, "WEBHOOK_SIGNATURE_INVALID", ErrorCategory.VALIDATION,
            ErrorSeverity.WARNING, context, 400,
        )


# ─── Infrastructure Errors (500-level) ──────────────────────────

class DatabaseError(QoroError):
    """Database operation failed."""
    def __init__(self, message: str, operation: str, context: ErrorContext | None = None):
        super().__init__(
            f"Database {operation} failed: {message}",
            "DATABASE_ERROR", ErrorCategory.DATABASE,
            ErrorSeverity.CRITICAL, context, 503,
        )
        self.operation = operation


class AnthropicAPIError(QoroError):
    """Anthropic API call failed."""
    def __init__(
        self,
        message: str,
        api_error_type: str,
        retry_after_ms: int | None = None,
        context: ErrorContext | None = None,
    ):
        ctx = context or ErrorContext()
        ctx.retry_after_ms = retry_after_ms
        super().__init__(
            f"Anthropic API error ({api_error_type}): {message}",
            "ANTHROPIC_API_ERROR", ErrorCategory.EXTERNAL_API,
            ErrorSeverity.CRITICAL, ctx, 503,
        )
        self.api_error_type = api_error_type


class AssistantUnavailableError(QoroError):
    """Pulse could not produce an answer, even without tools."""
    def __init__(self, context: ErrorContext | None = None):
        super().__init__(
            "O QoroPulse está indisponível no momento. Tente novamente em instantes.",
            "ASSISTANT_UNAVAILABLE", ErrorCategory.EXTERNAL_API,
            ErrorSeverity.CRITICAL, context, 503,
        )


class PaymentProviderError(QoroError):
    """Stripe call failed or returned unusable data."""
    def __init__(
        self, message: str, operation: str, context: ErrorContext | None = None,
    ):
        super().__init__(
            f"Stripe {operation} failed: {message}",
            "PAYMENT_PROVIDER_ERROR", ErrorCategory.EXTERNAL_API,
            ErrorSeverity.CRITICAL, context, 502,
        )
        self.operation = operation
