"""Request Dependencies — bearer auth, actor resolution and external clients.

Invariants:
    - Every non-public route resolves an ActorContext through get_current_actor
    - Missing or invalid bearer tokens raise AuthenticationError (401), never HTTPException
    - require_module / require_admin run after the actor is resolved

Design Decisions:
    - Lazy module-level Anthropic client: one connection pool per process,
      created on first use so importing the app needs no API key
    - Stripe gateway is None when no secret key is configured; billing
      services reject the operation instead of failing at import
"""

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from qoro.config import Settings, get_settings
from qoro.core.domain_types import Module
from qoro.core.enforce_plan import check_module_access
from qoro.core.enforce_roles import check_admin
from qoro.core.errors import AuthenticationError
from qoro.infrastructure.anthropic_client import ResilientAnthropicClient
from qoro.infrastructure.database import get_db
from qoro.infrastructure.stripe_gateway import StripeGateway
from qoro.services import auth_service
from qoro.services.org_context import ActorContext, load_actor

_bearer = HTTPBearer(auto_error=False)

_anthropic_client: ResilientAnthropicClient | None = None


async def get_current_actor(
    credentials: HTTPAuthorizationCredentials | None = Depends(_bearer),
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> ActorContext:
    if credentials is None or not credentials.credentials:
        raise AuthenticationError()
    user_id = await auth_service.authenticate(db, settings, credentials.credentials)
    return await load_actor(db, user_id)


def require_module(module: Module):
    """Dependency factory: actor must have effective access to module."""

    async def _check(actor: ActorContext = Depends(get_current_actor)) -> ActorContext:
        check_module_access(actor.plan_id, actor.permissions, module)
        return actor

    return _check


async def require_admin(
    actor: ActorContext = Depends(get_current_actor),
) -> ActorContext:
    check_admin(actor.role)
    return actor


def get_stripe_gateway(
    settings: Settings = Depends(get_settings),
) -> StripeGateway | None:
    if not settings.stripe_secret_key:
        return None
    return StripeGateway(settings.stripe_secret_key, settings.stripe_webhook_secret)


def get_anthropic_client() -> ResilientAnthropicClient:
    global _anthropic_client
    if _anthropic_client is None:
        settings = get_settings()
        _anthropic_client = ResilientAnthropicClient(
            api_key=settings.anthropic_api_key,
            max_retries=settings.anthropic_max_retries,
            base_delay_ms=settings.anthropic_base_delay_ms,
            max_delay_ms=settings.anthropic_max_delay_ms,
            timeout_seconds=settings.anthropic_timeout_seconds,
        )
    return _anthropic_client
