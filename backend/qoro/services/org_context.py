"""Actor Context — resolves the authenticated user into tenant, role, plan and permissions.

Invariants:
    - load_actor raises AuthenticationError for an unknown user id
    - A user without an organization yields an actor with organization_id None:
      list operations answer [], write operations raise OrganizationNotReadyError
    - get_owned returns a row only if it belongs to the actor's organization;
      a foreign id raises the same ResourceNotFoundError as a missing one

Design Decisions:
    - Frozen dataclass resolved once per request (api/deps.py), passed explicitly
      to every service call instead of re-querying user + org in each function
"""

import logging
from dataclasses import dataclass, field
from typing import TypeVar
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from qoro.core.domain_types import PlanId, UserRole
from qoro.core.enforce_plan import coerce_plan, effective_permissions
from qoro.core.errors import (
    AuthenticationError, ErrorContext, OrganizationNotReadyError,
    ResourceNotFoundError,
)
from qoro.models.organization import Organization
from qoro.models.user import User

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class ActorContext:
    user_id: UUID
    email: str
    name: str
    role: UserRole = UserRole.MEMBER
    organization_id: UUID | None = None
    organization_name: str | None = None
    plan_id: PlanId = PlanId.FREE
    permissions: dict = field(default_factory=dict)
    stripe_customer_id: str | None = None

    @property
    def has_organization(self) -> bool:
        return self.organization_id is not None

    def require_organization(self) -> UUID:
        if self.organization_id is None:
            raise OrganizationNotReadyError(self.error_context())
        return self.organization_id

    def error_context(self, **kwargs) -> ErrorContext:
        return ErrorContext(
            organization_id=str(self.organization_id) if self.organization_id else None,
            user_id=str(self.user_id),
            **kwargs,
        )

    def log_extra(self, **kwargs) -> dict:
        return {
            "organization_id": str(self.organization_id) if self.organization_id else None,
            "user_id": str(self.user_id),
            **kwargs,
        }


async def load_actor(db: AsyncSession, user_id: UUID) -> ActorContext:
    user = await db.get(User, user_id)
    if user is None:
        raise AuthenticationError("Usuário não encontrado.", "USER_NOT_FOUND")
    role = UserRole(user.role) if user.role in UserRole._value2member_map_ else UserRole.MEMBER
    if user.organization_id is None:
        return ActorContext(
            user_id=user.id, email=user.email, name=user.name, role=role,
            permissions=effective_permissions(PlanId.FREE, user.permissions),
        )
    org = await db.get(Organization, user.organization_id)
    if org is None:
        # users.organization_id is SET NULL on delete, so this is a dangling write race
        logger.error(
            "User references a missing organization",
            extra={"user_id": str(user.id), "organization_id": str(user.organization_id)},
        )
        return ActorContext(user_id=user.id, email=user.email, name=user.name, role=role)
    plan = coerce_plan(org.plan_id)
    return ActorContext(
        user_id=user.id,
        email=user.email,
        name=user.name,
        role=role,
        organization_id=org.id,
        organization_name=org.name,
        plan_id=plan,
        permissions=effective_permissions(plan, user.permissions),
        stripe_customer_id=org.stripe_customer_id,
    )


async def get_owned(
    db: AsyncSession, model: type[T], record_id: UUID, actor: ActorContext,
    message: str,
) -> T:
    """Fetch a tenant row by id, scoped to the actor's organization."""
    organization_id = actor.require_organization()
    row = await db.get(model, record_id)
    if row is None or row.organization_id != organization_id:
        raise ResourceNotFoundError(
            model.__name__, str(record_id), message, actor.error_context(),
        )
    return row


async def names_by_id(
    db: AsyncSession, model, ids, organization_id: UUID,
) -> dict[UUID, str]:
    """{id: name} for the given ids within one organization (batch lookup)."""
    wanted = {i for i in ids if i is not None}
    if not wanted:
        return {}
    result = await db.execute(
        select(model.id, model.name).where(
            model.id.in_(wanted), model.organization_id == organization_id,
        ),
    )
    return {row.id: row.name for row in result}
