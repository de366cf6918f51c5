"""Organization Service — tenant creation, membership, invites and module permissions.

Invariants:
    - create_user_profile is idempotent: a user that already has an organization
      is returned untouched (webhook retries are safe)
    - The creator of an organization is its admin, with permissions derived from the plan
    - Free-plan user cap counts members + pending (unexpired) invites
    - Re-sending an expired invite and accepting any invite re-check the user cap
    - Admins cannot change their own permissions nor remove themselves
    - Every target user must belong to the actor's organization

Design Decisions:
    - create_user_profile only flushes: sign-up and the billing webhook commit it
      together with their own writes
    - Invites live in their own table with a TTL instead of pre-created user rows:
      an unused invite never shows up as a member
"""

import logging
from datetime import timedelta
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from qoro.config import Settings
from qoro.core.domain_types import InviteStatus, LimitedResource, PlanId, UserRole
from qoro.core.enforce_plan import (
    check_plan_limit, coerce_plan, default_permissions, effective_permissions,
)
from qoro.core.enforce_roles import check_admin, check_not_self
from qoro.core.errors import BusinessRuleError, ConflictError, ResourceNotFoundError
from qoro.core.subscription_rules import initial_subscription_status
from qoro.core.time_utils import ensure_utc, utc_now
from qoro.infrastructure.security import hash_password
from qoro.models.invite import Invite
from qoro.models.organization import Organization
from qoro.models.user import User
from qoro.services import email_service
from qoro.services.org_context import ActorContext

logger = logging.getLogger(__name__)

INVALID_INVITE = "Convite inválido, expirado ou já utilizado."
TARGET_NOT_IN_ORG = "Usuário alvo não encontrado nesta organização."


async def create_user_profile(
    db: AsyncSession,
    user: User,
    *,
    organization_name: str,
    cnpj: str | None = None,
    contact_email: str | None = None,
    contact_phone: str | None = None,
    plan: PlanId = PlanId.FREE,
    stripe_customer_id: str | None = None,
    stripe_subscription_id: str | None = None,
    stripe_price_id: str | None = None,
    subscription_status: str | None = None,
) -> Organization:
    """Create the organization owned by user and make user its admin."""
    if user.organization_id is not None:
        existing = await db.get(Organization, user.organization_id)
        if existing is not None:
            logger.info(
                "Profile already exists, skipping creation",
                extra={"user_id": str(user.id), "organization_id": str(existing.id)},
            )
            return existing

    status = subscription_status or initial_subscription_status(plan)
    org = Organization(
        name=organization_name,
        cnpj=cnpj,
        contact_email=contact_email or user.email,
        contact_phone=contact_phone,
        owner_id=user.id,
        plan_id=plan.value,
        stripe_customer_id=stripe_customer_id,
        stripe_subscription_id=stripe_subscription_id,
        stripe_price_id=stripe_price_id,
        stripe_subscription_status=status,
    )
    db.add(org)
    await db.flush()

    user.organization_id = org.id
    user.role = UserRole.ADMIN.value
    user.permissions = default_permissions(plan)
    user.stripe_subscription_status = status
    await db.flush()
    logger.info(
        "Organization created",
        extra={"user_id": str(user.id), "organization_id": str(org.id)},
    )
    return org


# ─── Invites ─────────────────────────────────────────────────────

async def _seat_count(db: AsyncSession, organization_id: UUID) -> int:
    members = await db.scalar(
        select(func.count()).select_from(User)
        .where(User.organization_id == organization_id),
    )
    pending = await db.scalar(
        select(func.count()).select_from(Invite)
        .where(Invite.organization_id == organization_id)
        .where(Invite.status == InviteStatus.PENDING.value)
        .where(Invite.expires_at > utc_now()),
    )
    return (members or 0) + (pending or 0)


async def invite_user(
    db: AsyncSession, actor: ActorContext, email: str, settings: Settings,
) -> Invite:
    organization_id = actor.require_organization()
    check_admin(actor.role, "Apenas administradores podem convidar usuários.")
    email = email.strip().lower()

    existing_user = await db.scalar(select(User).where(User.email == email))
    if existing_user is not None:
        raise ConflictError("Este usuário já existe no sistema.", "USER_EXISTS")

    expires_at = utc_now() + timedelta(days=settings.invite_expiry_days)
    invite = await db.scalar(
        select(Invite)
        .where(Invite.organization_id == organization_id)
        .where(Invite.email == email)
        .where(Invite.status == InviteStatus.PENDING.value),
    )
    if invite is None or ensure_utc(invite.expires_at) <= utc_now():
        # an expired invite no longer holds its seat
        check_plan_limit(
            actor.plan_id, LimitedResource.USERS,
            await _seat_count(db, organization_id),
        )
    if invite is not None:
        invite.expires_at = expires_at
    else:
        invite = Invite(
            organization_id=organization_id,
            email=email,
            invited_by=actor.user_id,
            status=InviteStatus.PENDING.value,
            expires_at=expires_at,
        )
        db.add(invite)
    await db.flush()

    await email_service.queue_invitation(
        db,
        to=email,
        admin_name=actor.name,
        organization_name=actor.organization_name or "",
        action_url=f"{settings.site_url}/invite/{invite.id}",
    )
    await db.commit()
    await db.refresh(invite)
    logger.info("User invited", extra=actor.log_extra())
    return invite


async def validate_invite(
    db: AsyncSession, invite_id: UUID,
) -> tuple[Invite, Organization]:
    """Pending, unexpired invite plus its organization; BusinessRuleError otherwise."""
    invite = await db.get(Invite, invite_id)
    if (
        invite is None
        or invite.status != InviteStatus.PENDING.value
        or ensure_utc(invite.expires_at) <= utc_now()
    ):
        raise BusinessRuleError(INVALID_INVITE, "INVITE_INVALID")
    org = await db.get(Organization, invite.organization_id)
    if org is None:
        raise BusinessRuleError(INVALID_INVITE, "INVITE_INVALID")
    return invite, org


async def accept_invite(
    db: AsyncSession, invite_id: UUID, name: str, password: str,
) -> User:
    """Create the invited member. The invite link proves e-mail ownership."""
    invite, org = await validate_invite(db, invite_id)
    existing = await db.scalar(select(User).where(User.email == invite.email))
    if existing is not None:
        raise ConflictError("Este usuário já existe no sistema.", "USER_EXISTS")
    members = await db.scalar(
        select(func.count()).select_from(User)
        .where(User.organization_id == org.id),
    )
    check_plan_limit(org.plan_id, LimitedResource.USERS, members or 0)

    user = User(
        email=invite.email,
        name=name.strip(),
        password_hash=hash_password(password),
        email_verified=True,
        organization_id=org.id,
        role=UserRole.MEMBER.value,
        permissions=default_permissions(coerce_plan(org.plan_id)),
        invited_by=invite.invited_by,
        stripe_subscription_status=org.stripe_subscription_status,
    )
    db.add(user)
    await db.flush()

    invite.status = InviteStatus.ACCEPTED.value
    invite.accepted_by = user.id
    invite.accepted_at = utc_now()
    await db.commit()
    await db.refresh(user)
    logger.info(
        "Invite accepted",
        extra={"user_id": str(user.id), "organization_id": str(org.id)},
    )
    return user


# ─── Members ─────────────────────────────────────────────────────

def _user_view(user: User, plan: PlanId) -> dict:
    return {
        "id": user.id,
        "name": user.name,
        "email": user.email,
        "role": user.role,
        "permissions": effective_permissions(plan, user.permissions),
        "created_at": user.created_at,
    }


async def list_users(db: AsyncSession, actor: ActorContext) -> list[dict]:
    if not actor.has_organization:
        return []
    result = await db.execute(
        select(User)
        .where(User.organization_id == actor.organization_id)
        .order_by(User.created_at),
    )
    return [_user_view(u, actor.plan_id) for u in result.scalars().all()]


async def _get_member(
    db: AsyncSession, actor: ActorContext, user_id: UUID,
) -> User:
    target = await db.get(User, user_id)
    if target is None or target.organization_id != actor.organization_id:
        raise ResourceNotFoundError("User", str(user_id), TARGET_NOT_IN_ORG)
    return target


async def update_user_permissions(
    db: AsyncSession, actor: ActorContext, user_id: UUID, permissions: dict,
) -> dict:
    actor.require_organization()
    check_admin(actor.role, "Apenas administradores podem alterar permissões.")
    check_not_self(
        actor.user_id, user_id,
        "Administradores não podem alterar as próprias permissões.",
    )
    target = await _get_member(db, actor, user_id)
    target.permissions = {k: bool(v) for k, v in permissions.items()}
    await db.commit()
    await db.refresh(target)
    logger.info("Permissions updated", extra=actor.log_extra())
    return _user_view(target, actor.plan_id)


async def delete_user(
    db: AsyncSession, actor: ActorContext, user_id: UUID,
) -> None:
    actor.require_organization()
    check_admin(actor.role, "Apenas administradores podem remover usuários.")
    check_not_self(
        actor.user_id, user_id,
        "Administradores não podem remover a si mesmos.",
    )
    target = await _get_member(db, actor, user_id)
    await db.delete(target)
    await db.commit()
    logger.info("User removed", extra=actor.log_extra())


# ─── Organization details ───────────────────────────────────────

async def get_organization_details(
    db: AsyncSession, actor: ActorContext,
) -> Organization | None:
    if not actor.has_organization:
        return None
    return await db.get(Organization, actor.organization_id)


async def update_organization_details(
    db: AsyncSession, actor: ActorContext, changes: dict,
) -> Organization:
    organization_id = actor.require_organization()
    check_admin(actor.role, "Apenas administradores podem alterar a organização.")
    org = await db.get(Organization, organization_id)
    for key, value in changes.items():
        # blank fields keep their current value
        if value is None or (isinstance(value, str) and not value.strip()):
            continue
        setattr(org, key, value.strip() if isinstance(value, str) else value)
    await db.commit()
    await db.refresh(org)
    return org


def get_user_access_info(actor: ActorContext) -> dict | None:
    if not actor.has_organization:
        return None
    return {
        "plan_id": actor.plan_id,
        "role": actor.role,
        "permissions": actor.permissions,
    }


def get_user_profile(actor: ActorContext) -> dict:
    return {
        "id": actor.user_id,
        "name": actor.name,
        "email": actor.email,
        "role": actor.role,
        "organization_id": actor.organization_id,
        "organization_name": actor.organization_name,
        "plan_id": actor.plan_id if actor.has_organization else None,
        "permissions": actor.permissions,
    }
