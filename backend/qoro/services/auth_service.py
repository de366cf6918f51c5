"""Auth Service — sign-up, e-mail verification, login and password reset.

Invariants:
    - Login failures never reveal whether the e-mail exists (one generic message)
    - Unverified e-mails cannot log in
    - Free sign-ups get their organization immediately; paid sign-ups get a
      checkout URL and their organization is created by the billing webhook
    - A password-reset token is single-use: it embeds a fingerprint of the
      password hash it was issued against
    - Password-reset and verification requests for unknown e-mails succeed silently

Design Decisions:
    - Paid sign-up flushes the user, creates the checkout, then commits: a Stripe
      failure rolls the user back so the e-mail can be used again
"""

import hashlib
import logging
from datetime import timedelta
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from qoro.config import Settings
from qoro.core.domain_types import PlanId
from qoro.core.errors import (
    AuthenticationError, BusinessRuleError, ConflictError, EmailNotVerifiedError,
)
from qoro.infrastructure.security import (
    PURPOSE_ACCESS, PURPOSE_RESET_PASSWORD, PURPOSE_VERIFY_EMAIL,
    create_token, decode_token, hash_password, verify_password,
)
from qoro.infrastructure.stripe_gateway import StripeGateway
from qoro.models.user import User
from qoro.services import billing_service, email_service
from qoro.services.organization_service import create_user_profile

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS = "E-mail ou senha inválidos."


def _password_fingerprint(password_hash: str | None) -> str:
    return hashlib.sha256((password_hash or "").encode()).hexdigest()[:16]


def issue_access_token(user: User, settings: Settings) -> dict:
    expires_in = timedelta(hours=settings.jwt_expiry_hours)
    token = create_token(
        str(user.id), PURPOSE_ACCESS, settings.jwt_secret,
        settings.jwt_algorithm, expires_in,
    )
    return {
        "access_token": token,
        "token_type": "bearer",
        "expires_in": int(expires_in.total_seconds()),
    }


async def _queue_verification(
    db: AsyncSession, user: User, settings: Settings,
) -> None:
    token = create_token(
        str(user.id), PURPOSE_VERIFY_EMAIL, settings.jwt_secret,
        settings.jwt_algorithm,
        timedelta(hours=settings.email_token_expiry_hours),
    )
    await email_service.queue_verification(
        db, to=user.email, name=user.name,
        action_url=f"{settings.site_url}/auth/action?mode=verifyEmail&token={token}",
    )


async def sign_up(
    db: AsyncSession,
    settings: Settings,
    gateway: StripeGateway | None,
    *,
    name: str,
    organization_name: str,
    email: str,
    password: str,
    cnpj: str,
    contact_email: str | None = None,
    contact_phone: str | None = None,
    plan_id: PlanId = PlanId.FREE,
) -> dict:
    email = email.strip().lower()
    existing = await db.scalar(select(User).where(User.email == email))
    if existing is not None:
        raise ConflictError("Este e-mail já está em uso.", "EMAIL_IN_USE")

    user = User(
        email=email,
        name=name,
        password_hash=hash_password(password),
        email_verified=False,
        permissions={},
    )
    db.add(user)
    await db.flush()
    await _queue_verification(db, user, settings)

    result = {
        "user_id": str(user.id),
        "organization_id": None,
        "checkout_url": None,
        "verification_required": True,
    }
    if plan_id is PlanId.FREE:
        org = await create_user_profile(
            db, user,
            organization_name=organization_name,
            cnpj=cnpj,
            contact_email=contact_email,
            contact_phone=contact_phone,
            plan=PlanId.FREE,
        )
        result["organization_id"] = str(org.id)
    else:
        price_id = billing_service.price_for_plan(settings, plan_id)
        if price_id is None or gateway is None:
            raise BusinessRuleError(
                "O plano selecionado não está disponível no momento.",
                "PLAN_UNAVAILABLE",
            )
        result["checkout_url"] = await billing_service.create_checkout_session(
            gateway, settings,
            user_id=user.id,
            email=email,
            name=name,
            price_id=price_id,
            organization_name=organization_name,
            cnpj=cnpj,
            contact_email=contact_email,
            contact_phone=contact_phone,
        )

    await db.commit()
    logger.info(
        f"User signed up on plan {plan_id.value}",
        extra={"user_id": result["user_id"], "organization_id": result["organization_id"]},
    )
    return result


async def verify_email(db: AsyncSession, settings: Settings, token: str) -> None:
    payload = decode_token(
        token, PURPOSE_VERIFY_EMAIL, settings.jwt_secret, settings.jwt_algorithm,
    )
    user = await _user_from_subject(db, payload["sub"])
    if not user.email_verified:
        user.email_verified = True
        await db.commit()
        logger.info("E-mail verified", extra={"user_id": str(user.id)})


async def resend_verification(
    db: AsyncSession, settings: Settings, email: str,
) -> None:
    user = await db.scalar(select(User).where(User.email == email.strip().lower()))
    if user is None or user.email_verified:
        return
    await _queue_verification(db, user, settings)
    await db.commit()


async def login(
    db: AsyncSession, settings: Settings, email: str, password: str,
) -> dict:
    user = await db.scalar(select(User).where(User.email == email.strip().lower()))
    if user is None or not verify_password(password, user.password_hash):
        raise AuthenticationError(INVALID_CREDENTIALS, "INVALID_CREDENTIALS")
    if not user.email_verified:
        raise EmailNotVerifiedError()
    logger.info("User logged in", extra={"user_id": str(user.id)})
    return issue_access_token(user, settings)


async def request_password_reset(
    db: AsyncSession, settings: Settings, email: str,
) -> None:
    user = await db.scalar(select(User).where(User.email == email.strip().lower()))
    if user is None:
        logger.info("Password reset requested for unknown e-mail")
        return
    token = create_token(
        str(user.id), PURPOSE_RESET_PASSWORD, settings.jwt_secret,
        settings.jwt_algorithm,
        timedelta(hours=settings.email_token_expiry_hours),
        extra={"pwd": _password_fingerprint(user.password_hash)},
    )
    await email_service.queue_password_reset(
        db, to=user.email, name=user.name,
        action_url=f"{settings.site_url}/auth/action?mode=resetPassword&token={token}",
    )
    await db.commit()


async def confirm_password_reset(
    db: AsyncSession, settings: Settings, token: str, new_password: str,
) -> None:
    payload = decode_token(
        token, PURPOSE_RESET_PASSWORD, settings.jwt_secret, settings.jwt_algorithm,
    )
    user = await _user_from_subject(db, payload["sub"])
    if payload.get("pwd") != _password_fingerprint(user.password_hash):
        raise AuthenticationError("Token inválido.", "TOKEN_INVALID")
    user.password_hash = hash_password(new_password)
    # the link was delivered to this address
    user.email_verified = True
    await db.commit()
    logger.info("Password reset", extra={"user_id": str(user.id)})


async def authenticate(db: AsyncSession, settings: Settings, token: str) -> UUID:
    """User id of a valid access token whose user still exists."""
    payload = decode_token(
        token, PURPOSE_ACCESS, settings.jwt_secret, settings.jwt_algorithm,
    )
    user = await _user_from_subject(db, payload["sub"])
    return user.id


async def _user_from_subject(db: AsyncSession, subject: str) -> User:
    try:
        user_id = UUID(subject)
    except ValueError:
        raise AuthenticationError("Token inválido.", "TOKEN_INVALID")
    user = await db.get(User, user_id)
    if user is None:
        raise AuthenticationError("Token inválido.", "TOKEN_INVALID")
    return user
