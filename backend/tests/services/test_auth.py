"""Auth — tests for sign-up, e-mail verification, login and password reset.

Tests cover:
    - Free sign-up creates the organization at once; paid sign-up returns a checkout URL
    - Login is refused until the e-mail is verified (403 EMAIL_NOT_VERIFIED)
    - Verification and reset links are signed tokens delivered through the outbox
    - A reset token works once: the new password hash invalidates it
    - Bearer tokens of another purpose are refused
"""

from urllib.parse import parse_qs, urlparse

import pytest
from sqlalchemy import select

from qoro.core.domain_types import PlanId
from qoro.core.errors import AuthenticationError, ConflictError, EmailNotVerifiedError
from qoro.models.organization import Organization
from qoro.models.outbound_email import OutboundEmail
from qoro.models.user import User
from qoro.services import auth_service
from qoro.services.email_service import (
    TEMPLATE_RESET_PASSWORD, TEMPLATE_VERIFY_EMAIL,
)

SIGNUP = {
    "name": "Marina Souza",
    "organization_name": "Souza Consultoria",
    "email": "Marina@Souza.com.br",
    "password": "senha-forte-123",
    "cnpj": "12.345.678/0001-90",
}


async def _token_from_outbox(db, template: str) -> str:
    result = await db.execute(
        select(OutboundEmail)
        .where(OutboundEmail.template_name == template)
        .order_by(OutboundEmail.created_at.desc()),
    )
    mail = result.scalars().first()
    return parse_qs(urlparse(mail.template_data["action_url"]).query)["token"][0]


# ─── Service ─────────────────────────────────────────────────────

async def test_free_signup_creates_organization(test_db, settings):
    result = await auth_service.sign_up(test_db, settings, None, **SIGNUP)

    assert result["organization_id"] is not None
    assert result["checkout_url"] is None
    user = await test_db.scalar(select(User).where(User.email == "marina@souza.com.br"))
    assert user.role == "admin"
    assert user.email_verified is False
    org = await test_db.get(Organization, user.organization_id)
    assert org.plan_id == "free"
    assert org.name == "Souza Consultoria"


async def test_duplicate_email_is_conflict(test_db, settings):
    await auth_service.sign_up(test_db, settings, None, **SIGNUP)
    with pytest.raises(ConflictError) as exc:
        await auth_service.sign_up(
            test_db, settings, None, **{**SIGNUP, "email": "marina@souza.com.br"},
        )
    assert exc.value.code == "EMAIL_IN_USE"


async def test_paid_signup_returns_checkout(test_db, settings, fake_stripe):
    result = await auth_service.sign_up(
        test_db, settings, fake_stripe, **SIGNUP, plan_id=PlanId.GROWTH,
    )
    assert result["organization_id"] is None
    assert result["checkout_url"].startswith("https://checkout.stripe.test/")
    assert fake_stripe.checkouts[0]["price_id"] == settings.stripe_growth_price_id


async def test_login_requires_verified_email(test_db, settings):
    await auth_service.sign_up(test_db, settings, None, **SIGNUP)
    with pytest.raises(EmailNotVerifiedError):
        await auth_service.login(test_db, settings, SIGNUP["email"], SIGNUP["password"])

    token = await _token_from_outbox(test_db, TEMPLATE_VERIFY_EMAIL)
    await auth_service.verify_email(test_db, settings, token)

    issued = await auth_service.login(
        test_db, settings, SIGNUP["email"], SIGNUP["password"],
    )
    assert issued["token_type"] == "bearer"
    assert issued["expires_in"] == settings.jwt_expiry_hours * 3600


async def test_wrong_password_rejected(test_db, settings):
    await auth_service.sign_up(test_db, settings, None, **SIGNUP)
    with pytest.raises(AuthenticationError) as exc:
        await auth_service.login(test_db, settings, SIGNUP["email"], "outra-senha")
    assert exc.value.code == "INVALID_CREDENTIALS"


async def test_reset_token_is_single_use(test_db, settings):
    await auth_service.sign_up(test_db, settings, None, **SIGNUP)
    await auth_service.request_password_reset(test_db, settings, SIGNUP["email"])
    token = await _token_from_outbox(test_db, TEMPLATE_RESET_PASSWORD)

    await auth_service.confirm_password_reset(test_db, settings, token, "nova-senha-456")
    issued = await auth_service.login(
        test_db, settings, SIGNUP["email"], "nova-senha-456",
    )
    assert issued["access_token"]

    with pytest.raises(AuthenticationError) as exc:
        await auth_service.confirm_password_reset(
            test_db, settings, token, "terceira-senha-789",
        )
    assert exc.value.code == "TOKEN_INVALID"


async def test_reset_for_unknown_email_is_silent(test_db, settings):
    await auth_service.request_password_reset(test_db, settings, "ninguem@x.com")
    assert (await test_db.execute(select(OutboundEmail))).scalars().all() == []


async def test_verification_token_is_not_a_bearer_token(test_db, settings):
    await auth_service.sign_up(test_db, settings, None, **SIGNUP)
    token = await _token_from_outbox(test_db, TEMPLATE_VERIFY_EMAIL)
    with pytest.raises(AuthenticationError):
        await auth_service.authenticate(test_db, settings, token)


# ─── Routes ──────────────────────────────────────────────────────

async def test_signup_verify_login_over_http(client, test_db):
    response = await client.post("/api/v1/auth/signup", json=SIGNUP)
    assert response.status_code == 201
    assert response.json()["verification_required"] is True

    login = {"email": SIGNUP["email"], "password": SIGNUP["password"]}
    response = await client.post("/api/v1/auth/login", json=login)
    assert response.status_code == 403
    assert response.json()["error"]["code"] == "EMAIL_NOT_VERIFIED"

    token = await _token_from_outbox(test_db, TEMPLATE_VERIFY_EMAIL)
    response = await client.post("/api/v1/auth/verify-email", json={"token": token})
    assert response.status_code == 204

    response = await client.post("/api/v1/auth/login", json=login)
    assert response.status_code == 200
    access = response.json()["access_token"]

    response = await client.get(
        "/api/v1/me", headers={"Authorization": f"Bearer {access}"},
    )
    assert response.status_code == 200


async def test_signup_validation_error_shape(client):
    response = await client.post(
        "/api/v1/auth/signup", json={**SIGNUP, "password": "curta"},
    )
    assert response.status_code == 400
    error = response.json()["error"]
    assert error["code"] == "VALIDATION_ERROR"
    assert any(d["field"].endswith("password") for d in error["details"])


async def test_password_over_bcrypt_limit_is_400(client):
    response = await client.post(
        "/api/v1/auth/signup", json={**SIGNUP, "password": "a" * 100},
    )
    assert response.status_code == 400
    assert response.json()["error"]["code"] == "VALIDATION_ERROR"

    response = await client.post(
        "/api/v1/auth/login",
        json={"email": SIGNUP["email"], "password": "a" * 100},
    )
    assert response.status_code == 400


async def test_reset_request_always_accepted(client):
    response = await client.post(
        "/api/v1/auth/password-reset", json={"email": "ninguem@x.com"},
    )
    assert response.status_code == 202
