"""Auth Routes — sign-up, login, e-mail verification and password reset.

Invariants:
    - Every route here is public (no bearer token)
    - Reset and resend requests answer 202 whether or not the e-mail exists
"""

import logging

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from qoro.api.deps import get_stripe_gateway
from qoro.config import Settings, get_settings
from qoro.infrastructure.database import get_db
from qoro.infrastructure.stripe_gateway import StripeGateway
from qoro.schemas.auth import (
    LoginRequest, PasswordResetConfirm, PasswordResetRequest, SignUpRequest,
    SignUpResponse, TokenRequest, TokenResponse,
)
from qoro.services import auth_service

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/auth", tags=["auth"])


@router.post(
    "/signup", response_model=SignUpResponse, status_code=status.HTTP_201_CREATED,
)
async def sign_up(
    body: SignUpRequest,
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
    gateway: StripeGateway | None = Depends(get_stripe_gateway),
):
    return await auth_service.sign_up(
        db, settings, gateway,
        name=body.name,
        organization_name=body.organization_name,
        email=body.email,
        password=body.password,
        cnpj=body.cnpj,
        contact_email=body.contact_email,
        contact_phone=body.contact_phone,
        plan_id=body.plan_id,
    )


@router.post("/login", response_model=TokenResponse)
async def login(
    body: LoginRequest,
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    return await auth_service.login(db, settings, body.email, body.password)


@router.post("/verify-email", status_code=status.HTTP_204_NO_CONTENT)
async def verify_email(
    body: TokenRequest,
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    await auth_service.verify_email(db, settings, body.token)


@router.post("/resend-verification", status_code=status.HTTP_202_ACCEPTED)
async def resend_verification(
    body: PasswordResetRequest,
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    await auth_service.resend_verification(db, settings, body.email)
    return {"accepted": True}


@router.post("/password-reset", status_code=status.HTTP_202_ACCEPTED)
async def request_password_reset(
    body: PasswordResetRequest,
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    await auth_service.request_password_reset(db, settings, body.email)
    return {"accepted": True}


@router.post("/password-reset/confirm", status_code=status.HTTP_204_NO_CONTENT)
async def confirm_password_reset(
    body: PasswordResetConfirm,
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    await auth_service.confirm_password_reset(
        db, settings, body.token, body.new_password,
    )
