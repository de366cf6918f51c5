"""Auth Schemas — sign-up, login, e-mail verification and password reset payloads.

Invariants:
    - Passwords: at least 8 chars and at most 72 UTF-8 bytes; never echoed back
    - SignUpRequest.plan_id must be a known tier
"""

from pydantic import BaseModel, EmailStr, Field, field_validator

from qoro.core.domain_types import PlanId
from qoro.schemas.common import LoginPassword, Password


class SignUpRequest(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    organization_name: str = Field(min_length=1, max_length=200)
    email: EmailStr
    password: Password
    cnpj: str = Field(min_length=1, max_length=20)
    contact_email: EmailStr | None = None
    contact_phone: str | None = Field(None, max_length=40)
    plan_id: PlanId = PlanId.FREE

    @field_validator("name", "organization_name", "cnpj")
    @classmethod
    def strip_required(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("field cannot be empty or whitespace")
        return v


class SignUpResponse(BaseModel):
    user_id: str
    organization_id: str | None = None
    checkout_url: str | None = None
    verification_required: bool = True


class LoginRequest(BaseModel):
    email: EmailStr
    password: LoginPassword


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_in: int


class TokenRequest(BaseModel):
    token: str = Field(min_length=1)


class PasswordResetRequest(BaseModel):
    email: EmailStr


class PasswordResetConfirm(BaseModel):
    token: str = Field(min_length=1)
    new_password: Password
