"""Organization Schemas — membership, invites, permissions and tenant details."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from qoro.core.domain_types import PlanId, UserRole
from qoro.schemas.common import Password


class ModulePermissions(BaseModel):
    """Per-user module flags; defaults match a fresh free-plan member."""
    qoroCrm: bool = True
    qoroPulse: bool = False
    qoroTask: bool = True
    qoroFinance: bool = True


class InviteRequest(BaseModel):
    email: EmailStr


class InviteResponse(BaseModel):
    id: UUID
    email: str
    organization_name: str
    expires_at: datetime


class AcceptInviteRequest(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    password: Password


class PermissionsUpdate(BaseModel):
    permissions: ModulePermissions


class UserResponse(BaseModel):
    id: UUID
    name: str
    email: str
    role: UserRole
    permissions: ModulePermissions
    created_at: datetime


class OrganizationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    cnpj: str | None = None
    contact_email: str | None = None
    contact_phone: str | None = None
    plan_id: PlanId
    stripe_subscription_status: str | None = None
    stripe_current_period_end: datetime | None = None


class OrganizationUpdate(BaseModel):
    name: str | None = Field(None, max_length=200)
    cnpj: str | None = Field(None, max_length=20)
    contact_email: str | None = Field(None, max_length=255)
    contact_phone: str | None = Field(None, max_length=40)


class AccessInfoResponse(BaseModel):
    plan_id: PlanId
    role: UserRole
    permissions: ModulePermissions


class ProfileResponse(BaseModel):
    id: UUID
    name: str
    email: str
    role: UserRole
    organization_id: UUID | None
    organization_name: str | None
    plan_id: PlanId | None
    permissions: ModulePermissions
