"""Organization Routes — profile, access info, members, invites and tenant details.

Invariants:
    - Invite lookup and acceptance are public: the invite id is the credential
    - Admin checks live in organization_service, not here
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from qoro.api.deps import get_current_actor
from qoro.config import Settings, get_settings
from qoro.infrastructure.database import get_db
from qoro.schemas.auth import TokenResponse
from qoro.schemas.common import DeleteResult
from qoro.schemas.organization import (
    AcceptInviteRequest, AccessInfoResponse, InviteRequest, InviteResponse,
    OrganizationResponse, OrganizationUpdate, PermissionsUpdate,
    ProfileResponse, UserResponse,
)
from qoro.services import auth_service, organization_service
from qoro.services.org_context import ActorContext

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1", tags=["organization"])


@router.get("/me", response_model=ProfileResponse)
async def get_profile(actor: ActorContext = Depends(get_current_actor)):
    return organization_service.get_user_profile(actor)


@router.get("/me/access", response_model=AccessInfoResponse | None)
async def get_access_info(actor: ActorContext = Depends(get_current_actor)):
    return organization_service.get_user_access_info(actor)


@router.get("/organization", response_model=OrganizationResponse | None)
async def get_organization(
    actor: ActorContext = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
):
    return await organization_service.get_organization_details(db, actor)


@router.patch("/organization", response_model=OrganizationResponse)
async def update_organization(
    body: OrganizationUpdate,
    actor: ActorContext = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
):
    return await organization_service.update_organization_details(
        db, actor, body.model_dump(exclude_unset=True),
    )


@router.get("/users", response_model=list[UserResponse])
async def list_users(
    actor: ActorContext = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
):
    return await organization_service.list_users(db, actor)


@router.put("/users/{user_id}/permissions", response_model=UserResponse)
async def update_permissions(
    user_id: UUID,
    body: PermissionsUpdate,
    actor: ActorContext = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
):
    return await organization_service.update_user_permissions(
        db, actor, user_id, body.permissions.model_dump(),
    )


@router.delete("/users/{user_id}", response_model=DeleteResult)
async def delete_user(
    user_id: UUID,
    actor: ActorContext = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
):
    await organization_service.delete_user(db, actor, user_id)
    return {"id": user_id}


@router.post(
    "/invites", response_model=InviteResponse, status_code=status.HTTP_201_CREATED,
)
async def invite_user(
    body: InviteRequest,
    actor: ActorContext = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    invite = await organization_service.invite_user(db, actor, body.email, settings)
    return {
        "id": invite.id,
        "email": invite.email,
        "organization_name": actor.organization_name or "",
        "expires_at": invite.expires_at,
    }


@router.get("/invites/{invite_id}", response_model=InviteResponse)
async def get_invite(invite_id: UUID, db: AsyncSession = Depends(get_db)):
    invite, org = await organization_service.validate_invite(db, invite_id)
    return {
        "id": invite.id,
        "email": invite.email,
        "organization_name": org.name,
        "expires_at": invite.expires_at,
    }


@router.post(
    "/invites/{invite_id}/accept", response_model=TokenResponse,
    status_code=status.HTTP_201_CREATED,
)
async def accept_invite(
    invite_id: UUID,
    body: AcceptInviteRequest,
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    user = await organization_service.accept_invite(
        db, invite_id, body.name, body.password,
    )
    return auth_service.issue_access_token(user, settings)
