"""Pulse Routes — ask the assistant and manage conversations.

Invariants:
    - Every route requires effective access to the Pulse module; the plan
      feature is re-checked in pulse_service
    - Conversations are scoped to the calling user
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from qoro.api.deps import get_anthropic_client, require_module
from qoro.config import Settings, get_settings
from qoro.core.domain_types import Module
from qoro.infrastructure.anthropic_client import ResilientAnthropicClient
from qoro.infrastructure.database import get_db
from qoro.schemas.common import DeleteResult
from qoro.schemas.pulse import (
    AskPulseRequest, AskPulseResponse, ConversationDetail, ConversationSummary,
)
from qoro.services import pulse_service
from qoro.services.org_context import ActorContext

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/pulse", tags=["pulse"])

pulse_actor = require_module(Module.PULSE)


@router.post("/ask", response_model=AskPulseResponse)
async def ask_pulse(
    body: AskPulseRequest,
    actor: ActorContext = Depends(pulse_actor),
    db: AsyncSession = Depends(get_db),
    client: ResilientAnthropicClient = Depends(get_anthropic_client),
    settings: Settings = Depends(get_settings),
):
    return await pulse_service.ask_pulse(
        db, client, settings, actor,
        [m.model_dump() for m in body.messages],
        body.conversation_id,
    )


@router.get("/conversations", response_model=list[ConversationSummary])
async def list_conversations(
    actor: ActorContext = Depends(pulse_actor),
    db: AsyncSession = Depends(get_db),
):
    return await pulse_service.list_conversations(db, actor)


@router.get("/conversations/{conversation_id}", response_model=ConversationDetail)
async def get_conversation(
    conversation_id: UUID,
    actor: ActorContext = Depends(pulse_actor),
    db: AsyncSession = Depends(get_db),
):
    return await pulse_service.get_conversation(db, actor, conversation_id)


@router.delete("/conversations/{conversation_id}", response_model=DeleteResult)
async def delete_conversation(
    conversation_id: UUID,
    actor: ActorContext = Depends(pulse_actor),
    db: AsyncSession = Depends(get_db),
):
    await pulse_service.delete_conversation(db, actor, conversation_id)
    return {"id": conversation_id}
