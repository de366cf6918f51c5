"""Pulse Service — asks, conversation persistence and titles.

Invariants:
    - Pulse requires the plan feature AND the user's pulse permission
    - The last incoming message must be a non-empty user message
    - Conversations are private to their user: a foreign id is a 404
    - A new conversation is committed with its provisional title before the
      model runs, so a failed ask still leaves a visible conversation

Design Decisions:
    - The server-side transcript is authoritative for existing conversations:
      only the new user message is taken from the request
"""

import logging
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from qoro.config import Settings
from qoro.core.conversation_title import provisional_title
from qoro.core.domain_types import Feature, MessageRole, Module
from qoro.core.enforce_plan import check_module_access, check_plan_feature
from qoro.core.errors import BusinessRuleError, ResourceNotFoundError
from qoro.infrastructure.anthropic_client import ResilientAnthropicClient
from qoro.models.conversation import Conversation
from qoro.services.org_context import ActorContext
from qoro.services.pulse_agent import PulseAgent

logger = logging.getLogger(__name__)

NOT_FOUND = "Conversa não encontrada."


def _check_access(actor: ActorContext) -> None:
    check_plan_feature(actor.plan_id, Feature.PULSE)
    check_module_access(actor.plan_id, actor.permissions, Module.PULSE)


def _last_user_message(messages: list[dict]) -> str:
    if not messages:
        raise BusinessRuleError("Lista de mensagens é obrigatória.", "MESSAGES_REQUIRED")
    last = messages[-1]
    if last.get("role") != MessageRole.USER:
        raise BusinessRuleError(
            "A última mensagem deve ser do usuário.", "LAST_MESSAGE_NOT_USER",
        )
    content = str(last.get("content") or "").strip()
    if not content:
        raise BusinessRuleError(
            "A mensagem do usuário não pode estar vazia.", "EMPTY_MESSAGE",
        )
    return content


async def _own_conversation(
    db: AsyncSession, actor: ActorContext, conversation_id: UUID,
) -> Conversation:
    conversation = await db.get(Conversation, conversation_id)
    if (
        conversation is None
        or conversation.user_id != actor.user_id
        or conversation.organization_id != actor.organization_id
    ):
        raise ResourceNotFoundError("Conversation", str(conversation_id), NOT_FOUND)
    return conversation


async def ask_pulse(
    db: AsyncSession,
    client: ResilientAnthropicClient,
    settings: Settings,
    actor: ActorContext,
    messages: list[dict],
    conversation_id: UUID | None = None,
) -> dict:
    """Answer the last user message; returns conversation id, title and reply."""
    organization_id = actor.require_organization()
    _check_access(actor)
    content = _last_user_message(messages)

    is_new = conversation_id is None
    if is_new:
        conversation = Conversation(
            organization_id=organization_id,
            user_id=actor.user_id,
            title=provisional_title(content),
            messages=[],
        )
        db.add(conversation)
        await db.commit()
    else:
        conversation = await _own_conversation(db, actor, conversation_id)

    history = [*conversation.messages, {"role": "user", "content": content}]
    agent = PulseAgent(db, client, settings)
    answer = await agent.answer(actor, conversation.id, history)
    history.append({"role": "assistant", "content": answer})

    if is_new:
        conversation.title = await agent.generate_title(
            history, actor.error_context(conversation_id=str(conversation.id)),
        )
    conversation.messages = history
    await db.commit()

    logger.info(
        "Pulse answered",
        extra=actor.log_extra(
            conversation_id=str(conversation.id), message_count=len(history),
        ),
    )
    return {
        "conversation_id": conversation.id,
        "title": conversation.title,
        "response": {"role": "assistant", "content": answer},
    }


async def list_conversations(
    db: AsyncSession, actor: ActorContext,
) -> list[Conversation]:
    if not actor.has_organization:
        return []
    result = await db.execute(
        select(Conversation)
        .where(
            Conversation.user_id == actor.user_id,
            Conversation.organization_id == actor.organization_id,
        )
        .order_by(Conversation.updated_at.desc())
    )
    return list(result.scalars().all())


async def get_conversation(
    db: AsyncSession, actor: ActorContext, conversation_id: UUID,
) -> Conversation:
    return await _own_conversation(db, actor, conversation_id)


async def delete_conversation(
    db: AsyncSession, actor: ActorContext, conversation_id: UUID,
) -> None:
    conversation = await _own_conversation(db, actor, conversation_id)
    await db.delete(conversation)
    await db.commit()
