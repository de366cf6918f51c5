"""Pulse Agent — non-streaming tool-use loop over the Anthropic Messages API.

Invariants:
    - Max `agent_max_iterations` model calls per ask; tool errors never crash the loop
    - Loop ends on the first response without tool_use blocks
    - On an API failure the ask is retried once without tools; if that fails too,
      AssistantUnavailableError surfaces (503)
    - An empty answer is replaced by a fixed apology, never returned blank

Design Decisions:
    - Non-streaming create_message: the answer is persisted and returned whole,
      the client renders it at once
    - Tool round-trips stay inside the loop's message list; only the final text
      is stored in the conversation transcript
    - Title generation uses a small model and degrades to a word-based fallback
"""

import json
import logging
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from qoro.config import Settings
from qoro.core.conversation_title import (
    build_title_prompt, clean_title, fallback_title, first_user_content,
    is_derived_from_first_message,
)
from qoro.core.errors import AssistantUnavailableError, ErrorContext, QoroError
from qoro.core.time_utils import utc_now
from qoro.infrastructure.anthropic_client import ResilientAnthropicClient
from qoro.services.define_pulse_tools import TOOLS_PULSE
from qoro.services.org_context import ActorContext
from qoro.services.system_prompt import build_system_prompt
from qoro.services.tool_dispatch import ToolDispatch

logger = logging.getLogger(__name__)

EMPTY_ANSWER = "Desculpe, não consegui gerar uma resposta."
LOOP_EXHAUSTED = (
    "Desculpe, não consegui concluir a análise agora. "
    "Tente reformular a pergunta."
)


def has_tool_use(response: Any) -> bool:
    return any(getattr(b, "type", None) == "tool_use" for b in response.content)


def serialize_content(response: Any) -> list[dict]:
    return [b.model_dump(exclude_none=True) for b in response.content]


def response_text(response: Any) -> str:
    return "".join(
        b.text for b in response.content if getattr(b, "type", None) == "text"
    ).strip()


class PulseAgent:
    """Runs one ask: model calls, tool execution, final answer text."""

    def __init__(
        self, db: AsyncSession, client: ResilientAnthropicClient, settings: Settings,
    ):
        self.db = db
        self.client = client
        self.model = settings.agent_model
        self.max_tokens = settings.agent_max_tokens
        self.max_iterations = settings.agent_max_iterations
        self.title_model = settings.title_model

    async def answer(
        self, actor: ActorContext, conversation_id, history: list[dict],
    ) -> str:
        """Final assistant text for a transcript ending in a user message."""
        system = build_system_prompt(actor.organization_name, actor.name, utc_now())
        ctx = actor.error_context(conversation_id=str(conversation_id))
        dispatch = ToolDispatch(self.db, actor, conversation_id)
        messages = [{"role": m["role"], "content": m["content"]} for m in history]
        try:
            return await self._tool_loop(system, messages, ctx, dispatch)
        except QoroError as e:
            logger.warning(
                f"Pulse tool loop failed, retrying without tools: {e.message}",
                extra=actor.log_extra(
                    conversation_id=str(conversation_id), error_code=e.code,
                ),
            )
        try:
            response = await self.client.create_message(
                model=self.model, max_tokens=self.max_tokens, system=system,
                messages=[
                    {"role": m["role"], "content": m["content"]} for m in history
                ],
                context=ctx,
            )
        except QoroError as e:
            logger.error(
                f"Pulse fallback failed: {e.message}",
                extra=actor.log_extra(
                    conversation_id=str(conversation_id), error_code=e.code,
                ),
            )
            raise AssistantUnavailableError(ctx)
        return response_text(response) or EMPTY_ANSWER

    async def _tool_loop(
        self, system: str, messages: list, ctx: ErrorContext, dispatch: ToolDispatch,
    ) -> str:
        last_text = ""
        for _ in range(self.max_iterations):
            response = await self.client.create_message(
                model=self.model, max_tokens=self.max_tokens, system=system,
                messages=messages, tools=TOOLS_PULSE, context=ctx,
            )
            last_text = response_text(response) or last_text
            if not has_tool_use(response):
                return last_text or EMPTY_ANSWER

            messages.append({"role": "assistant", "content": serialize_content(response)})
            tool_results = []
            for block in response.content:
                if getattr(block, "type", None) != "tool_use":
                    continue
                result = await self._execute_tool_safe(
                    dispatch, block.name, block.input or {},
                )
                tool_results.append({
                    "type": "tool_result",
                    "tool_use_id": block.id,
                    "content": json.dumps(result, ensure_ascii=False, default=str),
                })
            messages.append({"role": "user", "content": tool_results})

        logger.warning(
            f"Pulse loop hit {self.max_iterations} iterations",
            extra={"conversation_id": ctx.conversation_id},
        )
        return last_text or LOOP_EXHAUSTED

    async def _execute_tool_safe(
        self, dispatch: ToolDispatch, tool_name: str, tool_input: dict,
    ) -> dict:
        """Execute tool with error boundary — never raises."""
        try:
            return await dispatch.execute(tool_name, tool_input)
        except QoroError as e:
            logger.warning(
                f"Tool error: {e.message}",
                extra={"tool_name": tool_name, "error_code": e.code},
            )
            result = e.to_response()
        except Exception as e:
            logger.error(
                f"Unexpected error in tool '{tool_name}': {e}", exc_info=True,
                extra={"tool_name": tool_name},
            )
            result = {
                "status": "error", "error_code": "TOOL_EXECUTION_ERROR",
                "message": f"Internal error executing {tool_name}",
            }
        dispatch.log_tool_call(tool_name, tool_input, result)
        return result

    async def generate_title(self, messages: list[dict], ctx: ErrorContext) -> str:
        """2-4 word title; word-based fallback when the model fails or echoes."""
        first_user = first_user_content(messages)
        try:
            response = await self.client.create_message(
                model=self.title_model, max_tokens=20, system="",
                messages=[{"role": "user", "content": build_title_prompt(messages)}],
                temperature=0.2, context=ctx,
            )
        except QoroError as e:
            logger.warning(
                f"Title generation failed: {e.message}",
                extra={"conversation_id": ctx.conversation_id},
            )
            return fallback_title(messages)
        title = clean_title(response_text(response))[:200]
        if not title or is_derived_from_first_message(title, first_user):
            return fallback_title(messages)
        return title
