"""Pulse Schemas — chat messages, ask requests and conversation views.

Invariants:
    - AskPulseRequest.messages non-empty; the last one must be a non-empty user message
      (checked in pulse_service so the error carries the product's wording)
"""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from qoro.core.domain_types import MessageRole


class PulseMessage(BaseModel):
    role: MessageRole
    content: str = Field(max_length=20_000)


class AskPulseRequest(BaseModel):
    messages: list[PulseMessage] = Field(min_length=1, max_length=200)
    conversation_id: UUID | None = None


class AskPulseResponse(BaseModel):
    conversation_id: UUID
    title: str
    response: PulseMessage


class ConversationSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    title: str
    updated_at: datetime


class ConversationDetail(ConversationSummary):
    messages: list[PulseMessage]
