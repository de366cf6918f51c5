"""Conversation ORM — a Pulse chat transcript, private to one user.

Invariants:
    - messages holds only {role: user|assistant, content: str} entries;
      tool round-trips stay inside a single ask and are not persisted here
      (they are logged to tool_calls)

Design Decisions:
    - JSON column for messages: the transcript is always read and written whole
"""

import uuid

from sqlalchemy import String, JSON, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.dialects.postgresql import UUID

from qoro.db.base import Base
from qoro.models.mixins import TenantMixin


class Conversation(TenantMixin, Base):
    __tablename__ = "conversations"

    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    messages: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
