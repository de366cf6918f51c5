"""User ORM — login identity, organization membership and module permissions.

Invariants:
    - email is unique and stored lower-cased
    - organization_id is NULL only between sign-up and profile creation
      (paid sign-ups wait for the Stripe checkout webhook)
    - permissions holds the four module flags (qoroCrm, qoroPulse, qoroTask, qoroFinance)
"""

import uuid

from sqlalchemy import String, Boolean, JSON, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.dialects.postgresql import UUID

from qoro.db.base import Base
from qoro.models.mixins import IdMixin, TimestampMixin


class User(IdMixin, TimestampMixin, Base):
    __tablename__ = "users"

    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    password_hash: Mapped[str | None] = mapped_column(String(100), nullable=True)
    email_verified: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False,
    )
    organization_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("organizations.id", ondelete="SET NULL"),
        nullable=True, index=True,
    )
    role: Mapped[str] = mapped_column(String(20), nullable=False, default="member")
    permissions: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
    invited_by: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), nullable=True,
    )
    stripe_subscription_status: Mapped[str | None] = mapped_column(
        String(30), nullable=True,
    )
