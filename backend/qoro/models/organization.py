"""Organization ORM — the tenant boundary and its Stripe subscription state.

Invariants:
    - plan_id in {free, growth, performance}; defaults to free
    - stripe_* columns mirror the latest subscription webhook, never client input

Design Decisions:
    - Plan stored on the organization, not the user: every member of a tenant
      shares one subscription
    - owner_id without FK: users.organization_id already points here and a
      cycle would need deferred constraints for little gain
"""

import uuid
from datetime import datetime

from sqlalchemy import String, DateTime
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.dialects.postgresql import UUID

from qoro.db.base import Base
from qoro.models.mixins import IdMixin, TimestampMixin


class Organization(IdMixin, TimestampMixin, Base):
    __tablename__ = "organizations"

    name: Mapped[str] = mapped_column(String(200), nullable=False)
    cnpj: Mapped[str | None] = mapped_column(String(20), nullable=True)
    contact_email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    contact_phone: Mapped[str | None] = mapped_column(String(40), nullable=True)
    owner_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), nullable=True,
    )
    plan_id: Mapped[str] = mapped_column(
        String(20), nullable=False, default="free",
    )
    stripe_customer_id: Mapped[str | None] = mapped_column(
        String(100), nullable=True, index=True,
    )
    stripe_subscription_id: Mapped[str | None] = mapped_column(
        String(100), nullable=True,
    )
    stripe_price_id: Mapped[str | None] = mapped_column(String(100), nullable=True)
    stripe_subscription_status: Mapped[str | None] = mapped_column(
        String(30), nullable=True,
    )
    stripe_current_period_end: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )
