"""Invoice ORM — billing document issued for a won quote (one per quote)."""

import uuid
from datetime import datetime

from sqlalchemy import String, Float, DateTime, JSON, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.dialects.postgresql import UUID

from qoro.db.base import Base
from qoro.models.mixins import TenantMixin


class Invoice(TenantMixin, Base):
    __tablename__ = "invoices"

    number: Mapped[str] = mapped_column(String(20), nullable=False)
    quote_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("quotes.id", ondelete="SET NULL"),
        nullable=True, unique=True,
    )
    customer_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("customers.id"), nullable=False,
    )
    items: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    total: Mapped[float] = mapped_column(Float, nullable=False)
    due_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    payment_status: Mapped[str] = mapped_column(
        String(20), nullable=False, default="pending",
    )
    paid_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )
