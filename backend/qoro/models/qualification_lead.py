"""QualificationLead ORM — anonymous answers to the public qualification form.

Not tenant-scoped: leads belong to the Qoro sales team, not to a customer organization.
"""

from sqlalchemy import String, Text, JSON
from sqlalchemy.orm import Mapped, mapped_column

from qoro.db.base import Base
from qoro.models.mixins import IdMixin, TimestampMixin


class QualificationLead(IdMixin, TimestampMixin, Base):
    __tablename__ = "qualification_leads"

    company_size: Mapped[str | None] = mapped_column(String(50), nullable=True)
    inefficient_processes: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    current_tools: Mapped[str | None] = mapped_column(Text, nullable=True)
    urgency: Mapped[str | None] = mapped_column(String(50), nullable=True)
    interested_services: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
    investment_range: Mapped[str | None] = mapped_column(String(50), nullable=True)
    desired_outcome: Mapped[str | None] = mapped_column(Text, nullable=True)
    full_name: Mapped[str | None] = mapped_column(String(200), nullable=True)
    role: Mapped[str | None] = mapped_column(String(100), nullable=True)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="new")
