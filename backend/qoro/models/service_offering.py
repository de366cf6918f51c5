"""ServiceOffering ORM — catalogue service priced per hour or at a fixed fee.

Design Decisions:
    - Class named ServiceOffering (table `services`) so it never shadows the
      services/ package in imports
"""

from sqlalchemy import String, Text, Float, Boolean
from sqlalchemy.orm import Mapped, mapped_column

from qoro.db.base import Base
from qoro.models.mixins import TenantMixin


class ServiceOffering(TenantMixin, Base):
    __tablename__ = "services"

    name: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    pricing_model: Mapped[str] = mapped_column(
        String(20), nullable=False, default="per_hour",
    )
    price: Mapped[float] = mapped_column(Float, nullable=False)
    duration_hours: Mapped[float | None] = mapped_column(Float, nullable=True)
    category: Mapped[str | None] = mapped_column(String(100), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
