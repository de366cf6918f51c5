"""Product ORM — catalogue item sold by unit."""

from sqlalchemy import String, Text, Float, Boolean
from sqlalchemy.orm import Mapped, mapped_column

from qoro.db.base import Base
from qoro.models.mixins import TenantMixin


class Product(TenantMixin, Base):
    __tablename__ = "products"

    name: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    price: Mapped[float] = mapped_column(Float, nullable=False)
    cost: Mapped[float | None] = mapped_column(Float, nullable=True)
    category: Mapped[str | None] = mapped_column(String(100), nullable=True)
    sku: Mapped[str | None] = mapped_column(String(100), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
