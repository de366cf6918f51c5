"""Customer ORM — CRM contact and its position in the sales funnel.

Invariants:
    - status is one of the CustomerStatus funnel stages (default `new`)
    - address and custom_fields are free-form JSON owned by the client UI
"""

from datetime import date

from sqlalchemy import String, Text, Date, JSON
from sqlalchemy.orm import Mapped, mapped_column

from qoro.db.base import Base
from qoro.models.mixins import TenantMixin


class Customer(TenantMixin, Base):
    __tablename__ = "customers"

    name: Mapped[str] = mapped_column(String(200), nullable=False)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    phone: Mapped[str | None] = mapped_column(String(40), nullable=True)
    company: Mapped[str | None] = mapped_column(String(200), nullable=True)
    cpf: Mapped[str | None] = mapped_column(String(20), nullable=True)
    cnpj: Mapped[str | None] = mapped_column(String(20), nullable=True)
    birth_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    address: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    tags: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    source: Mapped[str | None] = mapped_column(String(100), nullable=True)
    status: Mapped[str] = mapped_column(
        String(30), nullable=False, default="new", index=True,
    )
    custom_fields: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
