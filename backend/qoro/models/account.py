"""Account ORM — bank account, card or cash box holding a running balance.

Invariants:
    - balance = opening balance + signed sum of the account's transactions;
      only transaction_service mutates it after creation
"""

from sqlalchemy import String, Float, Boolean
from sqlalchemy.orm import Mapped, mapped_column

from qoro.db.base import Base
from qoro.models.mixins import TenantMixin


class Account(TenantMixin, Base):
    __tablename__ = "accounts"

    name: Mapped[str] = mapped_column(String(200), nullable=False)
    type: Mapped[str] = mapped_column(String(20), nullable=False)
    bank: Mapped[str | None] = mapped_column(String(100), nullable=True)
    balance: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
