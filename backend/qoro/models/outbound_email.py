"""OutboundEmail ORM — transactional e-mail outbox (table `mail`).

Invariants:
    - Rows are written with status `queued`; a mail relay picks them up
    - template_data holds only the variables the named template renders

Design Decisions:
    - Outbox table instead of SMTP from the request path: the request commits
      the e-mail together with the business change that caused it
"""

from sqlalchemy import String, JSON
from sqlalchemy.orm import Mapped, mapped_column

from qoro.db.base import Base
from qoro.models.mixins import IdMixin, TimestampMixin


class OutboundEmail(IdMixin, TimestampMixin, Base):
    __tablename__ = "mail"

    to: Mapped[str] = mapped_column(String(255), nullable=False)
    template_name: Mapped[str] = mapped_column(String(50), nullable=False)
    template_data: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="queued")
