"""ORM Models — SQLAlchemy declarative models for all domain entities.

Invariants:
    - All models inherit from Base (db/base.py)
    - Business records are scoped by organization_id (models/mixins.py)

Design Decisions:
    - One file per entity for locality
    - All models imported here so Base.metadata is complete before
      create_all / Alembic autogenerate run
"""

from qoro.models.organization import Organization  # noqa: F401
from qoro.models.user import User  # noqa: F401
from qoro.models.invite import Invite  # noqa: F401
from qoro.models.customer import Customer  # noqa: F401
from qoro.models.product import Product  # noqa: F401
from qoro.models.service_offering import ServiceOffering  # noqa: F401
from qoro.models.account import Account  # noqa: F401
from qoro.models.quote import Quote  # noqa: F401
from qoro.models.invoice import Invoice  # noqa: F401
from qoro.models.bill import Bill  # noqa: F401
from qoro.models.transaction import Transaction  # noqa: F401
from qoro.models.supplier import Supplier  # noqa: F401
from qoro.models.reconciliation import Reconciliation  # noqa: F401
from qoro.models.project import Project  # noqa: F401
from qoro.models.task import Task  # noqa: F401
from qoro.models.conversation import Conversation  # noqa: F401
from qoro.models.tool_call import ToolCall  # noqa: F401
from qoro.models.qualification_lead import QualificationLead  # noqa: F401
from qoro.models.outbound_email import OutboundEmail  # noqa: F401
