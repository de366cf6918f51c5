"""Domain Types — rich types that replace bare primitives across the codebase.

Invariants:
    - OrganizationId and UserId wrap UUIDs; tenant scoping always goes through them
    - All valid states encoded as Enums — no raw string matching in services

Design Decisions:
    - NewType over dataclass wrappers: zero runtime cost, full type-checker support
    - str Enums: serialize to JSON without custom encoders (API responses and
      Anthropic tool_result payloads are JSON)
"""

from enum import Enum
from typing import NewType
from uuid import UUID


# ─── Identity Types ──────────────────────────────────────────────

OrganizationId = NewType("OrganizationId", UUID)
UserId = NewType("UserId", UUID)


# ─── Tenancy & Billing ───────────────────────────────────────────

class PlanId(str, Enum):
    """Subscription tiers, cheapest first."""
    FREE = "free"
    GROWTH = "growth"
    PERFORMANCE = "performance"


class UserRole(str, Enum):
    ADMIN = "admin"
    MEMBER = "member"


class Module(str, Enum):
    """Application modules a user may be granted access to."""
    CRM = "qoroCrm"
    PULSE = "qoroPulse"
    TASK = "qoroTask"
    FINANCE = "qoroFinance"


class Feature(str, Enum):
    """Plan-gated capabilities below module level."""
    PRODUCTS = "products"
    SERVICES = "services"
    QUOTES = "quotes"
    PULSE = "pulse"


class LimitedResource(str, Enum):
    """Record types with a per-plan quota."""
    CUSTOMERS = "customers"
    TRANSACTIONS = "transactions"
    USERS = "users"


class SubscriptionStatus(str, Enum):
    """Stripe subscription statuses the backend distinguishes."""
    ACTIVE = "active"
    TRIALING = "trialing"
    PENDING = "pending"
    PAST_DUE = "past_due"
    PAUSED = "paused"
    CANCELED = "canceled"
    UNPAID = "unpaid"
    INCOMPLETE = "incomplete"
    INCOMPLETE_EXPIRED = "incomplete_expired"


class InviteStatus(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    REVOKED = "revoked"


# ─── CRM ─────────────────────────────────────────────────────────

class CustomerStatus(str, Enum):
    """Kanban stages of the sales funnel, in pipeline order."""
    NEW = "new"
    INITIAL_CONTACT = "initial_contact"
    QUALIFICATION = "qualification"
    PROPOSAL = "proposal"
    NEGOTIATION = "negotiation"
    WON = "won"
    LOST = "lost"
    ARCHIVED = "archived"


class PricingModel(str, Enum):
    FIXED = "fixed"
    PER_HOUR = "per_hour"


class QuoteItemType(str, Enum):
    PRODUCT = "product"
    SERVICE = "service"


class QuoteStatus(str, Enum):
    DRAFT = "draft"
    SENT = "sent"
    WON = "won"
    LOST = "lost"


class InvoiceStatus(str, Enum):
    PENDING = "pending"
    PAID = "paid"
    OVERDUE = "overdue"
    CANCELLED = "cancelled"


# ─── Finance ─────────────────────────────────────────────────────

class AccountType(str, Enum):
    CHECKING = "checking"
    SAVINGS = "savings"
    CREDIT_CARD = "credit_card"
    CASH = "cash"


class TransactionType(str, Enum):
    INCOME = "income"
    EXPENSE = "expense"


class TransactionStatus(str, Enum):
    PENDING = "pending"
    PAID = "paid"
    CANCELLED = "cancelled"


class PaymentMethod(str, Enum):
    PIX = "pix"
    CREDIT_CARD = "credit_card"
    DEBIT_CARD = "debit_card"
    BANK_TRANSFER = "bank_transfer"
    BOLETO = "boleto"
    CASH = "cash"


class BillType(str, Enum):
    PAYABLE = "payable"
    RECEIVABLE = "receivable"


class BillStatus(str, Enum):
    PENDING = "pending"
    PAID = "paid"
    OVERDUE = "overdue"


class EntityType(str, Enum):
    """Counterparty kind of a bill."""
    CUSTOMER = "customer"
    SUPPLIER = "supplier"


class ReconciliationStatus(str, Enum):
    PENDING = "pending"
    RECONCILED = "reconciled"


# ─── Tasks & Projects ────────────────────────────────────────────

class TaskStatus(str, Enum):
    TODO = "todo"
    IN_PROGRESS = "in_progress"
    REVIEW = "review"
    DONE = "done"


class TaskPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


class RecurrenceFrequency(str, Enum):
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"


class ProjectStatus(str, Enum):
    PLANNING = "planning"
    ACTIVE = "active"
    ON_HOLD = "on_hold"
    COMPLETED = "completed"


# ─── Pulse ───────────────────────────────────────────────────────

class MessageRole(str, Enum):
    """Roles persisted in a conversation transcript."""
    USER = "user"
    ASSISTANT = "assistant"
