"""Finance Schemas — accounts, transactions, bills, suppliers, invoices and reconciliation.

Invariants:
    - Transaction.amount > 0 and Bill.amount > 0; the sign lives in `type`
    - Transaction status is not accepted from clients: stored transactions are always paid
    - Supplier.email is required and must be a valid address
    - Bill entity_type and entity_id come together or not at all
"""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field, model_validator

from qoro.core.domain_types import (
    AccountType, BillStatus, BillType, EntityType, InvoiceStatus,
    PaymentMethod, ReconciliationStatus, TransactionType,
)
from qoro.schemas.common import (
    Address, OptionalText, ORMResponse, PositiveMoney, UtcDatetime,
)


# ─── Accounts ────────────────────────────────────────────────────

class AccountCreate(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    type: AccountType
    bank: OptionalText = None
    balance: float = 0.0
    is_active: bool = True


class AccountUpdate(BaseModel):
    """Balance is not editable: it moves only through transactions."""
    name: str | None = Field(None, min_length=1, max_length=200)
    type: AccountType | None = None
    bank: OptionalText = None
    is_active: bool | None = None


class AccountResponse(ORMResponse):
    name: str
    type: AccountType
    bank: str | None = None
    balance: float
    is_active: bool


# ─── Transactions ────────────────────────────────────────────────

class TransactionCreate(BaseModel):
    description: str = Field(min_length=1, max_length=300)
    amount: PositiveMoney
    type: TransactionType
    date: UtcDatetime
    account_id: UUID
    customer_id: UUID | None = None
    category: OptionalText = None
    payment_method: PaymentMethod | None = None
    tags: list[str] = Field(default_factory=list)


class TransactionUpdate(BaseModel):
    description: str | None = Field(None, min_length=1, max_length=300)
    amount: PositiveMoney | None = None
    type: TransactionType | None = None
    date: UtcDatetime | None = None
    account_id: UUID | None = None
    customer_id: UUID | None = None
    category: OptionalText = None
    payment_method: PaymentMethod | None = None
    tags: list[str] | None = None


class BulkTransactionItem(BaseModel):
    description: str = Field(min_length=1, max_length=300)
    amount: PositiveMoney
    type: TransactionType
    date: UtcDatetime
    category: OptionalText = None


class BulkTransactionCreate(BaseModel):
    account_id: UUID
    transactions: list[BulkTransactionItem] = Field(min_length=1, max_length=1000)


class TransactionResponse(ORMResponse):
    description: str
    amount: float
    type: TransactionType
    date: datetime
    account_id: UUID | None = None
    account_name: str | None = None
    customer_id: UUID | None = None
    customer_name: str | None = None
    bill_id: UUID | None = None
    category: str | None = None
    status: str
    payment_method: PaymentMethod | None = None
    tags: list[str] = Field(default_factory=list)


class BulkCreateResult(BaseModel):
    created: int
    account_balance: float


# ─── Bills ───────────────────────────────────────────────────────

class _BillEntityCheck(BaseModel):
    @model_validator(mode="after")
    def entity_pair(self):
        if (self.entity_type is None) != (self.entity_id is None):
            raise ValueError("entity_type and entity_id must be provided together")
        return self


class BillCreate(_BillEntityCheck):
    description: str = Field(min_length=1, max_length=300)
    amount: PositiveMoney
    type: BillType
    due_date: UtcDatetime
    status: BillStatus = BillStatus.PENDING
    entity_type: EntityType | None = None
    entity_id: UUID | None = None
    notes: OptionalText = None
    account_id: UUID | None = None
    category: OptionalText = None
    payment_method: PaymentMethod | None = None
    tags: list[str] = Field(default_factory=list)


class BillUpdate(BaseModel):
    description: str | None = Field(None, min_length=1, max_length=300)
    amount: PositiveMoney | None = None
    type: BillType | None = None
    due_date: UtcDatetime | None = None
    status: BillStatus | None = None
    entity_type: EntityType | None = None
    entity_id: UUID | None = None
    notes: OptionalText = None
    account_id: UUID | None = None
    category: OptionalText = None
    payment_method: PaymentMethod | None = None
    tags: list[str] | None = None


class BillResponse(ORMResponse):
    description: str
    amount: float
    type: BillType
    due_date: datetime
    status: BillStatus
    entity_type: EntityType | None = None
    entity_id: UUID | None = None
    entity_name: str | None = None
    quote_id: UUID | None = None
    notes: str | None = None
    account_id: UUID | None = None
    category: str | None = None
    payment_method: PaymentMethod | None = None
    tags: list[str] = Field(default_factory=list)


# ─── Suppliers ───────────────────────────────────────────────────

class SupplierCreate(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    cnpj: OptionalText = None
    email: EmailStr
    phone: OptionalText = None
    address: Address | None = None
    payment_terms: OptionalText = None
    is_active: bool = True


class SupplierUpdate(BaseModel):
    name: str | None = Field(None, min_length=1, max_length=200)
    cnpj: OptionalText = None
    email: EmailStr | None = None
    phone: OptionalText = None
    address: Address | None = None
    payment_terms: OptionalText = None
    is_active: bool | None = None


class SupplierResponse(ORMResponse):
    name: str
    cnpj: str | None = None
    email: str
    phone: str | None = None
    address: dict | None = None
    payment_terms: str | None = None
    is_active: bool


# ─── Invoices ────────────────────────────────────────────────────

class InvoiceCreate(BaseModel):
    quote_id: UUID
    due_date: UtcDatetime | None = None


class InvoiceResponse(ORMResponse):
    number: str
    quote_id: UUID | None = None
    customer_id: UUID
    customer_name: str | None = None
    items: list[dict]
    total: float
    due_date: datetime
    payment_status: InvoiceStatus
    paid_at: datetime | None = None


# ─── Dashboard ───────────────────────────────────────────────────

class FinanceMetricsResponse(BaseModel):
    total_balance: float
    total_income: float
    total_expense: float
    net_profit: float
    period_start: datetime
    period_end: datetime


# ─── Reconciliation ──────────────────────────────────────────────

class ReconciliationCreate(BaseModel):
    file_name: str = Field(min_length=1, max_length=255)
    ofx_content: str = Field(min_length=1, max_length=5_000_000)
    account_id: UUID


class ReconciliationRename(BaseModel):
    file_name: str = Field(min_length=1, max_length=255)


class ReconciliationResponse(ORMResponse):
    file_name: str
    account_id: UUID
    account_name: str | None = None
    status: ReconciliationStatus


class ReconciliationDetail(ReconciliationResponse):
    ofx_content: str


class StatementLine(BaseModel):
    date: str
    amount: float
    description: str
    type: TransactionType
    fit_id: str | None = None


class MatchedPair(BaseModel):
    statement: StatementLine
    transaction_id: UUID


class ReconciliationComparison(BaseModel):
    reconciliation_id: UUID
    matched: list[MatchedPair]
    statement_only: list[StatementLine]
    ledger_only: list[UUID]


class ReconciliationImportResult(BaseModel):
    imported: int
    status: ReconciliationStatus
