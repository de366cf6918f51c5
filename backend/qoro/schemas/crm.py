"""CRM Schemas — customers, catalogue (products/services), quotes and funnel metrics.

Invariants:
    - Customer.name required; e-mail optional but valid when present ('' means absent)
    - Product/Service price >= 0
    - QuoteCreate: at least one item, quantity >= 1, unit_price >= 0, discount >= 0
    - Client-sent item totals are ignored (recomputed in core/sales_pipeline.py)
"""

from datetime import date, datetime
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from qoro.core.domain_types import (
    CustomerStatus, PricingModel, QuoteItemType, QuoteStatus,
)
from qoro.schemas.common import (
    Address, Money, OptionalEmail, OptionalText, ORMResponse, UtcDatetime,
)


# ─── Customers ───────────────────────────────────────────────────

class CustomerBase(BaseModel):
    email: OptionalEmail = None
    phone: OptionalText = None
    company: OptionalText = None
    cpf: OptionalText = None
    cnpj: OptionalText = None
    birth_date: date | None = None
    address: Address | None = None
    tags: list[str] = Field(default_factory=list)
    source: OptionalText = None
    custom_fields: dict | None = None
    notes: OptionalText = None


class CustomerCreate(CustomerBase):
    name: str = Field(min_length=1, max_length=200)
    status: CustomerStatus = CustomerStatus.NEW

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("O nome é obrigatório.")
        return v


class CustomerUpdate(CustomerBase):
    name: str | None = Field(None, min_length=1, max_length=200)
    tags: list[str] | None = None
    status: CustomerStatus | None = None


class CustomerStatusUpdate(BaseModel):
    status: CustomerStatus


class CustomerResponse(ORMResponse):
    name: str
    email: str | None = None
    phone: str | None = None
    company: str | None = None
    cpf: str | None = None
    cnpj: str | None = None
    birth_date: date | None = None
    address: dict | None = None
    tags: list[str] = Field(default_factory=list)
    source: str | None = None
    status: CustomerStatus
    custom_fields: dict | None = None
    notes: str | None = None


class CrmMetricsResponse(BaseModel):
    total_customers: int
    active_leads: int
    won_customers: int
    win_rate: float
    funnel: dict[str, int]


# ─── Catalogue ───────────────────────────────────────────────────

class ProductCreate(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    description: OptionalText = None
    price: Money
    cost: Money | None = None
    category: OptionalText = None
    sku: OptionalText = None
    is_active: bool = True


class ProductUpdate(BaseModel):
    name: str | None = Field(None, min_length=1, max_length=200)
    description: OptionalText = None
    price: Money | None = None
    cost: Money | None = None
    category: OptionalText = None
    sku: OptionalText = None
    is_active: bool | None = None


class ProductResponse(ORMResponse):
    name: str
    description: str | None = None
    price: float
    cost: float | None = None
    category: str | None = None
    sku: str | None = None
    is_active: bool


class ServiceCreate(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    description: OptionalText = None
    pricing_model: PricingModel = PricingModel.PER_HOUR
    price: Money
    duration_hours: float | None = Field(None, ge=0)
    category: OptionalText = None
    is_active: bool = True


class ServiceUpdate(BaseModel):
    name: str | None = Field(None, min_length=1, max_length=200)
    description: OptionalText = None
    pricing_model: PricingModel | None = None
    price: Money | None = None
    duration_hours: float | None = Field(None, ge=0)
    category: OptionalText = None
    is_active: bool | None = None


class ServiceResponse(ORMResponse):
    name: str
    description: str | None = None
    pricing_model: PricingModel
    price: float
    duration_hours: float | None = None
    category: str | None = None
    is_active: bool


# ─── Quotes ──────────────────────────────────────────────────────

class QuoteItem(BaseModel):
    type: QuoteItemType
    item_id: UUID
    name: str = Field(min_length=1, max_length=200)
    quantity: int = Field(ge=1)
    unit_price: Money
    cost: Money | None = None
    pricing_model: PricingModel | None = None


class QuoteCreate(BaseModel):
    customer_id: UUID
    account_id: UUID | None = None
    items: list[QuoteItem] = Field(min_length=1)
    discount: Money = 0.0
    valid_until: UtcDatetime
    notes: OptionalText = None
    status: QuoteStatus = QuoteStatus.DRAFT

    @field_validator("status")
    @classmethod
    def open_status_only(cls, v: QuoteStatus) -> QuoteStatus:
        if v in (QuoteStatus.WON, QuoteStatus.LOST):
            raise ValueError("use the won/lost endpoints to close a quote")
        return v


class QuoteUpdate(BaseModel):
    customer_id: UUID | None = None
    account_id: UUID | None = None
    items: list[QuoteItem] | None = Field(None, min_length=1)
    discount: Money | None = None
    valid_until: UtcDatetime | None = None
    notes: OptionalText = None
    status: QuoteStatus | None = None


class QuoteWonRequest(BaseModel):
    account_id: UUID | None = None


class QuoteResponse(ORMResponse):
    number: str
    customer_id: UUID
    customer_name: str | None = None
    organization_name: str | None = None
    account_id: UUID | None = None
    items: list[dict]
    subtotal: float
    discount: float
    total: float
    valid_until: datetime
    notes: str | None = None
    status: QuoteStatus


class QuoteWonResponse(BaseModel):
    quote_id: UUID
    bill_id: UUID
