"""CRM Routes — customers, funnel metrics, catalogue and quotes.

Invariants:
    - Every route requires effective access to the CRM module
    - Plan features (products, services, quotes) are checked in crm_service
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from qoro.api.deps import require_module
from qoro.core.domain_types import Module
from qoro.infrastructure.database import get_db
from qoro.schemas.common import DeleteResult
from qoro.schemas.crm import (
    CrmMetricsResponse, CustomerCreate, CustomerResponse, CustomerStatusUpdate,
    CustomerUpdate, ProductCreate, ProductResponse, ProductUpdate, QuoteCreate,
    QuoteResponse, QuoteUpdate, QuoteWonRequest, QuoteWonResponse,
    ServiceCreate, ServiceResponse, ServiceUpdate,
)
from qoro.services import crm_service
from qoro.services.org_context import ActorContext

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/crm", tags=["crm"])

crm_actor = require_module(Module.CRM)


# ─── Customers ───────────────────────────────────────────────────

@router.post(
    "/customers", response_model=CustomerResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_customer(
    body: CustomerCreate,
    actor: ActorContext = Depends(crm_actor),
    db: AsyncSession = Depends(get_db),
):
    return await crm_service.create_customer(db, actor, body.model_dump())


@router.get("/customers", response_model=list[CustomerResponse])
async def list_customers(
    actor: ActorContext = Depends(crm_actor),
    db: AsyncSession = Depends(get_db),
):
    return await crm_service.list_customers(db, actor)


@router.get("/customers/{customer_id}", response_model=CustomerResponse)
async def get_customer(
    customer_id: UUID,
    actor: ActorContext = Depends(crm_actor),
    db: AsyncSession = Depends(get_db),
):
    return await crm_service.get_customer(db, actor, customer_id)


@router.patch("/customers/{customer_id}", response_model=CustomerResponse)
async def update_customer(
    customer_id: UUID,
    body: CustomerUpdate,
    actor: ActorContext = Depends(crm_actor),
    db: AsyncSession = Depends(get_db),
):
    return await crm_service.update_customer(
        db, actor, customer_id, body.model_dump(exclude_unset=True),
    )


@router.put("/customers/{customer_id}/status", response_model=CustomerResponse)
async def update_customer_status(
    customer_id: UUID,
    body: CustomerStatusUpdate,
    actor: ActorContext = Depends(crm_actor),
    db: AsyncSession = Depends(get_db),
):
    return await crm_service.update_customer_status(db, actor, customer_id, body.status)


@router.delete("/customers/{customer_id}", response_model=DeleteResult)
async def delete_customer(
    customer_id: UUID,
    actor: ActorContext = Depends(crm_actor),
    db: AsyncSession = Depends(get_db),
):
    await crm_service.delete_customer(db, actor, customer_id)
    return {"id": customer_id}


@router.get("/metrics", response_model=CrmMetricsResponse)
async def get_metrics(
    actor: ActorContext = Depends(crm_actor),
    db: AsyncSession = Depends(get_db),
):
    return await crm_service.get_crm_metrics(db, actor)


# ─── Products ────────────────────────────────────────────────────

@router.post(
    "/products", response_model=ProductResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_product(
    body: ProductCreate,
    actor: ActorContext = Depends(crm_actor),
    db: AsyncSession = Depends(get_db),
):
    return await crm_service.create_product(db, actor, body.model_dump())


@router.get("/products", response_model=list[ProductResponse])
async def list_products(
    actor: ActorContext = Depends(crm_actor),
    db: AsyncSession = Depends(get_db),
):
    return await crm_service.list_products(db, actor)


@router.patch("/products/{product_id}", response_model=ProductResponse)
async def update_product(
    product_id: UUID,
    body: ProductUpdate,
    actor: ActorContext = Depends(crm_actor),
    db: AsyncSession = Depends(get_db),
):
    return await crm_service.update_product(
        db, actor, product_id, body.model_dump(exclude_unset=True),
    )


@router.delete("/products/{product_id}", response_model=DeleteResult)
async def delete_product(
    product_id: UUID,
    actor: ActorContext = Depends(crm_actor),
    db: AsyncSession = Depends(get_db),
):
    await crm_service.delete_product(db, actor, product_id)
    return {"id": product_id}


# ─── Services ────────────────────────────────────────────────────

@router.post(
    "/services", response_model=ServiceResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_service(
    body: ServiceCreate,
    actor: ActorContext = Depends(crm_actor),
    db: AsyncSession = Depends(get_db),
):
    return await crm_service.create_service(db, actor, body.model_dump())


@router.get("/services", response_model=list[ServiceResponse])
async def list_services(
    actor: ActorContext = Depends(crm_actor),
    db: AsyncSession = Depends(get_db),
):
    return await crm_service.list_services(db, actor)


@router.patch("/services/{service_id}", response_model=ServiceResponse)
async def update_service(
    service_id: UUID,
    body: ServiceUpdate,
    actor: ActorContext = Depends(crm_actor),
    db: AsyncSession = Depends(get_db),
):
    return await crm_service.update_service(
        db, actor, service_id, body.model_dump(exclude_unset=True),
    )


@router.delete("/services/{service_id}", response_model=DeleteResult)
async def delete_service(
    service_id: UUID,
    actor: ActorContext = Depends(crm_actor),
    db: AsyncSession = Depends(get_db),
):
    await crm_service.delete_service(db, actor, service_id)
    return {"id": service_id}


# ─── Quotes ──────────────────────────────────────────────────────

@router.post(
    "/quotes", response_model=QuoteResponse, status_code=status.HTTP_201_CREATED,
)
async def create_quote(
    body: QuoteCreate,
    actor: ActorContext = Depends(crm_actor),
    db: AsyncSession = Depends(get_db),
):
    return await crm_service.create_quote(db, actor, body.model_dump())


@router.get("/quotes", response_model=list[QuoteResponse])
async def list_quotes(
    actor: ActorContext = Depends(crm_actor),
    db: AsyncSession = Depends(get_db),
):
    return await crm_service.list_quotes(db, actor)


@router.get("/quotes/{quote_id}", response_model=QuoteResponse)
async def get_quote(
    quote_id: UUID,
    actor: ActorContext = Depends(crm_actor),
    db: AsyncSession = Depends(get_db),
):
    return await crm_service.get_quote(db, actor, quote_id)


@router.patch("/quotes/{quote_id}", response_model=QuoteResponse)
async def update_quote(
    quote_id: UUID,
    body: QuoteUpdate,
    actor: ActorContext = Depends(crm_actor),
    db: AsyncSession = Depends(get_db),
):
    return await crm_service.update_quote(
        db, actor, quote_id, body.model_dump(exclude_unset=True),
    )


@router.delete("/quotes/{quote_id}", response_model=DeleteResult)
async def delete_quote(
    quote_id: UUID,
    actor: ActorContext = Depends(crm_actor),
    db: AsyncSession = Depends(get_db),
):
    await crm_service.delete_quote(db, actor, quote_id)
    return {"id": quote_id}


@router.post("/quotes/{quote_id}/won", response_model=QuoteWonResponse)
async def mark_quote_won(
    quote_id: UUID,
    body: QuoteWonRequest | None = None,
    actor: ActorContext = Depends(crm_actor),
    db: AsyncSession = Depends(get_db),
):
    return await crm_service.mark_quote_as_won(
        db, actor, quote_id, body.account_id if body else None,
    )


@router.post("/quotes/{quote_id}/lost", response_model=QuoteResponse)
async def mark_quote_lost(
    quote_id: UUID,
    actor: ActorContext = Depends(crm_actor),
    db: AsyncSession = Depends(get_db),
):
    return await crm_service.mark_quote_as_lost(db, actor, quote_id)
