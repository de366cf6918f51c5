"""Finance Routes — accounts, transactions, bills, suppliers, invoices,
dashboard metrics and bank reconciliation.

Invariants:
    - Every route requires effective access to the Finance module
    - Balance-changing routes delegate to services that commit once
"""

import logging
from datetime import datetime
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from qoro.api.deps import require_module
from qoro.core.domain_types import BillType, Module
from qoro.infrastructure.database import get_db
from qoro.schemas.common import DeleteResult
from qoro.schemas.finance import (
    AccountCreate, AccountResponse, AccountUpdate, BillCreate, BillResponse,
    BillUpdate, BulkCreateResult, BulkTransactionCreate, FinanceMetricsResponse,
    InvoiceCreate, InvoiceResponse, ReconciliationComparison,
    ReconciliationCreate, ReconciliationDetail, ReconciliationImportResult,
    ReconciliationRename, ReconciliationResponse, SupplierCreate,
    SupplierResponse, SupplierUpdate, TransactionCreate, TransactionResponse,
    TransactionUpdate,
)
from qoro.services import (
    bill_service, finance_service, reconciliation_service, supplier_service,
    transaction_service,
)
from qoro.services.org_context import ActorContext

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/finance", tags=["finance"])

finance_actor = require_module(Module.FINANCE)


# ─── Accounts ────────────────────────────────────────────────────

@router.post(
    "/accounts", response_model=AccountResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_account(
    body: AccountCreate,
    actor: ActorContext = Depends(finance_actor),
    db: AsyncSession = Depends(get_db),
):
    return await finance_service.create_account(db, actor, body.model_dump())


@router.get("/accounts", response_model=list[AccountResponse])
async def list_accounts(
    actor: ActorContext = Depends(finance_actor),
    db: AsyncSession = Depends(get_db),
):
    return await finance_service.list_accounts(db, actor)


@router.patch("/accounts/{account_id}", response_model=AccountResponse)
async def update_account(
    account_id: UUID,
    body: AccountUpdate,
    actor: ActorContext = Depends(finance_actor),
    db: AsyncSession = Depends(get_db),
):
    return await finance_service.update_account(
        db, actor, account_id, body.model_dump(exclude_unset=True),
    )


@router.delete("/accounts/{account_id}", response_model=DeleteResult)
async def delete_account(
    account_id: UUID,
    actor: ActorContext = Depends(finance_actor),
    db: AsyncSession = Depends(get_db),
):
    await finance_service.delete_account(db, actor, account_id)
    return {"id": account_id}


# ─── Transactions ────────────────────────────────────────────────

@router.post(
    "/transactions", response_model=TransactionResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_transaction(
    body: TransactionCreate,
    actor: ActorContext = Depends(finance_actor),
    db: AsyncSession = Depends(get_db),
):
    return await transaction_service.create_transaction(db, actor, body.model_dump())


@router.post(
    "/transactions/bulk", response_model=BulkCreateResult,
    status_code=status.HTTP_201_CREATED,
)
async def bulk_create_transactions(
    body: BulkTransactionCreate,
    actor: ActorContext = Depends(finance_actor),
    db: AsyncSession = Depends(get_db),
):
    created, balance = await transaction_service.bulk_create_transactions(
        db, actor, body.account_id,
        [item.model_dump() for item in body.transactions],
    )
    return {"created": created, "account_balance": balance}


@router.get("/transactions", response_model=list[TransactionResponse])
async def list_transactions(
    start: datetime | None = Query(None),
    end: datetime | None = Query(None),
    account_id: UUID | None = Query(None),
    actor: ActorContext = Depends(finance_actor),
    db: AsyncSession = Depends(get_db),
):
    return await transaction_service.list_transactions(
        db, actor, start=start, end=end, account_id=account_id,
    )


@router.patch("/transactions/{transaction_id}", response_model=TransactionResponse)
async def update_transaction(
    transaction_id: UUID,
    body: TransactionUpdate,
    actor: ActorContext = Depends(finance_actor),
    db: AsyncSession = Depends(get_db),
):
    return await transaction_service.update_transaction(
        db, actor, transaction_id, body.model_dump(exclude_unset=True),
    )


@router.delete("/transactions/{transaction_id}", response_model=DeleteResult)
async def delete_transaction(
    transaction_id: UUID,
    actor: ActorContext = Depends(finance_actor),
    db: AsyncSession = Depends(get_db),
):
    await transaction_service.delete_transaction(db, actor, transaction_id)
    return {"id": transaction_id}


# ─── Bills ───────────────────────────────────────────────────────

@router.post(
    "/bills", response_model=BillResponse, status_code=status.HTTP_201_CREATED,
)
async def create_bill(
    body: BillCreate,
    actor: ActorContext = Depends(finance_actor),
    db: AsyncSession = Depends(get_db),
):
    bill = await bill_service.create_bill(db, actor, body.model_dump())
    return await bill_service.get_bill_view(db, actor, bill)


@router.get("/bills", response_model=list[BillResponse])
async def list_bills(
    bill_type: BillType | None = Query(None, alias="type"),
    actor: ActorContext = Depends(finance_actor),
    db: AsyncSession = Depends(get_db),
):
    return await bill_service.list_bills(db, actor, bill_type)


@router.patch("/bills/{bill_id}", response_model=BillResponse)
async def update_bill(
    bill_id: UUID,
    body: BillUpdate,
    actor: ActorContext = Depends(finance_actor),
    db: AsyncSession = Depends(get_db),
):
    bill = await bill_service.update_bill(
        db, actor, bill_id, body.model_dump(exclude_unset=True),
    )
    return await bill_service.get_bill_view(db, actor, bill)


@router.delete("/bills/{bill_id}", response_model=DeleteResult)
async def delete_bill(
    bill_id: UUID,
    actor: ActorContext = Depends(finance_actor),
    db: AsyncSession = Depends(get_db),
):
    await bill_service.delete_bill(db, actor, bill_id)
    return {"id": bill_id}


# ─── Suppliers ───────────────────────────────────────────────────

@router.post(
    "/suppliers", response_model=SupplierResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_supplier(
    body: SupplierCreate,
    actor: ActorContext = Depends(finance_actor),
    db: AsyncSession = Depends(get_db),
):
    return await supplier_service.create_supplier(db, actor, body.model_dump())


@router.get("/suppliers", response_model=list[SupplierResponse])
async def list_suppliers(
    active_only: bool = Query(False),
    actor: ActorContext = Depends(finance_actor),
    db: AsyncSession = Depends(get_db),
):
    return await supplier_service.list_suppliers(db, actor, active_only=active_only)


@router.patch("/suppliers/{supplier_id}", response_model=SupplierResponse)
async def update_supplier(
    supplier_id: UUID,
    body: SupplierUpdate,
    actor: ActorContext = Depends(finance_actor),
    db: AsyncSession = Depends(get_db),
):
    return await supplier_service.update_supplier(
        db, actor, supplier_id, body.model_dump(exclude_unset=True),
    )


@router.delete("/suppliers/{supplier_id}", response_model=DeleteResult)
async def delete_supplier(
    supplier_id: UUID,
    actor: ActorContext = Depends(finance_actor),
    db: AsyncSession = Depends(get_db),
):
    await supplier_service.delete_supplier(db, actor, supplier_id)
    return {"id": supplier_id}


# ─── Invoices ────────────────────────────────────────────────────

@router.post(
    "/invoices", response_model=InvoiceResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_invoice(
    body: InvoiceCreate,
    actor: ActorContext = Depends(finance_actor),
    db: AsyncSession = Depends(get_db),
):
    return await finance_service.create_invoice(db, actor, body.quote_id, body.due_date)


@router.get("/invoices", response_model=list[InvoiceResponse])
async def list_invoices(
    actor: ActorContext = Depends(finance_actor),
    db: AsyncSession = Depends(get_db),
):
    return await finance_service.list_invoices(db, actor)


@router.post("/invoices/{invoice_id}/paid", response_model=InvoiceResponse)
async def mark_invoice_paid(
    invoice_id: UUID,
    actor: ActorContext = Depends(finance_actor),
    db: AsyncSession = Depends(get_db),
):
    return await finance_service.mark_invoice_paid(db, actor, invoice_id)


@router.post("/invoices/{invoice_id}/cancel", response_model=InvoiceResponse)
async def cancel_invoice(
    invoice_id: UUID,
    actor: ActorContext = Depends(finance_actor),
    db: AsyncSession = Depends(get_db),
):
    return await finance_service.cancel_invoice(db, actor, invoice_id)


# ─── Dashboard ───────────────────────────────────────────────────

@router.get("/metrics", response_model=FinanceMetricsResponse)
async def get_metrics(
    start: datetime | None = Query(None),
    end: datetime | None = Query(None),
    actor: ActorContext = Depends(finance_actor),
    db: AsyncSession = Depends(get_db),
):
    return await finance_service.get_finance_metrics(db, actor, start, end)


# ─── Reconciliation ──────────────────────────────────────────────

@router.post(
    "/reconciliations", response_model=ReconciliationResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_reconciliation(
    body: ReconciliationCreate,
    actor: ActorContext = Depends(finance_actor),
    db: AsyncSession = Depends(get_db),
):
    return await reconciliation_service.create_reconciliation(
        db, actor, body.file_name, body.ofx_content, body.account_id,
    )


@router.get("/reconciliations", response_model=list[ReconciliationResponse])
async def list_reconciliations(
    actor: ActorContext = Depends(finance_actor),
    db: AsyncSession = Depends(get_db),
):
    return await reconciliation_service.list_reconciliations(db, actor)


@router.get(
    "/reconciliations/{reconciliation_id}", response_model=ReconciliationDetail,
)
async def get_reconciliation(
    reconciliation_id: UUID,
    actor: ActorContext = Depends(finance_actor),
    db: AsyncSession = Depends(get_db),
):
    return await reconciliation_service.get_reconciliation(db, actor, reconciliation_id)


@router.patch(
    "/reconciliations/{reconciliation_id}", response_model=ReconciliationResponse,
)
async def rename_reconciliation(
    reconciliation_id: UUID,
    body: ReconciliationRename,
    actor: ActorContext = Depends(finance_actor),
    db: AsyncSession = Depends(get_db),
):
    return await reconciliation_service.rename_reconciliation(
        db, actor, reconciliation_id, body.file_name,
    )


@router.delete("/reconciliations/{reconciliation_id}", response_model=DeleteResult)
async def delete_reconciliation(
    reconciliation_id: UUID,
    actor: ActorContext = Depends(finance_actor),
    db: AsyncSession = Depends(get_db),
):
    await reconciliation_service.delete_reconciliation(db, actor, reconciliation_id)
    return {"id": reconciliation_id}


@router.get(
    "/reconciliations/{reconciliation_id}/comparison",
    response_model=ReconciliationComparison,
)
async def compare_reconciliation(
    reconciliation_id: UUID,
    actor: ActorContext = Depends(finance_actor),
    db: AsyncSession = Depends(get_db),
):
    return await reconciliation_service.compare_reconciliation(
        db, actor, reconciliation_id,
    )


@router.post(
    "/reconciliations/{reconciliation_id}/import",
    response_model=ReconciliationImportResult,
)
async def import_unmatched(
    reconciliation_id: UUID,
    actor: ActorContext = Depends(finance_actor),
    db: AsyncSession = Depends(get_db),
):
    return await reconciliation_service.import_unmatched(db, actor, reconciliation_id)
