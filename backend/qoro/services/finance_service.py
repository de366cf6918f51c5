"""Finance Service — accounts, period dashboard and invoices.

Invariants:
    - An account's balance is set once at creation; afterwards only the ledger moves it
    - Accounts with transactions cannot be deleted
    - Dashboard period defaults to the current calendar month (UTC)
    - One invoice per won quote; an invoice issued for an already-settled quote is paid
"""

import logging
from datetime import datetime
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from qoro.core.domain_types import BillStatus, InvoiceStatus, QuoteStatus
from qoro.core.errors import BusinessRuleError, ConflictError
from qoro.core.finance_rules import summarize_period
from qoro.core.sales_pipeline import invoice_number
from qoro.core.time_utils import ensure_utc, month_range, utc_now
from qoro.models.account import Account
from qoro.models.bill import Bill
from qoro.models.customer import Customer
from qoro.models.invoice import Invoice
from qoro.models.quote import Quote
from qoro.models.transaction import Transaction
from qoro.services.org_context import ActorContext, get_owned, names_by_id

logger = logging.getLogger(__name__)

ACCOUNT_NOT_FOUND = "Conta financeira não encontrada ou acesso negado."
INVOICE_NOT_FOUND = "Fatura não encontrada ou acesso negado."
QUOTE_NOT_FOUND = "Orçamento não encontrado ou acesso negado."


# ─── Accounts ────────────────────────────────────────────────────

async def create_account(
    db: AsyncSession, actor: ActorContext, data: dict,
) -> Account:
    organization_id = actor.require_organization()
    account = Account(
        organization_id=organization_id,
        **{**data, "balance": round(data.get("balance", 0.0), 2)},
    )
    db.add(account)
    await db.commit()
    await db.refresh(account)
    logger.info("Account created", extra=actor.log_extra())
    return account


async def list_accounts(db: AsyncSession, actor: ActorContext) -> list[Account]:
    if not actor.has_organization:
        return []
    result = await db.execute(
        select(Account)
        .where(Account.organization_id == actor.organization_id)
        .order_by(Account.name),
    )
    return list(result.scalars().all())


async def update_account(
    db: AsyncSession, actor: ActorContext, account_id: UUID, changes: dict,
) -> Account:
    account = await get_owned(db, Account, account_id, actor, ACCOUNT_NOT_FOUND)
    for key, value in changes.items():
        setattr(account, key, value)
    await db.commit()
    await db.refresh(account)
    return account


async def delete_account(
    db: AsyncSession, actor: ActorContext, account_id: UUID,
) -> None:
    account = await get_owned(db, Account, account_id, actor, ACCOUNT_NOT_FOUND)
    in_use = await db.scalar(
        select(func.count()).select_from(Transaction)
        .where(Transaction.account_id == account.id),
    )
    if in_use:
        raise ConflictError(
            "Não é possível excluir uma conta com transações vinculadas.",
            "ACCOUNT_IN_USE",
        )
    await db.delete(account)
    await db.commit()


# ─── Dashboard ───────────────────────────────────────────────────

async def get_finance_metrics(
    db: AsyncSession,
    actor: ActorContext,
    start: datetime | None = None,
    end: datetime | None = None,
) -> dict:
    """Total balance plus income/expense/net profit for [start, end]."""
    default_start, default_end = month_range(utc_now())
    start = ensure_utc(start) or default_start
    end = ensure_utc(end) or default_end
    if not actor.has_organization:
        return {
            "total_balance": 0.0, "total_income": 0.0, "total_expense": 0.0,
            "net_profit": 0.0, "period_start": start, "period_end": end,
        }

    total_balance = await db.scalar(
        select(func.coalesce(func.sum(Account.balance), 0.0))
        .where(Account.organization_id == actor.organization_id),
    )
    result = await db.execute(
        select(Transaction.type, Transaction.amount)
        .where(Transaction.organization_id == actor.organization_id)
        .where(Transaction.date >= start)
        .where(Transaction.date <= end),
    )
    summary = summarize_period((row.type, row.amount) for row in result)
    return {
        "total_balance": round(total_balance or 0.0, 2),
        "total_income": summary.income,
        "total_expense": summary.expense,
        "net_profit": summary.net_profit,
        "period_start": start,
        "period_end": end,
    }


# ─── Invoices ────────────────────────────────────────────────────

def _invoice_view(invoice: Invoice, customers: dict, now: datetime) -> dict:
    status = invoice.payment_status
    if status == InvoiceStatus.PENDING.value and ensure_utc(invoice.due_date) < now:
        status = InvoiceStatus.OVERDUE.value
    return {
        **invoice.to_dict(),
        "payment_status": status,
        "customer_name": customers.get(invoice.customer_id),
    }


async def create_invoice(
    db: AsyncSession, actor: ActorContext, quote_id: UUID,
    due_date: datetime | None = None,
) -> dict:
    organization_id = actor.require_organization()
    quote = await get_owned(db, Quote, quote_id, actor, QUOTE_NOT_FOUND)
    if quote.status != QuoteStatus.WON.value:
        raise BusinessRuleError(
            "Apenas orçamentos ganhos podem ser faturados.", "QUOTE_NOT_WON",
        )
    existing = await db.scalar(select(Invoice).where(Invoice.quote_id == quote.id))
    if existing is not None:
        raise ConflictError(
            "Este orçamento já possui uma fatura.", "INVOICE_EXISTS",
        )

    settled = await db.scalar(
        select(func.count()).select_from(Bill)
        .where(Bill.quote_id == quote.id)
        .where(Bill.status == BillStatus.PAID.value),
    )
    now = utc_now()
    invoice = Invoice(
        organization_id=organization_id,
        number=invoice_number(now),
        quote_id=quote.id,
        customer_id=quote.customer_id,
        items=list(quote.items),
        total=quote.total,
        due_date=due_date or quote.valid_until,
        payment_status=(
            InvoiceStatus.PAID.value if settled else InvoiceStatus.PENDING.value
        ),
        paid_at=now if settled else None,
    )
    db.add(invoice)
    await db.commit()
    await db.refresh(invoice)
    logger.info(f"Invoice {invoice.number} issued", extra=actor.log_extra())
    customers = await names_by_id(db, Customer, [invoice.customer_id], organization_id)
    return _invoice_view(invoice, customers, now)


async def list_invoices(db: AsyncSession, actor: ActorContext) -> list[dict]:
    if not actor.has_organization:
        return []
    result = await db.execute(
        select(Invoice)
        .where(Invoice.organization_id == actor.organization_id)
        .order_by(Invoice.created_at.desc()),
    )
    invoices = result.scalars().all()
    customers = await names_by_id(
        db, Customer, (i.customer_id for i in invoices), actor.organization_id,
    )
    now = utc_now()
    return [_invoice_view(i, customers, now) for i in invoices]


async def _set_invoice_status(
    db: AsyncSession, actor: ActorContext, invoice_id: UUID, status: InvoiceStatus,
) -> dict:
    invoice = await get_owned(db, Invoice, invoice_id, actor, INVOICE_NOT_FOUND)
    if invoice.payment_status == InvoiceStatus.CANCELLED.value:
        raise BusinessRuleError("Esta fatura foi cancelada.", "INVOICE_CANCELLED")
    invoice.payment_status = status.value
    invoice.paid_at = utc_now() if status is InvoiceStatus.PAID else None
    await db.commit()
    await db.refresh(invoice)
    customers = await names_by_id(
        db, Customer, [invoice.customer_id], actor.organization_id,
    )
    return _invoice_view(invoice, customers, utc_now())


async def mark_invoice_paid(db, actor: ActorContext, invoice_id: UUID) -> dict:
    return await _set_invoice_status(db, actor, invoice_id, InvoiceStatus.PAID)


async def cancel_invoice(db, actor: ActorContext, invoice_id: UUID) -> dict:
    return await _set_invoice_status(db, actor, invoice_id, InvoiceStatus.CANCELLED)
