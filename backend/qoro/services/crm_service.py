"""CRM Service — customers, catalogue, quotes and the sales funnel.

Invariants:
    - Free plan: at most 15 customers per organization
    - Products and services cannot be created on the free plan; quotes need performance
    - A quote opens at most one receivable bill (bills.quote_id), on its first move to `sent`
    - Winning a quote settles its bill (or creates a paid one), then marks
      customer and quote as won, all in one commit
    - Customers referenced by quotes, invoices or transactions cannot be deleted

Design Decisions:
    - Quote totals always recomputed from items (core/sales_pipeline.py)
    - won/lost only through their own operations: update_quote rejects them so
      settlement cannot be skipped
"""

import logging
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from qoro.core.domain_types import (
    BillStatus, BillType, CustomerStatus, EntityType, Feature, LimitedResource,
    QuoteStatus,
)
from qoro.core.enforce_plan import check_plan_feature, check_plan_limit
from qoro.core.enforce_roles import check_admin
from qoro.core.errors import BusinessRuleError, ConflictError, ResourceNotFoundError
from qoro.core.sales_pipeline import (
    active_lead_count, funnel_counts, is_sent_transition, price_items,
    quote_number, quote_totals, win_rate,
)
from qoro.core.time_utils import utc_now
from qoro.models.bill import Bill
from qoro.models.customer import Customer
from qoro.models.invoice import Invoice
from qoro.models.product import Product
from qoro.models.quote import Quote
from qoro.models.service_offering import ServiceOffering
from qoro.models.transaction import Transaction
from qoro.services import bill_service
from qoro.services.org_context import ActorContext, get_owned, names_by_id
from qoro.services.transaction_service import get_account

logger = logging.getLogger(__name__)

CUSTOMER_NOT_FOUND = "Cliente não encontrado ou acesso negado."
QUOTE_NOT_FOUND = "Orçamento não encontrado ou acesso negado."
PRODUCT_NOT_FOUND = "Produto não encontrado ou acesso negado."
SERVICE_NOT_FOUND = "Serviço não encontrado ou acesso negado."


async def _count(db: AsyncSession, model, *conditions) -> int:
    return await db.scalar(
        select(func.count()).select_from(model).where(*conditions),
    ) or 0


# ─── Customers ───────────────────────────────────────────────────

async def create_customer(
    db: AsyncSession, actor: ActorContext, data: dict,
) -> Customer:
    organization_id = actor.require_organization()
    check_plan_limit(
        actor.plan_id, LimitedResource.CUSTOMERS,
        await _count(db, Customer, Customer.organization_id == organization_id),
    )
    customer = Customer(organization_id=organization_id, **data)
    db.add(customer)
    await db.commit()
    await db.refresh(customer)
    logger.info("Customer created", extra=actor.log_extra())
    return customer


async def list_customers(db: AsyncSession, actor: ActorContext) -> list[Customer]:
    if not actor.has_organization:
        return []
    result = await db.execute(
        select(Customer)
        .where(Customer.organization_id == actor.organization_id)
        .order_by(Customer.created_at.desc()),
    )
    return list(result.scalars().all())


async def get_customer(
    db: AsyncSession, actor: ActorContext, customer_id: UUID,
) -> Customer:
    return await get_owned(db, Customer, customer_id, actor, CUSTOMER_NOT_FOUND)


async def update_customer(
    db: AsyncSession, actor: ActorContext, customer_id: UUID, changes: dict,
) -> Customer:
    customer = await get_customer(db, actor, customer_id)
    for key, value in changes.items():
        setattr(customer, key, value)
    await db.commit()
    await db.refresh(customer)
    return customer


async def update_customer_status(
    db: AsyncSession, actor: ActorContext, customer_id: UUID,
    status: CustomerStatus,
) -> Customer:
    """Move a customer to another funnel stage (kanban drag)."""
    customer = await get_customer(db, actor, customer_id)
    customer.status = status.value
    await db.commit()
    await db.refresh(customer)
    return customer


async def delete_customer(
    db: AsyncSession, actor: ActorContext, customer_id: UUID,
) -> None:
    check_admin(actor.role, "Apenas administradores podem excluir clientes.")
    customer = await get_customer(db, actor, customer_id)
    references = (
        await _count(db, Quote, Quote.customer_id == customer.id)
        + await _count(db, Invoice, Invoice.customer_id == customer.id)
        + await _count(db, Transaction, Transaction.customer_id == customer.id)
    )
    if references:
        raise ConflictError(
            "Não é possível excluir um cliente com orçamentos ou transações vinculadas.",
            "CUSTOMER_IN_USE",
        )
    await db.delete(customer)
    await db.commit()
    logger.info("Customer deleted", extra=actor.log_extra())


async def get_crm_metrics(db: AsyncSession, actor: ActorContext) -> dict:
    if not actor.has_organization:
        counts = funnel_counts([])
    else:
        result = await db.execute(
            select(Customer.status)
            .where(Customer.organization_id == actor.organization_id),
        )
        counts = funnel_counts(result.scalars().all())
    return {
        "total_customers": sum(counts.values()),
        "active_leads": active_lead_count(counts),
        "won_customers": counts[CustomerStatus.WON.value],
        "win_rate": win_rate(counts),
        "funnel": counts,
    }


# ─── Catalogue ───────────────────────────────────────────────────

async def _create_catalogue_item(
    db: AsyncSession, actor: ActorContext, model, feature: Feature, data: dict,
):
    organization_id = actor.require_organization()
    check_plan_feature(actor.plan_id, feature)
    item = model(organization_id=organization_id, **data)
    db.add(item)
    await db.commit()
    await db.refresh(item)
    return item


async def _list_catalogue(db: AsyncSession, actor: ActorContext, model) -> list:
    if not actor.has_organization:
        return []
    result = await db.execute(
        select(model)
        .where(model.organization_id == actor.organization_id)
        .order_by(model.name),
    )
    return list(result.scalars().all())


async def _update_catalogue_item(
    db: AsyncSession, actor: ActorContext, model, item_id: UUID,
    changes: dict, message: str,
):
    item = await get_owned(db, model, item_id, actor, message)
    for key, value in changes.items():
        setattr(item, key, value)
    await db.commit()
    await db.refresh(item)
    return item


async def _delete_catalogue_item(
    db: AsyncSession, actor: ActorContext, model, item_id: UUID, message: str,
) -> None:
    item = await get_owned(db, model, item_id, actor, message)
    await db.delete(item)
    await db.commit()


async def create_product(db, actor, data: dict) -> Product:
    return await _create_catalogue_item(db, actor, Product, Feature.PRODUCTS, data)


async def list_products(db, actor) -> list[Product]:
    return await _list_catalogue(db, actor, Product)


async def update_product(db, actor, product_id: UUID, changes: dict) -> Product:
    return await _update_catalogue_item(
        db, actor, Product, product_id, changes, PRODUCT_NOT_FOUND,
    )


async def delete_product(db, actor, product_id: UUID) -> None:
    await _delete_catalogue_item(db, actor, Product, product_id, PRODUCT_NOT_FOUND)


async def create_service(db, actor, data: dict) -> ServiceOffering:
    return await _create_catalogue_item(
        db, actor, ServiceOffering, Feature.SERVICES, data,
    )


async def list_services(db, actor) -> list[ServiceOffering]:
    return await _list_catalogue(db, actor, ServiceOffering)


async def update_service(db, actor, service_id: UUID, changes: dict) -> ServiceOffering:
    return await _update_catalogue_item(
        db, actor, ServiceOffering, service_id, changes, SERVICE_NOT_FOUND,
    )


async def delete_service(db, actor, service_id: UUID) -> None:
    await _delete_catalogue_item(
        db, actor, ServiceOffering, service_id, SERVICE_NOT_FOUND,
    )


# ─── Quotes ──────────────────────────────────────────────────────

def _jsonable_items(items: list[dict]) -> list[dict]:
    """Quote items are stored as JSON: ids and enums as plain strings."""
    stored = []
    for item in items:
        line = {
            k: (str(v) if isinstance(v, UUID) else v) for k, v in item.items()
        }
        for key in ("type", "pricing_model"):
            if line.get(key) is not None:
                line[key] = getattr(line[key], "value", line[key])
        stored.append(line)
    return stored


async def _linked_bill(db: AsyncSession, quote: Quote) -> Bill | None:
    return await db.scalar(
        select(Bill).where(Bill.quote_id == quote.id).order_by(Bill.created_at).limit(1),
    )


async def _open_quote_bill(db: AsyncSession, quote: Quote) -> Bill | None:
    """Pending receivable for a sent quote; skipped when it would be zero."""
    if await _linked_bill(db, quote) is not None or quote.total <= 0:
        return None
    return await bill_service.open_bill(db, quote.organization_id, {
        "description": f"A receber - Orçamento #{quote.number}",
        "amount": quote.total,
        "type": BillType.RECEIVABLE.value,
        "due_date": quote.valid_until,
        "status": BillStatus.PENDING.value,
        "entity_type": EntityType.CUSTOMER.value,
        "entity_id": quote.customer_id,
        "quote_id": quote.id,
        "account_id": quote.account_id,
        "category": "Vendas",
    })


async def _quote_view(db: AsyncSession, actor: ActorContext, quote: Quote) -> dict:
    names = await names_by_id(
        db, Customer, [quote.customer_id], actor.organization_id,
    )
    return {
        **quote.to_dict(),
        "customer_name": names.get(quote.customer_id),
        "organization_name": actor.organization_name,
    }


async def create_quote(
    db: AsyncSession, actor: ActorContext, data: dict,
) -> dict:
    organization_id = actor.require_organization()
    check_plan_feature(actor.plan_id, Feature.QUOTES)
    customer = await get_customer(db, actor, data["customer_id"])
    if data.get("account_id") is not None:
        await get_account(db, organization_id, data["account_id"])

    items = price_items(_jsonable_items(data["items"]))
    subtotal, total = quote_totals(items, data.get("discount", 0.0))
    status = QuoteStatus(data.get("status", QuoteStatus.DRAFT))
    quote = Quote(
        organization_id=organization_id,
        number=quote_number(utc_now()),
        customer_id=customer.id,
        account_id=data.get("account_id"),
        items=items,
        subtotal=subtotal,
        discount=data.get("discount", 0.0),
        total=total,
        valid_until=data["valid_until"],
        notes=data.get("notes"),
        status=status.value,
    )
    db.add(quote)
    await db.flush()

    if status is QuoteStatus.SENT:
        customer.status = CustomerStatus.PROPOSAL.value
        await _open_quote_bill(db, quote)
    await db.commit()
    await db.refresh(quote)
    logger.info(f"Quote {quote.number} created", extra=actor.log_extra())
    return await _quote_view(db, actor, quote)


async def list_quotes(db: AsyncSession, actor: ActorContext) -> list[dict]:
    if not actor.has_organization:
        return []
    result = await db.execute(
        select(Quote)
        .where(Quote.organization_id == actor.organization_id)
        .order_by(Quote.created_at.desc()),
    )
    quotes = result.scalars().all()
    names = await names_by_id(
        db, Customer, (q.customer_id for q in quotes), actor.organization_id,
    )
    return [
        {
            **q.to_dict(),
            "customer_name": names.get(q.customer_id),
            "organization_name": actor.organization_name,
        }
        for q in quotes
    ]


async def get_quote(db: AsyncSession, actor: ActorContext, quote_id: UUID) -> dict:
    quote = await get_owned(db, Quote, quote_id, actor, QUOTE_NOT_FOUND)
    return await _quote_view(db, actor, quote)


async def update_quote(
    db: AsyncSession, actor: ActorContext, quote_id: UUID, changes: dict,
) -> dict:
    quote = await get_owned(db, Quote, quote_id, actor, QUOTE_NOT_FOUND)
    if quote.status in (QuoteStatus.WON.value, QuoteStatus.LOST.value):
        raise BusinessRuleError(
            "Orçamentos ganhos ou perdidos não podem ser alterados.", "QUOTE_CLOSED",
        )
    new_status = changes.pop("status", None)
    if new_status in (QuoteStatus.WON, QuoteStatus.LOST):
        raise BusinessRuleError(
            "Use as ações de ganho ou perda para encerrar o orçamento.",
            "QUOTE_CLOSE_REQUIRES_ACTION",
        )
    if changes.get("customer_id") is not None:
        await get_customer(db, actor, changes["customer_id"])
    if changes.get("account_id") is not None:
        await get_account(db, quote.organization_id, changes["account_id"])

    if "items" in changes:
        changes["items"] = price_items(_jsonable_items(changes["items"]))
    for key, value in changes.items():
        setattr(quote, key, value)
    quote.subtotal, quote.total = quote_totals(quote.items, quote.discount)

    bill = await _linked_bill(db, quote)
    if bill is not None and bill.status != BillStatus.PAID.value:
        bill.amount = quote.total
        bill.due_date = quote.valid_until

    if new_status is not None:
        old_status = quote.status
        quote.status = QuoteStatus(new_status).value
        if is_sent_transition(old_status, quote.status):
            customer = await db.get(Customer, quote.customer_id)
            customer.status = CustomerStatus.PROPOSAL.value
            await _open_quote_bill(db, quote)
    await db.commit()
    await db.refresh(quote)
    return await _quote_view(db, actor, quote)


async def delete_quote(
    db: AsyncSession, actor: ActorContext, quote_id: UUID,
) -> None:
    quote = await get_owned(db, Quote, quote_id, actor, QUOTE_NOT_FOUND)
    await db.delete(quote)
    await db.commit()
    logger.info(f"Quote {quote.number} deleted", extra=actor.log_extra())


async def mark_quote_as_won(
    db: AsyncSession, actor: ActorContext, quote_id: UUID,
    account_id: UUID | None = None,
) -> dict:
    """Settle the quote's receivable into account_id and close the deal."""
    quote = await get_owned(db, Quote, quote_id, actor, QUOTE_NOT_FOUND)
    if quote.status == QuoteStatus.WON.value:
        raise BusinessRuleError(
            "Este orçamento já foi marcado como ganho.", "QUOTE_ALREADY_WON",
        )
    account_id = account_id or quote.account_id

    bill = await _linked_bill(db, quote)
    if bill is None:
        if account_id is None:
            raise BusinessRuleError(bill_service.ACCOUNT_REQUIRED, "ACCOUNT_REQUIRED")
        bill = await bill_service.open_bill(db, quote.organization_id, {
            "description": f"Recebimento referente ao orçamento #{quote.number}",
            "amount": quote.total,
            "type": BillType.RECEIVABLE.value,
            "due_date": utc_now(),
            "status": BillStatus.PENDING.value,
            "entity_type": EntityType.CUSTOMER.value,
            "entity_id": quote.customer_id,
            "quote_id": quote.id,
            "category": "Vendas",
        })
    if bill.amount > 0 and bill.status != BillStatus.PAID.value:
        await bill_service.settle_bill(db, bill, account_id, actor.user_id)
    else:
        bill.status = BillStatus.PAID.value

    customer = await db.get(Customer, quote.customer_id)
    if customer is None:
        raise ResourceNotFoundError("Customer", str(quote.customer_id), CUSTOMER_NOT_FOUND)
    customer.status = CustomerStatus.WON.value
    quote.status = QuoteStatus.WON.value
    await db.commit()
    logger.info(f"Quote {quote.number} won", extra=actor.log_extra())
    return {"quote_id": quote.id, "bill_id": bill.id}


async def mark_quote_as_lost(
    db: AsyncSession, actor: ActorContext, quote_id: UUID,
) -> dict:
    quote = await get_owned(db, Quote, quote_id, actor, QUOTE_NOT_FOUND)
    if quote.status == QuoteStatus.WON.value:
        raise BusinessRuleError(
            "Orçamentos ganhos não podem ser marcados como perdidos.", "QUOTE_ALREADY_WON",
        )
    quote.status = QuoteStatus.LOST.value
    customer = await db.get(Customer, quote.customer_id)
    if customer is not None:
        customer.status = CustomerStatus.LOST.value
    await db.commit()
    await db.refresh(quote)
    return await _quote_view(db, actor, quote)
