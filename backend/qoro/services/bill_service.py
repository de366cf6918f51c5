"""Bill Service — payables and receivables and their settlement into the ledger.

Invariants:
    - A bill has at most one settlement transaction (transactions.bill_id)
    - Moving into `paid` requires an account and creates the settlement;
      moving out of `paid` removes it, so the balance never counts a bill twice
    - Deleting a paid bill deletes its settlement (balance reverted)
    - Pending bills past their due date are reported as overdue

Design Decisions:
    - open_bill / settle_bill only flush: quotes open and settle bills inside
      their own unit of work
"""

import logging
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from qoro.core.domain_types import BillStatus, BillType, EntityType, PaymentMethod
from qoro.core.errors import BusinessRuleError, ResourceNotFoundError
from qoro.core.finance_rules import (
    build_settlement, effective_bill_status, is_settlement_transition,
)
from qoro.core.time_utils import ensure_utc, utc_now
from qoro.models.bill import Bill
from qoro.models.customer import Customer
from qoro.models.supplier import Supplier
from qoro.models.transaction import Transaction
from qoro.services.org_context import ActorContext, get_owned, names_by_id
from qoro.services.transaction_service import (
    get_account, record_transaction, remove_transaction,
)

logger = logging.getLogger(__name__)

NOT_FOUND = "Conta não encontrada ou acesso negado."
ACCOUNT_REQUIRED = (
    "Uma conta financeira deve ser associada para marcar a pendência como paga."
)

_ENTITY_MODELS = {
    EntityType.CUSTOMER.value: Customer,
    EntityType.SUPPLIER.value: Supplier,
}


async def _check_entity(
    db: AsyncSession, organization_id: UUID, entity_type: str | None,
    entity_id: UUID | None,
) -> None:
    if entity_type is None or entity_id is None:
        return
    model = _ENTITY_MODELS[EntityType(entity_type).value]
    entity = await db.get(model, entity_id)
    if entity is None or entity.organization_id != organization_id:
        raise ResourceNotFoundError(model.__name__, str(entity_id))


async def settlement_of(db: AsyncSession, bill_id: UUID) -> Transaction | None:
    return await db.scalar(
        select(Transaction).where(Transaction.bill_id == bill_id).limit(1),
    )


async def open_bill(
    db: AsyncSession, organization_id: UUID, fields: dict,
) -> Bill:
    fields.setdefault("payment_method", PaymentMethod.PIX.value)
    bill = Bill(organization_id=organization_id, **fields)
    db.add(bill)
    await db.flush()
    return bill


async def settle_bill(
    db: AsyncSession, bill: Bill, account_id: UUID | None,
    created_by: UUID | None = None,
) -> Transaction:
    """Mark bill paid into account_id and record its settlement (once)."""
    account_id = account_id or bill.account_id
    if account_id is None:
        raise BusinessRuleError(ACCOUNT_REQUIRED, "ACCOUNT_REQUIRED")
    await get_account(db, bill.organization_id, account_id)
    bill.account_id = account_id
    bill.status = BillStatus.PAID.value

    existing = await settlement_of(db, bill.id)
    if existing is not None:
        return existing
    tx = await record_transaction(
        db, bill.organization_id,
        build_settlement(
            bill_id=bill.id,
            description=bill.description,
            amount=bill.amount,
            bill_type=bill.type,
            account_id=account_id,
            paid_at=utc_now(),
            category=bill.category,
            payment_method=bill.payment_method,
            entity_type=bill.entity_type,
            entity_id=bill.entity_id,
            tags=bill.tags,
        ),
        created_by,
    )
    logger.info(
        "Bill settled",
        extra={"organization_id": str(bill.organization_id), "user_id": str(created_by)},
    )
    return tx


async def _unsettle(db: AsyncSession, bill: Bill) -> None:
    tx = await settlement_of(db, bill.id)
    if tx is not None:
        await remove_transaction(db, tx)


async def create_bill(
    db: AsyncSession, actor: ActorContext, data: dict,
) -> Bill:
    organization_id = actor.require_organization()
    await _check_entity(
        db, organization_id, data.get("entity_type"), data.get("entity_id"),
    )
    status = data.get("status", BillStatus.PENDING)
    if status == BillStatus.PAID and data.get("account_id") is None:
        raise BusinessRuleError(ACCOUNT_REQUIRED, "ACCOUNT_REQUIRED")
    if data.get("account_id") is not None:
        await get_account(db, organization_id, data["account_id"])

    bill = await open_bill(db, organization_id, {**data, "status": BillStatus.PENDING.value})
    if status == BillStatus.PAID:
        await settle_bill(db, bill, data["account_id"], actor.user_id)
    else:
        bill.status = BillStatus(status).value
    await db.commit()
    await db.refresh(bill)
    logger.info("Bill created", extra=actor.log_extra())
    return bill


def _bill_view(bill: Bill, entity_names: dict, now) -> dict:
    return {
        **bill.to_dict(),
        "status": effective_bill_status(bill.status, ensure_utc(bill.due_date), now),
        "entity_name": entity_names.get(bill.entity_id),
    }


async def list_bills(
    db: AsyncSession, actor: ActorContext, bill_type: BillType | None = None,
) -> list[dict]:
    """Bills by due date, with counterparty names and overdue status."""
    if not actor.has_organization:
        return []
    query = select(Bill).where(Bill.organization_id == actor.organization_id)
    if bill_type is not None:
        query = query.where(Bill.type == bill_type.value)
    result = await db.execute(query.order_by(Bill.due_date))
    bills = result.scalars().all()

    names = {}
    for entity_type, model in _ENTITY_MODELS.items():
        names.update(await names_by_id(
            db, model,
            (b.entity_id for b in bills if b.entity_type == entity_type),
            actor.organization_id,
        ))
    now = utc_now()
    return [_bill_view(b, names, now) for b in bills]


async def get_bill_view(db: AsyncSession, actor: ActorContext, bill: Bill) -> dict:
    names = {}
    if bill.entity_type in _ENTITY_MODELS and bill.entity_id is not None:
        names = await names_by_id(
            db, _ENTITY_MODELS[bill.entity_type], [bill.entity_id],
            actor.organization_id,
        )
    return _bill_view(bill, names, utc_now())


async def update_bill(
    db: AsyncSession, actor: ActorContext, bill_id: UUID, changes: dict,
) -> Bill:
    bill = await get_owned(db, Bill, bill_id, actor, NOT_FOUND)
    old_status = bill.status
    new_status = changes.pop("status", None) or old_status

    entity_type = changes.get("entity_type", bill.entity_type)
    entity_id = changes.get("entity_id", bill.entity_id)
    if (entity_type is None) != (entity_id is None):
        raise BusinessRuleError(
            "Tipo e identificador da entidade devem ser informados juntos.",
        )
    await _check_entity(db, bill.organization_id, entity_type, entity_id)
    if changes.get("account_id") is not None:
        await get_account(db, bill.organization_id, changes["account_id"])

    for key, value in changes.items():
        setattr(bill, key, value)

    if is_settlement_transition(old_status, new_status):
        await settle_bill(db, bill, bill.account_id, actor.user_id)
    elif old_status == BillStatus.PAID and new_status != BillStatus.PAID:
        await _unsettle(db, bill)
        bill.status = new_status
    else:
        bill.status = new_status
    await db.commit()
    await db.refresh(bill)
    return bill


async def delete_bill(
    db: AsyncSession, actor: ActorContext, bill_id: UUID,
) -> None:
    bill = await get_owned(db, Bill, bill_id, actor, NOT_FOUND)
    if bill.status == BillStatus.PAID:
        await _unsettle(db, bill)
    await db.delete(bill)
    await db.commit()
    logger.info("Bill deleted", extra=actor.log_extra())
