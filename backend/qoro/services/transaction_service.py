"""Transaction Service — the ledger: every balance change goes through here.

Invariants:
    - Stored transactions are always `paid`
    - account.balance moves by the signed amount on create, is reverted on delete,
      and is reverted-then-reapplied on update (also across an account change)
    - Referenced account and customer must belong to the actor's organization
    - Free plan: at most 10 transactions per organization (bulk counts every row)

Design Decisions:
    - record_transaction / remove_transaction only flush: bill settlement and
      reconciliation imports reuse them inside their own unit of work
"""

import logging
from datetime import datetime
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from qoro.core.domain_types import LimitedResource, TransactionStatus
from qoro.core.enforce_plan import check_plan_limit
from qoro.core.errors import ResourceNotFoundError
from qoro.core.finance_rules import apply_to_balance, net_effect, revert_from_balance
from qoro.models.account import Account
from qoro.models.customer import Customer
from qoro.models.transaction import Transaction
from qoro.services.org_context import ActorContext, get_owned, names_by_id

logger = logging.getLogger(__name__)

NOT_FOUND = "Transação não encontrada ou acesso negado."
ACCOUNT_NOT_FOUND = "Conta financeira não encontrada ou acesso negado."
CUSTOMER_NOT_FOUND = "Cliente não encontrado ou acesso negado."


async def get_account(
    db: AsyncSession, organization_id: UUID, account_id: UUID,
) -> Account:
    account = await db.get(Account, account_id)
    if account is None or account.organization_id != organization_id:
        raise ResourceNotFoundError("Account", str(account_id), ACCOUNT_NOT_FOUND)
    return account


async def _check_customer(
    db: AsyncSession, organization_id: UUID, customer_id: UUID | None,
) -> None:
    if customer_id is None:
        return
    customer = await db.get(Customer, customer_id)
    if customer is None or customer.organization_id != organization_id:
        raise ResourceNotFoundError("Customer", str(customer_id), CUSTOMER_NOT_FOUND)


async def count_transactions(db: AsyncSession, organization_id: UUID) -> int:
    return await db.scalar(
        select(func.count()).select_from(Transaction)
        .where(Transaction.organization_id == organization_id),
    ) or 0


async def record_transaction(
    db: AsyncSession, organization_id: UUID, fields: dict,
    created_by: UUID | None = None,
) -> Transaction:
    """Insert a paid transaction and apply it to its account balance."""
    account = None
    if fields.get("account_id") is not None:
        account = await get_account(db, organization_id, fields["account_id"])
    await _check_customer(db, organization_id, fields.get("customer_id"))

    tx = Transaction(
        organization_id=organization_id,
        created_by=created_by,
        **{**fields, "status": TransactionStatus.PAID.value},
    )
    db.add(tx)
    if account is not None:
        account.balance = apply_to_balance(account.balance, tx.type, tx.amount)
    await db.flush()
    return tx


async def remove_transaction(db: AsyncSession, tx: Transaction) -> None:
    """Delete a transaction and revert its effect on the account balance."""
    if tx.account_id is not None:
        account = await db.get(Account, tx.account_id)
        if account is not None:
            account.balance = revert_from_balance(account.balance, tx.type, tx.amount)
    await db.delete(tx)
    await db.flush()


async def create_transaction(
    db: AsyncSession, actor: ActorContext, data: dict,
) -> Transaction:
    organization_id = actor.require_organization()
    check_plan_limit(
        actor.plan_id, LimitedResource.TRANSACTIONS,
        await count_transactions(db, organization_id),
    )
    tx = await record_transaction(db, organization_id, data, actor.user_id)
    await db.commit()
    await db.refresh(tx)
    logger.info("Transaction created", extra=actor.log_extra())
    return tx


async def update_transaction(
    db: AsyncSession, actor: ActorContext, transaction_id: UUID, changes: dict,
) -> Transaction:
    tx = await get_owned(db, Transaction, transaction_id, actor, NOT_FOUND)
    organization_id = tx.organization_id

    new_account_id = changes.get("account_id", tx.account_id)
    new_account = None
    if new_account_id is not None:
        new_account = await get_account(db, organization_id, new_account_id)
    if "customer_id" in changes:
        await _check_customer(db, organization_id, changes["customer_id"])

    if tx.account_id is not None:
        old_account = await db.get(Account, tx.account_id)
        if old_account is not None:
            old_account.balance = revert_from_balance(
                old_account.balance, tx.type, tx.amount,
            )

    for key, value in changes.items():
        setattr(tx, key, value)

    if new_account is not None:
        new_account.balance = apply_to_balance(new_account.balance, tx.type, tx.amount)
    await db.commit()
    await db.refresh(tx)
    return tx


async def delete_transaction(
    db: AsyncSession, actor: ActorContext, transaction_id: UUID,
) -> None:
    tx = await get_owned(db, Transaction, transaction_id, actor, NOT_FOUND)
    await remove_transaction(db, tx)
    await db.commit()
    logger.info("Transaction deleted", extra=actor.log_extra())


async def list_transactions(
    db: AsyncSession,
    actor: ActorContext,
    *,
    start: datetime | None = None,
    end: datetime | None = None,
    account_id: UUID | None = None,
) -> list[dict]:
    """Newest first, with account and customer names resolved."""
    if not actor.has_organization:
        return []
    query = select(Transaction).where(
        Transaction.organization_id == actor.organization_id,
    )
    if start is not None:
        query = query.where(Transaction.date >= start)
    if end is not None:
        query = query.where(Transaction.date <= end)
    if account_id is not None:
        query = query.where(Transaction.account_id == account_id)
    result = await db.execute(query.order_by(Transaction.date.desc()))
    rows = result.scalars().all()

    accounts = await names_by_id(
        db, Account, (t.account_id for t in rows), actor.organization_id,
    )
    customers = await names_by_id(
        db, Customer, (t.customer_id for t in rows), actor.organization_id,
    )
    return [
        {
            **t.to_dict(),
            "account_name": accounts.get(t.account_id),
            "customer_name": customers.get(t.customer_id),
        }
        for t in rows
    ]


async def bulk_create_transactions(
    db: AsyncSession, actor: ActorContext, account_id: UUID, items: list[dict],
) -> tuple[int, float]:
    """Insert many transactions into one account; the balance moves once."""
    organization_id = actor.require_organization()
    check_plan_limit(
        actor.plan_id, LimitedResource.TRANSACTIONS,
        await count_transactions(db, organization_id), adding=len(items),
    )
    account = await get_account(db, organization_id, account_id)
    for item in items:
        db.add(Transaction(
            organization_id=organization_id,
            account_id=account.id,
            created_by=actor.user_id,
            status=TransactionStatus.PAID.value,
            **item,
        ))
    account.balance = round(
        account.balance + net_effect((i["type"], i["amount"]) for i in items), 2,
    )
    await db.commit()
    logger.info(f"Bulk import of {len(items)} transactions", extra=actor.log_extra())
    return len(items), account.balance
