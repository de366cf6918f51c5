"""Reconciliation Service — OFX statement uploads compared against the ledger.

Invariants:
    - A reconciliation belongs to one account of the actor's organization
    - Uploads without any parsable statement line are rejected
    - compare is read-only; import_unmatched records only statement-only lines,
      then marks the reconciliation reconciled
    - Imported lines respect the free-plan transaction quota as a whole

Design Decisions:
    - Ledger side limited to the statement's date span: older history
      would only show up as noise in ledger_only
"""

import logging
from datetime import datetime, time, timezone
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from qoro.core.domain_types import LimitedResource, ReconciliationStatus
from qoro.core.enforce_plan import check_plan_limit
from qoro.core.errors import BusinessRuleError
from qoro.core.ofx_statement import (
    LedgerEntry, MatchResult, StatementEntry, match_entries, parse_statement,
)
from qoro.core.time_utils import ensure_utc
from qoro.models.account import Account
from qoro.models.reconciliation import Reconciliation
from qoro.models.transaction import Transaction
from qoro.services.org_context import ActorContext, get_owned, names_by_id
from qoro.services.transaction_service import (
    count_transactions, get_account, record_transaction,
)

logger = logging.getLogger(__name__)

NOT_FOUND = "Conciliação não encontrada ou acesso negado."
EMPTY_STATEMENT = "Nenhuma transação encontrada no arquivo OFX."


def _view(rec: Reconciliation, accounts: dict, with_content: bool = False) -> dict:
    data = rec.to_dict()
    if not with_content:
        data.pop("ofx_content", None)
    data["account_name"] = accounts.get(rec.account_id)
    return data


async def create_reconciliation(
    db: AsyncSession, actor: ActorContext, file_name: str, ofx_content: str,
    account_id: UUID,
) -> dict:
    organization_id = actor.require_organization()
    account = await get_account(db, organization_id, account_id)
    if not parse_statement(ofx_content):
        raise BusinessRuleError(EMPTY_STATEMENT, "OFX_EMPTY")
    rec = Reconciliation(
        organization_id=organization_id,
        file_name=file_name,
        ofx_content=ofx_content,
        account_id=account.id,
        user_id=actor.user_id,
        status=ReconciliationStatus.PENDING.value,
    )
    db.add(rec)
    await db.commit()
    await db.refresh(rec)
    logger.info("Reconciliation uploaded", extra=actor.log_extra())
    return _view(rec, {account.id: account.name})


async def list_reconciliations(db: AsyncSession, actor: ActorContext) -> list[dict]:
    if not actor.has_organization:
        return []
    result = await db.execute(
        select(Reconciliation)
        .where(Reconciliation.organization_id == actor.organization_id)
        .order_by(Reconciliation.created_at.desc()),
    )
    recs = result.scalars().all()
    accounts = await names_by_id(
        db, Account, (r.account_id for r in recs), actor.organization_id,
    )
    return [_view(r, accounts) for r in recs]


async def get_reconciliation(
    db: AsyncSession, actor: ActorContext, reconciliation_id: UUID,
) -> dict:
    rec = await get_owned(db, Reconciliation, reconciliation_id, actor, NOT_FOUND)
    accounts = await names_by_id(db, Account, [rec.account_id], actor.organization_id)
    return _view(rec, accounts, with_content=True)


async def rename_reconciliation(
    db: AsyncSession, actor: ActorContext, reconciliation_id: UUID, file_name: str,
) -> dict:
    rec = await get_owned(db, Reconciliation, reconciliation_id, actor, NOT_FOUND)
    rec.file_name = file_name
    await db.commit()
    await db.refresh(rec)
    accounts = await names_by_id(db, Account, [rec.account_id], actor.organization_id)
    return _view(rec, accounts)


async def delete_reconciliation(
    db: AsyncSession, actor: ActorContext, reconciliation_id: UUID,
) -> None:
    rec = await get_owned(db, Reconciliation, reconciliation_id, actor, NOT_FOUND)
    await db.delete(rec)
    await db.commit()


async def _ledger_for(
    db: AsyncSession, rec: Reconciliation, statement: list[StatementEntry],
) -> list[LedgerEntry]:
    if not statement:
        return []
    first = min(e.date for e in statement)
    last = max(e.date for e in statement)
    result = await db.execute(
        select(Transaction)
        .where(Transaction.organization_id == rec.organization_id)
        .where(Transaction.account_id == rec.account_id)
        .where(Transaction.date >= datetime.combine(first, time.min, timezone.utc))
        .where(Transaction.date <= datetime.combine(last, time.max, timezone.utc))
        .order_by(Transaction.date),
    )
    return [
        LedgerEntry(
            id=t.id,
            date=ensure_utc(t.date).date(),
            amount=t.amount,
            type=t.type,
            description=t.description,
        )
        for t in result.scalars().all()
    ]


async def _match(
    db: AsyncSession, actor: ActorContext, reconciliation_id: UUID,
) -> tuple[Reconciliation, MatchResult]:
    rec = await get_owned(db, Reconciliation, reconciliation_id, actor, NOT_FOUND)
    statement = parse_statement(rec.ofx_content)
    return rec, match_entries(statement, await _ledger_for(db, rec, statement))


async def compare_reconciliation(
    db: AsyncSession, actor: ActorContext, reconciliation_id: UUID,
) -> dict:
    rec, result = await _match(db, actor, reconciliation_id)
    return {
        "reconciliation_id": rec.id,
        "matched": [
            {"statement": line.to_dict(), "transaction_id": entry.id}
            for line, entry in result.matched
        ],
        "statement_only": [line.to_dict() for line in result.statement_only],
        "ledger_only": [entry.id for entry in result.ledger_only],
    }


async def import_unmatched(
    db: AsyncSession, actor: ActorContext, reconciliation_id: UUID,
) -> dict:
    """Record statement-only lines as transactions and close the reconciliation."""
    organization_id = actor.require_organization()
    rec, result = await _match(db, actor, reconciliation_id)
    missing = result.statement_only
    if missing:
        check_plan_limit(
            actor.plan_id, LimitedResource.TRANSACTIONS,
            await count_transactions(db, organization_id), adding=len(missing),
        )
    for line in missing:
        await record_transaction(db, organization_id, {
            "account_id": rec.account_id,
            "description": line.description,
            "amount": line.amount,
            "type": line.type.value,
            "date": datetime.combine(line.date, time(12, 0), timezone.utc),
            "category": "Conciliação bancária",
            "tags": [f"ofx:{line.fit_id}"] if line.fit_id else [],
        }, actor.user_id)
    rec.status = ReconciliationStatus.RECONCILED.value
    await db.commit()
    logger.info(
        f"Reconciliation imported {len(missing)} transactions",
        extra=actor.log_extra(),
    )
    return {"imported": len(missing), "status": ReconciliationStatus.RECONCILED}
