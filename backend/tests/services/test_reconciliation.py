"""Reconciliation — tests for OFX uploads, ledger comparison and importing missing lines.

Tests cover:
    - Upload without a parsable statement line is rejected (OFX_EMPTY)
    - Compare pairs the statement with ledger entries on date, type and amount
    - Import records only statement-only lines, moves the balance, closes the reconciliation
    - Another organization's reconciliation is a 404
"""

from datetime import datetime, timezone

import pytest

from qoro.core.domain_types import PlanId, ReconciliationStatus
from qoro.core.errors import BusinessRuleError, ResourceNotFoundError
from qoro.models.account import Account
from qoro.services import finance_service, reconciliation_service, transaction_service

STATEMENT = """OFXHEADER:100
<OFX><BANKTRANLIST>
<STMTTRN>
<TRNTYPE>DEBIT
<DTPOSTED>20250310
<TRNAMT>-150.75
<FITID>A1
<MEMO>PAGAMENTO FORNECEDOR
<STMTTRN>
<TRNTYPE>CREDIT
<DTPOSTED>20250311
<TRNAMT>2000.00
<FITID>A2
<MEMO>PIX RECEBIDO
</BANKTRANLIST></OFX>
"""


async def _setup(db, actor):
    account = await finance_service.create_account(db, actor, {
        "name": "Conta PJ", "type": "checking", "bank": "Banco X", "balance": 1000.0,
    })
    ledger = await transaction_service.create_transaction(db, actor, {
        "description": "Fornecedor ACME",
        "amount": 150.75,
        "type": "expense",
        "date": datetime(2025, 3, 10, 15, 0, tzinfo=timezone.utc),
        "account_id": account.id,
    })
    rec = await reconciliation_service.create_reconciliation(
        db, actor, "extrato-marco.ofx", STATEMENT, account.id,
    )
    return account, ledger, rec


async def test_upload_without_lines_rejected(test_db, growth_actor):
    account = await finance_service.create_account(test_db, growth_actor, {
        "name": "Conta", "type": "checking", "balance": 0.0,
    })
    with pytest.raises(BusinessRuleError) as exc:
        await reconciliation_service.create_reconciliation(
            test_db, growth_actor, "vazio.ofx", "<OFX></OFX>", account.id,
        )
    assert exc.value.code == "OFX_EMPTY"


async def test_listing_hides_file_content(test_db, growth_actor):
    account, _, rec = await _setup(test_db, growth_actor)
    assert rec["status"] == "pending"
    assert rec["account_name"] == "Conta PJ"

    listed = await reconciliation_service.list_reconciliations(test_db, growth_actor)
    assert "ofx_content" not in listed[0]
    detail = await reconciliation_service.get_reconciliation(
        test_db, growth_actor, rec["id"],
    )
    assert detail["ofx_content"] == STATEMENT


async def test_compare_pairs_statement_with_ledger(test_db, growth_actor):
    _, ledger, rec = await _setup(test_db, growth_actor)
    result = await reconciliation_service.compare_reconciliation(
        test_db, growth_actor, rec["id"],
    )
    assert [m["transaction_id"] for m in result["matched"]] == [ledger.id]
    assert [line["fit_id"] for line in result["statement_only"]] == ["A2"]
    assert result["ledger_only"] == []


async def test_import_records_only_missing_lines(test_db, growth_actor):
    account, _, rec = await _setup(test_db, growth_actor)
    result = await reconciliation_service.import_unmatched(
        test_db, growth_actor, rec["id"],
    )
    assert result == {"imported": 1, "status": ReconciliationStatus.RECONCILED}

    row = await test_db.get(Account, account.id)
    await test_db.refresh(row)
    assert row.balance == 2849.25

    imported = [
        t for t in await transaction_service.list_transactions(test_db, growth_actor)
        if t["category"] == "Conciliação bancária"
    ]
    assert len(imported) == 1
    assert imported[0]["tags"] == ["ofx:A2"]
    assert imported[0]["type"] == "income"

    detail = await reconciliation_service.get_reconciliation(
        test_db, growth_actor, rec["id"],
    )
    assert detail["status"] == "reconciled"

    # a second compare now pairs both lines
    again = await reconciliation_service.compare_reconciliation(
        test_db, growth_actor, rec["id"],
    )
    assert len(again["matched"]) == 2
    assert again["statement_only"] == []


async def test_foreign_reconciliation_is_404(test_db, create_admin):
    tenant_a = await create_admin(PlanId.GROWTH, name="Tenant A")
    tenant_b = await create_admin(PlanId.GROWTH, name="Tenant B")
    _, _, rec = await _setup(test_db, tenant_a)
    with pytest.raises(ResourceNotFoundError):
        await reconciliation_service.compare_reconciliation(test_db, tenant_b, rec["id"])
