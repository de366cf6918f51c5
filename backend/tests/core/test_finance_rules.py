"""Finance Rules — tests for ledger arithmetic, bill settlement and period summaries.

Tests cover:
    - Income adds, expense subtracts, results rounded to cents
    - apply/revert are inverses (repeated edits never drift)
    - Settlement transaction built from a bill (type, description, category, customer link)
    - Settlement transition fires only on the move into paid
    - Pending bills past due are reported overdue
"""

from datetime import datetime, timedelta, timezone
from uuid import uuid4

from qoro.core.domain_types import TransactionType
from qoro.core.finance_rules import (
    apply_to_balance, build_settlement, default_settlement_category,
    effective_bill_status, is_settlement_transition, net_effect,
    revert_from_balance, settlement_type, signed_amount, summarize_period,
)

NOW = datetime(2025, 3, 15, 12, 0, tzinfo=timezone.utc)


# ─── Ledger arithmetic ───────────────────────────────────────────

def test_signed_amount():
    assert signed_amount("income", 10.0) == 10.0
    assert signed_amount(TransactionType.EXPENSE, 10.0) == -10.0


def test_apply_to_balance_rounds_to_cents():
    assert apply_to_balance(0.1, "income", 0.2) == 0.3
    assert apply_to_balance(100.0, "expense", 33.25) == 66.75


def test_apply_then_revert_restores_balance():
    balance = 1234.56
    for _ in range(50):
        balance = apply_to_balance(balance, "expense", 19.99)
        balance = revert_from_balance(balance, "expense", 19.99)
    assert balance == 1234.56


def test_net_effect():
    assert net_effect([("income", 100.0), ("expense", 30.5), ("expense", 9.5)]) == 60.0


# ─── Settlement ──────────────────────────────────────────────────

def test_settlement_type_and_category():
    assert settlement_type("payable") is TransactionType.EXPENSE
    assert settlement_type("receivable") is TransactionType.INCOME
    assert default_settlement_category("payable") == "Pagamento de contas"
    assert default_settlement_category("receivable") == "Recebimento de contas"


def test_is_settlement_transition():
    assert is_settlement_transition("pending", "paid")
    assert is_settlement_transition("overdue", "paid")
    assert is_settlement_transition(None, "paid")
    assert not is_settlement_transition("paid", "paid")
    assert not is_settlement_transition("paid", "pending")


def test_build_settlement_for_customer_receivable():
    bill_id, account_id, customer_id = uuid4(), uuid4(), uuid4()
    fields = build_settlement(
        bill_id=bill_id, description="Consultoria", amount=500.0,
        bill_type="receivable", account_id=account_id, paid_at=NOW,
        entity_type="customer", entity_id=customer_id, tags=["q1"],
    )
    assert fields["type"] == "income"
    assert fields["description"] == "Pag/Rec: Consultoria"
    assert fields["category"] == "Recebimento de contas"
    assert fields["payment_method"] == "bank_transfer"
    assert fields["customer_id"] == customer_id
    assert fields["bill_id"] == bill_id
    assert fields["tags"] == ["q1"]


def test_build_settlement_for_supplier_has_no_customer():
    fields = build_settlement(
        bill_id=uuid4(), description="Aluguel", amount=1500.0,
        bill_type="payable", account_id=uuid4(), paid_at=NOW,
        category="Aluguel", payment_method="pix",
        entity_type="supplier", entity_id=uuid4(),
    )
    assert fields["type"] == "expense"
    assert fields["category"] == "Aluguel"
    assert fields["payment_method"] == "pix"
    assert fields["customer_id"] is None


# ─── Bill status ─────────────────────────────────────────────────

def test_pending_past_due_is_overdue():
    assert effective_bill_status("pending", NOW - timedelta(days=1), NOW) == "overdue"


def test_pending_not_yet_due_stays_pending():
    assert effective_bill_status("pending", NOW + timedelta(days=1), NOW) == "pending"


def test_paid_never_overdue():
    assert effective_bill_status("paid", NOW - timedelta(days=30), NOW) == "paid"


# ─── Period summary ──────────────────────────────────────────────

def test_summarize_period():
    summary = summarize_period([
        ("income", 1000.0), ("income", 250.5), ("expense", 300.25),
    ])
    assert summary.income == 1250.5
    assert summary.expense == 300.25
    assert summary.net_profit == 950.25


def test_summarize_empty_period():
    summary = summarize_period([])
    assert summary.income == 0.0
    assert summary.net_profit == 0.0
