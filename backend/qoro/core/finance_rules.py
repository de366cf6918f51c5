"""Finance Rules — ledger arithmetic, bill settlement and period summaries.

Invariants:
    - Account balance = opening balance + sum(income) - sum(expense)
    - Every balance mutation is rounded to cents (2 decimals)
    - A bill produces at most one settlement transaction, created on the
      transition into `paid` (or at creation when created already paid)
    - Settlement type: payable -> expense, receivable -> income

Design Decisions:
    - Float money with explicit rounding: mirrors the stored Float columns;
      rounding after each step keeps repeated apply/revert cycles exact to the cent
    - Settlement built as a plain dict: transaction_service owns persistence
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Iterable

from qoro.core.domain_types import (
    BillStatus, BillType, EntityType, PaymentMethod, TransactionType,
)


def signed_amount(tx_type: str | TransactionType, amount: float) -> float:
    """Income adds to the balance, expense subtracts."""
    if TransactionType(tx_type) is TransactionType.INCOME:
        return amount
    return -amount


def apply_to_balance(
    balance: float, tx_type: str | TransactionType, amount: float,
) -> float:
    return round(balance + signed_amount(tx_type, amount), 2)


def revert_from_balance(
    balance: float, tx_type: str | TransactionType, amount: float,
) -> float:
    return round(balance - signed_amount(tx_type, amount), 2)


def net_effect(entries: Iterable[tuple[str, float]]) -> float:
    """Signed total of (type, amount) pairs, used by bulk imports."""
    return round(sum(signed_amount(t, a) for t, a in entries), 2)


# ─── Bill settlement ─────────────────────────────────────────────

def settlement_type(bill_type: str | BillType) -> TransactionType:
    if BillType(bill_type) is BillType.PAYABLE:
        return TransactionType.EXPENSE
    return TransactionType.INCOME


def default_settlement_category(bill_type: str | BillType) -> str:
    if BillType(bill_type) is BillType.PAYABLE:
        return "Pagamento de contas"
    return "Recebimento de contas"


def is_settlement_transition(old_status: str | None, new_status: str) -> bool:
    """True only when a bill moves into `paid` from any other state."""
    return new_status == BillStatus.PAID and old_status != BillStatus.PAID


def build_settlement(
    *,
    bill_id,
    description: str,
    amount: float,
    bill_type: str,
    account_id,
    paid_at: datetime,
    category: str | None = None,
    payment_method: str | None = None,
    entity_type: str | None = None,
    entity_id=None,
    tags: list[str] | None = None,
) -> dict:
    """Transaction fields for the ledger entry that settles a bill."""
    return {
        "account_id": account_id,
        "bill_id": bill_id,
        "type": settlement_type(bill_type).value,
        "amount": amount,
        "description": f"Pag/Rec: {description}",
        "date": paid_at,
        "category": category or default_settlement_category(bill_type),
        "payment_method": payment_method or PaymentMethod.BANK_TRANSFER.value,
        "customer_id": entity_id if entity_type == EntityType.CUSTOMER else None,
        "tags": list(tags or []),
    }


def effective_bill_status(
    status: str, due_date: datetime, now: datetime,
) -> str:
    """Pending bills past their due date are reported as overdue."""
    if status == BillStatus.PENDING and due_date < now:
        return BillStatus.OVERDUE.value
    return status


# ─── Period summaries ────────────────────────────────────────────

@dataclass(frozen=True)
class PeriodSummary:
    income: float
    expense: float

    @property
    def net_profit(self) -> float:
        return round(self.income - self.expense, 2)


def summarize_period(entries: Iterable[tuple[str, float]]) -> PeriodSummary:
    """Income and expense totals of (type, amount) pairs."""
    income = 0.0
    expense = 0.0
    for tx_type, amount in entries:
        if TransactionType(tx_type) is TransactionType.INCOME:
            income += amount
        else:
            expense += amount
    return PeriodSummary(round(income, 2), round(expense, 2))
