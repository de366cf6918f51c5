"""OFX Statement — tolerant parser for bank statement exports and ledger matching.

Invariants:
    - Only <STMTTRN> blocks with DTPOSTED, TRNAMT and MEMO are kept; others skipped
    - Negative TRNAMT -> expense, otherwise income; amount stored as absolute value
    - Matching is greedy, one-to-one: a ledger entry pairs with at most one statement line
    - Two entries match on same calendar date, same type, |amount delta| < 0.01

Design Decisions:
    - Regex over an OFX/SGML library: bank exports are frequently malformed
      SGML without closing tags; a per-tag regex survives that
"""

import re
from dataclasses import dataclass, field
from datetime import date, datetime

from qoro.core.domain_types import TransactionType


_TRANSACTION_SPLIT = "<STMTTRN>"
_DATE_RE = re.compile(r"<DTPOSTED>\s*([0-9]{8})")
_AMOUNT_RE = re.compile(r"<TRNAMT>\s*([-+.,0-9]+)")
_MEMO_RE = re.compile(r"<MEMO>([^<\r\n]+)")
_FITID_RE = re.compile(r"<FITID>([^<\r\n]+)")

AMOUNT_TOLERANCE = 0.01


@dataclass(frozen=True)
class StatementEntry:
    date: date
    amount: float
    description: str
    type: TransactionType
    fit_id: str | None = None

    def to_dict(self) -> dict:
        return {
            "date": self.date.isoformat(),
            "amount": self.amount,
            "description": self.description,
            "type": self.type.value,
            "fit_id": self.fit_id,
        }


@dataclass(frozen=True)
class LedgerEntry:
    """The slice of a stored transaction the matcher needs."""
    id: object
    date: date
    amount: float
    type: str
    description: str = ""


@dataclass
class MatchResult:
    matched: list[tuple[StatementEntry, LedgerEntry]] = field(default_factory=list)
    statement_only: list[StatementEntry] = field(default_factory=list)
    ledger_only: list[LedgerEntry] = field(default_factory=list)


def _parse_amount(raw: str) -> float:
    # Brazilian banks sometimes export "1234,56"
    return float(raw.replace(",", "."))


def parse_statement(content: str) -> list[StatementEntry]:
    """Extract statement lines from raw OFX content."""
    entries = []
    for block in content.split(_TRANSACTION_SPLIT)[1:]:
        date_match = _DATE_RE.search(block)
        amount_match = _AMOUNT_RE.search(block)
        memo_match = _MEMO_RE.search(block)
        if not (date_match and amount_match and memo_match):
            continue
        try:
            posted = datetime.strptime(date_match.group(1), "%Y%m%d").date()
            raw_amount = _parse_amount(amount_match.group(1))
        except ValueError:
            continue
        fit_match = _FITID_RE.search(block)
        entries.append(StatementEntry(
            date=posted,
            amount=round(abs(raw_amount), 2),
            description=memo_match.group(1).strip(),
            type=(
                TransactionType.EXPENSE if raw_amount < 0
                else TransactionType.INCOME
            ),
            fit_id=fit_match.group(1).strip() if fit_match else None,
        ))
    return entries


def _same(statement: StatementEntry, ledger: LedgerEntry) -> bool:
    return (
        statement.date == ledger.date
        and statement.type == ledger.type
        and abs(statement.amount - ledger.amount) < AMOUNT_TOLERANCE
    )


def match_entries(
    statement: list[StatementEntry], ledger: list[LedgerEntry],
) -> MatchResult:
    """Pair statement lines with ledger entries in statement order."""
    result = MatchResult()
    remaining = list(ledger)
    for line in statement:
        index = next(
            (i for i, entry in enumerate(remaining) if _same(line, entry)),
            None,
        )
        if index is None:
            result.statement_only.append(line)
        else:
            result.matched.append((line, remaining.pop(index)))
    result.ledger_only = remaining
    return result
