"""Sales Pipeline — funnel stages, quote numbering and quote arithmetic.

Invariants:
    - Active leads are customers in new .. negotiation (won/lost/archived excluded)
    - Quote numbers are `QT-` + last 6 digits of the epoch-millis clock
    - Quote totals are recomputed server-side: item.total = quantity * unit_price,
      subtotal = sum(item totals), total = max(subtotal - discount, 0)

Design Decisions:
    - Client-sent totals ignored: the stored quote is the source of the bill
      amount, so it must not trust the browser's arithmetic
"""

from datetime import datetime
from typing import Iterable

from qoro.core.domain_types import CustomerStatus, QuoteStatus


ACTIVE_LEAD_STATUSES = frozenset({
    CustomerStatus.NEW,
    CustomerStatus.INITIAL_CONTACT,
    CustomerStatus.QUALIFICATION,
    CustomerStatus.PROPOSAL,
    CustomerStatus.NEGOTIATION,
})

FUNNEL_ORDER = [status.value for status in CustomerStatus]


def quote_number(now: datetime) -> str:
    millis = int(now.timestamp() * 1000)
    return f"QT-{str(millis)[-6:]}"


def invoice_number(now: datetime) -> str:
    millis = int(now.timestamp() * 1000)
    return f"INV-{str(millis)[-6:]}"


def price_items(items: Iterable[dict]) -> list[dict]:
    """Return copies of quote items with `total` recomputed."""
    priced = []
    for item in items:
        line = dict(item)
        line["total"] = round(line["quantity"] * line["unit_price"], 2)
        priced.append(line)
    return priced


def quote_totals(items: list[dict], discount: float) -> tuple[float, float]:
    """(subtotal, total) for already-priced items."""
    subtotal = round(sum(item["total"] for item in items), 2)
    total = round(max(subtotal - discount, 0.0), 2)
    return subtotal, total


def is_sent_transition(old_status: str | None, new_status: str | None) -> bool:
    """A receivable bill is opened only on the first move into `sent`."""
    return new_status == QuoteStatus.SENT and old_status != QuoteStatus.SENT


def funnel_counts(statuses: Iterable[str]) -> dict[str, int]:
    """Customer count per funnel stage, every stage present."""
    counts = {stage: 0 for stage in FUNNEL_ORDER}
    for status in statuses:
        if status in counts:
            counts[status] += 1
    return counts


def win_rate(counts: dict[str, int]) -> float:
    """Won / (won + lost) as a percentage, 0 when nothing is decided yet."""
    won = counts.get(CustomerStatus.WON.value, 0)
    lost = counts.get(CustomerStatus.LOST.value, 0)
    if won + lost == 0:
        return 0.0
    return round(won * 100 / (won + lost), 1)


def active_lead_count(counts: dict[str, int]) -> int:
    return sum(counts.get(status.value, 0) for status in ACTIVE_LEAD_STATUSES)
