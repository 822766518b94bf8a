"""View statistics and search filtering over displayed records.

These are the figures the ledger views print above their tables: totals in
the base currency, per-currency totals, counts for the current month, and
breakdowns by category and by source partition. ``RecordFilter`` implements
the free-text search and the "All"-or-exact-match dropdown filters.
"""

from __future__ import annotations

from collections import Counter, defaultdict
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from datetime import date
from decimal import ROUND_FLOOR, Decimal

from .currency import RateTable
from .models import LedgerRecord
from .partitions import normalize_tab_name

# Free-text search looks at these attributes when a record has them.
_SEARCH_FIELDS: tuple[str, ...] = (
    "code",
    "title",
    "vendor_name",
    "vendor",
    "description",
    "location",
    "company",
    "category",
)


def base_amount(record: LedgerRecord, rates: RateTable) -> Decimal:
    """Amount expressed in the base currency (``0`` when unconvertible)."""

    if rates.is_base(record.currency):
        return record.amount
    if record.converted_amount is None:
        return Decimal(0)
    return Decimal(record.converted_amount)


@dataclass(frozen=True, slots=True)
class LedgerSummary:
    count: int
    total_base: Decimal
    average_base: Decimal
    entries_this_month: int
    foreign_count: int
    totals_by_currency: dict[str, Decimal] = field(default_factory=dict)
    by_category: dict[str, Decimal] = field(default_factory=dict)
    by_source: dict[str, int] = field(default_factory=dict)


def summarize(
    records: Sequence[LedgerRecord],
    rates: RateTable,
    *,
    today: date | None = None,
) -> LedgerSummary:
    today = today or date.today()
    total = Decimal(0)
    by_currency: dict[str, Decimal] = defaultdict(Decimal)
    by_category: dict[str, Decimal] = defaultdict(Decimal)
    by_source: Counter[str] = Counter()
    this_month = 0
    foreign = 0

    for r in records:
        amt = base_amount(r, rates)
        total += amt
        by_currency[r.currency] += r.amount
        category = getattr(r, "category", None)
        if category:
            by_category[category] += amt
        by_source[str(r.origin)] += 1
        if r.date.year == today.year and r.date.month == today.month:
            this_month += 1
        if not rates.is_base(r.currency):
            foreign += 1

    average = (
        (total / len(records)).to_integral_value(rounding=ROUND_FLOOR) if records else Decimal(0)
    )
    return LedgerSummary(
        count=len(records),
        total_base=total,
        average_base=average,
        entries_this_month=this_month,
        foreign_count=foreign,
        totals_by_currency=dict(sorted(by_currency.items())),
        by_category=dict(sorted(by_category.items())),
        by_source=dict(sorted(by_source.items())),
    )


@dataclass(frozen=True, slots=True)
class RecordFilter:
    """Search text plus exact-match filters; ``None`` means "All"."""

    query: str = ""
    currency: str | None = None
    category: str | None = None
    company: str | None = None
    title: str | None = None
    source_tab: str | None = None
    payment_method: str | None = None

    def matches(self, record: LedgerRecord) -> bool:
        q = self.query.strip().lower()
        if q:
            haystack = (getattr(record, name, None) for name in _SEARCH_FIELDS)
            if not any(isinstance(v, str) and q in v.lower() for v in haystack):
                return False
        if self.source_tab is not None and normalize_tab_name(
            record.source_tab
        ) != normalize_tab_name(self.source_tab):
            return False
        for name in ("currency", "category", "company", "title", "payment_method"):
            wanted = getattr(self, name)
            if wanted is not None and getattr(record, name, None) != wanted:
                return False
        return True


def filter_records(
    records: Iterable[LedgerRecord], flt: RecordFilter | None = None
) -> list[LedgerRecord]:
    """Matching records, newest date first (stable for equal dates)."""

    flt = flt or RecordFilter()
    return sorted((r for r in records if flt.matches(r)), key=lambda r: r.date, reverse=True)


__all__ = [
    "LedgerSummary",
    "RecordFilter",
    "base_amount",
    "filter_records",
    "summarize",
]
