from __future__ import annotations

from datetime import date
from decimal import Decimal

from gem_ledger.currency import RateTable
from gem_ledger.partitions import PartitionId
from gem_ledger.summary import RecordFilter, base_amount, filter_records, summarize
from tests.helpers.records import SALES_LK, expense

BANGKOK = PartitionId("outstanding", "BangkokSales")


def _records():
    return [
        expense(SALES_LK, "e1", 1000, "LKR", category="Fuel", date=date(2024, 5, 3)),
        expense(
            BANGKOK,
            "e2",
            10,
            "USD",
            category="Fuel",
            date=date(2024, 1, 9),
            vendor_name="Siam Trading",
        ),
        expense(SALES_LK, "e3", 250, "LKR", title="Tea", date=date(2024, 5, 20), company="VG"),
    ]


def test_base_amount() -> None:
    rates = RateTable()
    lkr, usd, _ = _records()
    assert base_amount(lkr, rates) == 1000
    assert base_amount(usd, rates) == 3025


def test_summarize_totals_and_breakdowns() -> None:
    stats = summarize(_records(), RateTable(), today=date(2024, 5, 31))

    assert stats.count == 3
    assert stats.total_base == Decimal(4275)
    assert stats.average_base == Decimal(1425)
    assert stats.entries_this_month == 2
    assert stats.foreign_count == 1
    assert stats.totals_by_currency == {"LKR": Decimal(1250), "USD": Decimal(10)}
    assert stats.by_category == {"Fuel": Decimal(4025)}
    assert stats.by_source == {"outstanding/BangkokSales": 1, "outstanding/Srilanka Sales": 2}


def test_summarize_average_rounds_down() -> None:
    records = [
        expense(SALES_LK, "a", 1, "LKR"),
        expense(SALES_LK, "b", 2, "LKR"),
    ]
    assert summarize(records, RateTable()).average_base == 1


def test_summarize_empty() -> None:
    stats = summarize([], RateTable())
    assert stats.count == 0
    assert stats.total_base == 0
    assert stats.average_base == 0
    assert stats.by_source == {}


def test_filter_search_is_case_insensitive_and_sorted_newest_first() -> None:
    records = _records()

    assert [r.id for r in filter_records(records)] == ["e3", "e1", "e2"]
    assert [r.id for r in filter_records(records, RecordFilter(query="SIAM"))] == ["e2"]
    assert [r.id for r in filter_records(records, RecordFilter(query="tea"))] == ["e3"]


def test_filter_exact_match_fields() -> None:
    records = _records()

    assert [r.id for r in filter_records(records, RecordFilter(currency="USD"))] == ["e2"]
    assert [r.id for r in filter_records(records, RecordFilter(category="Fuel"))] == ["e1", "e2"]
    assert [r.id for r in filter_records(records, RecordFilter(company="VG"))] == ["e3"]
    assert filter_records(records, RecordFilter(source_tab="Srilanka Sales", currency="USD")) == []


def test_source_tab_filter_uses_normalized_tab_names() -> None:
    records = _records()

    flt = RecordFilter(source_tab="  srilanka   SALES ")
    assert [r.id for r in filter_records(records, flt)] == ["e3", "e1"]
