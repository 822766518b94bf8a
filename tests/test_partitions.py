from __future__ import annotations

import pytest

from gem_ledger.errors import PartitionKeyError
from gem_ledger.partitions import (
    PartitionId,
    canonical_tab_id,
    normalize_tab_name,
    parse_partition_key,
    partition_key,
)


def test_partition_key_format() -> None:
    assert partition_key("capital", "kenya", "Capital") == "capital_kenya_Capital"
    assert partition_key("expense", "outstanding", "Payment Received") == (
        "expense_outstanding_Payment Received"
    )


def test_partition_key_is_deterministic_and_canonical() -> None:
    assert partition_key("capital", "vgtz", "T.Capital") == partition_key(
        "capital", " vgtz ", "  T.Capital "
    )
    assert canonical_tab_id("  Payment \t Received ") == "Payment Received"


def test_partition_key_preserves_tab_case() -> None:
    assert partition_key("capital", "kenya", "capital") != partition_key(
        "capital", "kenya", "Capital"
    )


@pytest.mark.parametrize(
    ("prefix", "module", "tab"),
    [
        ("capital", "ken_ya", "Capital"),
        ("cap_ital", "kenya", "Capital"),
        ("capital", "", "Capital"),
        ("capital", "kenya", "   "),
    ],
)
def test_partition_key_rejects_ambiguous_parts(prefix: str, module: str, tab: str) -> None:
    with pytest.raises(PartitionKeyError):
        partition_key(prefix, module, tab)


def test_partition_key_error_is_value_error() -> None:
    with pytest.raises(ValueError):
        PartitionId("a_b", "Tab")


def test_distinct_pairs_give_distinct_keys() -> None:
    pairs = [
        ("kenya", "Capital"),
        ("kenya", "Capital_2"),
        ("vg-ramazan", "T.Capital"),
        ("vgtz", "T.Capital"),
        ("bkk", "Bkkcapital"),
    ]
    keys = {partition_key("capital", m, t) for m, t in pairs}
    assert len(keys) == len(pairs)


def test_parse_partition_key_inverts_builder() -> None:
    prefix, pid = parse_partition_key("sheet_kenya_Cash_In Hand")
    assert prefix == "sheet"
    assert pid == PartitionId("kenya", "Cash_In Hand")
    assert pid.key(prefix) == "sheet_kenya_Cash_In Hand"


def test_parse_partition_key_rejects_garbage() -> None:
    with pytest.raises(PartitionKeyError):
        parse_partition_key("capital-kenya")


def test_normalize_tab_name_for_membership() -> None:
    assert normalize_tab_name("  Payment   RECEIVED ") == "payment received"
    pid = PartitionId("outstanding", "Payment Received")
    assert pid.matches("outstanding", "payment  received")
    assert not pid.matches("payable", "Payment Received")
    assert pid.same_as(PartitionId("outstanding", " PAYMENT received"))


def test_partition_id_str() -> None:
    assert str(PartitionId("kenya", " Capital ")) == "kenya/Capital"
