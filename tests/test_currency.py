from __future__ import annotations

import json
from decimal import Decimal

import pytest

from gem_ledger.currency import (
    RateTable,
    convert,
    edit_record,
    normalize_conversion,
    with_currency,
    with_exchange_rate,
)
from gem_ledger.errors import RecordValidationError
from tests.helpers.records import KENYA, capital


def test_convert_floors_product() -> None:
    assert convert(100, "302.50") == 30250
    assert convert(10, "0.1251") == 1
    assert convert("1.1", 3) == 3
    assert convert(0, "330.2") == 0


def test_convert_uses_decimal_text_of_floats() -> None:
    # 1.1 * 3 in binary floating point is 3.3000000000000003; still floors to 3
    assert convert(1.1, 3) == 3
    assert convert(2.5, 2) == 5


def test_convert_rejects_non_numbers() -> None:
    with pytest.raises(RecordValidationError):
        convert("abc", 1)


def test_rate_table_defaults_and_base() -> None:
    rates = RateTable()
    assert rates.base_currency == "LKR"
    assert rates.rate_for("usd") == Decimal("302.50")
    assert rates.rate_for("LKR") == 1
    assert rates.is_base(" lkr ")
    assert "THB" in rates.currencies


def test_rate_table_unknown_currency_falls_back_to_one() -> None:
    assert RateTable().rate_for("XYZ") == 1


def test_rate_table_forces_base_rate_to_one() -> None:
    rates = RateTable({"usd": 300, "LKR": 5})
    assert rates.rates["LKR"] == 1
    assert rates.rates["USD"] == 300

    usd_based = RateTable({"LKR": "0.0033"}, base_currency="usd")
    assert usd_based.base_currency == "USD"
    assert usd_based.rate_for("USD") == 1


def test_rate_table_from_json_file_merges_over_defaults(tmp_path) -> None:
    path = tmp_path / "rates.json"
    path.write_text(json.dumps({"USD": 310, "AED": 82.4}), encoding="utf-8")

    rates = RateTable.from_json_file(path)

    assert rates.rate_for("USD") == 310
    assert rates.rate_for("AED") == Decimal("82.4")
    assert rates.rate_for("EUR") == Decimal("330.20")


def test_rate_table_from_json_file_requires_object(tmp_path) -> None:
    path = tmp_path / "rates.json"
    path.write_text("[1, 2]", encoding="utf-8")
    with pytest.raises(ValueError):
        RateTable.from_json_file(path)


def test_normalize_foreign_record_uses_table_rate() -> None:
    rec = capital(KENYA, "c1", 100, "USD")
    assert rec.exchange_rate == Decimal("302.50")
    assert rec.converted_amount == 30250


def test_normalize_base_record_clears_conversion() -> None:
    rec = capital(KENYA, "c1", 500, "LKR")
    assert rec.exchange_rate is None
    assert rec.converted_amount is None

    stale = rec.model_copy(update={"exchange_rate": Decimal(3), "converted_amount": 1500})
    fixed = normalize_conversion(stale, RateTable())
    assert fixed.exchange_rate is None
    assert fixed.converted_amount is None


def test_normalize_keeps_record_rate_and_is_idempotent() -> None:
    rates = RateTable()
    rec = capital(KENYA, "c1", 10, "USD", exchange_rate="300")
    assert rec.converted_amount == 3000

    again = normalize_conversion(rec, rates)
    assert again is rec


def test_edit_amount_recomputes_converted_amount() -> None:
    rates = RateTable()
    rec = capital(KENYA, "c1", 100, "USD")

    edited = edit_record(rec, rates, amount=200)

    assert edited.amount == 200
    assert edited.converted_amount == 60500
    assert rec.converted_amount == 30250


def test_edit_currency_picks_up_table_rate() -> None:
    rates = RateTable()
    rec = capital(KENYA, "c1", 100, "USD")

    eur = with_currency(rec, "eur", rates)
    assert eur.currency == "EUR"
    assert eur.exchange_rate == Decimal("330.20")
    assert eur.converted_amount == 33020

    lkr = with_currency(eur, "LKR", rates)
    assert lkr.exchange_rate is None
    assert lkr.converted_amount is None


def test_edit_exchange_rate_override() -> None:
    rates = RateTable()
    rec = capital(KENYA, "c1", 100, "USD")

    edited = with_exchange_rate(rec, "299.99", rates)

    assert edited.converted_amount == 29999


def test_converted_amount_cannot_be_edited() -> None:
    rec = capital(KENYA, "c1", 100, "USD")
    with pytest.raises(RecordValidationError) as exc:
        edit_record(rec, RateTable(), converted_amount=1)
    assert exc.value.fields == ("convertedAmount",)
