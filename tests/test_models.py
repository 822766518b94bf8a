from __future__ import annotations

from decimal import Decimal

import pytest

from gem_ledger.currency import RateTable, edit_record
from gem_ledger.errors import RecordValidationError
from gem_ledger.models import CapitalItem, ExpenseItem
from tests.helpers.records import KENYA, SALES_LK, capital


def test_new_record_defaults() -> None:
    rec = CapitalItem.new(KENYA, vendor_name="Ali Gems", amount=5, now_ms=1700000004321)

    assert rec.id == "capital-1700000004321"
    assert rec.code == "CAP-4321"
    assert rec.origin == KENYA
    assert rec.transaction_type == "purchased"


@pytest.mark.parametrize(
    ("fields", "bad"),
    [
        ({"amount": "abc"}, ("amount",)),
        ({"amount": 5, "date": "2024-13-40"}, ("date",)),
        ({"amount": 5, "transaction_type": "bogus"}, ("transactionType",)),
    ],
)
def test_malformed_input_raises_record_validation_error(
    fields: dict, bad: tuple[str, ...]
) -> None:
    with pytest.raises(RecordValidationError) as exc:
        CapitalItem.new(KENYA, vendor_name="Ali Gems", **fields)

    assert exc.value.fields == bad


def test_malformed_edit_raises_record_validation_error() -> None:
    rec = ExpenseItem.new(SALES_LK, title="Rough", vendor_name="Ali", amount=10)

    with pytest.raises(RecordValidationError) as exc:
        edit_record(rec, RateTable(), weight="x")

    assert exc.value.fields == ("weight",)


def test_money_is_written_without_precision_loss() -> None:
    exact = capital(KENYA, "c1", "100.25", "USD").to_json_dict()
    assert exact["amount"] == 100.25
    assert exact["exchangeRate"] == 302.5

    wide = capital(KENYA, "c2", Decimal("12345678901234567.89"), "TZS").to_json_dict()
    assert wide["amount"] == "12345678901234567.89"
    assert CapitalItem.model_validate(wide).amount == Decimal("12345678901234567.89")


def test_floats_read_back_as_their_written_text() -> None:
    rec = CapitalItem.model_validate(
        {
            "id": "c1",
            "date": "2024-01-01",
            "vendorName": "X",
            "amount": 0.1,
            "currency": "USD",
            "sourceModule": "kenya",
            "sourceTab": "Capital",
        }
    )
    assert rec.amount == Decimal("0.1")
