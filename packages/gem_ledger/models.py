"""Record models for the ledger partitions.

Records are pydantic models whose JSON form uses the camelCase keys of the
persisted partition format (``vendorName``, ``exchangeRate``,
``convertedAmount``, ``sourceModule`` ...). Python code uses snake_case
attribute names; both spellings are accepted on input.

Money is held as ``Decimal`` and written without loss of precision. ``convertedAmount``
is always an integer (see :mod:`gem_ledger.currency`).

Every record carries its origin partition (``sourceModule``/``sourceTab``).
Records loaded from partitions written without origin fields are stamped by
the store with the partition they were read from.
"""

from __future__ import annotations

import time
from datetime import date as _date
from decimal import Decimal
from enum import StrEnum
from typing import Annotated, Any, ClassVar, Literal, Self

from pydantic import (
    BaseModel,
    BeforeValidator,
    ConfigDict,
    PlainSerializer,
    ValidationError,
    field_validator,
)
from pydantic.alias_generators import to_camel, to_snake

from .errors import RecordValidationError
from .partitions import PartitionId


def _money_to_json(v: Decimal) -> int | float | str:
    if v == v.to_integral_value():
        return int(v)
    f = float(v)
    if Decimal(repr(f)) == v:
        return f
    # More significant digits than a double holds; keep the exact text.
    return str(v)


def _money_from_json(v: Any) -> Any:
    # Floats read back through their shortest repr, the text that was written.
    if isinstance(v, float):
        return Decimal(repr(v))
    return v


Money = Annotated[
    Decimal,
    BeforeValidator(_money_from_json),
    PlainSerializer(_money_to_json, when_used="json"),
]
"""A monetary value or rate: ``Decimal`` in memory, lossless on disk.

Written as a JSON number when a double represents it exactly, otherwise as
a decimal string.
"""


class RecordFamily(StrEnum):
    """Template family of a record; its value is the partition key prefix."""

    CAPITAL = "capital"
    EXPENSE = "expense"
    SHEET = "sheet"


# ---------------------------------------------------------------------------
# Base record
# ---------------------------------------------------------------------------


class LedgerRecord(BaseModel):
    """Fields shared by every ledger record.

    Unknown keys found in persisted data are kept (``extra="allow"``) so a
    load/save cycle never drops data written by a newer template.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="allow",
        str_strip_whitespace=True,
    )

    family: ClassVar[RecordFamily]
    # Fields that must be truthy before save (snake_case attribute names)
    required_fields: ClassVar[tuple[str, ...]] = ("amount", "currency")
    # Prefix and digit count of the code assigned when the user leaves it blank
    code_prefix: ClassVar[str] = "REC"
    code_digits: ClassVar[int] = 4

    id: str
    date: _date
    code: str = ""
    amount: Money = Decimal(0)
    currency: str = "LKR"
    exchange_rate: Money | None = None
    converted_amount: int | None = None
    source_module: str
    source_tab: str
    notes: str | None = None

    @field_validator("currency")
    @classmethod
    def _upper_currency(cls, v: str) -> str:
        return v.strip().upper()

    @property
    def origin(self) -> PartitionId:
        return PartitionId(self.source_module, self.source_tab)

    def with_origin(self, partition: PartitionId) -> LedgerRecord:
        return self.model_copy(
            update={"source_module": partition.module, "source_tab": partition.tab}
        )

    def to_json_dict(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)

    @classmethod
    def new(
        cls,
        partition: PartitionId,
        *,
        now_ms: int | None = None,
        **fields: Any,
    ) -> LedgerRecord:
        """Create a record for ``partition`` with a timestamp-derived id.

        ``code`` defaults to ``<code_prefix>-<last digits of the timestamp>``
        and ``date`` to today when not supplied.
        """

        ms = now_ms if now_ms is not None else time.time_ns() // 1_000_000
        fields.setdefault("id", f"{cls.family.value}-{ms}")
        if not str(fields.get("code") or "").strip():
            fields["code"] = f"{cls.code_prefix}-{str(ms)[-cls.code_digits :]}"
        fields.setdefault("date", _date.today())
        fields["source_module"] = partition.module
        fields["source_tab"] = partition.tab
        return cls.from_input(fields)

    @classmethod
    def from_input(cls, data: dict[str, Any]) -> Self:
        """Validate user-supplied fields, raising :class:`RecordValidationError`."""

        try:
            return cls.model_validate(data)
        except ValidationError as e:
            fields: list[str] = []
            problems: list[str] = []
            for err in e.errors():
                loc = err.get("loc") or ()
                name = to_camel(to_snake(loc[0])) if loc and isinstance(loc[0], str) else ""
                if name and name not in fields:
                    fields.append(name)
                problems.append(f"{name or 'record'}: {err.get('msg', 'invalid')}")
            raise RecordValidationError("; ".join(problems), fields=tuple(fields)) from e


# ---------------------------------------------------------------------------
# Family specializations
# ---------------------------------------------------------------------------


class CapitalItem(LedgerRecord):
    family: ClassVar[RecordFamily] = RecordFamily.CAPITAL
    required_fields: ClassVar[tuple[str, ...]] = ("vendor_name", "amount", "currency")
    code_prefix: ClassVar[str] = "CAP"

    transaction_type: Literal["purchased", "exchange", "shares"] = "purchased"
    vendor_name: str = ""
    location: str | None = None
    company: str | None = None
    description: str | None = None


class ExpenseItem(LedgerRecord):
    family: ClassVar[RecordFamily] = RecordFamily.EXPENSE
    required_fields: ClassVar[tuple[str, ...]] = (
        "title",
        "vendor_name",
        "amount",
        "currency",
    )
    code_prefix: ClassVar[str] = "EXP"

    title: str = ""
    vendor_name: str = ""
    description: str = ""
    location: str | None = None
    company: str | None = None
    category: str | None = None
    payment_method: str | None = None
    weight: Money | None = None
    in_out_cheque: Literal["IN", "OUT", "CHEQUES"] | None = None


class SheetItem(LedgerRecord):
    family: ClassVar[RecordFamily] = RecordFamily.SHEET
    required_fields: ClassVar[tuple[str, ...]] = ("description", "amount")
    code_prefix: ClassVar[str] = "SH"
    code_digits: ClassVar[int] = 6

    description: str = ""
    category: str | None = None
    vendor: str | None = None


RECORD_TYPES: dict[RecordFamily, type[LedgerRecord]] = {
    RecordFamily.CAPITAL: CapitalItem,
    RecordFamily.EXPENSE: ExpenseItem,
    RecordFamily.SHEET: SheetItem,
}


def record_type_for(family: RecordFamily | str) -> type[LedgerRecord]:
    return RECORD_TYPES[RecordFamily(family)]


def validate_for_save(
    record: LedgerRecord,
    *,
    known_currencies: set[str] | frozenset[str] | None = None,
) -> None:
    """Reject a record that the entry forms would not accept.

    Raises :class:`RecordValidationError` naming the missing fields (camelCase)
    when a required field is empty or zero, when the amount is negative, or
    when the currency is not in ``known_currencies`` (if given).
    """

    missing = tuple(
        to_camel(name) for name in record.required_fields if not getattr(record, name, None)
    )
    if missing:
        raise RecordValidationError(
            f"{', '.join(missing)} {'is' if len(missing) == 1 else 'are'} required",
            fields=missing,
        )
    if record.amount < 0:
        raise RecordValidationError("amount must not be negative", fields=("amount",))
    if known_currencies is not None and record.currency not in known_currencies:
        raise RecordValidationError(
            f"unknown currency: {record.currency}", fields=("currency",)
        )


__all__ = [
    "CapitalItem",
    "ExpenseItem",
    "LedgerRecord",
    "Money",
    "RECORD_TYPES",
    "RecordFamily",
    "SheetItem",
    "record_type_for",
    "validate_for_save",
]
