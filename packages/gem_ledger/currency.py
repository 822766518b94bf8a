"""Currency conversion into the base currency.

``convertedAmount`` is a derived value: ``floor(amount * exchangeRate)`` for
foreign-currency records and absent (``None``) for base-currency records. The
helpers here are the only place that computes it; every field edit touching
amount, currency or rate goes through :func:`edit_record` (or one of the
``with_*`` shortcuts) so the invariant holds after each edit.

Rates come from an injected :class:`RateTable` rather than a module constant,
so tests and deployments can supply their own.
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from dataclasses import dataclass, field
from decimal import ROUND_FLOOR, Decimal, InvalidOperation
from pathlib import Path
from types import MappingProxyType
from typing import Any

from .errors import RecordValidationError
from .models import LedgerRecord

DEFAULT_BASE_CURRENCY = "LKR"

# Rates observed in the dashboard's entry forms (units of base currency per unit).
DEFAULT_RATES: Mapping[str, Decimal] = MappingProxyType(
    {
        "LKR": Decimal("1.00"),
        "USD": Decimal("302.50"),
        "EUR": Decimal("330.20"),
        "GBP": Decimal("385.80"),
        "TZS": Decimal("0.1251"),
        "KES": Decimal("2.33"),
        "THB": Decimal("8.50"),
    }
)


def to_decimal(raw: Any) -> Decimal:
    """Coerce ``raw`` to ``Decimal`` via ``str`` so floats keep their shortest repr."""

    if isinstance(raw, Decimal):
        return raw
    try:
        return Decimal(str(raw).strip())
    except (InvalidOperation, ValueError) as e:
        raise RecordValidationError(f"not a number: {raw!r}") from e


def convert(amount: Any, rate: Any) -> int:
    """Return ``floor(amount * rate)`` as an ``int``.

    Idempotent for a fixed rate: the result depends only on the inputs, never
    on a previously converted value. ``convert(0, rate) == 0``.
    """

    product = to_decimal(amount) * to_decimal(rate)
    return int(product.to_integral_value(rounding=ROUND_FLOOR))


@dataclass(frozen=True, slots=True)
class RateTable:
    """Currency -> rate mapping expressed in ``base_currency`` units."""

    rates: Mapping[str, Decimal] = field(default_factory=lambda: DEFAULT_RATES)
    base_currency: str = DEFAULT_BASE_CURRENCY

    def __post_init__(self) -> None:
        norm = {str(k).strip().upper(): to_decimal(v) for k, v in self.rates.items()}
        base = self.base_currency.strip().upper()
        norm[base] = Decimal(1)
        object.__setattr__(self, "rates", MappingProxyType(norm))
        object.__setattr__(self, "base_currency", base)

    @property
    def currencies(self) -> frozenset[str]:
        return frozenset(self.rates)

    def is_base(self, currency: str) -> bool:
        return currency.strip().upper() == self.base_currency

    def rate_for(self, currency: str) -> Decimal:
        """Rate for ``currency``; unknown currencies fall back to ``1``."""

        return self.rates.get(currency.strip().upper(), Decimal(1))

    def merged(self, overrides: Mapping[str, Any]) -> RateTable:
        return RateTable({**self.rates, **overrides}, base_currency=self.base_currency)

    @classmethod
    def from_json_file(
        cls,
        path: Path,
        *,
        base_currency: str = DEFAULT_BASE_CURRENCY,
        defaults: Mapping[str, Decimal] = DEFAULT_RATES,
    ) -> RateTable:
        """Load a JSON object of ``{"USD": 302.5, ...}`` merged over ``defaults``."""

        data = json.loads(path.read_text(encoding="utf-8"))
        if not isinstance(data, dict):
            raise ValueError(f"rates file must contain a JSON object: {path}")
        return cls(defaults, base_currency=base_currency).merged(data)


# ---------------------------------------------------------------------------
# Record-level helpers
# ---------------------------------------------------------------------------


def normalize_conversion[R: LedgerRecord](record: R, rates: RateTable) -> R:
    """Return ``record`` with ``exchange_rate``/``converted_amount`` consistent.

    - Base currency: both cleared.
    - Foreign currency: the record's own rate is kept (the table rate is used
      when it has none) and ``converted_amount`` recomputed from it.
    """

    if rates.is_base(record.currency):
        if record.exchange_rate is None and record.converted_amount is None:
            return record
        return record.model_copy(update={"exchange_rate": None, "converted_amount": None})

    rate = record.exchange_rate
    if rate is None:
        rate = rates.rate_for(record.currency)
    converted = convert(record.amount, rate)
    if rate == record.exchange_rate and converted == record.converted_amount:
        return record
    return record.model_copy(update={"exchange_rate": rate, "converted_amount": converted})


def edit_record[R: LedgerRecord](record: R, rates: RateTable, **changes: Any) -> R:
    """Apply field edits and recompute the derived amount.

    A currency change picks up the table rate for the new currency unless the
    same edit also supplies ``exchange_rate``. ``converted_amount`` cannot be
    edited directly.
    """

    if "converted_amount" in changes or "convertedAmount" in changes:
        raise RecordValidationError(
            "convertedAmount is derived and cannot be edited", fields=("convertedAmount",)
        )

    update = dict(changes)
    if "amount" in update:
        update["amount"] = to_decimal(update["amount"])
    if "exchange_rate" in update and update["exchange_rate"] is not None:
        update["exchange_rate"] = to_decimal(update["exchange_rate"])
    if "currency" in update:
        update["currency"] = str(update["currency"]).strip().upper()
        if update["currency"] != record.currency and "exchange_rate" not in update:
            update["exchange_rate"] = (
                None if rates.is_base(update["currency"]) else rates.rate_for(update["currency"])
            )

    # Round-trip through validation so edited fields get the same coercion as
    # loaded ones (dates, literals, aliases).
    data = record.model_dump()
    data.update(update)
    edited = type(record).from_input(data)
    return normalize_conversion(edited, rates)


def with_amount[R: LedgerRecord](record: R, amount: Any, rates: RateTable) -> R:
    return edit_record(record, rates, amount=amount)


def with_currency[R: LedgerRecord](record: R, currency: str, rates: RateTable) -> R:
    return edit_record(record, rates, currency=currency)


def with_exchange_rate[R: LedgerRecord](record: R, rate: Any, rates: RateTable) -> R:
    return edit_record(record, rates, exchange_rate=rate)


__all__ = [
    "DEFAULT_BASE_CURRENCY",
    "DEFAULT_RATES",
    "RateTable",
    "convert",
    "edit_record",
    "normalize_conversion",
    "to_decimal",
    "with_amount",
    "with_currency",
    "with_exchange_rate",
]
