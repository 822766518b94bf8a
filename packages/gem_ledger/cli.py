"""Typer console interface for ``gem_ledger``.

Every command addresses one view by ``FAMILY MODULE TAB`` (for example
``capital payable Capital``). Opening an aggregate view reads all of its
member partitions; edits made through it are written back to the partition
each record came from.

Settings come from the environment (a local ``.env`` is loaded first, without
overriding variables that are already set); root options override them.
Ledger errors are reported on stderr with exit code 1.
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from decimal import Decimal
from pathlib import Path
from typing import Annotated, Any

import typer
from dotenv import load_dotenv
from pydantic.alias_generators import to_snake
from rich.console import Console
from rich.table import Table

from .config import Ledger, LedgerSettings, load_settings
from .currency import convert
from .errors import LedgerError
from .logging_setup import configure_logging
from .models import LedgerRecord, RecordFamily
from .summary import RecordFilter, base_amount, filter_records, summarize
from .view import LedgerView

app = typer.Typer(
    name="gem-ledger",
    no_args_is_help=True,
    add_completion=False,
    help="Browse and edit the partitioned gem back-office ledgers.",
)
console = Console()
err_console = Console(stderr=True)


# ---- Helpers --------------------------------------------------------------------


def _settings(ctx: typer.Context) -> LedgerSettings:
    settings = ctx.obj
    if not isinstance(settings, LedgerSettings):
        settings = load_settings()
    return settings


@contextmanager
def _reporting_errors() -> Iterator[None]:
    try:
        yield
    except LedgerError as e:
        err_console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1) from e


def _parse_assignments(pairs: list[str] | None) -> dict[str, str]:
    out: dict[str, str] = {}
    for pair in pairs or []:
        name, sep, value = pair.partition("=")
        if not sep or not name.strip():
            raise typer.BadParameter(f"expected FIELD=VALUE, got {pair!r}", param_hint="--set")
        out[to_snake(name.strip())] = value.strip()
    return out


def _collect_fields(common: dict[str, Any], extra: list[str] | None) -> dict[str, Any]:
    fields = {k: v for k, v in common.items() if v is not None}
    fields.update(_parse_assignments(extra))
    return fields


def _label(record: LedgerRecord) -> str:
    for name in ("title", "vendor_name", "description"):
        value = getattr(record, name, None)
        if value:
            return str(value)
    return ""


def _fmt_money(value: Decimal | int | None) -> str:
    if value is None:
        return ""
    return f"{value:,}"


def _render(view: LedgerView, records: list[LedgerRecord]) -> None:
    rates = view.store.rates
    title = f"{view.store.family.value}: {view.partition}"
    if view.is_aggregate:
        title += " (aggregate)"
    table = Table(title=title)
    table.add_column("ID", no_wrap=True)
    table.add_column("Date")
    table.add_column("Code")
    table.add_column("Entry")
    table.add_column("Amount", justify="right")
    table.add_column("Cur")
    table.add_column(rates.base_currency, justify="right")
    table.add_column("Source")
    for r in records:
        table.add_row(
            r.id,
            r.date.isoformat(),
            r.code,
            _label(r),
            _fmt_money(r.amount),
            r.currency,
            _fmt_money(base_amount(r, rates)),
            str(r.origin),
        )
    console.print(table)
    console.print(f"{len(records)} record(s)")


# ---- Root ---------------------------------------------------------------------------


@app.callback()
def _root(
    ctx: typer.Context,
    data_dir: Annotated[
        Path | None, typer.Option(help="Data directory (overrides GEM_LEDGER_DATA_DIR).")
    ] = None,
    backend: Annotated[
        str | None, typer.Option(help="Storage backend: file or sql (overrides GEM_LEDGER_BACKEND).")
    ] = None,
    database_url: Annotated[
        str | None, typer.Option(help="SQLAlchemy URL for the sql backend (overrides DATABASE_URL).")
    ] = None,
    log_level: Annotated[
        str | None, typer.Option(help="Logging level (overrides GEM_LEDGER_LOG_LEVEL).")
    ] = None,
) -> None:
    """Load ``.env``, configure logging and resolve settings for subcommands."""

    load_dotenv(dotenv_path=Path.cwd() / ".env", override=False)
    configure_logging(log_level)
    with _reporting_errors():
        ctx.obj = load_settings(data_dir=data_dir, backend=backend, database_url=database_url)


# ---- Commands -----------------------------------------------------------------------

FamilyArg = Annotated[RecordFamily, typer.Argument(help="Record family: capital, expense or sheet.")]
ModuleArg = Annotated[str, typer.Argument(help="Module id, e.g. kenya.")]
TabArg = Annotated[str, typer.Argument(help="Tab id, e.g. Capital.")]
SetOption = Annotated[
    list[str] | None,
    typer.Option("--set", help="Extra FIELD=VALUE assignment (repeatable)."),
]


@app.command("list")
def list_cmd(
    ctx: typer.Context,
    family: FamilyArg,
    module: ModuleArg,
    tab: TabArg,
    search: Annotated[str, typer.Option(help="Case-insensitive text search.")] = "",
    currency: Annotated[str | None, typer.Option(help="Only this currency.")] = None,
    category: Annotated[str | None, typer.Option(help="Only this category.")] = None,
    source_tab: Annotated[str | None, typer.Option(help="Only records from this tab.")] = None,
) -> None:
    """Show a view's records, newest first."""

    with _reporting_errors():
        view = Ledger(_settings(ctx)).open_view(family, module, tab)
        flt = RecordFilter(
            query=search,
            currency=currency.upper() if currency else None,
            category=category,
            source_tab=source_tab,
        )
        _render(view, filter_records(view.records, flt))


@app.command("add")
def add_cmd(
    ctx: typer.Context,
    family: FamilyArg,
    module: ModuleArg,
    tab: TabArg,
    amount: Annotated[str, typer.Option(help="Amount in the record's currency.")],
    currency: Annotated[str, typer.Option(help="Currency code.")] = "LKR",
    vendor: Annotated[str | None, typer.Option(help="Vendor name.")] = None,
    title: Annotated[str | None, typer.Option(help="Title (expense ledgers).")] = None,
    description: Annotated[str | None, typer.Option(help="Description.")] = None,
    date: Annotated[str | None, typer.Option(help="Entry date, YYYY-MM-DD (default today).")] = None,
    code: Annotated[str | None, typer.Option(help="Entry code (generated when omitted).")] = None,
    exchange_rate: Annotated[
        str | None, typer.Option(help="Override the table rate for this entry.")
    ] = None,
    assignments: SetOption = None,
) -> None:
    """Create a record in a view's partition."""

    fields = _collect_fields(
        {
            "amount": amount,
            "currency": currency,
            "title": title,
            "description": description,
            "date": date,
            "code": code,
            "exchange_rate": exchange_rate,
        },
        assignments,
    )
    if vendor is not None:
        fields["vendor" if family is RecordFamily.SHEET else "vendor_name"] = vendor

    with _reporting_errors():
        view = Ledger(_settings(ctx)).open_view(family, module, tab)
        record = view.new_record(**fields)
        target = view.save(record, is_new=True)
    console.print(f"[green]Saved[/green] {record.id} ({record.code}) to {target}")


@app.command("edit")
def edit_cmd(
    ctx: typer.Context,
    family: FamilyArg,
    module: ModuleArg,
    tab: TabArg,
    record_id: Annotated[str, typer.Argument(help="Id of the record to edit.")],
    amount: Annotated[str | None, typer.Option(help="New amount.")] = None,
    currency: Annotated[str | None, typer.Option(help="New currency code.")] = None,
    exchange_rate: Annotated[str | None, typer.Option(help="New exchange rate.")] = None,
    assignments: SetOption = None,
) -> None:
    """Edit a record shown in a view; aggregate views write to its origin."""

    changes = _collect_fields(
        {"amount": amount, "currency": currency, "exchange_rate": exchange_rate}, assignments
    )
    if not changes:
        err_console.print("[yellow]Nothing to change.[/yellow]")
        raise typer.Exit(1)

    with _reporting_errors():
        view = Ledger(_settings(ctx)).open_view(family, module, tab)
        record = view.edit(record_id, **changes)
        target = view.save(record, is_new=False)
    console.print(f"[green]Updated[/green] {record_id} in {target}")


@app.command("delete")
def delete_cmd(
    ctx: typer.Context,
    family: FamilyArg,
    module: ModuleArg,
    tab: TabArg,
    record_id: Annotated[str, typer.Argument(help="Id of the record to delete.")],
) -> None:
    """Delete a record shown in a view from the partition it belongs to."""

    with _reporting_errors():
        view = Ledger(_settings(ctx)).open_view(family, module, tab)
        target = view.delete(record_id)
    console.print(f"[green]Deleted[/green] {record_id} from {target}")


@app.command("summary")
def summary_cmd(
    ctx: typer.Context,
    family: FamilyArg,
    module: ModuleArg,
    tab: TabArg,
) -> None:
    """Totals and breakdowns for a view."""

    with _reporting_errors():
        view = Ledger(_settings(ctx)).open_view(family, module, tab)
        stats = summarize(view.records, view.store.rates)
    base = view.store.rates.base_currency

    console.print(f"Entries: {stats.count} ({stats.entries_this_month} this month)")
    console.print(f"Total {base}: {_fmt_money(stats.total_base)}")
    console.print(f"Average {base}: {_fmt_money(stats.average_base)}")
    console.print(f"Foreign-currency entries: {stats.foreign_count}")

    if stats.totals_by_currency:
        table = Table(title="By currency")
        table.add_column("Currency")
        table.add_column("Amount", justify="right")
        for cur, total in stats.totals_by_currency.items():
            table.add_row(cur, _fmt_money(total))
        console.print(table)
    if stats.by_category:
        table = Table(title=f"By category ({base})")
        table.add_column("Category")
        table.add_column("Total", justify="right")
        for cat, total in stats.by_category.items():
            table.add_row(cat, _fmt_money(total))
        console.print(table)
    if view.is_aggregate:
        table = Table(title="By source")
        table.add_column("Partition")
        table.add_column("Entries", justify="right")
        for source, n in stats.by_source.items():
            table.add_row(source, str(n))
        console.print(table)


@app.command("rates")
def rates_cmd(ctx: typer.Context) -> None:
    """Show the active exchange-rate table."""

    with _reporting_errors():
        rates = Ledger(_settings(ctx)).rates
    table = Table(title=f"Rates ({rates.base_currency} per unit)")
    table.add_column("Currency")
    table.add_column("Rate", justify="right")
    for cur, rate in sorted(rates.rates.items()):
        table.add_row(cur, str(rate))
    console.print(table)


@app.command("convert")
def convert_cmd(
    ctx: typer.Context,
    amount: Annotated[str, typer.Argument(help="Amount to convert.")],
    currency: Annotated[str, typer.Argument(help="Currency of the amount.")],
) -> None:
    """Convert an amount into the base currency (rounded down)."""

    with _reporting_errors():
        rates = Ledger(_settings(ctx)).rates
        converted = convert(amount, rates.rate_for(currency))
    console.print(f"{converted} {rates.base_currency}")


@app.command("partitions")
def partitions_cmd(ctx: typer.Context) -> None:
    """List stored partition keys."""

    with _reporting_errors():
        keys = Ledger(_settings(ctx)).backend.keys()
    if not keys:
        console.print("[yellow]No partitions stored yet.[/yellow]")
        return
    for key in keys:
        console.print(key, markup=False, highlight=False)


if __name__ == "__main__":  # pragma: no cover
    app()
