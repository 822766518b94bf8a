"""Runtime settings and factories for stores and views.

Settings are resolved from environment variables (the CLI loads a local
``.env`` first) into an immutable :class:`LedgerSettings`:

- ``GEM_LEDGER_DATA_DIR``: data root, default ``./.gem_ledger``.
- ``GEM_LEDGER_BACKEND``: ``file`` (default) or ``sql``.
- ``DATABASE_URL``: SQLAlchemy URL for the ``sql`` backend; defaults to a
  SQLite file ``<data_dir>/ledger.db``.
- ``GEM_LEDGER_BASE_CURRENCY``: base currency code, default ``LKR``.
- ``GEM_LEDGER_RATES_FILE``: optional JSON object of rates merged over the
  built-in table.
- ``GEM_LEDGER_TOPOLOGIES_FILE``: optional JSON list replacing the built-in
  aggregation topologies.

Explicit keyword overrides passed to :func:`load_settings` win over the
environment.
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass
from enum import StrEnum
from pathlib import Path

from .backends import FileBackend, PartitionBackend, SqlBackend
from .currency import DEFAULT_BASE_CURRENCY, RateTable
from .errors import LedgerError
from .logging_setup import get_logger
from .models import RecordFamily
from .partitions import PartitionId
from .store import RecordStore
from .topology import TopologyRegistry
from .view import LedgerView

_logger = get_logger("gem_ledger.config")

DEFAULT_DATA_DIR = Path(".gem_ledger")


class BackendKind(StrEnum):
    FILE = "file"
    SQL = "sql"


class ConfigError(LedgerError):
    """Settings could not be resolved (bad backend name, unreadable file)."""


@dataclass(frozen=True, slots=True)
class LedgerSettings:
    data_dir: Path
    backend: BackendKind = BackendKind.FILE
    database_url: str | None = None
    base_currency: str = DEFAULT_BASE_CURRENCY
    rates_file: Path | None = None
    topologies_file: Path | None = None

    @property
    def resolved_database_url(self) -> str:
        if self.database_url:
            return self.database_url
        return f"sqlite+pysqlite:///{self.data_dir / 'ledger.db'}"


def _env_path(name: str) -> Path | None:
    raw = os.getenv(name)
    return Path(raw).expanduser() if raw and raw.strip() else None


def load_settings(
    *,
    data_dir: Path | None = None,
    backend: str | None = None,
    database_url: str | None = None,
    base_currency: str | None = None,
    rates_file: Path | None = None,
) -> LedgerSettings:
    raw_backend = (backend or os.getenv("GEM_LEDGER_BACKEND") or BackendKind.FILE.value).strip()
    try:
        kind = BackendKind(raw_backend.lower())
    except ValueError as e:
        raise ConfigError(f"unknown backend {raw_backend!r}; expected 'file' or 'sql'") from e

    return LedgerSettings(
        data_dir=data_dir or _env_path("GEM_LEDGER_DATA_DIR") or DEFAULT_DATA_DIR,
        backend=kind,
        database_url=database_url or os.getenv("DATABASE_URL") or None,
        base_currency=(
            base_currency or os.getenv("GEM_LEDGER_BASE_CURRENCY") or DEFAULT_BASE_CURRENCY
        ),
        rates_file=rates_file or _env_path("GEM_LEDGER_RATES_FILE"),
        topologies_file=_env_path("GEM_LEDGER_TOPOLOGIES_FILE"),
    )


# ---- Factories ----------------------------------------------------------------


def make_backend(settings: LedgerSettings) -> PartitionBackend:
    if settings.backend is BackendKind.SQL:
        settings.data_dir.mkdir(parents=True, exist_ok=True)
        return SqlBackend(settings.resolved_database_url)
    return FileBackend(settings.data_dir)


def make_rates(settings: LedgerSettings) -> RateTable:
    if settings.rates_file is None:
        return RateTable(base_currency=settings.base_currency)
    try:
        rates = RateTable.from_json_file(
            settings.rates_file, base_currency=settings.base_currency
        )
    except (OSError, ValueError) as e:
        raise ConfigError(f"cannot read rates file {settings.rates_file}: {e}") from e
    _logger.info("config:rates_loaded path=%s currencies=%d", settings.rates_file, len(rates.rates))
    return rates


def make_topologies(settings: LedgerSettings) -> TopologyRegistry:
    if settings.topologies_file is None:
        return TopologyRegistry()
    try:
        items = json.loads(settings.topologies_file.read_text(encoding="utf-8"))
        registry = TopologyRegistry.from_json_list(items)
    except (OSError, ValueError, KeyError, TypeError) as e:
        raise ConfigError(
            f"cannot read topologies file {settings.topologies_file}: {e}"
        ) from e
    _logger.info(
        "config:topologies_loaded path=%s count=%d", settings.topologies_file, len(registry)
    )
    return registry


class Ledger:
    """Backend, rate table and topologies resolved once from settings."""

    def __init__(self, settings: LedgerSettings) -> None:
        self.settings = settings
        self.backend = make_backend(settings)
        self.rates = make_rates(settings)
        self.topologies = make_topologies(settings)

    def store(self, family: RecordFamily | str) -> RecordStore:
        return RecordStore(self.backend, family, rates=self.rates)

    def view(self, family: RecordFamily | str, module: str, tab: str) -> LedgerView:
        return LedgerView(self.store(family), PartitionId(module, tab), topologies=self.topologies)

    def open_view(self, family: RecordFamily | str, module: str, tab: str) -> LedgerView:
        view = self.view(family, module, tab)
        view.open()
        return view


__all__ = [
    "BackendKind",
    "ConfigError",
    "Ledger",
    "LedgerSettings",
    "load_settings",
    "make_backend",
    "make_rates",
    "make_topologies",
]
