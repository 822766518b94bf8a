"""Pytest configuration for test isolation.

The ledger persists partitions under a data directory (``./.gem_ledger`` by
default) and reads its backend, rates and topologies from the environment.
To keep tests hermetic, an autouse fixture points ``GEM_LEDGER_DATA_DIR`` at a
per-test temporary directory and clears every other ledger variable so a
developer's shell or ``.env`` cannot leak into a run.
"""

from __future__ import annotations

import os
from collections.abc import Iterator
from pathlib import Path

import pytest
from db.client import dispose_engines

from gem_ledger.backends import FileBackend
from gem_ledger.currency import RateTable
from gem_ledger.store import RecordStore

_LEDGER_ENV_VARS = (
    "DATABASE_URL",
    "GEM_LEDGER_BACKEND",
    "GEM_LEDGER_BASE_CURRENCY",
    "GEM_LEDGER_RATES_FILE",
    "GEM_LEDGER_TOPOLOGIES_FILE",
    "GEM_LEDGER_LOG_LEVEL",
)


@pytest.fixture(autouse=True)
def _isolate_data_dir(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Iterator[Path]:
    """Force a per-test data root so tests don't share on-disk state."""

    data_root = tmp_path / "data"
    data_root.mkdir(parents=True, exist_ok=True)
    for name in _LEDGER_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("GEM_LEDGER_DATA_DIR", os.fspath(data_root))
    # Run from the temp dir so the CLI never picks up a real ``.env``.
    monkeypatch.chdir(tmp_path)
    yield data_root
    dispose_engines()


@pytest.fixture
def data_dir(_isolate_data_dir: Path) -> Path:
    return _isolate_data_dir


@pytest.fixture
def rates() -> RateTable:
    return RateTable()


@pytest.fixture
def backend(data_dir: Path) -> FileBackend:
    return FileBackend(data_dir)


@pytest.fixture
def capital_store(backend: FileBackend, rates: RateTable) -> RecordStore:
    return RecordStore(backend, "capital", rates=rates)


@pytest.fixture
def expense_store(backend: FileBackend, rates: RateTable) -> RecordStore:
    return RecordStore(backend, "expense", rates=rates)

