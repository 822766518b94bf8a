from __future__ import annotations

from pathlib import Path

import pytest

from gem_ledger.backends import FileBackend, PartitionBackend, SqlBackend
from gem_ledger.currency import RateTable
from gem_ledger.store import RecordStore
from tests.helpers.db import bootstrap_sqlite_db, stored_record_counts
from tests.helpers.records import KENYA, capital


@pytest.fixture
def sqlite_url(tmp_path: Path) -> str:
    return bootstrap_sqlite_db(tmp_path / "db" / "ledger.db")


def test_backends_satisfy_protocol(data_dir: Path, sqlite_url: str) -> None:
    assert isinstance(FileBackend(data_dir), PartitionBackend)
    assert isinstance(SqlBackend(sqlite_url), PartitionBackend)


# ---- file backend ----------------------------------------------------------------


def test_file_backend_read_write(data_dir: Path) -> None:
    backend = FileBackend(data_dir)
    assert backend.read("capital_kenya_Capital") is None
    assert backend.keys() == []

    backend.write("capital_kenya_Capital", "[]", record_count=0)
    backend.write("capital_kenya_Capital", '[{"id":"a"}]', record_count=1)

    assert backend.read("capital_kenya_Capital") == '[{"id":"a"}]'
    assert backend.keys() == ["capital_kenya_Capital"]
    assert not list((data_dir / "partitions").glob("*.tmp"))


def test_file_backend_keeps_odd_tab_names_inside_root(data_dir: Path) -> None:
    backend = FileBackend(data_dir)
    key = "sheet_kenya_../Cash/In Hand"

    backend.write(key, "[]", record_count=0)

    files = list((data_dir / "partitions").iterdir())
    assert len(files) == 1
    assert files[0].parent == data_dir / "partitions"
    assert backend.keys() == [key]
    assert backend.read(key) == "[]"


# ---- sql backend -----------------------------------------------------------------


def test_sql_backend_upserts_rows(sqlite_url: str) -> None:
    backend = SqlBackend(sqlite_url)
    assert backend.read("capital_kenya_Capital") is None

    backend.write("capital_kenya_Capital", "[]", record_count=0)
    backend.write("capital_kenya_Capital", '[{"id":"a"}]', record_count=1)
    backend.write("expense_outstanding_ChinaSales", "[]", record_count=0)

    assert backend.read("capital_kenya_Capital") == '[{"id":"a"}]'
    assert backend.keys() == ["capital_kenya_Capital", "expense_outstanding_ChinaSales"]
    assert stored_record_counts(sqlite_url) == {
        "capital_kenya_Capital": 1,
        "expense_outstanding_ChinaSales": 0,
    }


def test_record_store_over_sql_backend(sqlite_url: str) -> None:
    store = RecordStore(SqlBackend(sqlite_url), "capital", rates=RateTable())

    store.save(KENYA, [capital(KENYA, "k1", 100, "USD")])
    (loaded,) = store.load(KENYA)

    assert loaded.converted_amount == 30250
    assert loaded.origin == KENYA
