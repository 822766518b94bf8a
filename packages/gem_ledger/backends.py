"""Storage backends for serialized partitions.

A backend stores one opaque text payload (a JSON array) per partition key and
knows nothing about records. Two local implementations exist:

- :class:`FileBackend`: one ``<data_dir>/partitions/<key>.json`` file per
  partition. Writes target ``.tmp`` first and then ``os.replace`` into place,
  so a crash never leaves a half-written partition.
- :class:`SqlBackend`: one row per partition in the ``gl_partitions`` table of
  the shared ``db`` library (SQLite by default).

Both raise ``OSError``/``SQLAlchemyError`` on failure; translating those into
:class:`~gem_ledger.errors.StorageWriteError` is the store's job.
"""

from __future__ import annotations

import contextlib
import os
from pathlib import Path
from typing import Protocol, runtime_checkable
from urllib.parse import quote, unquote

from db.client import init_schema, session_scope
from db.models.ledger import GlPartition
from sqlalchemy import func, select

from .logging_setup import get_logger

_logger = get_logger("gem_ledger.backends")


@runtime_checkable
class PartitionBackend(Protocol):
    def read(self, key: str) -> str | None:
        """Return the stored payload, or ``None`` when the key was never written."""
        ...

    def write(self, key: str, payload: str, *, record_count: int) -> None:
        """Replace the stored payload for ``key``."""
        ...

    def keys(self) -> list[str]:
        """Return all stored partition keys, sorted."""
        ...


# ----------------------------------------------------------------------------
# File backend
# ----------------------------------------------------------------------------

_SUFFIX = ".json"


class FileBackend:
    """JSON-file-per-partition storage under ``root``."""

    def __init__(self, root: Path) -> None:
        self.root = Path(root) / "partitions"

    def _path(self, key: str) -> Path:
        # Percent-encode path separators and other unsafe characters so a tab
        # name can never escape the partitions directory.
        return self.root / (quote(key, safe=" -._()") + _SUFFIX)

    def read(self, key: str) -> str | None:
        path = self._path(key)
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None

    def write(self, key: str, payload: str, *, record_count: int) -> None:
        self.root.mkdir(parents=True, exist_ok=True)
        path = self._path(key)
        tmp = path.with_suffix(path.suffix + ".tmp")
        try:
            tmp.write_text(payload, encoding="utf-8")
            os.replace(tmp, path)
        except Exception:
            with contextlib.suppress(FileNotFoundError):
                tmp.unlink()
            raise
        _logger.debug(
            "file_backend:write key=%s records=%d path=%s",
            key,
            record_count,
            os.fspath(path),
        )

    def keys(self) -> list[str]:
        if not self.root.is_dir():
            return []
        return sorted(
            unquote(p.name[: -len(_SUFFIX)]) for p in self.root.glob("*" + _SUFFIX)
        )


# ----------------------------------------------------------------------------
# SQL backend
# ----------------------------------------------------------------------------


class SqlBackend:
    """One ``gl_partitions`` row per partition in the database at ``database_url``."""

    def __init__(self, database_url: str) -> None:
        self.database_url = database_url
        init_schema(database_url=database_url)

    def read(self, key: str) -> str | None:
        with session_scope(database_url=self.database_url) as session:
            row = session.get(GlPartition, key)
            return row.payload if row is not None else None

    def write(self, key: str, payload: str, *, record_count: int) -> None:
        with session_scope(database_url=self.database_url) as session:
            row = session.get(GlPartition, key)
            if row is None:
                session.add(
                    GlPartition(partition_key=key, payload=payload, record_count=record_count)
                )
            else:
                row.payload = payload
                row.record_count = record_count
                row.updated_at = func.current_timestamp()
        _logger.debug("sql_backend:write key=%s records=%d", key, record_count)

    def keys(self) -> list[str]:
        with session_scope(database_url=self.database_url) as session:
            stmt = select(GlPartition.partition_key).order_by(GlPartition.partition_key)
            return list(session.execute(stmt).scalars())


__all__ = [
    "FileBackend",
    "PartitionBackend",
    "SqlBackend",
]
