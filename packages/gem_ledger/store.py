"""Record store: load and save whole partitions of one record family.

Scope:
- ``RecordStore.load``/``save`` read and fully overwrite one partition through
  a :class:`~gem_ledger.backends.PartitionBackend`. There are no partial or
  merge semantics; the last save wins.
- ``insert_record``/``update_record``/``delete_record`` are pure functions over
  an in-memory list; callers persist the result.
- ``PartitionSession`` tracks the per-partition lifecycle
  (unloaded -> loaded -> dirty/clean -> unloaded) and refuses to save before
  the initial load so a freshly mounted, still-empty list can never overwrite
  persisted data.

Every record written to a partition is stamped with that partition as its
origin and normalized for currency conversion, so what is on disk always
satisfies the record invariants.
"""

from __future__ import annotations

import json
from collections.abc import Iterable, Sequence
from enum import StrEnum

from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError

from .backends import PartitionBackend
from .currency import RateTable, normalize_conversion
from .errors import RecordNotFoundError, RecordValidationError, StorageWriteError
from .logging_setup import get_logger
from .models import LedgerRecord, RecordFamily, record_type_for
from .partitions import PartitionId

_logger = get_logger("gem_ledger.store")


# ----------------------------------------------------------------------------
# Pure list operations
# ----------------------------------------------------------------------------


def insert_record[R: LedgerRecord](records: Sequence[R], record: R) -> list[R]:
    """Return a new list with ``record`` prepended (newest first)."""

    if any(r.id == record.id for r in records):
        raise RecordValidationError(f"record id already exists: {record.id}", fields=("id",))
    return [record, *records]


def update_record[R: LedgerRecord](records: Sequence[R], record: R) -> list[R]:
    """Return a new list with the record sharing ``record.id`` replaced in place."""

    out: list[R] = []
    found = False
    for r in records:
        if r.id == record.id:
            out.append(record)
            found = True
        else:
            out.append(r)
    if not found:
        raise RecordNotFoundError(record.id)
    return out


def delete_record[R: LedgerRecord](records: Sequence[R], record_id: str) -> list[R]:
    """Return a new list without the record ``record_id``."""

    out = [r for r in records if r.id != record_id]
    if len(out) == len(records):
        raise RecordNotFoundError(record_id)
    return out


# ----------------------------------------------------------------------------
# Store
# ----------------------------------------------------------------------------


class RecordStore:
    """Load/save partitions of one record family through a backend."""

    def __init__(
        self,
        backend: PartitionBackend,
        family: RecordFamily | str,
        *,
        rates: RateTable | None = None,
    ) -> None:
        self.backend = backend
        self.family = RecordFamily(family)
        self.record_type = record_type_for(self.family)
        self.rates = rates or RateTable()

    def key_of(self, partition: PartitionId) -> str:
        return partition.key(self.family.value)

    def load(self, partition: PartitionId) -> list[LedgerRecord]:
        """Return the partition's records; ``[]`` when never written.

        Malformed payloads (undecodable bytes, invalid JSON, not an array,
        records failing validation) are logged and treated as an empty partition.
        """

        key = self.key_of(partition)
        try:
            payload = self.backend.read(key)
            if payload is None:
                return []
            raw = json.loads(payload)
            if not isinstance(raw, list):
                raise TypeError(f"expected a JSON array, got {type(raw).__name__}")
            records = [self._parse_item(item, partition) for item in raw]
        except (UnicodeDecodeError, json.JSONDecodeError, TypeError, ValidationError) as e:
            _logger.error(
                "store:load_failed; treating partition as empty key=%s error=%s",
                key,
                e,
                exc_info=True,
            )
            return []

        _logger.debug("store:load key=%s records=%d", key, len(records))
        return records

    def _parse_item(self, item: object, partition: PartitionId) -> LedgerRecord:
        if not isinstance(item, dict):
            raise TypeError(f"expected a JSON object, got {type(item).__name__}")
        data = dict(item)
        # The partition a record is stored in is authoritative for its origin.
        data.pop("source_module", None)
        data.pop("source_tab", None)
        data["sourceModule"] = partition.module
        data["sourceTab"] = partition.tab
        return self.record_type.model_validate(data)

    def prepare(self, partition: PartitionId, records: Iterable[LedgerRecord]) -> list[LedgerRecord]:
        """Stamp origin and normalize conversion exactly as ``save`` would."""

        out: list[LedgerRecord] = []
        for r in records:
            if not isinstance(r, self.record_type):
                raise TypeError(
                    f"{self.family.value} partition cannot hold {type(r).__name__} records"
                )
            if r.origin != partition:
                r = r.with_origin(partition)
            out.append(normalize_conversion(r, self.rates))
        return out

    def save(self, partition: PartitionId, records: Iterable[LedgerRecord]) -> list[LedgerRecord]:
        """Overwrite the partition with ``records`` and return what was written.

        Raises :class:`StorageWriteError` when the backend fails; nothing is
        considered committed in that case.
        """

        key = self.key_of(partition)
        prepared = self.prepare(partition, records)
        payload = json.dumps(
            [r.to_json_dict() for r in prepared],
            ensure_ascii=False,
            separators=(",", ":"),
        )
        try:
            self.backend.write(key, payload, record_count=len(prepared))
        except (OSError, SQLAlchemyError) as e:
            _logger.error("store:save_failed key=%s error=%s", key, e, exc_info=True)
            raise StorageWriteError(key, e) from e

        _logger.info("store:save key=%s records=%d", key, len(prepared))
        return prepared


# ----------------------------------------------------------------------------
# Per-partition lifecycle
# ----------------------------------------------------------------------------


class PartitionState(StrEnum):
    UNLOADED = "unloaded"
    CLEAN = "clean"
    DIRTY = "dirty"


class PartitionSession:
    """In-memory working copy of one partition with a load-before-save guard.

    With ``autosave`` (the default) every mutation is persisted immediately,
    mirroring the save-on-change behavior of the ledger views; the working
    copy only changes once the save succeeded. Without it, mutations mark the
    session dirty until :meth:`save` is called.

    Before :meth:`load` has completed, saves are suppressed: mutations only
    touch the working copy and nothing reaches storage.
    """

    def __init__(
        self, store: RecordStore, partition: PartitionId, *, autosave: bool = True
    ) -> None:
        self.store = store
        self.partition = partition
        self.autosave = autosave
        self.state = PartitionState.UNLOADED
        self._records: list[LedgerRecord] = []

    @property
    def has_loaded(self) -> bool:
        return self.state is not PartitionState.UNLOADED

    @property
    def records(self) -> list[LedgerRecord]:
        return list(self._records)

    def load(self) -> list[LedgerRecord]:
        self._records = self.store.load(self.partition)
        self.state = PartitionState.CLEAN
        return self.records

    def _apply(self, records: list[LedgerRecord]) -> bool:
        if not self.has_loaded:
            self._suppressed(len(records))
            self._records = records
            return False
        if self.autosave:
            self._records = self.store.save(self.partition, records)
            self.state = PartitionState.CLEAN
            return True
        self._records = records
        self.state = PartitionState.DIRTY
        return False

    def replace(self, records: Iterable[LedgerRecord]) -> bool:
        return self._apply(list(records))

    def insert(self, record: LedgerRecord) -> bool:
        return self._apply(insert_record(self._records, record))

    def update(self, record: LedgerRecord) -> bool:
        return self._apply(update_record(self._records, record))

    def delete(self, record_id: str) -> bool:
        return self._apply(delete_record(self._records, record_id))

    def save(self) -> bool:
        """Persist the working copy; suppressed (returns ``False``) before load."""

        if not self.has_loaded:
            self._suppressed(len(self._records))
            return False
        self._records = self.store.save(self.partition, self._records)
        self.state = PartitionState.CLEAN
        return True

    def _suppressed(self, pending: int) -> None:
        _logger.warning(
            "store:save_suppressed; partition not loaded yet key=%s pending=%d",
            self.store.key_of(self.partition),
            pending,
        )

    def close(self) -> None:
        self._records = []
        self.state = PartitionState.UNLOADED


__all__ = [
    "PartitionSession",
    "PartitionState",
    "RecordStore",
    "delete_record",
    "insert_record",
    "update_record",
]
