"""Write-back routing for edits made from an aggregate view.

A record displayed in an aggregate view may belong to any member partition.
The router sends each insert/update/delete to the partition the record
actually belongs to: its origin when that differs from the displayed
partition, otherwise the displayed partition itself.

Each routed write reloads the target partition from storage, patches it and
saves it whole, so the write never depends on the (possibly stale) displayed
list. A failed save raises :class:`~gem_ledger.errors.StorageWriteError` and
leaves storage as it was.
"""

from __future__ import annotations

from collections.abc import Sequence

from .errors import ForeignRecordError
from .logging_setup import get_logger
from .models import LedgerRecord
from .partitions import PartitionId
from .store import RecordStore, delete_record, insert_record, update_record

_logger = get_logger("gem_ledger.router")


class WriteBackRouter:
    def __init__(
        self,
        store: RecordStore,
        current: PartitionId,
        members: Sequence[PartitionId] = (),
    ) -> None:
        self.store = store
        self.current = current
        self.members: tuple[PartitionId, ...] = (current, *members)

    def target_for(self, record: LedgerRecord) -> PartitionId:
        """Partition that owns ``record`` from this view's point of view."""

        origin = record.origin
        if origin.same_as(self.current):
            return self.current
        for member in self.members:
            if member.same_as(origin):
                return member
        raise ForeignRecordError(
            f"record {record.id} belongs to {origin}, which is not shown in {self.current}"
        )

    def route(self, record: LedgerRecord, *, is_new: bool) -> PartitionId:
        """Insert or update ``record`` in its owning partition; return that partition."""

        target = self.target_for(record)
        existing = self.store.load(target)
        patched = insert_record(existing, record) if is_new else update_record(existing, record)
        self.store.save(target, patched)
        _logger.info(
            "router:%s id=%s view=%s target=%s",
            "insert" if is_new else "update",
            record.id,
            self.current,
            target,
        )
        return target

    def delete(self, record: LedgerRecord) -> PartitionId:
        """Remove ``record`` from its owning partition, using its origin tag."""

        target = self.target_for(record)
        existing = self.store.load(target)
        self.store.save(target, delete_record(existing, record.id))
        _logger.info("router:delete id=%s view=%s target=%s", record.id, self.current, target)
        return target


__all__ = ["WriteBackRouter"]
