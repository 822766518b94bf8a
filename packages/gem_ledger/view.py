"""Consumer-facing ledger view for one ``(family, module, tab)``.

A view is what a presentation template (or the CLI) talks to:

- ``open()`` mounts the view: loads the partition, or aggregates every member
  partition when the tab is the root of an aggregation topology.
- ``save(record, is_new=...)`` validates the record, recomputes its converted
  amount, and persists it. Plain views patch their own partition through a
  :class:`~gem_ledger.store.PartitionSession`; aggregate views route the
  write to the owning partition and re-aggregate so the displayed list always
  reflects storage.
- ``delete(record_id)`` removes a record from the partition it belongs to.

Writes attempted before ``open()`` are suppressed and return ``None``. When
persistence fails the exception propagates and the displayed records are left
exactly as they were.
"""

from __future__ import annotations

from typing import Any

from .aggregate import aggregate_topology
from .currency import edit_record, normalize_conversion
from .errors import RecordNotFoundError
from .logging_setup import get_logger
from .models import LedgerRecord, validate_for_save
from .partitions import PartitionId
from .router import WriteBackRouter
from .store import PartitionSession, RecordStore
from .topology import AggregationTopology, TopologyRegistry

_logger = get_logger("gem_ledger.view")


class LedgerView:
    def __init__(
        self,
        store: RecordStore,
        partition: PartitionId,
        *,
        topologies: TopologyRegistry | None = None,
    ) -> None:
        self.store = store
        self.partition = partition
        registry = topologies if topologies is not None else TopologyRegistry()
        self.topology: AggregationTopology | None = registry.find(store.family, partition)
        self._session = PartitionSession(store, partition)
        self._router = WriteBackRouter(
            store,
            partition,
            self.topology.members() if self.topology is not None else (),
        )
        self._records: list[LedgerRecord] = []
        self._loaded = False

    # -- state ---------------------------------------------------------------

    @property
    def is_aggregate(self) -> bool:
        return self.topology is not None

    @property
    def has_loaded(self) -> bool:
        return self._loaded

    @property
    def records(self) -> list[LedgerRecord]:
        if self.is_aggregate:
            return list(self._records)
        return self._session.records

    def get(self, record_id: str) -> LedgerRecord:
        for r in self.records:
            if r.id == record_id:
                return r
        raise RecordNotFoundError(record_id)

    # -- lifecycle -----------------------------------------------------------

    def open(self) -> list[LedgerRecord]:
        if self.is_aggregate:
            self.refresh()
        else:
            self._session.load()
        self._loaded = True
        _logger.debug(
            "view:open partition=%s aggregate=%s records=%d",
            self.partition,
            self.is_aggregate,
            len(self.records),
        )
        return self.records

    def refresh(self) -> list[LedgerRecord]:
        if self.topology is not None:
            self._records = aggregate_topology(self.store, self.topology, current=self.partition)
        else:
            self._session.load()
        return self.records

    def close(self) -> None:
        self._session.close()
        self._records = []
        self._loaded = False

    # -- writes --------------------------------------------------------------

    def new_record(self, **fields: Any) -> LedgerRecord:
        """Build an unsaved record owned by this view's partition."""

        record = self.store.record_type.new(self.partition, **fields)
        return normalize_conversion(record, self.store.rates)

    def edit(self, record_id: str, **changes: Any) -> LedgerRecord:
        """Return the displayed record with ``changes`` applied (not yet saved)."""

        return edit_record(self.get(record_id), self.store.rates, **changes)

    def save(self, record: LedgerRecord, *, is_new: bool) -> PartitionId | None:
        """Validate and persist ``record``; return the partition written to."""

        validate_for_save(record, known_currencies=self.store.rates.currencies)
        self._router.target_for(record)
        record = normalize_conversion(record, self.store.rates)
        if not self._loaded:
            self._suppressed("save", record.id)
            return None

        if not self.is_aggregate:
            if is_new:
                self._session.insert(record)
            else:
                self._session.update(record)
            return self.partition

        target = self._router.route(record, is_new=is_new)
        self.refresh()
        return target

    def delete(self, record_id: str) -> PartitionId | None:
        if not self._loaded:
            self._suppressed("delete", record_id)
            return None

        if not self.is_aggregate:
            self._session.delete(record_id)
            return self.partition

        # The origin tag is read before anything is removed.
        record = self.get(record_id)
        target = self._router.delete(record)
        self.refresh()
        return target

    def _suppressed(self, op: str, record_id: str) -> None:
        _logger.warning(
            "view:%s_suppressed; view not opened partition=%s id=%s",
            op,
            self.partition,
            record_id,
        )


__all__ = ["LedgerView"]
