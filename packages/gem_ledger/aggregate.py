"""Aggregation of several partitions into one displayed collection.

The aggregate of a view is the current partition's own records followed by the
records of each source partition, in the topology's declared order. Every
record comes back stamped with the partition it was loaded from (the store
does the stamping), which is what the write-back router relies on.

Ids are expected to be globally unique. When the same id shows up in two
partitions the first occurrence wins and the rest are dropped with a warning,
rather than rendering duplicate rows that would route ambiguously.
"""

from __future__ import annotations

from collections.abc import Iterable

from .logging_setup import get_logger
from .models import LedgerRecord
from .partitions import PartitionId
from .store import RecordStore
from .topology import AggregationTopology

_logger = get_logger("gem_ledger.aggregate")


def _unique_partitions(
    current: PartitionId, sources: Iterable[PartitionId]
) -> list[PartitionId]:
    out = [current]
    for s in sources:
        if not any(s.same_as(p) for p in out):
            out.append(s)
    return out


def aggregate(
    store: RecordStore,
    current: PartitionId,
    sources: Iterable[PartitionId],
) -> list[LedgerRecord]:
    """Union ``current`` and ``sources`` into one list, tagged by origin."""

    out: list[LedgerRecord] = []
    seen: dict[str, PartitionId] = {}
    partitions = _unique_partitions(current, sources)
    for partition in partitions:
        for record in store.load(partition):
            first = seen.get(record.id)
            if first is not None:
                _logger.warning(
                    "aggregate:duplicate_id dropped id=%s kept_from=%s dropped_from=%s",
                    record.id,
                    first,
                    partition,
                )
                continue
            seen[record.id] = partition
            out.append(record)

    _logger.debug(
        "aggregate:done current=%s partitions=%d records=%d",
        current,
        len(partitions),
        len(out),
    )
    return out


def aggregate_topology(
    store: RecordStore,
    topology: AggregationTopology,
    *,
    current: PartitionId | None = None,
) -> list[LedgerRecord]:
    """Aggregate a topology, reading the root under ``current`` when given.

    ``current`` lets a view opened as e.g. ``"payable / capital"`` keep its own
    partition key while still matching the topology root by normalized name.
    """

    return aggregate(store, current or topology.root, topology.sources)


__all__ = ["aggregate", "aggregate_topology"]
