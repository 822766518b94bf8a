"""Declarative aggregation topology.

An :class:`AggregationTopology` names one aggregate view (the "mother tab")
and the fixed list of source partitions whose records it displays, for one
record family. A single aggregator consumes every topology; adding a
contributing tab means adding a :class:`PartitionId` to ``sources``.

Membership tests compare tab names after ``normalize_tab_name`` so that
"payment  received " and "Payment Received" resolve to the same view.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from typing import Any

from .models import RecordFamily
from .partitions import PartitionId


@dataclass(frozen=True, slots=True)
class AggregationTopology:
    family: RecordFamily
    root: PartitionId
    sources: tuple[PartitionId, ...]

    def is_root(self, partition: PartitionId) -> bool:
        return self.root.same_as(partition)

    def contains_source(self, partition: PartitionId) -> bool:
        return any(s.same_as(partition) for s in self.sources)

    def members(self) -> tuple[PartitionId, ...]:
        """Root first, then sources in declared order, without repeats."""

        out: list[PartitionId] = [self.root]
        for s in self.sources:
            if not any(s.same_as(seen) for seen in out):
                out.append(s)
        return tuple(out)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> AggregationTopology:
        """Build from ``{"family": ..., "root": [module, tab], "sources": [[module, tab], ...]}``."""

        root_module, root_tab = data["root"]
        return cls(
            family=RecordFamily(data["family"]),
            root=PartitionId(root_module, root_tab),
            sources=tuple(PartitionId(m, t) for m, t in data["sources"]),
        )


def _topology(family: RecordFamily, root: tuple[str, str], *sources: tuple[str, str]):
    return AggregationTopology(
        family=family,
        root=PartitionId(*root),
        sources=tuple(PartitionId(m, t) for m, t in sources),
    )


DEFAULT_TOPOLOGIES: tuple[AggregationTopology, ...] = (
    # Payable / Capital shows the capital ledgers of every operation.
    _topology(
        RecordFamily.CAPITAL,
        ("payable", "Capital"),
        ("kenya", "Capital"),
        ("bkk", "Bkkcapital"),
        ("vgtz", "T.Capital"),
        ("madagascar", "MCapital"),
        ("dada", "Capital"),
        ("vg-ramazan", "T.Capital"),
    ),
    # Outstanding / Payment Received collects the sales ledgers.
    _topology(
        RecordFamily.EXPENSE,
        ("outstanding", "Payment Received"),
        ("outstanding", "Srilanka Sales"),
        ("outstanding", "BangkokSales"),
        ("outstanding", "ChinaSales"),
    ),
)


class TopologyRegistry:
    """Lookup of the aggregate view (if any) rooted at a ``(family, partition)``."""

    def __init__(self, topologies: Iterable[AggregationTopology] = DEFAULT_TOPOLOGIES) -> None:
        self._topologies: tuple[AggregationTopology, ...] = tuple(topologies)

    def __iter__(self):
        return iter(self._topologies)

    def __len__(self) -> int:
        return len(self._topologies)

    def find(self, family: RecordFamily | str, partition: PartitionId) -> AggregationTopology | None:
        fam = RecordFamily(family)
        for t in self._topologies:
            if t.family is fam and t.is_root(partition):
                return t
        return None

    def is_aggregate_view(self, family: RecordFamily | str, partition: PartitionId) -> bool:
        return self.find(family, partition) is not None

    def roots_fed_by(
        self, family: RecordFamily | str, partition: PartitionId
    ) -> Sequence[AggregationTopology]:
        """Aggregate views that display ``partition`` as one of their sources."""

        fam = RecordFamily(family)
        return [t for t in self._topologies if t.family is fam and t.contains_source(partition)]

    @classmethod
    def from_json_list(cls, items: Iterable[Mapping[str, Any]]) -> TopologyRegistry:
        return cls(AggregationTopology.from_mapping(d) for d in items)


__all__ = [
    "AggregationTopology",
    "DEFAULT_TOPOLOGIES",
    "TopologyRegistry",
]
