"""Partition identity and storage-key construction.

A partition is one independently persisted collection of records, identified
by a ``(module, tab)`` pair. Storage keys take the form
``"<prefix>_<module>_<tab>"`` where the prefix names the record family
(``capital``, ``expense``, ``sheet``).

Injectivity: prefixes and module ids are slug-like and may not contain ``_``,
so the first two underscores of a key always delimit its parts and the tab may
contain anything (including ``_``).

Two normalizations exist and must not be confused:

- ``canonical_tab_id`` (trim + collapse inner whitespace, case preserved) is
  applied when building keys, so cosmetic whitespace edits address the same
  partition.
- ``normalize_tab_name`` (canonical + lowercase) is used for every membership
  comparison, e.g. deciding whether a tab is an aggregation root or source.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from .errors import PartitionKeyError

_WS_RE = re.compile(r"\s+")


def canonical_tab_id(tab_id: str) -> str:
    return _WS_RE.sub(" ", tab_id.strip())


def normalize_tab_name(tab_id: str) -> str:
    """Return the comparison form of a tab name (trim, lowercase, single spaces)."""

    return canonical_tab_id(tab_id).lower()


def _check_slug(kind: str, value: str) -> str:
    value = value.strip()
    if not value:
        raise PartitionKeyError(f"{kind} must be non-empty")
    if "_" in value:
        raise PartitionKeyError(f"{kind} may not contain '_': {value!r}")
    return value


@dataclass(frozen=True, slots=True)
class PartitionId:
    """Identity of one partition: owning module and owning tab.

    The tab is stored in canonical form; ``PartitionId("kenya", " Capital ")``
    equals ``PartitionId("kenya", "Capital")``.
    """

    module: str
    tab: str

    def __post_init__(self) -> None:
        object.__setattr__(self, "module", _check_slug("module id", self.module))
        tab = canonical_tab_id(self.tab)
        if not tab:
            raise PartitionKeyError("tab id must be non-empty")
        object.__setattr__(self, "tab", tab)

    def matches(self, module: str, tab: str) -> bool:
        """Compare against a raw ``(module, tab)`` pair using tab-name normalization."""

        return self.module == module.strip() and normalize_tab_name(
            self.tab
        ) == normalize_tab_name(tab)

    def same_as(self, other: PartitionId) -> bool:
        return self.matches(other.module, other.tab)

    def key(self, prefix: str) -> str:
        return partition_key(prefix, self.module, self.tab)

    def __str__(self) -> str:
        return f"{self.module}/{self.tab}"


def partition_key(prefix: str, module_id: str, tab_id: str) -> str:
    """Build the storage key ``"<prefix>_<module>_<tab>"``.

    Pure and deterministic; raises :class:`PartitionKeyError` when the parts
    cannot form an unambiguous key.
    """

    prefix = _check_slug("prefix", prefix)
    module_id = _check_slug("module id", module_id)
    tab = canonical_tab_id(tab_id)
    if not tab:
        raise PartitionKeyError("tab id must be non-empty")
    return f"{prefix}_{module_id}_{tab}"


def parse_partition_key(key: str) -> tuple[str, PartitionId]:
    """Invert :func:`partition_key`, returning ``(prefix, PartitionId)``."""

    parts = key.split("_", 2)
    if len(parts) != 3 or not all(p.strip() for p in parts):
        raise PartitionKeyError(f"not a partition key: {key!r}")
    prefix, module, tab = parts
    return prefix, PartitionId(module, tab)


__all__ = [
    "PartitionId",
    "canonical_tab_id",
    "normalize_tab_name",
    "parse_partition_key",
    "partition_key",
]
