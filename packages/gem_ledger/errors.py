"""Exception hierarchy for ``gem_ledger``.

Every error raised by the ledger core derives from :class:`LedgerError` so
consumers (the CLI, a UI shell) can report any failure of a user action with a
single ``except`` clause and let the user retry.
"""

from __future__ import annotations


class LedgerError(Exception):
    """Base class for all ledger errors."""


class PartitionKeyError(LedgerError, ValueError):
    """A module/tab/prefix cannot form an unambiguous partition key."""


class RecordValidationError(LedgerError, ValueError):
    """A record failed validation before save; nothing was written.

    ``fields`` lists the offending field names (camelCase, as shown to users).
    """

    def __init__(self, message: str, *, fields: tuple[str, ...] = ()) -> None:
        super().__init__(message)
        self.fields = fields


class StorageWriteError(LedgerError):
    """Persisting a partition failed; the operation was aborted."""

    def __init__(self, partition_key: str, cause: BaseException | None = None) -> None:
        detail = f": {cause}" if cause is not None else ""
        super().__init__(f"failed to save partition {partition_key!r}{detail}")
        self.partition_key = partition_key


class ForeignRecordError(LedgerError):
    """A record routed through a view does not belong to any of its partitions."""


class RecordNotFoundError(LedgerError, KeyError):
    """No record with the given id exists in the target collection."""

    def __init__(self, record_id: str) -> None:
        super().__init__(record_id)
        self.record_id = record_id

    def __str__(self) -> str:
        return f"record not found: {self.record_id}"


__all__ = [
    "ForeignRecordError",
    "LedgerError",
    "PartitionKeyError",
    "RecordNotFoundError",
    "RecordValidationError",
    "StorageWriteError",
]
