"""Public interface for the ``gem_ledger`` package.

Re-exports the record models, the partition store, the aggregation and
write-back pieces, and the view that ties them together. There is no runtime
logic here, only symbol re-exports.
"""

from .aggregate import aggregate, aggregate_topology
from .config import Ledger, LedgerSettings, load_settings
from .currency import DEFAULT_BASE_CURRENCY, DEFAULT_RATES, RateTable, convert, edit_record
from .errors import (
    ForeignRecordError,
    LedgerError,
    PartitionKeyError,
    RecordNotFoundError,
    RecordValidationError,
    StorageWriteError,
)
from .models import CapitalItem, ExpenseItem, LedgerRecord, RecordFamily, SheetItem
from .partitions import PartitionId, normalize_tab_name, parse_partition_key, partition_key
from .router import WriteBackRouter
from .store import PartitionSession, RecordStore
from .summary import LedgerSummary, RecordFilter, filter_records, summarize
from .topology import DEFAULT_TOPOLOGIES, AggregationTopology, TopologyRegistry
from .view import LedgerView

__all__ = [
    # Records
    "CapitalItem",
    "ExpenseItem",
    "LedgerRecord",
    "RecordFamily",
    "SheetItem",
    # Partitions and storage
    "PartitionId",
    "PartitionSession",
    "RecordStore",
    "normalize_tab_name",
    "parse_partition_key",
    "partition_key",
    # Currency
    "DEFAULT_BASE_CURRENCY",
    "DEFAULT_RATES",
    "RateTable",
    "convert",
    "edit_record",
    # Aggregation and routing
    "AggregationTopology",
    "DEFAULT_TOPOLOGIES",
    "LedgerView",
    "TopologyRegistry",
    "WriteBackRouter",
    "aggregate",
    "aggregate_topology",
    # Summaries
    "LedgerSummary",
    "RecordFilter",
    "filter_records",
    "summarize",
    # Settings
    "Ledger",
    "LedgerSettings",
    "load_settings",
    # Errors
    "ForeignRecordError",
    "LedgerError",
    "PartitionKeyError",
    "RecordNotFoundError",
    "RecordValidationError",
    "StorageWriteError",
]
