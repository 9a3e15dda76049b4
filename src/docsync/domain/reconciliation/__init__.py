"""Reconciliation core: write local records into a store collection without duplicates.

Flow of one synchronization run:
1) partition the collection's items into fixed-size batches
2) per batch, give every item the shared match value when one is configured
3) resolve existing documents for unresolved match keys with one in-set query
4) classify each item as insertion or replacement and build its write
5) submit the batch as one bulk write
6) adopt the ids the store gave each insertion, then resolve any rest by key
7) report the batch (index, total, timings) to the caller's callback
"""

from __future__ import annotations

from .batching import (
    AsyncBatchCallback,
    BatchCallback,
    BatchReport,
    Stopwatch,
    TimeTable,
    count_batches,
    partition,
)
from .collection import ReconciliationCollection
from .entry import UpsertEntry
from .errors import (
    AmbiguousIdentityError,
    BulkWriteFailedError,
    ResolutionError,
    StoreWriteError,
    SynchronizationError,
)
from .identity import (
    IdentityMap,
    apply_identity_map,
    build_identity_map,
    collect_candidate_keys,
    find_ambiguous_keys,
    resolve_identities,
    resolve_identities_async,
)
from .item import MISSING, ReconciliationItem
from .settings import DEFAULT_BATCH_SIZE, SyncSettings, field_accessor
from .writes import (
    BulkWriteOptions,
    BulkWriteSummary,
    InsertDocument,
    ReplaceDocument,
    ReplaceMatching,
    WriteOperation,
    build_write_operations,
)

__all__ = [
    "DEFAULT_BATCH_SIZE",
    "MISSING",
    "AmbiguousIdentityError",
    "AsyncBatchCallback",
    "BatchCallback",
    "BatchReport",
    "BulkWriteFailedError",
    "BulkWriteOptions",
    "BulkWriteSummary",
    "IdentityMap",
    "InsertDocument",
    "ReconciliationCollection",
    "ReconciliationItem",
    "ReplaceDocument",
    "ReplaceMatching",
    "ResolutionError",
    "Stopwatch",
    "StoreWriteError",
    "SyncSettings",
    "SynchronizationError",
    "TimeTable",
    "UpsertEntry",
    "WriteOperation",
    "apply_identity_map",
    "build_identity_map",
    "build_write_operations",
    "collect_candidate_keys",
    "count_batches",
    "field_accessor",
    "find_ambiguous_keys",
    "partition",
    "resolve_identities",
    "resolve_identities_async",
]
