"""Immutable configuration of a reconciliation collection."""

from __future__ import annotations

import logging
from collections.abc import Callable, Hashable, Mapping
from dataclasses import dataclass, replace
from typing import TYPE_CHECKING, Any

from docsync.domain.records import ID_FIELD, DocumentRecord

from .writes import BulkWriteOptions

if TYPE_CHECKING:
    from docsync.domain.records import Document

    from .batching import AsyncBatchCallback, BatchCallback

DEFAULT_BATCH_SIZE = 100

log = logging.getLogger("docsync.reconciliation")


def field_accessor(path: str) -> Callable[[Mapping[str, Any]], Any]:
    """Return a reader for a dotted ``path`` into a native document.

    The ``_id`` field is read in string form, since persisted ids are strings
    on the application side.
    """

    parts = path.split(".")

    def read(document: Mapping[str, Any]) -> Any:
        value: Any = document
        for part in parts:
            if not isinstance(value, Mapping):
                return None
            value = value.get(part)
            if value is None:
                return None
        if path == ID_FIELD:
            return str(value)
        return value

    return read


@dataclass(frozen=True)
class SyncSettings[TRecord: DocumentRecord, TKey: Hashable]:
    """How a collection derives match keys and issues its bulk writes.

    Every ``with_*`` method returns an updated copy; settings are never changed
    in place, so child batch collections can share them safely.

    ``match_field`` names the document field the in-set existence query runs
    against. ``document_match`` pulls the key back out of a returned document
    and defaults to reading ``match_field``. ``record_match`` derives a key from
    a record added without one. ``match_all_values`` gives every item the one
    shared ``match_value``.
    """

    batch_size: int = DEFAULT_BATCH_SIZE
    match_all_values: bool = False
    match_value: TKey | None = None
    match_field: str = ID_FIELD
    document_match: Callable[[Document], TKey | None] | None = None
    record_match: Callable[[TRecord], TKey | None] | None = None
    ordered: bool = False
    bypass_document_validation: bool = False
    upsert: bool = True
    batch_callback: BatchCallback | AsyncBatchCallback | None = None
    logger: logging.Logger | None = None
    quiet: bool = False

    @property
    def batched(self) -> bool:
        return self.batch_size > 0

    @property
    def effective_logger(self) -> logging.Logger:
        return self.logger or log

    def document_matcher(self) -> Callable[[Document], TKey | None]:
        if self.document_match is not None:
            return self.document_match
        return field_accessor(self.match_field)

    def bulk_write_options(self) -> BulkWriteOptions:
        return BulkWriteOptions(
            ordered=self.ordered,
            bypass_document_validation=self.bypass_document_validation,
        )

    def equality_filter(self) -> dict[str, Any]:
        return {self.match_field: self.match_value}

    def with_batch_size(self, batch_size: int) -> SyncSettings[TRecord, TKey]:
        return replace(self, batch_size=batch_size)

    def without_batching(self) -> SyncSettings[TRecord, TKey]:
        return replace(self, batch_size=0)

    def with_match_value(self, value: TKey) -> SyncSettings[TRecord, TKey]:
        return replace(self, match_value=value, match_all_values=True)

    def without_match_value(self) -> SyncSettings[TRecord, TKey]:
        return replace(self, match_value=None, match_all_values=False)

    def with_match_field(
        self,
        field: str,
        *,
        document_match: Callable[[Document], TKey | None] | None = None,
    ) -> SyncSettings[TRecord, TKey]:
        return replace(self, match_field=field, document_match=document_match)

    def with_record_match(
        self, accessor: Callable[[TRecord], TKey | None] | None
    ) -> SyncSettings[TRecord, TKey]:
        return replace(self, record_match=accessor)

    def with_ordered(self, flag: bool = True) -> SyncSettings[TRecord, TKey]:
        return replace(self, ordered=flag)

    def with_bypassed_validation(self, flag: bool = True) -> SyncSettings[TRecord, TKey]:
        return replace(self, bypass_document_validation=flag)

    def with_upsert(self, flag: bool = True) -> SyncSettings[TRecord, TKey]:
        return replace(self, upsert=flag)

    def with_batch_callback(
        self, callback: BatchCallback | AsyncBatchCallback | None
    ) -> SyncSettings[TRecord, TKey]:
        return replace(self, batch_callback=callback)

    def with_logger(self, logger: logging.Logger | None) -> SyncSettings[TRecord, TKey]:
        return replace(self, logger=logger, quiet=False)

    def with_quiet(self, flag: bool = True) -> SyncSettings[TRecord, TKey]:
        return replace(self, quiet=flag)
