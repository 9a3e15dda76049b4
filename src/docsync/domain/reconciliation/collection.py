"""The reconciliation collection and its synchronize entry points."""

from __future__ import annotations

import inspect
import logging
from collections import Counter
from collections.abc import Hashable
from typing import TYPE_CHECKING, Any, Self

from docsync.domain.records import DocumentRecord

from .batching import BatchReport, Stopwatch, count_batches, partition
from .errors import BulkWriteFailedError
from .identity import (
    apply_identity_map,
    collect_candidate_keys,
    resolve_identities,
    resolve_identities_async,
)
from .item import MISSING, MissingType, ReconciliationItem
from .settings import SyncSettings
from .writes import BulkWriteSummary, InsertDocument, build_write_operations

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Iterator, Mapping
    from datetime import timedelta

    from docsync.domain.ports.store import AsyncDocumentStore, DocumentStore
    from docsync.domain.records import Document

    from .batching import AsyncBatchCallback, BatchCallback
    from .identity import IdentityMap
    from .writes import WriteOperation


class ReconciliationCollection[TRecord: DocumentRecord, TKey: Hashable]:
    """Records to reconcile against one store collection.

    Items are written in batches of ``settings.batch_size``. Each batch runs a
    resolve, write, resolve cycle on a child collection that shares the items
    (so persisted ids flow back here) but owns its identity map, which is
    merged into this collection's map once the batch completes.

    When nothing tells the collection how to key a record (no explicit key, no
    accessor, no shared match value) every unresolved record is inserted. That
    is a silent degradation, not an error.
    """

    def __init__(
        self,
        items: Iterable[ReconciliationItem[TRecord, TKey]] = (),
        *,
        settings: SyncSettings[TRecord, TKey] | None = None,
    ) -> None:
        self.items: list[ReconciliationItem[TRecord, TKey]] = list(items)
        self.settings: SyncSettings[TRecord, TKey] = settings or SyncSettings()
        self.identity_map: IdentityMap[TKey] = {}
        self.ids_populated = False
        self.summary = BulkWriteSummary()

    @classmethod
    def from_records(
        cls,
        records: Iterable[TRecord],
        *,
        settings: SyncSettings[TRecord, TKey] | None = None,
    ) -> ReconciliationCollection[TRecord, TKey]:
        collection = cls(settings=settings)
        return collection.extend(records)

    def __len__(self) -> int:
        return len(self.items)

    def __iter__(self) -> Iterator[ReconciliationItem[TRecord, TKey]]:
        return iter(self.items)

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(items={len(self.items)}, "
            f"batch_size={self.settings.batch_size}, ids_populated={self.ids_populated})"
        )

    # -- logging ---------------------------------------------------------------

    def _log(self, level: int, message: str, *args: object) -> None:
        if self.settings.quiet:
            return
        self.settings.effective_logger.log(level, message, *args)

    def _resolution_logger(self) -> logging.Logger | None:
        return None if self.settings.quiet else self.settings.effective_logger

    # -- configuration and additions ---------------------------------------------

    def configure(self, settings: SyncSettings[TRecord, TKey]) -> Self:
        """Swap in ``settings``; resolved ids go stale when the key strategy changes."""

        previous = self.settings
        self.settings = settings
        if (
            settings.match_field != previous.match_field
            or settings.document_match is not previous.document_match
            or settings.record_match is not previous.record_match
            or settings.match_all_values != previous.match_all_values
            or settings.match_value != previous.match_value
        ):
            self.ids_populated = False
        return self

    def add(
        self,
        record: TRecord,
        *,
        match_key: TKey | MissingType = MISSING,
        accessor: Callable[[TRecord], TKey | None] | None = None,
    ) -> Self:
        """Wrap ``record`` in an item and append it.

        The shared match value wins when configured. Otherwise the key comes
        from ``match_key``, then ``accessor``, then ``settings.record_match``.
        """

        item: ReconciliationItem[TRecord, TKey] = ReconciliationItem(record, match_key=match_key)
        if not item.match_key_set and accessor is not None:
            item.assign_match_key(accessor(record))
        return self.add_item(item)

    def add_item(self, item: ReconciliationItem[TRecord, TKey]) -> Self:
        if self.settings.match_all_values:
            item.assign_match_key(self.settings.match_value)
        elif not item.match_key_set and self.settings.record_match is not None:
            item.assign_match_key(self.settings.record_match(item.record))
        self.items.append(item)
        self.ids_populated = False
        return self

    def extend(self, records: Iterable[TRecord]) -> Self:
        for record in records:
            self.add(record)
        return self

    def replace_items(self, items: Iterable[ReconciliationItem[TRecord, TKey]]) -> Self:
        self.items = list(items)
        self.ids_populated = False
        return self

    def with_identity_map(self, identity_map: Mapping[TKey, str]) -> Self:
        """Replace the identity map and assign its ids to matching items."""

        self.identity_map = dict(identity_map)
        apply_identity_map(self.items, self.identity_map)
        self.ids_populated = True
        return self

    # -- queries ---------------------------------------------------------------

    def count_batches(self) -> int:
        return count_batches(len(self.items), self.settings.batch_size)

    def count_insertions(self) -> int:
        return sum(1 for item in self.items if item.is_insertion())

    def count_replacements(self) -> int:
        return sum(1 for item in self.items if item.is_replacement())

    def to_documents(self) -> list[Document]:
        return [item.record.to_document() for item in self.items]

    def to_records(self) -> list[TRecord]:
        return [item.record for item in self.items]

    def to_write_operations(self) -> list[WriteOperation]:
        return build_write_operations(self.items, upsert=self.settings.upsert)

    def to_in_filter(self) -> tuple[str, list[TKey]]:
        """Return the field and candidate keys of the next existence query."""

        return self.settings.match_field, collect_candidate_keys(self.items)

    def to_equality_filter(self) -> dict[str, Any]:
        return self.settings.equality_filter()

    def batches(self) -> Iterator[tuple[ReconciliationItem[TRecord, TKey], ...]]:
        return partition(self.items, self.settings.batch_size)

    def to_batch_collection(
        self, items: Iterable[ReconciliationItem[TRecord, TKey]]
    ) -> ReconciliationCollection[TRecord, TKey]:
        batch = ReconciliationCollection(items, settings=self.settings.with_batch_callback(None))
        batch.identity_map = dict(self.identity_map)
        batch.ids_populated = self.ids_populated
        return batch

    # -- identity resolution -----------------------------------------------------

    def _adopt_identities(self, identity_map: IdentityMap[TKey]) -> None:
        self.identity_map.update(identity_map)
        apply_identity_map(self.items, self.identity_map)
        self.ids_populated = True
        self._log(
            logging.DEBUG,
            "Resolved %d existing documents on %r (%d items known)",
            len(identity_map),
            self.settings.match_field,
            len(self.identity_map),
        )

    def synchronize_identities(self, store: DocumentStore, *, strict: bool = False) -> Self:
        identity_map = resolve_identities(
            self.items,
            store,
            field=self.settings.match_field,
            document_match=self.settings.document_matcher(),
            strict=strict,
            logger=self._resolution_logger(),
        )
        self._adopt_identities(identity_map)
        return self

    async def synchronize_identities_async(
        self, store: AsyncDocumentStore, *, strict: bool = False
    ) -> Self:
        identity_map = await resolve_identities_async(
            self.items,
            store,
            field=self.settings.match_field,
            document_match=self.settings.document_matcher(),
            strict=strict,
            logger=self._resolution_logger(),
        )
        self._adopt_identities(identity_map)
        return self

    # -- synchronization ---------------------------------------------------------

    def _apply_shared_match_value(self) -> None:
        if not self.settings.match_all_values:
            return
        for item in self.items:
            item.assign_match_key(self.settings.match_value)

    def _record_write(self, operations: list[WriteOperation], summary: BulkWriteSummary) -> None:
        self.summary += summary
        self._log(
            logging.DEBUG,
            "Bulk write of %d operations: inserted=%d, matched=%d, modified=%d, upserted=%d",
            len(operations),
            summary.inserted,
            summary.matched,
            summary.modified,
            summary.upserted,
        )

    def _plan_writes(
        self,
    ) -> tuple[list[WriteOperation], list[ReconciliationItem[TRecord, TKey]]]:
        operations: list[WriteOperation] = []
        inserting: list[ReconciliationItem[TRecord, TKey]] = []
        for item in self.items:
            operation = item.to_write_operation(upsert=self.settings.upsert)
            if operation is None:
                continue
            operations.append(operation)
            if isinstance(operation, InsertDocument):
                inserting.append(item)
        return operations, inserting

    def _adopt_inserted_ids(
        self,
        inserting: list[ReconciliationItem[TRecord, TKey]],
        inserted_ids: list[str],
    ) -> None:
        """Give each inserted item the id of its own document.

        Keys shared by several inserted items stay out of the identity map.
        """

        if not inserted_ids:
            return
        if len(inserted_ids) != len(inserting):
            self._log(
                logging.WARNING,
                "Store reported %d inserted ids for %d insertions; resolving by key instead",
                len(inserted_ids),
                len(inserting),
            )
            return
        keys = Counter(
            item.match_key
            for item in inserting
            if item.match_key_set and item.match_key is not None
        )
        for item, persisted_id in zip(inserting, inserted_ids, strict=True):
            item.assign_persisted_id(persisted_id)
            if item.match_key_set and item.match_key is not None and keys[item.match_key] == 1:
                self.identity_map[item.match_key] = persisted_id

    def _synchronize_once(self, store: DocumentStore, *, refresh: bool) -> None:
        self._apply_shared_match_value()
        if refresh or not self.ids_populated:
            self.synchronize_identities(store)
        operations, inserting = self._plan_writes()
        if operations:
            summary = store.bulk_write(operations, self.settings.bulk_write_options())
            self._record_write(operations, summary)
            self._adopt_inserted_ids(inserting, summary.inserted_ids)
        self.synchronize_identities(store, strict=True)

    async def _synchronize_once_async(self, store: AsyncDocumentStore, *, refresh: bool) -> None:
        self._apply_shared_match_value()
        if refresh or not self.ids_populated:
            await self.synchronize_identities_async(store)
        operations, inserting = self._plan_writes()
        if operations:
            summary = await store.bulk_write(operations, self.settings.bulk_write_options())
            self._record_write(operations, summary)
            self._adopt_inserted_ids(inserting, summary.inserted_ids)
        await self.synchronize_identities_async(store, strict=True)

    def _finish_batch(
        self,
        batch: ReconciliationCollection[TRecord, TKey],
        *,
        iteration: int,
        total: int,
        elapsed: timedelta,
        run_clock: Stopwatch,
    ) -> BatchReport:
        self.identity_map.update(batch.identity_map)
        self.summary += batch.summary
        report = BatchReport(
            iteration=iteration,
            total=total,
            batch=batch,
            batch_size=self.settings.batch_size,
            elapsed=elapsed,
            time_table=run_clock.time_table(completed=iteration, total=total),
        )
        self._log(
            logging.INFO,
            "Synchronized batch %d/%d (%d items) in %.2fs, about %.1fs remaining",
            iteration,
            total,
            len(batch),
            elapsed.total_seconds(),
            report.time_table.remaining.total_seconds(),
        )
        return report

    def synchronize(
        self,
        store: DocumentStore,
        callback: BatchCallback | None = None,
        *,
        skip_batch: bool = False,
        refresh: bool = False,
    ) -> Self:
        """Reconcile every item against ``store``, one batch at a time.

        ``callback`` (or ``settings.batch_callback``) is invoked after each
        batch. ``skip_batch`` writes all items as one unreported batch, and
        ``refresh`` forces a new existence query even when ids are populated.
        """

        if skip_batch:
            self._synchronize_once(store, refresh=refresh)
            return self

        effective_callback = callback if callback is not None else self.settings.batch_callback
        if effective_callback is not None and inspect.iscoroutinefunction(effective_callback):
            raise TypeError("Asynchronous batch callbacks require synchronize_async()")
        total = self.count_batches()
        run_clock = Stopwatch().start()
        for iteration, items in enumerate(self.batches(), start=1):
            batch_clock = Stopwatch().start()
            batch = self.to_batch_collection(items)
            try:
                batch._synchronize_once(store, refresh=refresh)  # noqa: SLF001
            except BulkWriteFailedError as exc:
                exc.batch = iteration
                raise
            report = self._finish_batch(
                batch,
                iteration=iteration,
                total=total,
                elapsed=batch_clock.stop(),
                run_clock=run_clock,
            )
            if effective_callback is not None:
                _invoke_blocking(effective_callback, report)
        self.ids_populated = True
        return self

    async def synchronize_async(
        self,
        store: AsyncDocumentStore,
        callback: BatchCallback | AsyncBatchCallback | None = None,
        *,
        skip_batch: bool = False,
        refresh: bool = False,
    ) -> Self:
        """Suspending variant of :meth:`synchronize`; callbacks may be coroutines."""

        if skip_batch:
            await self._synchronize_once_async(store, refresh=refresh)
            return self

        effective_callback = callback if callback is not None else self.settings.batch_callback
        total = self.count_batches()
        run_clock = Stopwatch().start()
        for iteration, items in enumerate(self.batches(), start=1):
            batch_clock = Stopwatch().start()
            batch = self.to_batch_collection(items)
            try:
                await batch._synchronize_once_async(store, refresh=refresh)  # noqa: SLF001
            except BulkWriteFailedError as exc:
                exc.batch = iteration
                raise
            report = self._finish_batch(
                batch,
                iteration=iteration,
                total=total,
                elapsed=batch_clock.stop(),
                run_clock=run_clock,
            )
            if effective_callback is not None:
                result = effective_callback(report)
                if inspect.isawaitable(result):
                    await result
        self.ids_populated = True
        return self


def _invoke_blocking(callback: BatchCallback | AsyncBatchCallback, report: BatchReport) -> None:
    result = callback(report)
    if inspect.isawaitable(result):
        if inspect.iscoroutine(result):
            result.close()
        raise TypeError("Asynchronous batch callbacks require synchronize_async()")
