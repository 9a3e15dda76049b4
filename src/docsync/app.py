"""Application orchestration entry points."""

from __future__ import annotations

import inspect
from collections.abc import Callable, Hashable
from contextlib import AbstractContextManager, contextmanager
from logging import getLogger
from typing import TYPE_CHECKING, Any

from docsync.adapters.pymongo import create_client, open_store
from docsync.config import get_mongo_config, get_sync_config
from docsync.domain.ports.store import DocumentStore
from docsync.domain.reconciliation import ReconciliationCollection

if TYPE_CHECKING:
    from collections.abc import Awaitable, Iterable, Iterator

    from docsync.config import MongoConfig
    from docsync.domain.ports.store import AsyncDocumentStore
    from docsync.domain.records import DocumentRecord
    from docsync.domain.reconciliation import (
        AsyncBatchCallback,
        BatchCallback,
        SyncSettings,
        UpsertEntry,
    )

type CollectionBuilder = Callable[[ReconciliationCollection[Any, Any]], None]
type AsyncCollectionBuilder = Callable[[ReconciliationCollection[Any, Any]], Awaitable[None]]
StoreFactory = Callable[[str], AbstractContextManager[DocumentStore]]

log = getLogger(__name__)


@contextmanager
def mongo_store(collection: str, *, config: MongoConfig | None = None) -> Iterator[DocumentStore]:
    """Open ``collection`` on the configured database and close the client afterwards."""

    effective_config = config or get_mongo_config()
    client = create_client(effective_config)
    try:
        yield open_store(client, effective_config, collection)
    finally:
        client.close()


def consume_many[TRecord: DocumentRecord, TKey: Hashable](
    store: DocumentStore,
    build: CollectionBuilder,
    *,
    settings: SyncSettings[TRecord, TKey] | None = None,
    callback: BatchCallback | None = None,
) -> list[TRecord]:
    """Let ``build`` fill a fresh collection, synchronize it and return its records."""

    collection: ReconciliationCollection[TRecord, TKey] = ReconciliationCollection(
        settings=settings
    )
    build(collection)
    return consume_collection(store, collection, callback=callback)


def consume_collection[TRecord: DocumentRecord, TKey: Hashable](
    store: DocumentStore,
    collection: ReconciliationCollection[TRecord, TKey],
    *,
    callback: BatchCallback | None = None,
) -> list[TRecord]:
    log.info(
        "Starting synchronization: items=%d, batches=%d",
        len(collection),
        collection.count_batches(),
    )
    collection.synchronize(store, callback)
    summary = collection.summary
    log.info(
        "Finished synchronization: inserted=%d, modified=%d, upserted=%d",
        summary.inserted,
        summary.modified,
        summary.upserted,
    )
    return collection.to_records()


async def consume_many_async[TRecord: DocumentRecord, TKey: Hashable](
    store: AsyncDocumentStore,
    build: CollectionBuilder | AsyncCollectionBuilder,
    *,
    settings: SyncSettings[TRecord, TKey] | None = None,
    callback: BatchCallback | AsyncBatchCallback | None = None,
) -> list[TRecord]:
    """Suspending variant of :func:`consume_many`; ``build`` may be a coroutine function."""

    collection: ReconciliationCollection[TRecord, TKey] = ReconciliationCollection(
        settings=settings
    )
    result = build(collection)
    if inspect.isawaitable(result):
        await result
    return await consume_collection_async(store, collection, callback=callback)


async def consume_collection_async[TRecord: DocumentRecord, TKey: Hashable](
    store: AsyncDocumentStore,
    collection: ReconciliationCollection[TRecord, TKey],
    *,
    callback: BatchCallback | AsyncBatchCallback | None = None,
) -> list[TRecord]:
    log.info(
        "Starting synchronization: items=%d, batches=%d",
        len(collection),
        collection.count_batches(),
    )
    await collection.synchronize_async(store, callback)
    summary = collection.summary
    log.info(
        "Finished synchronization: inserted=%d, modified=%d, upserted=%d",
        summary.inserted,
        summary.modified,
        summary.upserted,
    )
    return collection.to_records()


def consume_one[TRecord: DocumentRecord, TKey: Hashable](
    store: DocumentStore, entry: UpsertEntry[TRecord, TKey]
) -> TRecord:
    record = entry.save(store)
    log.debug("Upserted %s as %s", type(record).__name__, record.persisted_id)
    return record


async def consume_one_async[TRecord: DocumentRecord, TKey: Hashable](
    store: AsyncDocumentStore, entry: UpsertEntry[TRecord, TKey]
) -> TRecord:
    record = await entry.save_async(store)
    log.debug("Upserted %s as %s", type(record).__name__, record.persisted_id)
    return record


def sync_records[TRecord: DocumentRecord, TKey: Hashable](
    records: Iterable[TRecord],
    *,
    collection: str,
    settings: SyncSettings[TRecord, TKey] | None = None,
    callback: BatchCallback | None = None,
    store_factory: StoreFactory | None = None,
) -> ReconciliationCollection[TRecord, TKey]:
    """Synchronize ``records`` into ``collection`` using the configured adapters."""

    effective_settings = settings or get_sync_config().to_settings()
    effective_factory = store_factory or mongo_store
    reconciliation: ReconciliationCollection[TRecord, TKey] = (
        ReconciliationCollection.from_records(records, settings=effective_settings)
    )
    with effective_factory(collection) as store:
        consume_collection(store, reconciliation, callback=callback)
    return reconciliation
