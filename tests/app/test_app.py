from __future__ import annotations

import asyncio
from contextlib import nullcontext
from typing import TYPE_CHECKING, Any
from unittest.mock import MagicMock

import pytest

from docsync import app as app_module
from docsync.config import MongoConfig
from docsync.domain.reconciliation import SyncSettings, UpsertEntry
from tests.helpers.documents import FakeAsyncDocumentStore, FakeDocumentStore, Widget, make_widgets

if TYPE_CHECKING:
    from docsync.domain.reconciliation import BatchReport, ReconciliationCollection


def _by_sku() -> SyncSettings[Widget, str]:
    settings: SyncSettings[Widget, str] = SyncSettings(batch_size=2)
    return settings.with_match_field("sku").with_record_match(lambda widget: widget.sku)


def test_consume_many_fills_collection_through_builder() -> None:
    store = FakeDocumentStore([{"_id": "id-a", "sku": "a"}])

    def build(collection: ReconciliationCollection[Any, Any]) -> None:
        collection.extend(make_widgets("a", "b", "c"))

    records = app_module.consume_many(store, build, settings=_by_sku())

    assert [record.sku for record in records] == ["a", "b", "c"]
    assert records[0].persisted_id == "id-a"
    assert all(record.persisted_id is not None for record in records)
    assert store.count() == 3


def test_consume_many_async_awaits_async_builder() -> None:
    store = FakeDocumentStore()
    reports: list[BatchReport] = []

    async def build(collection: ReconciliationCollection[Any, Any]) -> None:
        await asyncio.sleep(0)
        collection.extend(make_widgets("a", "b", "c"))

    records = asyncio.run(
        app_module.consume_many_async(
            FakeAsyncDocumentStore(store), build, settings=_by_sku(), callback=reports.append
        )
    )

    assert len(records) == 3
    assert [report.iteration for report in reports] == [1, 2]
    assert store.count() == 3


def test_consume_one_saves_entry() -> None:
    store = FakeDocumentStore([{"_id": "id-a", "sku": "a"}])
    entry: UpsertEntry[Widget, str] = UpsertEntry.by_match_value(Widget(sku="a"), "sku", "a")

    record = app_module.consume_one(store, entry)

    assert record.persisted_id == "id-a"


def test_consume_one_async_saves_entry() -> None:
    store = FakeDocumentStore()
    entry: UpsertEntry[Widget, str] = UpsertEntry.by_match_value(Widget(sku="a"), "sku", "a")

    record = asyncio.run(app_module.consume_one_async(FakeAsyncDocumentStore(store), entry))

    assert record.persisted_id in store.documents


def test_sync_records_opens_named_collection() -> None:
    store = FakeDocumentStore()
    opened: list[str] = []

    def factory(name: str) -> nullcontext[FakeDocumentStore]:
        opened.append(name)
        return nullcontext(store)

    collection = app_module.sync_records(
        make_widgets("a", "b"),
        collection="widgets",
        settings=_by_sku(),
        store_factory=factory,
    )

    assert opened == ["widgets"]
    assert collection.summary.inserted == 2
    assert store.count() == 2


def test_sync_records_uses_configured_batch_size(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("DOCSYNC_BATCH_SIZE", "1")
    store = FakeDocumentStore()

    app_module.sync_records(
        make_widgets("a", "b", "c"),
        collection="widgets",
        store_factory=lambda _name: nullcontext(store),
    )

    assert len(store.bulk_writes) == 3


def test_mongo_store_closes_client(monkeypatch: pytest.MonkeyPatch) -> None:
    client = MagicMock()
    monkeypatch.setattr(app_module, "create_client", lambda _config: client)
    config = MongoConfig(uri="mongodb://localhost:27017", database="inventory")

    with app_module.mongo_store("widgets", config=config) as store:
        assert store.name == client["inventory"]["widgets"].name

    client.close.assert_called_once_with()
