from __future__ import annotations

import asyncio
import logging

import pytest

from docsync.domain.reconciliation import (
    AmbiguousIdentityError,
    ReconciliationItem,
    apply_identity_map,
    build_identity_map,
    collect_candidate_keys,
    field_accessor,
    find_ambiguous_keys,
    resolve_identities,
    resolve_identities_async,
)
from tests.helpers.documents import FakeAsyncDocumentStore, FakeDocumentStore, Widget


def _item(sku: str | None, *, persisted_id: str | None = None) -> ReconciliationItem[Widget, str]:
    record = Widget(sku=sku, persisted_id=persisted_id)
    if sku is None:
        return ReconciliationItem(record)
    return ReconciliationItem(record, match_key=sku)


def test_candidate_keys_are_distinct_and_ordered() -> None:
    items = [_item("b"), _item("a"), _item("b"), _item("c")]

    assert collect_candidate_keys(items) == ["b", "a", "c"]


def test_candidate_keys_skip_resolved_unset_and_none_keys() -> None:
    items = [
        _item("a", persisted_id="id-1"),
        _item(None),
        ReconciliationItem(Widget(sku="x"), match_key=None),
        _item("b"),
    ]

    assert collect_candidate_keys(items) == ["b"]


def test_build_identity_map_reads_keys_and_stringifies_ids() -> None:
    documents = [{"_id": 17, "sku": "a"}, {"_id": "id-2", "sku": "b"}, {"_id": "id-3"}]

    identity_map = build_identity_map(documents, field_accessor("sku"))

    assert identity_map == {"a": "17", "b": "id-2"}


def test_build_identity_map_warns_on_duplicate_keys(caplog: pytest.LogCaptureFixture) -> None:
    documents = [{"_id": "id-1", "sku": "a"}, {"_id": "id-2", "sku": "a"}]
    logger = logging.getLogger("tests.identity")

    with caplog.at_level(logging.WARNING, logger="tests.identity"):
        identity_map = build_identity_map(documents, field_accessor("sku"), logger=logger)

    assert identity_map == {"a": "id-2"}
    assert "held by several documents" in caplog.text


def test_apply_identity_map_assigns_ids_to_matching_items() -> None:
    items = [_item("ext-1"), _item("ext-2")]

    assigned = apply_identity_map(items, {"ext-1": "id-123"})

    assert assigned == 1
    assert items[0].persisted_id == "id-123"
    assert items[0].record.persisted_id == "id-123"
    assert items[0].is_replacement() is True
    assert items[1].is_insertion() is True


def test_resolve_identities_queries_once_with_candidate_keys() -> None:
    store = FakeDocumentStore([{"_id": "id-b", "sku": "b"}])
    items = [_item("a"), _item("b"), _item("c")]

    identity_map = resolve_identities(
        items, store, field="sku", document_match=field_accessor("sku")
    )

    assert identity_map == {"b": "id-b"}
    assert store.queries == [["a", "b", "c"]]
    assert [item.persisted_id for item in items] == [None, "id-b", None]


def test_resolve_identities_skips_query_without_candidates() -> None:
    store = FakeDocumentStore([{"_id": "id-b", "sku": "b"}])
    items = [_item("a", persisted_id="id-a"), _item(None)]

    identity_map = resolve_identities(
        items, store, field="sku", document_match=field_accessor("sku")
    )

    assert identity_map == {}
    assert store.calls == []


def test_resolve_identities_async_matches_blocking_variant() -> None:
    store = FakeDocumentStore([{"_id": "id-b", "sku": "b"}])
    items = [_item("a"), _item("b")]

    identity_map = asyncio.run(
        resolve_identities_async(
            items,
            FakeAsyncDocumentStore(store),
            field="sku",
            document_match=field_accessor("sku"),
        )
    )

    assert identity_map == {"b": "id-b"}
    assert items[1].persisted_id == "id-b"


def test_ambiguous_keys_need_several_items_and_several_documents() -> None:
    documents = [
        {"_id": "id-1", "sku": "a"},
        {"_id": "id-2", "sku": "a"},
        {"_id": "id-3", "sku": "b"},
        {"_id": "id-4", "sku": "c"},
        {"_id": "id-5", "sku": "c"},
    ]
    items = [_item("a"), _item("a"), _item("b"), _item("b"), _item("c")]

    assert find_ambiguous_keys(items, documents, field_accessor("sku")) == ["a"]


def test_strict_resolution_refuses_to_share_one_id_between_new_items() -> None:
    store = FakeDocumentStore([{"_id": "id-1", "sku": "a"}, {"_id": "id-2", "sku": "a"}])
    items = [_item("a"), _item("a")]

    with pytest.raises(AmbiguousIdentityError) as exc:
        resolve_identities(
            items, store, field="sku", document_match=field_accessor("sku"), strict=True
        )

    assert exc.value.keys == ["a"]
    assert [item.persisted_id for item in items] == [None, None]


def test_lenient_resolution_keeps_the_last_document_for_shared_keys() -> None:
    store = FakeDocumentStore([{"_id": "id-1", "sku": "a"}, {"_id": "id-2", "sku": "a"}])
    items = [_item("a"), _item("a")]

    resolve_identities(items, store, field="sku", document_match=field_accessor("sku"))

    assert [item.persisted_id for item in items] == ["id-2", "id-2"]
