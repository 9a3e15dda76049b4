from __future__ import annotations

import pytest

from docsync.domain.reconciliation import (
    MISSING,
    InsertDocument,
    ReconciliationItem,
    ReplaceDocument,
)
from tests.helpers.documents import Widget


@pytest.mark.parametrize("blank", [None, "", "   "])
def test_item_without_any_id_is_an_insertion(blank: str | None) -> None:
    item = ReconciliationItem(Widget(sku="a"), persisted_id=blank)
    item.record.persisted_id = blank

    assert item.is_replacement() is False
    assert item.is_insertion() is True


def test_item_adopts_record_id_on_construction() -> None:
    record = Widget(sku="a", persisted_id="id-1")

    item = ReconciliationItem(record)

    assert item.persisted_id == "id-1"
    assert item.is_replacement() is True


def test_classification_adopts_id_assigned_to_record_later() -> None:
    record = Widget(sku="a")
    item = ReconciliationItem(record)
    record.persisted_id = "id-late"

    assert item.is_replacement() is True
    assert item.persisted_id == "id-late"


def test_classification_pushes_item_id_into_record() -> None:
    record = Widget(sku="a", persisted_id="stale")
    item = ReconciliationItem(record)
    item.persisted_id = "fresh"

    assert item.is_replacement() is True
    assert record.persisted_id == "fresh"


@pytest.mark.parametrize(
    ("item_id", "record_id"),
    [("id-1", None), (None, "id-2"), ("id-3", "id-3"), ("id-4", "other")],
)
def test_item_and_record_ids_agree_after_classification(
    item_id: str | None, record_id: str | None
) -> None:
    record = Widget(sku="a")
    item = ReconciliationItem(record)
    item.persisted_id = item_id
    record.persisted_id = record_id

    item.is_replacement()

    assert item.persisted_id == record.persisted_id


def test_assign_persisted_id_updates_record() -> None:
    record = Widget(sku="a")
    item = ReconciliationItem(record)

    item.assign_persisted_id("id-9")

    assert record.persisted_id == "id-9"
    assert item.to_filter() == {"_id": "id-9"}


def test_match_key_defaults_to_unset() -> None:
    item = ReconciliationItem(Widget(sku="a"))

    assert item.match_key_set is False
    assert item.match_key is None


@pytest.mark.parametrize("key", [None, 0, "", False])
def test_falsy_match_keys_count_as_assigned(key: object) -> None:
    item = ReconciliationItem(Widget(sku="a"), match_key=key)

    assert item.match_key_set is True
    assert item.match_key == key


def test_missing_marker_leaves_match_key_unset() -> None:
    item = ReconciliationItem(Widget(sku="a"), match_key=MISSING)

    assert item.match_key_set is False


def test_write_operation_for_new_record_is_an_insert() -> None:
    item = ReconciliationItem(Widget(sku="a", name="first"))

    operation = item.to_write_operation()

    assert operation == InsertDocument(
        document={"sku": "a", "name": "first", "quantity": 0},
    )


def test_write_operation_for_known_record_is_an_id_keyed_replace() -> None:
    item = ReconciliationItem(Widget(sku="a", name="first", persisted_id="id-1"))

    operation = item.to_write_operation(upsert=False)

    assert operation == ReplaceDocument(
        persisted_id="id-1",
        document={"_id": "id-1", "sku": "a", "name": "first", "quantity": 0},
        upsert=False,
    )


class _EmptyRecord:
    def __init__(self) -> None:
        self.persisted_id: str | None = None

    def to_document(self) -> dict[str, object]:
        return {}


def test_write_operation_skips_records_without_content() -> None:
    item = ReconciliationItem(_EmptyRecord())

    assert item.to_write_operation() is None
