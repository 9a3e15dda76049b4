from __future__ import annotations

import json
from contextlib import nullcontext
from typing import TYPE_CHECKING

import pytest

from docsync.domain.reconciliation import BulkWriteOptions, ReplaceDocument
from docsync.ui import cli as cli_module
from tests.helpers.documents import FakeDocumentStore

if TYPE_CHECKING:
    from collections.abc import Callable
    from pathlib import Path


def _write_records(path: Path, *records: object) -> Path:
    path.write_text("\n".join(json.dumps(record) for record in records) + "\n", encoding="utf-8")
    return path


def _factory(store: FakeDocumentStore) -> Callable[[str], nullcontext[FakeDocumentStore]]:
    return lambda _name: nullcontext(store)


def test_cli_syncs_json_lines_by_match_field(tmp_path: Path) -> None:
    source = _write_records(
        tmp_path / "widgets.jsonl",
        {"sku": "a", "name": "first"},
        {"sku": "b", "name": "second", "tags": ["x"]},
        {"sku": "c"},
    )
    store = FakeDocumentStore([{"_id": "id-b", "sku": "b", "name": "old"}])

    cli_module.main(
        ["sync", str(source), "--collection", "widgets", "--match-field", "sku"],
        store_factory=_factory(store),
    )

    assert store.count() == 3
    assert store.documents["id-b"] == {"_id": "id-b", "sku": "b", "name": "second", "tags": ["x"]}
    (operations,) = store.bulk_writes
    assert isinstance(operations[1], ReplaceDocument)


def test_cli_passes_flags_into_settings(tmp_path: Path) -> None:
    source = _write_records(tmp_path / "widgets.jsonl", {"sku": "a"}, {"sku": "b"})
    store = FakeDocumentStore()

    cli_module.main(
        [
            "sync",
            str(source),
            "--collection",
            "widgets",
            "--match-field",
            "sku",
            "--batch-size",
            "1",
            "--ordered",
            "--bypass-validation",
            "--quiet",
        ],
        store_factory=_factory(store),
    )

    options = [args[1] for name, args in store.calls if name == "bulk_write"]
    assert options == [BulkWriteOptions(ordered=True, bypass_document_validation=True)] * 2


def test_cli_records_with_ids_are_replaced_without_upsert(tmp_path: Path) -> None:
    source = _write_records(tmp_path / "widgets.jsonl", {"_id": "id-a", "sku": "a"})
    store = FakeDocumentStore()

    cli_module.main(
        ["sync", str(source), "--collection", "widgets", "--no-upsert"],
        store_factory=_factory(store),
    )

    (operations,) = store.bulk_writes
    assert operations == [
        ReplaceDocument(persisted_id="id-a", document={"_id": "id-a", "sku": "a"}, upsert=False)
    ]
    assert store.count() == 0


def test_cli_invalid_record_exits_with_validation_code(tmp_path: Path) -> None:
    source = tmp_path / "broken.jsonl"
    source.write_text('{"sku": "a"}\nnot json\n', encoding="utf-8")

    with pytest.raises(SystemExit) as exc:
        cli_module.main(
            ["sync", str(source), "--collection", "widgets"],
            store_factory=_factory(FakeDocumentStore()),
        )

    assert exc.value.code == 2


def test_cli_missing_file_exits_with_validation_code(tmp_path: Path) -> None:
    with pytest.raises(SystemExit) as exc:
        cli_module.main(
            ["sync", str(tmp_path / "absent.jsonl"), "--collection", "widgets"],
            store_factory=_factory(FakeDocumentStore()),
        )

    assert exc.value.code == 2


def test_cli_negative_batch_size_exits_with_validation_code(tmp_path: Path) -> None:
    source = _write_records(tmp_path / "widgets.jsonl", {"sku": "a"})

    with pytest.raises(SystemExit) as exc:
        cli_module.main(
            ["sync", str(source), "--collection", "widgets", "--batch-size", "-1"],
            store_factory=_factory(FakeDocumentStore()),
        )

    assert exc.value.code == 2


def test_cli_store_failure_exits_with_fatal_code(tmp_path: Path) -> None:
    source = _write_records(tmp_path / "widgets.jsonl", {"sku": "a"})

    with pytest.raises(SystemExit) as exc:
        cli_module.main(
            ["sync", str(source), "--collection", "widgets"],
            store_factory=_factory(FakeDocumentStore(fail_bulk_write=True)),
        )

    assert exc.value.code == 1


def test_cli_requires_a_collection(tmp_path: Path) -> None:
    source = _write_records(tmp_path / "widgets.jsonl", {"sku": "a"})

    with pytest.raises(SystemExit) as exc:
        cli_module.main(["sync", str(source)], store_factory=_factory(FakeDocumentStore()))

    assert exc.value.code == 2
