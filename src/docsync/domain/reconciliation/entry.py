"""Upsert a single record located by an arbitrary filter."""

from __future__ import annotations

from collections.abc import Hashable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from docsync.domain.records import ID_FIELD, DocumentRecord

from .writes import ReplaceMatching

if TYPE_CHECKING:
    from docsync.domain.ports.store import AsyncDocumentStore, DocumentStore


@dataclass
class UpsertEntry[TRecord: DocumentRecord, TKey: Hashable]:
    """One record replacing whatever document matches ``filter``, or inserted if none does.

    After :meth:`save` the record carries the persisted id of the document it
    was written to.
    """

    record: TRecord
    filter: dict[str, Any]
    match_value: TKey | None = None

    @classmethod
    def by_match_value(
        cls, record: TRecord, field: str, value: TKey
    ) -> UpsertEntry[TRecord, TKey]:
        return cls(record=record, filter={field: value}, match_value=value)

    def to_write_operation(self) -> ReplaceMatching:
        return ReplaceMatching(filter=dict(self.filter), document=self.record.to_document())

    def save(self, store: DocumentStore) -> TRecord:
        upserted_id = store.replace_one(
            self.filter,
            self.record.to_document(),
            upsert=True,
            bypass_document_validation=True,
        )
        if upserted_id is None:
            upserted_id = _persisted_id_of(store.find_one(self.filter))
        self.record.persisted_id = upserted_id
        return self.record

    async def save_async(self, store: AsyncDocumentStore) -> TRecord:
        upserted_id = await store.replace_one(
            self.filter,
            self.record.to_document(),
            upsert=True,
            bypass_document_validation=True,
        )
        if upserted_id is None:
            upserted_id = _persisted_id_of(await store.find_one(self.filter))
        self.record.persisted_id = upserted_id
        return self.record


def _persisted_id_of(document: dict[str, Any] | None) -> str | None:
    if document is None or document.get(ID_FIELD) is None:
        return None
    return str(document[ID_FIELD])
