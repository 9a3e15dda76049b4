"""The unit of work of a reconciliation: one record with its resolved identity."""

from __future__ import annotations

from collections.abc import Hashable
from enum import Enum, auto
from typing import TYPE_CHECKING, Self

from docsync.domain.records import ID_FIELD, DocumentRecord, is_blank_id

from .writes import InsertDocument, ReplaceDocument

if TYPE_CHECKING:
    from .writes import WriteOperation


class MissingType(Enum):
    MISSING = auto()


MISSING = MissingType.MISSING
"""Marker for "no match key given", so ``None`` and falsy keys stay assignable."""


class ReconciliationItem[TRecord: DocumentRecord, TKey: Hashable]:
    """Pair a record with its persisted id and the external key used to find it.

    The persisted id lives in two places, the item and its record. Assigning it
    through :meth:`assign_persisted_id` keeps both in step, and classification
    adopts the record's id when only the record carries one.
    """

    __slots__ = ("_match_key_set", "match_key", "persisted_id", "record")

    def __init__(
        self,
        record: TRecord,
        *,
        persisted_id: str | None = None,
        match_key: TKey | MissingType = MISSING,
    ) -> None:
        self.record = record
        self.persisted_id: str | None = None
        self.match_key: TKey | None = None
        self._match_key_set = False

        initial_id = persisted_id if persisted_id is not None else record.persisted_id
        if not is_blank_id(initial_id):
            self.assign_persisted_id(initial_id)
        if match_key is not MISSING:
            self.assign_match_key(match_key)

    def __repr__(self) -> str:
        key = repr(self.match_key) if self._match_key_set else "<unset>"
        return (
            f"{type(self).__name__}(persisted_id={self.persisted_id!r}, match_key={key}, "
            f"record={type(self.record).__name__})"
        )

    @property
    def match_key_set(self) -> bool:
        return self._match_key_set

    def assign_persisted_id(self, persisted_id: str | None) -> Self:
        self.persisted_id = persisted_id
        self.record.persisted_id = persisted_id
        return self

    def assign_match_key(self, match_key: TKey | None) -> Self:
        self.match_key = match_key
        self._match_key_set = True
        return self

    def is_replacement(self) -> bool:
        record_id = self.record.persisted_id
        if is_blank_id(self.persisted_id) and is_blank_id(record_id):
            return False
        if is_blank_id(self.persisted_id):
            self.assign_persisted_id(record_id)
        if is_blank_id(self.persisted_id):
            return False
        if record_id != self.persisted_id:
            self.record.persisted_id = self.persisted_id
        return True

    def is_insertion(self) -> bool:
        return not self.is_replacement()

    def to_filter(self) -> dict[str, str | None]:
        return {ID_FIELD: self.persisted_id}

    def to_write_operation(self, *, upsert: bool = True) -> WriteOperation | None:
        """Return the write for this item, or ``None`` when the record has no content."""

        replacement = self.is_replacement()
        document = self.record.to_document()
        if not document:
            return None
        if replacement and self.persisted_id is not None:
            return ReplaceDocument(
                persisted_id=self.persisted_id,
                document=document,
                upsert=upsert,
            )
        return InsertDocument(document=document)
