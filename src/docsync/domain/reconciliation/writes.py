"""Store-agnostic write operations emitted by the classifier."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Iterable

    from docsync.domain.records import Document

    from .item import ReconciliationItem


@dataclass(frozen=True, slots=True)
class InsertDocument:
    """Insert ``document``; the store assigns the persisted id."""

    document: Document


@dataclass(frozen=True, slots=True)
class ReplaceDocument:
    """Replace the document stored under ``persisted_id``."""

    persisted_id: str
    document: Document
    upsert: bool = False


@dataclass(frozen=True, slots=True)
class ReplaceMatching:
    """Replace the first document matching ``filter``."""

    filter: dict[str, Any]
    document: Document
    upsert: bool = True


type WriteOperation = InsertDocument | ReplaceDocument | ReplaceMatching


@dataclass(frozen=True, slots=True)
class BulkWriteOptions:
    ordered: bool = False
    bypass_document_validation: bool = False


@dataclass(slots=True)
class BulkWriteSummary:
    """Counts reported by the store for one or more bulk writes.

    ``inserted_ids`` lists the ids given to the :class:`InsertDocument`
    operations, in operation order. A store that cannot tell leaves it empty.
    """

    inserted: int = 0
    matched: int = 0
    modified: int = 0
    upserted: int = 0
    upserted_ids: list[str] = field(default_factory=list)
    inserted_ids: list[str] = field(default_factory=list)

    def __add__(self, other: BulkWriteSummary) -> BulkWriteSummary:
        return BulkWriteSummary(
            inserted=self.inserted + other.inserted,
            matched=self.matched + other.matched,
            modified=self.modified + other.modified,
            upserted=self.upserted + other.upserted,
            upserted_ids=[*self.upserted_ids, *other.upserted_ids],
            inserted_ids=[*self.inserted_ids, *other.inserted_ids],
        )

    @property
    def written(self) -> int:
        return self.inserted + self.modified + self.upserted


def build_write_operations(
    items: Iterable[ReconciliationItem[Any, Any]],
    *,
    upsert: bool = True,
) -> list[WriteOperation]:
    """Classify ``items`` in order and return their write operations, skipping no-ops."""

    operations: list[WriteOperation] = []
    for item in items:
        operation = item.to_write_operation(upsert=upsert)
        if operation is not None:
            operations.append(operation)
    return operations
