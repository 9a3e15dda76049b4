"""Document store contracts consumed by the reconciliation core."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Hashable, Mapping, Sequence

    from docsync.domain.records import Document
    from docsync.domain.reconciliation.writes import (
        BulkWriteOptions,
        BulkWriteSummary,
        WriteOperation,
    )


@runtime_checkable
class DocumentStore(Protocol):
    """Blocking access to one collection of a document store."""

    def find_matching(self, field: str, values: Sequence[Hashable]) -> list[Document]:
        """Return every document whose ``field`` equals one of ``values``."""
        ...

    def bulk_write(
        self,
        operations: Sequence[WriteOperation],
        options: BulkWriteOptions,
    ) -> BulkWriteSummary: ...

    def find_one(self, filter: Mapping[str, Any]) -> Document | None: ...  # noqa: A002

    def replace_one(
        self,
        filter: Mapping[str, Any],  # noqa: A002
        document: Document,
        *,
        upsert: bool = False,
        bypass_document_validation: bool = False,
    ) -> str | None:
        """Replace one document and return the upserted id, if one was created."""
        ...

    def delete_one(self, filter: Mapping[str, Any]) -> int: ...  # noqa: A002

    def delete_many(self, filter: Mapping[str, Any]) -> int: ...  # noqa: A002


@runtime_checkable
class AsyncDocumentStore(Protocol):
    """Suspending counterpart of :class:`DocumentStore`."""

    async def find_matching(self, field: str, values: Sequence[Hashable]) -> list[Document]: ...

    async def bulk_write(
        self,
        operations: Sequence[WriteOperation],
        options: BulkWriteOptions,
    ) -> BulkWriteSummary: ...

    async def find_one(self, filter: Mapping[str, Any]) -> Document | None: ...  # noqa: A002

    async def replace_one(
        self,
        filter: Mapping[str, Any],  # noqa: A002
        document: Document,
        *,
        upsert: bool = False,
        bypass_document_validation: bool = False,
    ) -> str | None: ...

    async def delete_one(self, filter: Mapping[str, Any]) -> int: ...  # noqa: A002

    async def delete_many(self, filter: Mapping[str, Any]) -> int: ...  # noqa: A002
