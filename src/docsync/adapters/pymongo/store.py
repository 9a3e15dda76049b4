"""Document stores backed by pymongo collections."""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING, Any

from pymongo.errors import BulkWriteError, PyMongoError

from docsync.domain.reconciliation.errors import (
    BulkWriteFailedError,
    ResolutionError,
    StoreWriteError,
)

from .translate import (
    summarize_details,
    summarize_result,
    to_in_filter,
    to_pymongo_requests,
    to_store_document,
    to_store_filter,
)

if TYPE_CHECKING:
    from collections.abc import Hashable, Mapping, Sequence

    from pymongo.asynchronous.collection import AsyncCollection
    from pymongo.collection import Collection

    from docsync.domain.records import Document
    from docsync.domain.reconciliation.writes import (
        BulkWriteOptions,
        BulkWriteSummary,
        WriteOperation,
    )

log = getLogger(__name__)


def _bulk_write_failed(exc: BulkWriteError, operation_count: int) -> BulkWriteFailedError:
    details: dict[str, Any] = dict(exc.details)
    errors = details.get("writeErrors", [])
    log.warning("Bulk write of %d operations failed with %d errors", operation_count, len(errors))
    return BulkWriteFailedError(
        f"Bulk write failed: {len(errors)} of {operation_count} operations rejected",
        details=details,
        summary=summarize_details(details),
    )


def _upserted_id(value: object) -> str | None:
    return None if value is None else str(value)


class PyMongoDocumentStore:
    """Blocking :class:`~docsync.domain.ports.store.DocumentStore` over one collection."""

    def __init__(self, collection: Collection[dict[str, Any]]) -> None:
        self._collection = collection

    @property
    def name(self) -> str:
        return self._collection.name

    def find_matching(self, field: str, values: Sequence[Hashable]) -> list[Document]:
        try:
            return list(self._collection.find(to_in_filter(field, values)))
        except PyMongoError as exc:
            raise ResolutionError(f"Existence query on {self.name}.{field} failed") from exc

    def bulk_write(
        self,
        operations: Sequence[WriteOperation],
        options: BulkWriteOptions,
    ) -> BulkWriteSummary:
        requests, inserted_ids = to_pymongo_requests(operations)
        try:
            result = self._collection.bulk_write(
                requests,
                ordered=options.ordered,
                bypass_document_validation=options.bypass_document_validation,
            )
        except BulkWriteError as exc:
            raise _bulk_write_failed(exc, len(requests)) from exc
        except PyMongoError as exc:
            raise StoreWriteError(f"Bulk write on {self.name} failed") from exc
        summary = summarize_result(result)
        summary.inserted_ids = inserted_ids
        return summary

    def find_one(self, filter: Mapping[str, Any]) -> Document | None:  # noqa: A002
        try:
            return self._collection.find_one(to_store_filter(filter))
        except PyMongoError as exc:
            raise ResolutionError(f"Lookup on {self.name} failed") from exc

    def replace_one(
        self,
        filter: Mapping[str, Any],  # noqa: A002
        document: Document,
        *,
        upsert: bool = False,
        bypass_document_validation: bool = False,
    ) -> str | None:
        try:
            result = self._collection.replace_one(
                to_store_filter(filter),
                to_store_document(document),
                upsert=upsert,
                bypass_document_validation=bypass_document_validation,
            )
        except PyMongoError as exc:
            raise StoreWriteError(f"Replace on {self.name} failed") from exc
        return _upserted_id(result.upserted_id)

    def delete_one(self, filter: Mapping[str, Any]) -> int:  # noqa: A002
        try:
            return self._collection.delete_one(to_store_filter(filter)).deleted_count
        except PyMongoError as exc:
            raise StoreWriteError(f"Delete on {self.name} failed") from exc

    def delete_many(self, filter: Mapping[str, Any]) -> int:  # noqa: A002
        try:
            return self._collection.delete_many(to_store_filter(filter)).deleted_count
        except PyMongoError as exc:
            raise StoreWriteError(f"Delete on {self.name} failed") from exc


class AsyncPyMongoDocumentStore:
    """Suspending store over a pymongo ``AsyncCollection``."""

    def __init__(self, collection: AsyncCollection[dict[str, Any]]) -> None:
        self._collection = collection

    @property
    def name(self) -> str:
        return self._collection.name

    async def find_matching(self, field: str, values: Sequence[Hashable]) -> list[Document]:
        try:
            return await self._collection.find(to_in_filter(field, values)).to_list()
        except PyMongoError as exc:
            raise ResolutionError(f"Existence query on {self.name}.{field} failed") from exc

    async def bulk_write(
        self,
        operations: Sequence[WriteOperation],
        options: BulkWriteOptions,
    ) -> BulkWriteSummary:
        requests, inserted_ids = to_pymongo_requests(operations)
        try:
            result = await self._collection.bulk_write(
                requests,
                ordered=options.ordered,
                bypass_document_validation=options.bypass_document_validation,
            )
        except BulkWriteError as exc:
            raise _bulk_write_failed(exc, len(requests)) from exc
        except PyMongoError as exc:
            raise StoreWriteError(f"Bulk write on {self.name} failed") from exc
        summary = summarize_result(result)
        summary.inserted_ids = inserted_ids
        return summary

    async def find_one(self, filter: Mapping[str, Any]) -> Document | None:  # noqa: A002
        try:
            return await self._collection.find_one(to_store_filter(filter))
        except PyMongoError as exc:
            raise ResolutionError(f"Lookup on {self.name} failed") from exc

    async def replace_one(
        self,
        filter: Mapping[str, Any],  # noqa: A002
        document: Document,
        *,
        upsert: bool = False,
        bypass_document_validation: bool = False,
    ) -> str | None:
        try:
            result = await self._collection.replace_one(
                to_store_filter(filter),
                to_store_document(document),
                upsert=upsert,
                bypass_document_validation=bypass_document_validation,
            )
        except PyMongoError as exc:
            raise StoreWriteError(f"Replace on {self.name} failed") from exc
        return _upserted_id(result.upserted_id)

    async def delete_one(self, filter: Mapping[str, Any]) -> int:  # noqa: A002
        try:
            result = await self._collection.delete_one(to_store_filter(filter))
        except PyMongoError as exc:
            raise StoreWriteError(f"Delete on {self.name} failed") from exc
        return result.deleted_count

    async def delete_many(self, filter: Mapping[str, Any]) -> int:  # noqa: A002
        try:
            result = await self._collection.delete_many(to_store_filter(filter))
        except PyMongoError as exc:
            raise StoreWriteError(f"Delete on {self.name} failed") from exc
        return result.deleted_count
