"""Translate domain write operations and filters into pymongo's vocabulary."""

from __future__ import annotations

from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

from bson import ObjectId
from pymongo import InsertOne, ReplaceOne

from docsync.domain.records import ID_FIELD
from docsync.domain.reconciliation.writes import (
    BulkWriteSummary,
    InsertDocument,
    ReplaceDocument,
    ReplaceMatching,
)

if TYPE_CHECKING:
    from collections.abc import Hashable, Sequence

    from pymongo.results import BulkWriteResult

    from docsync.domain.reconciliation.writes import WriteOperation

type PyMongoRequest = InsertOne[dict[str, Any]] | ReplaceOne[dict[str, Any]]


def to_store_id(value: object) -> object:
    """Return ``value`` as an ``ObjectId`` when it is the string form of one.

    Records carry ids as strings, so only ``ObjectId`` ids survive the trip
    back to the store. Collections whose ``_id`` is an int, or a 24 character
    hex string stored as a string, are not supported: such an id comes back
    as a different BSON type, and an upserting replace on it inserts a
    duplicate instead of matching.
    """

    if isinstance(value, str) and ObjectId.is_valid(value):
        return ObjectId(value)
    return value


def _to_store_condition(value: object) -> object:
    if isinstance(value, Mapping):
        return {
            operator: [to_store_id(entry) for entry in operand]
            if isinstance(operand, list | tuple)
            else to_store_id(operand)
            for operator, operand in value.items()
        }
    return to_store_id(value)


def to_store_filter(filter: Mapping[str, Any]) -> dict[str, Any]:  # noqa: A002
    converted = dict(filter)
    if ID_FIELD in converted:
        converted[ID_FIELD] = _to_store_condition(converted[ID_FIELD])
    return converted


def to_store_document(document: Mapping[str, Any]) -> dict[str, Any]:
    converted = dict(document)
    if ID_FIELD in converted:
        converted[ID_FIELD] = to_store_id(converted[ID_FIELD])
    return converted


def to_in_filter(field: str, values: Sequence[Hashable]) -> dict[str, Any]:
    return to_store_filter({field: {"$in": list(values)}})


def to_insert_document(document: Mapping[str, Any]) -> dict[str, Any]:
    """Return the store form of ``document`` with its ``_id`` assigned client side."""

    converted = to_store_document(document)
    if converted.get(ID_FIELD) is None:
        converted[ID_FIELD] = ObjectId()
    return converted


def to_pymongo_request(operation: WriteOperation) -> PyMongoRequest:
    if isinstance(operation, InsertDocument):
        return InsertOne(to_insert_document(operation.document))
    if isinstance(operation, ReplaceDocument):
        return ReplaceOne(
            {ID_FIELD: to_store_id(operation.persisted_id)},
            to_store_document(operation.document),
            upsert=operation.upsert,
        )
    if isinstance(operation, ReplaceMatching):
        return ReplaceOne(
            to_store_filter(operation.filter),
            to_store_document(operation.document),
            upsert=operation.upsert,
        )
    raise TypeError(f"Unsupported write operation: {type(operation).__name__}")


def to_pymongo_requests(
    operations: Sequence[WriteOperation],
) -> tuple[list[PyMongoRequest], list[str]]:
    """Translate ``operations`` and return the ids given to their insertions, in order."""

    requests: list[PyMongoRequest] = []
    inserted_ids: list[str] = []
    for operation in operations:
        if isinstance(operation, InsertDocument):
            document = to_insert_document(operation.document)
            inserted_ids.append(str(document[ID_FIELD]))
            requests.append(InsertOne(document))
        else:
            requests.append(to_pymongo_request(operation))
    return requests, inserted_ids


def summarize_result(result: BulkWriteResult) -> BulkWriteSummary:
    if not result.acknowledged:
        return BulkWriteSummary()
    return BulkWriteSummary(
        inserted=result.inserted_count,
        matched=result.matched_count,
        modified=result.modified_count,
        upserted=result.upserted_count,
        upserted_ids=[str(value) for value in result.upserted_ids.values()],
    )


def summarize_details(details: Mapping[str, Any]) -> BulkWriteSummary:
    """Summarize the raw report pymongo attaches to a ``BulkWriteError``."""

    return BulkWriteSummary(
        inserted=int(details.get("nInserted", 0)),
        matched=int(details.get("nMatched", 0)),
        modified=int(details.get("nModified", 0)),
        upserted=int(details.get("nUpserted", 0)),
        upserted_ids=[str(entry.get(ID_FIELD)) for entry in details.get("upserted", [])],
    )
