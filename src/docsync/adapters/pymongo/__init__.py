"""Public interface for the pymongo adapter."""

from __future__ import annotations

from .client import create_async_client, create_client, open_async_store, open_store
from .store import AsyncPyMongoDocumentStore, PyMongoDocumentStore
from .translate import (
    summarize_details,
    summarize_result,
    to_insert_document,
    to_pymongo_request,
    to_pymongo_requests,
    to_store_document,
    to_store_filter,
    to_store_id,
)

__all__ = [
    "AsyncPyMongoDocumentStore",
    "PyMongoDocumentStore",
    "create_async_client",
    "create_client",
    "open_async_store",
    "open_store",
    "summarize_details",
    "summarize_result",
    "to_insert_document",
    "to_pymongo_request",
    "to_pymongo_requests",
    "to_store_document",
    "to_store_filter",
    "to_store_id",
]
