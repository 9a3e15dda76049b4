"""pymongo client construction from :class:`~docsync.config.MongoConfig`."""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING, Any

from pymongo import AsyncMongoClient, MongoClient

from .store import AsyncPyMongoDocumentStore, PyMongoDocumentStore

if TYPE_CHECKING:
    from docsync.config import MongoConfig

log = getLogger(__name__)


def create_client(config: MongoConfig) -> MongoClient[dict[str, Any]]:
    log.debug("Connecting to MongoDB database %s as %s", config.database, config.app_name)
    return MongoClient(
        config.uri,
        appname=config.app_name,
        serverSelectionTimeoutMS=config.server_selection_timeout_ms,
    )


def create_async_client(config: MongoConfig) -> AsyncMongoClient[dict[str, Any]]:
    log.debug("Connecting to MongoDB database %s as %s", config.database, config.app_name)
    return AsyncMongoClient(
        config.uri,
        appname=config.app_name,
        serverSelectionTimeoutMS=config.server_selection_timeout_ms,
    )


def open_store(
    client: MongoClient[dict[str, Any]], config: MongoConfig, collection: str
) -> PyMongoDocumentStore:
    return PyMongoDocumentStore(client[config.database][collection])


def open_async_store(
    client: AsyncMongoClient[dict[str, Any]], config: MongoConfig, collection: str
) -> AsyncPyMongoDocumentStore:
    return AsyncPyMongoDocumentStore(client[config.database][collection])
