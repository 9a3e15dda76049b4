"""Failures surfaced by a synchronization run."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from .writes import BulkWriteSummary


class SynchronizationError(RuntimeError):
    """Base class for errors raised while reconciling against a store."""


class ResolutionError(SynchronizationError):
    """Raised when the existence query against the store fails."""


class AmbiguousIdentityError(ResolutionError):
    """Raised when several new items share a key that several documents now hold.

    The store cannot tell which of those documents belongs to which item, so
    no id is backfilled for them.
    """

    def __init__(self, message: str, *, keys: list[Any]) -> None:
        super().__init__(message)
        self.keys = keys


class StoreWriteError(SynchronizationError):
    """Raised when the store rejects a write outright."""


class BulkWriteFailedError(StoreWriteError):
    """Raised when a bulk write fails in whole or in part.

    ``details`` is the store's raw error report and ``summary`` counts the
    operations that did succeed before (ordered) or besides (unordered) the
    failures. ``batch`` is the 1-based batch index once the executor knows it.
    """

    def __init__(
        self,
        message: str,
        *,
        details: dict[str, Any] | None = None,
        summary: BulkWriteSummary | None = None,
        batch: int | None = None,
    ) -> None:
        super().__init__(message)
        self.details = details or {}
        self.summary = summary
        self.batch = batch

    @property
    def write_errors(self) -> list[dict[str, Any]]:
        return list(self.details.get("writeErrors", []))
