"""Ports the reconciliation core depends on."""

from __future__ import annotations

from .store import AsyncDocumentStore, DocumentStore

__all__ = ["AsyncDocumentStore", "DocumentStore"]
