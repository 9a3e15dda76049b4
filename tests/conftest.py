from __future__ import annotations

import os

import pytest

from tests.helpers.documents import FakeAsyncDocumentStore, FakeDocumentStore

_DOCSYNC_VARIABLES = tuple(name for name in os.environ if name.startswith("DOCSYNC_"))


@pytest.fixture(autouse=True)
def _isolated_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in _DOCSYNC_VARIABLES:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def store() -> FakeDocumentStore:
    return FakeDocumentStore()


@pytest.fixture
def async_store(store: FakeDocumentStore) -> FakeAsyncDocumentStore:
    return FakeAsyncDocumentStore(store)
