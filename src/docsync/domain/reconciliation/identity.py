"""Resolve which items already exist in the store with one in-set query.

A resolution pass collects the match keys of every item still classified as an
insertion, asks the store for documents whose match field holds one of those
keys, and maps each hit's key to its persisted id. Items whose key appears in
that identity map are then reclassified as replacements.

The pass runs before a write, so existing documents are replaced instead of
duplicated, and again after it, because the store (not the caller) assigns ids
to inserted documents. Inserts whose ids the store reported are already
resolved by then; the second pass only backfills the rest, and refuses to when
a key cannot tell the new documents apart.
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Hashable
from typing import TYPE_CHECKING, Any

from docsync.domain.records import ID_FIELD

from .errors import AmbiguousIdentityError

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Mapping, Sequence
    from logging import Logger

    from docsync.domain.ports.store import AsyncDocumentStore, DocumentStore
    from docsync.domain.records import Document

    from .item import ReconciliationItem

type IdentityMap[TKey: Hashable] = dict[TKey, str]


def collect_candidate_keys[TKey: Hashable](
    items: Iterable[ReconciliationItem[Any, TKey]],
) -> list[TKey]:
    """Return the distinct match keys of unresolved items, in item order.

    Items without an explicitly assigned key, or whose key is ``None``, are not
    candidates: querying for them would match unrelated documents.
    """

    seen: set[TKey] = set()
    keys: list[TKey] = []
    for item in items:
        if not item.match_key_set or item.match_key is None:
            continue
        if not item.is_insertion():
            continue
        if item.match_key in seen:
            continue
        seen.add(item.match_key)
        keys.append(item.match_key)
    return keys


def build_identity_map[TKey: Hashable](
    documents: Iterable[Document],
    document_match: Callable[[Document], TKey | None],
    *,
    logger: Logger | None = None,
) -> IdentityMap[TKey]:
    identity_map: IdentityMap[TKey] = {}
    for document in documents:
        key = document_match(document)
        persisted_id = document.get(ID_FIELD)
        if key is None or persisted_id is None:
            continue
        persisted_id = str(persisted_id)
        previous = identity_map.get(key)
        if previous is not None and previous != persisted_id and logger is not None:
            logger.warning(
                "Match key %r is held by several documents (%s, %s); keeping the latter",
                key,
                previous,
                persisted_id,
            )
        identity_map[key] = persisted_id
    return identity_map


def apply_identity_map[TKey: Hashable](
    items: Iterable[ReconciliationItem[Any, TKey]],
    identity_map: Mapping[TKey, str],
) -> int:
    """Assign persisted ids from ``identity_map`` and return how many items changed."""

    if not identity_map:
        return 0
    assigned = 0
    for item in items:
        if not item.match_key_set or item.match_key is None:
            continue
        persisted_id = identity_map.get(item.match_key)
        if persisted_id is None or persisted_id == item.persisted_id:
            continue
        item.assign_persisted_id(persisted_id)
        assigned += 1
    return assigned


def find_ambiguous_keys[TKey: Hashable](
    items: Iterable[ReconciliationItem[Any, TKey]],
    documents: Iterable[Document],
    document_match: Callable[[Document], TKey | None],
) -> list[TKey]:
    """Return keys held by several unresolved items and by several documents.

    One document per key can be shared by any number of items, but several
    documents cannot be told apart by the key alone.
    """

    held = Counter(
        key
        for key in (document_match(document) for document in documents)
        if key is not None
    )
    wanted = Counter(
        item.match_key
        for item in items
        if item.match_key_set and item.match_key is not None and item.is_insertion()
    )
    return [key for key, count in wanted.items() if count > 1 and held[key] > 1]


def _adopt_documents[TKey: Hashable](
    items: Sequence[ReconciliationItem[Any, TKey]],
    documents: list[Document],
    *,
    field: str,
    document_match: Callable[[Document], TKey | None],
    strict: bool,
    logger: Logger | None,
) -> IdentityMap[TKey]:
    if strict:
        ambiguous = find_ambiguous_keys(items, documents, document_match)
        if ambiguous:
            raise AmbiguousIdentityError(
                f"Cannot backfill ids on {field}: keys {ambiguous!r} match several "
                "documents and several items",
                keys=ambiguous,
            )
    identity_map = build_identity_map(documents, document_match, logger=logger)
    apply_identity_map(items, identity_map)
    return identity_map


def resolve_identities[TKey: Hashable](
    items: Sequence[ReconciliationItem[Any, TKey]],
    store: DocumentStore,
    *,
    field: str,
    document_match: Callable[[Document], TKey | None],
    strict: bool = False,
    logger: Logger | None = None,
) -> IdentityMap[TKey]:
    """Run one blocking resolution pass over ``items`` and return the identity map.

    With ``strict`` the pass raises :class:`AmbiguousIdentityError` instead of
    handing one document's id to several new items.
    """

    keys = collect_candidate_keys(items)
    if not keys:
        return {}
    documents = list(store.find_matching(field, keys))
    return _adopt_documents(
        items,
        documents,
        field=field,
        document_match=document_match,
        strict=strict,
        logger=logger,
    )


async def resolve_identities_async[TKey: Hashable](
    items: Sequence[ReconciliationItem[Any, TKey]],
    store: AsyncDocumentStore,
    *,
    field: str,
    document_match: Callable[[Document], TKey | None],
    strict: bool = False,
    logger: Logger | None = None,
) -> IdentityMap[TKey]:
    """Suspending variant of :func:`resolve_identities`."""

    keys = collect_candidate_keys(items)
    if not keys:
        return {}
    documents = list(await store.find_matching(field, keys))
    return _adopt_documents(
        items,
        documents,
        field=field,
        document_match=document_match,
        strict=strict,
        logger=logger,
    )
