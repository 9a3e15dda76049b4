"""Records that the reconciliation core can write to a document store."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Protocol, Self, runtime_checkable

from pydantic import BaseModel, ConfigDict, Field, field_validator

type Document = dict[str, Any]

ID_FIELD = "_id"


@runtime_checkable
class DocumentRecord(Protocol):
    """Application-level record convertible to the store's native document."""

    persisted_id: str | None

    def to_document(self) -> Document: ...


def is_blank_id(value: str | None) -> bool:
    return value is None or not value.strip()


class DocumentModel(BaseModel):
    """Pydantic base implementing :class:`DocumentRecord`.

    The persisted id travels under the store's ``_id`` field. It is omitted from
    :meth:`to_document` while unset so the store assigns one on insertion, and
    any non-string id coming back from the store (``bson.ObjectId``) is kept in
    its string form.
    """

    model_config = ConfigDict(populate_by_name=True)

    persisted_id: str | None = Field(default=None, alias=ID_FIELD)

    @field_validator("persisted_id", mode="before")
    @classmethod
    def _stringify_id(cls, value: object) -> object:
        if value is None or isinstance(value, str):
            return value
        return str(value)

    @classmethod
    def from_document(cls, document: Mapping[str, Any]) -> Self:
        return cls.model_validate(dict(document))

    def to_document(self) -> Document:
        body = self.model_dump(by_alias=True, exclude={"persisted_id"})
        if is_blank_id(self.persisted_id):
            return body
        return {ID_FIELD: self.persisted_id, **body}
