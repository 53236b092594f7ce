"""
In-Memory Document Store

Keeps every collection in a dict of dicts. Used by the test suite and
by the "memory" storage backend for local demos. Documents are copied
on the way in and out, so callers can never mutate stored state.
"""

import copy
from typing import Any, Optional
from uuid import uuid4

from kakeibo.services.storage.interface import (
    CollectionName,
    Document,
    DocumentStoreInterface,
    NotFoundError,
    collection_name,
)


def generate_document_id() -> str:
    """Random 20-character document id."""
    return uuid4().hex[:20]


class InMemoryDocumentStore(DocumentStoreInterface):
    """Document store backed by process memory."""

    def __init__(self, initial: Optional[dict[str, dict[str, Document]]] = None):
        self._collections: dict[str, dict[str, Document]] = {}
        for name, documents in (initial or {}).items():
            for doc_id, data in documents.items():
                self._bucket(name)[doc_id] = copy.deepcopy(data)

    def _bucket(self, collection: CollectionName) -> dict[str, Document]:
        return self._collections.setdefault(collection_name(collection), {})

    @staticmethod
    def _with_id(doc_id: str, data: Document) -> Document:
        document = copy.deepcopy(data)
        document["id"] = doc_id
        return document

    async def list_all(self, collection: CollectionName) -> list[Document]:
        return [
            self._with_id(doc_id, data)
            for doc_id, data in self._bucket(collection).items()
        ]

    async def list_where(
        self,
        collection: CollectionName,
        field: str,
        value: Any,
    ) -> list[Document]:
        return [
            self._with_id(doc_id, data)
            for doc_id, data in self._bucket(collection).items()
            if data.get(field) == value
        ]

    async def get(self, collection: CollectionName, doc_id: str) -> Optional[Document]:
        data = self._bucket(collection).get(doc_id)
        if data is None:
            return None
        return self._with_id(doc_id, data)

    async def add(self, collection: CollectionName, data: Document) -> str:
        bucket = self._bucket(collection)
        doc_id = generate_document_id()
        while doc_id in bucket:
            doc_id = generate_document_id()
        stored = copy.deepcopy(data)
        stored.pop("id", None)
        bucket[doc_id] = stored
        return doc_id

    async def set(
        self,
        collection: CollectionName,
        doc_id: str,
        data: Document,
        merge: bool = True,
    ) -> None:
        bucket = self._bucket(collection)
        incoming = copy.deepcopy(data)
        incoming.pop("id", None)
        if merge and doc_id in bucket:
            bucket[doc_id].update(incoming)
        else:
            bucket[doc_id] = incoming

    async def update(
        self,
        collection: CollectionName,
        doc_id: str,
        fields: Document,
    ) -> None:
        bucket = self._bucket(collection)
        if doc_id not in bucket:
            raise NotFoundError(f"{collection_name(collection)}/{doc_id} not found")
        incoming = copy.deepcopy(fields)
        incoming.pop("id", None)
        bucket[doc_id].update(incoming)

    async def delete(self, collection: CollectionName, doc_id: str) -> bool:
        return self._bucket(collection).pop(doc_id, None) is not None

    async def update_many(
        self,
        collection: CollectionName,
        updates: dict[str, Document],
    ) -> None:
        bucket = self._bucket(collection)
        missing = [doc_id for doc_id in updates if doc_id not in bucket]
        if missing:
            raise NotFoundError(
                f"{collection_name(collection)} documents not found: {', '.join(missing)}"
            )
        for doc_id, fields in updates.items():
            incoming = copy.deepcopy(fields)
            incoming.pop("id", None)
            bucket[doc_id].update(incoming)
