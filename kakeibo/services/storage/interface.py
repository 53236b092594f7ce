"""
Abstract Document Store Interface

DESIGN DECISION: We define an abstract interface for storage operations.
This allows us to:
1. Swap Google Sheets for a hosted document database later
2. Use in-memory storage for testing
3. Keep business logic decoupled from storage implementation

The interface is intentionally simple - it mirrors what a hosted
document database offers per named collection and nothing more.
Documents are plain dicts with camelCase keys; the store assigns
the "id" of every document it creates.
"""

from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, Optional, Union


Document = dict[str, Any]
CollectionName = Union[str, Enum]


def collection_name(collection: CollectionName) -> str:
    """Plain string name of a collection (accepts the Collection enum)."""
    if isinstance(collection, Enum):
        return str(collection.value)
    return collection


class DocumentStoreInterface(ABC):
    """
    Abstract interface for a document store.

    Any storage implementation (Google Sheets, in-memory, etc.)
    must implement these methods. Every method raises StorageError
    (or a subclass) when the backend fails.
    """

    @abstractmethod
    async def list_all(self, collection: CollectionName) -> list[Document]:
        """
        Fetch every document of a collection.

        Returns:
            Documents with their "id" key set, in no particular order

        Raises:
            StoreUnavailableError: If the backend cannot be reached
        """
        pass

    @abstractmethod
    async def list_where(
        self,
        collection: CollectionName,
        field: str,
        value: Any,
    ) -> list[Document]:
        """
        Fetch the documents whose `field` equals `value`.

        Returns:
            Matching documents, in no particular order
        """
        pass

    @abstractmethod
    async def get(self, collection: CollectionName, doc_id: str) -> Optional[Document]:
        """
        Retrieve a document by id.

        Returns:
            The document if found, None otherwise
        """
        pass

    @abstractmethod
    async def add(self, collection: CollectionName, data: Document) -> str:
        """
        Create a document with a generated id.

        Returns:
            The new document id
        """
        pass

    @abstractmethod
    async def set(
        self,
        collection: CollectionName,
        doc_id: str,
        data: Document,
        merge: bool = True,
    ) -> None:
        """
        Create or overwrite the document with the given id.

        With merge=True, existing fields not present in `data` are kept.
        """
        pass

    @abstractmethod
    async def update(
        self,
        collection: CollectionName,
        doc_id: str,
        fields: Document,
    ) -> None:
        """
        Merge `fields` into an existing document.

        Raises:
            NotFoundError: If the document doesn't exist
        """
        pass

    @abstractmethod
    async def delete(self, collection: CollectionName, doc_id: str) -> bool:
        """
        Delete a document by id.

        Returns:
            True if a document was deleted, False if it did not exist
        """
        pass

    @abstractmethod
    async def update_many(
        self,
        collection: CollectionName,
        updates: dict[str, Document],
    ) -> None:
        """
        Merge fields into several documents as one batch.

        Either every update is applied or none is: implementations
        check that all target documents exist before writing anything.

        Args:
            updates: Mapping of document id to the fields to merge

        Raises:
            NotFoundError: If any target document doesn't exist
            StorageError: If the batch write fails
        """
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class NotFoundError(StorageError):
    """Entity not found in storage."""
    pass


class StoreUnavailableError(StorageError):
    """Could not reach the storage backend."""
    pass


class MalformedDocumentError(StorageError):
    """A stored document doesn't fit its model (e.g. a hand-edited cell)."""
    pass


class PartialWriteError(StorageError):
    """
    A multi-step write stopped half way and could not be undone.

    `completed_ids` lists the documents already changed when the
    failure happened; the store is left in a mixed state.
    """

    def __init__(self, message: str, completed_ids: Optional[list[str]] = None):
        super().__init__(message)
        self.completed_ids = list(completed_ids or [])
