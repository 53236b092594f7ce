"""
Storage Services Package

Provides the abstract document store interface and its implementations.
Google Sheets is the hosted backend; the in-memory store backs tests
and local demos. Business logic only ever sees the interface.
"""

from kakeibo.services.storage.interface import (
    CollectionName,
    Document,
    DocumentStoreInterface,
    NotFoundError,
    MalformedDocumentError,
    PartialWriteError,
    StorageError,
    StoreUnavailableError,
    collection_name,
)
from kakeibo.services.storage.memory import InMemoryDocumentStore
from kakeibo.services.storage.google_sheets import (
    GoogleSheetsClient,
    GoogleSheetsDocumentStore,
)

__all__ = [
    # Interface
    "CollectionName",
    "Document",
    "DocumentStoreInterface",
    "collection_name",
    # Exceptions
    "MalformedDocumentError",
    "NotFoundError",
    "PartialWriteError",
    "StorageError",
    "StoreUnavailableError",
    # Implementations
    "GoogleSheetsClient",
    "GoogleSheetsDocumentStore",
    "InMemoryDocumentStore",
]
