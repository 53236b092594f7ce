"""Services package."""

from kakeibo.services.expenses import ExpenseStore
from kakeibo.services.profile import UserProfileStore
from kakeibo.services.storage import (
    DocumentStoreInterface,
    GoogleSheetsClient,
    GoogleSheetsDocumentStore,
    InMemoryDocumentStore,
    NotFoundError,
    PartialWriteError,
    StorageError,
    StoreUnavailableError,
)
from kakeibo.services.taxonomy import CategoryStore, PaymentMethodStore, TagStore

__all__ = [
    # Domain stores
    "CategoryStore",
    "ExpenseStore",
    "PaymentMethodStore",
    "TagStore",
    "UserProfileStore",
    # Storage backends
    "DocumentStoreInterface",
    "GoogleSheetsClient",
    "GoogleSheetsDocumentStore",
    "InMemoryDocumentStore",
    "NotFoundError",
    "PartialWriteError",
    "StorageError",
    "StoreUnavailableError",
]
