"""
Taxonomy Stores

Categories, tags and payment methods as ordered named lists over the
document store.

DESIGN DECISION: The stores are thin. They trim names, sort lists for
display and run the multi-step writes (cascade delete, bulk reorder).
Name uniqueness and "category must exist" are checked by the caller
against its current snapshot, before any store call.
"""

from typing import Generic, Optional, Sequence, Type, TypeVar

import structlog

from kakeibo.models.expense import Category, Collection, OrderUpdate, PaymentMethod, Tag
from kakeibo.ordering import sort_for_display
from kakeibo.services.documents import parse_document, parse_documents
from kakeibo.services.storage.interface import (
    Document,
    DocumentStoreInterface,
    PartialWriteError,
    StorageError,
)


logger = structlog.get_logger(__name__)

T = TypeVar("T", Category, Tag, PaymentMethod)


class _OrderedNameStore(Generic[T]):
    """Shared list/create/update/delete/reorder for one named collection."""

    collection: Collection
    model: Type[T]

    def __init__(self, store: DocumentStoreInterface):
        self._store = store

    async def list(self) -> list[T]:
        """
        All items in display order.

        Raises:
            StorageError: If the store cannot be read
        """
        documents = await self._store.list_all(self.collection)
        return sort_for_display(parse_documents(self.model, self.collection, documents))

    async def get(self, item_id: str) -> Optional[T]:
        document = await self._store.get(self.collection, item_id)
        if document is None:
            return None
        return parse_document(self.model, self.collection, document)

    async def reorder(self, updates: Sequence[OrderUpdate]) -> None:
        """
        Write every {id, order} pair as one batch.

        Nothing is written when any id is unknown.
        """
        if not updates:
            return
        await self._store.update_many(
            self.collection,
            {update.id: {"order": update.order} for update in updates},
        )
        logger.info(
            "order_updated",
            collection=self.collection.value,
            count=len(updates),
        )

    async def _delete_one(self, item_id: str) -> bool:
        return await self._store.delete(self.collection, item_id)


class CategoryStore(_OrderedNameStore[Category]):
    """Categories; deleting one also deletes its tags."""

    collection = Collection.CATEGORIES
    model = Category

    async def create(self, name: str) -> str:
        """Create a category and return its id. New categories have no order."""
        return await self._store.add(self.collection, {"name": name.strip()})

    async def update(self, category_id: str, name: str) -> None:
        await self._store.update(self.collection, category_id, {"name": name.strip()})

    async def delete(self, category_id: str) -> bool:
        """
        Delete a category and every tag that belongs to it.

        Tags go first, then the category. If any step fails, the tags
        already deleted are written back and the original error is
        raised, leaving the store as it was.

        Returns:
            True if the category document existed

        Raises:
            StorageError: If a step failed and the store was restored
            PartialWriteError: If a step failed and restoring also failed
        """
        tag_documents = await self._store.list_where(
            Collection.TAGS, "categoryId", category_id
        )
        deleted: list[Document] = []
        try:
            for document in tag_documents:
                await self._store.delete(Collection.TAGS, document["id"])
                deleted.append(document)
            existed = await self._delete_one(category_id)
        except StorageError as e:
            logger.warning(
                "cascade_delete_failed",
                category_id=category_id,
                deleted_tags=len(deleted),
                error=str(e),
            )
            await self._restore_tags(category_id, deleted)
            raise

        logger.info(
            "category_deleted",
            category_id=category_id,
            deleted_tags=len(deleted),
        )
        return existed

    async def _restore_tags(self, category_id: str, deleted: list[Document]) -> None:
        for position, document in enumerate(deleted):
            data = {key: value for key, value in document.items() if key != "id"}
            try:
                await self._store.set(Collection.TAGS, document["id"], data, merge=False)
            except StorageError as e:
                lost = [doc["id"] for doc in deleted[position:]]
                logger.error(
                    "cascade_restore_failed",
                    category_id=category_id,
                    lost_tag_ids=lost,
                    error=str(e),
                )
                raise PartialWriteError(
                    f"Deleting category {category_id} failed and "
                    f"{len(lost)} tag(s) could not be restored",
                    completed_ids=lost,
                ) from e


class TagStore(_OrderedNameStore[Tag]):
    """Tags, each scoped to one category."""

    collection = Collection.TAGS
    model = Tag

    async def list_by_category(self, category_id: str) -> list[Tag]:
        """Tags of one category in display order."""
        documents = await self._store.list_where(self.collection, "categoryId", category_id)
        return sort_for_display(parse_documents(Tag, self.collection, documents))

    async def create(self, name: str, category_id: str) -> str:
        return await self._store.add(
            self.collection,
            {"name": name.strip(), "categoryId": category_id},
        )

    async def update(self, tag_id: str, name: str, category_id: str) -> None:
        await self._store.update(
            self.collection,
            tag_id,
            {"name": name.strip(), "categoryId": category_id},
        )

    async def delete(self, tag_id: str) -> bool:
        return await self._delete_one(tag_id)


class PaymentMethodStore(_OrderedNameStore[PaymentMethod]):
    """Payment methods; a missing order is stored and sorted as 0."""

    collection = Collection.PAYMENT_METHODS
    model = PaymentMethod

    async def create(self, name: str, order: int = 0) -> str:
        return await self._store.add(
            self.collection,
            {"name": name.strip(), "order": order or 0},
        )

    async def update(self, method_id: str, name: str, order: int = 0) -> None:
        await self._store.update(
            self.collection,
            method_id,
            {"name": name.strip(), "order": order or 0},
        )

    async def delete(self, method_id: str) -> bool:
        return await self._delete_one(method_id)
