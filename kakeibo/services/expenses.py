"""
Expense Store

CRUD over the expenses collection, scoped by user id.

Inputs arrive already validated (ExpenseCreate / ExpenseUpdate), so
this layer only maps them to documents and stamps timestamps.
"""

from datetime import datetime
from typing import Callable, Optional

import structlog

from kakeibo.models.expense import (
    Collection,
    Expense,
    ExpenseCreate,
    ExpenseUpdate,
    utc_now,
)
from kakeibo.services.documents import parse_document, parse_documents
from kakeibo.services.storage.interface import DocumentStoreInterface


logger = structlog.get_logger(__name__)


class ExpenseStore:
    """Expense documents for every user of the household."""

    def __init__(
        self,
        store: DocumentStoreInterface,
        clock: Callable[[], datetime] = utc_now,
    ):
        """
        Args:
            store: Document store backend
            clock: Source of createdAt/updatedAt values
        """
        self._store = store
        self._clock = clock

    async def list_by_user(self, user_id: str) -> list[Expense]:
        """
        The user's expenses, newest date first.

        Expenses with a missing or unreadable date come last.
        """
        documents = await self._store.list_where(Collection.EXPENSES, "userId", user_id)
        expenses = parse_documents(Expense, Collection.EXPENSES, documents)
        expenses.sort(key=lambda expense: expense.sort_timestamp, reverse=True)
        return expenses

    async def get(self, expense_id: str) -> Optional[Expense]:
        document = await self._store.get(Collection.EXPENSES, expense_id)
        if document is None:
            return None
        return parse_document(Expense, Collection.EXPENSES, document)

    async def create(self, user_id: str, expense: ExpenseCreate) -> str:
        """Store a new expense and return its id."""
        document = expense.to_document(user_id, self._clock())
        expense_id = await self._store.add(Collection.EXPENSES, document)
        logger.debug("expense_created", expense_id=expense_id, user_id=user_id)
        return expense_id

    async def update(self, expense_id: str, changes: ExpenseUpdate) -> None:
        """
        Write the fields set on `changes`, plus a fresh updatedAt.

        Raises:
            NotFoundError: If the expense doesn't exist
        """
        await self._store.update(
            Collection.EXPENSES,
            expense_id,
            changes.to_document(self._clock()),
        )

    async def delete(self, expense_id: str) -> bool:
        """Hard delete; no ownership check."""
        return await self._store.delete(Collection.EXPENSES, expense_id)
