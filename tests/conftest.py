"""Shared fixtures: in-memory stores, a store that fails on demand, fixed clock."""

from datetime import datetime, timezone
from typing import Optional

import pytest

from kakeibo.models import Collection
from kakeibo.services.storage import InMemoryDocumentStore, StoreUnavailableError


FIXED_NOW = datetime(2024, 1, 20, 3, 0, tzinfo=timezone.utc)


def fixed_clock() -> datetime:
    return FIXED_NOW


class FlakyDocumentStore(InMemoryDocumentStore):
    """
    In-memory store that raises StoreUnavailableError on chosen calls.

    fail_on maps a method name to the call number (1-based) that fails;
    0 means every call fails. Calls are also recorded in `calls`.
    """

    def __init__(self, initial=None, fail_on: Optional[dict[str, int]] = None):
        super().__init__(initial)
        self.fail_on = dict(fail_on or {})
        self.calls: list[tuple[str, str]] = []
        self._counts: dict[str, int] = {}

    def _tick(self, method: str, collection) -> None:
        name = collection.value if isinstance(collection, Collection) else collection
        self.calls.append((method, name))
        self._counts[method] = self._counts.get(method, 0) + 1
        target = self.fail_on.get(method)
        if target is not None and (target == 0 or target == self._counts[method]):
            raise StoreUnavailableError(f"{method} failed")

    async def list_all(self, collection):
        self._tick("list_all", collection)
        return await super().list_all(collection)

    async def list_where(self, collection, field, value):
        self._tick("list_where", collection)
        return await super().list_where(collection, field, value)

    async def get(self, collection, doc_id):
        self._tick("get", collection)
        return await super().get(collection, doc_id)

    async def add(self, collection, data):
        self._tick("add", collection)
        return await super().add(collection, data)

    async def set(self, collection, doc_id, data, merge=True):
        self._tick("set", collection)
        return await super().set(collection, doc_id, data, merge=merge)

    async def update(self, collection, doc_id, fields):
        self._tick("update", collection)
        return await super().update(collection, doc_id, fields)

    async def delete(self, collection, doc_id):
        self._tick("delete", collection)
        return await super().delete(collection, doc_id)

    async def update_many(self, collection, updates):
        self._tick("update_many", collection)
        return await super().update_many(collection, updates)


@pytest.fixture
def store():
    return FlakyDocumentStore()


@pytest.fixture
def seeded_store():
    """Two categories with tags, ordered 食費 then 交通費."""
    return FlakyDocumentStore({
        "categories": {
            "c1": {"name": "食費", "order": 0},
            "c2": {"name": "交通費", "order": 1},
        },
        "tags": {
            "t1": {"name": "外食", "categoryId": "c1", "order": 0},
            "t2": {"name": "ランチ", "categoryId": "c1", "order": 1},
            "t3": {"name": "電車", "categoryId": "c2", "order": 0},
        },
    })
