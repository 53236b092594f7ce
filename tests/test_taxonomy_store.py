"""Tests for the category, tag and payment method stores."""

import asyncio

import pytest

from kakeibo.models import OrderUpdate
from kakeibo.services import CategoryStore, PaymentMethodStore, TagStore
from kakeibo.services.storage import (
    MalformedDocumentError,
    NotFoundError,
    PartialWriteError,
    StoreUnavailableError,
)

from conftest import FlakyDocumentStore


class TestCategoryStore:

    def test_create_then_list_includes_trimmed_name(self, store):
        """Test create → list includes the trimmed name."""
        categories = CategoryStore(store)
        category_id = asyncio.run(categories.create("  食費  "))
        listed = asyncio.run(categories.list())
        assert [(c.id, c.name, c.order) for c in listed] == [(category_id, "食費", None)]

    def test_list_sorted_for_display(self, seeded_store):
        asyncio.run(seeded_store.add("categories", {"name": "日用品"}))
        listed = asyncio.run(CategoryStore(seeded_store).list())
        assert [c.name for c in listed] == ["食費", "交通費", "日用品"]

    def test_list_failure_raises(self):
        store = FlakyDocumentStore(fail_on={"list_all": 0})
        with pytest.raises(StoreUnavailableError):
            asyncio.run(CategoryStore(store).list())

    def test_update_trims(self, seeded_store):
        categories = CategoryStore(seeded_store)
        asyncio.run(categories.update("c1", " 食料品 "))
        assert asyncio.run(categories.get("c1")).name == "食料品"

    def test_update_missing_raises(self, store):
        with pytest.raises(NotFoundError):
            asyncio.run(CategoryStore(store).update("nope", "x"))

    def test_delete_cascades_to_tags(self, seeded_store):
        """Test that deleting a category removes its tags and itself."""
        assert asyncio.run(CategoryStore(seeded_store).delete("c1"))
        remaining_tags = asyncio.run(TagStore(seeded_store).list())
        assert [t.id for t in remaining_tags] == ["t3"]
        assert asyncio.run(seeded_store.get("categories", "c1")) is None

    def test_failed_cascade_restores_tags(self, seeded_store):
        """Test that tags deleted before a failure are written back."""
        seeded_store.fail_on = {"delete": 2}
        with pytest.raises(StoreUnavailableError):
            asyncio.run(CategoryStore(seeded_store).delete("c1"))

        tags = asyncio.run(TagStore(seeded_store).list_by_category("c1"))
        assert sorted(t.id for t in tags) == ["t1", "t2"]
        assert asyncio.run(seeded_store.get("categories", "c1")) is not None

    def test_failed_category_delete_restores_tags(self, seeded_store):
        # Two tag deletes succeed, the category delete fails
        seeded_store.fail_on = {"delete": 3}
        with pytest.raises(StoreUnavailableError):
            asyncio.run(CategoryStore(seeded_store).delete("c1"))
        restored = asyncio.run(TagStore(seeded_store).list_by_category("c1"))
        assert [t.name for t in restored] == ["外食", "ランチ"]

    def test_unrecoverable_cascade_raises_partial_write(self, seeded_store):
        seeded_store.fail_on = {"delete": 2, "set": 0}
        with pytest.raises(PartialWriteError) as exc_info:
            asyncio.run(CategoryStore(seeded_store).delete("c1"))
        assert exc_info.value.completed_ids == ["t1"]

    def test_reorder_is_one_batch(self, seeded_store):
        categories = CategoryStore(seeded_store)
        asyncio.run(categories.reorder([
            OrderUpdate(id="c2", order=0),
            OrderUpdate(id="c1", order=1),
        ]))
        assert [c.id for c in asyncio.run(categories.list())] == ["c2", "c1"]
        assert [call for call in seeded_store.calls if call[0] == "update_many"] == [
            ("update_many", "categories"),
        ]

    def test_reorder_with_unknown_id_changes_nothing(self, seeded_store):
        categories = CategoryStore(seeded_store)
        with pytest.raises(NotFoundError):
            asyncio.run(categories.reorder([
                OrderUpdate(id="c2", order=0),
                OrderUpdate(id="gone", order=1),
            ]))
        assert [c.id for c in asyncio.run(categories.list())] == ["c1", "c2"]

    def test_reorder_empty_is_noop(self, seeded_store):
        asyncio.run(CategoryStore(seeded_store).reorder([]))
        assert not any(call[0] == "update_many" for call in seeded_store.calls)


class TestTagStore:

    def test_create_stores_category(self, seeded_store):
        tags = TagStore(seeded_store)
        tag_id = asyncio.run(tags.create(" 朝食 ", "c1"))
        tag = asyncio.run(tags.get(tag_id))
        assert tag.name == "朝食"
        assert tag.category_id == "c1"

    def test_list_by_category(self, seeded_store):
        tags = asyncio.run(TagStore(seeded_store).list_by_category("c1"))
        assert [t.name for t in tags] == ["外食", "ランチ"]

    def test_update_moves_category(self, seeded_store):
        tags = TagStore(seeded_store)
        asyncio.run(tags.update("t1", "外食", "c2"))
        assert sorted(t.id for t in asyncio.run(tags.list_by_category("c2"))) == ["t1", "t3"]

    def test_delete(self, seeded_store):
        tags = TagStore(seeded_store)
        assert asyncio.run(tags.delete("t1"))
        assert not asyncio.run(tags.delete("t1"))


class TestPaymentMethodStore:

    def test_missing_order_sorts_as_zero(self, store):
        asyncio.run(store.add("paymentMethods", {"name": "現金", "order": 1}))
        asyncio.run(store.add("paymentMethods", {"name": "PayPay"}))
        methods = asyncio.run(PaymentMethodStore(store).list())
        assert [(m.name, m.order) for m in methods] == [("PayPay", 0), ("現金", 1)]

    def test_create_defaults_order(self, store):
        methods = PaymentMethodStore(store)
        method_id = asyncio.run(methods.create(" 現金 "))
        method = asyncio.run(methods.get(method_id))
        assert (method.name, method.order) == ("現金", 0)


class TestHandEditedDocuments:

    def test_blank_cells_load_as_empty(self):
        store = FlakyDocumentStore({
            "tags": {"t1": {"name": "外食", "categoryId": None}},
            "categories": {"c1": {"name": None, "order": 0}},
        })
        [tag] = asyncio.run(TagStore(store).list())
        assert tag.category_id == ""
        [category] = asyncio.run(CategoryStore(store).list())
        assert category.name == ""

    def test_unreadable_document_left_out_of_list(self, seeded_store):
        asyncio.run(seeded_store.set("categories", "bad", {"name": "壊れた", "order": "abc"}))
        listed = asyncio.run(CategoryStore(seeded_store).list())
        assert [c.id for c in listed] == ["c1", "c2"]

    def test_unreadable_document_get_raises_storage_error(self, seeded_store):
        asyncio.run(seeded_store.set("tags", "bad", {"categoryId": "c1"}))
        with pytest.raises(MalformedDocumentError):
            asyncio.run(TagStore(seeded_store).get("bad"))
        assert [t.id for t in asyncio.run(TagStore(seeded_store).list_by_category("c1"))] == ["t1", "t2"]
