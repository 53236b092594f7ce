"""Tests for display ordering and drag-and-drop reordering."""

from kakeibo.models import Category, OrderUpdate, PaymentMethod, Tag
from kakeibo.ordering import (
    collation_key,
    compute_reorder,
    compute_tag_reorder,
    move_item,
    sort_for_display,
)


class TestDisplayOrder:

    def test_order_first_missing_last(self):
        """Test that explicit orders come first and unordered items last."""
        items = [
            Category(id="c3", name="あ"),
            Category(id="c1", name="食費", order=1),
            Category(id="c2", name="交通費", order=0),
        ]
        assert [c.id for c in sort_for_display(items)] == ["c2", "c1", "c3"]

    def test_ties_break_by_name(self):
        items = [
            Category(id="c1", name="いぬ"),
            Category(id="c2", name="あめ"),
        ]
        assert [c.id for c in sort_for_display(items)] == ["c2", "c1"]

    def test_payment_methods_default_order(self):
        items = [
            PaymentMethod(id="p1", name="現金", order=1),
            PaymentMethod(id="p2", name="PayPay"),
        ]
        assert [p.id for p in sort_for_display(items)] == ["p2", "p1"]


class TestCollation:

    def test_kana_fold(self):
        """Test that hiragana and katakana compare equal before the tie-break."""
        assert collation_key("カード")[0] == collation_key("かーど")[0]

    def test_case_and_width_folded(self):
        assert collation_key("ＡＢＣ")[0] == collation_key("abc")[0]

    def test_script_order(self):
        names = ["漢字", "かな", "abc", "123"]
        assert sorted(names, key=collation_key) == ["123", "abc", "かな", "漢字"]


class TestReorder:

    def test_move_item_is_not_a_swap(self):
        assert move_item(["a", "b", "c", "d"], 0, 2) == ["b", "c", "a", "d"]
        assert move_item(["a", "b", "c", "d"], 3, 1) == ["a", "d", "b", "c"]

    def test_drop_onto_first(self):
        """Test moving 交通費 onto 食費."""
        items = [
            Category(id="c1", name="食費", order=0),
            Category(id="c2", name="交通費", order=1),
        ]
        assert compute_reorder(items, "c2", "c1") == [
            OrderUpdate(id="c2", order=0),
            OrderUpdate(id="c1", order=1),
        ]

    def test_every_item_updated_with_dense_orders(self):
        items = [Category(id=f"c{i}", name=str(i)) for i in range(5)]
        updates = compute_reorder(items, "c4", "c1")
        assert [u.id for u in updates] == ["c0", "c4", "c1", "c2", "c3"]
        assert sorted(u.order for u in updates) == list(range(5))

    def test_unknown_id_is_noop(self):
        items = [Category(id="c1", name="a"), Category(id="c2", name="b")]
        assert compute_reorder(items, "missing", "c1") == []
        assert compute_reorder(items, "c1", "missing") == []

    def test_same_position_is_noop(self):
        items = [Category(id="c1", name="a"), Category(id="c2", name="b")]
        assert compute_reorder(items, "c1", "c1") == []


class TestTagReorder:

    def test_only_dragged_category_moves(self):
        tags = [
            Tag(id="t1", name="a", category_id="c1", order=0),
            Tag(id="x1", name="x", category_id="c2", order=0),
            Tag(id="t2", name="b", category_id="c1", order=1),
            Tag(id="x2", name="y", category_id="c2", order=1),
        ]
        updates = compute_tag_reorder(tags, "t2", "t1")
        assert updates == [OrderUpdate(id="t2", order=0), OrderUpdate(id="t1", order=1)]

    def test_drop_on_other_category_is_noop(self):
        tags = [
            Tag(id="t1", name="a", category_id="c1"),
            Tag(id="x1", name="x", category_id="c2"),
        ]
        assert compute_tag_reorder(tags, "t1", "x1") == []
