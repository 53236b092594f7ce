"""
Ordering Engine

Turns a drag-and-drop move into a full order assignment.

GUARANTEES:
- After a reorder the affected group's orders are exactly 0..n-1
- Every item of the group gets an update, changed or not
- Unknown ids are a silent no-op (empty update list), not an error
"""

import math
from typing import Optional, Sequence, TypeVar, Union

from kakeibo.models.expense import Category, OrderUpdate, PaymentMethod, Tag
from kakeibo.ordering.collation import collation_key


Orderable = Union[Category, Tag, PaymentMethod]
T = TypeVar("T", Category, Tag, PaymentMethod)


def display_sort_key(item: Orderable) -> tuple:
    """Explicit order first (missing order last), then collated name."""
    order = item.order if item.order is not None else math.inf
    return (order, collation_key(item.name))


def sort_for_display(items: Sequence[T]) -> list[T]:
    """Return items in display order."""
    return sorted(items, key=display_sort_key)


def move_item(items: Sequence[T], old_index: int, new_index: int) -> list[T]:
    """
    Move one element: remove it at old_index, reinsert at new_index.

    This is not a swap - everything between the two positions shifts by one.
    """
    result = list(items)
    moved = result.pop(old_index)
    result.insert(new_index, moved)
    return result


def _index_of(items: Sequence[Orderable], item_id: str) -> Optional[int]:
    for idx, item in enumerate(items):
        if item.id == item_id:
            return idx
    return None


def compute_reorder(
    items: Sequence[Orderable],
    moved_id: str,
    target_id: str,
) -> list[OrderUpdate]:
    """
    Compute the order updates for dropping `moved_id` onto `target_id`.

    Args:
        items: The list exactly as currently displayed
        moved_id: The dragged item
        target_id: The item it was dropped on; the dragged item takes its position

    Returns:
        One OrderUpdate per item (order = new 0-based position),
        or an empty list when either id is unknown or nothing moved.
    """
    old_index = _index_of(items, moved_id)
    new_index = _index_of(items, target_id)
    if old_index is None or new_index is None:
        return []
    if old_index == new_index:
        return []

    reordered = move_item(items, old_index, new_index)
    return [
        OrderUpdate(id=item.id, order=position)
        for position, item in enumerate(reordered)
    ]


def compute_tag_reorder(
    tags: Sequence[Tag],
    moved_id: str,
    target_id: str,
) -> list[OrderUpdate]:
    """
    Reorder tags within the dragged tag's category only.

    Tags of other categories get no update and keep their orders.
    Dropping onto a tag of another category is treated as unknown.
    """
    moved = next((tag for tag in tags if tag.id == moved_id), None)
    if moved is None:
        return []
    siblings = [tag for tag in tags if tag.category_id == moved.category_id]
    return compute_reorder(siblings, moved_id, target_id)
