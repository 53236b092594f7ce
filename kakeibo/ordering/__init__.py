"""Ordering package: display order and drag-and-drop reordering."""

from kakeibo.ordering.collation import collation_key
from kakeibo.ordering.engine import (
    compute_reorder,
    compute_tag_reorder,
    display_sort_key,
    move_item,
    sort_for_display,
)

__all__ = [
    "collation_key",
    "compute_reorder",
    "compute_tag_reorder",
    "display_sort_key",
    "move_item",
    "sort_for_display",
]
