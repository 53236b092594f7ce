"""Aggregation package: pure functions over in-memory expense lists."""

from kakeibo.aggregation.engine import (
    DEFAULT_UNCATEGORIZED_LABEL,
    available_years,
    compute_totals,
    filter_expenses,
    format_percentage,
    grand_total,
    group_by_month,
    matches_filter,
    monthly_time_series,
    percentage_shares,
    year_month,
)

__all__ = [
    "DEFAULT_UNCATEGORIZED_LABEL",
    "available_years",
    "compute_totals",
    "filter_expenses",
    "format_percentage",
    "grand_total",
    "group_by_month",
    "matches_filter",
    "monthly_time_series",
    "percentage_shares",
    "year_month",
]
