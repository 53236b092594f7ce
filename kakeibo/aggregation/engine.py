"""
Aggregation Engine

DESIGN DECISION: Aggregation is DETERMINISTIC and PURE.
Every function here takes an in-memory expense list and returns new
values; nothing is cached, nothing is written, and calling a function
twice on the same input gives the same output.

Calendar months are taken from the expense's wall-clock date. Pass
`tz` to convert timezone-aware dates into the household's timezone
first; naive dates are used as they are.
"""

from datetime import datetime, tzinfo
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Optional, Sequence

from kakeibo.models.expense import Expense, split_tags
from kakeibo.models.summary import (
    CategoryShare,
    ExpenseFilter,
    FilterTotals,
    MonthlyBucket,
    TimeSeriesPoint,
)


DEFAULT_UNCATEGORIZED_LABEL = "未分類"

_ONE_DECIMAL = Decimal("0.1")
_HUNDRED = Decimal("100")


def local_datetime(value: datetime, tz: Optional[tzinfo] = None) -> datetime:
    """Wall-clock datetime of an expense date in the given timezone."""
    if tz is not None and value.tzinfo is not None:
        return value.astimezone(tz)
    return value


def year_month(expense: Expense, tz: Optional[tzinfo] = None) -> Optional[tuple[int, int]]:
    """(year, month) of an expense, or None when it has no date."""
    if expense.date is None:
        return None
    local = local_datetime(expense.date, tz)
    return local.year, local.month


def matches_filter(
    expense: Expense,
    criteria: ExpenseFilter,
    tz: Optional[tzinfo] = None,
) -> bool:
    """Check one expense against every filter dimension."""
    if criteria.has_period:
        if year_month(expense, tz) != (criteria.year, criteria.month):
            return False

    if criteria.categories and expense.big_category not in criteria.categories:
        return False

    if criteria.tags:
        if criteria.tags.isdisjoint(split_tags(expense.tags)):
            return False

    if criteria.payment_methods and expense.payment_method not in criteria.payment_methods:
        return False

    return True


def filter_expenses(
    expenses: Iterable[Expense],
    criteria: ExpenseFilter,
    tz: Optional[tzinfo] = None,
) -> list[Expense]:
    """Expenses matching the filter, in their original order."""
    return [expense for expense in expenses if matches_filter(expense, criteria, tz)]


def compute_totals(expenses: Iterable[Expense]) -> FilterTotals:
    """Sum of amounts and number of expenses."""
    total = Decimal("0")
    count = 0
    for expense in expenses:
        total += expense.amount
        count += 1
    return FilterTotals(total=total, count=count)


def group_by_month(
    expenses: Iterable[Expense],
    tz: Optional[tzinfo] = None,
    uncategorized_label: str = DEFAULT_UNCATEGORIZED_LABEL,
) -> list[MonthlyBucket]:
    """
    Partition expenses into calendar-month buckets, newest month first.

    Undated expenses are left out. A bucket only exists for a month
    with at least one expense.
    """
    buckets: dict[tuple[int, int], MonthlyBucket] = {}

    for expense in expenses:
        key = year_month(expense, tz)
        if key is None:
            continue

        bucket = buckets.get(key)
        if bucket is None:
            bucket = MonthlyBucket(year=key[0], month=key[1])
            buckets[key] = bucket

        bucket.total += expense.amount
        bucket.count += 1

        category = expense.big_category or uncategorized_label
        bucket.category_breakdown[category] = (
            bucket.category_breakdown.get(category, Decimal("0")) + expense.amount
        )

    return sorted(buckets.values(), key=lambda b: (b.year, b.month), reverse=True)


def monthly_time_series(buckets: Sequence[MonthlyBucket]) -> list[TimeSeriesPoint]:
    """Buckets as chart points, oldest month first."""
    ordered = sorted(buckets, key=lambda b: (b.year, b.month))
    return [
        TimeSeriesPoint(
            label=f"{bucket.year}/{bucket.month:02d}",
            year=bucket.year,
            month=bucket.month,
            amount=bucket.total,
        )
        for bucket in ordered
    ]


def format_percentage(value: Decimal, total: Decimal) -> str:
    """value / total * 100 with one decimal place, e.g. '33.3'."""
    if total == 0:
        raise ZeroDivisionError("Percentage of an empty total is undefined")
    share = (Decimal(value) / Decimal(total) * _HUNDRED).quantize(
        _ONE_DECIMAL, rounding=ROUND_HALF_UP
    )
    return f"{share}"


def percentage_shares(breakdown: dict[str, Decimal], total: Decimal) -> list[CategoryShare]:
    """
    Breakdown entries with their share of the total, largest first.

    Raises:
        ZeroDivisionError: If total is 0 (such a bucket is never built)
    """
    shares = [
        CategoryShare(name=name, value=value, percentage=format_percentage(value, total))
        for name, value in breakdown.items()
    ]
    shares.sort(key=lambda share: share.value, reverse=True)
    return shares


def grand_total(buckets: Iterable[MonthlyBucket]) -> Decimal:
    """Total over every bucket."""
    return sum((bucket.total for bucket in buckets), Decimal("0"))


def available_years(
    expenses: Iterable[Expense],
    current_year: int,
    tz: Optional[tzinfo] = None,
) -> list[int]:
    """Years that have expenses, plus the current year, newest first."""
    years = {current_year}
    for expense in expenses:
        key = year_month(expense, tz)
        if key is not None:
            years.add(key[0])
    return sorted(years, reverse=True)
