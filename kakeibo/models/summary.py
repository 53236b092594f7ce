"""
Summary Models

Derived values computed from an in-memory expense list.
None of these are ever persisted; they are rebuilt on every read.
"""

from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field, field_validator


class ExpenseFilter(BaseModel):
    """
    Search predicates for the expense list.

    Dimensions are ANDed together; values inside one dimension are ORed.
    An empty set means "no restriction" for that dimension.
    The period only applies when BOTH year and month are given.
    """

    year: Optional[int] = Field(default=None, ge=1)
    month: Optional[int] = Field(default=None, ge=1, le=12)
    categories: frozenset[str] = Field(default_factory=frozenset)
    tags: frozenset[str] = Field(default_factory=frozenset)
    payment_methods: frozenset[str] = Field(default_factory=frozenset)

    @field_validator('categories', 'tags', 'payment_methods', mode='before')
    @classmethod
    def none_to_empty(cls, v):
        return frozenset() if v is None else v

    @property
    def has_period(self) -> bool:
        return self.year is not None and self.month is not None


class FilterTotals(BaseModel):
    """Running total and count of a filtered expense list."""

    total: Decimal = Decimal("0")
    count: int = Field(default=0, ge=0)


class MonthlyBucket(BaseModel):
    """
    Aggregate of all expenses in one calendar month.

    Only months with at least one expense are ever built,
    so `total` of a bucket built from positive amounts is never 0.
    """

    year: int
    month: int = Field(ge=1, le=12)
    total: Decimal = Decimal("0")
    count: int = 0
    category_breakdown: dict[str, Decimal] = Field(default_factory=dict)

    @property
    def key(self) -> str:
        return f"{self.year}-{self.month:02d}"

    @property
    def label(self) -> str:
        """Display label, e.g. 2024年1月."""
        return f"{self.year}年{self.month}月"


class CategoryShare(BaseModel):
    """One slice of a bucket's category breakdown."""

    name: str
    value: Decimal
    percentage: str = Field(..., description="Share of the bucket total, one decimal place")


class TimeSeriesPoint(BaseModel):
    """One point of the chronological monthly chart."""

    label: str = Field(..., description="YYYY/MM")
    year: int
    month: int
    amount: Decimal
