"""
Core Data Models for Kakeibo

These models define the schemas for every document the system reads
or writes. They are designed to:
1. Enforce type safety at runtime
2. Provide clear validation error messages
3. Map cleanly onto the document store (camelCase field names)
4. Keep "not supplied" and "cleared" apart on partial updates

DESIGN DECISION: Python attributes are snake_case, documents are camelCase.
Every model uses aliases so `model_dump(by_alias=True)` yields the exact
document shape and `model_validate(document)` reads it back.
"""

import math
from datetime import date, datetime, time, timezone
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Annotated, Any, Optional

from pydantic import (
    BaseModel,
    BeforeValidator,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)
from pydantic.alias_generators import to_camel


TAG_SEPARATOR = ", "


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class Collection(str, Enum):
    """Named collections in the document store."""
    CATEGORIES = "categories"
    TAGS = "tags"
    EXPENSES = "expenses"
    PAYMENT_METHODS = "paymentMethods"
    USERS = "users"
    AUDIT_LOG = "auditLog"


class DocumentModel(BaseModel):
    """Base for models that round-trip through the document store."""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
    )


def _blank_to_none(v: Any) -> Any:
    if isinstance(v, str) and not v.strip():
        return None
    return v


OptionalOrder = Annotated[Optional[int], BeforeValidator(_blank_to_none)]


def join_tags(names: list[str]) -> str:
    """Join selected tag names into the stored tag string."""
    return TAG_SEPARATOR.join(names)


def split_tags(tags: Optional[str]) -> list[str]:
    """
    Split a stored tag string back into tag names.

    Splits on the exact separator and trims each piece, so
    "タグ1, タグ2" yields ["タグ1", "タグ2"] and blanks are dropped.
    """
    if not tags:
        return []
    return [piece.strip() for piece in tags.split(TAG_SEPARATOR) if piece.strip()]


# =============================================================================
# TAXONOMY MODELS
# =============================================================================

class Category(DocumentModel):
    """
    Top-level expense classification.

    `order` is optional; items without one sort after every ordered item.
    """

    id: str
    name: str
    order: OptionalOrder = None

    @field_validator('name', mode='before')
    @classmethod
    def none_to_empty(cls, v: Any) -> Any:
        return "" if v is None else v


class Tag(DocumentModel):
    """Sub-classification scoped to exactly one category."""

    id: str
    name: str
    category_id: str = ""
    order: OptionalOrder = None

    @field_validator('name', 'category_id', mode='before')
    @classmethod
    def none_to_empty(cls, v: Any) -> Any:
        return "" if v is None else v


class PaymentMethod(DocumentModel):
    """A selectable payment method (cash, card, ...)."""

    id: str
    name: str
    order: int = 0

    @field_validator('name', mode='before')
    @classmethod
    def none_to_empty(cls, v: Any) -> Any:
        return "" if v is None else v

    @field_validator('order', mode='before')
    @classmethod
    def default_missing_order(cls, v: Any) -> Any:
        """Stored payment methods without an order sort as 0."""
        return 0 if _blank_to_none(v) is None else v


class OrderUpdate(BaseModel):
    """One order assignment produced by a reorder."""

    id: str
    order: int = Field(ge=0)


# =============================================================================
# EXPENSE MODELS
# =============================================================================

def _coerce_datetime(v: Any) -> Any:
    """Accept plain dates (midnight) and ISO strings for datetime fields."""
    if isinstance(v, datetime):
        return v
    if isinstance(v, date):
        return datetime.combine(v, time.min)
    return v


DateTimeInput = Annotated[datetime, BeforeValidator(_coerce_datetime)]


class Expense(DocumentModel):
    """
    A stored expense.

    This is the READ model: it accepts whatever the store holds.
    A missing or unparseable date becomes None and sorts as oldest.
    `big_category` and `tags` hold names copied at entry time; renaming
    a category or tag does not touch existing expenses.
    """

    id: str
    user_id: str
    date: Optional[datetime] = None
    amount: Decimal = Decimal("0")
    big_category: str = ""
    tags: str = ""
    payment_method: str = ""
    description: str = ""
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @field_validator('date', 'created_at', 'updated_at', mode='before')
    @classmethod
    def parse_timestamp(cls, v: Any) -> Any:
        """Unparseable timestamps are treated as missing."""
        v = _coerce_datetime(_blank_to_none(v))
        if isinstance(v, str):
            try:
                return datetime.fromisoformat(v)
            except ValueError:
                return None
        if v is not None and not isinstance(v, datetime):
            return None
        return v

    @field_validator('amount', mode='before')
    @classmethod
    def parse_amount(cls, v: Any) -> Any:
        if _blank_to_none(v) is None:
            return Decimal("0")
        return v

    @field_validator('big_category', 'tags', 'payment_method', 'description', mode='before')
    @classmethod
    def none_to_empty(cls, v: Any) -> Any:
        return "" if v is None else v

    @property
    def tag_names(self) -> list[str]:
        """The individual tag names of this expense."""
        return split_tags(self.tags)

    @property
    def sort_timestamp(self) -> float:
        """Sort key for newest-first lists; undated expenses sort last."""
        if self.date is None:
            return -math.inf
        return self.date.timestamp()


def _validate_amount(v: Decimal) -> Decimal:
    if not v.is_finite():
        raise ValueError("Amount must be a finite number")
    if v <= 0:
        raise ValueError("Amount must be greater than zero")
    return v


def _parse_decimal(v: Any) -> Any:
    """Form inputs arrive as strings or floats; go through str for floats."""
    if isinstance(v, float):
        return Decimal(str(v))
    if isinstance(v, str):
        try:
            return Decimal(v.strip().replace(",", ""))
        except InvalidOperation:
            raise ValueError(f"Not a number: {v!r}")
    return v


class ExpenseCreate(DocumentModel):
    """
    Validated input for a new expense.

    CRITICAL: Only build this after validation - a negative or
    non-finite amount cannot be represented here at all.
    """

    date: DateTimeInput
    amount: Decimal
    big_category: str = Field(..., min_length=1)
    tags: list[str] = Field(default_factory=list)
    payment_method: str = Field(..., min_length=1)
    description: str = ""

    @field_validator('amount', mode='before')
    @classmethod
    def parse_amount(cls, v: Any) -> Any:
        return _parse_decimal(v)

    @field_validator('amount')
    @classmethod
    def check_amount(cls, v: Decimal) -> Decimal:
        return _validate_amount(v)

    @field_validator('description', mode='before')
    @classmethod
    def none_to_empty(cls, v: Any) -> Any:
        return "" if v is None else v

    def to_document(self, user_id: str, now: datetime) -> dict[str, Any]:
        """Build the stored document, stamping both timestamps with `now`."""
        return {
            "userId": user_id,
            "date": self.date,
            "amount": self.amount,
            "bigCategory": self.big_category,
            "tags": join_tags(self.tags),
            "paymentMethod": self.payment_method,
            "description": self.description,
            "createdAt": now,
            "updatedAt": now,
        }


class ExpenseUpdate(DocumentModel):
    """
    Partial update of an expense.

    Only the fields passed to the constructor are written, so
    `ExpenseUpdate(description="")` clears the description while
    `ExpenseUpdate(amount=500)` leaves it alone.
    """

    date: Optional[DateTimeInput] = None
    amount: Optional[Decimal] = None
    big_category: Optional[str] = Field(default=None, min_length=1)
    tags: Optional[list[str]] = None
    payment_method: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = None

    @field_validator('amount', mode='before')
    @classmethod
    def parse_amount(cls, v: Any) -> Any:
        return _parse_decimal(v)

    @field_validator('amount')
    @classmethod
    def check_amount(cls, v: Optional[Decimal]) -> Optional[Decimal]:
        if v is None:
            return v
        return _validate_amount(v)

    @model_validator(mode='after')
    def reject_cleared_required_fields(self) -> 'ExpenseUpdate':
        """Required expense fields may be changed but never cleared."""
        for name in ("date", "amount", "big_category", "tags", "payment_method"):
            if name in self.model_fields_set and getattr(self, name) is None:
                raise ValueError(f"{name} cannot be cleared")
        return self

    @property
    def is_empty(self) -> bool:
        return not self.model_fields_set

    def to_document(self, now: datetime) -> dict[str, Any]:
        """Build the partial document: supplied fields plus updatedAt."""
        fields = self.model_dump(by_alias=True, exclude_unset=True)
        if "tags" in fields:
            fields["tags"] = join_tags(fields["tags"])
        if "description" in fields and fields["description"] is None:
            fields["description"] = ""
        fields["updatedAt"] = now
        return fields


# =============================================================================
# USER MODELS
# =============================================================================

class AuthUser(BaseModel):
    """Identity handed over by the authentication provider."""
    model_config = ConfigDict(frozen=True)

    uid: str = Field(..., min_length=1)
    display_name: Optional[str] = None
    email: Optional[str] = None


class UserProfile(DocumentModel):
    """Profile document stored in the users collection, keyed by uid."""

    id: str
    name: str = ""
    email: Optional[str] = None
    updated_at: Optional[datetime] = None

    @field_validator('name', mode='before')
    @classmethod
    def none_to_empty(cls, v: Any) -> Any:
        return "" if v is None else v


def utc_now() -> datetime:
    """Timezone-aware current time, used for createdAt/updatedAt."""
    return datetime.now(timezone.utc)
