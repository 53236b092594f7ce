"""
Data Models Package

This package contains all Pydantic models used in Kakeibo.
All data flowing through the system must conform to these schemas.
"""

from kakeibo.models.expense import (
    AuthUser,
    Category,
    Collection,
    Expense,
    ExpenseCreate,
    ExpenseUpdate,
    OrderUpdate,
    PaymentMethod,
    Tag,
    UserProfile,
    join_tags,
    split_tags,
)
from kakeibo.models.summary import (
    CategoryShare,
    ExpenseFilter,
    FilterTotals,
    MonthlyBucket,
    TimeSeriesPoint,
)
from kakeibo.models.validation import (
    ValidationIssue,
    ValidationResult,
)
from kakeibo.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Document models
    "AuthUser",
    "Category",
    "Collection",
    "Expense",
    "ExpenseCreate",
    "ExpenseUpdate",
    "OrderUpdate",
    "PaymentMethod",
    "Tag",
    "UserProfile",
    "join_tags",
    "split_tags",
    # Summary models
    "CategoryShare",
    "ExpenseFilter",
    "FilterTotals",
    "MonthlyBucket",
    "TimeSeriesPoint",
    # Validation models
    "ValidationIssue",
    "ValidationResult",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
