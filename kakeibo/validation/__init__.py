"""Validation package."""

from kakeibo.validation.validator import (
    ExpenseValidator,
    InputValidationError,
    TaxonomyValidator,
    check_display_name,
    parse_amount,
    parse_expense_date,
    require_valid,
)

__all__ = [
    "ExpenseValidator",
    "InputValidationError",
    "TaxonomyValidator",
    "check_display_name",
    "parse_amount",
    "parse_expense_date",
    "require_valid",
]
