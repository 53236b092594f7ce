"""
Input Validation

DESIGN DECISION: Validation happens on the caller side, BEFORE any
store call. A submission with an error-level issue never reaches the
document store.

Checks performed:
- Required field presence (date, amount, category, payment method)
- Amount is a positive, finite number
- Names are non-empty after trimming
- Names are unique case-insensitively within their scope
  (all categories; tags of the same category; all payment methods)

IMPORTANT: Validation NEVER silently fixes issues beyond trimming.
It reports them for the user to correct.
"""

from datetime import date, datetime, time, tzinfo
from decimal import Decimal, InvalidOperation
from typing import Any, Optional, Sequence

from pydantic import ValidationError as PydanticValidationError

from kakeibo.messages import message
from kakeibo.models.expense import (
    Category,
    ExpenseCreate,
    ExpenseUpdate,
    PaymentMethod,
    Tag,
)
from kakeibo.models.validation import ValidationIssue, ValidationResult


class InputValidationError(Exception):
    """
    Raised when a submission fails caller-side validation.

    Carries the full ValidationResult; str(error) is the first
    user-facing message.
    """

    def __init__(self, result: ValidationResult):
        self.result = result
        super().__init__(result.first_message or "Invalid input")

    @property
    def issues(self) -> list[ValidationIssue]:
        return self.result.issues


def require_valid(result: ValidationResult) -> None:
    """Raise InputValidationError if the result has any error."""
    if result.has_errors:
        raise InputValidationError(result)


def parse_amount(value: Any) -> Optional[Decimal]:
    """
    Parse a form amount into a Decimal.

    Returns None for blanks and anything that isn't a number.
    Thousands separators are accepted ("1,000").
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, Decimal):
        return value
    if isinstance(value, (int, float)):
        return Decimal(str(value))
    text = str(value).strip().replace(",", "")
    if not text:
        return None
    try:
        return Decimal(text)
    except InvalidOperation:
        return None


def parse_expense_date(value: Any, tz: Optional[tzinfo] = None) -> Optional[datetime]:
    """
    Parse a form date into a datetime.

    Plain dates and "YYYY-MM-DD" strings become local midnight in `tz`.
    """
    if value is None or value == "":
        return None
    if isinstance(value, str):
        try:
            value = datetime.fromisoformat(value.strip())
        except ValueError:
            return None
    if isinstance(value, datetime):
        if value.tzinfo is None and tz is not None:
            return value.replace(tzinfo=tz)
        return value
    if isinstance(value, date):
        return datetime.combine(value, time.min, tzinfo=tz)
    return None


class ExpenseValidator:
    """
    Validates expense form input and builds the store input models.
    """

    def __init__(self, tz: Optional[tzinfo] = None):
        """
        Initialize validator.

        Args:
            tz: Timezone attached to dates entered without one.
        """
        self._tz = tz

    def check_create(
        self,
        expense_date: Any,
        amount: Any,
        big_category: Optional[str],
        payment_method: Optional[str],
    ) -> ValidationResult:
        """Check the four required fields and the amount."""
        issues = []

        missing = [
            field
            for field, value in (
                ("date", expense_date),
                ("amount", amount),
                ("big_category", big_category),
                ("payment_method", payment_method),
            )
            if value is None or (isinstance(value, str) and not value.strip())
        ]
        if missing:
            issues.append(ValidationIssue(
                field=",".join(missing),
                issue_type="missing",
                message=message("required_fields"),
            ))
            return ValidationResult(issues=issues)

        if parse_expense_date(expense_date, self._tz) is None:
            issues.append(ValidationIssue(
                field="date",
                issue_type="invalid_format",
                message=message("required_fields"),
                suggested_fix="Use the YYYY-MM-DD format",
            ))

        issues.extend(self._check_amount(amount))
        return ValidationResult(issues=issues)

    @staticmethod
    def _check_amount(amount: Any) -> list[ValidationIssue]:
        parsed = parse_amount(amount)
        if parsed is None or not parsed.is_finite() or parsed <= 0:
            return [ValidationIssue(
                field="amount",
                issue_type="invalid_value",
                message=message("invalid_amount"),
                suggested_fix="Enter a number greater than zero",
            )]
        return []

    def build_create(
        self,
        expense_date: Any,
        amount: Any,
        big_category: Optional[str],
        payment_method: Optional[str],
        tags: Optional[Sequence[str]] = None,
        description: Optional[str] = None,
    ) -> ExpenseCreate:
        """
        Validate and build the input for a new expense.

        Raises:
            InputValidationError: If any required field is missing or the amount is invalid
        """
        require_valid(self.check_create(expense_date, amount, big_category, payment_method))
        return ExpenseCreate(
            date=parse_expense_date(expense_date, self._tz),
            amount=parse_amount(amount),
            big_category=big_category,
            tags=list(tags or []),
            payment_method=payment_method,
            description=description or "",
        )

    def build_update(self, **fields: Any) -> ExpenseUpdate:
        """
        Validate and build a partial update from the fields the caller set.

        Keyword names are the ExpenseUpdate field names
        (expense_date is accepted for date).

        Raises:
            InputValidationError: If a supplied field is invalid or nothing is supplied
        """
        if "expense_date" in fields:
            fields["date"] = fields.pop("expense_date")

        issues = []
        if not fields:
            issues.append(ValidationIssue(
                field="*",
                issue_type="empty",
                message=message("nothing_to_update"),
            ))
        if "date" in fields:
            parsed_date = parse_expense_date(fields["date"], self._tz)
            if parsed_date is None:
                issues.append(ValidationIssue(
                    field="date",
                    issue_type="missing",
                    message=message("required_fields"),
                ))
            fields["date"] = parsed_date
        if "amount" in fields:
            issues.extend(self._check_amount(fields["amount"]))
            fields["amount"] = parse_amount(fields["amount"])
        for name in ("big_category", "payment_method"):
            if name in fields and not (fields[name] or "").strip():
                issues.append(ValidationIssue(
                    field=name,
                    issue_type="missing",
                    message=message("required_fields"),
                ))
        require_valid(ValidationResult(issues=issues))

        try:
            return ExpenseUpdate(**fields)
        except PydanticValidationError as e:
            require_valid(ValidationResult(issues=[
                ValidationIssue(
                    field=".".join(str(loc) for loc in error["loc"]) or "*",
                    issue_type="invalid_value",
                    message=message("required_fields"),
                    suggested_fix=error["msg"],
                )
                for error in e.errors()
            ]))
            raise


def _name_taken(name: str, existing: Sequence[Any], exclude_id: Optional[str]) -> bool:
    wanted = name.strip().lower()
    return any(
        item.name.lower() == wanted and item.id != exclude_id
        for item in existing
    )


class TaxonomyValidator:
    """
    Validates category, tag and payment method names.

    Uniqueness is checked case-insensitively against the caller's
    current snapshot of the list; the store does not enforce it.
    """

    @staticmethod
    def check_category_name(
        name: Optional[str],
        categories: Sequence[Category],
        exclude_id: Optional[str] = None,
    ) -> ValidationResult:
        issues = []
        if not (name or "").strip():
            issues.append(ValidationIssue(
                field="name",
                issue_type="missing",
                message=message("category_name_required"),
            ))
        elif _name_taken(name, categories, exclude_id):
            issues.append(ValidationIssue(
                field="name",
                issue_type="duplicate",
                message=message("duplicate_category"),
            ))
        return ValidationResult(issues=issues)

    @staticmethod
    def check_tag_name(
        name: Optional[str],
        category_id: Optional[str],
        categories: Sequence[Category],
        tags: Sequence[Tag],
        exclude_id: Optional[str] = None,
    ) -> ValidationResult:
        issues = []
        if not (name or "").strip():
            issues.append(ValidationIssue(
                field="name",
                issue_type="missing",
                message=message("tag_name_required"),
            ))
            return ValidationResult(issues=issues)

        if not category_id:
            issues.append(ValidationIssue(
                field="category_id",
                issue_type="missing",
                message=message("category_required"),
            ))
            return ValidationResult(issues=issues)

        if not any(category.id == category_id for category in categories):
            issues.append(ValidationIssue(
                field="category_id",
                issue_type="not_found",
                message=message("category_not_found"),
            ))
            return ValidationResult(issues=issues)

        siblings = [tag for tag in tags if tag.category_id == category_id]
        if _name_taken(name, siblings, exclude_id):
            issues.append(ValidationIssue(
                field="name",
                issue_type="duplicate",
                message=message("duplicate_tag"),
            ))
        return ValidationResult(issues=issues)

    @staticmethod
    def check_payment_method_name(
        name: Optional[str],
        payment_methods: Sequence[PaymentMethod],
        exclude_id: Optional[str] = None,
    ) -> ValidationResult:
        issues = []
        if not (name or "").strip():
            issues.append(ValidationIssue(
                field="name",
                issue_type="missing",
                message=message("payment_method_name_required"),
            ))
        elif _name_taken(name, payment_methods, exclude_id):
            issues.append(ValidationIssue(
                field="name",
                issue_type="duplicate",
                message=message("duplicate_payment_method"),
            ))
        return ValidationResult(issues=issues)


def check_display_name(name: Optional[str]) -> ValidationResult:
    """Profile display names must be non-empty after trimming."""
    if not (name or "").strip():
        return ValidationResult(issues=[ValidationIssue(
            field="name",
            issue_type="missing",
            message=message("display_name_required"),
        )])
    return ValidationResult()
