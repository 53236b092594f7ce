"""
Tests for Kakeibo models

Test strategy:
1. Unit tests for individual components (models, validators)
2. Integration tests for flows (with the in-memory document store)
3. No real API calls in tests (fake gspread worksheet)
"""

import pytest
from datetime import date, datetime, timezone
from decimal import Decimal

from pydantic import ValidationError

from kakeibo.models.expense import (
    Category,
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
from kakeibo.models.summary import ExpenseFilter, MonthlyBucket
from kakeibo.models.validation import ValidationIssue, ValidationResult
from kakeibo.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)


NOW = datetime(2024, 1, 20, 12, 0, tzinfo=timezone.utc)


class TestTaxonomyModels:
    """Tests for category, tag and payment method models."""

    def test_category_from_document(self):
        """Test Category reads camelCase documents."""
        category = Category.model_validate({"id": "c1", "name": "  食費  ", "order": 2})
        assert category.name == "食費"
        assert category.order == 2

    def test_category_blank_order_is_missing(self):
        """Test that a blank order cell reads as no order."""
        category = Category.model_validate({"id": "c1", "name": "食費", "order": ""})
        assert category.order is None

    def test_tag_category_id_alias(self):
        """Test Tag maps categoryId to category_id."""
        tag = Tag.model_validate({"id": "t1", "name": "外食", "categoryId": "c1"})
        assert tag.category_id == "c1"
        assert tag.order is None

    def test_payment_method_missing_order_is_zero(self):
        """Test that payment methods without an order sort as 0."""
        method = PaymentMethod.model_validate({"id": "p1", "name": "現金"})
        assert method.order == 0
        method = PaymentMethod.model_validate({"id": "p1", "name": "現金", "order": None})
        assert method.order == 0

    def test_order_update_rejects_negative(self):
        """Test that order positions are non-negative."""
        with pytest.raises(ValidationError):
            OrderUpdate(id="c1", order=-1)


class TestTagString:
    """Tests for the stored tag string."""

    def test_join_uses_comma_space(self):
        assert join_tags(["タグ1", "タグ2"]) == "タグ1, タグ2"

    def test_split_trims_pieces(self):
        assert split_tags("タグ1, タグ2 ,  タグ3") == ["タグ1", "タグ2", "タグ3"]

    def test_split_empty(self):
        assert split_tags("") == []
        assert split_tags(None) == []

    def test_split_does_not_match_substrings(self):
        """Test that split pieces are whole names, not substrings."""
        assert "タグ1" not in split_tags("サブタグ1, タグ2")


class TestExpenseModels:
    """Tests for expense read and write models."""

    def test_expense_from_document(self):
        """Test Expense reads a stored document."""
        expense = Expense.model_validate({
            "id": "e1",
            "userId": "u1",
            "date": datetime(2024, 1, 5),
            "amount": 1000,
            "bigCategory": "食費",
            "tags": "外食, ランチ",
            "paymentMethod": "現金",
            "description": None,
        })
        assert expense.user_id == "u1"
        assert expense.amount == Decimal("1000")
        assert expense.tag_names == ["外食", "ランチ"]
        assert expense.description == ""

    def test_expense_unparseable_date_is_missing(self):
        """Test that a garbage date becomes None and sorts as oldest."""
        expense = Expense.model_validate({"id": "e1", "userId": "u1", "date": "not a date"})
        assert expense.date is None
        dated = Expense.model_validate({"id": "e2", "userId": "u1", "date": "2020-01-01"})
        assert expense.sort_timestamp < dated.sort_timestamp

    def test_expense_create_accepts_plain_date(self):
        """Test ExpenseCreate turns a date into midnight."""
        expense = ExpenseCreate(
            date=date(2024, 1, 5),
            amount="1,500",
            big_category="食費",
            payment_method="現金",
        )
        assert expense.date == datetime(2024, 1, 5)
        assert expense.amount == Decimal("1500")

    @pytest.mark.parametrize("amount", ["-5", "0", "NaN", "Infinity"])
    def test_expense_create_rejects_bad_amount(self, amount):
        """Test that non-positive or non-finite amounts are rejected."""
        with pytest.raises(ValidationError):
            ExpenseCreate(
                date=date(2024, 1, 5),
                amount=amount,
                big_category="食費",
                payment_method="現金",
            )

    def test_expense_create_to_document(self):
        """Test the stored shape of a new expense."""
        expense = ExpenseCreate(
            date=datetime(2024, 1, 5),
            amount=Decimal("1000"),
            big_category="食費",
            tags=["外食", "ランチ"],
            payment_method="現金",
        )
        document = expense.to_document("u1", NOW)
        assert document["userId"] == "u1"
        assert document["tags"] == "外食, ランチ"
        assert document["description"] == ""
        assert document["createdAt"] == document["updatedAt"] == NOW

    def test_expense_update_only_supplied_fields(self):
        """Test that only explicitly set fields are written."""
        changes = ExpenseUpdate(amount="500")
        document = changes.to_document(NOW)
        assert document == {"amount": Decimal("500"), "updatedAt": NOW}

    def test_expense_update_can_clear_description(self):
        """Test that clearing the description differs from not supplying it."""
        document = ExpenseUpdate(description="").to_document(NOW)
        assert document["description"] == ""

    def test_expense_update_rejects_clearing_required_field(self):
        """Test that required fields can't be set to None."""
        with pytest.raises(ValidationError):
            ExpenseUpdate(amount=None)

    def test_expense_update_joins_tags(self):
        document = ExpenseUpdate(tags=["a", "b"]).to_document(NOW)
        assert document["tags"] == "a, b"

    def test_expense_update_is_empty(self):
        assert ExpenseUpdate().is_empty
        assert not ExpenseUpdate(description="x").is_empty


class TestUserProfile:

    def test_profile_name_trimmed(self):
        profile = UserProfile.model_validate({"id": "u1", "name": "  太郎 "})
        assert profile.name == "太郎"

    def test_profile_missing_name(self):
        profile = UserProfile.model_validate({"id": "u1", "name": None})
        assert profile.name == ""


class TestSummaryModels:

    def test_filter_period_needs_year_and_month(self):
        """Test that a year alone doesn't restrict the period."""
        assert not ExpenseFilter(year=2024).has_period
        assert ExpenseFilter(year=2024, month=1).has_period

    def test_filter_accepts_lists(self):
        criteria = ExpenseFilter(categories=["食費"], tags=None)
        assert criteria.categories == frozenset({"食費"})
        assert criteria.tags == frozenset()

    def test_filter_rejects_bad_month(self):
        with pytest.raises(ValidationError):
            ExpenseFilter(year=2024, month=13)

    def test_bucket_labels(self):
        bucket = MonthlyBucket(year=2024, month=1)
        assert bucket.key == "2024-01"
        assert bucket.label == "2024年1月"


class TestAuditModels:
    """Tests for audit event models."""

    def test_audit_event_creation(self):
        """Test AuditEvent creation."""
        event = AuditEvent(
            event_type=AuditEventType.CATEGORY_CREATED,
            description="category created",
        )
        assert event.event_id is not None
        assert event.severity == AuditSeverity.INFO

    def test_audit_event_to_log_dict(self):
        """Test conversion to log dictionary."""
        event = AuditEventBuilder.entity_created("category", "c1", {"name": "食費"})
        log_dict = event.to_log_dict()
        assert log_dict["event_type"] == "category_created"
        assert log_dict["entity_id"] == "c1"
        assert log_dict["details"] == {"name": "食費"}

    def test_audit_event_to_document(self):
        """Test conversion to an auditLog document."""
        event = AuditEventBuilder.entity_deleted("tag", "t1")
        document = event.to_document()
        assert document["eventType"] == "tag_deleted"
        assert document["entityId"] == "t1"
        assert document["detailsJson"] == "{}"

    def test_audit_event_builder_partial_write(self):
        """Test that a partial write is critical."""
        event = AuditEventBuilder.partial_write("category", "c1", ["t1"], "boom")
        assert event.severity == AuditSeverity.CRITICAL
        assert event.details == {"completed_ids": ["t1"]}

    def test_audit_event_builder_updated_fields(self):
        event = AuditEventBuilder.entity_updated("profile", "u1", ["name"])
        assert event.event_type == AuditEventType.PROFILE_UPDATED


class TestValidationResult:

    def test_validation_result_has_errors(self):
        """Test has_errors property."""
        result = ValidationResult(issues=[
            ValidationIssue(field="amount", issue_type="invalid_value", message="bad"),
        ])
        assert result.has_errors
        assert not result.is_valid
        assert result.error_count == 1
        assert result.first_message == "bad"

    def test_validation_result_warnings_only(self):
        """Test that warnings don't count as errors."""
        result = ValidationResult(issues=[
            ValidationIssue(field="name", issue_type="style", message="hm", severity="warning"),
        ])
        assert not result.has_errors
        assert result.first_message is None
