"""
Main Orchestrator for Kakeibo

This module ties together all the components and defines the
user-facing flows for:
1. Expense entry (validate → create → re-fetch)
2. Category / tag / payment method management (CRUD, reorder, seeding)
3. Monthly summary and search (load → aggregate)
4. Profile (display name)

DESIGN DECISION: The orchestrator enforces the boundaries:
- Input is validated before any store call
- Every store failure is caught here, audited, and turned into a
  localized message; nothing escapes to the UI as an exception
- A failed load yields an empty list plus an error message
- Writes are never retried automatically

The UI only ever renders ActionResult / LoadResult values.
"""

from datetime import datetime, tzinfo
from decimal import Decimal
from typing import Any, Callable, NamedTuple, Optional, Sequence

import structlog
from pydantic import BaseModel, Field

from kakeibo.aggregation import (
    available_years,
    compute_totals,
    filter_expenses,
    grand_total,
    group_by_month,
    monthly_time_series,
    percentage_shares,
)
from kakeibo.audit import AuditLogger, create_correlation_id
from kakeibo.auth import AuthProvider, LocalAuthProvider
from kakeibo.config import Settings, get_settings, validate_all_settings
from kakeibo.messages import message
from kakeibo.models.expense import (
    AuthUser,
    Category,
    Collection,
    Expense,
    OrderUpdate,
    PaymentMethod,
    Tag,
    utc_now,
)
from kakeibo.models.summary import (
    CategoryShare,
    ExpenseFilter,
    FilterTotals,
    MonthlyBucket,
    TimeSeriesPoint,
)
from kakeibo.models.validation import ValidationIssue
from kakeibo.ordering import compute_reorder, compute_tag_reorder, sort_for_display
from kakeibo.services.expenses import ExpenseStore
from kakeibo.services.profile import UserProfileStore
from kakeibo.services.storage import (
    DocumentStoreInterface,
    GoogleSheetsClient,
    GoogleSheetsDocumentStore,
    InMemoryDocumentStore,
    PartialWriteError,
    StorageError,
)
from kakeibo.services.taxonomy import CategoryStore, PaymentMethodStore, TagStore
from kakeibo.session import SessionContext
from kakeibo.validation import (
    ExpenseValidator,
    InputValidationError,
    TaxonomyValidator,
    check_display_name,
    parse_amount,
    parse_expense_date,
    require_valid,
)


logger = structlog.get_logger(__name__)


# =============================================================================
# RESULT TYPES
# =============================================================================

class ActionResult(BaseModel):
    """Outcome of a user action, ready to show as a notification."""

    success: bool
    message: str = ""
    entity_id: Optional[str] = None
    issues: list[ValidationIssue] = Field(default_factory=list)

    @classmethod
    def ok(cls, key: str, entity_id: Optional[str] = None) -> "ActionResult":
        return cls(success=True, message=message(key), entity_id=entity_id)

    @classmethod
    def failed(cls, key: str) -> "ActionResult":
        return cls(success=False, message=message(key))

    @classmethod
    def invalid(cls, error: InputValidationError) -> "ActionResult":
        return cls(success=False, message=str(error), issues=error.issues)


class LoadResult(BaseModel):
    """A loaded list; on failure the list is empty and `error` is set."""

    items: list[Any] = Field(default_factory=list)
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class MonthlySummary(BaseModel):
    """Everything the monthly summary page renders."""

    buckets: list[MonthlyBucket] = Field(default_factory=list)
    time_series: list[TimeSeriesPoint] = Field(default_factory=list)
    grand_total: Decimal = Decimal("0")
    error: Optional[str] = None

    @property
    def month_count(self) -> int:
        return len(self.buckets)


class SearchResult(BaseModel):
    """Filtered expenses with their totals."""

    expenses: list[Expense] = Field(default_factory=list)
    totals: FilterTotals = Field(default_factory=FilterTotals)
    error: Optional[str] = None


# =============================================================================
# FLOWS
# =============================================================================

class _Flow:
    """Shared failure handling for the flows."""

    def __init__(self, audit_logger: Optional[AuditLogger] = None):
        self._audit_logger = audit_logger or AuditLogger()

    async def _load(
        self,
        collection: Collection,
        loader: Callable[[], Any],
        user_id: Optional[str] = None,
    ) -> LoadResult:
        try:
            items = await loader()
        except StorageError as e:
            await self._audit_logger.log_load_failed(collection.value, str(e), user_id=user_id)
            return LoadResult(items=[], error=message("load_failed"))
        return LoadResult(items=items)

    async def _rejected(
        self,
        entity_type: str,
        error: InputValidationError,
        user_id: Optional[str] = None,
    ) -> ActionResult:
        await self._audit_logger.log_validation_failed(entity_type, error.issues, user_id=user_id)
        return ActionResult.invalid(error)

    async def _save_failed(
        self,
        entity_type: str,
        action: str,
        error: Exception,
        failure_key: str,
        entity_id: Optional[str] = None,
        user_id: Optional[str] = None,
    ) -> ActionResult:
        await self._audit_logger.log_save_failed(
            entity_type, action, str(error), entity_id=entity_id, user_id=user_id,
        )
        return ActionResult.failed(failure_key)


class ExpenseFlow(_Flow):
    """
    Orchestrates expense entry, editing and the dashboard list.

    Every action needs a signed-in user; expenses are always scoped
    to that user's uid.
    """

    def __init__(
        self,
        expense_store: ExpenseStore,
        session: SessionContext,
        payment_method_store: Optional[PaymentMethodStore] = None,
        audit_logger: Optional[AuditLogger] = None,
        tz: Optional[tzinfo] = None,
        default_payment_methods: Sequence[str] = (),
        clock: Callable[[], datetime] = utc_now,
    ):
        super().__init__(audit_logger)
        self._expenses = expense_store
        self._session = session
        self._payment_methods = payment_method_store
        self._validator = ExpenseValidator(tz=tz)
        self._tz = tz
        self._default_payment_methods = list(default_payment_methods)
        self._clock = clock

    async def load_expenses(self) -> LoadResult:
        """The signed-in user's expenses, newest first."""
        user = self._session.user
        if user is None:
            return LoadResult(error=message("not_signed_in"))
        return await self._load(
            Collection.EXPENSES,
            lambda: self._expenses.list_by_user(user.uid),
            user_id=user.uid,
        )

    async def create_expense(
        self,
        expense_date: Any,
        amount: Any,
        big_category: Optional[str],
        payment_method: Optional[str],
        tags: Optional[Sequence[str]] = None,
        description: Optional[str] = None,
    ) -> ActionResult:
        """
        Validate and store a new expense.

        An invalid submission is rejected before the store is touched.
        """
        user = self._session.user
        if user is None:
            return ActionResult.failed("not_signed_in")

        try:
            expense = self._validator.build_create(
                expense_date, amount, big_category, payment_method,
                tags=tags, description=description,
            )
        except InputValidationError as e:
            return await self._rejected("expense", e, user_id=user.uid)

        try:
            expense_id = await self._expenses.create(user.uid, expense)
        except StorageError as e:
            return await self._save_failed(
                "expense", "create", e, "expense_create_failed", user_id=user.uid,
            )

        await self._audit_logger.log_created(
            "expense",
            expense_id,
            {"amount": str(expense.amount), "category": expense.big_category},
            user_id=user.uid,
        )
        return ActionResult.ok("expense_created", entity_id=expense_id)

    async def update_expense(self, expense_id: str, **fields: Any) -> ActionResult:
        """
        Write only the given fields of an expense.

        Pass description="" to clear the description; fields not passed
        are left as stored.
        """
        user = self._session.user
        if user is None:
            return ActionResult.failed("not_signed_in")

        try:
            changes = self._validator.build_update(**fields)
        except InputValidationError as e:
            return await self._rejected("expense", e, user_id=user.uid)

        try:
            await self._expenses.update(expense_id, changes)
        except StorageError as e:
            return await self._save_failed(
                "expense", "update", e, "expense_update_failed",
                entity_id=expense_id, user_id=user.uid,
            )

        await self._audit_logger.log_updated(
            "expense", expense_id, sorted(changes.model_fields_set), user_id=user.uid,
        )
        return ActionResult.ok("expense_updated", entity_id=expense_id)

    def changed_fields(
        self,
        expense: Expense,
        expense_date: Any,
        amount: Any,
        big_category: Optional[str],
        payment_method: Optional[str],
        tags: Sequence[str],
        description: Optional[str],
    ) -> dict[str, Any]:
        """
        The edit form's values that differ from the stored expense.

        The result is ready for update_expense(**changes); an empty dict
        means the form was submitted unchanged.
        """
        changes: dict[str, Any] = {}

        stored_day = _local_now(expense.date, self._tz).date() if expense.date else None
        submitted = parse_expense_date(expense_date, self._tz)
        if submitted is None or submitted.date() != stored_day:
            changes["expense_date"] = expense_date

        parsed_amount = parse_amount(amount)
        if parsed_amount is None or parsed_amount != expense.amount:
            changes["amount"] = amount

        if (big_category or "").strip() != expense.big_category:
            changes["big_category"] = big_category
        if (payment_method or "").strip() != expense.payment_method:
            changes["payment_method"] = payment_method
        if list(tags) != expense.tag_names:
            changes["tags"] = list(tags)
        if (description or "").strip() != expense.description:
            changes["description"] = description or ""
        return changes

    async def delete_expense(self, expense_id: str) -> ActionResult:
        user = self._session.user
        if user is None:
            return ActionResult.failed("not_signed_in")

        try:
            await self._expenses.delete(expense_id)
        except StorageError as e:
            return await self._save_failed(
                "expense", "delete", e, "expense_delete_failed",
                entity_id=expense_id, user_id=user.uid,
            )

        await self._audit_logger.log_deleted("expense", expense_id, user_id=user.uid)
        return ActionResult.ok("expense_deleted", entity_id=expense_id)

    def current_month_totals(
        self,
        expenses: Sequence[Expense],
        now: Optional[datetime] = None,
    ) -> FilterTotals:
        """Total and count of this month's expenses (dashboard header)."""
        local_now = _local_now(now or self._clock(), self._tz)
        criteria = ExpenseFilter(year=local_now.year, month=local_now.month)
        return compute_totals(filter_expenses(expenses, criteria, self._tz))

    async def payment_method_choices(self) -> list[str]:
        """
        Payment method names for the entry form.

        Falls back to the configured defaults when none are stored or
        they cannot be loaded.
        """
        if self._payment_methods is None:
            return list(self._default_payment_methods)
        result = await self._load(Collection.PAYMENT_METHODS, self._payment_methods.list)
        names = [method.name for method in result.items]
        return names or list(self._default_payment_methods)

    @staticmethod
    def tag_choices(
        category_name: Optional[str],
        categories: Sequence[Category],
        tags: Sequence[Tag],
    ) -> list[str]:
        """Tag names offered for the selected category, in display order."""
        category = next((c for c in categories if c.name == category_name), None)
        if category is None:
            return []
        return [
            tag.name
            for tag in sort_for_display([t for t in tags if t.category_id == category.id])
        ]


class TaxonomyFlow(_Flow):
    """
    Orchestrates category, tag and payment method management.

    Name checks run against the lists the caller is showing; when a
    list isn't passed, it is loaded first.
    """

    def __init__(
        self,
        category_store: CategoryStore,
        tag_store: TagStore,
        payment_method_store: Optional[PaymentMethodStore] = None,
        audit_logger: Optional[AuditLogger] = None,
        default_categories: Sequence[str] = (),
    ):
        super().__init__(audit_logger)
        self._categories = category_store
        self._tags = tag_store
        self._payment_methods = payment_method_store
        self._validator = TaxonomyValidator()
        self._default_categories = list(default_categories)

    # -- loads ---------------------------------------------------------------

    async def load_categories(self) -> LoadResult:
        return await self._load(Collection.CATEGORIES, self._categories.list)

    async def load_tags(self) -> LoadResult:
        return await self._load(Collection.TAGS, self._tags.list)

    async def load_payment_methods(self) -> LoadResult:
        if self._payment_methods is None:
            return LoadResult()
        return await self._load(Collection.PAYMENT_METHODS, self._payment_methods.list)

    async def _snapshot(self, given: Optional[Sequence[Any]], loader: Callable[[], Any]) -> list:
        if given is not None:
            return list(given)
        return await loader()

    # -- categories ----------------------------------------------------------

    async def create_category(
        self,
        name: str,
        categories: Optional[Sequence[Category]] = None,
    ) -> ActionResult:
        try:
            current = await self._snapshot(categories, self._categories.list)
            try:
                require_valid(self._validator.check_category_name(name, current))
            except InputValidationError as e:
                return await self._rejected("category", e)
            category_id = await self._categories.create(name)
        except StorageError as e:
            return await self._save_failed("category", "create", e, "category_create_failed")

        await self._audit_logger.log_created("category", category_id, {"name": name.strip()})
        return ActionResult.ok("category_created", entity_id=category_id)

    async def update_category(
        self,
        category_id: str,
        name: str,
        categories: Optional[Sequence[Category]] = None,
    ) -> ActionResult:
        """Rename a category. Expenses keep the old name."""
        try:
            current = await self._snapshot(categories, self._categories.list)
            try:
                require_valid(self._validator.check_category_name(
                    name, current, exclude_id=category_id,
                ))
            except InputValidationError as e:
                return await self._rejected("category", e)
            await self._categories.update(category_id, name)
        except StorageError as e:
            return await self._save_failed(
                "category", "update", e, "category_update_failed", entity_id=category_id,
            )

        await self._audit_logger.log_updated("category", category_id, ["name"])
        return ActionResult.ok("category_updated", entity_id=category_id)

    async def delete_category(self, category_id: str) -> ActionResult:
        """Delete a category together with its tags."""
        correlation_id = create_correlation_id()
        try:
            await self._categories.delete(category_id)
        except PartialWriteError as e:
            await self._audit_logger.log_partial_write(
                "category", category_id, e.completed_ids, str(e),
                correlation_id=correlation_id,
            )
            return ActionResult.failed("category_delete_partial")
        except StorageError as e:
            return await self._save_failed(
                "category", "delete", e, "category_delete_failed", entity_id=category_id,
            )

        await self._audit_logger.log_deleted(
            "category", category_id, correlation_id=correlation_id,
        )
        return ActionResult.ok("category_deleted", entity_id=category_id)

    async def seed_default_categories(
        self,
        categories: Optional[Sequence[Category]] = None,
    ) -> ActionResult:
        """Create each default category that doesn't exist yet."""
        correlation_id = create_correlation_id()
        created: list[str] = []
        try:
            current = await self._snapshot(categories, self._categories.list)
            existing = {category.name.lower() for category in current}
            for name in self._default_categories:
                if name.lower() in existing:
                    continue
                await self._categories.create(name)
                existing.add(name.lower())
                created.append(name)
        except StorageError as e:
            await self._audit_logger.log_save_failed(
                "category", "seed", str(e), correlation_id=correlation_id,
            )
            return ActionResult.failed("defaults_seed_failed")

        await self._audit_logger.log_defaults_seeded(
            "category", created, correlation_id=correlation_id,
        )
        return ActionResult.ok("defaults_seeded")

    # -- tags ----------------------------------------------------------------

    async def create_tag(
        self,
        name: str,
        category_id: Optional[str],
        categories: Optional[Sequence[Category]] = None,
        tags: Optional[Sequence[Tag]] = None,
    ) -> ActionResult:
        try:
            current_categories = await self._snapshot(categories, self._categories.list)
            current_tags = await self._snapshot(tags, self._tags.list)
            try:
                require_valid(self._validator.check_tag_name(
                    name, category_id, current_categories, current_tags,
                ))
            except InputValidationError as e:
                return await self._rejected("tag", e)
            tag_id = await self._tags.create(name, category_id)
        except StorageError as e:
            return await self._save_failed("tag", "create", e, "tag_create_failed")

        await self._audit_logger.log_created(
            "tag", tag_id, {"name": name.strip(), "category_id": category_id},
        )
        return ActionResult.ok("tag_created", entity_id=tag_id)

    async def update_tag(
        self,
        tag_id: str,
        name: str,
        category_id: Optional[str],
        categories: Optional[Sequence[Category]] = None,
        tags: Optional[Sequence[Tag]] = None,
    ) -> ActionResult:
        try:
            current_categories = await self._snapshot(categories, self._categories.list)
            current_tags = await self._snapshot(tags, self._tags.list)
            try:
                require_valid(self._validator.check_tag_name(
                    name, category_id, current_categories, current_tags, exclude_id=tag_id,
                ))
            except InputValidationError as e:
                return await self._rejected("tag", e)
            await self._tags.update(tag_id, name, category_id)
        except StorageError as e:
            return await self._save_failed(
                "tag", "update", e, "tag_update_failed", entity_id=tag_id,
            )

        await self._audit_logger.log_updated("tag", tag_id, ["name", "category_id"])
        return ActionResult.ok("tag_updated", entity_id=tag_id)

    async def delete_tag(self, tag_id: str) -> ActionResult:
        try:
            await self._tags.delete(tag_id)
        except StorageError as e:
            return await self._save_failed(
                "tag", "delete", e, "tag_delete_failed", entity_id=tag_id,
            )

        await self._audit_logger.log_deleted("tag", tag_id)
        return ActionResult.ok("tag_deleted", entity_id=tag_id)

    # -- payment methods -----------------------------------------------------

    async def create_payment_method(
        self,
        name: str,
        order: int = 0,
        payment_methods: Optional[Sequence[PaymentMethod]] = None,
    ) -> ActionResult:
        store = self._require_payment_methods()
        try:
            current = await self._snapshot(payment_methods, store.list)
            try:
                require_valid(self._validator.check_payment_method_name(name, current))
            except InputValidationError as e:
                return await self._rejected("payment_method", e)
            method_id = await store.create(name, order)
        except StorageError as e:
            return await self._save_failed(
                "payment_method", "create", e, "payment_method_create_failed",
            )

        await self._audit_logger.log_created("payment_method", method_id, {"name": name.strip()})
        return ActionResult.ok("payment_method_created", entity_id=method_id)

    async def update_payment_method(
        self,
        method_id: str,
        name: str,
        order: int = 0,
        payment_methods: Optional[Sequence[PaymentMethod]] = None,
    ) -> ActionResult:
        store = self._require_payment_methods()
        try:
            current = await self._snapshot(payment_methods, store.list)
            try:
                require_valid(self._validator.check_payment_method_name(
                    name, current, exclude_id=method_id,
                ))
            except InputValidationError as e:
                return await self._rejected("payment_method", e)
            await store.update(method_id, name, order)
        except StorageError as e:
            return await self._save_failed(
                "payment_method", "update", e, "payment_method_update_failed",
                entity_id=method_id,
            )

        await self._audit_logger.log_updated("payment_method", method_id, ["name", "order"])
        return ActionResult.ok("payment_method_updated", entity_id=method_id)

    async def delete_payment_method(self, method_id: str) -> ActionResult:
        store = self._require_payment_methods()
        try:
            await store.delete(method_id)
        except StorageError as e:
            return await self._save_failed(
                "payment_method", "delete", e, "payment_method_delete_failed",
                entity_id=method_id,
            )

        await self._audit_logger.log_deleted("payment_method", method_id)
        return ActionResult.ok("payment_method_deleted", entity_id=method_id)

    # -- reordering ----------------------------------------------------------

    async def reorder_categories(
        self,
        categories: Sequence[Category],
        moved_id: str,
        target_id: str,
    ) -> ActionResult:
        """Drop `moved_id` onto `target_id` in the displayed category list."""
        updates = compute_reorder(categories, moved_id, target_id)
        return await self._apply_reorder("category", self._categories, updates)

    async def reorder_tags(
        self,
        tags: Sequence[Tag],
        moved_id: str,
        target_id: str,
    ) -> ActionResult:
        """Reorder within the dragged tag's category."""
        updates = compute_tag_reorder(tags, moved_id, target_id)
        return await self._apply_reorder("tag", self._tags, updates)

    async def reorder_payment_methods(
        self,
        payment_methods: Sequence[PaymentMethod],
        moved_id: str,
        target_id: str,
    ) -> ActionResult:
        updates = compute_reorder(payment_methods, moved_id, target_id)
        return await self._apply_reorder(
            "payment_method", self._require_payment_methods(), updates,
        )

    async def _apply_reorder(
        self,
        entity_type: str,
        store: Any,
        updates: list[OrderUpdate],
    ) -> ActionResult:
        # Unknown ids or a drop in place: nothing to write.
        if not updates:
            return ActionResult(success=True)

        try:
            await store.reorder(updates)
        except StorageError as e:
            return await self._save_failed(entity_type, "reorder", e, "order_update_failed")

        await self._audit_logger.log_order_updated(
            entity_type, [update.id for update in updates],
        )
        return ActionResult.ok("order_updated")

    # -- helpers -------------------------------------------------------------

    def _require_payment_methods(self) -> PaymentMethodStore:
        if self._payment_methods is None:
            raise RuntimeError("No payment method store configured")
        return self._payment_methods


class SummaryFlow(_Flow):
    """Monthly summary: load the user's expenses and aggregate them."""

    def __init__(
        self,
        expense_store: ExpenseStore,
        session: SessionContext,
        audit_logger: Optional[AuditLogger] = None,
        tz: Optional[tzinfo] = None,
        uncategorized_label: Optional[str] = None,
    ):
        super().__init__(audit_logger)
        self._expenses = expense_store
        self._session = session
        self._tz = tz
        self._uncategorized_label = uncategorized_label

    async def load_summary(self) -> MonthlySummary:
        user = self._session.user
        if user is None:
            return MonthlySummary(error=message("not_signed_in"))

        result = await self._load(
            Collection.EXPENSES,
            lambda: self._expenses.list_by_user(user.uid),
            user_id=user.uid,
        )
        if not result.ok:
            return MonthlySummary(error=result.error)
        return self.summarize(result.items)

    def summarize(self, expenses: Sequence[Expense]) -> MonthlySummary:
        """Pure aggregation of an already loaded list."""
        kwargs = {}
        if self._uncategorized_label:
            kwargs["uncategorized_label"] = self._uncategorized_label
        buckets = group_by_month(expenses, tz=self._tz, **kwargs)
        return MonthlySummary(
            buckets=buckets,
            time_series=monthly_time_series(buckets),
            grand_total=grand_total(buckets),
        )

    @staticmethod
    def category_shares(bucket: MonthlyBucket) -> list[CategoryShare]:
        return percentage_shares(bucket.category_breakdown, bucket.total)


class SearchFlow(_Flow):
    """Expense search over the user's list with the filter criteria."""

    def __init__(
        self,
        expense_store: ExpenseStore,
        session: SessionContext,
        audit_logger: Optional[AuditLogger] = None,
        tz: Optional[tzinfo] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        super().__init__(audit_logger)
        self._expenses = expense_store
        self._session = session
        self._tz = tz
        self._clock = clock

    def default_filter(self, now: Optional[datetime] = None) -> ExpenseFilter:
        """The current month, no other dimension."""
        local_now = _local_now(now or self._clock(), self._tz)
        return ExpenseFilter(year=local_now.year, month=local_now.month)

    @staticmethod
    def cleared_filter() -> ExpenseFilter:
        return ExpenseFilter()

    def year_choices(self, expenses: Sequence[Expense], now: Optional[datetime] = None) -> list[int]:
        local_now = _local_now(now or self._clock(), self._tz)
        return available_years(expenses, local_now.year, tz=self._tz)

    async def load_expenses(self) -> LoadResult:
        user = self._session.user
        if user is None:
            return LoadResult(error=message("not_signed_in"))
        return await self._load(
            Collection.EXPENSES,
            lambda: self._expenses.list_by_user(user.uid),
            user_id=user.uid,
        )

    def apply(self, expenses: Sequence[Expense], criteria: ExpenseFilter) -> SearchResult:
        matched = filter_expenses(expenses, criteria, self._tz)
        return SearchResult(expenses=matched, totals=compute_totals(matched))

    async def search(self, criteria: ExpenseFilter) -> SearchResult:
        """Load the user's expenses, then filter them."""
        result = await self.load_expenses()
        if not result.ok:
            return SearchResult(error=result.error)
        return self.apply(result.items, criteria)


class ProfileFlow(_Flow):
    """Sign-in/out and the display name shown in the header."""

    def __init__(
        self,
        profile_store: UserProfileStore,
        session: SessionContext,
        auth: AuthProvider,
        audit_logger: Optional[AuditLogger] = None,
    ):
        super().__init__(audit_logger)
        self._profiles = profile_store
        self._session = session
        self._auth = auth

    async def sign_in(
        self,
        uid: str,
        display_name: Optional[str] = None,
        email: Optional[str] = None,
    ) -> AuthUser:
        """
        Sign in with the local provider.

        Raises:
            TypeError: If the configured provider isn't a LocalAuthProvider
        """
        if not isinstance(self._auth, LocalAuthProvider):
            raise TypeError("Interactive sign-in requires LocalAuthProvider")
        user = self._auth.sign_in(uid, display_name=display_name, email=email)
        await self._audit_logger.log_signed_in(user.uid)
        return user

    async def sign_out(self) -> None:
        user = self._session.user
        self._session.sign_out()
        if user is not None:
            await self._audit_logger.log_signed_out(user.uid)

    async def load_display_name(self) -> Optional[str]:
        """Stored name, then auth name; None when unknown or unreadable."""
        user = self._session.user
        if user is None:
            return None
        try:
            return await self._profiles.get_display_name(user)
        except StorageError as e:
            await self._audit_logger.log_load_failed(
                Collection.USERS.value, str(e), user_id=user.uid,
            )
            return None

    async def update_display_name(self, name: str) -> ActionResult:
        user = self._session.user
        if user is None:
            return ActionResult.failed("not_signed_in")

        result = check_display_name(name)
        if result.has_errors:
            return await self._rejected("profile", InputValidationError(result), user_id=user.uid)

        try:
            await self._profiles.update_display_name(user.uid, name, user.email)
        except StorageError as e:
            return await self._save_failed(
                "profile", "update", e, "profile_update_failed",
                entity_id=user.uid, user_id=user.uid,
            )

        await self._audit_logger.log_updated("profile", user.uid, ["name"], user_id=user.uid)
        return ActionResult.ok("profile_updated", entity_id=user.uid)


def _local_now(now: datetime, tz: Optional[tzinfo]) -> datetime:
    if tz is not None and now.tzinfo is not None:
        return now.astimezone(tz)
    return now


# =============================================================================
# COMPOSITION ROOT
# =============================================================================

class AppComponents(NamedTuple):
    store: DocumentStoreInterface
    auth: AuthProvider
    session: SessionContext
    audit_logger: AuditLogger
    expense_flow: ExpenseFlow
    taxonomy_flow: TaxonomyFlow
    summary_flow: SummaryFlow
    search_flow: SearchFlow
    profile_flow: ProfileFlow


def create_store(settings: Optional[Settings] = None) -> DocumentStoreInterface:
    """Document store for the configured backend."""
    settings = settings or get_settings()
    if settings.app.storage_backend == "memory":
        logger.info("storage_backend_selected", backend="memory")
        return InMemoryDocumentStore()
    logger.info("storage_backend_selected", backend="google_sheets")
    return GoogleSheetsDocumentStore(GoogleSheetsClient())


def create_app_components(
    settings: Optional[Settings] = None,
    store: Optional[DocumentStoreInterface] = None,
    auth: Optional[AuthProvider] = None,
    clock: Callable[[], datetime] = utc_now,
) -> AppComponents:
    """
    Factory function to create all application components.

    Args:
        settings: Settings to use (defaults to get_settings())
        store: Document store; built from settings when omitted
        auth: Auth provider; a LocalAuthProvider when omitted
        clock: Current time source for timestamps and "this month"

    The session is started before returning.
    """
    settings = settings or get_settings()
    app = settings.app
    store = store or create_store(settings)
    auth = auth or LocalAuthProvider()

    audit_logger = AuditLogger(store if app.persist_audit_log else None)
    session = SessionContext(auth)
    session.start()

    tz = app.tzinfo
    expense_store = ExpenseStore(store, clock=clock)
    category_store = CategoryStore(store)
    tag_store = TagStore(store)
    payment_method_store = PaymentMethodStore(store)
    profile_store = UserProfileStore(store, clock=clock)

    return AppComponents(
        store=store,
        auth=auth,
        session=session,
        audit_logger=audit_logger,
        expense_flow=ExpenseFlow(
            expense_store,
            session,
            payment_method_store=payment_method_store,
            audit_logger=audit_logger,
            tz=tz,
            default_payment_methods=app.default_payment_methods_list,
            clock=clock,
        ),
        taxonomy_flow=TaxonomyFlow(
            category_store,
            tag_store,
            payment_method_store=payment_method_store,
            audit_logger=audit_logger,
            default_categories=app.default_categories_list,
        ),
        summary_flow=SummaryFlow(
            expense_store,
            session,
            audit_logger=audit_logger,
            tz=tz,
            uncategorized_label=app.uncategorized_label,
        ),
        search_flow=SearchFlow(
            expense_store, session, audit_logger=audit_logger, tz=tz, clock=clock,
        ),
        profile_flow=ProfileFlow(
            profile_store, session, auth, audit_logger=audit_logger,
        ),
    )


class DiagnosticCheck(BaseModel):
    name: str
    passed: bool
    detail: str = ""


async def run_diagnostics(
    store: Optional[DocumentStoreInterface] = None,
    settings: Optional[Settings] = None,
) -> list[DiagnosticCheck]:
    """
    Startup checks for the home page.

    1. Settings load
    2. The document store answers a read of the categories collection
    """
    checks: list[DiagnosticCheck] = []

    results = validate_all_settings(settings)
    for name in ("app", "google_sheets"):
        if name in results:
            checks.append(DiagnosticCheck(
                name=f"settings.{name}",
                passed=bool(results[name]),
                detail=str(results.get(f"{name}_error", "")),
            ))
    if not results.get("app"):
        return checks

    try:
        store = store or create_store(settings)
        documents = await store.list_all(Collection.CATEGORIES)
    except StorageError as e:
        checks.append(DiagnosticCheck(name="store.read", passed=False, detail=str(e)))
    else:
        checks.append(DiagnosticCheck(
            name="store.read",
            passed=True,
            detail=f"{len(documents)} categories",
        ))
    return checks
