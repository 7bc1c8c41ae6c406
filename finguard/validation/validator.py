"""
Ledger Input Validation

DESIGN DECISION: Every draft is validated before any state is touched.
The validator collects ValidationIssues instead of stopping at the first
problem, so the caller can show everything that is wrong at once.

Checks are grouped the same way for every entity:
1. Amount checks (positive, at most two decimal places, below the cap)
2. Reference checks (category exists and has the right type)
3. Semantic checks (date window, schedule bounds, duplicates)

IMPORTANT: Validation NEVER silently fixes input. It reports problems;
the ledger refuses to write until they are resolved.
"""

from datetime import date, timedelta
from decimal import Decimal
from typing import Optional

from finguard.config import LedgerSettings, get_settings
from finguard.models import (
    DESCRIPTION_MAX_LENGTH,
    GOAL_NAME_MAX_LENGTH,
    NOTES_MAX_LENGTH,
    AutopayDraft,
    Budget,
    BudgetDraft,
    BudgetPatch,
    Category,
    Clock,
    GoalDraft,
    TransactionDraft,
    TransactionType,
    ValidationIssue,
    ValidationResult,
    utc_now,
)


class LedgerValidator:
    """
    Validates transaction, budget, autopay and goal drafts.

    Pure: callers pass in whatever stored state a check needs (categories,
    budgets, current balance).
    """

    def __init__(
        self,
        settings: Optional[LedgerSettings] = None,
        clock: Clock = utc_now,
    ):
        self._settings = settings or get_settings().ledger
        self._clock = clock

    # =========================================================================
    # Building blocks
    # =========================================================================

    def _validate_amount(
        self,
        amount: Optional[Decimal],
        field: str = "amount",
    ) -> list[ValidationIssue]:
        issues = []

        if amount is None:
            issues.append(ValidationIssue(
                field=field,
                issue_type="missing",
                message="Amount is required",
            ))
            return issues

        if not amount.is_finite() or amount <= 0:
            issues.append(ValidationIssue(
                field=field,
                issue_type="invalid_value",
                message="Amount must be greater than zero",
            ))
            return issues

        if amount.as_tuple().exponent < -2:
            issues.append(ValidationIssue(
                field=field,
                issue_type="invalid_format",
                message="Amount can have at most two decimal places",
            ))

        max_amount = self._settings.max_transaction_amount
        if amount > max_amount:
            issues.append(ValidationIssue(
                field=field,
                issue_type="out_of_range",
                message=(
                    f"Amount ({self._settings.currency_symbol}{amount:,.2f}) exceeds the maximum "
                    f"of {self._settings.currency_symbol}{max_amount:,.2f}"
                ),
            ))

        return issues

    def _validate_category(
        self,
        category_id: Optional[str],
        expected_type: TransactionType,
        categories: list[Category],
    ) -> list[ValidationIssue]:
        if not category_id:
            return [ValidationIssue(
                field="category_id",
                issue_type="missing",
                message="Please select a category",
            )]

        category = next((c for c in categories if c.id == category_id), None)
        if category is None:
            return [ValidationIssue(
                field="category_id",
                issue_type="unknown_category",
                message=f"Unknown category: {category_id}",
            )]

        if category.type != expected_type:
            return [ValidationIssue(
                field="category_id",
                issue_type="type_mismatch",
                message=f"{category.name} is an {category.type.value} category, not {expected_type.value}",
            )]

        return []

    def _validate_date(self, day: date) -> list[ValidationIssue]:
        issues = []
        today = self._clock().date()

        latest = today + timedelta(days=self._settings.future_date_tolerance_days)
        if day > latest:
            issues.append(ValidationIssue(
                field="date",
                issue_type="future_date",
                message=f"Transaction date ({day}) is in the future",
            ))

        earliest = today - timedelta(days=self._settings.max_backdate_days)
        if day < earliest:
            issues.append(ValidationIssue(
                field="date",
                issue_type="out_of_range",
                message=f"Transaction date ({day}) is too far in the past",
            ))

        return issues

    def _validate_length(
        self,
        value: Optional[str],
        field: str,
        limit: int,
    ) -> list[ValidationIssue]:
        if value is None or len(value) <= limit:
            return []
        return [ValidationIssue(
            field=field,
            issue_type="too_long",
            message=f"{field.capitalize()} can be at most {limit} characters",
        )]

    # =========================================================================
    # Transactions
    # =========================================================================

    def validate_transaction(
        self,
        draft: TransactionDraft,
        categories: list[Category],
        balance: Optional[Decimal] = None,
        check_date: bool = True,
    ) -> ValidationResult:
        """
        Validate a transaction draft.

        Args:
            draft: The transaction to validate
            categories: Known categories
            balance: Current balance. When given, an expense larger than it
                    is reported as an insufficient_balance issue.
            check_date: Skip the date window (autopay runs are dated by
                    their schedule, not by today)

        Returns:
            ValidationResult with all issues found
        """
        issues = self._validate_amount(draft.amount)
        issues.extend(self._validate_category(draft.category_id, draft.type, categories))

        if check_date and draft.date is not None:
            issues.extend(self._validate_date(draft.date))

        issues.extend(self._validate_length(draft.description, "description", DESCRIPTION_MAX_LENGTH))
        issues.extend(self._validate_length(draft.notes, "notes", NOTES_MAX_LENGTH))

        if (
            balance is not None
            and draft.type == TransactionType.EXPENSE
            and not issues
            and draft.amount > balance
        ):
            issues.append(ValidationIssue(
                field="amount",
                issue_type="insufficient_balance",
                message=(
                    f"Insufficient balance. Available: "
                    f"{self._settings.currency_symbol}{balance:,.2f}"
                ),
            ))

        return ValidationResult.from_issues(issues)

    # =========================================================================
    # Budgets
    # =========================================================================

    def validate_budget(
        self,
        draft: BudgetDraft,
        categories: list[Category],
        budgets: list[Budget],
    ) -> ValidationResult:
        """Validate a new budget. One active budget per category."""
        issues = self._validate_amount(draft.amount)
        issues.extend(self._validate_category(
            draft.category_id, TransactionType.EXPENSE, categories
        ))

        if any(b.is_active and b.category_id == draft.category_id for b in budgets):
            issues.append(ValidationIssue(
                field="category_id",
                issue_type="duplicate",
                message="An active budget already exists for this category",
            ))

        return ValidationResult.from_issues(issues)

    def validate_budget_patch(self, patch: BudgetPatch) -> ValidationResult:
        issues = []
        if patch.amount is not None:
            issues.extend(self._validate_amount(patch.amount))
        return ValidationResult.from_issues(issues)

    # =========================================================================
    # Autopay
    # =========================================================================

    def validate_autopay(
        self,
        draft: AutopayDraft,
        categories: list[Category],
    ) -> ValidationResult:
        issues = self._validate_amount(draft.amount)
        issues.extend(self._validate_category(draft.category_id, draft.type, categories))
        issues.extend(self._validate_length(draft.description, "description", DESCRIPTION_MAX_LENGTH))

        start = draft.start_date or self._clock().date()
        if draft.end_date is not None and draft.end_date < start:
            issues.append(ValidationIssue(
                field="end_date",
                issue_type="inconsistent",
                message="End date is before start date",
            ))

        if draft.max_count is not None and draft.max_count < 1:
            issues.append(ValidationIssue(
                field="max_count",
                issue_type="invalid_value",
                message="Maximum number of payments must be at least 1",
            ))

        return ValidationResult.from_issues(issues)

    # =========================================================================
    # Goals
    # =========================================================================

    def validate_goal(self, draft: GoalDraft) -> ValidationResult:
        issues = []
        if not draft.name:
            issues.append(ValidationIssue(
                field="name",
                issue_type="missing",
                message="Goal name is required",
            ))
        issues.extend(self._validate_length(draft.name, "name", GOAL_NAME_MAX_LENGTH))
        issues.extend(self._validate_amount(draft.target_amount, field="target_amount"))
        if draft.current_amount < 0:
            issues.append(ValidationIssue(
                field="current_amount",
                issue_type="invalid_value",
                message="Saved amount cannot be negative",
            ))
        if draft.deadline is not None and draft.deadline < self._clock().date():
            issues.append(ValidationIssue(
                field="deadline",
                issue_type="past_date",
                message="Deadline is in the past",
                severity="warning",
            ))
        return ValidationResult.from_issues(issues)

    def validate_contribution(self, amount: Decimal) -> ValidationResult:
        return ValidationResult.from_issues(self._validate_amount(amount))

    def get_user_friendly_summary(self, result: ValidationResult) -> str:
        """One line per issue, errors first, for showing to the user."""
        if result.is_valid and not result.issues:
            return "All checks passed."

        lines = []
        for issue in sorted(result.issues, key=lambda i: i.severity != "error"):
            marker = "Error" if issue.severity == "error" else "Warning"
            lines.append(f"{marker}: {issue.message}")
        return "\n".join(lines)
