"""Tests for LedgerValidator."""

import pytest
from datetime import date, timedelta
from decimal import Decimal

from conftest import expense, income
from finguard.models import (
    DEFAULT_CATEGORIES,
    AutopayDraft,
    Budget,
    BudgetDraft,
    BudgetPatch,
    GoalDraft,
)
from finguard.validation import LedgerValidator


@pytest.fixture
def validator(ledger_settings, clock):
    return LedgerValidator(ledger_settings, clock)


def _issue_types(result) -> list[str]:
    return [issue.issue_type for issue in result.issues]


class TestTransactionValidation:
    """Tests for validate_transaction."""

    def test_valid_expense(self, validator):
        """Test a well-formed expense."""
        result = validator.validate_transaction(expense("300"), DEFAULT_CATEGORIES)
        assert result.is_valid is True
        assert result.issues == []

    def test_non_positive_amount(self, validator):
        """Test zero and negative amounts."""
        for amount in ("0", "-5"):
            result = validator.validate_transaction(expense(amount), DEFAULT_CATEGORIES)
            assert result.is_valid is False
            assert _issue_types(result) == ["invalid_value"]

    def test_too_many_decimal_places(self, validator):
        """Test that sub-cent amounts are rejected."""
        result = validator.validate_transaction(expense("10.005"), DEFAULT_CATEGORIES)
        assert "invalid_format" in _issue_types(result)

    def test_amount_above_cap(self, validator):
        """Test the configured maximum."""
        result = validator.validate_transaction(expense("1000000.00"), DEFAULT_CATEGORIES)
        assert "out_of_range" in _issue_types(result)
        assert "exceeds the maximum" in result.message

    def test_missing_category(self, validator):
        """Test that a category must be chosen."""
        result = validator.validate_transaction(expense("10", category_id=""), DEFAULT_CATEGORIES)
        assert _issue_types(result) == ["missing"]
        assert result.message == "Please select a category"

    def test_unknown_category(self, validator):
        """Test a category id that does not exist."""
        result = validator.validate_transaction(expense("10", category_id="42"), DEFAULT_CATEGORIES)
        assert _issue_types(result) == ["unknown_category"]

    def test_category_type_mismatch(self, validator):
        """Test an income filed under an expense category."""
        result = validator.validate_transaction(income("10", category_id="1"), DEFAULT_CATEGORIES)
        assert _issue_types(result) == ["type_mismatch"]

    def test_future_date(self, validator, clock):
        """Test that tomorrow is rejected with zero tolerance."""
        tomorrow = clock.now.date() + timedelta(days=1)
        result = validator.validate_transaction(expense("10", date=tomorrow), DEFAULT_CATEGORIES)
        assert _issue_types(result) == ["future_date"]

    def test_date_too_old(self, validator, clock):
        """Test the backdating limit."""
        old = clock.now.date() - timedelta(days=731)
        result = validator.validate_transaction(expense("10", date=old), DEFAULT_CATEGORIES)
        assert _issue_types(result) == ["out_of_range"]

    def test_date_check_can_be_skipped(self, validator):
        """Test that scheduled runs are not held to the date window."""
        result = validator.validate_transaction(
            expense("10", date=date(2000, 1, 1)), DEFAULT_CATEGORIES, check_date=False
        )
        assert result.is_valid is True

    def test_insufficient_balance(self, validator):
        """Test the balance check when a balance is supplied."""
        result = validator.validate_transaction(
            expense("500"), DEFAULT_CATEGORIES, balance=Decimal("100.00")
        )
        assert _issue_types(result) == ["insufficient_balance"]
        assert result.message == "Insufficient balance. Available: ₹100.00"

    def test_income_ignores_balance(self, validator):
        """Test that incomes never fail the balance check."""
        result = validator.validate_transaction(
            income("500"), DEFAULT_CATEGORIES, balance=Decimal("0.00")
        )
        assert result.is_valid is True

    def test_collects_every_issue(self, validator, clock):
        """Test that validation does not stop at the first problem."""
        tomorrow = clock.now.date() + timedelta(days=1)
        result = validator.validate_transaction(
            expense("-1", category_id="", date=tomorrow), DEFAULT_CATEGORIES
        )
        assert _issue_types(result) == ["invalid_value", "missing", "future_date"]

    def test_text_length_limits(self, validator):
        """Test the description and notes limits of stored transactions."""
        at_limit = expense("10", description="x" * 200, notes="n" * 1000)
        assert validator.validate_transaction(at_limit, DEFAULT_CATEGORIES).is_valid is True

        too_long = expense("10", description="x" * 201, notes="n" * 1001)
        result = validator.validate_transaction(too_long, DEFAULT_CATEGORIES)
        assert _issue_types(result) == ["too_long", "too_long"]
        assert [i.field for i in result.issues] == ["description", "notes"]
        assert result.message == "Description can be at most 200 characters"


class TestBudgetValidation:
    """Tests for budget drafts and patches."""

    def test_valid_budget(self, validator):
        """Test a well-formed budget."""
        draft = BudgetDraft(category_id="1", amount=Decimal("1000"))
        assert validator.validate_budget(draft, DEFAULT_CATEGORIES, []).is_valid is True

    def test_income_category_rejected(self, validator):
        """Test that budgets only apply to expense categories."""
        draft = BudgetDraft(category_id="7", amount=Decimal("1000"))
        result = validator.validate_budget(draft, DEFAULT_CATEGORIES, [])
        assert _issue_types(result) == ["type_mismatch"]

    def test_duplicate_active_budget(self, validator):
        """Test one active budget per category."""
        existing = Budget(category_id="1", amount=Decimal("500"))
        draft = BudgetDraft(category_id="1", amount=Decimal("1000"))
        result = validator.validate_budget(draft, DEFAULT_CATEGORIES, [existing])
        assert _issue_types(result) == ["duplicate"]

    def test_inactive_budget_is_not_a_duplicate(self, validator):
        """Test that an expired budget does not block a new one."""
        existing = Budget(category_id="1", amount=Decimal("500"), is_active=False)
        draft = BudgetDraft(category_id="1", amount=Decimal("1000"))
        assert validator.validate_budget(draft, DEFAULT_CATEGORIES, [existing]).is_valid is True

    def test_patch_amount(self, validator):
        """Test that a patched amount is validated."""
        assert validator.validate_budget_patch(BudgetPatch(amount=Decimal("0"))).is_valid is False
        assert validator.validate_budget_patch(BudgetPatch(auto_reset=False)).is_valid is True


class TestAutopayValidation:
    """Tests for autopay drafts."""

    def test_valid_autopay(self, validator):
        """Test a well-formed definition."""
        draft = AutopayDraft(amount=Decimal("100"), category_id="3", max_count=12)
        assert validator.validate_autopay(draft, DEFAULT_CATEGORIES).is_valid is True

    def test_end_before_start(self, validator):
        """Test an inverted schedule."""
        draft = AutopayDraft(
            amount=Decimal("100"),
            category_id="3",
            start_date=date(2025, 3, 10),
            end_date=date(2025, 3, 1),
        )
        result = validator.validate_autopay(draft, DEFAULT_CATEGORIES)
        assert _issue_types(result) == ["inconsistent"]

    def test_zero_max_count(self, validator):
        """Test that the cap must allow at least one run."""
        draft = AutopayDraft(amount=Decimal("100"), category_id="3", max_count=0)
        result = validator.validate_autopay(draft, DEFAULT_CATEGORIES)
        assert _issue_types(result) == ["invalid_value"]

    def test_description_too_long(self, validator):
        """Test that the template description fits a transaction."""
        draft = AutopayDraft(amount=Decimal("100"), category_id="3", description="r" * 201)
        result = validator.validate_autopay(draft, DEFAULT_CATEGORIES)
        assert _issue_types(result) == ["too_long"]


class TestGoalValidation:
    """Tests for goals and contributions."""

    def test_missing_name(self, validator):
        """Test that goals need a name."""
        result = validator.validate_goal(GoalDraft(target_amount=Decimal("1000")))
        assert _issue_types(result) == ["missing"]

    def test_name_too_long(self, validator):
        """Test the goal name limit."""
        result = validator.validate_goal(GoalDraft(name="g" * 101, target_amount=Decimal("1000")))
        assert _issue_types(result) == ["too_long"]

    def test_past_deadline_is_a_warning(self, validator, clock):
        """Test that a past deadline does not block saving."""
        draft = GoalDraft(
            name="Trip",
            target_amount=Decimal("1000"),
            deadline=clock.now.date() - timedelta(days=1),
        )
        result = validator.validate_goal(draft)
        assert result.is_valid is True
        assert result.issues[0].severity == "warning"

    def test_contribution(self, validator):
        """Test contribution amounts."""
        assert validator.validate_contribution(Decimal("50")).is_valid is True
        assert validator.validate_contribution(Decimal("-50")).is_valid is False


class TestUserFriendlySummary:
    """Tests for get_user_friendly_summary."""

    def test_all_passed(self, validator):
        """Test the summary of a clean result."""
        result = validator.validate_transaction(expense("10"), DEFAULT_CATEGORIES)
        assert validator.get_user_friendly_summary(result) == "All checks passed."

    def test_errors_listed(self, validator):
        """Test that each issue gets a line."""
        result = validator.validate_transaction(
            expense("0", category_id=""), DEFAULT_CATEGORIES
        )
        summary = validator.get_user_friendly_summary(result)
        assert summary.splitlines() == [
            "Error: Amount must be greater than zero",
            "Error: Please select a category",
        ]
