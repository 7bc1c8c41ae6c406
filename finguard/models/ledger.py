"""
Core Ledger Models for FinGuard

These models define the strict schemas for transactions, the account
state and categories. They are designed to:
1. Enforce type safety at runtime
2. Provide clear validation error messages
3. Be serializable for the record store and audit trail

DESIGN DECISION: Stored records (Transaction, AccountState) are strict.
Input shapes (TransactionDraft, TransactionPatch) are lenient so that the
validator, not the model constructor, reports out-of-range values to the
caller as a ValidationResult.
"""

from datetime import date, datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Annotated, Callable, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field


def utc_now() -> datetime:
    """Current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


# Source of the current time, injected into every component that reads it
Clock = Callable[[], datetime]


# A field named `date` shadows the type inside class bodies
CalendarDate = date

Money = Annotated[Decimal, Field(ge=0, decimal_places=2)]

DESCRIPTION_MAX_LENGTH = 200
NOTES_MAX_LENGTH = 1000


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class TransactionType(str, Enum):
    """Direction of a transaction relative to the account balance."""
    INCOME = "income"
    EXPENSE = "expense"


class PaymentMode(str, Enum):
    """How a transaction was paid."""
    CASH = "cash"
    UPI = "upi"
    CREDIT_CARD = "credit_card"
    DEBIT_CARD = "debit_card"
    BANK_TRANSFER = "bank_transfer"


# =============================================================================
# TRANSACTIONS
# =============================================================================

class Transaction(BaseModel):
    """
    A recorded income or expense.

    Immutable once created except through the explicit update path,
    which re-derives the balance and every budget aggregate.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: UUID = Field(
        default_factory=uuid4,
        description="Unique transaction ID"
    )
    type: TransactionType
    amount: Annotated[
        Decimal,
        Field(gt=0, decimal_places=2, description="Amount in account currency")
    ]
    category_id: str = Field(
        ...,
        min_length=1,
        description="Category this transaction is filed under"
    )
    date: CalendarDate = Field(
        ...,
        description="Calendar day the transaction belongs to"
    )
    description: Optional[str] = Field(default=None, max_length=DESCRIPTION_MAX_LENGTH)
    notes: Optional[str] = Field(default=None, max_length=NOTES_MAX_LENGTH)
    payment_mode: PaymentMode = PaymentMode.CASH

    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    # Set only on transactions materialized by the autopay scheduler
    is_autopay_generated: bool = False
    autopay_id: Optional[UUID] = None

    @property
    def is_expense(self) -> bool:
        return self.type == TransactionType.EXPENSE


class TransactionDraft(BaseModel):
    """
    A transaction as submitted by the caller, before validation.

    Amount and category are deliberately unconstrained here; the
    validator reports problems instead of the constructor.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    type: TransactionType
    amount: Decimal
    category_id: str = ""
    date: Optional[CalendarDate] = Field(
        default=None,
        description="Defaults to today when omitted"
    )
    description: Optional[str] = None
    notes: Optional[str] = None
    payment_mode: PaymentMode = PaymentMode.CASH


class TransactionPatch(BaseModel):
    """Fields that may change on an existing transaction."""
    model_config = ConfigDict(str_strip_whitespace=True)

    type: Optional[TransactionType] = None
    amount: Optional[Decimal] = None
    category_id: Optional[str] = None
    date: Optional[CalendarDate] = None
    description: Optional[str] = None
    notes: Optional[str] = None
    payment_mode: Optional[PaymentMode] = None


# =============================================================================
# ACCOUNT STATE
# =============================================================================

class AccountState(BaseModel):
    """
    The singleton balance record.

    monthly_income / monthly_expenses are lifetime counters of the data
    set; they are not rolled over at month boundaries.
    """

    balance: Money = Decimal("0.00")
    monthly_income: Money = Decimal("0.00")
    monthly_expenses: Money = Decimal("0.00")


# =============================================================================
# CATEGORIES
# =============================================================================

class Category(BaseModel):
    """A transaction category."""
    model_config = ConfigDict(str_strip_whitespace=True)

    id: str = Field(default_factory=lambda: uuid4().hex)
    name: str = Field(..., min_length=1, max_length=50)
    type: TransactionType
    icon: Optional[str] = None
    color: Optional[str] = Field(default=None, pattern="^#[0-9a-fA-F]{6}$")


class CategoryPatch(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    name: Optional[str] = Field(default=None, min_length=1, max_length=50)
    icon: Optional[str] = None
    color: Optional[str] = Field(default=None, pattern="^#[0-9a-fA-F]{6}$")


DEFAULT_CATEGORIES: list[Category] = [
    Category(id="1", name="Food", icon="restaurant", color="#ff6b6b", type=TransactionType.EXPENSE),
    Category(id="2", name="Travel", icon="car", color="#4ecdc4", type=TransactionType.EXPENSE),
    Category(id="3", name="Rent", icon="home", color="#45b7d1", type=TransactionType.EXPENSE),
    Category(id="4", name="Shopping", icon="bag", color="#96ceb4", type=TransactionType.EXPENSE),
    Category(id="5", name="Entertainment", icon="musical-notes", color="#ffeaa7", type=TransactionType.EXPENSE),
    Category(id="6", name="Healthcare", icon="medical", color="#fd79a8", type=TransactionType.EXPENSE),
    Category(id="7", name="Salary", icon="card", color="#6c5ce7", type=TransactionType.INCOME),
    Category(id="8", name="Freelance", icon="laptop", color="#a29bfe", type=TransactionType.INCOME),
    Category(id="9", name="Investment", icon="trending-up", color="#fd79a8", type=TransactionType.INCOME),
]


# =============================================================================
# VALIDATION MODELS
# =============================================================================

class ValidationIssue(BaseModel):
    """A single validation issue found."""

    field: str = Field(
        ...,
        description="Field with the issue"
    )
    issue_type: str = Field(
        ...,
        description="Type of issue (e.g., 'missing', 'out_of_range', 'insufficient_balance')"
    )
    message: str = Field(
        ...,
        description="Human-readable description of the issue"
    )
    severity: str = Field(
        default="error",
        pattern="^(error|warning)$",
        description="Issue severity"
    )


class ValidationResult(BaseModel):
    """
    Outcome of validating a draft.

    `message` is the first error (or warning) in human-readable form,
    suitable for showing directly to the user.
    """

    is_valid: bool
    message: Optional[str] = None
    issues: list[ValidationIssue] = Field(default_factory=list)

    @property
    def has_errors(self) -> bool:
        return any(issue.severity == "error" for issue in self.issues)

    @property
    def error_count(self) -> int:
        return sum(1 for issue in self.issues if issue.severity == "error")

    @classmethod
    def from_issues(cls, issues: list[ValidationIssue]) -> "ValidationResult":
        errors = [i for i in issues if i.severity == "error"]
        first = errors[0] if errors else (issues[0] if issues else None)
        return cls(
            is_valid=not errors,
            message=first.message if first else None,
            issues=issues,
        )
