"""
Budget Models for FinGuard

A Budget allocates an amount to one expense category for a recurring
period. Its `spent` field is a cache: the authoritative value is the sum
of matching expense transactions inside the budget's current window,
recomputed by the budget aggregator after every mutation.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Annotated, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field

from finguard.models.ledger import Money, utc_now


class BudgetPeriod(str, Enum):
    """Length of one budget window."""
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    YEARLY = "yearly"


class BudgetStatus(str, Enum):
    """Derived status shown next to each budget."""
    ACTIVE = "active"
    EXPIRING_SOON = "expiring_soon"
    EXPIRED = "expired"
    LEGACY = "legacy"  # Created before budgets had periods; never expires


class Budget(BaseModel):
    """A spending allocation for one category over one period."""
    model_config = ConfigDict(str_strip_whitespace=True)

    id: UUID = Field(default_factory=uuid4)
    category_id: str = Field(..., min_length=1)
    amount: Money = Field(..., description="Allocated amount for one period")
    spent: Money = Field(
        default=Decimal("0.00"),
        description="Cached sum of expenses in the current window"
    )
    period: BudgetPeriod = BudgetPeriod.MONTHLY

    start_date: datetime = Field(default_factory=utc_now)
    expiry_date: Optional[datetime] = Field(
        default=None,
        description="End of the current window (exclusive); None for legacy budgets"
    )

    is_active: bool = True
    auto_reset: bool = Field(
        default=True,
        description="Start a new period on expiry instead of deactivating"
    )
    reset_count: int = Field(default=0, ge=0)
    expired_at: Optional[datetime] = None
    last_reset_at: Optional[datetime] = None

    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    @property
    def is_legacy(self) -> bool:
        return self.expiry_date is None


class BudgetDraft(BaseModel):
    """A budget as submitted by the caller."""
    model_config = ConfigDict(str_strip_whitespace=True)

    category_id: str = ""
    amount: Decimal
    period: BudgetPeriod = BudgetPeriod.MONTHLY
    start_date: Optional[datetime] = None
    auto_reset: bool = True


class BudgetPatch(BaseModel):
    amount: Optional[Decimal] = None
    period: Optional[BudgetPeriod] = None
    auto_reset: Optional[bool] = None
    is_active: Optional[bool] = None


class BudgetView(BaseModel):
    """A budget annotated with values derived at read time."""

    budget: Budget
    status: BudgetStatus
    remaining: Decimal
    percentage: float = Field(..., ge=0.0)


class CategorySpend(BaseModel):
    """One row of the budget summary."""

    budget_id: UUID
    category_id: str
    name: str
    color: Optional[str] = None
    allocated: Decimal
    spent: Decimal
    remaining: Decimal
    percentage: float


class BudgetSummary(BaseModel):
    """
    Rolled-up view over all active budgets.

    Never authoritative and never patched in place: the aggregator
    rebuilds it from scratch on every write.
    """

    total: Decimal = Decimal("0.00")
    spent: Decimal = Decimal("0.00")
    remaining: Decimal = Decimal("0.00")
    categories: list[CategorySpend] = Field(default_factory=list)
    computed_at: datetime = Field(default_factory=utc_now)


class BudgetPassResult(BaseModel):
    """Bookkeeping returned by one budget period pass."""

    reset: Annotated[int, Field(ge=0)] = 0
    expired: Annotated[int, Field(ge=0)] = 0
    budget_ids: list[UUID] = Field(default_factory=list)

    @property
    def changed(self) -> bool:
        return bool(self.reset or self.expired)
