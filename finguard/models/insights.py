"""
Insight Models

Read-only aggregates computed from stored transactions. None of these are
persisted; they are rebuilt on every request.
"""

from datetime import date
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field


class CategoryTotal(BaseModel):
    """Spending in one category."""

    category_id: str
    name: str
    amount: Decimal
    percentage: Optional[float] = Field(
        default=None,
        description="Share of total spending in the analysed set"
    )


class FinancialInsights(BaseModel):
    """Savings rate and spending leaders over the most recent transactions."""

    savings_rate: float = Field(..., description="(income - expenses) / income * 100")
    total_income: Decimal
    total_expenses: Decimal
    top_categories: list[CategoryTotal] = Field(default_factory=list)
    monthly_income: Decimal
    monthly_expenses: Decimal
    transactions_analyzed: int


class SpendingAnalytics(BaseModel):
    """Expense patterns over a trailing window of days."""

    days: int
    daily_spending: dict[date, Decimal] = Field(default_factory=dict)
    weekly_spending: dict[str, Decimal] = Field(default_factory=dict)
    category_spending: list[CategoryTotal] = Field(default_factory=list)
    daily_average: Decimal = Decimal("0.00")
    weekly_average: Decimal = Decimal("0.00")
    total_spent: Decimal = Decimal("0.00")
    transaction_count: int = 0


class ExpenseChartRow(BaseModel):
    """One slice of the expense chart, taken from the budget summary."""

    name: str
    amount: Decimal
    color: Optional[str] = None
