"""
Insight Queries

DESIGN DECISION: Insights are DETERMINISTIC reads over stored data.
Nothing here estimates or fills gaps: an empty transaction list gives
zero totals and empty breakdowns, never a guess.
"""

from collections import defaultdict
from datetime import date, timedelta
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

from finguard.models import (
    CategoryTotal,
    Clock,
    ExpenseChartRow,
    FinancialInsights,
    SpendingAnalytics,
    Transaction,
    TransactionType,
    utc_now,
)
from finguard.services.storage import LedgerRepository


CENT = Decimal("0.01")


def _newest_first(transactions: list[Transaction]) -> list[Transaction]:
    return sorted(transactions, key=lambda t: (t.date, t.created_at), reverse=True)


class InsightsQuery:
    """Read-only analytics over the transaction history."""

    def __init__(self, repository: LedgerRepository, clock: Clock = utc_now):
        self._repository = repository
        self._clock = clock

    async def _category_names(self) -> dict[str, str]:
        return {c.id: c.name for c in await self._repository.get_categories()}

    async def recent_transactions(self, limit: Optional[int] = None) -> list[Transaction]:
        transactions = _newest_first(await self._repository.get_transactions())
        return transactions if limit is None else transactions[:limit]

    async def financial_insights(self, sample_size: int = 30) -> FinancialInsights:
        """
        Savings rate and top expense categories over the latest transactions.

        Args:
            sample_size: How many of the newest transactions to analyse
        """
        transactions = await self.recent_transactions(sample_size)
        names = await self._category_names()
        state = await self._repository.get_account_state()

        income = sum(
            (t.amount for t in transactions if t.type == TransactionType.INCOME),
            Decimal("0.00"),
        )
        expenses = sum(
            (t.amount for t in transactions if t.type == TransactionType.EXPENSE),
            Decimal("0.00"),
        )
        savings_rate = float((income - expenses) / income * 100) if income > 0 else 0.0

        by_category: dict[str, Decimal] = defaultdict(lambda: Decimal("0.00"))
        for t in transactions:
            if t.is_expense:
                by_category[t.category_id] += t.amount

        top = sorted(by_category.items(), key=lambda item: item[1], reverse=True)[:5]

        return FinancialInsights(
            savings_rate=savings_rate,
            total_income=income,
            total_expenses=expenses,
            top_categories=[
                CategoryTotal(
                    category_id=category_id,
                    name=names.get(category_id, category_id),
                    amount=amount,
                )
                for category_id, amount in top
            ],
            monthly_income=state.monthly_income,
            monthly_expenses=state.monthly_expenses,
            transactions_analyzed=len(transactions),
        )

    async def spending_analytics(self, days: int = 30) -> SpendingAnalytics:
        """
        Daily, weekly and per-category expense totals over the last `days`.

        Weeks are ISO weeks, keyed "YYYY-Www".
        """
        cutoff = self._clock().date() - timedelta(days=days)
        window = [
            t for t in await self._repository.get_transactions()
            if t.date >= cutoff
        ]
        names = await self._category_names()

        daily: dict[date, Decimal] = defaultdict(lambda: Decimal("0.00"))
        weekly: dict[str, Decimal] = defaultdict(lambda: Decimal("0.00"))
        by_category: dict[str, Decimal] = defaultdict(lambda: Decimal("0.00"))

        for t in window:
            if not t.is_expense:
                continue
            year, week, _ = t.date.isocalendar()
            daily[t.date] += t.amount
            weekly[f"{year}-W{week:02d}"] += t.amount
            by_category[t.category_id] += t.amount

        total = sum(by_category.values(), Decimal("0.00"))
        daily_average = (total / len(daily)).quantize(CENT, ROUND_HALF_UP) if daily else Decimal("0.00")
        weekly_average = (total / len(weekly)).quantize(CENT, ROUND_HALF_UP) if weekly else Decimal("0.00")

        categories = [
            CategoryTotal(
                category_id=category_id,
                name=names.get(category_id, category_id),
                amount=amount,
                percentage=float(amount / total * 100) if total > 0 else 0.0,
            )
            for category_id, amount in sorted(
                by_category.items(), key=lambda item: item[1], reverse=True
            )
        ]

        return SpendingAnalytics(
            days=days,
            daily_spending=dict(sorted(daily.items())),
            weekly_spending=dict(sorted(weekly.items())),
            category_spending=categories,
            daily_average=daily_average,
            weekly_average=weekly_average,
            total_spent=total,
            transaction_count=len(window),
        )

    async def expense_summary(self) -> list[ExpenseChartRow]:
        """Per-category spend rows for the expense chart."""
        summary = await self._repository.get_budget_summary()
        if summary is None:
            return []
        return [
            ExpenseChartRow(name=row.name, amount=row.spent, color=row.color)
            for row in summary.categories
        ]
