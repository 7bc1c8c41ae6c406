"""
Budget Aggregator

Owns the budget list and the derived Budget Summary.

DESIGN DECISION: `Budget.spent` is a cache. The incremental update in
on_transaction_applied() keeps it roughly current between passes, but
recompute_summary() is the only trusted producer: it rescans every
expense transaction, overwrites each budget's `spent`, rebuilds the
summary from scratch, and persists budgets and summary together.

After every recompute, each active budget with a positive allocation is
run through the notification trigger. There is no de-duplication: a
budget sitting at 80% re-notifies on every pass.
"""

from datetime import datetime, time, timezone
from decimal import Decimal
from typing import Optional
from uuid import UUID

import structlog

from finguard.audit import AuditLogger
from finguard.config import LedgerSettings
from finguard.ledger.alerts import build_budget_alert, usage_percentage
from finguard.ledger.errors import NotFoundError
from finguard.ledger.notifications import NotificationCenter
from finguard.ledger.schedule import add_period, in_period_window
from finguard.models import (
    Budget,
    BudgetDraft,
    BudgetPatch,
    BudgetSummary,
    Category,
    CategorySpend,
    Clock,
    NotificationKind,
    Transaction,
    utc_now,
)
from finguard.models.audit import AuditEventType
from finguard.services.storage import LedgerRepository


logger = structlog.get_logger("finguard.ledger.budgets")

ZERO = Decimal("0.00")


def start_of_day(moment: datetime) -> datetime:
    return datetime.combine(moment.date(), time.min, tzinfo=timezone.utc)


class BudgetAggregator:
    """Maintains per-budget spend and the rolled-up summary."""

    def __init__(
        self,
        repository: LedgerRepository,
        notifications: NotificationCenter,
        settings: LedgerSettings,
        audit_logger: Optional[AuditLogger] = None,
        clock: Clock = utc_now,
    ):
        self._repository = repository
        self._notifications = notifications
        self._settings = settings
        self._audit_logger = audit_logger or AuditLogger()
        self._clock = clock

    # =========================================================================
    # Budget list
    # =========================================================================

    async def add_budget(self, draft: BudgetDraft, correlation_id: UUID) -> Budget:
        """
        Create a budget whose first window starts at `draft.start_date`
        (default: the start of today) and spans one period.
        """
        now = self._clock()
        start = draft.start_date or start_of_day(now)
        if start.tzinfo is None:
            start = start.replace(tzinfo=timezone.utc)

        budget = Budget(
            category_id=draft.category_id,
            amount=draft.amount,
            period=draft.period,
            start_date=start,
            expiry_date=add_period(start, draft.period),
            auto_reset=draft.auto_reset,
            created_at=now,
            updated_at=now,
        )

        budgets = await self._repository.get_budgets()
        budgets.append(budget)
        await self.recompute_summary(budgets)

        await self._audit_logger.log_budget_changed(
            event_type=AuditEventType.BUDGET_SAVED,
            budget_id=budget.id,
            category_id=budget.category_id,
            correlation_id=correlation_id,
            details={"amount": str(budget.amount), "period": budget.period.value},
        )
        return budget

    async def update_budget(
        self,
        budget_id: UUID,
        patch: BudgetPatch,
        correlation_id: UUID,
    ) -> Budget:
        budgets = await self._repository.get_budgets()
        budget = next((b for b in budgets if b.id == budget_id), None)
        if budget is None:
            raise NotFoundError("budget", budget_id)

        if patch.amount is not None:
            budget.amount = patch.amount
        if patch.period is not None and patch.period != budget.period:
            budget.period = patch.period
            if not budget.is_legacy:
                budget.expiry_date = add_period(budget.start_date, patch.period)
        if patch.auto_reset is not None:
            budget.auto_reset = patch.auto_reset
        if patch.is_active is not None:
            budget.is_active = patch.is_active
            if patch.is_active:
                budget.expired_at = None
        budget.updated_at = self._clock()

        await self.recompute_summary(budgets)

        await self._audit_logger.log_budget_changed(
            event_type=AuditEventType.BUDGET_UPDATED,
            budget_id=budget.id,
            category_id=budget.category_id,
            correlation_id=correlation_id,
            details=patch.model_dump(mode="json", exclude_none=True),
        )
        return budget

    async def delete_budget(self, budget_id: UUID, correlation_id: UUID) -> None:
        """Remove a budget. Historical transactions are untouched."""
        budgets = await self._repository.get_budgets()
        remaining = [b for b in budgets if b.id != budget_id]
        if len(remaining) == len(budgets):
            raise NotFoundError("budget", budget_id)

        deleted = next(b for b in budgets if b.id == budget_id)
        await self.recompute_summary(remaining)

        await self._audit_logger.log_budget_changed(
            event_type=AuditEventType.BUDGET_DELETED,
            budget_id=budget_id,
            category_id=deleted.category_id,
            correlation_id=correlation_id,
        )

    # =========================================================================
    # Aggregation
    # =========================================================================

    async def on_transaction_applied(
        self,
        transaction: Transaction,
        reverse: bool = False,
    ) -> Optional[BudgetSummary]:
        """
        Fold one transaction into the cached spend, then recompute.

        Args:
            transaction: The transaction just applied (or reversed)
            reverse: True when the transaction's effect is being undone

        Returns:
            The rebuilt summary, or None if there are no budgets
        """
        budgets = await self._repository.get_budgets()
        if self._fold(budgets, transaction, reverse):
            await self._repository.save_budgets(budgets)
        return await self.recompute_summary(budgets)

    async def on_transaction_replaced(
        self,
        old: Transaction,
        new: Transaction,
    ) -> Optional[BudgetSummary]:
        """An edit: fold out `old`, fold in `new`, then recompute once."""
        budgets = await self._repository.get_budgets()
        touched = self._fold(budgets, old, reverse=True)
        touched = self._fold(budgets, new) or touched
        if touched:
            await self._repository.save_budgets(budgets)
        return await self.recompute_summary(budgets)

    def _fold(
        self,
        budgets: list[Budget],
        transaction: Transaction,
        reverse: bool = False,
    ) -> bool:
        """Adjust cached spend of matching budgets. Returns True if any changed."""
        if not transaction.is_expense:
            return False

        delta = -transaction.amount if reverse else transaction.amount
        touched = False
        for budget in budgets:
            if (
                budget.is_active
                and budget.category_id == transaction.category_id
                and in_period_window(budget, transaction)
            ):
                budget.spent = max(budget.spent + delta, ZERO)
                touched = True
        return touched

    async def recompute_summary(
        self,
        budgets: Optional[list[Budget]] = None,
    ) -> Optional[BudgetSummary]:
        """
        Rebuild every budget's spend and the summary from the transaction
        history, persist both, then evaluate threshold alerts.

        Args:
            budgets: The budget list to rebuild and store. Loaded from the
                    repository when omitted.

        Returns:
            The new summary, or None if no budgets exist
        """
        if budgets is None:
            budgets = await self._repository.get_budgets()

        if not budgets:
            await self._repository.save_budgets([])
            await self._repository.save_budget_summary(None)
            return None

        transactions = await self._repository.get_transactions()
        expenses = [t for t in transactions if t.is_expense]
        categories = {c.id: c for c in await self._repository.get_categories()}

        for budget in budgets:
            budget.spent = sum(
                (
                    t.amount for t in expenses
                    if t.category_id == budget.category_id
                    and in_period_window(budget, t)
                ),
                ZERO,
            )

        summary = self._build_summary(budgets, categories)

        await self._repository.save_budgets(budgets)
        await self._repository.save_budget_summary(summary)

        logger.debug(
            "budget_summary_recomputed",
            budgets=len(budgets),
            total=str(summary.total),
            spent=str(summary.spent),
        )

        await self._raise_alerts(budgets, categories)
        return summary

    def _build_summary(
        self,
        budgets: list[Budget],
        categories: dict[str, Category],
    ) -> BudgetSummary:
        rows = []
        for budget in budgets:
            if not budget.is_active:
                continue
            category = categories.get(budget.category_id)
            rows.append(CategorySpend(
                budget_id=budget.id,
                category_id=budget.category_id,
                name=category.name if category else budget.category_id,
                color=category.color if category else None,
                allocated=budget.amount,
                spent=budget.spent,
                remaining=budget.amount - budget.spent,
                percentage=usage_percentage(budget.spent, budget.amount),
            ))

        total = sum((row.allocated for row in rows), ZERO)
        spent = sum((row.spent for row in rows), ZERO)
        return BudgetSummary(
            total=total,
            spent=spent,
            remaining=total - spent,
            categories=rows,
            computed_at=self._clock(),
        )

    async def _raise_alerts(
        self,
        budgets: list[Budget],
        categories: dict[str, Category],
    ) -> None:
        notification_settings = await self._notifications.get_settings()
        if not notification_settings.budget_alerts:
            return

        for budget in budgets:
            if not budget.is_active or budget.amount <= 0:
                continue
            category = categories.get(budget.category_id)
            alert = build_budget_alert(
                category_name=category.name if category else budget.category_id,
                percentage=usage_percentage(budget.spent, budget.amount),
                remaining=budget.amount - budget.spent,
                spent=budget.spent,
                currency_symbol=self._settings.currency_symbol,
            )
            if alert is None:
                continue
            await self._notifications.add(
                title=alert.title,
                message=alert.message,
                kind=NotificationKind.BUDGET_ALERT,
                severity=alert.severity,
                data={"budget_id": str(budget.id), **alert.data},
            )
