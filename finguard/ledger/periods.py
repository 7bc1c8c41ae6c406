"""
Budget Period Engine

Rolls budgets over when their window ends.

For each active budget whose expiry has passed:
- auto_reset:     the next window starts at the old expiry, spend is
                  cleared and reset_count goes up by one per window
- not auto_reset: the budget is deactivated and stamped expired_at

DESIGN DECISION: How far a stale budget rolls in one pass is a setting.
By default a budget advances exactly one window per pass and may still
be behind afterwards. With catch-up it rolls until its window contains
`now`, so the pass is idempotent however long the app was closed. The loop is bounded by max_catch_up_steps either way.
"""

from datetime import datetime, timedelta
from decimal import Decimal
from typing import Optional
from uuid import UUID

import structlog

from finguard.audit import AuditLogger
from finguard.config import LedgerSettings
from finguard.ledger.alerts import usage_percentage
from finguard.ledger.budgets import BudgetAggregator
from finguard.ledger.errors import NotFoundError
from finguard.ledger.events import EventBus, LedgerEvent
from finguard.ledger.notifications import NotificationCenter
from finguard.ledger.schedule import add_period
from finguard.models import (
    Budget,
    BudgetPassResult,
    BudgetStatus,
    BudgetView,
    Clock,
    NotificationKind,
    NotificationSeverity,
    utc_now,
)
from finguard.models.audit import AuditEventType
from finguard.services.storage import LedgerRepository


logger = structlog.get_logger("finguard.ledger.periods")


def budget_status(
    budget: Budget,
    now: datetime,
    expiring_soon_days: int = 3,
) -> BudgetStatus:
    """Derive the status shown next to a budget."""
    if budget.expiry_date is None:
        return BudgetStatus.LEGACY
    if not budget.is_active or budget.expiry_date <= now:
        return BudgetStatus.EXPIRED
    if budget.expiry_date - now <= timedelta(days=expiring_soon_days):
        return BudgetStatus.EXPIRING_SOON
    return BudgetStatus.ACTIVE


class BudgetPeriodEngine:
    """Expiry, rollover and manual restart of budget periods."""

    def __init__(
        self,
        repository: LedgerRepository,
        aggregator: BudgetAggregator,
        notifications: NotificationCenter,
        events: EventBus,
        settings: LedgerSettings,
        audit_logger: Optional[AuditLogger] = None,
        clock: Clock = utc_now,
    ):
        self._repository = repository
        self._aggregator = aggregator
        self._notifications = notifications
        self._events = events
        self._settings = settings
        self._audit_logger = audit_logger or AuditLogger()
        self._clock = clock

    def _roll(self, budget: Budget, now: datetime, catch_up: bool) -> int:
        """Advance an auto-reset budget's window. Returns windows advanced."""
        steps = 0
        while budget.expiry_date <= now and steps < self._settings.max_catch_up_steps:
            budget.start_date = budget.expiry_date
            budget.expiry_date = add_period(budget.start_date, budget.period)
            budget.reset_count += 1
            steps += 1
            if not catch_up:
                break
        budget.spent = Decimal("0.00")
        budget.last_reset_at = now
        budget.updated_at = now
        return steps

    async def process_expired_budgets(
        self,
        correlation_id: UUID,
        now: Optional[datetime] = None,
        catch_up: Optional[bool] = None,
    ) -> BudgetPassResult:
        """
        Run one rollover pass over every budget.

        Args:
            correlation_id: Ties this pass's audit events together
            now: Evaluation instant (default: the clock)
            catch_up: Override the configured catch-up mode

        Returns:
            Counts of reset and expired budgets, and which ones changed
        """
        now = now or self._clock()
        if catch_up is None:
            catch_up = self._settings.budget_catch_up

        result = BudgetPassResult()
        budgets = await self._repository.get_budgets()

        for budget in budgets:
            if not budget.is_active or budget.expiry_date is None:
                continue
            if budget.expiry_date > now:
                continue

            if budget.auto_reset:
                steps = self._roll(budget, now, catch_up)
                result.reset += 1
                logger.info(
                    "budget_rolled_over",
                    budget_id=str(budget.id),
                    periods=steps,
                    reset_count=budget.reset_count,
                )
            else:
                budget.is_active = False
                budget.expired_at = now
                budget.updated_at = now
                result.expired += 1
            result.budget_ids.append(budget.id)

        if not result.changed:
            return result

        await self._aggregator.recompute_summary(budgets)

        await self._audit_logger.log_budgets_rolled_over(
            reset=result.reset,
            expired=result.expired,
            correlation_id=correlation_id,
        )

        parts = []
        if result.reset:
            parts.append(f"{result.reset} budget(s) renewed for a new period")
        if result.expired:
            parts.append(f"{result.expired} budget(s) expired")
        await self._notifications.add(
            title="Budgets Renewed" if result.reset else "Budgets Expired",
            message=" and ".join(parts),
            kind=NotificationKind.BUDGETS_RENEWED,
            severity=NotificationSeverity.INFO,
            data={"reset": result.reset, "expired": result.expired},
        )
        await self._events.publish(
            LedgerEvent.BUDGETS_RESET,
            {"reset": result.reset, "expired": result.expired},
        )
        return result

    async def reset_budget(self, budget_id: UUID, correlation_id: UUID) -> Budget:
        """
        Manually restart a budget's period from now.

        Reactivates an expired budget. A legacy budget gains a window.
        """
        budgets = await self._repository.get_budgets()
        budget = next((b for b in budgets if b.id == budget_id), None)
        if budget is None:
            raise NotFoundError("budget", budget_id)

        now = self._clock()
        budget.spent = Decimal("0.00")
        budget.start_date = now
        budget.expiry_date = add_period(now, budget.period)
        budget.reset_count += 1
        budget.is_active = True
        budget.expired_at = None
        budget.last_reset_at = now
        budget.updated_at = now

        await self._aggregator.recompute_summary(budgets)

        await self._audit_logger.log_budget_changed(
            event_type=AuditEventType.BUDGET_RESET,
            budget_id=budget.id,
            category_id=budget.category_id,
            correlation_id=correlation_id,
            details={"reset_count": budget.reset_count},
        )
        return budget

    async def fetch_budgets(self, now: Optional[datetime] = None) -> list[BudgetView]:
        """Every budget annotated with status, remaining and percentage."""
        now = now or self._clock()
        return [
            BudgetView(
                budget=budget,
                status=budget_status(budget, now, self._settings.expiring_soon_days),
                remaining=budget.amount - budget.spent,
                percentage=usage_percentage(budget.spent, budget.amount),
            )
            for budget in await self._repository.get_budgets()
        ]
