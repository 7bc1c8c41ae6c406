"""Tests for budget expiry, rollover and manual reset."""

import pytest
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from uuid import uuid4

from conftest import FOOD, expense, income
from finguard.config import LedgerSettings
from finguard.ledger import LedgerEvent, NotFoundError, budget_status
from finguard.models import (
    Budget,
    BudgetDraft,
    BudgetPeriod,
    BudgetStatus,
    NotificationKind,
)


def _utc(*args) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)


def _daily_food(**kwargs) -> BudgetDraft:
    return BudgetDraft(
        category_id=FOOD,
        amount=Decimal("1000"),
        period=BudgetPeriod.DAILY,
        **kwargs,
    )


class TestBudgetStatus:
    """Tests for the derived status."""

    def _budget(self, expiry, **kwargs) -> Budget:
        return Budget(
            category_id=FOOD,
            amount=Decimal("100"),
            start_date=_utc(2025, 3, 1),
            expiry_date=expiry,
            **kwargs,
        )

    def test_legacy(self):
        """Test that a budget without expiry is legacy."""
        assert budget_status(self._budget(None), _utc(2030, 1, 1)) == BudgetStatus.LEGACY

    def test_active(self):
        """Test a window with plenty of time left."""
        assert budget_status(self._budget(_utc(2025, 4, 1)), _utc(2025, 3, 15)) == BudgetStatus.ACTIVE

    def test_expiring_soon(self):
        """Test the expiring-soon threshold."""
        budget = self._budget(_utc(2025, 4, 1))
        assert budget_status(budget, _utc(2025, 3, 29)) == BudgetStatus.EXPIRING_SOON
        assert budget_status(budget, _utc(2025, 3, 28, 23)) == BudgetStatus.ACTIVE
        assert budget_status(budget, _utc(2025, 3, 28, 23), expiring_soon_days=7) == BudgetStatus.EXPIRING_SOON

    def test_expired(self):
        """Test a passed expiry and a deactivated budget."""
        assert budget_status(self._budget(_utc(2025, 4, 1)), _utc(2025, 4, 1)) == BudgetStatus.EXPIRED
        inactive = self._budget(_utc(2025, 4, 1), is_active=False)
        assert budget_status(inactive, _utc(2025, 3, 2)) == BudgetStatus.EXPIRED


class TestRollover:
    """Tests for the scheduled budget period pass."""

    async def test_catch_up_rolls_into_current_window(self, service, clock):
        """Test that a stale budget rolls until its window contains now."""
        await service.save_budget(_daily_food())
        clock.advance(days=3)

        report = await service.process_scheduled_tasks(catch_up=True)

        assert report.budgets.reset == 1
        assert report.budgets.expired == 0
        budget = (await service.fetch_budgets())[0].budget
        assert budget.start_date == _utc(2025, 3, 18)
        assert budget.expiry_date == _utc(2025, 3, 19)
        assert budget.reset_count == 3
        assert budget.last_reset_at == clock.now
        assert budget.is_active is True

    async def test_pass_is_idempotent(self, service, clock):
        """Test that running the pass twice changes nothing the second time."""
        await service.save_budget(_daily_food())
        clock.advance(days=3)

        await service.process_scheduled_tasks(catch_up=True)
        before = await service.fetch_budgets()
        report = await service.process_scheduled_tasks(catch_up=True)
        after = await service.fetch_budgets()

        assert report.budgets.reset == 0
        assert [v.budget for v in after] == [v.budget for v in before]
        renewals = [
            n for n in await service.get_notifications()
            if n.kind == NotificationKind.BUDGETS_RENEWED
        ]
        assert len(renewals) == 1
        assert renewals[0].title == "Budgets Renewed"

    async def test_single_step_without_catch_up(self, service, clock):
        """Test that by default a budget advances one window per pass."""
        await service.save_budget(_daily_food())
        clock.advance(days=3)

        expiries = []
        for _ in range(4):
            report = await service.process_scheduled_tasks()
            budget = (await service.fetch_budgets())[0].budget
            expiries.append((report.budgets.reset, budget.expiry_date, budget.reset_count))

        assert expiries == [
            (1, _utc(2025, 3, 17), 1),
            (1, _utc(2025, 3, 18), 2),
            (1, _utc(2025, 3, 19), 3),
            (0, _utc(2025, 3, 19), 3),
        ]

    def test_single_step_is_the_configured_default(self):
        """Test that catch-up stays opt-in for both scheduled passes."""
        settings = LedgerSettings()
        assert settings.budget_catch_up is False
        assert settings.autopay_catch_up is False

    async def test_month_end_rollover(self, service):
        """Test a monthly budget anchored on Jan 31."""
        await service.save_budget(BudgetDraft(
            category_id=FOOD,
            amount=Decimal("1000"),
            start_date=_utc(2025, 1, 31),
        ))

        await service.process_scheduled_tasks()

        budget = (await service.fetch_budgets())[0].budget
        assert budget.start_date == _utc(2025, 2, 28)
        assert budget.expiry_date == _utc(2025, 3, 28)
        assert budget.reset_count == 1

    async def test_rollover_clears_spend(self, service, clock):
        """Test that last period's expenses stop counting after rollover."""
        await service.save_budget(_daily_food())
        await service.save_transaction(income("1000"))
        await service.save_transaction(expense("300"))
        clock.advance(days=3)

        await service.process_scheduled_tasks(catch_up=True)

        assert (await service.fetch_budgets())[0].budget.spent == Decimal("0")
        assert (await service.fetch_budget_summary()).spent == Decimal("0")

        await service.save_transaction(expense("50"))
        assert (await service.fetch_budgets())[0].budget.spent == Decimal("50")

    async def test_non_auto_reset_budget_expires(self, service, clock):
        """Test that a budget without auto reset is deactivated."""
        await service.save_budget(_daily_food(auto_reset=False))
        clock.advance(days=1)

        report = await service.process_scheduled_tasks()

        assert report.budgets.expired == 1
        view = (await service.fetch_budgets())[0]
        assert view.budget.is_active is False
        assert view.budget.expired_at == clock.now
        assert view.status == BudgetStatus.EXPIRED
        assert (await service.fetch_budget_summary()).total == Decimal("0")
        titles = [n.title for n in await service.get_notifications()]
        assert titles == ["Budgets Expired"]

    async def test_legacy_budget_untouched(self, service, repository, clock):
        """Test that budgets without a window never roll over."""
        await repository.save_budgets([Budget(category_id=FOOD, amount=Decimal("1000"))])
        clock.advance(days=400)

        report = await service.process_scheduled_tasks()

        assert report.budgets.reset == 0
        view = (await service.fetch_budgets())[0]
        assert view.status == BudgetStatus.LEGACY

    async def test_rollover_publishes_event(self, service, clock):
        """Test that BUDGETS_RESET is published once per changing pass."""
        received = []
        service.events.subscribe(LedgerEvent.BUDGETS_RESET, lambda e, p: received.append(p))
        await service.save_budget(_daily_food())

        await service.process_scheduled_tasks()
        clock.advance(days=1)
        await service.process_scheduled_tasks()

        assert received == [{"reset": 1, "expired": 0}]


class TestStatusViews:
    """Tests for fetch_budgets status annotations."""

    async def test_statuses(self, service):
        """Test monthly and daily budgets created now."""
        await service.save_budget(BudgetDraft(category_id=FOOD, amount=Decimal("1000")))
        await service.save_budget(BudgetDraft(
            category_id="2", amount=Decimal("200"), period=BudgetPeriod.DAILY
        ))

        statuses = {v.budget.category_id: v.status for v in await service.fetch_budgets()}
        assert statuses == {FOOD: BudgetStatus.ACTIVE, "2": BudgetStatus.EXPIRING_SOON}


class TestManualReset:
    """Tests for reset_budget."""

    async def test_reset_starts_from_now(self, service, clock):
        """Test that a manual reset drops spend recorded before it."""
        budget = await service.save_budget(BudgetDraft(category_id=FOOD, amount=Decimal("1000")))
        await service.save_transaction(income("1000"))
        await service.save_transaction(expense("300"))
        clock.advance(hours=1)

        reset = await service.reset_budget(budget.id)

        assert reset.start_date == clock.now
        assert reset.expiry_date == clock.now + timedelta(days=31)
        assert reset.spent == Decimal("0")
        assert reset.reset_count == 1

    async def test_reset_reactivates_expired_budget(self, service, clock):
        """Test that a manual reset brings an expired budget back."""
        budget = await service.save_budget(_daily_food(auto_reset=False))
        clock.advance(days=2)
        await service.process_scheduled_tasks()

        reset = await service.reset_budget(budget.id)

        assert reset.is_active is True
        assert reset.expired_at is None
        view = (await service.fetch_budgets())[0]
        assert view.status == BudgetStatus.EXPIRING_SOON

    async def test_reset_unknown_budget(self, service):
        """Test that resetting a missing budget raises NotFoundError."""
        with pytest.raises(NotFoundError):
            await service.reset_budget(uuid4())
