"""Tests for autopay definitions and the scheduled autopay pass."""

import pytest
from datetime import date, timedelta
from decimal import Decimal
from uuid import uuid4

from conftest import FOOD, RENT, SALARY, income
from finguard.ledger import LedgerEvent, NotFoundError, ValidationError
from finguard.models import (
    AutopayDraft,
    AutopayFrequency,
    BudgetDraft,
    NotificationKind,
    NotificationSeverity,
    TransactionType,
)


TODAY = date(2025, 3, 15)


def _rent(**kwargs) -> AutopayDraft:
    fields = dict(
        description="Rent",
        amount=Decimal("100"),
        category_id=RENT,
        frequency=AutopayFrequency.MONTHLY,
    )
    fields.update(kwargs)
    return AutopayDraft(**fields)


def _salary(**kwargs) -> AutopayDraft:
    fields = dict(
        description="Salary",
        amount=Decimal("50"),
        type=TransactionType.INCOME,
        category_id=SALARY,
        frequency=AutopayFrequency.DAILY,
    )
    fields.update(kwargs)
    return AutopayDraft(**fields)


async def _generated(service) -> list:
    return [t for t in await service.list_transactions() if t.is_autopay_generated]


class TestAutopayDefinitions:
    """Tests for creating and disabling definitions."""

    async def test_first_run_due_on_start_date(self, service):
        """Test that a new definition is due on its start date."""
        definition = await service.save_autopay_transaction(_rent())

        assert definition.start_date == TODAY
        assert definition.next_execution_date == TODAY
        assert definition.execution_count == 0
        assert definition.is_active is True
        assert await service.get_autopay_transactions() == [definition]

    async def test_invalid_definition_rejected(self, service):
        """Test that an inverted schedule is refused."""
        with pytest.raises(ValidationError):
            await service.save_autopay_transaction(
                _rent(start_date=date(2025, 3, 20), end_date=date(2025, 3, 1))
            )
        assert await service.get_autopay_transactions() == []

    async def test_disable(self, service):
        """Test that a disabled definition never runs."""
        received = []
        service.events.subscribe(LedgerEvent.AUTOPAY_DISABLED, lambda e, p: received.append(p))
        definition = await service.save_autopay_transaction(_salary())

        disabled = await service.disable_autopay(definition.id)
        report = await service.process_scheduled_tasks()

        assert disabled.is_active is False
        assert disabled.deactivated_at is not None
        assert report.autopays.executed == 0
        assert received == [{"autopay_id": str(definition.id)}]

    async def test_disable_unknown(self, service):
        """Test that disabling a missing definition raises NotFoundError."""
        with pytest.raises(NotFoundError):
            await service.disable_autopay(uuid4())


class TestScheduledExecution:
    """Tests for process_scheduled_tasks on autopays."""

    async def test_single_run_definition(self, service):
        """Test a monthly definition capped at one run."""
        await service.save_transaction(income("1000"))
        definition = await service.save_autopay_transaction(_rent(max_count=1))

        report = await service.process_scheduled_tasks()

        assert report.autopays.executed == 1
        assert report.autopays.deactivated == 1
        generated = await _generated(service)
        assert len(generated) == 1
        assert generated[0].autopay_id == definition.id
        assert generated[0].date == TODAY
        assert generated[0].description == "Rent"
        assert await service.get_current_balance() == Decimal("900")

        stored = (await service.get_autopay_transactions())[0]
        assert stored.is_active is False
        assert stored.execution_count == 1
        assert stored.next_execution_date == date(2025, 4, 15)

        report = await service.process_scheduled_tasks()
        assert report.autopays.executed == 0
        assert len(await _generated(service)) == 1

    async def test_not_due_yet(self, service, clock):
        """Test that a future start waits until its day."""
        await service.save_autopay_transaction(_salary(start_date=date(2025, 3, 20)))

        assert (await service.process_scheduled_tasks()).autopays.executed == 0
        clock.advance(days=5)
        assert (await service.process_scheduled_tasks()).autopays.executed == 1

    async def test_one_run_per_pass_by_default(self, service):
        """Test that an overdue definition advances one run per pass."""
        await service.save_autopay_transaction(_salary(start_date=date(2025, 3, 12)))

        executed = [
            (await service.process_scheduled_tasks()).autopays.executed
            for _ in range(5)
        ]

        assert executed == [1, 1, 1, 1, 0]
        dates = sorted(t.date for t in await _generated(service))
        assert dates == [date(2025, 3, d) for d in (12, 13, 14, 15)]
        stored = (await service.get_autopay_transactions())[0]
        assert stored.next_execution_date == date(2025, 3, 16)

    async def test_catch_up_stops_at_max_count(self, service):
        """Test that catch-up runs every elapsed period up to the cap."""
        await service.save_autopay_transaction(
            _salary(start_date=date(2025, 3, 10), max_count=3)
        )

        report = await service.process_scheduled_tasks(catch_up=True)

        assert report.autopays.executed == 3
        assert report.autopays.deactivated == 1
        dates = sorted(t.date for t in await _generated(service))
        assert dates == [date(2025, 3, 10), date(2025, 3, 11), date(2025, 3, 12)]
        assert await service.get_current_balance() == Decimal("150")

    async def test_catch_up_stops_at_end_date(self, service):
        """Test that the run after the end date never happens."""
        await service.save_autopay_transaction(
            _salary(start_date=date(2025, 3, 14), end_date=TODAY)
        )

        report = await service.process_scheduled_tasks(catch_up=True)

        assert report.autopays.executed == 2
        assert report.autopays.deactivated == 1
        stored = (await service.get_autopay_transactions())[0]
        assert stored.is_active is False
        assert stored.next_execution_date == date(2025, 3, 16)

    async def test_never_exceeds_max_count(self, service, clock):
        """Test that daily passes over many days stop at the cap."""
        await service.save_autopay_transaction(_salary(max_count=2))

        for _ in range(6):
            await service.process_scheduled_tasks()
            clock.advance(days=1)

        assert len(await _generated(service)) == 2
        stored = (await service.get_autopay_transactions())[0]
        assert stored.execution_count == 2
        assert stored.is_active is False

    async def test_insufficient_balance_retries_next_pass(self, service):
        """Test that a rejected run is not advanced and is retried."""
        await service.save_autopay_transaction(_rent())

        report = await service.process_scheduled_tasks()

        assert report.autopays.failed == 1
        assert report.autopays.executed == 0
        stored = (await service.get_autopay_transactions())[0]
        assert stored.next_execution_date == TODAY
        assert stored.execution_count == 0
        assert stored.is_active is True
        assert await service.get_current_balance() == Decimal("0.00")

        history = await service.get_notifications()
        assert history[0].kind == NotificationKind.AUTOPAY_FAILED
        assert history[0].severity == NotificationSeverity.WARNING

        await service.save_transaction(income("500"))
        report = await service.process_scheduled_tasks()

        assert report.autopays.executed == 1
        assert await service.get_current_balance() == Decimal("400")

    async def test_failing_run_abandoned_after_end_date(self, service, clock):
        """Test that an unpayable run stops retrying once the end date passes."""
        await service.save_autopay_transaction(_rent(end_date=date(2025, 3, 16)))

        failed = []
        for _ in range(4):
            failed.append((await service.process_scheduled_tasks()).autopays.failed)
            clock.advance(days=1)

        assert failed == [1, 1, 0, 0]
        stored = (await service.get_autopay_transactions())[0]
        assert stored.is_active is False
        assert stored.execution_count == 0
        warnings = [
            n for n in await service.get_notifications()
            if n.kind == NotificationKind.AUTOPAY_FAILED
        ]
        assert len(warnings) == 2

    async def test_generated_expense_counts_toward_budget(self, service):
        """Test that autopay runs go through budget aggregation."""
        await service.save_budget(BudgetDraft(category_id=FOOD, amount=Decimal("100")))
        await service.save_transaction(income("1000"))
        await service.save_autopay_transaction(
            _rent(category_id=FOOD, amount=Decimal("80"), description="Meal plan")
        )

        await service.process_scheduled_tasks()

        assert (await service.fetch_budgets())[0].budget.spent == Decimal("80")
        alerts = [
            n for n in await service.get_notifications()
            if n.kind == NotificationKind.BUDGET_ALERT
        ]
        assert alerts[0].title == "Budget Update"

    async def test_old_start_date_skips_date_window(self, service, clock):
        """Test that overdue runs are not rejected by the backdating limit."""
        start = TODAY - timedelta(days=800)
        await service.save_autopay_transaction(_salary(start_date=start))

        report = await service.process_scheduled_tasks()

        assert report.autopays.executed == 1
        assert (await _generated(service))[0].date == start
