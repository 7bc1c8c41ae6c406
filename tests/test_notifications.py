"""Tests for the notification center."""

import pytest
from uuid import uuid4

from finguard.config import LedgerSettings
from finguard.ledger import LedgerEvent, NotFoundError, NotificationCenter
from finguard.models import (
    NotificationKind,
    NotificationSettings,
    NotificationSeverity,
)


class TestNotificationHistory:
    """Tests for the capped history."""

    async def test_add_prepends(self, notifications):
        """Test that the newest notification comes first."""
        await notifications.add("First", "one", NotificationKind.BUDGET_ALERT)
        await notifications.add("Second", "two", NotificationKind.GOAL_MILESTONE)

        history = await notifications.history()
        assert [n.title for n in history] == ["Second", "First"]

    async def test_add_stamps_clock_time(self, notifications, clock):
        """Test that entries are stamped with the injected clock."""
        notification = await notifications.add(
            "Budget Alert", "msg", NotificationKind.BUDGET_ALERT, NotificationSeverity.ALERT
        )
        assert notification.time == clock.now
        assert notification.severity == NotificationSeverity.ALERT

    async def test_history_is_capped(self, repository, events, audit_logger, clock):
        """Test that entries beyond the limit are evicted oldest first."""
        center = NotificationCenter(
            repository,
            events,
            LedgerSettings(notification_history_limit=3),
            audit_logger,
            clock,
        )
        for i in range(1, 6):
            await center.add(f"n{i}", "msg", NotificationKind.BUDGET_ALERT)

        history = await center.history()
        assert [n.title for n in history] == ["n5", "n4", "n3"]

    async def test_add_publishes_event(self, notifications, events):
        """Test that NOTIFICATION_ADDED is published."""
        received = []
        events.subscribe(LedgerEvent.NOTIFICATION_ADDED, lambda e, p: received.append(p))

        notification = await notifications.add("t", "m", NotificationKind.AUTOPAY_FAILED)

        assert received == [{
            "notification_id": str(notification.id),
            "kind": "autopay_failed",
        }]


class TestReadState:
    """Tests for read / unread bookkeeping."""

    async def test_mark_read(self, notifications):
        """Test that mark_read flips one entry."""
        first = await notifications.add("a", "m", NotificationKind.BUDGET_ALERT)
        await notifications.add("b", "m", NotificationKind.BUDGET_ALERT)
        assert await notifications.unread_count() == 2

        marked = await notifications.mark_read(first.id)

        assert marked.read is True
        assert await notifications.unread_count() == 1

    async def test_mark_read_unknown(self, notifications):
        """Test that an unknown id raises NotFoundError."""
        with pytest.raises(NotFoundError):
            await notifications.mark_read(uuid4())

    async def test_mark_all_read(self, notifications):
        """Test that mark_all_read reports how many changed."""
        for title in ("a", "b", "c"):
            await notifications.add(title, "m", NotificationKind.BUDGET_ALERT)

        assert await notifications.mark_all_read() == 3
        assert await notifications.mark_all_read() == 0
        assert await notifications.unread_count() == 0

    async def test_clear(self, notifications):
        """Test that clear empties the history."""
        await notifications.add("a", "m", NotificationKind.BUDGET_ALERT)
        await notifications.clear()
        assert await notifications.history() == []


class TestNotificationSettings:
    """Tests for notification toggles."""

    async def test_defaults(self, notifications):
        """Test that both families are on by default."""
        settings = await notifications.get_settings()
        assert settings.budget_alerts is True
        assert settings.goal_reminders is True

    async def test_save_settings(self, notifications):
        """Test that saved toggles are read back."""
        await notifications.save_settings(NotificationSettings(budget_alerts=False))
        settings = await notifications.get_settings()
        assert settings.budget_alerts is False
        assert settings.goal_reminders is True
