"""
Notification Center

Owns the capped notification history and the notification settings.
New entries go to the front; anything beyond the configured limit is
evicted from the back.
"""

from typing import Any, Optional
from uuid import UUID

from finguard.audit import AuditLogger
from finguard.config import LedgerSettings
from finguard.ledger.errors import NotFoundError
from finguard.ledger.events import EventBus, LedgerEvent
from finguard.models import (
    Clock,
    Notification,
    NotificationKind,
    NotificationSettings,
    NotificationSeverity,
    utc_now,
)
from finguard.services.storage import LedgerRepository


class NotificationCenter:
    """Append-only, capped notification history with per-entry read state."""

    def __init__(
        self,
        repository: LedgerRepository,
        events: EventBus,
        settings: LedgerSettings,
        audit_logger: Optional[AuditLogger] = None,
        clock: Clock = utc_now,
    ):
        self._repository = repository
        self._events = events
        self._limit = settings.notification_history_limit
        self._audit_logger = audit_logger or AuditLogger()
        self._clock = clock

    async def add(
        self,
        title: str,
        message: str,
        kind: NotificationKind,
        severity: NotificationSeverity = NotificationSeverity.INFO,
        data: Optional[dict[str, Any]] = None,
    ) -> Notification:
        """
        Prepend a notification to the history.

        Returns:
            The stored notification
        """
        notification = Notification(
            title=title,
            message=message,
            kind=kind,
            severity=severity,
            time=self._clock(),
            data=data or {},
        )

        history = await self._repository.get_notifications()
        history.insert(0, notification)
        del history[self._limit:]
        await self._repository.save_notifications(history)

        await self._audit_logger.log_notification_raised(
            notification_id=notification.id,
            kind=kind.value,
            title=title,
        )
        await self._events.publish(
            LedgerEvent.NOTIFICATION_ADDED,
            {"notification_id": str(notification.id), "kind": kind.value},
        )
        return notification

    async def history(self) -> list[Notification]:
        """All retained notifications, newest first."""
        return await self._repository.get_notifications()

    async def unread_count(self) -> int:
        history = await self._repository.get_notifications()
        return sum(1 for n in history if not n.read)

    async def mark_read(self, notification_id: UUID) -> Notification:
        history = await self._repository.get_notifications()
        for notification in history:
            if notification.id == notification_id:
                notification.read = True
                await self._repository.save_notifications(history)
                return notification
        raise NotFoundError("notification", notification_id)

    async def mark_all_read(self) -> int:
        """Mark every entry read. Returns how many were unread."""
        history = await self._repository.get_notifications()
        unread = [n for n in history if not n.read]
        if unread:
            for notification in unread:
                notification.read = True
            await self._repository.save_notifications(history)
        return len(unread)

    async def clear(self) -> None:
        await self._repository.save_notifications([])

    async def get_settings(self) -> NotificationSettings:
        return await self._repository.get_notification_settings()

    async def save_settings(self, settings: NotificationSettings) -> NotificationSettings:
        await self._repository.save_notification_settings(settings)
        return settings
