"""
Notification Models for FinGuard

Notifications are an append-only, capped history. Each entry carries its
own read/unread flag; nothing else about an entry changes after it is
written.
"""

from datetime import datetime
from enum import Enum
from typing import Any
from uuid import UUID, uuid4

from pydantic import BaseModel, Field

from finguard.models.ledger import utc_now


class NotificationSeverity(str, Enum):
    """How prominently a notification should be surfaced."""
    INFO = "info"
    ALERT = "alert"
    EXCEEDED = "exceeded"
    SUCCESS = "success"
    WARNING = "warning"


class NotificationKind(str, Enum):
    """What raised the notification."""
    BUDGET_ALERT = "budget_alert"
    BUDGETS_RENEWED = "budgets_renewed"
    GOAL_MILESTONE = "goal_milestone"
    AUTOPAY_FAILED = "autopay_failed"


class Notification(BaseModel):
    """A single entry in the notification history."""

    id: UUID = Field(default_factory=uuid4)
    title: str = Field(..., min_length=1, max_length=100)
    message: str = Field(..., max_length=500)
    severity: NotificationSeverity = NotificationSeverity.INFO
    kind: NotificationKind
    read: bool = False
    time: datetime = Field(default_factory=utc_now)
    data: dict[str, Any] = Field(default_factory=dict)


class NotificationSettings(BaseModel):
    """User toggles for the optional notification families."""

    budget_alerts: bool = True
    goal_reminders: bool = True
