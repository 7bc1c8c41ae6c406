"""
Savings Goals

Goals track progress toward a target independently of the account
balance: contributing to a goal never moves money.
"""

from decimal import Decimal
from typing import Optional
from uuid import UUID

from finguard.config import LedgerSettings
from finguard.ledger.alerts import build_goal_milestone
from finguard.ledger.errors import NotFoundError
from finguard.ledger.notifications import NotificationCenter
from finguard.models import (
    Clock,
    Goal,
    GoalDraft,
    GoalProgress,
    NotificationKind,
    utc_now,
)
from finguard.services.storage import LedgerRepository


class GoalTracker:
    """Stores goals and raises milestone notifications on contributions."""

    def __init__(
        self,
        repository: LedgerRepository,
        notifications: NotificationCenter,
        settings: LedgerSettings,
        clock: Clock = utc_now,
    ):
        self._repository = repository
        self._notifications = notifications
        self._settings = settings
        self._clock = clock

    def progress(self, goal: Goal) -> GoalProgress:
        percentage = float(goal.current_amount / goal.target_amount * 100)
        days_left = None
        if goal.deadline is not None:
            days_left = (goal.deadline - self._clock().date()).days
        return GoalProgress(
            goal=goal,
            progress_percentage=min(percentage, 100.0),
            remaining=max(goal.target_amount - goal.current_amount, Decimal("0.00")),
            days_left=days_left,
        )

    async def save_goal(self, draft: GoalDraft) -> Goal:
        goal = Goal(
            name=draft.name,
            target_amount=draft.target_amount,
            current_amount=draft.current_amount,
            deadline=draft.deadline,
            created_at=self._clock(),
        )
        goals = await self._repository.get_goals()
        goals.append(goal)
        await self._repository.save_goals(goals)
        return goal

    async def fetch_goals(self) -> list[GoalProgress]:
        return [self.progress(goal) for goal in await self._repository.get_goals()]

    async def contribute(self, goal_id: UUID, amount: Decimal) -> GoalProgress:
        """
        Add to a goal's saved amount.

        Raises a milestone notification when the new progress lands in a
        milestone band and goal reminders are enabled.
        """
        goals = await self._repository.get_goals()
        goal: Optional[Goal] = next((g for g in goals if g.id == goal_id), None)
        if goal is None:
            raise NotFoundError("goal", goal_id)

        goal.current_amount = goal.current_amount + amount
        await self._repository.save_goals(goals)

        progress = self.progress(goal)
        notification_settings = await self._notifications.get_settings()
        if notification_settings.goal_reminders:
            alert = build_goal_milestone(
                goal_name=goal.name,
                percentage=progress.progress_percentage,
                remaining=progress.remaining,
                currency_symbol=self._settings.currency_symbol,
            )
            if alert is not None:
                await self._notifications.add(
                    title=alert.title,
                    message=alert.message,
                    kind=NotificationKind.GOAL_MILESTONE,
                    severity=alert.severity,
                    data={"goal_id": str(goal.id), **alert.data},
                )
        return progress
