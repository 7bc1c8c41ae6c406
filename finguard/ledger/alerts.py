"""
Notification Trigger

Pure threshold classification for budget usage and goal progress. Nothing
here reads or writes state; callers build the notification and append it
to the history.

Budget bands:
    >= 100      exceeded
    [90, 100)   alert
    [75, 90)    info
    < 75        nothing

Goal milestones are 25, 50, 75, 90 and 100, each matched when the
percentage sits in [milestone, milestone + 5).
"""

from decimal import Decimal
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field

from finguard.models import NotificationSeverity


class BudgetAlertLevel(str, Enum):
    INFO = "info"
    ALERT = "alert"
    EXCEEDED = "exceeded"


GOAL_MILESTONES = (25, 50, 75, 90, 100)
MILESTONE_BAND = 5


class AlertContent(BaseModel):
    """Title, message and data for a notification about to be raised."""

    title: str
    message: str
    severity: NotificationSeverity
    data: dict[str, Any] = Field(default_factory=dict)


def classify_budget_usage(percentage: float) -> Optional[BudgetAlertLevel]:
    """Band a budget usage percentage, or None below 75%."""
    if percentage >= 100:
        return BudgetAlertLevel.EXCEEDED
    if percentage >= 90:
        return BudgetAlertLevel.ALERT
    if percentage >= 75:
        return BudgetAlertLevel.INFO
    return None


def classify_goal_milestone(percentage: float) -> Optional[int]:
    """The milestone whose band contains the percentage, if any."""
    for milestone in GOAL_MILESTONES:
        if milestone <= percentage < milestone + MILESTONE_BAND:
            return milestone
    return None


def usage_percentage(spent: Decimal, allocated: Decimal) -> float:
    if allocated <= 0:
        return 0.0
    return float(spent / allocated * 100)


def build_budget_alert(
    category_name: str,
    percentage: float,
    remaining: Decimal,
    spent: Decimal,
    currency_symbol: str = "₹",
) -> Optional[AlertContent]:
    """
    Build the notification for a budget at the given usage.

    Args:
        category_name: Display name of the budget's category
        percentage: spent / allocated * 100
        remaining: allocated - spent (negative once exceeded)
        spent: Amount spent in the current period
        currency_symbol: Prefix for amounts in the message

    Returns:
        The alert content, or None if the usage is below every band
    """
    level = classify_budget_usage(percentage)
    if level is None:
        return None

    if level == BudgetAlertLevel.EXCEEDED:
        title = "Budget Exceeded"
        message = (
            f"You have exceeded your {category_name} budget by "
            f"{currency_symbol}{abs(remaining):,.2f}"
        )
        severity = NotificationSeverity.EXCEEDED
    elif level == BudgetAlertLevel.ALERT:
        title = "Budget Alert"
        message = (
            f"You've used {percentage:.0f}% of your {category_name} budget. "
            f"Only {currency_symbol}{remaining:,.2f} remaining"
        )
        severity = NotificationSeverity.ALERT
    else:
        title = "Budget Update"
        message = (
            f"You have {currency_symbol}{remaining:,.2f} remaining "
            f"in your {category_name} budget"
        )
        severity = NotificationSeverity.INFO

    return AlertContent(
        title=title,
        message=message,
        severity=severity,
        data={
            "category": category_name,
            "level": level.value,
            "percentage": round(percentage, 2),
            "remaining": str(remaining),
            "spent": str(spent),
        },
    )


def build_goal_milestone(
    goal_name: str,
    percentage: float,
    remaining: Decimal,
    currency_symbol: str = "₹",
) -> Optional[AlertContent]:
    """Build the notification for a goal milestone, or None between bands."""
    milestone = classify_goal_milestone(percentage)
    if milestone is None:
        return None

    if milestone == 100:
        title = "Goal Achievement"
        message = f"Congratulations! You reached your {goal_name} goal"
    else:
        title = "Goal Progress"
        message = (
            f"Great progress! You're {milestone}% towards your {goal_name} goal. "
            f"{currency_symbol}{remaining:,.2f} to go!"
        )

    return AlertContent(
        title=title,
        message=message,
        severity=NotificationSeverity.SUCCESS,
        data={
            "goal": goal_name,
            "percentage": milestone,
            "remaining": str(remaining),
        },
    )
