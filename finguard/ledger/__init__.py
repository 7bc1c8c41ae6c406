"""
Ledger Package

The ledger consistency and recurring schedule engine: balance, budget
aggregation, budget periods, autopay, notifications and goals.
"""

from finguard.ledger.alerts import (
    GOAL_MILESTONES,
    AlertContent,
    BudgetAlertLevel,
    build_budget_alert,
    build_goal_milestone,
    classify_budget_usage,
    classify_goal_milestone,
    usage_percentage,
)
from finguard.ledger.autopay import AutopayScheduler
from finguard.ledger.balance import BalanceLedger
from finguard.ledger.budgets import BudgetAggregator
from finguard.ledger.errors import (
    InsufficientBalanceError,
    LedgerError,
    NotFoundError,
    ValidationError,
)
from finguard.ledger.events import EventBus, LedgerEvent
from finguard.ledger.goals import GoalTracker
from finguard.ledger.notifications import NotificationCenter
from finguard.ledger.periods import BudgetPeriodEngine, budget_status
from finguard.ledger.schedule import add_period, calculate_next, in_period_window

__all__ = [
    # Notification trigger
    "GOAL_MILESTONES",
    "AlertContent",
    "BudgetAlertLevel",
    "build_budget_alert",
    "build_goal_milestone",
    "classify_budget_usage",
    "classify_goal_milestone",
    "usage_percentage",
    # Components
    "AutopayScheduler",
    "BalanceLedger",
    "BudgetAggregator",
    "BudgetPeriodEngine",
    "EventBus",
    "GoalTracker",
    "LedgerEvent",
    "NotificationCenter",
    "budget_status",
    # Calendar arithmetic
    "add_period",
    "calculate_next",
    "in_period_window",
    # Exceptions
    "InsufficientBalanceError",
    "LedgerError",
    "NotFoundError",
    "ValidationError",
]
