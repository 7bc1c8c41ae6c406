"""
Data Models Package

This package contains all Pydantic models used by the FinGuard ledger core.
All data flowing through the system must conform to these schemas.
"""

from finguard.models.ledger import (
    DEFAULT_CATEGORIES,
    DESCRIPTION_MAX_LENGTH,
    NOTES_MAX_LENGTH,
    AccountState,
    Clock,
    Category,
    CategoryPatch,
    PaymentMode,
    Transaction,
    TransactionDraft,
    TransactionPatch,
    TransactionType,
    ValidationIssue,
    ValidationResult,
    utc_now,
)
from finguard.models.budget import (
    Budget,
    BudgetDraft,
    BudgetPassResult,
    BudgetPatch,
    BudgetPeriod,
    BudgetStatus,
    BudgetSummary,
    BudgetView,
    CategorySpend,
)
from finguard.models.autopay import (
    AutopayDefinition,
    AutopayDraft,
    AutopayFrequency,
    AutopayPassResult,
)
from finguard.models.notification import (
    Notification,
    NotificationKind,
    NotificationSettings,
    NotificationSeverity,
)
from finguard.models.goal import GOAL_NAME_MAX_LENGTH, Goal, GoalDraft, GoalProgress
from finguard.models.insights import (
    CategoryTotal,
    ExpenseChartRow,
    FinancialInsights,
    SpendingAnalytics,
)
from finguard.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Ledger models
    "DEFAULT_CATEGORIES",
    "DESCRIPTION_MAX_LENGTH",
    "NOTES_MAX_LENGTH",
    "AccountState",
    "Clock",
    "Category",
    "CategoryPatch",
    "PaymentMode",
    "Transaction",
    "TransactionDraft",
    "TransactionPatch",
    "TransactionType",
    "ValidationIssue",
    "ValidationResult",
    "utc_now",
    # Budget models
    "Budget",
    "BudgetDraft",
    "BudgetPassResult",
    "BudgetPatch",
    "BudgetPeriod",
    "BudgetStatus",
    "BudgetSummary",
    "BudgetView",
    "CategorySpend",
    # Autopay models
    "AutopayDefinition",
    "AutopayDraft",
    "AutopayFrequency",
    "AutopayPassResult",
    # Notification models
    "Notification",
    "NotificationKind",
    "NotificationSettings",
    "NotificationSeverity",
    # Goal models
    "GOAL_NAME_MAX_LENGTH",
    "Goal",
    "GoalDraft",
    "GoalProgress",
    # Insight models
    "CategoryTotal",
    "ExpenseChartRow",
    "FinancialInsights",
    "SpendingAnalytics",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
