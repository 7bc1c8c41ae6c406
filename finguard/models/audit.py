"""
Audit Models for FinGuard

Every ledger mutation and every scheduled pass is logged for audit
purposes. This provides:
1. Traceability of how a balance or budget reached its current value
2. Debugging information when a multi-step operation fails half way
3. A history of autopay executions independent of the transaction list

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
"""

import json
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field

from finguard.models.ledger import utc_now


class AuditEventType(str, Enum):
    """
    Types of events we audit.

    Every mutating ledger operation has its own event type.
    """
    # Transactions
    TRANSACTION_SAVED = "transaction_saved"
    TRANSACTION_UPDATED = "transaction_updated"
    TRANSACTION_DELETED = "transaction_deleted"
    INSUFFICIENT_BALANCE = "insufficient_balance"
    VALIDATION_FAILED = "validation_failed"

    # Budgets
    BUDGET_SAVED = "budget_saved"
    BUDGET_UPDATED = "budget_updated"
    BUDGET_DELETED = "budget_deleted"
    BUDGET_RESET = "budget_reset"
    BUDGETS_ROLLED_OVER = "budgets_rolled_over"

    # Autopay
    AUTOPAY_CREATED = "autopay_created"
    AUTOPAY_EXECUTED = "autopay_executed"
    AUTOPAY_FAILED = "autopay_failed"
    AUTOPAY_DEACTIVATED = "autopay_deactivated"
    AUTOPAY_DISABLED = "autopay_disabled"

    # Scheduled passes
    SCHEDULED_TASKS_PROCESSED = "scheduled_tasks_processed"

    # Notifications
    NOTIFICATION_RAISED = "notification_raised"

    # System events
    SYSTEM_ERROR = "system_error"
    STORAGE_ERROR = "storage_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.

    This is the core unit of our audit trail.
    Every significant action creates one of these.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=utc_now,
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType = Field(
        ...,
        description="Type of event"
    )
    severity: AuditSeverity = Field(
        default=AuditSeverity.INFO,
        description="Event severity"
    )

    # Context - what entity is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'transaction', 'budget', 'autopay')"
    )
    entity_id: Optional[UUID] = Field(
        default=None,
        description="ID of the entity this event relates to"
    )

    # Correlation - for tracking related events
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate related events (e.g., all events of one scheduled pass)"
    )

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )
    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional event-specific data"
    )

    error_message: Optional[str] = None

    is_user_action: bool = Field(
        default=False,
        description="Was this triggered by a user action?"
    )

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": str(self.entity_id) if self.entity_id else None,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }

    def to_sheets_row(self) -> list:
        """
        Convert to a row suitable for Google Sheets storage.

        Returns columns in order:
        [event_id, timestamp, event_type, severity, entity_type, entity_id,
         correlation_id, description, details_json, error_message, is_user_action]
        """
        return [
            str(self.event_id),
            self.timestamp.isoformat(),
            self.event_type.value,
            self.severity.value,
            self.entity_type or "",
            str(self.entity_id) if self.entity_id else "",
            str(self.correlation_id) if self.correlation_id else "",
            self.description,
            json.dumps(self.details, default=str) if self.details else "",
            self.error_message or "",
            str(self.is_user_action),
        ]


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.transaction_saved(tx_id, "expense", "300.00", correlation_id)
        event = AuditEventBuilder.autopay_executed(autopay_id, tx_id, 3, correlation_id)
    """

    @staticmethod
    def transaction_saved(
        transaction_id: UUID,
        transaction_type: str,
        amount: Decimal,
        balance_after: Decimal,
        correlation_id: UUID,
        is_user_action: bool = True,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_SAVED,
            entity_type="transaction",
            entity_id=transaction_id,
            correlation_id=correlation_id,
            description=f"{transaction_type.capitalize()} of {amount} recorded",
            details={
                "type": transaction_type,
                "amount": str(amount),
                "balance_after": str(balance_after),
            },
            is_user_action=is_user_action,
        )

    @staticmethod
    def transaction_updated(
        transaction_id: UUID,
        old_amount: Decimal,
        new_amount: Decimal,
        balance_after: Decimal,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_UPDATED,
            entity_type="transaction",
            entity_id=transaction_id,
            correlation_id=correlation_id,
            description=f"Transaction edited: {old_amount} -> {new_amount}",
            details={
                "old_amount": str(old_amount),
                "new_amount": str(new_amount),
                "balance_after": str(balance_after),
            },
            is_user_action=True,
        )

    @staticmethod
    def transaction_deleted(
        transaction_id: UUID,
        amount: Decimal,
        balance_after: Decimal,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_DELETED,
            entity_type="transaction",
            entity_id=transaction_id,
            correlation_id=correlation_id,
            description=f"Transaction of {amount} deleted and reversed",
            details={
                "amount": str(amount),
                "balance_after": str(balance_after),
            },
            is_user_action=True,
        )

    @staticmethod
    def insufficient_balance(
        amount: Decimal,
        balance: Decimal,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.INSUFFICIENT_BALANCE,
            severity=AuditSeverity.WARNING,
            entity_type="account",
            correlation_id=correlation_id,
            description=f"Rejected: {amount} exceeds available balance {balance}",
            details={
                "amount": str(amount),
                "balance": str(balance),
            },
        )

    @staticmethod
    def validation_failed(
        entity_type: str,
        issues: list[dict],
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.VALIDATION_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type=entity_type,
            correlation_id=correlation_id,
            description=f"{entity_type.capitalize()} validation failed with {len(issues)} issues",
            details={"issues": issues},
        )

    @staticmethod
    def budget_changed(
        event_type: AuditEventType,
        budget_id: UUID,
        category_id: str,
        correlation_id: UUID,
        details: Optional[dict] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=event_type,
            entity_type="budget",
            entity_id=budget_id,
            correlation_id=correlation_id,
            description=f"Budget for category {category_id}: {event_type.value.replace('_', ' ')}",
            details={"category_id": category_id, **(details or {})},
            is_user_action=event_type != AuditEventType.BUDGETS_ROLLED_OVER,
        )

    @staticmethod
    def budgets_rolled_over(
        reset: int,
        expired: int,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.BUDGETS_ROLLED_OVER,
            entity_type="budget",
            correlation_id=correlation_id,
            description=f"Budget period pass: {reset} reset, {expired} expired",
            details={"reset": reset, "expired": expired},
        )

    @staticmethod
    def autopay_created(
        autopay_id: UUID,
        frequency: str,
        amount: Decimal,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.AUTOPAY_CREATED,
            entity_type="autopay",
            entity_id=autopay_id,
            correlation_id=correlation_id,
            description=f"Autopay created: {amount} {frequency}",
            details={"frequency": frequency, "amount": str(amount)},
            is_user_action=True,
        )

    @staticmethod
    def autopay_executed(
        autopay_id: UUID,
        transaction_id: UUID,
        execution_count: int,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.AUTOPAY_EXECUTED,
            entity_type="autopay",
            entity_id=autopay_id,
            correlation_id=correlation_id,
            description=f"Autopay executed (run #{execution_count})",
            details={
                "transaction_id": str(transaction_id),
                "execution_count": execution_count,
            },
        )

    @staticmethod
    def autopay_failed(
        autopay_id: UUID,
        reason: str,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.AUTOPAY_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type="autopay",
            entity_id=autopay_id,
            correlation_id=correlation_id,
            description="Autopay could not be executed",
            error_message=reason,
        )

    @staticmethod
    def autopay_state_changed(
        event_type: AuditEventType,
        autopay_id: UUID,
        execution_count: int,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=event_type,
            entity_type="autopay",
            entity_id=autopay_id,
            correlation_id=correlation_id,
            description=f"Autopay {event_type.value.split('_', 1)[1]} after {execution_count} runs",
            details={"execution_count": execution_count},
            is_user_action=event_type != AuditEventType.AUTOPAY_DEACTIVATED,
        )

    @staticmethod
    def scheduled_tasks_processed(
        autopays_executed: int,
        budgets_reset: int,
        budgets_expired: int,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SCHEDULED_TASKS_PROCESSED,
            correlation_id=correlation_id,
            description="Scheduled tasks processed",
            details={
                "autopays_executed": autopays_executed,
                "budgets_reset": budgets_reset,
                "budgets_expired": budgets_expired,
            },
        )

    @staticmethod
    def notification_raised(
        notification_id: UUID,
        kind: str,
        title: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.NOTIFICATION_RAISED,
            severity=AuditSeverity.DEBUG,
            entity_type="notification",
            entity_id=notification_id,
            description=f"Notification raised: {title}",
            details={"kind": kind},
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
        event_type: AuditEventType = AuditEventType.SYSTEM_ERROR,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=event_type,
            severity=AuditSeverity.ERROR,
            description=f"System error: {error_type}",
            error_message=error_message,
            details=details or {},
            correlation_id=correlation_id,
        )
