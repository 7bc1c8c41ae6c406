"""
Audit Logger

DESIGN DECISION: Every ledger mutation and every scheduled pass is logged.
This provides:
1. Complete traceability of balance and budget changes
2. Debugging capability when a multi-step operation fails part way
3. A record of what the scheduler did while the user was away

The audit logger:
- Is async to not block main flow
- Gracefully handles failures (a failed audit write never fails a save)
- Supports correlation IDs to trace related events
"""

from decimal import Decimal
from typing import Optional
from uuid import UUID, uuid4

import structlog

from finguard.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)
from finguard.services.storage import AuditStorageInterface


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. An audit storage backend (for persistence), when configured
    """

    def __init__(
        self,
        storage: Optional[AuditStorageInterface] = None,
    ):
        """
        Initialize audit logger.

        Args:
            storage: Storage backend for persistence.
                    If None, only logs locally.
        """
        self._storage = storage
        self._logger = structlog.get_logger("finguard.audit")

    async def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Persists to storage if available.

        Returns True if storage write succeeded (or no storage configured).
        """
        log_dict = event.to_log_dict()

        if event.severity in (AuditSeverity.ERROR, AuditSeverity.CRITICAL):
            self._logger.error("audit_event", **log_dict)
        elif event.severity == AuditSeverity.WARNING:
            self._logger.warning("audit_event", **log_dict)
        elif event.severity == AuditSeverity.DEBUG:
            self._logger.debug("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._storage:
            try:
                return await self._storage.append_event(event)
            except Exception as e:
                # Log failure but don't raise
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    async def log_transaction_saved(
        self,
        transaction_id: UUID,
        transaction_type: str,
        amount: Decimal,
        balance_after: Decimal,
        correlation_id: UUID,
        is_user_action: bool = True,
    ) -> None:
        """Log a new transaction."""
        await self.log(AuditEventBuilder.transaction_saved(
            transaction_id=transaction_id,
            transaction_type=transaction_type,
            amount=amount,
            balance_after=balance_after,
            correlation_id=correlation_id,
            is_user_action=is_user_action,
        ))

    async def log_transaction_updated(
        self,
        transaction_id: UUID,
        old_amount: Decimal,
        new_amount: Decimal,
        balance_after: Decimal,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.transaction_updated(
            transaction_id=transaction_id,
            old_amount=old_amount,
            new_amount=new_amount,
            balance_after=balance_after,
            correlation_id=correlation_id,
        ))

    async def log_transaction_deleted(
        self,
        transaction_id: UUID,
        amount: Decimal,
        balance_after: Decimal,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.transaction_deleted(
            transaction_id=transaction_id,
            amount=amount,
            balance_after=balance_after,
            correlation_id=correlation_id,
        ))

    async def log_insufficient_balance(
        self,
        amount: Decimal,
        balance: Decimal,
        correlation_id: UUID,
    ) -> None:
        """Log a rejected expense."""
        await self.log(AuditEventBuilder.insufficient_balance(
            amount=amount,
            balance=balance,
            correlation_id=correlation_id,
        ))

    async def log_validation_failed(
        self,
        entity_type: str,
        issues: list[dict],
        correlation_id: UUID,
    ) -> None:
        """Log validation failure."""
        await self.log(AuditEventBuilder.validation_failed(
            entity_type=entity_type,
            issues=issues,
            correlation_id=correlation_id,
        ))

    async def log_budget_changed(
        self,
        event_type: AuditEventType,
        budget_id: UUID,
        category_id: str,
        correlation_id: UUID,
        details: Optional[dict] = None,
    ) -> None:
        await self.log(AuditEventBuilder.budget_changed(
            event_type=event_type,
            budget_id=budget_id,
            category_id=category_id,
            correlation_id=correlation_id,
            details=details,
        ))

    async def log_budgets_rolled_over(
        self,
        reset: int,
        expired: int,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.budgets_rolled_over(
            reset=reset,
            expired=expired,
            correlation_id=correlation_id,
        ))

    async def log_autopay_created(
        self,
        autopay_id: UUID,
        frequency: str,
        amount: Decimal,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.autopay_created(
            autopay_id=autopay_id,
            frequency=frequency,
            amount=amount,
            correlation_id=correlation_id,
        ))

    async def log_autopay_executed(
        self,
        autopay_id: UUID,
        transaction_id: UUID,
        execution_count: int,
        correlation_id: UUID,
    ) -> None:
        """Log one materialized autopay transaction."""
        await self.log(AuditEventBuilder.autopay_executed(
            autopay_id=autopay_id,
            transaction_id=transaction_id,
            execution_count=execution_count,
            correlation_id=correlation_id,
        ))

    async def log_autopay_failed(
        self,
        autopay_id: UUID,
        reason: str,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.autopay_failed(
            autopay_id=autopay_id,
            reason=reason,
            correlation_id=correlation_id,
        ))

    async def log_autopay_state_changed(
        self,
        event_type: AuditEventType,
        autopay_id: UUID,
        execution_count: int,
        correlation_id: UUID,
    ) -> None:
        """Log an autopay definition going inactive (scheduler or user)."""
        await self.log(AuditEventBuilder.autopay_state_changed(
            event_type=event_type,
            autopay_id=autopay_id,
            execution_count=execution_count,
            correlation_id=correlation_id,
        ))

    async def log_scheduled_tasks_processed(
        self,
        autopays_executed: int,
        budgets_reset: int,
        budgets_expired: int,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.scheduled_tasks_processed(
            autopays_executed=autopays_executed,
            budgets_reset=budgets_reset,
            budgets_expired=budgets_expired,
            correlation_id=correlation_id,
        ))

    async def log_notification_raised(
        self,
        notification_id: UUID,
        kind: str,
        title: str,
    ) -> None:
        await self.log(AuditEventBuilder.notification_raised(
            notification_id=notification_id,
            kind=kind,
            title=title,
        ))

    async def log_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
        event_type: AuditEventType = AuditEventType.SYSTEM_ERROR,
    ) -> None:
        """Log an error that aborted an operation."""
        await self.log(AuditEventBuilder.system_error(
            error_type=error_type,
            error_message=error_message,
            details=details,
            correlation_id=correlation_id,
            event_type=event_type,
        ))


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a new user action (e.g., saving a transaction)
    or scheduled pass. Pass it through all subsequent operations.
    """
    return uuid4()
