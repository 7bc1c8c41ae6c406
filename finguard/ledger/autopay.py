"""
Autopay Scheduler

Materializes recurring transaction definitions into concrete transactions.

State machine per definition:

    ACTIVE --(due, termination reached)--> INACTIVE
    ACTIVE --(due)--> execute, advance next_execution_date, count += 1
    ACTIVE --(disable)--> INACTIVE

INACTIVE is terminal. Termination (next run after end_date, or
execution_count >= max_count) is checked before executing and again after
advancing, so a definition with max_count = N goes inactive in the pass
that executes its N-th transaction.

DESIGN DECISION: Materialized transactions go through the same save path
as user transactions (balance, budgets, notifications, events), injected
here as `commit`. If that path rejects a transaction for insufficient
balance or invalid data, the definition is NOT advanced: the same run is
retried on the next pass, and the failure is audited and surfaced as a
warning notification. A failed run is retried until today passes the
end date; then the definition is deactivated. Storage errors propagate
to the caller.

By default a definition executes at most once per pass. With catch-up it
executes every elapsed run up to today, bounded by max_catch_up_steps.
"""

from datetime import date
from typing import Awaitable, Callable, Optional
from uuid import UUID

import structlog

from finguard.audit import AuditLogger
from finguard.config import LedgerSettings
from finguard.ledger.errors import (
    InsufficientBalanceError,
    NotFoundError,
    ValidationError,
)
from finguard.ledger.notifications import NotificationCenter
from finguard.ledger.schedule import calculate_next
from finguard.models import (
    AutopayDefinition,
    AutopayPassResult,
    Clock,
    NotificationKind,
    NotificationSeverity,
    Transaction,
    utc_now,
)
from finguard.models.audit import AuditEventType
from finguard.services.storage import LedgerRepository


logger = structlog.get_logger("finguard.ledger.autopay")

TransactionCommit = Callable[[Transaction, UUID], Awaitable[Transaction]]


class AutopayScheduler:
    """Owns the autopay definitions and runs the due ones."""

    def __init__(
        self,
        repository: LedgerRepository,
        commit: TransactionCommit,
        notifications: NotificationCenter,
        settings: LedgerSettings,
        audit_logger: Optional[AuditLogger] = None,
        clock: Clock = utc_now,
    ):
        self._repository = repository
        self._commit = commit
        self._notifications = notifications
        self._settings = settings
        self._audit_logger = audit_logger or AuditLogger()
        self._clock = clock

    async def list_definitions(self) -> list[AutopayDefinition]:
        return await self._repository.get_autopays()

    async def register(
        self,
        definition: AutopayDefinition,
        correlation_id: UUID,
    ) -> AutopayDefinition:
        definitions = await self._repository.get_autopays()
        definitions.append(definition)
        await self._repository.save_autopays(definitions)

        await self._audit_logger.log_autopay_created(
            autopay_id=definition.id,
            frequency=definition.frequency.value,
            amount=definition.amount,
            correlation_id=correlation_id,
        )
        return definition

    async def disable(self, autopay_id: UUID, correlation_id: UUID) -> AutopayDefinition:
        """
        Deactivate a definition. Already materialized transactions stay.
        """
        definitions = await self._repository.get_autopays()
        definition = next((d for d in definitions if d.id == autopay_id), None)
        if definition is None:
            raise NotFoundError("autopay", autopay_id)
        if not definition.is_active:
            return definition

        definition.is_active = False
        definition.deactivated_at = self._clock()
        await self._repository.save_autopays(definitions)

        await self._audit_logger.log_autopay_state_changed(
            event_type=AuditEventType.AUTOPAY_DISABLED,
            autopay_id=definition.id,
            execution_count=definition.execution_count,
            correlation_id=correlation_id,
        )
        return definition

    def materialize(self, definition: AutopayDefinition) -> Transaction:
        """Build the concrete transaction for the definition's next run."""
        now = self._clock()
        return Transaction(
            type=definition.type,
            amount=definition.amount,
            category_id=definition.category_id,
            date=definition.next_execution_date,
            description=definition.description or "Autopay",
            payment_mode=definition.payment_mode,
            created_at=now,
            updated_at=now,
            is_autopay_generated=True,
            autopay_id=definition.id,
        )

    async def _deactivate(self, definition: AutopayDefinition, correlation_id: UUID) -> None:
        definition.is_active = False
        definition.deactivated_at = self._clock()
        await self._audit_logger.log_autopay_state_changed(
            event_type=AuditEventType.AUTOPAY_DEACTIVATED,
            autopay_id=definition.id,
            execution_count=definition.execution_count,
            correlation_id=correlation_id,
        )

    async def _report_failure(
        self,
        definition: AutopayDefinition,
        error: Exception,
        correlation_id: UUID,
    ) -> None:
        logger.warning(
            "autopay_execution_failed",
            autopay_id=str(definition.id),
            error=str(error),
        )
        await self._audit_logger.log_autopay_failed(
            autopay_id=definition.id,
            reason=str(error),
            correlation_id=correlation_id,
        )
        await self._notifications.add(
            title="Autopay Failed",
            message=(
                f"Could not run autopay '{definition.description or 'Autopay'}' "
                f"due {definition.next_execution_date}: {error}"
            ),
            kind=NotificationKind.AUTOPAY_FAILED,
            severity=NotificationSeverity.WARNING,
            data={
                "autopay_id": str(definition.id),
                "due": definition.next_execution_date.isoformat(),
            },
        )

    async def process_due(
        self,
        correlation_id: UUID,
        today: Optional[date] = None,
        catch_up: Optional[bool] = None,
    ) -> AutopayPassResult:
        """
        Run every active definition whose next execution date has arrived.

        Args:
            correlation_id: Ties this pass's audit events together
            today: Evaluation day (default: the clock's date)
            catch_up: Override the configured catch-up mode

        Returns:
            Counts of executed, deactivated and failed runs

        Raises:
            StorageError: If the record store fails
        """
        today = today or self._clock().date()
        if catch_up is None:
            catch_up = self._settings.autopay_catch_up

        result = AutopayPassResult()
        definitions = await self._repository.get_autopays()
        dirty = False

        for definition in definitions:
            steps = 0
            while (
                definition.is_active
                and definition.next_execution_date <= today
                and steps < self._settings.max_catch_up_steps
            ):
                steps += 1

                if definition.termination_reached(today):
                    await self._deactivate(definition, correlation_id)
                    result.deactivated += 1
                    dirty = True
                    break

                try:
                    saved = await self._commit(self.materialize(definition), correlation_id)
                except (InsufficientBalanceError, ValidationError) as e:
                    result.failed += 1
                    definition.failed_attempts += 1
                    dirty = True
                    await self._report_failure(definition, e, correlation_id)
                    break

                definition.next_execution_date = calculate_next(
                    definition.next_execution_date, definition.frequency
                )
                definition.execution_count += 1
                definition.failed_attempts = 0
                definition.last_executed_at = self._clock()
                result.executed += 1
                result.transaction_ids.append(saved.id)

                if definition.termination_reached():
                    await self._deactivate(definition, correlation_id)
                    result.deactivated += 1

                # Each executed run is persisted before the next one starts
                await self._repository.save_autopays(definitions)
                dirty = False

                await self._audit_logger.log_autopay_executed(
                    autopay_id=definition.id,
                    transaction_id=saved.id,
                    execution_count=definition.execution_count,
                    correlation_id=correlation_id,
                )

                if not catch_up:
                    break

        if dirty:
            await self._repository.save_autopays(definitions)

        return result
