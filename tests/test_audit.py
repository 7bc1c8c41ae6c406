"""Tests for the audit logger."""

import pytest
from decimal import Decimal
from uuid import uuid4

from conftest import income
from finguard.audit import AuditLogger, create_correlation_id
from finguard.models.audit import AuditEventBuilder, AuditEventType, AuditSeverity
from finguard.services.storage import (
    AuditStorageInterface,
    InMemoryAuditStorage,
    StorageError,
)


class FailingAuditStorage(AuditStorageInterface):
    async def append_event(self, event):
        raise RuntimeError("sheet unavailable")

    async def get_events_by_entity(self, entity_type, entity_id):
        return []

    async def get_recent_events(self, limit=100):
        return []


class TestAuditLogger:
    """Tests for AuditLogger."""

    async def test_logs_to_storage(self):
        """Test that events reach the storage backend."""
        storage = InMemoryAuditStorage()
        logger = AuditLogger(storage)
        autopay_id = uuid4()

        await logger.log_autopay_created(
            autopay_id=autopay_id,
            frequency="monthly",
            amount=Decimal("100"),
            correlation_id=create_correlation_id(),
        )

        events = await storage.get_events_by_entity("autopay", autopay_id)
        assert [e.event_type for e in events] == [AuditEventType.AUTOPAY_CREATED]

    async def test_storage_failure_is_not_raised(self):
        """Test that a failed audit write never fails the caller."""
        logger = AuditLogger(FailingAuditStorage())
        event = AuditEventBuilder.budgets_rolled_over(1, 0, uuid4())

        assert await logger.log(event) is False

    async def test_without_storage(self):
        """Test that local-only logging reports success."""
        event = AuditEventBuilder.notification_raised(uuid4(), "budget_alert", "Budget Alert")
        assert await AuditLogger().log(event) is True

    async def test_correlated_pass(self, service, audit_storage, clock):
        """Test that one scheduled pass shares a correlation id."""
        await service.save_transaction(income("100"))
        report = await service.process_scheduled_tasks()

        events = [
            e for e in await audit_storage.get_recent_events()
            if e.correlation_id == report.correlation_id
        ]
        assert [e.event_type for e in events] == [AuditEventType.SCHEDULED_TASKS_PROCESSED]

    async def test_storage_failure_in_pass_is_audited(self, service, store, audit_storage):
        """Test that a failed scheduled pass leaves a storage error event and re-raises."""
        await store.set("finguard:budgets", "not json")

        with pytest.raises(StorageError):
            await service.process_scheduled_tasks()

        events = await audit_storage.get_recent_events()
        assert [e.event_type for e in events] == [AuditEventType.STORAGE_ERROR]
        assert events[0].severity == AuditSeverity.ERROR
        assert "finguard:budgets" in events[0].error_message
