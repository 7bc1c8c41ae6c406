"""
Shared fixtures for FinGuard tests.

Everything runs against the in-memory record store and a frozen clock.
No network access.
"""

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from finguard.audit import AuditLogger
from finguard.config import LedgerSettings
from finguard.ledger import EventBus, NotificationCenter
from finguard.models import TransactionDraft, TransactionType
from finguard.orchestrator import FinanceService
from finguard.services.storage import (
    InMemoryAuditStorage,
    InMemoryRecordStore,
    LedgerRepository,
)


FROZEN_NOW = datetime(2025, 3, 15, 10, 0, tzinfo=timezone.utc)

FOOD = "1"
TRAVEL = "2"
RENT = "3"
SALARY = "7"


class FrozenClock:
    """A clock that only moves when told to."""

    def __init__(self, now: datetime = FROZEN_NOW):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


def income(amount: str, category_id: str = SALARY, **kwargs) -> TransactionDraft:
    return TransactionDraft(
        type=TransactionType.INCOME,
        amount=Decimal(amount),
        category_id=category_id,
        **kwargs,
    )


def expense(amount: str, category_id: str = FOOD, **kwargs) -> TransactionDraft:
    return TransactionDraft(
        type=TransactionType.EXPENSE,
        amount=Decimal(amount),
        category_id=category_id,
        **kwargs,
    )


@pytest.fixture
def clock():
    return FrozenClock()


@pytest.fixture
def ledger_settings():
    return LedgerSettings(
        currency_symbol="₹",
        notification_history_limit=100,
        autopay_catch_up=False,
        budget_catch_up=False,
        storage_backend="memory",
    )


@pytest.fixture
def store():
    return InMemoryRecordStore()


@pytest.fixture
def repository(store):
    return LedgerRepository(store)


@pytest.fixture
def audit_storage():
    return InMemoryAuditStorage()


@pytest.fixture
def audit_logger(audit_storage):
    return AuditLogger(audit_storage)


@pytest.fixture
def events():
    return EventBus()


@pytest.fixture
def notifications(repository, events, ledger_settings, audit_logger, clock):
    return NotificationCenter(repository, events, ledger_settings, audit_logger, clock)


@pytest.fixture
def service(repository, ledger_settings, audit_logger, clock, events):
    return FinanceService(
        repository,
        settings=ledger_settings,
        audit_logger=audit_logger,
        clock=clock,
        events=events,
    )
