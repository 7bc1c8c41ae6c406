"""
Ledger Repository

Typed access to the ledger's collections on top of a bare record store.

DESIGN DECISION: Each logical collection lives under one key
("finguard:transactions", "finguard:budgets", ...) and is read and
written whole. This mirrors how the ledger uses its data: every mutation
is a read-modify-write of one collection, and the budget aggregator
needs the complete transaction list anyway.

The repository owns serialization (pydantic JSON). Components above it
never see raw strings.
"""

from enum import Enum
from typing import Any, Optional

from pydantic import TypeAdapter

from finguard.models import (
    DEFAULT_CATEGORIES,
    AccountState,
    AutopayDefinition,
    Budget,
    BudgetSummary,
    Category,
    Goal,
    Notification,
    NotificationSettings,
    Transaction,
)
from finguard.services.storage.interface import RecordStoreInterface, StorageError


class Collection(str, Enum):
    """Logical collections persisted by the ledger."""
    TRANSACTIONS = "transactions"
    BUDGETS = "budgets"
    BUDGET_SUMMARY = "budget-summary"
    CATEGORIES = "categories"
    ACCOUNT_STATE = "account-state"
    AUTOPAY_DEFINITIONS = "autopay-definitions"
    NOTIFICATION_HISTORY = "notification-history"
    NOTIFICATION_SETTINGS = "notification-settings"
    GOALS = "goals"


_ADAPTERS: dict[Collection, TypeAdapter] = {
    Collection.TRANSACTIONS: TypeAdapter(list[Transaction]),
    Collection.BUDGETS: TypeAdapter(list[Budget]),
    Collection.BUDGET_SUMMARY: TypeAdapter(BudgetSummary),
    Collection.CATEGORIES: TypeAdapter(list[Category]),
    Collection.ACCOUNT_STATE: TypeAdapter(AccountState),
    Collection.AUTOPAY_DEFINITIONS: TypeAdapter(list[AutopayDefinition]),
    Collection.NOTIFICATION_HISTORY: TypeAdapter(list[Notification]),
    Collection.NOTIFICATION_SETTINGS: TypeAdapter(NotificationSettings),
    Collection.GOALS: TypeAdapter(list[Goal]),
}


class LedgerRepository:
    """
    Collection-namespaced, typed view over a RecordStoreInterface.

    Every getter returns freshly deserialized objects, so callers may
    mutate what they get without affecting stored state until they save.
    """

    def __init__(
        self,
        store: RecordStoreInterface,
        namespace: str = "finguard",
    ):
        self._store = store
        self._namespace = namespace

    @property
    def store(self) -> RecordStoreInterface:
        return self._store

    def key(self, collection: Collection) -> str:
        """Record store key for a collection."""
        return f"{self._namespace}:{collection.value}"

    # =========================================================================
    # Generic read / write
    # =========================================================================

    async def _read(self, collection: Collection) -> Optional[Any]:
        raw = await self._store.get(self.key(collection))
        if raw is None:
            return None
        try:
            return _ADAPTERS[collection].validate_json(raw)
        except ValueError as e:
            raise StorageError(f"Corrupt record under {self.key(collection)}: {e}")

    async def _write(self, collection: Collection, value: Any) -> None:
        raw = _ADAPTERS[collection].dump_json(value).decode("utf-8")
        await self._store.set(self.key(collection), raw)

    # =========================================================================
    # Transactions
    # =========================================================================

    async def get_transactions(self) -> list[Transaction]:
        return await self._read(Collection.TRANSACTIONS) or []

    async def save_transactions(self, transactions: list[Transaction]) -> None:
        await self._write(Collection.TRANSACTIONS, transactions)

    # =========================================================================
    # Account state
    # =========================================================================

    async def get_account_state(self) -> AccountState:
        state = await self._read(Collection.ACCOUNT_STATE)
        return state if state is not None else AccountState()

    async def save_account_state(self, state: AccountState) -> None:
        await self._write(Collection.ACCOUNT_STATE, state)

    # =========================================================================
    # Budgets and summary
    # =========================================================================

    async def get_budgets(self) -> list[Budget]:
        return await self._read(Collection.BUDGETS) or []

    async def save_budgets(self, budgets: list[Budget]) -> None:
        await self._write(Collection.BUDGETS, budgets)

    async def get_budget_summary(self) -> Optional[BudgetSummary]:
        return await self._read(Collection.BUDGET_SUMMARY)

    async def save_budget_summary(self, summary: Optional[BudgetSummary]) -> None:
        """Persist the summary; None removes it (no budgets exist)."""
        if summary is None:
            await self._store.delete(self.key(Collection.BUDGET_SUMMARY))
            return
        await self._write(Collection.BUDGET_SUMMARY, summary)

    # =========================================================================
    # Categories
    # =========================================================================

    async def get_categories(self) -> list[Category]:
        """
        Read the category list, seeding the default set on first use.
        """
        categories = await self._read(Collection.CATEGORIES)
        if categories is None:
            categories = [c.model_copy() for c in DEFAULT_CATEGORIES]
            await self.save_categories(categories)
        return categories

    async def save_categories(self, categories: list[Category]) -> None:
        await self._write(Collection.CATEGORIES, categories)

    # =========================================================================
    # Autopay
    # =========================================================================

    async def get_autopays(self) -> list[AutopayDefinition]:
        return await self._read(Collection.AUTOPAY_DEFINITIONS) or []

    async def save_autopays(self, autopays: list[AutopayDefinition]) -> None:
        await self._write(Collection.AUTOPAY_DEFINITIONS, autopays)

    # =========================================================================
    # Notifications
    # =========================================================================

    async def get_notifications(self) -> list[Notification]:
        return await self._read(Collection.NOTIFICATION_HISTORY) or []

    async def save_notifications(self, notifications: list[Notification]) -> None:
        await self._write(Collection.NOTIFICATION_HISTORY, notifications)

    async def get_notification_settings(self) -> NotificationSettings:
        settings = await self._read(Collection.NOTIFICATION_SETTINGS)
        return settings if settings is not None else NotificationSettings()

    async def save_notification_settings(self, settings: NotificationSettings) -> None:
        await self._write(Collection.NOTIFICATION_SETTINGS, settings)

    # =========================================================================
    # Goals
    # =========================================================================

    async def get_goals(self) -> list[Goal]:
        return await self._read(Collection.GOALS) or []

    async def save_goals(self, goals: list[Goal]) -> None:
        await self._write(Collection.GOALS, goals)
