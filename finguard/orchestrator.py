"""
Main Orchestrator for FinGuard

This module ties together all the ledger components and exposes the
boundary operations the presentation layer calls:
1. Transactions (save / edit / delete → balance → budgets → alerts → events)
2. Budgets (create / edit / delete / manual reset, status views, summary)
3. Autopay (define / disable, scheduled materialization)
4. Scheduled tasks (the one entry point run at app startup or foreground)
5. Notifications, categories, goals and insights

DESIGN DECISION: The orchestrator enforces the boundaries:
- Nothing is written until the input has been validated
- Every mutation runs behind one writer lock, so two saves on the same
  service can never interleave their store round trips
- Every mutation is audited and followed by a change event, delivered
  after the writer lock is released

The record store offers no transactions. The lock is what keeps the
balance, the transaction list and the budget caches consistent with one
another inside one service instance.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from decimal import Decimal
from typing import Optional
from uuid import UUID

import structlog
from pydantic import BaseModel

from finguard.audit import AuditLogger, create_correlation_id
from finguard.config import LedgerSettings, get_settings
from finguard.ledger import (
    AutopayScheduler,
    BalanceLedger,
    BudgetAggregator,
    BudgetPeriodEngine,
    EventBus,
    GoalTracker,
    InsufficientBalanceError,
    LedgerEvent,
    NotFoundError,
    NotificationCenter,
    ValidationError,
)
from finguard.models import (
    AccountState,
    AuditEventType,
    AutopayDefinition,
    AutopayDraft,
    AutopayPassResult,
    Budget,
    BudgetDraft,
    BudgetPassResult,
    BudgetPatch,
    BudgetSummary,
    BudgetView,
    Category,
    CategoryPatch,
    Clock,
    ExpenseChartRow,
    FinancialInsights,
    Goal,
    GoalDraft,
    GoalProgress,
    Notification,
    NotificationSettings,
    SpendingAnalytics,
    Transaction,
    TransactionDraft,
    TransactionPatch,
    TransactionType,
    ValidationIssue,
    ValidationResult,
    utc_now,
)
from finguard.queries import InsightsQuery
from finguard.services.storage import (
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsRecordStore,
    InMemoryAuditStorage,
    InMemoryRecordStore,
    LedgerRepository,
    StorageError,
)
from finguard.validation import LedgerValidator


logger = structlog.get_logger("finguard.orchestrator")


class ScheduledTaskReport(BaseModel):
    """What one scheduled pass did."""

    autopays: AutopayPassResult
    budgets: BudgetPassResult
    correlation_id: UUID


class FinanceService:
    """
    Boundary facade over the ledger core.

    Owns the event bus and the writer lock. All components share one
    repository, one clock and one audit logger, passed in here.
    """

    def __init__(
        self,
        repository: LedgerRepository,
        settings: Optional[LedgerSettings] = None,
        audit_logger: Optional[AuditLogger] = None,
        clock: Clock = utc_now,
        events: Optional[EventBus] = None,
    ):
        self._repository = repository
        self._settings = settings or get_settings().ledger
        self._audit_logger = audit_logger or AuditLogger()
        self._clock = clock
        self._events = events or EventBus()
        self._lock = asyncio.Lock()

        self._validator = LedgerValidator(self._settings, clock)
        self._balance = BalanceLedger(repository)
        self._notifications = NotificationCenter(
            repository, self._events, self._settings, self._audit_logger, clock
        )
        self._aggregator = BudgetAggregator(
            repository, self._notifications, self._settings, self._audit_logger, clock
        )
        self._periods = BudgetPeriodEngine(
            repository,
            self._aggregator,
            self._notifications,
            self._events,
            self._settings,
            self._audit_logger,
            clock,
        )
        self._autopay = AutopayScheduler(
            repository,
            self._commit_generated,
            self._notifications,
            self._settings,
            self._audit_logger,
            clock,
        )
        self._goals = GoalTracker(repository, self._notifications, self._settings, clock)
        self._insights = InsightsQuery(repository, clock)

    @property
    def events(self) -> EventBus:
        return self._events

    @property
    def validator(self) -> LedgerValidator:
        return self._validator

    # =========================================================================
    # Internal helpers
    # =========================================================================

    @asynccontextmanager
    async def _writing(self):
        """Hold the writer lock; publish the events it produced once released."""
        async with self._events.deferred():
            async with self._lock:
                yield

    async def _ensure_valid(
        self,
        result: ValidationResult,
        entity_type: str,
        correlation_id: UUID,
    ) -> None:
        """Raise ValidationError (after auditing) if the result has errors."""
        if result.is_valid:
            return
        await self._audit_logger.log_validation_failed(
            entity_type=entity_type,
            issues=[issue.model_dump() for issue in result.issues],
            correlation_id=correlation_id,
        )
        raise ValidationError(result.message or "Validation failed", result.issues)

    async def _find_transaction(self, transaction_id: UUID) -> tuple[list[Transaction], int]:
        transactions = await self._repository.get_transactions()
        for index, transaction in enumerate(transactions):
            if transaction.id == transaction_id:
                return transactions, index
        raise NotFoundError("transaction", transaction_id)

    async def _apply_balance(self, transaction: Transaction, correlation_id: UUID) -> AccountState:
        try:
            return await self._balance.apply(transaction)
        except InsufficientBalanceError as e:
            await self._audit_logger.log_insufficient_balance(
                amount=e.amount,
                balance=e.balance,
                correlation_id=correlation_id,
            )
            raise

    async def _commit_transaction(
        self,
        transaction: Transaction,
        correlation_id: UUID,
        is_user_action: bool = True,
    ) -> Transaction:
        """
        The save path shared by user and autopay transactions.

        Balance first, then the transaction record, then budget
        aggregation (which raises threshold alerts), then events.
        """
        state = await self._apply_balance(transaction, correlation_id)

        transactions = await self._repository.get_transactions()
        transactions.append(transaction)
        await self._repository.save_transactions(transactions)

        await self._aggregator.on_transaction_applied(transaction)

        await self._audit_logger.log_transaction_saved(
            transaction_id=transaction.id,
            transaction_type=transaction.type.value,
            amount=transaction.amount,
            balance_after=state.balance,
            correlation_id=correlation_id,
            is_user_action=is_user_action,
        )
        payload = {"transaction_id": str(transaction.id)}
        await self._events.publish(LedgerEvent.TRANSACTION_ADDED, payload)
        await self._events.publish(LedgerEvent.BALANCE_CHANGED, {"balance": str(state.balance)})
        return transaction

    async def _commit_generated(self, transaction: Transaction, correlation_id: UUID) -> Transaction:
        """Save path for autopay runs: no date window, no lock (the pass holds it)."""
        draft = TransactionDraft(
            type=transaction.type,
            amount=transaction.amount,
            category_id=transaction.category_id,
            date=transaction.date,
        )
        categories = await self._repository.get_categories()
        result = self._validator.validate_transaction(draft, categories, check_date=False)
        await self._ensure_valid(result, "transaction", correlation_id)
        return await self._commit_transaction(transaction, correlation_id, is_user_action=False)

    # =========================================================================
    # Transactions
    # =========================================================================

    async def save_transaction(self, draft: TransactionDraft) -> Transaction:
        """
        Validate and record a transaction.

        Raises:
            ValidationError: If the draft is invalid
            InsufficientBalanceError: If an expense exceeds the balance
        """
        async with self._writing():
            correlation_id = create_correlation_id()
            categories = await self._repository.get_categories()
            result = self._validator.validate_transaction(draft, categories)
            await self._ensure_valid(result, "transaction", correlation_id)

            now = self._clock()
            transaction = Transaction(
                type=draft.type,
                amount=draft.amount,
                category_id=draft.category_id,
                date=draft.date or now.date(),
                description=draft.description,
                notes=draft.notes,
                payment_mode=draft.payment_mode,
                created_at=now,
                updated_at=now,
            )
            return await self._commit_transaction(transaction, correlation_id)

    async def update_transaction(
        self,
        transaction_id: UUID,
        patch: TransactionPatch,
    ) -> Transaction:
        """
        Edit a transaction: reverse the old effect, apply the new one.

        Raises:
            NotFoundError: If the transaction does not exist
            ValidationError: If the edited transaction is invalid
            InsufficientBalanceError: If the edit would drive balance negative
        """
        async with self._writing():
            correlation_id = create_correlation_id()
            transactions, index = await self._find_transaction(transaction_id)
            old = transactions[index]

            changes = patch.model_dump(exclude_none=True)
            merged = {**old.model_dump(), **changes, "updated_at": self._clock()}

            draft = TransactionDraft(
                type=merged["type"],
                amount=merged["amount"],
                category_id=merged["category_id"],
                date=merged["date"],
                description=merged["description"],
                notes=merged["notes"],
            )
            categories = await self._repository.get_categories()
            result = self._validator.validate_transaction(
                draft, categories, check_date=patch.date is not None
            )
            await self._ensure_valid(result, "transaction", correlation_id)
            new = Transaction.model_validate(merged)

            try:
                state = await self._balance.replace(old, new)
            except InsufficientBalanceError as e:
                await self._audit_logger.log_insufficient_balance(
                    amount=e.amount,
                    balance=e.balance,
                    correlation_id=correlation_id,
                )
                raise

            transactions[index] = new
            await self._repository.save_transactions(transactions)
            await self._aggregator.on_transaction_replaced(old, new)

            await self._audit_logger.log_transaction_updated(
                transaction_id=new.id,
                old_amount=old.amount,
                new_amount=new.amount,
                balance_after=state.balance,
                correlation_id=correlation_id,
            )
            await self._events.publish(
                LedgerEvent.TRANSACTION_UPDATED, {"transaction_id": str(new.id)}
            )
            await self._events.publish(LedgerEvent.BALANCE_CHANGED, {"balance": str(state.balance)})
            return new

    async def delete_transaction(self, transaction_id: UUID) -> None:
        """
        Delete a transaction and reverse its balance and budget effects.

        Raises:
            NotFoundError: If the transaction does not exist
            InsufficientBalanceError: If removing an income would leave a
                                     negative balance
        """
        async with self._writing():
            correlation_id = create_correlation_id()
            transactions, index = await self._find_transaction(transaction_id)
            transaction = transactions[index]

            try:
                state = await self._balance.reverse(transaction)
            except InsufficientBalanceError as e:
                await self._audit_logger.log_insufficient_balance(
                    amount=e.amount,
                    balance=e.balance,
                    correlation_id=correlation_id,
                )
                raise

            del transactions[index]
            await self._repository.save_transactions(transactions)
            await self._aggregator.on_transaction_applied(transaction, reverse=True)

            await self._audit_logger.log_transaction_deleted(
                transaction_id=transaction.id,
                amount=transaction.amount,
                balance_after=state.balance,
                correlation_id=correlation_id,
            )
            await self._events.publish(
                LedgerEvent.TRANSACTION_DELETED, {"transaction_id": str(transaction.id)}
            )
            await self._events.publish(LedgerEvent.BALANCE_CHANGED, {"balance": str(state.balance)})

    async def list_transactions(self, limit: Optional[int] = None) -> list[Transaction]:
        """Transactions, newest first."""
        return await self._insights.recent_transactions(limit)

    async def get_current_balance(self) -> Decimal:
        return await self._balance.get_balance()

    async def get_account_state(self) -> AccountState:
        return await self._balance.get_state()

    async def validate_transaction(self, draft: TransactionDraft) -> ValidationResult:
        """Check a draft without saving it, including the balance check."""
        categories = await self._repository.get_categories()
        balance = await self._balance.get_balance()
        return self._validator.validate_transaction(draft, categories, balance=balance)

    # =========================================================================
    # Budgets
    # =========================================================================

    async def save_budget(self, draft: BudgetDraft) -> Budget:
        """
        Create a budget for an expense category.

        Raises:
            ValidationError: If invalid, or the category already has an
                            active budget
        """
        async with self._writing():
            correlation_id = create_correlation_id()
            categories = await self._repository.get_categories()
            budgets = await self._repository.get_budgets()
            result = self._validator.validate_budget(draft, categories, budgets)
            await self._ensure_valid(result, "budget", correlation_id)

            budget = await self._aggregator.add_budget(draft, correlation_id)
            await self._events.publish(LedgerEvent.BUDGET_UPDATED, {"budget_id": str(budget.id)})
            return budget

    async def update_budget(self, budget_id: UUID, patch: BudgetPatch) -> Budget:
        async with self._writing():
            correlation_id = create_correlation_id()
            result = self._validator.validate_budget_patch(patch)
            await self._ensure_valid(result, "budget", correlation_id)

            budget = await self._aggregator.update_budget(budget_id, patch, correlation_id)
            await self._events.publish(LedgerEvent.BUDGET_UPDATED, {"budget_id": str(budget.id)})
            return budget

    async def delete_budget(self, budget_id: UUID) -> None:
        async with self._writing():
            correlation_id = create_correlation_id()
            await self._aggregator.delete_budget(budget_id, correlation_id)
            await self._events.publish(LedgerEvent.BUDGET_UPDATED, {"budget_id": str(budget_id)})

    async def reset_budget(self, budget_id: UUID) -> Budget:
        """Manually restart a budget's period from now."""
        async with self._writing():
            correlation_id = create_correlation_id()
            budget = await self._periods.reset_budget(budget_id, correlation_id)
            await self._events.publish(LedgerEvent.BUDGET_UPDATED, {"budget_id": str(budget.id)})
            return budget

    async def fetch_budgets(self) -> list[BudgetView]:
        return await self._periods.fetch_budgets()

    async def fetch_budget_summary(self) -> Optional[BudgetSummary]:
        """The last computed summary, or None when no budgets exist."""
        return await self._repository.get_budget_summary()

    # =========================================================================
    # Autopay
    # =========================================================================

    async def save_autopay_transaction(self, draft: AutopayDraft) -> AutopayDefinition:
        """
        Define a recurring transaction. The first run is due on the start
        date (default: today) and happens on the next scheduled pass.
        """
        async with self._writing():
            correlation_id = create_correlation_id()
            categories = await self._repository.get_categories()
            result = self._validator.validate_autopay(draft, categories)
            await self._ensure_valid(result, "autopay", correlation_id)

            now = self._clock()
            start = draft.start_date or now.date()
            definition = AutopayDefinition(
                description=draft.description,
                amount=draft.amount,
                type=draft.type,
                category_id=draft.category_id,
                payment_mode=draft.payment_mode,
                frequency=draft.frequency,
                start_date=start,
                end_date=draft.end_date,
                max_count=draft.max_count,
                next_execution_date=start,
                created_at=now,
            )
            return await self._autopay.register(definition, correlation_id)

    async def disable_autopay(self, autopay_id: UUID) -> AutopayDefinition:
        async with self._writing():
            correlation_id = create_correlation_id()
            definition = await self._autopay.disable(autopay_id, correlation_id)
            await self._events.publish(
                LedgerEvent.AUTOPAY_DISABLED, {"autopay_id": str(definition.id)}
            )
            return definition

    async def get_autopay_transactions(self) -> list[AutopayDefinition]:
        return await self._autopay.list_definitions()

    # =========================================================================
    # Scheduled tasks
    # =========================================================================

    async def process_scheduled_tasks(
        self,
        catch_up: Optional[bool] = None,
    ) -> ScheduledTaskReport:
        """
        Run the budget period pass, then the autopay pass.

        Meant to be called once per app startup or foreground. Holds the
        writer lock for the whole pass.

        Args:
            catch_up: Override the configured catch-up mode of both passes

        Raises:
            StorageError: If the record store fails mid-pass (audited first)
        """
        async with self._writing():
            correlation_id = create_correlation_id()
            try:
                budgets = await self._periods.process_expired_budgets(
                    correlation_id, catch_up=catch_up
                )
                autopays = await self._autopay.process_due(correlation_id, catch_up=catch_up)
            except StorageError as e:
                await self._audit_logger.log_error(
                    error_type="scheduled_tasks",
                    error_message=str(e),
                    correlation_id=correlation_id,
                    event_type=AuditEventType.STORAGE_ERROR,
                )
                raise

            await self._audit_logger.log_scheduled_tasks_processed(
                autopays_executed=autopays.executed,
                budgets_reset=budgets.reset,
                budgets_expired=budgets.expired,
                correlation_id=correlation_id,
            )
            return ScheduledTaskReport(
                autopays=autopays,
                budgets=budgets,
                correlation_id=correlation_id,
            )

    # =========================================================================
    # Categories
    # =========================================================================

    async def fetch_categories(self, type: Optional[TransactionType] = None) -> list[Category]:
        categories = await self._repository.get_categories()
        if type is not None:
            categories = [c for c in categories if c.type == type]
        return categories

    async def add_category(self, category: Category) -> Category:
        async with self._writing():
            categories = await self._repository.get_categories()
            if any(
                c.id == category.id or c.name.lower() == category.name.lower()
                for c in categories
            ):
                raise ValidationError(
                    f"Category already exists: {category.name}",
                    [ValidationIssue(
                        field="name",
                        issue_type="duplicate",
                        message=f"Category already exists: {category.name}",
                    )],
                )
            categories.append(category)
            await self._repository.save_categories(categories)
            return category

    async def update_category(self, category_id: str, patch: CategoryPatch) -> Category:
        async with self._writing():
            categories = await self._repository.get_categories()
            category = next((c for c in categories if c.id == category_id), None)
            if category is None:
                raise NotFoundError("category", category_id)
            for field, value in patch.model_dump(exclude_none=True).items():
                setattr(category, field, value)
            await self._repository.save_categories(categories)
            return category

    async def delete_category(self, category_id: str) -> None:
        """
        Remove a category. Refused while an active budget or autopay uses it;
        past transactions keep their category id.
        """
        async with self._writing():
            categories = await self._repository.get_categories()
            remaining = [c for c in categories if c.id != category_id]
            if len(remaining) == len(categories):
                raise NotFoundError("category", category_id)

            budgets = await self._repository.get_budgets()
            autopays = await self._repository.get_autopays()
            if any(b.is_active and b.category_id == category_id for b in budgets) or any(
                a.is_active and a.category_id == category_id for a in autopays
            ):
                raise ValidationError(
                    "Category is used by an active budget or autopay",
                    [ValidationIssue(
                        field="category_id",
                        issue_type="in_use",
                        message="Category is used by an active budget or autopay",
                    )],
                )
            await self._repository.save_categories(remaining)

    # =========================================================================
    # Notifications
    # =========================================================================

    async def get_notifications(self) -> list[Notification]:
        return await self._notifications.history()

    async def get_unread_count(self) -> int:
        return await self._notifications.unread_count()

    async def mark_notification_read(self, notification_id: UUID) -> Notification:
        async with self._writing():
            return await self._notifications.mark_read(notification_id)

    async def mark_all_notifications_read(self) -> int:
        async with self._writing():
            return await self._notifications.mark_all_read()

    async def clear_notifications(self) -> None:
        async with self._writing():
            await self._notifications.clear()

    async def get_notification_settings(self) -> NotificationSettings:
        return await self._notifications.get_settings()

    async def save_notification_settings(
        self,
        settings: NotificationSettings,
    ) -> NotificationSettings:
        async with self._writing():
            return await self._notifications.save_settings(settings)

    # =========================================================================
    # Goals
    # =========================================================================

    async def save_goal(self, draft: GoalDraft) -> Goal:
        async with self._writing():
            correlation_id = create_correlation_id()
            result = self._validator.validate_goal(draft)
            await self._ensure_valid(result, "goal", correlation_id)
            return await self._goals.save_goal(draft)

    async def fetch_goals(self) -> list[GoalProgress]:
        return await self._goals.fetch_goals()

    async def contribute_to_goal(self, goal_id: UUID, amount: Decimal) -> GoalProgress:
        async with self._writing():
            correlation_id = create_correlation_id()
            result = self._validator.validate_contribution(amount)
            await self._ensure_valid(result, "goal", correlation_id)
            return await self._goals.contribute(goal_id, amount)

    # =========================================================================
    # Insights
    # =========================================================================

    async def get_financial_insights(self) -> FinancialInsights:
        return await self._insights.financial_insights()

    async def get_spending_analytics(self, days: int = 30) -> SpendingAnalytics:
        return await self._insights.spending_analytics(days)

    async def get_expense_summary(self) -> list[ExpenseChartRow]:
        return await self._insights.expense_summary()


def create_app_components(
    use_storage: bool = True,
) -> tuple[FinanceService, Optional[GoogleSheetsClient]]:
    """
    Factory function to create a wired finance service.

    Args:
        use_storage: Whether to initialize the configured persistent
                    backend. Set to False for an in-memory service.

    Returns:
        (finance_service, sheets_client)
    """
    settings = get_settings()
    ledger_settings = settings.ledger
    logging.basicConfig(level=settings.app.log_level.upper())

    sheets_client = None
    store = None
    audit_logger = None

    if use_storage and ledger_settings.storage_backend == "google_sheets":
        try:
            sheets_client = GoogleSheetsClient()
            store = GoogleSheetsRecordStore(sheets_client)
            audit_logger = AuditLogger(GoogleSheetsAuditStorage(sheets_client))
        except Exception as e:
            # Storage not configured - continue without it
            logger.warning("storage_not_configured", error=str(e))
            sheets_client = None
            store = None

    if store is None:
        store = InMemoryRecordStore()
        audit_logger = AuditLogger(InMemoryAuditStorage())

    service = FinanceService(
        LedgerRepository(store),
        settings=ledger_settings,
        audit_logger=audit_logger,
    )
    return service, sheets_client
