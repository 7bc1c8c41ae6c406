"""
Balance Ledger

Owns the singleton AccountState and applies or reverses the effect of one
transaction at a time.

DESIGN DECISION: The non-negative balance invariant is enforced by
rejecting, never by clamping. An expense larger than the balance raises
InsufficientBalanceError before anything is written. The zero floor that
remains below only absorbs Decimal drift left by a partial failure.

An edit is reverse(old) followed by apply(new). Both steps are computed in
memory on the same snapshot and written once, so a rejected edit leaves
the stored state exactly as it was.
"""

from decimal import Decimal

import structlog

from finguard.ledger.errors import InsufficientBalanceError
from finguard.models import AccountState, Transaction, TransactionType
from finguard.services.storage import LedgerRepository


logger = structlog.get_logger("finguard.ledger.balance")

ZERO = Decimal("0.00")


class BalanceLedger:
    """Applies transactions to the account balance and monthly counters."""

    def __init__(self, repository: LedgerRepository):
        self._repository = repository

    # =========================================================================
    # Pure state transitions
    # =========================================================================

    @staticmethod
    def applied(state: AccountState, transaction: Transaction) -> AccountState:
        """
        State after recording a transaction.

        Raises:
            InsufficientBalanceError: If an expense exceeds the balance
        """
        if transaction.type == TransactionType.INCOME:
            return AccountState(
                balance=state.balance + transaction.amount,
                monthly_income=state.monthly_income + transaction.amount,
                monthly_expenses=state.monthly_expenses,
            )

        if transaction.amount > state.balance:
            raise InsufficientBalanceError(transaction.amount, state.balance)

        return AccountState(
            balance=max(state.balance - transaction.amount, ZERO),
            monthly_income=state.monthly_income,
            monthly_expenses=state.monthly_expenses + transaction.amount,
        )

    @staticmethod
    def reversed(state: AccountState, transaction: Transaction) -> AccountState:
        """
        State after undoing a previously applied transaction.

        Counters are floored at zero. Undoing an income that has already
        been spent would leave a negative balance and is rejected.

        Raises:
            InsufficientBalanceError: If an income reversal exceeds the balance
        """
        if transaction.type == TransactionType.EXPENSE:
            return AccountState(
                balance=state.balance + transaction.amount,
                monthly_income=state.monthly_income,
                monthly_expenses=max(state.monthly_expenses - transaction.amount, ZERO),
            )

        if transaction.amount > state.balance:
            raise InsufficientBalanceError(transaction.amount, state.balance)

        return AccountState(
            balance=max(state.balance - transaction.amount, ZERO),
            monthly_income=max(state.monthly_income - transaction.amount, ZERO),
            monthly_expenses=state.monthly_expenses,
        )

    # =========================================================================
    # Persisted operations
    # =========================================================================

    async def get_state(self) -> AccountState:
        return await self._repository.get_account_state()

    async def get_balance(self) -> Decimal:
        state = await self._repository.get_account_state()
        return state.balance

    async def check(self, transaction: Transaction) -> AccountState:
        """Compute the post-apply state without writing it."""
        state = await self._repository.get_account_state()
        return self.applied(state, transaction)

    async def apply(self, transaction: Transaction) -> AccountState:
        """Record a transaction's effect. Nothing is written if it is rejected."""
        state = await self._repository.get_account_state()
        new_state = self.applied(state, transaction)
        await self._repository.save_account_state(new_state)
        logger.debug(
            "balance_applied",
            transaction_id=str(transaction.id),
            balance=str(new_state.balance),
        )
        return new_state

    async def reverse(self, transaction: Transaction) -> AccountState:
        """Undo a transaction's effect."""
        state = await self._repository.get_account_state()
        new_state = self.reversed(state, transaction)
        await self._repository.save_account_state(new_state)
        logger.debug(
            "balance_reversed",
            transaction_id=str(transaction.id),
            balance=str(new_state.balance),
        )
        return new_state

    async def replace(self, old: Transaction, new: Transaction) -> AccountState:
        """
        Swap one transaction's effect for another's.

        Raises:
            InsufficientBalanceError: If either step would go negative
        """
        state = await self._repository.get_account_state()
        new_state = self.applied(self.reversed(state, old), new)
        await self._repository.save_account_state(new_state)
        return new_state
