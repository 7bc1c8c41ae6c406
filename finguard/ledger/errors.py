"""
Ledger Exceptions

Every error the ledger raises on purpose derives from LedgerError. Storage
failures are not wrapped: they surface as StorageError from the storage
package, unchanged.
"""

from decimal import Decimal
from typing import Optional

from finguard.models import ValidationIssue


class LedgerError(Exception):
    """Base exception for ledger operations."""
    pass


class ValidationError(LedgerError):
    """
    Input was malformed or out of range.

    Raised before any mutation; state is untouched.
    """

    def __init__(self, message: str, issues: Optional[list[ValidationIssue]] = None):
        super().__init__(message)
        self.issues = issues or []


class InsufficientBalanceError(LedgerError):
    """An operation would drive the balance below zero."""

    def __init__(self, amount: Decimal, balance: Decimal):
        super().__init__(
            f"Insufficient balance: {amount} requested, {balance} available"
        )
        self.amount = amount
        self.balance = balance


class NotFoundError(LedgerError):
    """Requested record does not exist."""

    def __init__(self, entity_type: str, entity_id: object):
        super().__init__(f"{entity_type.capitalize()} not found: {entity_id}")
        self.entity_type = entity_type
        self.entity_id = entity_id
