"""
Autopay Models for FinGuard

An AutopayDefinition is a transaction template plus a schedule. The
scheduler materializes it into concrete transactions; definitions are
never deleted, only deactivated, so their history stays readable.
"""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Annotated, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field

from finguard.models.ledger import DESCRIPTION_MAX_LENGTH, PaymentMode, TransactionType, utc_now


class AutopayFrequency(str, Enum):
    """How often an autopay definition fires."""
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"


class AutopayDefinition(BaseModel):
    """
    A recurring transaction definition.

    State machine: active -> (scheduled passes) -> inactive. Inactive is
    terminal; the scheduler never reactivates a definition.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: UUID = Field(default_factory=uuid4)

    # Template fields copied onto every materialized transaction
    description: Optional[str] = Field(default=None, max_length=DESCRIPTION_MAX_LENGTH)
    amount: Annotated[Decimal, Field(gt=0, decimal_places=2)]
    type: TransactionType = TransactionType.EXPENSE
    category_id: str = Field(..., min_length=1)
    payment_mode: PaymentMode = PaymentMode.BANK_TRANSFER

    # Schedule
    frequency: AutopayFrequency
    start_date: date
    end_date: Optional[date] = None
    max_count: Optional[int] = Field(default=None, ge=1)

    is_active: bool = True
    next_execution_date: date
    execution_count: int = Field(default=0, ge=0)
    failed_attempts: int = Field(default=0, ge=0)
    last_executed_at: Optional[datetime] = None
    deactivated_at: Optional[datetime] = None

    created_at: datetime = Field(default_factory=utc_now)

    def termination_reached(self, today: Optional[date] = None) -> bool:
        """
        True once the next run falls after the end date or the cap is used up.

        A run that already failed is abandoned once `today` is past the
        end date.
        """
        if (
            today is not None
            and self.failed_attempts > 0
            and self.end_date is not None
            and today > self.end_date
        ):
            return True
        if self.end_date is not None and self.next_execution_date > self.end_date:
            return True
        if self.max_count is not None and self.execution_count >= self.max_count:
            return True
        return False


class AutopayDraft(BaseModel):
    """An autopay definition as submitted by the caller."""
    model_config = ConfigDict(str_strip_whitespace=True)

    description: Optional[str] = None
    amount: Decimal
    type: TransactionType = TransactionType.EXPENSE
    category_id: str = ""
    payment_mode: PaymentMode = PaymentMode.BANK_TRANSFER
    frequency: AutopayFrequency = AutopayFrequency.MONTHLY
    start_date: Optional[date] = Field(
        default=None,
        description="Defaults to today when omitted"
    )
    end_date: Optional[date] = None
    max_count: Optional[int] = None


class AutopayPassResult(BaseModel):
    """Bookkeeping returned by one autopay pass."""

    executed: int = 0
    deactivated: int = 0
    failed: int = 0
    transaction_ids: list[UUID] = Field(default_factory=list)
