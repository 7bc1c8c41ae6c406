"""Savings goal models."""

from datetime import date, datetime
from decimal import Decimal
from typing import Annotated, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field

from finguard.models.ledger import Money, utc_now


GOAL_NAME_MAX_LENGTH = 100


class Goal(BaseModel):
    """A savings target tracked independently of the account balance."""
    model_config = ConfigDict(str_strip_whitespace=True)

    id: UUID = Field(default_factory=uuid4)
    name: str = Field(..., min_length=1, max_length=GOAL_NAME_MAX_LENGTH)
    target_amount: Annotated[Decimal, Field(gt=0, decimal_places=2)]
    current_amount: Money = Decimal("0.00")
    deadline: Optional[date] = None
    created_at: datetime = Field(default_factory=utc_now)


class GoalDraft(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = ""
    target_amount: Decimal
    current_amount: Decimal = Decimal("0.00")
    deadline: Optional[date] = None


class GoalProgress(BaseModel):
    """A goal with its progress derived at read time."""

    goal: Goal
    progress_percentage: float = Field(..., ge=0.0, le=100.0)
    remaining: Decimal
    days_left: Optional[int] = None
