"""
Calendar arithmetic shared by the budget period engine and the autopay
scheduler.

Months are calendar months (dateutil.relativedelta), clamped to the last
day of a shorter month: Jan 31 + 1 month is Feb 28 (or 29). Each step is
taken from the previous boundary, so a month-end schedule drifts with
month length rather than snapping back.
"""

from datetime import date, datetime

from dateutil.relativedelta import relativedelta

from finguard.models import AutopayFrequency, Budget, BudgetPeriod, Transaction


BUDGET_PERIOD_STEPS: dict[BudgetPeriod, relativedelta] = {
    BudgetPeriod.DAILY: relativedelta(days=1),
    BudgetPeriod.WEEKLY: relativedelta(days=7),
    BudgetPeriod.MONTHLY: relativedelta(months=1),
    BudgetPeriod.QUARTERLY: relativedelta(months=3),
    BudgetPeriod.YEARLY: relativedelta(months=12),
}

AUTOPAY_STEPS: dict[AutopayFrequency, relativedelta] = {
    AutopayFrequency.DAILY: relativedelta(days=1),
    AutopayFrequency.WEEKLY: relativedelta(days=7),
    AutopayFrequency.MONTHLY: relativedelta(months=1),
}


def add_period(start: datetime, period: BudgetPeriod) -> datetime:
    """End of the budget window that begins at `start`."""
    return start + BUDGET_PERIOD_STEPS[period]


def calculate_next(current: date, frequency: AutopayFrequency) -> date:
    """The autopay execution date following `current`."""
    return current + AUTOPAY_STEPS[frequency]


def in_period_window(budget: Budget, transaction: Transaction) -> bool:
    """
    Whether a transaction counts toward the budget's current window.

    The window is [start_date, expiry_date). Transactions are dated by
    calendar day, so on a boundary day the transaction's creation time
    decides which side it falls on. Legacy budgets have no window and
    count everything.
    """
    if budget.expiry_date is None:
        return True

    start = budget.start_date
    if transaction.date < start.date():
        return False
    if transaction.date == start.date() and transaction.created_at < start:
        return False

    expiry = budget.expiry_date
    if transaction.date > expiry.date():
        return False
    if transaction.date == expiry.date() and transaction.created_at >= expiry:
        return False

    return True
