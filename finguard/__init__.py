"""
FinGuard - Ledger Core

The consistency and scheduling engine behind a personal finance tracker:
account balance, budgets, recurring (autopay) transactions and the
notifications they raise.

DESIGN PRINCIPLES:
1. The balance never goes negative; offending operations are rejected
2. Fail early, fail visibly (validate before the first write)
3. Derived data (budget spent, summary) is rebuilt, never patched
4. Every mutation is auditable
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "FinGuard Team"
