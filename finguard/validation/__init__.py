"""Validation package."""

from finguard.validation.validator import LedgerValidator

__all__ = ["LedgerValidator"]
