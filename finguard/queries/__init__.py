"""Insight query package."""

from finguard.queries.insights import InsightsQuery

__all__ = ["InsightsQuery"]
