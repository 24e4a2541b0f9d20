"""Spending analytics package."""

from expense_tracker.queries.analytics import SpendingAnalytics, SpendingPeriod, resolve_window

__all__ = ["SpendingAnalytics", "SpendingPeriod", "resolve_window"]
