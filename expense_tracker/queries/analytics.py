"""
Spending Analytics

DESIGN DECISION: Analytics are computed from stored expenses only.
The window is resolved here; the sums come from the storage
aggregation queries, which reduce with Decimal.

Periods:
- "day"   -> from local midnight today until now
- "month" -> from the first of the current month until now
Anything else falls back to "month".
"""

from datetime import datetime
from enum import Enum
from typing import Optional

from expense_tracker.models.expense import SpendingSummary
from expense_tracker.services.storage import ExpenseStorageInterface


class SpendingPeriod(str, Enum):
    DAY = "day"
    MONTH = "month"

    @classmethod
    def parse(cls, value: Optional[str]) -> "SpendingPeriod":
        """Only the exact value "day" selects today; anything else is the current month."""
        return cls.DAY if value == cls.DAY.value else cls.MONTH


def resolve_window(
    period: SpendingPeriod,
    now: Optional[datetime] = None,
) -> tuple[datetime, datetime]:
    """
    Start and end of a period in server-local time.

    The end is always ``now``.
    """
    now = now or datetime.now()
    midnight = now.replace(hour=0, minute=0, second=0, microsecond=0)
    if period == SpendingPeriod.DAY:
        return midnight, now
    return midnight.replace(day=1), now


class SpendingAnalytics:
    """Builds spending summaries for one user at a time."""

    def __init__(self, storage: ExpenseStorageInterface):
        self._storage = storage

    def summarize(
        self,
        user_id: str,
        period: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> SpendingSummary:
        """
        Total and per-category spending for the period.

        Raises:
            StorageError: If either aggregation query fails
        """
        resolved = SpendingPeriod.parse(period)
        start, end = resolve_window(resolved, now)

        total = self._storage.get_total_spent(user_id, start, end)
        by_category = self._storage.get_total_spent_by_category(user_id, start, end)

        return SpendingSummary(
            total_spent=total,
            category_spending=by_category,
            period=resolved.value,
            start_date=start,
            end_date=end,
        )
