"""
Abstract Storage Interface

DESIGN DECISION: We define an abstract interface for storage operations.
This allows us to:
1. Run on SQLite locally and PostgreSQL in production
2. Use in-memory storage for testing
3. Keep request handling decoupled from storage implementation

The store is constructed once at startup and handed to the app factory.
Nothing reaches it through a module-level global.
"""

from abc import ABC, abstractmethod
from collections import defaultdict
from datetime import datetime
from decimal import Decimal
from typing import Optional

from expense_tracker.models.expense import (
    Budget,
    BudgetInsert,
    BudgetUpdate,
    Category,
    CategoryInsert,
    Expense,
    ExpenseInsert,
    UpsertUser,
    User,
)


class ExpenseStorageInterface(ABC):
    """
    Abstract interface for expense tracker storage.

    Any storage implementation (SQLAlchemy, in-memory, etc.)
    must implement these methods. The two aggregation queries are
    built on ``get_expenses_by_date_range`` and shared by all backends.
    """

    # ------------------------------------------------------------------
    # Users
    # ------------------------------------------------------------------

    @abstractmethod
    def get_user(self, user_id: str) -> Optional[User]:
        """
        Retrieve a user by id.

        Returns:
            The user if found, None otherwise
        """
        pass

    @abstractmethod
    def upsert_user(self, user: UpsertUser) -> User:
        """
        Insert a user, or overwrite the provided fields of an existing one.

        Must be a single conflict-resolving write, never read-then-write,
        so concurrent sign-ins cannot lose updates. Stamps ``updated_at``.

        Returns:
            The resulting row
        """
        pass

    # ------------------------------------------------------------------
    # Budgets
    # ------------------------------------------------------------------

    @abstractmethod
    def get_budget(self, user_id: str) -> Optional[Budget]:
        """
        Get the user's budget.

        Returns:
            The first budget for the user (lowest id), None if there is none
        """
        pass

    @abstractmethod
    def create_budget(self, budget: BudgetInsert) -> Budget:
        """
        Insert a budget.

        Raises:
            DuplicateError: If the user already has a budget of this type
            StorageError: If the insert fails
        """
        pass

    @abstractmethod
    def update_budget(self, user_id: str, updates: BudgetUpdate) -> Optional[Budget]:
        """
        Apply a partial update to the user's budget(s).

        Only fields set on ``updates`` change. Stamps ``updated_at``.
        Never creates a row.

        Returns:
            The updated budget, None if the user has no budget

        Raises:
            DuplicateError: If a type change collides with another budget
        """
        pass

    # ------------------------------------------------------------------
    # Expenses
    # ------------------------------------------------------------------

    @abstractmethod
    def get_expenses(self, user_id: str, limit: Optional[int] = None) -> list[Expense]:
        """
        List the user's expenses, oldest first.

        Args:
            user_id: Owner of the expenses
            limit: Maximum number of rows, None for all

        Returns:
            Expenses ordered by date ascending (id breaks ties)
        """
        pass

    @abstractmethod
    def get_expenses_by_category(self, user_id: str, category: str) -> list[Expense]:
        """List the user's expenses in one category, oldest first."""
        pass

    @abstractmethod
    def get_expenses_by_date_range(
        self,
        user_id: str,
        start: datetime,
        end: datetime,
    ) -> list[Expense]:
        """
        List the user's expenses with ``start <= date <= end``, oldest first.

        Both bounds are inclusive.
        """
        pass

    @abstractmethod
    def create_expense(self, expense: ExpenseInsert) -> Expense:
        """Insert an expense and return the stored row."""
        pass

    # ------------------------------------------------------------------
    # Categories
    # ------------------------------------------------------------------

    @abstractmethod
    def get_categories(self) -> list[Category]:
        """List every category in a stable order (by id)."""
        pass

    @abstractmethod
    def create_category(self, category: CategoryInsert) -> Category:
        """Insert a category and return the stored row."""
        pass

    # ------------------------------------------------------------------
    # Analytics
    # ------------------------------------------------------------------

    def get_total_spent_by_category(
        self,
        user_id: str,
        start: datetime,
        end: datetime,
    ) -> dict[str, Decimal]:
        """
        Sum of expense amounts per category within the window.

        A category appears only if it has at least one expense in the window.
        """
        totals: dict[str, Decimal] = defaultdict(Decimal)
        for expense in self.get_expenses_by_date_range(user_id, start, end):
            totals[expense.category] += expense.amount
        return dict(totals)

    def get_total_spent(
        self,
        user_id: str,
        start: datetime,
        end: datetime,
    ) -> Decimal:
        """Sum of all expense amounts within the window."""
        return sum(
            (e.amount for e in self.get_expenses_by_date_range(user_id, start, end)),
            Decimal("0.00"),
        )


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class DuplicateError(StorageError):
    """Attempted to insert a duplicate entity."""
    pass


class StorageConnectionError(StorageError):
    """Could not connect to storage backend."""
    pass
