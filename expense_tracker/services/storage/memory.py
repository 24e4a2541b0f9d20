"""
In-Memory Storage Implementation

Used by the test-suite and when the app is started without a database.
Behaves like the SQLAlchemy backend: same ordering, same uniqueness
rule on (user_id, type), same inclusive date window.

A single lock guards every read and write, which also makes the user
upsert atomic. Reads copy what they need while holding it.
"""

import threading
from datetime import datetime
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
from expense_tracker.services.storage.interface import (
    DuplicateError,
    ExpenseStorageInterface,
)


class InMemoryExpenseStorage(ExpenseStorageInterface):
    """Dict-backed storage. Nothing survives a restart."""

    def __init__(self):
        self._lock = threading.Lock()
        self._users: dict[str, User] = {}
        self._budgets: dict[int, Budget] = {}
        self._expenses: dict[int, Expense] = {}
        self._categories: dict[int, Category] = {}
        self._next_id = {"budget": 1, "expense": 1, "category": 1}

    def _allocate_id(self, kind: str) -> int:
        new_id = self._next_id[kind]
        self._next_id[kind] += 1
        return new_id

    def _user_budgets(self, user_id: str) -> list[Budget]:
        # caller holds the lock
        return sorted(
            (b for b in self._budgets.values() if b.user_id == user_id),
            key=lambda b: b.id,
        )

    def _select_expenses(self, predicate) -> list[Expense]:
        with self._lock:
            expenses = [e for e in self._expenses.values() if predicate(e)]
        return sorted(expenses, key=lambda e: (e.date, e.id))

    # Users

    def get_user(self, user_id: str) -> Optional[User]:
        with self._lock:
            return self._users.get(user_id)

    def upsert_user(self, user: UpsertUser) -> User:
        now = datetime.now()
        provided = user.model_dump(exclude_unset=True)
        with self._lock:
            if provided.get("email"):
                for other in self._users.values():
                    if other.id != user.id and other.email == provided["email"]:
                        raise DuplicateError(f"User email already in use: {other.email}")

            existing = self._users.get(user.id)
            if existing is None:
                stored = User(**provided, created_at=now, updated_at=now)
            else:
                stored = existing.model_copy(update={**provided, "updated_at": now})
            self._users[user.id] = stored
            return stored

    # Budgets

    def get_budget(self, user_id: str) -> Optional[Budget]:
        with self._lock:
            budgets = self._user_budgets(user_id)
        return budgets[0] if budgets else None

    def create_budget(self, budget: BudgetInsert) -> Budget:
        now = datetime.now()
        with self._lock:
            for other in self._user_budgets(budget.user_id):
                if other.type == budget.type:
                    raise DuplicateError(
                        f"User {budget.user_id} already has a {budget.type.value} budget"
                    )
            stored = Budget(
                id=self._allocate_id("budget"),
                **budget.model_dump(),
                created_at=now,
                updated_at=now,
            )
            self._budgets[stored.id] = stored
            return stored

    def update_budget(self, user_id: str, updates: BudgetUpdate) -> Optional[Budget]:
        changes = updates.changes()
        now = datetime.now()
        with self._lock:
            targets = self._user_budgets(user_id)
            if not targets:
                return None

            # every matched row gets the same type, so two rows would collide
            if "type" in changes and len(targets) > 1:
                raise DuplicateError(
                    f"User {user_id} already has a budget of that type"
                )

            for budget in targets:
                self._budgets[budget.id] = budget.model_copy(
                    update={**changes, "updated_at": now}
                )
            return self._budgets[targets[0].id]

    # Expenses

    def get_expenses(self, user_id: str, limit: Optional[int] = None) -> list[Expense]:
        expenses = self._select_expenses(lambda e: e.user_id == user_id)
        return expenses[:limit] if limit else expenses

    def get_expenses_by_category(self, user_id: str, category: str) -> list[Expense]:
        return self._select_expenses(
            lambda e: e.user_id == user_id and e.category == category
        )

    def get_expenses_by_date_range(
        self,
        user_id: str,
        start: datetime,
        end: datetime,
    ) -> list[Expense]:
        return self._select_expenses(
            lambda e: e.user_id == user_id and start <= e.date <= end
        )

    def create_expense(self, expense: ExpenseInsert) -> Expense:
        with self._lock:
            stored = Expense(
                id=self._allocate_id("expense"),
                **expense.model_dump(),
                created_at=datetime.now(),
            )
            self._expenses[stored.id] = stored
            return stored

    # Categories

    def get_categories(self) -> list[Category]:
        with self._lock:
            return [self._categories[key] for key in sorted(self._categories)]

    def create_category(self, category: CategoryInsert) -> Category:
        with self._lock:
            stored = Category(id=self._allocate_id("category"), **category.model_dump())
            self._categories[stored.id] = stored
            return stored
