"""
Tests for the storage backends.

Every test in this module runs against the in-memory store and the
SQLAlchemy store (SQLite in memory); both must behave identically.
"""

import threading
import time
from datetime import datetime, timedelta
from decimal import Decimal

import pytest

from expense_tracker.models import (
    BudgetInsert,
    BudgetType,
    BudgetUpdate,
    CategoryInsert,
    ExpenseInsert,
    ExpenseMethod,
    UpsertUser,
)
from expense_tracker.services.storage import DuplicateError

from conftest import OTHER_USER_ID, USER_ID


def make_expense(amount="100.00", category="Groceries", date=None, user_id=USER_ID, **kwargs):
    return ExpenseInsert(
        user_id=user_id,
        amount=amount,
        category=category,
        date=date or datetime.now(),
        **kwargs,
    )


class TestUsers:
    """Tests for the user upsert."""

    def test_get_missing_user(self, store):
        assert store.get_user("nobody") is None

    def test_upsert_creates_user(self, store):
        user = store.upsert_user(UpsertUser(id=USER_ID, email="asha@example.com"))
        assert user.id == USER_ID
        assert user.email == "asha@example.com"
        assert user.created_at is not None
        assert store.get_user(USER_ID) == user

    def test_upsert_only_overwrites_provided_fields(self, store):
        """A second sign-in without an email keeps the stored one."""
        first = store.upsert_user(UpsertUser(
            id=USER_ID, email="asha@example.com", first_name="Asha",
        ))
        second = store.upsert_user(UpsertUser(id=USER_ID, first_name="Asha R"))

        assert second.email == "asha@example.com"
        assert second.first_name == "Asha R"
        assert second.created_at == first.created_at
        assert second.updated_at >= first.updated_at

    def test_email_is_unique(self, store):
        store.upsert_user(UpsertUser(id=USER_ID, email="shared@example.com"))
        with pytest.raises(DuplicateError):
            store.upsert_user(UpsertUser(id=OTHER_USER_ID, email="shared@example.com"))


class TestBudgets:
    """Tests for budget persistence."""

    def test_no_budget(self, store):
        assert store.get_budget(USER_ID) is None

    def test_create_budget(self, store):
        budget = store.create_budget(BudgetInsert(
            user_id=USER_ID,
            type="monthly",
            amount="5000",
            category_budgets={"Groceries": "2000"},
        ))
        assert budget.id is not None
        assert budget.type == BudgetType.MONTHLY
        assert budget.amount == Decimal("5000.00")
        assert budget.category_limits == {"Groceries": Decimal("2000")}
        assert budget.created_at == budget.updated_at
        assert store.get_budget(USER_ID) == budget

    def test_duplicate_type_is_rejected(self, store):
        """A user has at most one budget of each type."""
        store.create_budget(BudgetInsert(user_id=USER_ID, type="monthly", amount="5000"))
        with pytest.raises(DuplicateError):
            store.create_budget(BudgetInsert(user_id=USER_ID, type="monthly", amount="100"))

    def test_other_type_and_other_user_allowed(self, store):
        store.create_budget(BudgetInsert(user_id=USER_ID, type="monthly", amount="5000"))
        store.create_budget(BudgetInsert(user_id=USER_ID, type="daily", amount="200"))
        store.create_budget(BudgetInsert(user_id=OTHER_USER_ID, type="monthly", amount="1"))

    def test_get_budget_returns_first_created(self, store):
        monthly = store.create_budget(BudgetInsert(user_id=USER_ID, type="monthly", amount="5000"))
        store.create_budget(BudgetInsert(user_id=USER_ID, type="daily", amount="200"))
        assert store.get_budget(USER_ID).id == monthly.id

    def test_update_budget(self, store):
        created = store.create_budget(BudgetInsert(user_id=USER_ID, type="monthly", amount="5000"))
        time.sleep(0.01)
        updated = store.update_budget(USER_ID, BudgetUpdate(amount="6000"))

        assert updated.id == created.id
        assert updated.amount == Decimal("6000.00")
        assert updated.type == BudgetType.MONTHLY
        assert updated.created_at == created.created_at
        assert updated.updated_at > created.created_at

    def test_update_replaces_category_budgets_whole(self, store):
        store.create_budget(BudgetInsert(
            user_id=USER_ID, type="monthly", amount="5000",
            category_budgets={"Groceries": "2000", "Petrol": "500"},
        ))
        updated = store.update_budget(
            USER_ID, BudgetUpdate(category_budgets={"Health": "300"})
        )
        assert updated.category_limits == {"Health": Decimal("300")}

    def test_update_without_budget_creates_nothing(self, store):
        """Updating a missing budget reports not-found and stays a no-op."""
        assert store.update_budget(USER_ID, BudgetUpdate(amount="6000")) is None
        assert store.get_budget(USER_ID) is None

    def test_update_only_touches_own_budget(self, store):
        store.create_budget(BudgetInsert(user_id=USER_ID, type="monthly", amount="5000"))
        other = store.create_budget(BudgetInsert(user_id=OTHER_USER_ID, type="monthly", amount="10"))

        store.update_budget(USER_ID, BudgetUpdate(amount="6000"))
        assert store.get_budget(OTHER_USER_ID).amount == other.amount


class TestExpenses:
    """Tests for expense persistence and queries."""

    def test_create_expense(self, store):
        expense = store.create_expense(make_expense(
            amount="250.00",
            method="voice",
            voice_note="two fifty on groceries",
            description="weekly shop",
        ))
        assert expense.id is not None
        assert expense.amount == Decimal("250.00")
        assert expense.method == ExpenseMethod.VOICE
        assert expense.voice_note == "two fifty on groceries"
        assert store.get_expenses(USER_ID) == [expense]

    def test_expenses_ordered_by_date(self, store):
        base = datetime(2026, 10, 10, 12, 0)
        late = store.create_expense(make_expense(date=base + timedelta(days=2)))
        early = store.create_expense(make_expense(date=base))
        middle = store.create_expense(make_expense(date=base + timedelta(days=1)))

        assert [e.id for e in store.get_expenses(USER_ID)] == [early.id, middle.id, late.id]

    def test_limit(self, store):
        base = datetime(2026, 10, 10, 12, 0)
        for day in range(3):
            store.create_expense(make_expense(date=base + timedelta(days=day)))

        assert len(store.get_expenses(USER_ID, limit=2)) == 2
        assert len(store.get_expenses(USER_ID, limit=None)) == 3

    def test_expenses_are_scoped_to_user(self, store):
        store.create_expense(make_expense())
        store.create_expense(make_expense(user_id=OTHER_USER_ID))
        assert all(e.user_id == USER_ID for e in store.get_expenses(USER_ID))
        assert len(store.get_expenses(USER_ID)) == 1

    def test_by_category(self, store):
        store.create_expense(make_expense(category="Groceries"))
        store.create_expense(make_expense(category="Petrol"))
        store.create_expense(make_expense(category="Groceries", user_id=OTHER_USER_ID))

        found = store.get_expenses_by_category(USER_ID, "Groceries")
        assert [e.category for e in found] == ["Groceries"]
        assert store.get_expenses_by_category(USER_ID, "Health") == []


class TestDateRange:
    """Tests for the date window used by analytics."""

    def test_range_excludes_outside_dates(self, store):
        """Both bounds are enforced, not just the upper one."""
        store.create_expense(make_expense(amount="1.00", date=datetime(2026, 10, 1)))
        inside = store.create_expense(make_expense(amount="2.00", date=datetime(2026, 10, 10)))
        store.create_expense(make_expense(amount="4.00", date=datetime(2026, 10, 20)))

        found = store.get_expenses_by_date_range(
            USER_ID, datetime(2026, 10, 5), datetime(2026, 10, 15)
        )
        assert [e.id for e in found] == [inside.id]

    def test_range_is_inclusive(self, store):
        start = datetime(2026, 10, 1)
        end = datetime(2026, 10, 18, 12, 0)
        store.create_expense(make_expense(date=start))
        store.create_expense(make_expense(date=end))

        assert len(store.get_expenses_by_date_range(USER_ID, start, end)) == 2

    def test_totals_are_exact(self, store):
        """0.10 + 0.20 is exactly 0.30."""
        when = datetime(2026, 10, 10)
        store.create_expense(make_expense(amount="0.10", category="Health", date=when))
        store.create_expense(make_expense(amount="0.20", category="Health", date=when))

        total = store.get_total_spent(USER_ID, datetime(2026, 10, 1), datetime(2026, 10, 31))
        assert total == Decimal("0.30")

    def test_category_totals_sum_to_total(self, store):
        when = datetime(2026, 10, 10)
        store.create_expense(make_expense(amount="250.00", category="Groceries", date=when))
        store.create_expense(make_expense(amount="99.99", category="Groceries", date=when))
        store.create_expense(make_expense(amount="500.50", category="Petrol", date=when))
        store.create_expense(make_expense(amount="1000.00", category="Petrol", date=datetime(2026, 9, 1)))

        start, end = datetime(2026, 10, 1), datetime(2026, 10, 31)
        by_category = store.get_total_spent_by_category(USER_ID, start, end)

        assert by_category == {
            "Groceries": Decimal("349.99"),
            "Petrol": Decimal("500.50"),
        }
        assert sum(by_category.values()) == store.get_total_spent(USER_ID, start, end)

    def test_empty_window(self, store):
        start, end = datetime(2026, 10, 1), datetime(2026, 10, 31)
        assert store.get_total_spent(USER_ID, start, end) == Decimal("0")
        assert store.get_total_spent_by_category(USER_ID, start, end) == {}


class TestCategories:
    """Tests for the shared category list."""

    def test_empty(self, store):
        assert store.get_categories() == []

    def test_create_and_list_in_order(self, store):
        rent = store.create_category(CategoryInsert(name="Rent", icon="fas fa-home", color="text-gray-600"))
        pets = store.create_category(CategoryInsert(
            name="Pets", icon="fas fa-paw", color="text-amber-600", is_default=True,
        ))

        categories = store.get_categories()
        assert [c.id for c in categories] == [rent.id, pets.id]
        assert categories[0].is_default is False
        assert categories[1].is_default is True


class TestInMemoryConcurrency:
    """The in-memory store is shared by every request thread."""

    def test_reads_during_writes(self, memory_store):
        errors = []
        writing = threading.Event()

        def writer():
            writing.set()
            for _ in range(500):
                memory_store.create_expense(make_expense())

        def reader():
            writing.wait()
            try:
                for _ in range(200):
                    memory_store.get_expenses(USER_ID)
                    memory_store.get_expenses_by_category(USER_ID, "Groceries")
                    memory_store.get_total_spent(USER_ID, datetime.min, datetime.max)
            except Exception as e:  # collected for the assertion below
                errors.append(e)

        threads = [threading.Thread(target=writer)]
        threads += [threading.Thread(target=reader) for _ in range(4)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert errors == []
        assert len(memory_store.get_expenses(USER_ID)) == 500
