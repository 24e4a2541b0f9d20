"""
Main Orchestrator for Expense Tracker

Ties the components together:
1. Store (SQLAlchemy, or in-memory when running without a database)
2. Validator, analytics and audit logger built on that store
3. Identity provider
4. Default category seeding

DESIGN DECISION: Components are built once here and handed to the
app factory. Request handlers reach them through the Flask app,
never through module globals, so tests can swap in fakes.
"""

from dataclasses import dataclass
from typing import Optional

from expense_tracker.api.auth import HeaderIdentityProvider, IdentityProvider
from expense_tracker.audit import AuditLogger
from expense_tracker.config import DatabaseSettings, get_settings
from expense_tracker.models.audit import AuditEventBuilder
from expense_tracker.models.expense import Category, CategoryInsert
from expense_tracker.presentation import CATEGORY_ICONS
from expense_tracker.queries import SpendingAnalytics
from expense_tracker.services.storage import (
    DatabaseClient,
    ExpenseStorageInterface,
    InMemoryExpenseStorage,
    SQLAlchemyExpenseStorage,
)
from expense_tracker.validation import PayloadValidator


@dataclass
class AppComponents:
    """Everything a request handler needs."""

    store: ExpenseStorageInterface
    validator: PayloadValidator
    analytics: SpendingAnalytics
    identity_provider: IdentityProvider
    audit: AuditLogger


def seed_default_categories(
    store: ExpenseStorageInterface,
    audit: Optional[AuditLogger] = None,
) -> list[Category]:
    """
    Insert the default categories if the store has none.

    Existing categories are never replaced.

    Returns:
        The categories that were created (empty if any already existed)
    """
    if store.get_categories():
        return []

    created = [
        store.create_category(CategoryInsert(
            name=icon.name,
            icon=icon.icon,
            color=icon.color,
            is_default=True,
        ))
        for icon in CATEGORY_ICONS.values()
    ]

    if audit:
        audit.log(AuditEventBuilder.categories_seeded([c.name for c in created]))
    return created


def create_store(
    use_storage: bool = True,
    database_settings: Optional[DatabaseSettings] = None,
) -> ExpenseStorageInterface:
    """
    Build the store handle.

    With ``use_storage=False`` everything lives in memory.
    """
    if not use_storage:
        return InMemoryExpenseStorage()

    client = DatabaseClient(database_settings or get_settings().database)
    client.create_schema()
    return SQLAlchemyExpenseStorage(client)


def create_app_components(
    use_storage: bool = True,
    store: Optional[ExpenseStorageInterface] = None,
    identity_provider: Optional[IdentityProvider] = None,
    seed_categories: Optional[bool] = None,
) -> AppComponents:
    """
    Create and wire all application components.

    Args:
        use_storage: Use the configured database; in-memory otherwise
        store: Pre-built store, overrides ``use_storage``
        identity_provider: Defaults to the reverse-proxy header provider
        seed_categories: Defaults to the ``seed_default_categories`` setting
    """
    audit = AuditLogger()
    store = store or create_store(use_storage)

    if seed_categories is None:
        seed_categories = get_settings().app.seed_default_categories
    if seed_categories:
        seed_default_categories(store, audit)

    return AppComponents(
        store=store,
        validator=PayloadValidator(store),
        analytics=SpendingAnalytics(store),
        identity_provider=identity_provider or HeaderIdentityProvider(),
        audit=audit,
    )
