"""Services package."""

from expense_tracker.services.storage import (
    DatabaseClient,
    DuplicateError,
    ExpenseStorageInterface,
    InMemoryExpenseStorage,
    SQLAlchemyExpenseStorage,
    StorageConnectionError,
    StorageError,
)

__all__ = [
    # Storage services
    "DatabaseClient",
    "DuplicateError",
    "ExpenseStorageInterface",
    "InMemoryExpenseStorage",
    "SQLAlchemyExpenseStorage",
    "StorageConnectionError",
    "StorageError",
]
