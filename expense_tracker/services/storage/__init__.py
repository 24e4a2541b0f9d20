"""
Storage Services Package

Provides the abstract storage interface and its implementations.
SQLAlchemy is the production backend; the in-memory store backs tests.
"""

from expense_tracker.services.storage.interface import (
    DuplicateError,
    ExpenseStorageInterface,
    StorageConnectionError,
    StorageError,
)
from expense_tracker.services.storage.database import (
    DatabaseClient,
    SQLAlchemyExpenseStorage,
)
from expense_tracker.services.storage.memory import InMemoryExpenseStorage

__all__ = [
    # Interface
    "ExpenseStorageInterface",
    # Exceptions
    "DuplicateError",
    "StorageConnectionError",
    "StorageError",
    # Implementations
    "DatabaseClient",
    "InMemoryExpenseStorage",
    "SQLAlchemyExpenseStorage",
]
