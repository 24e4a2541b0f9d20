"""
Data Models Package

This package contains all Pydantic models used in the Expense Tracker.
All data flowing through the system must conform to these schemas.
"""

from expense_tracker.models.expense import (
    CENTS,
    Budget,
    BudgetInsert,
    BudgetType,
    BudgetUpdate,
    Category,
    CategoryInsert,
    Expense,
    ExpenseInsert,
    ExpenseMethod,
    SpendingSummary,
    UpsertUser,
    User,
    ValidationIssue,
    ValidationResult,
)
from expense_tracker.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Entity models
    "CENTS",
    "Budget",
    "BudgetInsert",
    "BudgetType",
    "BudgetUpdate",
    "Category",
    "CategoryInsert",
    "Expense",
    "ExpenseInsert",
    "ExpenseMethod",
    "SpendingSummary",
    "UpsertUser",
    "User",
    "ValidationIssue",
    "ValidationResult",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
