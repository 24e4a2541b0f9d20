"""
Audit Models for Expense Tracker

Every significant action in the system is logged for audit purposes.
This provides:
1. Traceability of every write a user makes
2. Debugging information when things go wrong
3. The ability to reconstruct what happened to a budget

DESIGN DECISION: Audit events are emitted, never edited.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """
    Types of events we audit.

    Every write path has its own event type.
    """
    # Identity
    USER_SIGNED_IN = "user_signed_in"
    UNAUTHORIZED_REQUEST = "unauthorized_request"

    # Budgets
    BUDGET_CREATED = "budget_created"
    BUDGET_UPDATED = "budget_updated"
    BUDGET_NOT_FOUND = "budget_not_found"
    BUDGET_DUPLICATE = "budget_duplicate"

    # Expenses
    EXPENSE_CREATED = "expense_created"

    # Categories
    CATEGORY_CREATED = "category_created"
    CATEGORIES_SEEDED = "categories_seeded"

    # Validation
    VALIDATION_FAILED = "validation_failed"
    VALIDATION_WARNING = "validation_warning"

    # System events
    STORAGE_ERROR = "storage_error"
    SYSTEM_ERROR = "system_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AuditEvent(BaseModel):
    """
    A single audit event.

    This is the core unit of our audit trail.
    Every significant action creates one of these.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=_utcnow,
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType = Field(
        ...,
        description="Type of event"
    )
    severity: AuditSeverity = Field(
        default=AuditSeverity.INFO,
        description="Event severity"
    )

    # Context - what entity is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'budget', 'expense', 'user')"
    )
    entity_id: Optional[str] = Field(
        default=None,
        description="ID of the entity this event relates to"
    )
    user_id: Optional[str] = Field(
        default=None,
        description="Authenticated user who caused the event"
    )

    # Correlation - one id per HTTP request
    correlation_id: Optional[UUID] = None

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )
    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional event-specific data"
    )

    error_message: Optional[str] = None

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "user_id": self.user_id,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
        }


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.expense_created(expense, "₹250", correlation_id)
        event = AuditEventBuilder.storage_error("create_budget", str(e), user_id)
    """

    @staticmethod
    def user_signed_in(
        user_id: str,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.USER_SIGNED_IN,
            entity_type="user",
            entity_id=user_id,
            user_id=user_id,
            correlation_id=correlation_id,
            description="User session confirmed by identity provider",
        )

    @staticmethod
    def unauthorized_request(
        path: str,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.UNAUTHORIZED_REQUEST,
            severity=AuditSeverity.WARNING,
            correlation_id=correlation_id,
            description=f"Rejected unauthenticated request to {path}",
            details={"path": path},
        )

    @staticmethod
    def budget_created(
        budget_id: int,
        user_id: str,
        budget_type: str,
        display_amount: str,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.BUDGET_CREATED,
            entity_type="budget",
            entity_id=str(budget_id),
            user_id=user_id,
            correlation_id=correlation_id,
            description=f"{budget_type.capitalize()} budget set to {display_amount}",
            details={"type": budget_type},
        )

    @staticmethod
    def budget_updated(
        budget_id: int,
        user_id: str,
        changed_fields: list[str],
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.BUDGET_UPDATED,
            entity_type="budget",
            entity_id=str(budget_id),
            user_id=user_id,
            correlation_id=correlation_id,
            description=f"Budget updated: {', '.join(changed_fields) or 'no fields'}",
            details={"changed_fields": changed_fields},
        )

    @staticmethod
    def budget_not_found(
        user_id: str,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.BUDGET_NOT_FOUND,
            severity=AuditSeverity.WARNING,
            entity_type="budget",
            user_id=user_id,
            correlation_id=correlation_id,
            description="Budget update targeted a user with no budget",
        )

    @staticmethod
    def budget_duplicate(
        user_id: str,
        error_message: str,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.BUDGET_DUPLICATE,
            severity=AuditSeverity.WARNING,
            entity_type="budget",
            user_id=user_id,
            correlation_id=correlation_id,
            description="Budget of this type already exists",
            error_message=error_message,
        )

    @staticmethod
    def expense_created(
        expense_id: int,
        user_id: str,
        category: str,
        method: str,
        display_amount: str,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXPENSE_CREATED,
            entity_type="expense",
            entity_id=str(expense_id),
            user_id=user_id,
            correlation_id=correlation_id,
            description=f"Expense of {display_amount} recorded in {category}",
            details={
                "category": category,
                "method": method,
            },
        )

    @staticmethod
    def category_created(
        category_id: int,
        name: str,
        user_id: Optional[str] = None,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CATEGORY_CREATED,
            entity_type="category",
            entity_id=str(category_id),
            user_id=user_id,
            correlation_id=correlation_id,
            description=f"Category created: {name}",
        )

    @staticmethod
    def categories_seeded(names: list[str]) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CATEGORIES_SEEDED,
            entity_type="category",
            description=f"Seeded {len(names)} default categories",
            details={"names": names},
        )

    @staticmethod
    def validation_failed(
        entity_type: str,
        issues: list[dict],
        user_id: Optional[str] = None,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.VALIDATION_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type=entity_type,
            user_id=user_id,
            correlation_id=correlation_id,
            description=f"Rejected {entity_type} payload with {len(issues)} issues",
            details={"issues": issues},
        )

    @staticmethod
    def validation_warning(
        entity_type: str,
        issues: list[dict],
        user_id: Optional[str] = None,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.VALIDATION_WARNING,
            severity=AuditSeverity.INFO,
            entity_type=entity_type,
            user_id=user_id,
            correlation_id=correlation_id,
            description=f"Accepted {entity_type} payload with {len(issues)} warnings",
            details={"issues": issues},
        )

    @staticmethod
    def storage_error(
        operation: str,
        error_message: str,
        user_id: Optional[str] = None,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.STORAGE_ERROR,
            severity=AuditSeverity.ERROR,
            user_id=user_id,
            correlation_id=correlation_id,
            description=f"Storage operation failed: {operation}",
            error_message=error_message,
            details={"operation": operation},
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"System error: {error_type}",
            error_message=error_message,
            details=details or {},
            correlation_id=correlation_id,
        )
