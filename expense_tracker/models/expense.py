"""
Core Data Models for Expense Tracker

These models define the strict schemas for all data flowing through the system.
They are designed to:
1. Reject malformed create/update payloads with field-level errors
2. Keep money exact (Decimal, two fractional digits)
3. Be serializable for the HTTP API and for logging

Wire names are camelCase (``userId``, ``categoryBudgets``); Python
attributes are snake_case. Insert models forbid unknown fields, so a
client can never smuggle in ``id`` or timestamps.
"""

import json
from datetime import datetime
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Annotated, Any, Optional

from pydantic import (
    AfterValidator,
    BaseModel,
    BeforeValidator,
    ConfigDict,
    Field,
    field_validator,
)
from pydantic.alias_generators import to_camel


CENTS = Decimal("0.01")


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class BudgetType(str, Enum):
    """How often a budget resets."""
    MONTHLY = "monthly"
    DAILY = "daily"


class ExpenseMethod(str, Enum):
    """
    How an expense was captured.

    Voice expenses carry the speech transcript in ``voice_note``;
    receipt expenses carry the captured photo in ``receipt_url``.
    """
    MANUAL = "manual"
    VOICE = "voice"
    RECEIPT = "receipt"


# =============================================================================
# FIELD TYPES
# =============================================================================

def _reject_non_string_amount(v: Any) -> Any:
    """Amounts travel as strings; JSON numbers lose precision."""
    if isinstance(v, (bool, int, float)):
        raise ValueError('Amount must be a decimal string, e.g. "250.00"')
    return v


def _quantize(v: Decimal) -> Decimal:
    return v.quantize(CENTS)


def _to_local_naive(v: datetime) -> datetime:
    """Store timestamps as naive server-local time."""
    if v.tzinfo is not None:
        return v.astimezone().replace(tzinfo=None)
    return v


Amount = Annotated[
    Decimal,
    BeforeValidator(_reject_non_string_amount),
    Field(gt=0, max_digits=10, decimal_places=2),
    AfterValidator(_quantize),
]

LocalDatetime = Annotated[datetime, AfterValidator(_to_local_naive)]


def _now() -> datetime:
    return datetime.now()


class TrackerModel(BaseModel):
    """Base for every model exchanged over the API."""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
    )

    def to_api(self) -> dict[str, Any]:
        """JSON-ready dict with camelCase keys and Decimals as strings."""
        return self.model_dump(mode="json", by_alias=True)


class InsertModel(TrackerModel):
    """Base for create/update payloads: unknown fields are rejected."""
    model_config = ConfigDict(extra="forbid")


# =============================================================================
# USER
# =============================================================================

class UpsertUser(InsertModel):
    """
    Identity data confirmed by the identity provider.

    Only the fields actually set are written on conflict.
    """
    id: str = Field(..., min_length=1, max_length=255)
    email: Optional[str] = Field(default=None, max_length=255)
    first_name: Optional[str] = Field(default=None, max_length=255)
    last_name: Optional[str] = Field(default=None, max_length=255)
    profile_image_url: Optional[str] = Field(default=None, max_length=2048)


class User(TrackerModel):
    """A persisted user record."""
    id: str
    email: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    profile_image_url: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


# =============================================================================
# BUDGET
# =============================================================================

def _serialize_category_budgets(v: Any) -> Any:
    """
    Accept either the serialized text or a mapping, always keep text.

    The mapping is replaced as a whole; keys are category names and
    values are non-negative sub-limits.
    """
    if isinstance(v, dict):
        parsed = v
        text = json.dumps(v, default=str, sort_keys=True)
    elif isinstance(v, str):
        try:
            parsed = json.loads(v)
        except json.JSONDecodeError:
            raise ValueError("categoryBudgets must be a JSON object")
        text = v
    else:
        raise ValueError("categoryBudgets must be a JSON object or its text")

    if not isinstance(parsed, dict):
        raise ValueError("categoryBudgets must be a JSON object")

    for name, limit in parsed.items():
        if isinstance(limit, bool):
            raise ValueError(f"Invalid limit for category '{name}'")
        try:
            amount = Decimal(str(limit))
        except InvalidOperation:
            raise ValueError(f"Invalid limit for category '{name}'")
        if not amount.is_finite() or amount < 0:
            raise ValueError(f"Invalid limit for category '{name}'")

    return text


CategoryBudgets = Annotated[str, BeforeValidator(_serialize_category_budgets)]


class BudgetInsert(InsertModel):
    """Payload for creating a budget. ``user_id`` is injected by the server."""
    user_id: str = Field(..., min_length=1)
    type: BudgetType
    amount: Amount
    category_budgets: CategoryBudgets = Field(default="{}")


class BudgetUpdate(InsertModel):
    """
    Partial variant of BudgetInsert for PUT.

    Any subset of fields may be given. ``user_id`` is not accepted:
    the update is always scoped to the caller.
    """
    type: Optional[BudgetType] = None
    amount: Optional[Amount] = None
    category_budgets: Optional[CategoryBudgets] = None

    @field_validator('type', 'amount', 'category_budgets', mode='before')
    @classmethod
    def reject_explicit_null(cls, v: Any) -> Any:
        """Omit a field to leave it unchanged; null is not a value."""
        if v is None:
            raise ValueError("Field may be omitted but not null")
        return v

    def changes(self) -> dict[str, Any]:
        """Only the fields the client actually sent."""
        return self.model_dump(exclude_unset=True)


class Budget(TrackerModel):
    """A persisted budget."""
    id: int
    user_id: str
    type: BudgetType
    amount: Decimal
    category_budgets: str = "{}"
    created_at: datetime
    updated_at: datetime

    @property
    def category_limits(self) -> dict[str, Decimal]:
        """Parsed sub-limits per category."""
        return {
            name: Decimal(str(limit))
            for name, limit in json.loads(self.category_budgets or "{}").items()
        }


# =============================================================================
# EXPENSE
# =============================================================================

def _validate_receipt_url(v: Optional[str]) -> Optional[str]:
    """A receipt is a hosted image URL or an inline image captured by the camera."""
    if v is None or v == "":
        return None
    if v.startswith(("http://", "https://", "data:image/")):
        return v
    raise ValueError("receiptUrl must be an http(s) URL or a data:image payload")


class ExpenseInsert(InsertModel):
    """Payload for recording an expense. ``user_id`` is injected by the server."""
    user_id: str = Field(..., min_length=1)
    amount: Amount
    category: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = Field(default=None, max_length=1000)
    method: ExpenseMethod = ExpenseMethod.MANUAL
    receipt_url: Annotated[
        Optional[str], AfterValidator(_validate_receipt_url)
    ] = None
    voice_note: Optional[str] = Field(default=None, max_length=5000)
    date: LocalDatetime = Field(default_factory=_now)


class Expense(TrackerModel):
    """A persisted expense. Immutable once created."""
    id: int
    user_id: str
    amount: Decimal
    category: str
    description: Optional[str] = None
    method: ExpenseMethod = ExpenseMethod.MANUAL
    receipt_url: Optional[str] = None
    voice_note: Optional[str] = None
    date: datetime
    created_at: datetime


# =============================================================================
# CATEGORY
# =============================================================================

class CategoryInsert(InsertModel):
    """Payload for creating a category."""
    name: str = Field(..., min_length=1, max_length=100)
    icon: str = Field(..., min_length=1, max_length=100)
    color: str = Field(..., min_length=1, max_length=100)
    is_default: bool = False


class Category(TrackerModel):
    """A persisted category."""
    id: int
    name: str
    icon: str
    color: str
    is_default: bool = True


# =============================================================================
# ANALYTICS MODELS
# =============================================================================

class SpendingSummary(TrackerModel):
    """Spending over a period, overall and per category."""
    total_spent: Decimal
    category_spending: dict[str, Decimal] = Field(default_factory=dict)
    period: str
    start_date: datetime
    end_date: datetime


# =============================================================================
# VALIDATION MODELS
# =============================================================================

class ValidationIssue(TrackerModel):
    """A single validation issue found."""

    field: str = Field(
        ...,
        description="Field with the issue (wire name)"
    )
    issue_type: str = Field(
        ...,
        description="Type of issue (e.g., 'missing', 'decimal_parsing', 'unknown_category')"
    )
    message: str = Field(
        ...,
        description="Human-readable description of the issue"
    )
    severity: str = Field(
        default="error",
        pattern="^(error|warning)$",
    )
    suggested_fix: Optional[str] = None


class ValidationResult(TrackerModel):
    """Outcome of validating one payload."""

    is_valid: bool
    issues: list[ValidationIssue] = Field(default_factory=list)

    @property
    def has_errors(self) -> bool:
        return any(issue.severity == "error" for issue in self.issues)

    @property
    def errors(self) -> list[ValidationIssue]:
        return [i for i in self.issues if i.severity == "error"]

    @property
    def warnings(self) -> list[ValidationIssue]:
        return [i for i in self.issues if i.severity == "warning"]
