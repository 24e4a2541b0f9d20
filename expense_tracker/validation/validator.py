"""
Two-Stage Payload Validation

STAGE 1 - SCHEMA VALIDATION:
- Type checking (amounts must be decimal strings)
- Required field presence
- Closed sets for budget type and expense method
- Unknown fields (including id and timestamps) are rejected
Any issue here is an error and the payload is refused.

STAGE 2 - SEMANTIC VALIDATION (expenses only):
- Category not among the known categories
- Voice expense without a transcript
- Receipt expense without a receipt image
Issues here are warnings. They are reported, never block creation.

IMPORTANT: Validation NEVER silently fixes issues.
"""

from typing import Any, Optional, TypeVar

import structlog
from pydantic import BaseModel, ValidationError

from expense_tracker.models.expense import (
    BudgetInsert,
    BudgetUpdate,
    CategoryInsert,
    ExpenseInsert,
    ExpenseMethod,
    ValidationIssue,
    ValidationResult,
)
from expense_tracker.services.storage import ExpenseStorageInterface, StorageError


ModelT = TypeVar("ModelT", bound=BaseModel)

logger = structlog.get_logger(__name__)


class PayloadValidationError(Exception):
    """A create/update payload failed schema validation."""

    def __init__(self, entity_type: str, result: ValidationResult):
        self.entity_type = entity_type
        self.result = result
        super().__init__(
            f"Invalid {entity_type} data: {len(result.errors)} error(s)"
        )

    @property
    def issues(self) -> list[ValidationIssue]:
        return self.result.errors


class PayloadValidator:
    """
    Validates request bodies into insert models.

    Stage 1: Schema validation (can run without storage)
    Stage 2: Semantic validation (uses storage for the category check)
    """

    def __init__(
        self,
        storage: Optional[ExpenseStorageInterface] = None,
    ):
        """
        Initialize validator.

        Args:
            storage: Storage interface for the known-category check.
                     If None, that check is skipped.
        """
        self._storage = storage

    def _validate_schema(
        self,
        model_cls: type[ModelT],
        payload: Any,
    ) -> tuple[Optional[ModelT], list[ValidationIssue]]:
        """
        Stage 1: Schema validation.

        Returns: (model or None, list_of_issues)
        """
        if not isinstance(payload, dict):
            return None, [ValidationIssue(
                field="body",
                issue_type="invalid_type",
                message="Request body must be a JSON object",
            )]

        try:
            return model_cls.model_validate(payload), []
        except ValidationError as e:
            issues = [
                ValidationIssue(
                    field=".".join(str(part) for part in err["loc"]) or "body",
                    issue_type=err["type"],
                    message=err["msg"],
                )
                for err in e.errors()
            ]
            return None, issues

    def _known_categories(self) -> Optional[set[str]]:
        if self._storage is None:
            return None
        try:
            return {c.name for c in self._storage.get_categories()}
        except StorageError as e:
            # Don't fail validation due to storage errors
            logger.warning("category_lookup_failed", error=str(e))
            return None

    def _validate_semantic_expense(
        self,
        expense: ExpenseInsert,
    ) -> list[ValidationIssue]:
        """
        Stage 2: Semantic validation for expenses.

        Returns: list of warnings
        """
        issues = []

        known = self._known_categories()
        if known is not None and expense.category not in known:
            issues.append(ValidationIssue(
                field="category",
                issue_type="unknown_category",
                message=f"Category '{expense.category}' is not a known category",
                severity="warning",
                suggested_fix="Pick one of the categories from GET /categories",
            ))

        if expense.method == ExpenseMethod.VOICE and not expense.voice_note:
            issues.append(ValidationIssue(
                field="voiceNote",
                issue_type="missing_transcript",
                message="Voice expense has no voice note",
                severity="warning",
            ))

        if expense.method == ExpenseMethod.RECEIPT and not expense.receipt_url:
            issues.append(ValidationIssue(
                field="receiptUrl",
                issue_type="missing_receipt",
                message="Receipt expense has no receipt image",
                severity="warning",
            ))

        return issues

    def _run(
        self,
        entity_type: str,
        model_cls: type[ModelT],
        payload: Any,
    ) -> ModelT:
        model, issues = self._validate_schema(model_cls, payload)
        result = ValidationResult(is_valid=model is not None, issues=issues)
        if result.has_errors:
            raise PayloadValidationError(entity_type, result)
        return model

    @staticmethod
    def _with_owner(payload: Any, user_id: str) -> Any:
        """The authenticated user always owns the row, whatever the body says."""
        if not isinstance(payload, dict):
            return payload
        owned = {k: v for k, v in payload.items() if k not in ("userId", "user_id")}
        owned["userId"] = user_id
        return owned

    def validate_budget(self, payload: Any, user_id: str) -> BudgetInsert:
        """
        Validate a budget creation body.

        Raises:
            PayloadValidationError: If the body does not match BudgetInsert
        """
        return self._run("budget", BudgetInsert, self._with_owner(payload, user_id))

    def validate_budget_update(self, payload: Any) -> BudgetUpdate:
        """
        Validate a partial budget update body.

        Raises:
            PayloadValidationError: If the body does not match BudgetUpdate
        """
        return self._run("budget", BudgetUpdate, payload)

    def validate_category(self, payload: Any) -> CategoryInsert:
        return self._run("category", CategoryInsert, payload)

    def validate_expense(
        self,
        payload: Any,
        user_id: str,
    ) -> tuple[ExpenseInsert, ValidationResult]:
        """
        Run full two-stage validation on an expense body.

        Returns:
            (expense, result) where result carries any warnings

        Raises:
            PayloadValidationError: If stage 1 fails
        """
        expense = self._run("expense", ExpenseInsert, self._with_owner(payload, user_id))
        warnings = self._validate_semantic_expense(expense)
        return expense, ValidationResult(is_valid=True, issues=warnings)
