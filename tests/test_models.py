"""
Tests for Expense Tracker models

Test strategy:
1. Unit tests for the pydantic models (payload parsing, money handling)
2. Storage and HTTP flows live in their own modules
3. No network or database access here
"""

import json
from datetime import datetime, timezone
from decimal import Decimal
from uuid import uuid4

import pytest
from pydantic import ValidationError

from expense_tracker.models import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
    Budget,
    BudgetInsert,
    BudgetType,
    BudgetUpdate,
    CategoryInsert,
    Expense,
    ExpenseInsert,
    ExpenseMethod,
    UpsertUser,
    ValidationIssue,
    ValidationResult,
)


class TestBudgetModels:
    """Tests for budget payload models."""

    def test_budget_insert_from_wire_names(self):
        """camelCase keys map onto snake_case attributes."""
        budget = BudgetInsert.model_validate({
            "userId": "u1",
            "type": "monthly",
            "amount": "5000",
        })
        assert budget.user_id == "u1"
        assert budget.type == BudgetType.MONTHLY
        assert budget.amount == Decimal("5000.00")
        assert budget.category_budgets == "{}"

    def test_amount_is_quantized_to_cents(self):
        """Amounts always carry exactly two fractional digits."""
        budget = BudgetInsert(user_id="u1", type="daily", amount="12.5")
        assert str(budget.amount) == "12.50"

    @pytest.mark.parametrize("amount", [5000, 5000.0, True])
    def test_amount_rejects_json_numbers(self, amount):
        """Numbers lose precision in transit, so only strings are accepted."""
        with pytest.raises(ValidationError):
            BudgetInsert(user_id="u1", type="monthly", amount=amount)

    @pytest.mark.parametrize("amount", ["0", "-10", "1.234", "abc", ""])
    def test_amount_rejects_invalid_values(self, amount):
        """Zero, negative, over-precise and non-numeric amounts fail."""
        with pytest.raises(ValidationError):
            BudgetInsert(user_id="u1", type="monthly", amount=amount)

    def test_budget_type_is_a_closed_set(self):
        """Test that unknown budget types are rejected."""
        with pytest.raises(ValidationError):
            BudgetInsert(user_id="u1", type="weekly", amount="100")

    def test_budget_insert_rejects_server_fields(self):
        """Clients cannot supply id or timestamps."""
        with pytest.raises(ValidationError) as exc_info:
            BudgetInsert.model_validate({
                "userId": "u1",
                "type": "monthly",
                "amount": "100",
                "id": 7,
            })
        assert exc_info.value.errors()[0]["type"] == "extra_forbidden"

    def test_category_budgets_accepts_mapping(self):
        """A mapping is stored as its JSON text."""
        budget = BudgetInsert(
            user_id="u1",
            type="monthly",
            amount="5000",
            category_budgets={"Groceries": "2000"},
        )
        assert json.loads(budget.category_budgets) == {"Groceries": "2000"}

    def test_category_budgets_accepts_text(self):
        budget = BudgetInsert(
            user_id="u1",
            type="monthly",
            amount="5000",
            category_budgets='{"Transport": 500}',
        )
        assert budget.category_budgets == '{"Transport": 500}'

    @pytest.mark.parametrize("value", [
        "not json",
        "[1, 2]",
        {"Food & Dining": "-5"},
        {"Food & Dining": "lots"},
        42,
    ])
    def test_category_budgets_rejects_invalid(self, value):
        """Only objects of non-negative limits are accepted."""
        with pytest.raises(ValidationError):
            BudgetInsert(
                user_id="u1",
                type="monthly",
                amount="5000",
                category_budgets=value,
            )

    def test_budget_category_limits(self):
        """The stored text parses back into Decimal sub-limits."""
        now = datetime.now()
        budget = Budget(
            id=1,
            user_id="u1",
            type=BudgetType.MONTHLY,
            amount=Decimal("5000.00"),
            category_budgets='{"Groceries": "2000", "Petrol": 750.5}',
            created_at=now,
            updated_at=now,
        )
        assert budget.category_limits == {
            "Groceries": Decimal("2000"),
            "Petrol": Decimal("750.5"),
        }

    def test_budget_update_tracks_sent_fields(self):
        """Only fields present in the body count as changes."""
        update = BudgetUpdate.model_validate({"amount": "6000"})
        assert update.changes() == {"amount": Decimal("6000.00")}

    def test_budget_update_empty(self):
        assert BudgetUpdate.model_validate({}).changes() == {}

    def test_budget_update_rejects_null(self):
        """Omitting a field leaves it alone; null is an error."""
        with pytest.raises(ValidationError):
            BudgetUpdate.model_validate({"amount": None})

    def test_budget_update_rejects_owner_change(self):
        """The owner of a budget can never be changed."""
        with pytest.raises(ValidationError):
            BudgetUpdate.model_validate({"userId": "someone-else"})


class TestExpenseModels:
    """Tests for expense payload models."""

    def test_expense_insert_defaults(self):
        """Method defaults to manual and date to now."""
        before = datetime.now()
        expense = ExpenseInsert.model_validate({
            "userId": "u1",
            "amount": "250.00",
            "category": "Groceries",
        })
        assert expense.method == ExpenseMethod.MANUAL
        assert expense.receipt_url is None
        assert expense.voice_note is None
        assert before <= expense.date <= datetime.now()

    def test_expense_strips_whitespace(self):
        """Test that whitespace is stripped from the category."""
        expense = ExpenseInsert(user_id="u1", amount="10", category="  Groceries  ")
        assert expense.category == "Groceries"

    def test_expense_requires_category(self):
        with pytest.raises(ValidationError):
            ExpenseInsert(user_id="u1", amount="10")

    def test_expense_method_is_a_closed_set(self):
        with pytest.raises(ValidationError):
            ExpenseInsert(user_id="u1", amount="10", category="Health", method="telepathy")

    @pytest.mark.parametrize("url", [
        "https://example.com/receipt.jpg",
        "http://example.com/r.png",
        "data:image/jpeg;base64,/9j/4AAQ",
    ])
    def test_receipt_url_accepted(self, url):
        expense = ExpenseInsert(
            user_id="u1", amount="10", category="Shopping",
            method="receipt", receipt_url=url,
        )
        assert expense.receipt_url == url

    def test_receipt_url_rejected(self):
        """Anything but an http(s) URL or an inline image is refused."""
        with pytest.raises(ValidationError):
            ExpenseInsert(
                user_id="u1", amount="10", category="Shopping",
                receipt_url="ftp://example.com/r.png",
            )

    def test_aware_date_is_stored_as_local_naive(self):
        """Timezone-aware input is converted to server-local time."""
        aware = datetime(2026, 1, 5, 10, 0, tzinfo=timezone.utc)
        expense = ExpenseInsert(user_id="u1", amount="10", category="Health", date=aware)
        assert expense.date.tzinfo is None
        assert expense.date == aware.astimezone().replace(tzinfo=None)

    def test_expense_to_api(self):
        """API form uses camelCase keys and string amounts."""
        expense = Expense(
            id=3,
            user_id="u1",
            amount=Decimal("250.00"),
            category="Groceries",
            method=ExpenseMethod.VOICE,
            voice_note="spent 250 on groceries",
            date=datetime(2026, 10, 1, 9, 30),
            created_at=datetime(2026, 10, 1, 9, 31),
        )
        payload = expense.to_api()
        assert payload["amount"] == "250.00"
        assert payload["userId"] == "u1"
        assert payload["method"] == "voice"
        assert payload["voiceNote"] == "spent 250 on groceries"
        assert payload["receiptUrl"] is None
        assert payload["date"] == "2026-10-01T09:30:00"
        assert "createdAt" in payload


class TestCategoryAndUserModels:
    """Tests for category and user models."""

    def test_category_insert_is_not_default(self):
        """Categories created through the API are not defaults."""
        category = CategoryInsert(name="Rent", icon="fas fa-home", color="text-gray-600")
        assert category.is_default is False

    def test_category_insert_requires_icon(self):
        with pytest.raises(ValidationError):
            CategoryInsert(name="Rent", color="text-gray-600")

    def test_upsert_user_only_marks_given_fields(self):
        """Unset claims are not part of the dump used for the upsert."""
        user = UpsertUser(id="u1", first_name="Asha")
        assert user.model_dump(exclude_unset=True) == {"id": "u1", "first_name": "Asha"}


class TestValidationModels:
    """Tests for validation result models."""

    def test_validation_issue_creation(self):
        """Test ValidationIssue model creation."""
        issue = ValidationIssue(
            field="amount",
            issue_type="decimal_parsing",
            message="Input should be a valid decimal",
        )
        assert issue.severity == "error"
        assert issue.to_api()["issueType"] == "decimal_parsing"

    def test_validation_issue_rejects_unknown_severity(self):
        with pytest.raises(ValidationError):
            ValidationIssue(field="amount", issue_type="x", message="x", severity="fatal")

    def test_validation_result_splits_errors_and_warnings(self):
        """Test ValidationResult error/warning partitioning."""
        result = ValidationResult(
            is_valid=False,
            issues=[
                ValidationIssue(field="amount", issue_type="missing", message="required"),
                ValidationIssue(
                    field="category",
                    issue_type="unknown_category",
                    message="not known",
                    severity="warning",
                ),
            ],
        )
        assert result.has_errors
        assert [i.field for i in result.errors] == ["amount"]
        assert [i.field for i in result.warnings] == ["category"]

    def test_warnings_only_is_not_an_error(self):
        result = ValidationResult(
            is_valid=True,
            issues=[ValidationIssue(
                field="voiceNote", issue_type="missing_transcript",
                message="none", severity="warning",
            )],
        )
        assert not result.has_errors


class TestAuditModels:
    """Tests for audit event models."""

    def test_audit_event_creation(self):
        """Test AuditEvent model creation."""
        event = AuditEvent(
            event_type=AuditEventType.EXPENSE_CREATED,
            entity_type="expense",
            entity_id="12",
            description="Test event",
        )
        assert event.event_type == AuditEventType.EXPENSE_CREATED
        assert event.severity == AuditSeverity.INFO
        assert event.event_id is not None

    def test_audit_event_to_log_dict(self):
        """Test conversion to log dictionary."""
        correlation_id = uuid4()
        event = AuditEventBuilder.expense_created(
            expense_id=12,
            user_id="u1",
            category="Groceries",
            method="manual",
            display_amount="₹250",
            correlation_id=correlation_id,
        )
        log_dict = event.to_log_dict()
        assert log_dict["event_type"] == "expense_created"
        assert log_dict["entity_id"] == "12"
        assert log_dict["user_id"] == "u1"
        assert log_dict["correlation_id"] == str(correlation_id)
        assert "₹250" in log_dict["description"]

    def test_storage_error_is_an_error(self):
        event = AuditEventBuilder.storage_error("create_budget", "connection refused", "u1")
        assert event.severity == AuditSeverity.ERROR
        assert event.details == {"operation": "create_budget"}
        assert event.error_message == "connection refused"

    def test_budget_not_found_is_a_warning(self):
        event = AuditEventBuilder.budget_not_found(user_id="u1")
        assert event.severity == AuditSeverity.WARNING
        assert event.entity_type == "budget"
