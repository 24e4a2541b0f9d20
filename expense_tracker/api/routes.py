"""
HTTP routes.

Every handler catches failures at its own boundary:
- PayloadValidationError -> 400 with field-level errors
- missing budget on update -> 404
- DuplicateError -> 409
- anything else -> 500 with a generic message, details only in the log
"""

from typing import Optional

import structlog
from flask import Blueprint, current_app, g, jsonify, request
from flask_login import current_user, login_required

from expense_tracker.api.auth import current_user_id
from expense_tracker.models.audit import AuditEventBuilder
from expense_tracker.presentation import format_currency
from expense_tracker.services.storage import DuplicateError, StorageError
from expense_tracker.validation import PayloadValidationError

bp = Blueprint("api", __name__)

logger = structlog.get_logger(__name__)


def _components():
    return current_app.extensions["expense_tracker"]


def _user_id_or_none() -> Optional[str]:
    return current_user.get_id() if current_user.is_authenticated else None


def _error(message: str, status: int, **extra):
    return jsonify({"message": message, **extra}), status


def _validation_error(e: PayloadValidationError):
    issues = [issue.to_api() for issue in e.issues]
    _components().audit.log_validation_failed(
        entity_type=e.entity_type,
        issues=issues,
        user_id=_user_id_or_none(),
        correlation_id=g.get("correlation_id"),
    )
    return _error(f"Invalid {e.entity_type} data", 400, errors=issues)


def _failure(operation: str, error: Exception, message: str):
    """Log the real cause, hand the client a generic 500."""
    if isinstance(error, StorageError):
        _components().audit.log_storage_error(
            operation=operation,
            error=error,
            user_id=_user_id_or_none(),
            correlation_id=g.get("correlation_id"),
        )
    else:
        logger.exception(
            "handler_failed",
            operation=operation,
            correlation_id=str(g.get("correlation_id")),
        )
    return _error(message, 500)


# -----------------------------------------------------------------------------
# Auth
# -----------------------------------------------------------------------------

@bp.post("/auth/login")
@login_required
def login():
    """Record the identity the provider just confirmed."""
    components = _components()
    try:
        user = components.store.upsert_user(current_user.identity.to_upsert())
    except DuplicateError:
        return _error("Email already in use by another account", 409)
    except Exception as e:
        return _failure("upsert_user", e, "Failed to sign in")

    components.audit.log(AuditEventBuilder.user_signed_in(
        user_id=user.id,
        correlation_id=g.get("correlation_id"),
    ))
    return jsonify(user.to_api())


@bp.get("/auth/user")
@login_required
def get_current_user():
    try:
        user = _components().store.get_user(current_user_id())
    except Exception as e:
        return _failure("get_user", e, "Failed to fetch user")
    return jsonify(user.to_api() if user else None)


# -----------------------------------------------------------------------------
# Budget
# -----------------------------------------------------------------------------

@bp.get("/budget")
@login_required
def get_budget():
    try:
        budget = _components().store.get_budget(current_user_id())
    except Exception as e:
        return _failure("get_budget", e, "Failed to fetch budget")
    return jsonify(budget.to_api() if budget else None)


@bp.post("/budget")
@login_required
def create_budget():
    components = _components()
    user_id = current_user_id()
    try:
        data = components.validator.validate_budget(request.get_json(silent=True), user_id)
        budget = components.store.create_budget(data)
    except PayloadValidationError as e:
        return _validation_error(e)
    except DuplicateError as e:
        components.audit.log(AuditEventBuilder.budget_duplicate(
            user_id=user_id,
            error_message=str(e),
            correlation_id=g.get("correlation_id"),
        ))
        return _error("Budget of this type already exists", 409)
    except Exception as e:
        return _failure("create_budget", e, "Failed to create budget")

    components.audit.log(AuditEventBuilder.budget_created(
        budget_id=budget.id,
        user_id=user_id,
        budget_type=budget.type.value,
        display_amount=format_currency(budget.amount),
        correlation_id=g.get("correlation_id"),
    ))
    return jsonify(budget.to_api())


@bp.put("/budget")
@login_required
def update_budget():
    components = _components()
    user_id = current_user_id()
    try:
        updates = components.validator.validate_budget_update(request.get_json(silent=True))
        budget = components.store.update_budget(user_id, updates)
    except PayloadValidationError as e:
        return _validation_error(e)
    except DuplicateError:
        return _error("Budget of this type already exists", 409)
    except Exception as e:
        return _failure("update_budget", e, "Failed to update budget")

    if budget is None:
        components.audit.log(AuditEventBuilder.budget_not_found(
            user_id=user_id,
            correlation_id=g.get("correlation_id"),
        ))
        return _error("Budget not found", 404)

    components.audit.log(AuditEventBuilder.budget_updated(
        budget_id=budget.id,
        user_id=user_id,
        changed_fields=sorted(updates.changes()),
        correlation_id=g.get("correlation_id"),
    ))
    return jsonify(budget.to_api())


# -----------------------------------------------------------------------------
# Expenses
# -----------------------------------------------------------------------------

@bp.get("/expenses")
@login_required
def list_expenses():
    limit = request.args.get("limit", type=int)
    if limit is not None and limit <= 0:
        limit = None
    try:
        expenses = _components().store.get_expenses(current_user_id(), limit)
    except Exception as e:
        return _failure("get_expenses", e, "Failed to fetch expenses")
    return jsonify([expense.to_api() for expense in expenses])


@bp.get("/expenses/category/<category>")
@login_required
def list_expenses_by_category(category: str):
    try:
        expenses = _components().store.get_expenses_by_category(current_user_id(), category)
    except Exception as e:
        return _failure("get_expenses_by_category", e, "Failed to fetch expenses by category")
    return jsonify([expense.to_api() for expense in expenses])


@bp.post("/expenses")
@login_required
def create_expense():
    components = _components()
    user_id = current_user_id()
    try:
        data, result = components.validator.validate_expense(
            request.get_json(silent=True), user_id
        )
        expense = components.store.create_expense(data)
    except PayloadValidationError as e:
        return _validation_error(e)
    except Exception as e:
        return _failure("create_expense", e, "Failed to create expense")

    if result.warnings:
        components.audit.log(AuditEventBuilder.validation_warning(
            entity_type="expense",
            issues=[issue.to_api() for issue in result.warnings],
            user_id=user_id,
            correlation_id=g.get("correlation_id"),
        ))
    components.audit.log(AuditEventBuilder.expense_created(
        expense_id=expense.id,
        user_id=user_id,
        category=expense.category,
        method=expense.method.value,
        display_amount=format_currency(expense.amount),
        correlation_id=g.get("correlation_id"),
    ))
    return jsonify(expense.to_api())


# -----------------------------------------------------------------------------
# Categories
# -----------------------------------------------------------------------------

@bp.get("/categories")
def list_categories():
    try:
        categories = _components().store.get_categories()
    except Exception as e:
        return _failure("get_categories", e, "Failed to fetch categories")
    return jsonify([category.to_api() for category in categories])


@bp.post("/categories")
@login_required
def create_category():
    components = _components()
    try:
        data = components.validator.validate_category(request.get_json(silent=True))
        category = components.store.create_category(data)
    except PayloadValidationError as e:
        return _validation_error(e)
    except Exception as e:
        return _failure("create_category", e, "Failed to create category")

    components.audit.log(AuditEventBuilder.category_created(
        category_id=category.id,
        name=category.name,
        user_id=current_user_id(),
        correlation_id=g.get("correlation_id"),
    ))
    return jsonify(category.to_api())


# -----------------------------------------------------------------------------
# Analytics
# -----------------------------------------------------------------------------

@bp.get("/analytics/spending")
@login_required
def spending_analytics():
    try:
        summary = _components().analytics.summarize(
            current_user_id(),
            request.args.get("period"),
        )
    except Exception as e:
        return _failure("spending_analytics", e, "Failed to fetch spending analytics")
    return jsonify(summary.to_api())
