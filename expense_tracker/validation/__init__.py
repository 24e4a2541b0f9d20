"""Payload validation package."""

from expense_tracker.validation.validator import PayloadValidationError, PayloadValidator

__all__ = ["PayloadValidationError", "PayloadValidator"]
