"""HTTP API package."""

from expense_tracker.api.app import create_app
from expense_tracker.api.auth import (
    CurrentUser,
    HeaderIdentityProvider,
    Identity,
    IdentityProvider,
    current_user_id,
    login_manager,
)

__all__ = [
    "CurrentUser",
    "HeaderIdentityProvider",
    "Identity",
    "IdentityProvider",
    "create_app",
    "current_user_id",
    "login_manager",
]
