"""
Authentication seam.

Identity is established outside this service. An IdentityProvider looks
at the inbound request and either returns the caller's Identity or None.
The subject is trusted as-is and used as the user id everywhere.

Flask-Login's request loader consults the provider on every request;
protected views are wrapped in ``flask_login.login_required``.
"""

from abc import ABC, abstractmethod
from typing import Optional

from flask import Request, current_app, g, jsonify, request
from flask_login import LoginManager, UserMixin, current_user
from pydantic import BaseModel, Field

from expense_tracker.config import AuthSettings, get_settings
from expense_tracker.models.audit import AuditEventBuilder
from expense_tracker.models.expense import UpsertUser


class Identity(BaseModel):
    """Claims about the caller as confirmed by the identity provider."""

    subject: str = Field(..., min_length=1)
    email: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    profile_image_url: Optional[str] = None

    def to_upsert(self) -> UpsertUser:
        """Only claims the provider actually supplied overwrite stored values."""
        claims = {
            "email": self.email,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "profile_image_url": self.profile_image_url,
        }
        return UpsertUser(
            id=self.subject,
            **{k: v for k, v in claims.items() if v is not None},
        )


class IdentityProvider(ABC):
    """Turns an inbound request into an Identity."""

    @abstractmethod
    def authenticate(self, req: Request) -> Optional[Identity]:
        """Return the caller's identity, or None to reject the request."""
        pass


class HeaderIdentityProvider(IdentityProvider):
    """
    Trusts identity headers set by an authenticating reverse proxy.

    The proxy must strip these headers from client requests.
    """

    def __init__(self, settings: Optional[AuthSettings] = None):
        self._settings = settings or get_settings().auth

    def authenticate(self, req: Request) -> Optional[Identity]:
        s = self._settings
        subject = (req.headers.get(s.subject_header) or "").strip()
        if not subject:
            return None

        def header(name: str) -> Optional[str]:
            value = (req.headers.get(name) or "").strip()
            return value or None

        return Identity(
            subject=subject,
            email=header(s.email_header),
            first_name=header(s.first_name_header),
            last_name=header(s.last_name_header),
            profile_image_url=header(s.profile_image_header),
        )


class CurrentUser(UserMixin):
    """The authenticated caller as Flask-Login sees it."""

    def __init__(self, identity: Identity):
        self.identity = identity
        self.id = identity.subject


# Stateless: the identity is re-established from every request, no session cookie.
login_manager = LoginManager()
login_manager.session_protection = None


@login_manager.request_loader
def load_user_from_request(req: Request) -> Optional[CurrentUser]:
    components = current_app.extensions["expense_tracker"]
    identity = components.identity_provider.authenticate(req)
    return CurrentUser(identity) if identity else None


@login_manager.unauthorized_handler
def unauthorized():
    components = current_app.extensions["expense_tracker"]
    components.audit.log(AuditEventBuilder.unauthorized_request(
        path=request.path,
        correlation_id=g.get("correlation_id"),
    ))
    return jsonify({"message": "Unauthorized"}), 401


def current_user_id() -> str:
    """Stable id of the authenticated caller."""
    return current_user.get_id()
