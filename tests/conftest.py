"""
Shared fixtures.

Storage-level and API tests run against both backends: the in-memory
store and the SQLAlchemy store on an in-memory SQLite database.
"""

import pytest

from expense_tracker.api import HeaderIdentityProvider, create_app
from expense_tracker.config import AppSettings, AuthSettings, DatabaseSettings
from expense_tracker.orchestrator import create_app_components
from expense_tracker.services.storage import (
    DatabaseClient,
    InMemoryExpenseStorage,
    SQLAlchemyExpenseStorage,
)


USER_ID = "user-1"
OTHER_USER_ID = "user-2"


@pytest.fixture
def memory_store():
    return InMemoryExpenseStorage()


@pytest.fixture
def sql_store():
    client = DatabaseClient(DatabaseSettings(url="sqlite://"))
    client.create_schema()
    yield SQLAlchemyExpenseStorage(client)
    client.dispose()


@pytest.fixture(params=["memory", "sql"])
def store(request):
    """Each test using this fixture runs once per backend."""
    return request.getfixturevalue(f"{request.param}_store")


@pytest.fixture
def app_settings():
    return AppSettings(
        api_prefix="/api",
        log_json=False,
        seed_default_categories=True,
    )


def build_app(store, app_settings, seed_categories=True):
    components = create_app_components(
        store=store,
        identity_provider=HeaderIdentityProvider(AuthSettings()),
        seed_categories=seed_categories,
    )
    app = create_app(components, app_settings)
    app.config["TESTING"] = True
    return app


@pytest.fixture
def app(store, app_settings):
    return build_app(store, app_settings)


@pytest.fixture
def client(app):
    return app.test_client()


def auth_headers(user_id: str = USER_ID, **claims) -> dict:
    headers = {"X-Auth-Subject": user_id}
    if "email" in claims:
        headers["X-Auth-Email"] = claims["email"]
    if "first_name" in claims:
        headers["X-Auth-First-Name"] = claims["first_name"]
    if "last_name" in claims:
        headers["X-Auth-Last-Name"] = claims["last_name"]
    return headers
