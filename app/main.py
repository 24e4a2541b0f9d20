"""
WSGI entry point for Expense Tracker.

Run the development server:
    python app/main.py

Or serve it with any WSGI server:
    gunicorn "app.main:create_application()"

Configuration comes from the environment / .env file
(DATABASE_URL, AUTH_SUBJECT_HEADER, API_PREFIX, ...).
"""

import structlog

from expense_tracker.api import create_app
from expense_tracker.audit import configure_logging
from expense_tracker.config import get_settings, validate_all_settings
from expense_tracker.orchestrator import create_app_components


logger = structlog.get_logger(__name__)


def create_application():
    """Build the app from configuration, failing loudly on bad settings."""
    checks = validate_all_settings()
    failed = [name for name, ok in checks.items() if ok is False]
    if failed:
        errors = {name: checks.get(f"{name}_error") for name in failed}
        raise RuntimeError(f"Invalid configuration: {errors}")

    settings = get_settings()
    configure_logging(settings.app.log_level, settings.app.log_json)
    components = create_app_components(
        use_storage=True,
        seed_categories=settings.app.seed_default_categories,
    )
    app = create_app(components, settings.app)
    logger.info(
        "app_started",
        environment=settings.app.app_environment,
        api_prefix=settings.app.api_prefix,
    )
    return app


def main():
    """Main application entry point."""
    settings = get_settings().app
    application = create_application()
    application.run(host=settings.host, port=settings.port, debug=settings.debug_mode)


if __name__ == "__main__":
    main()
