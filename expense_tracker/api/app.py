"""
Flask application factory.

The app receives its components (store, validator, identity provider...)
at construction time. Nothing is read from module globals per request.
"""

from typing import Optional

import structlog
from flask import Flask, g, jsonify
from werkzeug.exceptions import HTTPException

from expense_tracker.api.auth import login_manager
from expense_tracker.api.routes import bp
from expense_tracker.audit import configure_logging, create_correlation_id
from expense_tracker.config import AppSettings, get_settings
from expense_tracker.models.audit import AuditEventBuilder

logger = structlog.get_logger(__name__)


def create_app(
    components=None,
    settings: Optional[AppSettings] = None,
) -> Flask:
    """
    Create and configure the Flask app.

    Args:
        components: An ``AppComponents``; built from settings when omitted
        settings: App settings; read from the environment when omitted
    """
    settings = settings or get_settings().app
    configure_logging(settings.log_level, settings.log_json)

    if components is None:
        from expense_tracker.orchestrator import create_app_components
        components = create_app_components(
            seed_categories=settings.seed_default_categories,
        )

    app = Flask(__name__)
    app.config["DEBUG"] = settings.debug_mode
    app.json.sort_keys = False
    app.extensions["expense_tracker"] = components
    login_manager.init_app(app)

    app.register_blueprint(bp, url_prefix=settings.api_prefix or None)

    @app.before_request
    def assign_correlation_id():
        g.correlation_id = create_correlation_id()

    @app.errorhandler(HTTPException)
    def handle_http_error(e: HTTPException):
        return jsonify({"message": e.description}), e.code

    @app.errorhandler(Exception)
    def handle_unexpected_error(e: Exception):
        logger.exception("unhandled_error", correlation_id=str(g.get("correlation_id")))
        components.audit.log(AuditEventBuilder.system_error(
            error_type=type(e).__name__,
            error_message=str(e),
            correlation_id=g.get("correlation_id"),
        ))
        return jsonify({"message": "Internal server error"}), 500

    return app
