"""
app/__init__.py — Flask application factory.

Pattern: create_app(config_name) creates and returns a configured Flask app.
         Nothing is initialised at import time — this enables:
           - Multiple isolated test app instances
           - Clean separation between app creation and app startup
           - Alembic to load the metadata without starting the full server

Responsibilities:
  1. Load configuration from config_by_name[config_name]
  2. Configure logging for the app and the backend.app.* loggers
  3. Initialise SQLAlchemy via init_app()
  4. Register all route blueprints under /api/v1
  5. Register global error handlers (AppError → JSON, Exception → 500)

Note on model imports:
  All model classes are imported inside create_app() so that SQLAlchemy's
  metadata is populated before Alembic inspects it. They are not used
  directly here — the import side-effect is sufficient.
"""

from __future__ import annotations

import logging
import traceback

from flask import Flask, jsonify, request
from flask.logging import default_handler
from marshmallow import ValidationError
from sqlalchemy.orm.exc import StaleDataError
from werkzeug.exceptions import HTTPException

from backend.config import config_by_name, validate_production_config


# ── Application factory ────────────────────────────────────────────────────

def create_app(config_name: str = "development") -> Flask:
    """
    Creates and returns a configured Flask application instance.

    Args:
        config_name: One of "development", "testing", "production".
                     Resolved via config_by_name in config.py.
                     Defaults to "development".

    Returns:
        A fully configured Flask app ready to serve requests.
    """
    app = Flask(__name__)

    # ── Configuration ──────────────────────────────────────────────────────
    config_class = config_by_name.get(config_name, config_by_name["development"])
    app.config.from_object(config_class)
    app.json.sort_keys = app.config.get("JSON_SORT_KEYS", False)

    if config_name == "production":
        validate_production_config(app)  # raises ValueError if misconfigured

    _configure_logging(app)

    # ── Extensions ─────────────────────────────────────────────────────────
    # Import here (not at module top) to avoid circular imports.
    from backend.app.extensions import db
    db.init_app(app)

    # ── Model registration ─────────────────────────────────────────────────
    # Import all models so that SQLAlchemy's MetaData is populated.
    with app.app_context():
        from backend.app.models import (  # noqa: F401
            group,
            meeting_date,
            membership,
            topic,
            user,
        )

    # ── Blueprints ─────────────────────────────────────────────────────────
    _register_blueprints(app)

    # ── Error handlers ─────────────────────────────────────────────────────
    _register_error_handlers(app)
    _register_cors(app)

    return app


def _configure_logging(app: Flask) -> None:
    """
    Applies LOG_LEVEL to the "backend.app" logger. That is app.logger's own
    name, so service modules using logging.getLogger(__name__) propagate to
    it and share Flask's default handler and level.
    """
    package_logger = logging.getLogger("backend.app")
    package_logger.setLevel(app.config.get("LOG_LEVEL", "INFO"))
    if default_handler not in package_logger.handlers:
        package_logger.addHandler(default_handler)


def _register_blueprints(app: Flask) -> None:
    """
    Registers all route blueprints under the /api/v1 prefix.

    The url_prefix is set here so individual route files only specify
    the path relative to their resource (e.g. "/" and "/<int:id>").
    """
    from backend.app.routes.auth import auth_bp
    from backend.app.routes.groups import groups_bp
    from backend.app.routes.topics import topics_bp
    from backend.app.routes.users import users_bp

    app.register_blueprint(auth_bp,   url_prefix="/api/v1/auth")
    app.register_blueprint(groups_bp, url_prefix="/api/v1/groups")
    app.register_blueprint(topics_bp, url_prefix="/api/v1/topics")
    app.register_blueprint(users_bp,  url_prefix="/api/v1/users")


def _first_validation_message(messages) -> tuple[str | None, str]:
    """
    Walks a marshmallow messages structure down to its first leaf.

    Returns (top-level field name or None, message). Nested structures such as
    {"meeting_dates": {0: ["Not a valid datetime."]}} report the outer field.
    """
    if isinstance(messages, dict):
        for key, value in messages.items():
            _, message = _first_validation_message(value)
            if key == "_schema" or not isinstance(key, str):
                return None, message
            return key, message
        return None, "Invalid input."
    if isinstance(messages, list):
        if not messages:
            return None, "Invalid value."
        return _first_validation_message(messages[0])
    return None, str(messages)


def _register_error_handlers(app: Flask) -> None:
    """
    Registers global error handlers.

    Handlers:
      AppError        → structured JSON error envelope with the code's HTTP status
      ValidationError → marshmallow schema errors as MISSING_FIELD / INVALID_FIELD (400)
      StaleDataError  → CONCURRENT_UPDATE (409); another request changed the group first
      HTTPException   → Werkzeug's own status (unknown route, wrong method)
      Exception       → generic INTERNAL_ERROR (500); full traceback logged

    Every handler rolls back the session so a half-applied mutation is
    never committed by a later request on the same scoped session.
    Stack traces never leave the server.
    """
    from backend.app.errors import AppError, ErrorCode
    from backend.app.extensions import db

    @app.errorhandler(AppError)
    def handle_app_error(error: AppError):
        """
        Converts an AppError raised anywhere in the request lifecycle
        (middleware, service, route) into the standard error envelope.

        Routes never catch AppError — they let it propagate here.
        """
        db.session.rollback()
        app.logger.info("%s %s → %s", request.method, request.path, error.code)
        return jsonify(error.to_dict()), error.http_status

    @app.errorhandler(ValidationError)
    def handle_validation_error(error: ValidationError):
        """
        Converts marshmallow ValidationError into the standard error envelope.
        Only the FIRST error is reported.
        """
        db.session.rollback()
        field, message = _first_validation_message(error.messages)

        if message.startswith("Missing data for required field"):
            code = ErrorCode.MISSING_FIELD
        else:
            code = ErrorCode.INVALID_FIELD

        return jsonify(AppError(code, message, field=field).to_dict()), 400

    @app.errorhandler(StaleDataError)
    def handle_stale_data(error: StaleDataError):
        db.session.rollback()
        app.logger.warning("Concurrent update rejected on %s %s", request.method, request.path)
        conflict = AppError(
            ErrorCode.CONCURRENT_UPDATE,
            "The group was modified by another request. Reload it and try again.",
        )
        return jsonify(conflict.to_dict()), conflict.http_status

    @app.errorhandler(HTTPException)
    def handle_http_exception(error: HTTPException):
        return jsonify({
            "error": {
                "code": error.name.upper().replace(" ", "_"),
                "message": error.description,
            }
        }), error.code

    @app.errorhandler(Exception)
    def handle_unexpected_error(error: Exception):
        """
        Catches all unhandled exceptions and returns a generic 500 response.

        The full traceback is logged to the application logger. Stack traces
        NEVER leave the server in the response body.
        """
        db.session.rollback()
        app.logger.error(
            "Unhandled exception: %s\n%s",
            str(error),
            traceback.format_exc(),
        )
        return jsonify({
            "error": {
                "code": ErrorCode.INTERNAL_ERROR,
                "message": "An unexpected error occurred. Please try again later.",
            }
        }), 500


def _register_cors(app: Flask) -> None:
    """
    Adds CORS headers for browser-based local development.

    Enabled when DEBUG or TESTING is true so a frontend served from another
    local port can call the API with Authorization headers.
    """

    @app.after_request
    def add_cors_headers(response):
        origin = request.headers.get("Origin")
        allow_all = bool(app.config.get("DEBUG") or app.config.get("TESTING"))

        if allow_all:
            response.headers["Access-Control-Allow-Origin"] = origin if origin else "*"
            response.headers["Vary"] = "Origin"
            response.headers["Access-Control-Allow-Methods"] = "GET, POST, PUT, DELETE, OPTIONS"
            response.headers["Access-Control-Allow-Headers"] = "Authorization, Content-Type"

        return response
