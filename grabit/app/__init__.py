"""
app/__init__.py — Flask application factory.

Pattern: create_app(config_name) creates and returns a configured Flask app.
         Nothing is initialised at import time.

Responsibilities:
  1. Load configuration from config_by_name[config_name]
  2. Configure logging for the `grabit` package
  3. Initialise SQLAlchemy via init_app()
  4. Register all route blueprints under /api/v1
  5. Register global error handlers (AppError → JSON, ValidationError → 400,
     SQLAlchemyError → 500 DATABASE_ERROR, Exception → 500 INTERNAL_ERROR)
  6. Register the CLI commands

Note on model imports:
  All model classes are imported inside create_app() so that SQLAlchemy's
  metadata is populated before db.create_all() or Alembic inspects it.
"""

from __future__ import annotations

import logging
import traceback

from flask import Flask, jsonify
from flask.logging import default_handler
from marshmallow import ValidationError
from sqlalchemy.exc import SQLAlchemyError
from werkzeug.exceptions import HTTPException

from grabit.config import config_by_name, validate_production_config


# ── Application factory ────────────────────────────────────────────────────

def create_app(config_name: str = "development") -> Flask:
    """
    Creates and returns a configured Flask application instance.

    Args:
        config_name: One of "development", "testing", "production".
                     Resolved via config_by_name in config.py.
                     Defaults to "development".
    """
    app = Flask(__name__)

    # ── Configuration ──────────────────────────────────────────────────────
    config_class = config_by_name.get(config_name, config_by_name["development"])
    app.config.from_object(config_class)

    if config_name == "production":
        validate_production_config(app)  # raises ValueError if misconfigured

    _configure_logging(app)

    # ── Extensions ─────────────────────────────────────────────────────────
    # Import here (not at module top) to avoid circular imports.
    from grabit.app.extensions import db
    db.init_app(app)

    # ── Model registration ─────────────────────────────────────────────────
    # Import all models so that SQLAlchemy's MetaData is populated.
    with app.app_context():
        from grabit.app.models import (  # noqa: F401
            challenge,
            commit_approval,
            join_request,
            membership,
            user,
        )

    _register_blueprints(app)
    _register_error_handlers(app)

    from grabit.app.cli import register_cli
    register_cli(app)

    return app


def _configure_logging(app: Flask) -> None:
    """
    Routes the service-layer loggers (grabit.app.services.*) through Flask's
    default handler so they share app.logger's format and stream.
    """
    level = app.config.get("LOG_LEVEL", "INFO")
    package_logger = logging.getLogger("grabit")
    package_logger.setLevel(level)
    if default_handler not in package_logger.handlers:
        package_logger.addHandler(default_handler)
    app.logger.setLevel(level)


def _register_blueprints(app: Flask) -> None:
    """
    Registers all route blueprints under the /api/v1 prefix.

    The url_prefix is set here so individual route files only specify
    the path relative to their resource (e.g. "/" and "/<int:id>").
    """
    from grabit.app.routes.challenges import challenges_bp
    from grabit.app.routes.commit_approvals import commit_approvals_bp
    from grabit.app.routes.join_requests import join_requests_bp
    from grabit.app.routes.users import users_bp

    app.register_blueprint(challenges_bp,       url_prefix="/api/v1/challenges")
    app.register_blueprint(join_requests_bp,    url_prefix="/api/v1/join-requests")
    # commit_approvals_bp owns both /commit-approvals and /commit-approval-entries.
    app.register_blueprint(commit_approvals_bp, url_prefix="/api/v1")
    app.register_blueprint(users_bp,            url_prefix="/api/v1/users")


def _register_error_handlers(app: Flask) -> None:
    """
    Registers global error handlers.

    Handlers:
      AppError        → structured JSON error envelope with the correct HTTP status
      ValidationError → marshmallow schema errors as MISSING_FIELD /
                        INVALID_FIELD responses (400)
      SQLAlchemyError → session rolled back, DATABASE_ERROR (500)
      Exception       → generic INTERNAL_ERROR (500); full traceback logged

    Stack traces never leave the server.
    """
    from grabit.app.errors import AppError, ErrorCode
    from grabit.app.extensions import db

    @app.errorhandler(AppError)
    def handle_app_error(error: AppError):
        """
        Converts an AppError raised anywhere in the request lifecycle
        (middleware, service, route) into the standard error envelope.

        Routes never catch AppError — they let it propagate here.
        """
        return jsonify(error.to_dict()), error.http_status

    @app.errorhandler(ValidationError)
    def handle_validation_error(error: ValidationError):
        """
        Converts marshmallow ValidationError into the standard error envelope.
        Only the FIRST field error is reported.
        """
        messages = error.messages  # e.g. {"name": ["Missing data for required field."]}

        field = None
        raw_message = "Invalid input."
        code = ErrorCode.INVALID_FIELD

        if isinstance(messages, dict):
            for field_name, field_errors in messages.items():
                field = field_name if field_name != "_schema" else None

                if isinstance(field_errors, list):
                    raw_message = field_errors[0] if field_errors else "Invalid value."
                else:
                    raw_message = str(field_errors)
                break
        elif isinstance(messages, list):
            raw_message = messages[0] if messages else "Invalid input."

        if str(raw_message).startswith("Missing data for required field"):
            code = ErrorCode.MISSING_FIELD

        response_body = {
            "error": {
                "code": code,
                "message": raw_message,
            }
        }
        if field is not None:
            response_body["error"]["field"] = field

        return jsonify(response_body), 400

    @app.errorhandler(SQLAlchemyError)
    def handle_database_error(error: SQLAlchemyError):
        """
        Persistence failures are infrastructure errors, not part of the
        domain taxonomy. The transaction is discarded.
        """
        db.session.rollback()
        app.logger.error(
            "Database error: %s\n%s",
            str(error),
            traceback.format_exc(),
        )
        return jsonify({
            "error": {
                "code": ErrorCode.DATABASE_ERROR,
                "message": "A storage error occurred. Please try again later.",
            }
        }), 500

    @app.errorhandler(Exception)
    def handle_unexpected_error(error: Exception):
        """
        Catches all unhandled exceptions and returns a generic 500 response.
        Werkzeug HTTP errors (404 unknown route, 405, ...) pass through as-is.
        """
        if isinstance(error, HTTPException):
            return error

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
