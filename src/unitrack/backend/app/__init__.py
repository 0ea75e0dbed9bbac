"""Application factory for the UniTrack finance backend."""

from __future__ import annotations

import logging
import secrets
import sqlite3
from datetime import datetime
from importlib import util as importlib_util
from pathlib import Path
from typing import Callable, cast
from warnings import warn

from flask import Flask, Response, jsonify, request
from flask.typing import ResponseReturnValue
from pydantic import ValidationError
from werkzeug.exceptions import BadRequest

from .http import ApiError, problem_response
from .models import format_validation_error
from .routes import register_routes
from .services.finance_store import (
    FinanceRepository,
    InMemoryFinanceRepository,
    SQLiteFinanceRepository,
)
from .services.quotes import QuoteProvider, YahooQuoteProvider
from .settings import Settings
from .state import install_services
from unitrack.backend.config.tax_tables import available_tables, default_table_label
from unitrack.backend.version import get_project_version

CORS: Callable[..., None] | None

if importlib_util.find_spec("flask_cors") is not None:
    from flask_cors import CORS as _cors

    CORS = cast(Callable[..., None], _cors)
else:  # pragma: no cover - executed only when optional dependency missing
    CORS = None

logger = logging.getLogger(__name__)

CORS_METHODS = ["GET", "OPTIONS", "POST", "PATCH", "DELETE"]


def _apply_default_cors_headers(
    response: ResponseReturnValue,
    allowed_origins: frozenset[str],
) -> ResponseReturnValue:
    """Attach CORS headers for allowed origins when Flask-Cors is unavailable."""

    if not isinstance(response, Response):
        return response

    origin = request.headers.get("Origin")
    if origin and origin in allowed_origins:
        response.headers["Access-Control-Allow-Origin"] = origin
        response.headers.setdefault("Vary", "Origin")
        response.headers["Access-Control-Allow-Credentials"] = "true"
        response.headers["Access-Control-Allow-Headers"] = request.headers.get(
            "Access-Control-Request-Headers",
            "Content-Type, Authorization",
        )
        response.headers["Access-Control-Allow-Methods"] = request.headers.get(
            "Access-Control-Request-Method",
            request.method,
        )
    else:
        for header in (
            "Access-Control-Allow-Origin",
            "Access-Control-Allow-Credentials",
            "Access-Control-Allow-Headers",
            "Access-Control-Allow-Methods",
        ):
            response.headers.pop(header, None)

        if origin and request.method == "OPTIONS":
            response.status_code = 403

    return response


def _configure_cors(app: Flask, allowed_origins: frozenset[str]) -> None:
    if not allowed_origins:
        warn(
            "No allowed origins configured; cross-origin requests will be rejected.",
            stacklevel=2,
        )

    if CORS is not None:
        CORS(
            app,
            resources={r"/api/*": {"origins": sorted(allowed_origins)}},
            supports_credentials=True,
            methods=CORS_METHODS,
            allow_headers=["Content-Type", "Authorization"],
        )
        return

    warn(
        "Flask-Cors is not installed; falling back to a minimal CORS implementation. "
        "Install the 'Flask-Cors' extra for production use.",
        stacklevel=2,
    )

    @app.before_request
    def _handle_preflight() -> ResponseReturnValue | None:
        if request.method == "OPTIONS":
            origin = request.headers.get("Origin")
            if origin and origin not in allowed_origins:
                response = app.make_response(("", 403))
                return _apply_default_cors_headers(response, allowed_origins)

            response = app.make_default_options_response()
            return _apply_default_cors_headers(response, allowed_origins)
        return None

    @app.after_request
    def _attach_cors_headers(response: ResponseReturnValue) -> ResponseReturnValue:
        return _apply_default_cors_headers(response, allowed_origins)


def _build_repository(settings: Settings) -> FinanceRepository:
    if settings.database_path:
        return SQLiteFinanceRepository(Path(settings.database_path).expanduser())
    return InMemoryFinanceRepository()


def _register_error_handlers(app: Flask) -> None:
    @app.errorhandler(ApiError)
    def handle_api_error(error: ApiError):
        """Render domain errors raised by routes as problem responses."""

        return error.to_problem().to_response()

    @app.errorhandler(BadRequest)
    def handle_bad_request(error: BadRequest):
        """Return consistent JSON responses for malformed payloads."""

        message = error.description or "Invalid request"
        return problem_response("bad_request", status=400, message=message).to_response()

    @app.errorhandler(ValidationError)
    def handle_model_validation_error(error: ValidationError):
        return problem_response(
            "validation_error", status=400, message=format_validation_error(error)
        ).to_response()

    @app.errorhandler(ValueError)
    def handle_value_error(error: ValueError):
        """Gracefully surface domain validation errors to clients."""

        return problem_response(
            "validation_error", status=400, message=str(error)
        ).to_response()

    @app.errorhandler(sqlite3.Error)
    def handle_storage_error(error: sqlite3.Error):
        logger.exception("Storage failure while handling %s %s", request.method, request.path)
        return problem_response(
            "storage_error", status=500, message="Storage failure"
        ).to_response()


def create_app(
    settings: Settings | None = None,
    *,
    repository: FinanceRepository | None = None,
    quote_provider: QuoteProvider | None = None,
    clock: Callable[[], datetime] | None = None,
) -> Flask:
    """Create and configure the Flask application instance."""

    resolved = settings or Settings.from_env()
    app = Flask(__name__)

    secret_key = resolved.secret_key
    if not secret_key:
        warn(
            "UNITRACK_SECRET_KEY is not set; using an ephemeral key, so sessions "
            "will not survive a restart.",
            stacklevel=2,
        )
        secret_key = secrets.token_hex(32)
    app.config.update(SECRET_KEY=secret_key, AUTH_TOKEN_MAX_AGE=resolved.token_max_age)

    _configure_cors(app, resolved.allowed_origins)

    install_services(
        app,
        settings=resolved,
        repository=repository or _build_repository(resolved),
        quote_provider=quote_provider or YahooQuoteProvider(),
        clock=clock,
    )
    register_routes(app)
    _register_error_handlers(app)

    @app.route("/health", methods=["GET"])
    def health_check():
        """Simple health check endpoint for infrastructure monitoring."""

        return jsonify(
            {
                "status": "ok",
                "version": get_project_version(),
                "tax_tables": list(available_tables()),
                "default_tax_table": default_table_label(),
            }
        )

    return app


__all__ = ["create_app"]
