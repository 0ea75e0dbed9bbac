"""Blueprint registrations for application routes."""

from flask import Flask

from .estimates import blueprint as estimates_blueprint
from .finance import blueprint as finance_blueprint
from .holdings import blueprint as holdings_blueprint


def register_routes(app: Flask) -> None:
    """Register all Flask blueprints with the provided application."""

    app.register_blueprint(finance_blueprint)
    app.register_blueprint(estimates_blueprint)
    app.register_blueprint(holdings_blueprint)
