"""Application factory for the MemoGarden app."""

from __future__ import annotations

from flask import Flask

from .config import Config
from .core.bootstrap import (
    configure_logging,
    initialize_database,
    register_blueprints,
    register_extensions,
    register_hooks,
)
from .extensions import db

__all__ = ["create_app", "db"]


def create_app(config_class: type[Config] = Config) -> Flask:
    """Create and configure a Flask application instance."""

    if config_class.SQLALCHEMY_DATABASE_URI.startswith("sqlite:///"):
        config_class.ensure_directories()

    app = Flask(__name__)
    app.config.from_object(config_class)

    configure_logging(app)
    register_extensions(app)
    register_hooks(app)
    register_blueprints(app)

    with app.app_context():
        initialize_database(app)

    return app
