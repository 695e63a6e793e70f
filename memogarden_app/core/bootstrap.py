"""Bootstrap helpers for configuring the Flask application."""

from __future__ import annotations

import logging

from flask import Flask
from flask_login import current_user

from ..extensions import db, login_manager, scheduler
from .error_handlers import register_error_handlers
from .module_registry import register_default_modules


def configure_logging(app: Flask) -> None:
    """Configure application logging if no handlers are present."""

    if app.logger.handlers:
        return

    level = getattr(logging, str(app.config.get("LOG_LEVEL", "INFO")).upper(), logging.INFO)
    app.logger.setLevel(level)
    handler = logging.StreamHandler()
    formatter = logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
    handler.setFormatter(formatter)
    app.logger.addHandler(handler)
    app.logger.propagate = False

    package_logger = logging.getLogger("memogarden_app")
    package_logger.setLevel(level)
    if not package_logger.handlers:
        package_logger.addHandler(handler)

    app.logger.info("Flask app logger configured successfully.")


def register_extensions(app: Flask) -> None:
    """Initialize shared extensions with the Flask app instance."""

    db.init_app(app)
    login_manager.init_app(app)

    if not app.config.get("HEALTH_SYNC_JOB_ENABLED"):
        return

    from apscheduler.schedulers import SchedulerAlreadyRunningError
    from ..modules.health.tasks import sync_all_accounts

    try:
        scheduler.init_app(app)
        if not scheduler.running:
            scheduler.start()
        if not scheduler.get_job("health_daily_sync"):
            scheduler.add_job(
                id="health_daily_sync",
                func=sync_all_accounts,
                trigger="cron",
                hour=app.config.get("HEALTH_SYNC_JOB_HOUR", 3),
                minute=0,
                replace_existing=True,
            )
            app.logger.info("Registered daily health sync job.")
    except SchedulerAlreadyRunningError:
        app.logger.info("Scheduler already running, skipping re-initialisation.")


def register_hooks(app: Flask) -> None:
    """Register the user loader, signal receivers and request hooks."""

    @login_manager.user_loader
    def load_user(user_id: str):
        from ..models import User

        return db.session.get(User, int(user_id))

    from ..modules.health import events as health_events
    from ..modules.health.services.health_service import HealthService

    health_events.init_health_listener()

    @app.before_request
    def lazy_health_sync() -> None:
        if not app.config.get("HEALTH_SYNC_ON_REQUEST"):
            return
        if not getattr(current_user, "is_authenticated", False):
            return
        HealthService.try_sync_account_health(current_user.user_id)


def register_blueprints(app: Flask) -> None:
    """Register all default blueprints and the JSON error handlers."""

    register_default_modules(app)
    register_error_handlers(app)


def initialize_database(app: Flask) -> None:
    """Create database tables."""

    from .. import models  # noqa: F401  (register mappers)

    db.create_all()
    app.logger.debug("Database tables ensured.")
