"""
Immigration Case Management API
Flask Application Factory.

Usage:
    from immigration import create_app
    app = create_app()           # defaults to APP_ENV, then "development"
    app = create_app("testing")  # explicit config
"""

import logging
import os

import click
from flask import Flask, abort, jsonify, request
from flask_cors import CORS
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from flask_migrate import Migrate
from sqlalchemy import engine as _sa_engine
from sqlalchemy import event as _sa_event

from immigration.config import config
from immigration.core.exceptions import (
    ConflictError,
    NotFoundError,
    TransitionError,
    ValidationError,
)
from immigration.middleware.logging_config import configure_logging
from immigration.middleware.rate_limiter import init_rate_limits
from immigration.middleware.tenant_context import init_tenant_context
from immigration.middleware.timing import init_request_timing
from immigration.models import db

logger = logging.getLogger(__name__)


# ── SQLite FK enforcement (global engine event) ─────────────────────────
@_sa_event.listens_for(_sa_engine.Engine, "connect")
def _enable_sqlite_fk(dbapi_conn, connection_record):
    """Enable foreign key enforcement for SQLite connections."""
    if "sqlite" in type(dbapi_conn).__module__:
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


migrate = Migrate()
limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[],                     # no global limit - apply per-blueprint
)


def _import_models():
    """Import every model module so create_all / Alembic see the tables."""
    from immigration.models import activity_log as _activity_log  # noqa: F401
    from immigration.models import case_status as _case_status  # noqa: F401
    from immigration.models import documents as _documents  # noqa: F401
    from immigration.models import geography as _geography  # noqa: F401
    from immigration.models import legal as _legal  # noqa: F401
    from immigration.models import notification as _notification  # noqa: F401
    from immigration.models import people as _people  # noqa: F401
    from immigration.models import process as _process  # noqa: F401
    from immigration.models import reference as _reference  # noqa: F401
    from immigration.models import task as _task  # noqa: F401
    from immigration.models import tenant as _tenant  # noqa: F401


def _register_blueprints(app):
    from immigration.blueprints.activity_log_bp import activity_log_bp
    from immigration.blueprints.case_status_bp import case_status_bp
    from immigration.blueprints.clients_bp import clients_bp
    from immigration.blueprints.dashboard_bp import dashboard_bp
    from immigration.blueprints.documents_bp import documents_bp
    from immigration.blueprints.export_bp import export_bp
    from immigration.blueprints.field_registry_bp import field_registry_bp
    from immigration.blueprints.health_bp import health_bp
    from immigration.blueprints.notification_bp import notification_bp
    from immigration.blueprints.process_bp import process_bp
    from immigration.blueprints.reference_bp import reference_bp
    from immigration.blueprints.status_history_bp import status_history_bp
    from immigration.blueprints.status_transitions_bp import status_transitions_bp
    from immigration.blueprints.task_bp import task_bp
    from immigration.blueprints.tenant_bp import tenant_bp

    app.register_blueprint(health_bp)
    app.register_blueprint(tenant_bp)
    app.register_blueprint(reference_bp)
    app.register_blueprint(clients_bp)
    app.register_blueprint(documents_bp)
    app.register_blueprint(field_registry_bp)
    app.register_blueprint(case_status_bp)
    app.register_blueprint(status_transitions_bp)
    app.register_blueprint(process_bp)
    app.register_blueprint(status_history_bp)
    app.register_blueprint(task_bp)
    app.register_blueprint(notification_bp)
    app.register_blueprint(activity_log_bp)
    app.register_blueprint(dashboard_bp)
    app.register_blueprint(export_bp)


def _register_error_handlers(app):
    """Domain exceptions → JSON with one status code per type."""

    def _domain_error(exc, status):
        db.session.rollback()
        return jsonify({"error": str(exc), "details": getattr(exc, "details", None) or {}}), status

    @app.errorhandler(NotFoundError)
    def handle_not_found(exc):
        return _domain_error(exc, 404)

    @app.errorhandler(ValidationError)
    def handle_validation(exc):
        return _domain_error(exc, 422)

    @app.errorhandler(ConflictError)
    def handle_conflict(exc):
        return _domain_error(exc, 409)

    @app.errorhandler(TransitionError)
    def handle_transition(exc):
        body = {"current": exc.current, "candidate": exc.candidate}
        db.session.rollback()
        return jsonify({"error": str(exc), "details": body}), 409

    @app.errorhandler(404)
    def not_found(e):
        return {"error": "Not found", "path": request.path}, 404

    @app.errorhandler(405)
    def method_not_allowed(e):
        return {"error": "Method not allowed"}, 405

    @app.errorhandler(413)
    def too_large(e):
        return {"error": "Request body too large"}, 413

    @app.errorhandler(415)
    def unsupported_media(e):
        return {"error": "Content-Type must be application/json"}, 415

    @app.errorhandler(429)
    def rate_limited(e):
        return {"error": "Too many requests", "retry_after": e.description}, 429

    @app.errorhandler(500)
    def server_error(e):
        logger.error("500 error: %s", e, exc_info=True)
        db.session.rollback()
        return {"error": "Internal server error"}, 500


def _register_cli(app):
    @app.cli.command("seed-case-statuses")
    @click.option("--tenant", "slug", default=None, help="Tenant slug (default tenant if omitted).")
    def seed_case_statuses_cmd(slug):
        """Seed the default case-status catalog for a tenant (idempotent)."""
        from immigration.services import tenant_service
        from immigration.services.case_status_service import seed_default_catalog
        from immigration.tenant import default_slug

        tenant = tenant_service.ensure_tenant(slug or default_slug())
        count = seed_default_catalog(tenant.id)
        db.session.commit()
        click.echo(f"Seeded {count} case statuses for tenant '{tenant.slug}'.")


def create_app(config_name=None):
    """
    Create and configure the Flask application.

    Args:
        config_name: Configuration environment name.
                     One of: "development", "testing", "production".
                     Defaults to APP_ENV env var, or "development" if unset.

    Returns:
        Configured Flask application instance.
    """
    if config_name is None:
        config_name = os.getenv("APP_ENV", "development")

    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(config[config_name]())
    os.makedirs(app.instance_path, exist_ok=True)

    # ── Structured logging (must be first) ───────────────────────────────
    configure_logging(app)

    # ── Extensions ───────────────────────────────────────────────────────
    db.init_app(app)
    migrate.init_app(app, db)
    limiter.init_app(app)
    cors_origins = app.config.get("CORS_ORIGINS", "*")
    if cors_origins and cors_origins != "*":
        CORS(app, origins=[o.strip() for o in cors_origins.split(",") if o.strip()])
    else:
        CORS(app)

    # ── Request timing, then tenant context ──────────────────────────────
    init_request_timing(app)
    init_tenant_context(app)

    # ── Request guards (input length + Content-Type) ─────────────────────
    @app.before_request
    def _guard_request():
        max_len = app.config.get("MAX_CONTENT_LENGTH")
        if max_len and request.content_length and request.content_length > max_len:
            abort(413, description="Request body too large")
        if request.method in ("POST", "PUT", "PATCH") and request.path.startswith("/api/"):
            ct = request.content_type or ""
            if request.get_data(cache=True) and "json" not in ct:
                abort(415, description="Content-Type must be application/json")
        return None

    # ── Tables + default tenant ──────────────────────────────────────────
    _import_models()
    with app.app_context():
        db.create_all()
        from immigration.services import tenant_service
        from immigration.tenant import default_slug

        tenant_service.ensure_tenant(default_slug())
        db.session.commit()
        app.logger.info("Database ready (config=%s)", config_name)

    _register_blueprints(app)
    _register_error_handlers(app)
    _register_cli(app)

    # ── Rate limiting (after blueprints registered) ──────────────────────
    init_rate_limits(app, limiter)

    return app
