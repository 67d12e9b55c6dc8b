"""
Scopematter
Flask Application Factory.

Usage:
    from scopematter import create_app
    app = create_app()           # defaults to APP_ENV or "development"
    app = create_app("testing")  # explicit config
"""

import logging
import os

from flask import Flask, abort, request
from flask_cors import CORS
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from flask_migrate import Migrate
from sqlalchemy import engine as _sa_engine
from sqlalchemy import event as _sa_event
from werkzeug.exceptions import HTTPException

from scopematter.config import config
from scopematter.core.exceptions import ServiceError, ValidationError
from scopematter.middleware.jwt_auth import init_jwt_middleware
from scopematter.middleware.logging_config import configure_logging
from scopematter.middleware.rate_limiter import init_rate_limits
from scopematter.middleware.security_headers import init_security_headers
from scopematter.middleware.timing import init_request_timing
from scopematter.models import db
from scopematter.services.cache_service import CacheService, build_backend
from scopematter.utils.errors import E, api_error, service_error_response

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
    default_limits=[],                     # no global limit — apply per-blueprint
    storage_uri=os.getenv("REDIS_URL", "memory://"),
)


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
    # Instantiated so ProductionConfig can refuse to start without its env vars
    app.config.from_object(config[config_name]())

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

    # ── Cache (one CacheService per app; services receive it explicitly) ─
    app.extensions["cache"] = CacheService(
        build_backend(app.config["CACHE_BACKEND"], app.config.get("REDIS_URL")),
        app.config["CACHE_DEFAULT_TTL"],
    )

    # ── Security headers ─────────────────────────────────────────────────
    init_security_headers(app)

    # ── Request timing middleware ────────────────────────────────────────
    init_request_timing(app)

    # ── JWT auth middleware (sets g.current_user_id) ─────────────────────
    init_jwt_middleware(app)

    # ── Request guard (Content-Type) ─────────────────────────────────────
    @app.before_request
    def _guard_request():
        if request.method in ("POST", "PUT", "PATCH") and request.path.startswith("/api/"):
            ct = request.content_type or ""
            if request.data and "json" not in ct:
                abort(415, description="Content-Type must be application/json")

    # ── Import all models so Alembic can detect them ─────────────────────
    from scopematter.models import auth as _auth_models                  # noqa: F401
    from scopematter.models import project as _project_models            # noqa: F401
    from scopematter.models import change_order as _change_order_models  # noqa: F401
    from scopematter.models import share_link as _share_link_models      # noqa: F401
    from scopematter.models import wallet as _wallet_models              # noqa: F401

    # ── Auto-create tables (CREATE IF NOT EXISTS) ────────────────────────
    with app.app_context():
        try:
            db.create_all()
            app.logger.info("db.create_all() completed successfully")
        except Exception as e:
            app.logger.warning("db.create_all() failed: %s", e)

    # ── Blueprints ───────────────────────────────────────────────────────
    from scopematter.blueprints.change_order_bp import change_order_bp
    from scopematter.blueprints.dashboard_bp import dashboard_bp
    from scopematter.blueprints.health_bp import health_bp
    from scopematter.blueprints.payment_link_bp import payment_link_bp
    from scopematter.blueprints.project_bp import project_bp
    from scopematter.blueprints.public_bp import public_bp
    from scopematter.blueprints.request_bp import request_bp
    from scopematter.blueprints.scope_item_bp import scope_item_bp
    from scopematter.blueprints.share_link_bp import share_link_bp
    from scopematter.blueprints.wallet_bp import wallet_bp
    from scopematter.blueprints.webhook_bp import webhook_bp

    app.register_blueprint(health_bp)
    app.register_blueprint(webhook_bp)
    app.register_blueprint(project_bp)
    app.register_blueprint(scope_item_bp)
    app.register_blueprint(request_bp)
    app.register_blueprint(change_order_bp)
    app.register_blueprint(share_link_bp)
    app.register_blueprint(public_bp)
    app.register_blueprint(dashboard_bp)
    app.register_blueprint(wallet_bp)
    app.register_blueprint(payment_link_bp)

    # ── Error handlers ───────────────────────────────────────────────────
    @app.errorhandler(ServiceError)
    def handle_service_error(e):
        logger.debug("Service error %s on %s", e.code.value, request.path,
                     extra={"error_code": e.code.value})
        return service_error_response(e)

    @app.errorhandler(ValidationError)
    def handle_validation_error(e):
        return api_error(E.VALIDATION_INVALID, str(e), details=e.details)

    @app.errorhandler(404)
    def not_found(e):
        return api_error(E.NOT_FOUND, "Not found", status=404, details={"path": request.path})

    @app.errorhandler(405)
    def method_not_allowed(e):
        return {"error": "Method not allowed", "code": "ERR_METHOD_NOT_ALLOWED"}, 405

    @app.errorhandler(429)
    def rate_limited(e):
        return {"error": "Too many requests", "retry_after": e.description}, 429

    @app.errorhandler(Exception)
    def server_error(e):
        if isinstance(e, HTTPException):
            return e
        db.session.rollback()
        logger.error("Unhandled error on %s: %s", request.path, e, exc_info=True)
        return api_error(E.INTERNAL, "Internal server error")

    # ── Rate limiting (after blueprints registered) ──────────────────────
    init_rate_limits(app, limiter)

    return app
