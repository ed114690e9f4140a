import os

import click
from flask import Flask, g, jsonify, request
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from werkzeug.exceptions import HTTPException

from listit.config import load_config
from listit.extensions import db, migrate, cors
from listit.models import User
from listit.segments.segment_auth import auth_bp
from listit.segments.segment_market import market_bp
from listit.segments.segment_ai import ai_bp
from listit.segments.segment_geo import geo_bp
from listit.segments.segment_conversations import conversations_bp
from listit.segments.segment_admin import admin_bp
from listit.integrations.listing_ai.factory import listing_ai_health
from listit.utils.auth import request_token
from listit.utils.build_info import alembic_head, git_sha
from listit.utils.jwt_utils import user_id_from_token
from listit.utils.observability import init_otel, init_sentry, install_request_observers, tag_request_user
from listit.utils.rate_limit import (
    AUTH_POLICIES,
    BROWSE_POLICY,
    WRITE_POLICY,
    enforce,
    limit_subject,
    limiter_active,
    limiter_stats,
)

SERVICE_NAME = "listit-backend"

_AUTH_PATHS = ("/api/login", "/api/register")
_BLUEPRINTS = (auth_bp, market_bp, ai_bp, geo_bp, conversations_bp, admin_bp)


def bootstrap_admin_from_env() -> User | None:
    """Create the admin named by ADMIN_EMAIL/ADMIN_PASSWORD, or promote that account if it exists.

    The password is used exactly as given. ADMIN_USERNAME only applies when the
    account is created. Idempotent.
    """
    email = (os.getenv("ADMIN_EMAIL") or "").strip().lower()
    password = os.getenv("ADMIN_PASSWORD") or ""
    if not email or not password:
        return None

    user = User.query.filter_by(email=email).first()
    if user is None:
        username = (os.getenv("ADMIN_USERNAME") or email.split("@")[0]).strip()[:32]
        user = User(email=email, username=username, is_admin=True)
        user.set_password(password)
        db.session.add(user)
    else:
        user.is_admin = True
    db.session.commit()
    return user


def _startup_admin(app) -> None:
    # Tables come from `flask db upgrade`; before that this just logs and skips.
    if not (os.getenv("ADMIN_EMAIL") or "").strip():
        return
    try:
        user = bootstrap_admin_from_env()
    except SQLAlchemyError as e:
        db.session.rollback()
        app.logger.warning("admin_bootstrap_skipped err=%s", e)
        return
    if user is not None:
        app.logger.info("admin_bootstrap_ok user_id=%s", user.id)


def _error_payload(error: str, message: str, status: int) -> dict:
    payload = {"ok": False, "error": error, "message": message, "status": status}
    rid = getattr(g, "request_id", "")
    if rid:
        payload["trace_id"] = rid
    return payload


def _db_status() -> tuple[str, str | None]:
    try:
        with db.engine.connect() as conn:
            conn.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        return "fail", str(e)[:300] or None
    return "ok", None


def _register_error_handlers(app) -> None:
    @app.errorhandler(HTTPException)
    def _http_error(error: HTTPException):
        if not request.path.startswith("/api/"):
            return error
        status = int(error.code or 500)
        return jsonify(_error_payload(error.name, error.description or error.name, status)), status

    @app.errorhandler(Exception)
    def _unhandled_error(error: Exception):
        app.logger.exception("unhandled_exception path=%s", request.path)
        db.session.rollback()
        return jsonify(_error_payload("InternalServerError", "Internal server error", 500)), 500


def _register_meta_routes(app) -> None:
    @app.get("/api/health")
    def health():
        db_state, db_error = _db_status()
        payload = {
            "ok": True,
            "service": SERVICE_NAME,
            "env": app.config["ENV_NAME"],
            "db": db_state,
            "git_sha": git_sha(),
            "alembic_head": alembic_head(),
            "rate_limit": limiter_stats(),
            "location_match_max_distance": int(app.config["LOCATION_MATCH_MAX_DISTANCE"]),
            "integrations": {"listing_ai": listing_ai_health()},
        }
        if db_error:
            payload["db_error"] = db_error
        return jsonify(payload)

    @app.get("/")
    def root():
        return jsonify({"ok": True, "service": SERVICE_NAME, "env": app.config["ENV_NAME"]})

    @app.get("/api/version")
    def version():
        return jsonify({"ok": True, "alembic_head": alembic_head(), "git_sha": git_sha()})


def _register_request_hooks(app) -> None:
    @app.before_request
    def _capture_auth_context():
        g.auth_user_id = user_id_from_token(request_token())
        if g.auth_user_id is not None:
            tag_request_user(g.auth_user_id)

    @app.before_request
    def _global_rate_limit_guard():
        if not limiter_active(app) or request.method == "OPTIONS":
            return None
        path = request.path or ""
        if not path.startswith("/api/"):
            return None
        if path.startswith(_AUTH_PATHS):
            return enforce(AUTH_POLICIES, limit_subject())
        policy = BROWSE_POLICY if request.method == "GET" else WRITE_POLICY
        return enforce(
            (policy,),
            limit_subject(user_id=g.auth_user_id),
            scope_key=f"{request.method}:{path}",
        )

    @app.teardown_request
    def _cleanup_db_session(exc):
        try:
            if exc is not None:
                db.session.rollback()
        finally:
            db.session.remove()


def create_app():
    app = Flask(__name__)
    init_sentry(app)

    instance_dir = os.path.abspath(os.path.join(os.path.dirname(__file__), "..", "instance"))
    os.makedirs(instance_dir, exist_ok=True)
    app.config.update(load_config(instance_dir))

    pool = app.config["SQLALCHEMY_ENGINE_OPTIONS"]
    if "pool_size" in pool:
        app.logger.info(
            "db_pooling_enabled pool_size=%s max_overflow=%s pool_timeout=%s pool_recycle=%s",
            pool["pool_size"],
            pool["max_overflow"],
            pool["pool_timeout"],
            pool["pool_recycle"],
        )

    origins = app.config["CORS_ORIGINS"]
    # Cookie auth needs credentials, which browsers refuse with a wildcard origin.
    cors.init_app(
        app,
        resources={r"/api/*": {"origins": origins}},
        supports_credentials=origins != ["*"],
    )

    db.init_app(app)
    migrate.init_app(app, db)
    install_request_observers(app)
    with app.app_context():
        _startup_admin(app)
        init_otel(app, enabled=(os.getenv("OTEL_ENABLED") or "").strip() == "1")

    _register_error_handlers(app)
    for bp in _BLUEPRINTS:
        app.register_blueprint(bp)
    _register_meta_routes(app)
    _register_request_hooks(app)

    @app.cli.command("bootstrap-admin")
    def bootstrap_admin():
        """Create or promote the admin account from ADMIN_EMAIL/ADMIN_PASSWORD."""
        if not (os.getenv("ADMIN_EMAIL") or "").strip() or not os.getenv("ADMIN_PASSWORD"):
            raise click.ClickException("ADMIN_EMAIL and ADMIN_PASSWORD must be set.")
        try:
            user = bootstrap_admin_from_env()
        except SQLAlchemyError as e:
            db.session.rollback()
            raise click.ClickException(f"Failed to bootstrap admin: {e}")
        click.echo(f"admin_bootstrap_ok {user.email}")

    return app
