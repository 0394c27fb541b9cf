import json
import os

import click
from flask import Flask, jsonify, request, g
from sqlalchemy import event, text
from sqlalchemy.exc import SQLAlchemyError
from werkzeug.exceptions import HTTPException

from propertyhub.extensions import db, cors
from propertyhub import models  # noqa: F401  (registers tables before create_all)
from propertyhub.celery_app import create_celery_app
from propertyhub.integrations.messaging.factory import messaging_health
from propertyhub.segments.segment_auth import users_bp
from propertyhub.segments.segment_notifications import notifications_bp
from propertyhub.segments.segment_properties import properties_bp
from propertyhub.utils import policy
from propertyhub.utils.errors import InternalError, PropertyHubError
from propertyhub.utils.observability import init_sentry, install_request_observers


def _env_int(name: str, default: int, *, minimum: int = 1, maximum: int = 100000) -> int:
    raw = (os.getenv(name) or "").strip()
    if not raw:
        value = int(default)
    else:
        try:
            value = int(raw)
        except ValueError:
            value = int(default)
    if value < minimum:
        value = minimum
    if value > maximum:
        value = maximum
    return value


def _casefold(value):
    return value.casefold() if isinstance(value, str) else value


def _register_sqlite_functions(dbapi_connection, _connection_record):
    dbapi_connection.create_function("casefold", 1, _casefold, deterministic=True)


def _error_payload(kind: str, message: str, status: int, *, details: dict | None = None) -> dict:
    payload = {
        "ok": False,
        "error": kind,
        "message": message or kind,
        "status": int(status),
    }
    if details:
        payload["details"] = details
    rid = (getattr(g, "request_id", "") or "").strip()
    if rid:
        payload["trace_id"] = rid
    return payload


def create_app():
    app = Flask(__name__)
    init_sentry(app)

    env = (os.getenv("PROPERTYHUB_ENV", "dev") or "dev").strip().lower()

    # Production safety checks
    if env in ("prod", "production"):
        secret = (os.getenv("SECRET_KEY") or "").strip()
        if not secret or len(secret) < 16:
            raise RuntimeError("SECRET_KEY must be set and at least 16 chars in production")
        if not (os.getenv("DATABASE_URL") or "").strip() and not (os.getenv("SQLALCHEMY_DATABASE_URI") or "").strip():
            raise RuntimeError("DATABASE_URL (or SQLALCHEMY_DATABASE_URI) must be set in production")

    app.config["SECRET_KEY"] = os.getenv("SECRET_KEY", "dev-secret")
    app.config["SQLALCHEMY_TRACK_MODIFICATIONS"] = False

    instance_dir = os.path.abspath(os.path.join(os.path.dirname(__file__), "..", "instance"))
    os.makedirs(instance_dir, exist_ok=True)

    database_url = os.getenv("SQLALCHEMY_DATABASE_URI") or os.getenv("DATABASE_URL")
    if not database_url:
        database_url = "sqlite:///" + os.path.join(instance_dir, "propertyhub.db").replace(os.sep, "/")
    # Some hosts still hand out the deprecated postgres:// scheme.
    if database_url.startswith("postgres://"):
        database_url = "postgresql://" + database_url[len("postgres://"):]
    app.config["SQLALCHEMY_DATABASE_URI"] = database_url
    engine_options = {
        "pool_pre_ping": True,
        "pool_reset_on_return": "rollback",
        "pool_recycle": _env_int("DB_POOL_RECYCLE_SECONDS", 1800, minimum=60, maximum=86400),
    }
    if not database_url.startswith("sqlite://"):
        engine_options.update(
            {
                "pool_size": _env_int("DB_POOL_SIZE", 10, minimum=1, maximum=200),
                "max_overflow": _env_int("DB_MAX_OVERFLOW", 20, minimum=0, maximum=500),
                "pool_timeout": _env_int("DB_POOL_TIMEOUT_SECONDS", 30, minimum=1, maximum=300),
            }
        )
        app.logger.info(
            "db_pooling_enabled pool_size=%s max_overflow=%s pool_timeout=%s pool_recycle=%s",
            engine_options["pool_size"],
            engine_options["max_overflow"],
            engine_options["pool_timeout"],
            engine_options["pool_recycle"],
        )
    app.config["SQLALCHEMY_ENGINE_OPTIONS"] = engine_options

    cors_origins = (os.getenv("CORS_ORIGINS") or "").strip()
    if env in ("prod", "production"):
        origins = [o.strip() for o in cors_origins.split(",") if o.strip()]
    else:
        origins = ["*"] if not cors_origins else [o.strip() for o in cors_origins.split(",") if o.strip()]
    cors.init_app(app, resources={r"/api/*": {"origins": origins}})

    db.init_app(app)
    install_request_observers(app)
    with app.app_context():
        if db.engine.dialect.name == "sqlite":
            event.listen(db.engine, "connect", _register_sqlite_functions)
        db.create_all()

    @app.errorhandler(PropertyHubError)
    def _engine_error(error: PropertyHubError):
        if error.status >= 500:
            app.logger.error("engine_error kind=%s path=%s message=%s", error.kind, request.path, error.message)
        return jsonify(_error_payload(error.kind, error.message, error.status, details=error.details)), error.status

    @app.errorhandler(HTTPException)
    def _api_http_exception(error: HTTPException):
        # Keep API failures JSON-only for predictable client handling.
        if not request.path.startswith("/api/"):
            return error
        status = int(error.code or 500)
        response = jsonify(_error_payload(error.name, error.description or error.name, status))
        if status == 405 and getattr(error, "valid_methods", None):
            response.headers["Allow"] = ", ".join(error.valid_methods)
        return response, status

    @app.errorhandler(SQLAlchemyError)
    def _store_error(error: SQLAlchemyError):
        db.session.rollback()
        app.logger.exception("store_error path=%s", request.path)
        failure = InternalError("Database error")
        return jsonify(_error_payload(failure.kind, failure.message, failure.status)), failure.status

    @app.errorhandler(Exception)
    def _api_unhandled_exception(error: Exception):
        app.logger.exception("unhandled_exception path=%s", request.path)
        failure = InternalError("Internal server error")
        return jsonify(_error_payload(failure.kind, failure.message, failure.status)), failure.status

    app.register_blueprint(users_bp)
    app.register_blueprint(properties_bp)
    app.register_blueprint(notifications_bp)

    @app.get("/api/health")
    def health():
        db_state = "ok"
        db_error = None
        try:
            with db.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
        except SQLAlchemyError as e:
            db_state = "fail"
            msg = str(e)
            if msg:
                db_error = (msg[:300] + "...") if len(msg) > 300 else msg
        payload = {
            "ok": True,
            "service": "propertyhub-backend",
            "env": env,
            "db": db_state,
            "git_sha": (os.getenv("GIT_SHA") or "unknown"),
            "messaging": messaging_health(),
            "policy": policy.snapshot(),
        }
        if db_error:
            payload["db_error"] = db_error
        return jsonify(payload)

    @app.teardown_request
    def _cleanup_db_session(exc):
        try:
            if exc is not None:
                db.session.rollback()
        finally:
            db.session.remove()

    app.extensions["celery"] = create_celery_app(app)

    @app.cli.command("reconcile-likes")
    @click.option("--fix", is_flag=True, default=False, help="Rewrite drifted counters.")
    def reconcile_likes(fix: bool):
        from propertyhub.services.reconciliation_service import recompute_like_counters

        summary = recompute_like_counters(fix=fix)
        click.echo(json.dumps(summary, indent=2))
        if int(summary.get("drift_count") or 0):
            raise SystemExit(2)

    return app
