"""gym_app package – application factory and blueprint registration."""

from __future__ import annotations

import os
from time import perf_counter

import click
from flask import Flask, g, request
from flask_jwt_extended import JWTManager
from sqlalchemy import event
from sqlalchemy.exc import SQLAlchemyError

from config import resolve_config
from .blueprints import BLUEPRINTS
from .extensions import cors, db, jwt, migrate, limiter
from .identity import Account, install_account_accessor, issue_token
from .logging_config import configure_logging, assign_request_id
from .metrics import record_request


def create_app(config_name: str | None = None) -> Flask:
    """Application factory used by both CLI and runtime servers."""

    app = Flask(__name__)
    _configure_app(app, config_name)
    configure_logging(app)
    _register_extensions(app)
    install_account_accessor(app)
    _register_blueprints(app)
    _register_shellcontext(app)
    _register_cli(app)
    _register_bootstrap(app)
    _register_request_hooks(app)

    return app


def _configure_app(app: Flask, config_name: str | None) -> None:
    env_name = config_name or os.getenv("FLASK_CONFIG")
    config_obj = resolve_config(env_name)
    app.config.from_object(config_obj)


def _register_extensions(app: Flask) -> None:
    db.init_app(app)
    migrate.init_app(app, db)
    jwt.init_app(app)
    _configure_jwt(jwt)
    _configure_sqlite_engine(app)
    cors.init_app(
        app,
        resources={r"/api/*": {"origins": app.config.get("CORS_ORIGINS", "*")}},
        supports_credentials=True,
    )
    limiter.default_limits = app.config.get("RATE_LIMIT_DEFAULTS", [])
    limiter.init_app(app)


def _register_blueprints(app: Flask) -> None:
    for blueprint, prefix in BLUEPRINTS:
        app.register_blueprint(blueprint, url_prefix=prefix)


def _register_shellcontext(app: Flask) -> None:
    # Lazy import inside function to avoid circular dependencies.
    from . import models

    @app.shell_context_processor
    def shell_context():
        return {
            "db": db,
            "UserRecord": models.UserRecord,
            "SubscriptionRequest": models.SubscriptionRequest,
            "RenewalRequest": models.RenewalRequest,
            "Member": models.Member,
        }


def _configure_jwt(jwt_manager: JWTManager) -> None:
    from flask import jsonify

    @jwt_manager.expired_token_loader
    def expired_token_callback(jwt_header, jwt_data):
        return jsonify({"error": "token_expired", "message": "Token has expired"}), 401

    @jwt_manager.invalid_token_loader
    def invalid_token_callback(error_string):
        return jsonify({"error": "invalid_token", "message": "Invalid token", "detail": error_string}), 401

    @jwt_manager.unauthorized_loader
    def missing_token_callback(error_string):
        return jsonify({"error": "missing_token", "message": "Missing authorization token"}), 401


def _register_bootstrap(app: Flask) -> None:
    @app.before_request
    def ensure_schema():
        if app.config.get("_SCHEMA_READY"):
            return
        try:
            _ensure_schema(app)
            app.config["_SCHEMA_READY"] = True
        except SQLAlchemyError as exc:  # pragma: no cover - database not reachable yet
            app.logger.warning("Schema bootstrap skipped: %s", exc)
            app.config["_SCHEMA_READY"] = False


def _register_request_hooks(app: Flask) -> None:
    @app.before_request
    def start_request():
        assign_request_id()
        g.request_started_at = perf_counter()

    @app.after_request
    def finalize(response):
        request_id = getattr(g, "request_id", None)
        if request_id:
            response.headers["X-Request-ID"] = request_id
        started = getattr(g, "request_started_at", None)
        latency = perf_counter() - started if started else 0.0
        endpoint = request.endpoint or request.path
        record_request(request.method, endpoint, response.status_code, latency)
        return response


def _configure_sqlite_engine(app: Flask) -> None:
    uri = app.config.get("SQLALCHEMY_DATABASE_URI", "")
    if not uri.startswith("sqlite"):
        return
    busy_timeout_ms = int(app.config.get("SQLITE_BUSY_TIMEOUT_MS", 15000))

    with app.app_context():
        engine = db.engine

        @event.listens_for(engine, "connect")
        def _set_sqlite_pragmas(dbapi_connection, connection_record):  # pragma: no cover
            cursor = dbapi_connection.cursor()
            try:
                cursor.execute("PRAGMA foreign_keys=ON;")
                cursor.execute("PRAGMA journal_mode=WAL;")
                cursor.execute(f"PRAGMA busy_timeout={busy_timeout_ms};")
                cursor.execute("PRAGMA synchronous=NORMAL;")
            finally:
                cursor.close()


def _ensure_schema(app: Flask) -> None:
    from . import models  # noqa: F401

    with app.app_context():
        db.create_all()


def _register_cli(app: Flask) -> None:
    @app.cli.command("create-admin")
    @click.option("--id", "account_id", required=True, help="Identity-provider account id.")
    @click.option("--email", required=True, help="Admin email address.")
    @click.option("--name", default="Admin", show_default=True, help="Display name.")
    def create_admin(account_id: str, email: str, name: str) -> None:
        """Create or promote an admin record with a lifetime subscription."""

        from .models import UserRecord
        from .services import lifecycle_policy

        with app.app_context():
            _ensure_schema(app)
            start, end = lifecycle_policy.plan_period("lifetime", lifecycle_policy.today())
            user = db.session.get(UserRecord, account_id)
            created = user is None
            if created:
                user = UserRecord(id=account_id, email=email.lower(), name=name)
            user.role = "admin"
            user.is_verified = True
            user.subscription_status = "active"
            user.plan_type = "lifetime"
            user.subscription_start_date = start
            user.subscription_end_date = end
            db.session.add(user)
            db.session.commit()
            click.echo(f"{'Created' if created else 'Promoted'} admin {account_id} ({user.email}).")

    @app.cli.group("subscriptions")
    def subscriptions_group():
        """Subscription maintenance commands."""

    @subscriptions_group.command("expire")
    @click.option(
        "--date",
        "cutoff",
        type=click.DateTime(formats=["%Y-%m-%d"]),
        help="Treat this day (YYYY-MM-DD) as today. Defaults to today.",
    )
    def expire_command(cutoff):
        """Mark active subscriptions past their end date as expired."""

        from .errors import StorageError
        from .services import subscription_service

        with app.app_context():
            try:
                count = subscription_service.expire_lapsed_subscriptions(
                    cutoff.date() if cutoff else None
                )
            except StorageError as exc:
                raise click.ClickException(exc.message) from exc
        click.echo(f"Expired {count} subscription(s).")

    @app.cli.command("issue-token")
    @click.option("--id", "account_id", required=True, help="Account id to embed as subject.")
    @click.option("--email", required=True)
    @click.option("--name", default="")
    @click.option("--role", type=click.Choice(["member", "admin"]), default="member", show_default=True)
    def issue_token_command(account_id: str, email: str, name: str, role: str) -> None:
        """Mint a development JWT shaped like the identity provider's."""

        with app.app_context():
            token = issue_token(Account(id=account_id, email=email, name=name, role=role))
        click.echo(token)
