import os

from flask import Flask, g, jsonify, request
from werkzeug.exceptions import HTTPException

from quotation_engine.config import Config
from quotation_engine.db import close_db, init_db
from quotation_engine.db_migrations import register_db_cli
from quotation_engine.observability import (
    configure_json_logging,
    ensure_request_id,
    mark_request_start,
    metrics_snapshot,
    observe_response,
    prometheus_metrics_text,
)
from quotation_engine.security import apply_security_headers, enforce_rate_limit


def create_app(config_class=Config):
    app = Flask(__name__)
    app.config.from_object(config_class)
    configure_json_logging(app)

    _ensure_database_dir(app)
    _register_error_handlers(app)
    _register_security(app)
    _register_tenant(app)
    _register_blueprints(app)
    _register_health(app)
    register_db_cli(app)
    _maybe_init_schema(app)

    app.teardown_appcontext(close_db)
    return app


def _ensure_database_dir(app: Flask) -> None:
    database_dir = app.config.get("DATABASE_DIR")
    if database_dir:
        os.makedirs(database_dir, exist_ok=True)


def _maybe_init_schema(app: Flask) -> None:
    auto_init = bool(app.config.get("DB_AUTO_INIT", False))
    if app.testing:
        # Testes criam o schema direto, sem depender de migration externa.
        auto_init = True
    if not auto_init:
        return

    flask_env = (os.environ.get("FLASK_ENV", "development") or "development").strip().lower()
    if not app.testing and flask_env != "development":
        app.logger.warning("DB_AUTO_INIT ignorado fora de development.")
        return

    with app.app_context():
        init_db()


def _register_blueprints(app: Flask) -> None:
    from quotation_engine.routes.public_routes import public_bp
    from quotation_engine.routes.quotation_routes import quotation_bp

    app.register_blueprint(quotation_bp)
    app.register_blueprint(public_bp)


def _register_error_handlers(app: Flask) -> None:
    from quotation_engine.errors import AppError, SystemError

    @app.before_request
    def _ensure_request_id() -> None:
        ensure_request_id()
        mark_request_start()

    @app.after_request
    def _append_request_id(response):
        response.headers["X-Request-Id"] = ensure_request_id()
        response = observe_response(response)
        return apply_security_headers(response)

    def _log_error(error: AppError, request_id: str) -> None:
        log_method = app.logger.error if error.critical else app.logger.warning
        log_method(
            "application_error",
            extra={
                "request_id": request_id,
                "error_code": error.code,
                "http_status": error.http_status,
                "message_key": error.message_key,
                "details": error.details,
                "request_path": request.path,
                "http_method": request.method,
            },
            exc_info=error.critical,
        )

    @app.errorhandler(AppError)
    def _handle_app_error(exc: AppError):
        request_id = ensure_request_id()
        _log_error(exc, request_id)
        response = jsonify(exc.to_response_payload(request_id))
        retry_after = exc.payload.get("retry_after")
        if exc.http_status == 429 and retry_after is not None:
            response.headers["Retry-After"] = str(retry_after)
        return response, exc.http_status

    @app.errorhandler(Exception)
    def _handle_unexpected(exc: Exception):
        if isinstance(exc, HTTPException):
            return exc

        request_id = ensure_request_id()
        mapped = SystemError(
            code="unexpected_error",
            message_key="unexpected_error",
            http_status=500,
            critical=True,
            details=str(exc),
        )
        app.logger.exception(
            "unexpected_exception",
            extra={
                "request_id": request_id,
                "error_code": mapped.code,
                "request_path": request.path,
                "http_method": request.method,
            },
        )
        return jsonify(mapped.to_response_payload(request_id)), mapped.http_status


def _register_security(app: Flask) -> None:
    @app.before_request
    def _rate_limit_guard():
        return enforce_rate_limit()


def _register_tenant(app: Flask) -> None:
    @app.before_request
    def load_tenant() -> None:
        from quotation_engine.tenant import default_tenant_id, normalize_tenant_id

        # Internal tooling picks the buyer organization per request; the public
        # flow ignores it and scopes by the token's own tenant.
        g.tenant_id = normalize_tenant_id(request.headers.get("X-Tenant-Id")) or default_tenant_id()


def _register_health(app: Flask) -> None:
    @app.route("/health")
    def health():
        from quotation_engine.db import get_db

        db_path = app.config.get("DB_PATH") or "unknown"
        backend = "postgres" if str(db_path).startswith("postgres") else "sqlite"
        payload = {
            "status": "ok",
            "db": backend,
            "env": os.environ.get("FLASK_ENV", "development"),
            "metrics": {
                "http": metrics_snapshot(),
            },
        }
        try:
            get_db().execute("SELECT 1").fetchone()
        except Exception:  # noqa: BLE001
            app.logger.exception("health_db_check_failed")
            payload["status"] = "degraded"
        return payload, 200

    @app.route("/metrics")
    def metrics():
        return prometheus_metrics_text(), 200, {"Content-Type": "text/plain; version=0.0.4; charset=utf-8"}
