import logging
import os
from datetime import timedelta

from dotenv import load_dotenv
from flask import Flask, g, redirect, render_template, request, session, url_for
from sqlalchemy import inspect as sa_inspect

from app.isoaudit.config import load_config
from app.isoaudit.db import init_db, teardown_db_session
from app.isoaudit.routes import bp as routes_bp
from app.isoaudit.auth import bp as auth_bp, load_current_user
from app.isoaudit.admin import bp as admin_bp
from app.isoaudit.modules.companies.admin import bp as companies_bp
from app.isoaudit.modules.checklist.admin import bp as checklist_bp
from app.isoaudit.modules.training.admin import bp as training_bp
from app.isoaudit.modules.implementation.admin import bp as implementation_bp

logger = logging.getLogger(__name__)

# Tables and columns the running code depends on.
_EXPECTED_SCHEMA = {
    "companies": ("standard", "legal_name", "tax_id"),
    "checklist_items": ("standard", "clause"),
    "audit_results": ("company_id", "checklist_item_id", "status", "notes", "recorded_at"),
    "clause_templates": ("standard", "clause", "storage_key", "video_url"),
    "training_completions": ("user_id", "template_id", "completed"),
    "template_uploads": ("user_id", "template_id", "storage_key"),
    "audit_events": ("client_ip",),
}

_UNGUARDED_PREFIXES = ("/static/", "/health")
_MUTATING_METHODS = ("POST", "PUT", "PATCH", "DELETE")


def _check_production_config(app: Flask) -> None:
    if (app.config.get("ENV") or "").strip().lower() not in ("prod", "production"):
        return
    db_url = str(app.config.get("DATABASE_URL") or "").strip()
    if not db_url:
        raise RuntimeError("DATABASE_URL is required in production.")
    if db_url.startswith("sqlite"):
        raise RuntimeError("DATABASE_URL must be Postgres in production (not sqlite).")
    if str(app.config.get("SECRET_KEY") or "") in ("", "change-me"):
        raise RuntimeError("SECRET_KEY must be set to a strong value in production (not default).")


def _check_storage(app: Flask) -> None:
    """Log loudly when S3 is selected but unusable. Never blocks startup."""
    if app.config.get("STORAGE_BACKEND") != "s3":
        return
    missing = [k for k in ("S3_ENDPOINT", "S3_BUCKET", "S3_ACCESS_KEY_ID", "S3_SECRET_ACCESS_KEY") if not app.config.get(k)]
    if missing:
        app.logger.error("STORAGE CONFIG ERROR: Missing required S3 env vars: %s", ", ".join(missing))
        return

    from botocore.exceptions import BotoCoreError, ClientError

    from app.isoaudit.storage import S3Storage, storage_from_config

    storage = storage_from_config(app.config)
    if not isinstance(storage, S3Storage):
        return
    try:
        storage._client().head_bucket(Bucket=storage.bucket)
    except (BotoCoreError, ClientError) as e:
        app.logger.error("STORAGE CONFIG ERROR: Cannot access S3 bucket '%s': %s", storage.bucket, e)
    else:
        app.logger.info("Storage health check PASSED: S3 bucket '%s' accessible", storage.bucket)


def _dispose_engine_on_fork(app: Flask) -> None:
    # gunicorn --preload forks after create_app(); children must not share pooled connections
    if not hasattr(os, "register_at_fork"):
        return

    def _after_fork_child():
        engine = app.extensions.get("sqlalchemy_engine")
        if engine:
            engine.dispose()
            app.logger.info("Disposed DB engine after fork (pid=%s)", os.getpid())

    os.register_at_fork(after_in_child=_after_fork_child)


def _missing_schema(app: Flask) -> list[str]:
    insp = sa_inspect(app.extensions["sqlalchemy_engine"])
    missing: list[str] = []
    for table, columns in _EXPECTED_SCHEMA.items():
        if not insp.has_table(table):
            missing.append(f"{table} (table)")
            continue
        present = {c["name"] for c in insp.get_columns(table)}
        missing.extend(f"{table}.{col}" for col in columns if col not in present)
    return missing


def _install_request_hooks(app: Flask) -> None:
    from app.isoaudit.rbac import user_has_permission
    from app.isoaudit.security import ensure_csrf_token, validate_csrf

    @app.context_processor
    def _template_globals() -> dict:
        return {
            "csrf_token": ensure_csrf_token(),
            "has_perm": lambda key: user_has_permission(getattr(g, "current_user", None), key),
        }

    @app.template_filter("dateformat")
    def _dateformat_filter(value, format: str = "%Y-%m-%d") -> str:
        if value is None:
            return "—"
        return value.strftime(format) if hasattr(value, "strftime") else str(value)

    @app.before_request
    def _csrf_guard():
        if request.path.startswith(_UNGUARDED_PREFIXES):
            return None
        ensure_csrf_token()
        session.permanent = True
        # Login/logout are exempt
        if request.method not in _MUTATING_METHODS or (request.endpoint or "").startswith("auth."):
            return None
        if validate_csrf(request):
            return None
        message = "CSRF token missing or invalid."
        if request.is_json:
            return {"success": False, "message": message}, 400
        return render_template("errors/400.html", message=message), 400

    app.before_request(load_current_user)
    app.teardown_appcontext(teardown_db_session)

    state = {"checked": False, "missing": []}

    @app.before_request
    def _schema_guard():
        # First request, not create_app(): tests and `alembic upgrade` create tables afterwards
        if not state["checked"]:
            state["checked"] = True
            try:
                state["missing"] = _missing_schema(app)
            except Exception:
                app.logger.exception("Schema health check failed")
            if state["missing"]:
                app.logger.error(
                    "DB schema out of date; run `alembic upgrade head`. Missing: %s", ", ".join(state["missing"])
                )
        if not state["missing"] or not getattr(g, "current_user", None):
            return None
        if request.path.startswith(_UNGUARDED_PREFIXES + ("/auth/",)):
            return None
        return render_template("errors/schema_out_of_date.html", missing=state["missing"]), 500


def _install_error_handlers(app: Flask) -> None:
    @app.errorhandler(500)
    def _err_500(e):  # type: ignore[no-redef]
        app.logger.exception("Unhandled 500 (request_id=%s)", getattr(g, "request_id", None))
        return render_template("errors/500.html"), 500

    @app.errorhandler(404)
    def _err_404(e):  # type: ignore[no-redef]
        return render_template("errors/404.html"), 404

    @app.errorhandler(403)
    def _err_403(e):  # type: ignore[no-redef]
        missing = getattr(g, "missing_permission", None)
        if missing:
            app.logger.warning("Forbidden: missing_permission=%s request_id=%s", missing, getattr(g, "request_id", None))
        return render_template("errors/403.html", missing_permission=missing), 403

    @app.errorhandler(413)
    def _err_413(e):  # type: ignore[no-redef]
        # Back to the form that posted the upload
        referrer = request.referrer
        if referrer and referrer.startswith(request.host_url):
            sep = "&" if "?" in referrer else "?"
            return redirect(f"{referrer}{sep}notice=file_too_large")
        return redirect(url_for("routes.index", notice="file_too_large"))


def create_app() -> Flask:
    load_dotenv()
    app = Flask(__name__, template_folder="templates", static_folder="static")
    app.config.from_mapping(load_config())
    app.config["PERMANENT_SESSION_LIFETIME"] = timedelta(hours=8)
    app.config["SESSION_REFRESH_EACH_REQUEST"] = True

    _check_production_config(app)
    init_db(app)
    _dispose_engine_on_fork(app)
    _check_storage(app)

    app.register_blueprint(routes_bp)
    app.register_blueprint(auth_bp, url_prefix="/auth")
    app.register_blueprint(admin_bp, url_prefix="/admin")
    app.register_blueprint(companies_bp, url_prefix="/companies")
    app.register_blueprint(checklist_bp, url_prefix="/checklist")
    app.register_blueprint(training_bp, url_prefix="/training")
    app.register_blueprint(implementation_bp, url_prefix="/implementation")

    _install_request_hooks(app)
    _install_error_handlers(app)

    logger.info("create_app() complete; app ready to serve")
    return app
