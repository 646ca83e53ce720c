from flask import Blueprint, current_app, render_template
from sqlalchemy import select, text
from sqlalchemy.exc import SQLAlchemyError

from app.isoaudit.constants import STANDARDS
from app.isoaudit.db import db_session
from app.isoaudit.models import AuditEvent
from app.isoaudit.modules.checklist.service import checklist_progress
from app.isoaudit.modules.companies.models import Company
from app.isoaudit.rbac import require_permission

bp = Blueprint("admin", __name__)

_S3_REQUIRED = ("S3_ENDPOINT", "S3_BUCKET", "S3_ACCESS_KEY_ID", "S3_SECRET_ACCESS_KEY")
_RECENT_EVENTS = 25


def _system_status(s) -> dict:
    """Environment, DB connectivity and storage configuration. No network calls to S3."""
    cfg = current_app.config
    backend = (cfg.get("STORAGE_BACKEND") or "local").strip().lower()
    status = {
        "env": (cfg.get("ENV") or "development").strip().lower(),
        "db_connected": True,
        "db_error": None,
        "storage_backend": backend,
        "storage_error": None,
    }
    try:
        s.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        status["db_connected"] = False
        status["db_error"] = str(e)
        s.rollback()

    if backend == "s3":
        missing = [key for key in _S3_REQUIRED if not cfg.get(key)]
        if missing:
            status["storage_error"] = f"Missing: {', '.join(missing)}"
    return status


@bp.get("/")
@require_permission("admin.view")
def index():
    s = db_session()
    status = _system_status(s)
    companies = list(s.scalars(select(Company).order_by(Company.created_at.desc())).all())
    events = s.scalars(select(AuditEvent).order_by(AuditEvent.id.desc()).limit(_RECENT_EVENTS)).all()
    return render_template(
        "admin/index.html",
        status=status,
        companies=companies,
        progress=checklist_progress(s, companies),
        events=events,
        standards=STANDARDS,
    )
