from flask import Blueprint, render_template, request

from app.isoaudit.alerts import alert_from_request
from app.isoaudit.constants import STANDARDS

bp = Blueprint("routes", __name__)


@bp.get("/")
def index():
    return render_template("public/index.html", standards=STANDARDS, alert=alert_from_request(request))


@bp.get("/health")
def health():
    """Health check endpoint. Returns JSON."""
    return {"ok": True}


@bp.get("/healthz")
def healthz():
    """
    Fast health check for k8s/DO liveness checks. No DB access, minimal overhead.
    """
    return "ok", 200
