from __future__ import annotations

from flask import Blueprint, abort, current_app, g, jsonify, render_template, request
from sqlalchemy import select

from app.isoaudit.alerts import alert_from_request
from app.isoaudit.constants import standard_label
from app.isoaudit.db import db_session
from app.isoaudit.models import User
from app.isoaudit.modules.checklist.models import ChecklistItem
from app.isoaudit.modules.checklist.reference import CHECKLIST_STATUSES
from app.isoaudit.modules.checklist.service import (
    ReconcileError,
    StoreFailure,
    parse_submissions,
    reconcile_checklist,
    results_by_clause,
)
from app.isoaudit.modules.companies.models import Company
from app.isoaudit.rbac import require_permission

bp = Blueprint("checklist", __name__)


def _current_user() -> User:
    u = getattr(g, "current_user", None)
    if not u:
        raise RuntimeError("No current user")
    return u


@bp.get("/<int:company_id>")
@require_permission("checklist.view")
def checklist_form(company_id: int):
    s = db_session()
    company = s.get(Company, company_id)
    if not company:
        abort(404)

    items = s.scalars(
        select(ChecklistItem)
        .where(ChecklistItem.standard == company.standard)
        .order_by(ChecklistItem.sort_order.asc(), ChecklistItem.id.asc())
    ).all()

    return render_template(
        "checklist/form.html",
        company=company,
        standard_label=standard_label(company.standard),
        items=items,
        results=results_by_clause(s, company.id),
        statuses=CHECKLIST_STATUSES,
        alert=alert_from_request(request),
    )


@bp.post("/save")
@require_permission("checklist.edit")
def checklist_save():
    s = db_session()
    u = _current_user()

    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        return jsonify(success=False, message="Incomplete data: expected a JSON object."), 400

    try:
        submissions = parse_submissions(payload.get("submissions"))
        ack = reconcile_checklist(s, payload.get("companyId"), submissions, actor=u)
    except StoreFailure as e:
        current_app.logger.error("Checklist save store failure (request_id=%s): %s", getattr(g, "request_id", None), e.__cause__)
        return jsonify(success=False, message=str(e)), e.http_status
    except ReconcileError as e:
        return jsonify(success=False, message=str(e)), e.http_status

    if ack.saved == 0:
        return jsonify(success=True, message="Nothing to save.", saved=0)

    return jsonify(success=True, message="Checklist saved.", saved=ack.saved)
