from __future__ import annotations

from flask import Blueprint, abort, current_app, g, redirect, render_template, request, url_for
from sqlalchemy.exc import SQLAlchemyError

from app.isoaudit.alerts import error_alert
from app.isoaudit.constants import STANDARDS, standard_label
from app.isoaudit.db import db_session
from app.isoaudit.models import User
from app.isoaudit.modules.companies.service import COMPANY_FIELDS, register_company, validate_company_payload
from app.isoaudit.rbac import require_permission

bp = Blueprint("companies", __name__)


def _current_user() -> User:
    u = getattr(g, "current_user", None)
    if not u:
        raise RuntimeError("No current user")
    return u


def _require_standard(standard: str) -> None:
    if standard not in STANDARDS:
        abort(404)


@bp.get("/<standard>/new")
@require_permission("companies.create")
def company_new_get(standard: str):
    _require_standard(standard)
    return render_template(
        "companies/new.html",
        standard=standard,
        standard_label=standard_label(standard),
        form={},
    )


@bp.post("/<standard>/new")
@require_permission("companies.create")
def company_new_post(standard: str):
    _require_standard(standard)
    s = db_session()
    u = _current_user()

    payload = {key: request.form.get(key) for key in COMPANY_FIELDS}

    errors = validate_company_payload(payload, standard)
    if errors:
        return (
            render_template(
                "companies/new.html",
                standard=standard,
                standard_label=standard_label(standard),
                form=payload,
                errors=errors,
                alert=error_alert(" ".join(errors), title="Check the form"),
            ),
            400,
        )

    try:
        company = register_company(s, standard, payload, u)
        s.commit()
    except SQLAlchemyError:
        s.rollback()
        current_app.logger.exception(
            "Company registration failed (standard=%s request_id=%s)", standard, getattr(g, "request_id", None)
        )
        return (
            render_template(
                "companies/new.html",
                standard=standard,
                standard_label=standard_label(standard),
                form=payload,
                alert=error_alert("The audit could not be registered."),
            ),
            500,
        )

    current_app.logger.info("Company registered id=%s standard=%s", company.id, standard)
    return redirect(url_for("checklist.checklist_form", company_id=company.id, notice="company_registered"))
