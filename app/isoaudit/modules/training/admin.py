from __future__ import annotations

from flask import Blueprint, abort, current_app, g, jsonify, redirect, render_template, request, send_file, url_for
from sqlalchemy.exc import SQLAlchemyError

from app.isoaudit.alerts import alert_from_request
from app.isoaudit.constants import STANDARDS, standard_label
from app.isoaudit.db import db_session
from app.isoaudit.models import User
from app.isoaudit.modules.implementation.models import TemplateUpload
from app.isoaudit.modules.implementation.service import completed_download_name, get_owned_upload, uploads_by_template
from app.isoaudit.modules.training.models import ClauseTemplate
from app.isoaudit.modules.training.service import completed_template_ids, list_templates, mark_video_watched
from app.isoaudit.rbac import require_permission
from app.isoaudit.storage import storage_from_config

bp = Blueprint("training", __name__)


def _current_user() -> User:
    u = getattr(g, "current_user", None)
    if not u:
        raise RuntimeError("No current user")
    return u


@bp.get("/<standard>/")
@require_permission("training.view")
def training_list(standard: str):
    if standard not in STANDARDS:
        abort(404)
    s = db_session()
    u = _current_user()
    return render_template(
        "training/list.html",
        standard=standard,
        standard_label=standard_label(standard),
        templates=list_templates(s, standard),
        uploads=uploads_by_template(s, u.id, standard),
        completed=completed_template_ids(s, u.id),
        alert=alert_from_request(request),
    )


@bp.post("/templates/<int:template_id>/watched")
@require_permission("training.complete")
def training_watched(template_id: int):
    s = db_session()
    u = _current_user()
    template = s.get(ClauseTemplate, template_id)
    if not template:
        return jsonify(success=False, error="Template not found.")

    try:
        mark_video_watched(s, template, u)
        s.commit()
    except SQLAlchemyError:
        s.rollback()
        current_app.logger.exception("Marking video watched failed (template=%s user=%s)", template_id, u.id)
        return jsonify(success=False, error="The request could not be processed.")

    current_app.logger.info("Training video watched: user=%s template=%s", u.id, template.id)
    return jsonify(success=True)


def _send_completed(upload_id: int, *, as_attachment: bool):
    s = db_session()
    u = _current_user()
    upload: TemplateUpload | None = get_owned_upload(s, upload_id, u.id)
    if not upload:
        return redirect(url_for("routes.index", notice="upload_not_found"))

    storage = storage_from_config(current_app.config)
    if not storage.exists(upload.storage_key):
        current_app.logger.error("Uploaded file missing: id=%s key=%s", upload.id, upload.storage_key)
        return redirect(url_for("training.training_list", standard=upload.template.standard, notice="upload_gone"))

    return send_file(
        storage.open(upload.storage_key),
        mimetype=upload.content_type,
        as_attachment=as_attachment,
        download_name=completed_download_name(upload.template),
        max_age=0,
    )


@bp.get("/uploads/<int:upload_id>/download")
@require_permission("training.view")
def completed_download(upload_id: int):
    return _send_completed(upload_id, as_attachment=True)


@bp.get("/uploads/<int:upload_id>/view")
@require_permission("training.view")
def completed_view(upload_id: int):
    return _send_completed(upload_id, as_attachment=False)
