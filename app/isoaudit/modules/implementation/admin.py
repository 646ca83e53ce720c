from __future__ import annotations

from flask import Blueprint, abort, current_app, g, jsonify, redirect, render_template, request, send_file, url_for

from app.isoaudit.alerts import alert_from_request
from app.isoaudit.audit import record_event
from app.isoaudit.constants import STANDARDS, standard_label
from app.isoaudit.db import db_session
from app.isoaudit.models import User
from app.isoaudit.modules.implementation.service import (
    UploadRejected,
    build_upload_storage_key,
    delete_template_upload,
    get_owned_upload,
    get_user_upload,
    sanitize_upload_filename,
    save_template_upload,
    template_download_name,
    uploads_by_template,
    validate_upload,
)
from app.isoaudit.modules.training.models import ClauseTemplate
from app.isoaudit.modules.training.service import completed_template_ids, has_completed_training, list_templates
from app.isoaudit.rbac import require_permission
from app.isoaudit.storage import storage_from_config

bp = Blueprint("implementation", __name__)


def _current_user() -> User:
    u = getattr(g, "current_user", None)
    if not u:
        raise RuntimeError("No current user")
    return u


def _back_to_list(standard: str, notice: str):
    return redirect(url_for("implementation.implementation_list", standard=standard, notice=notice))


@bp.get("/<standard>/")
@require_permission("implementation.view")
def implementation_list(standard: str):
    if standard not in STANDARDS:
        abort(404)
    s = db_session()
    u = _current_user()
    return render_template(
        "implementation/list.html",
        standard=standard,
        standard_label=standard_label(standard),
        templates=list_templates(s, standard),
        uploads=uploads_by_template(s, u.id, standard),
        completed=completed_template_ids(s, u.id),
        alert=alert_from_request(request),
    )


@bp.get("/templates/<int:template_id>/download")
@require_permission("implementation.download")
def template_download(template_id: int):
    s = db_session()
    u = _current_user()
    template = s.get(ClauseTemplate, template_id)
    if not template:
        return redirect(url_for("routes.index", notice="template_not_found"))

    # Training gate comes first
    if not has_completed_training(s, u.id, template.id):
        return _back_to_list(template.standard, "training_required")

    storage = storage_from_config(current_app.config)
    if not storage.exists(template.storage_key):
        current_app.logger.error("Template file missing: id=%s key=%s", template.id, template.storage_key)
        return _back_to_list(template.standard, "template_unavailable")

    record_event(
        s,
        actor=u,
        action="implementation.template_download",
        entity_type="ClauseTemplate",
        entity_id=str(template.id),
        metadata={"standard": template.standard, "clause": template.clause},
    )
    s.commit()

    return send_file(
        storage.open(template.storage_key),
        mimetype="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        as_attachment=True,
        download_name=template_download_name(template),
        max_age=0,
    )


@bp.post("/templates/<int:template_id>/upload")
@require_permission("implementation.upload")
def template_upload(template_id: int):
    s = db_session()
    u = _current_user()
    template = s.get(ClauseTemplate, template_id)
    if not template:
        abort(404)

    f = request.files.get("file")
    if not f or not f.filename:
        return _back_to_list(template.standard, "upload_missing")

    data = f.read()
    try:
        validate_upload(f.filename, data, max_bytes=int(current_app.config.get("UPLOAD_MAX_BYTES") or 0))
    except UploadRejected as e:
        current_app.logger.info("Upload rejected template=%s user=%s: %s", template.id, u.id, e)
        return _back_to_list(template.standard, e.notice)

    storage = storage_from_config(current_app.config)
    existing = get_user_upload(s, u.id, template.id)
    kept_key = existing.storage_key if existing else None
    new_key = build_upload_storage_key(template.standard, u.id, template.id, sanitize_upload_filename(f.filename))
    try:
        _, replaced_key = save_template_upload(s, storage, template, u, f.filename, data, f.mimetype, key=new_key)
        s.commit()
    except Exception:
        s.rollback()
        current_app.logger.exception("Upload failed template=%s user=%s request_id=%s", template.id, u.id, getattr(g, "request_id", None))
        # The rolled-back row still points at kept_key
        if new_key != kept_key:
            try:
                storage.delete(new_key)
            except Exception as e:
                current_app.logger.warning("Could not delete orphaned upload %s: %s", new_key, e)
        return _back_to_list(template.standard, "upload_failed")

    if replaced_key and replaced_key != new_key:
        try:
            storage.delete(replaced_key)
        except Exception as e:
            current_app.logger.warning("Could not delete replaced upload %s: %s", replaced_key, e)

    return _back_to_list(template.standard, "upload_saved")


@bp.post("/uploads/<int:upload_id>/delete")
@require_permission("implementation.upload")
def upload_delete(upload_id: int):
    s = db_session()
    u = _current_user()
    upload = get_owned_upload(s, upload_id, u.id)
    if not upload:
        return redirect(url_for("routes.index", notice="upload_not_found"))

    standard = upload.template.standard
    key = delete_template_upload(s, upload, u)
    s.commit()

    try:
        storage_from_config(current_app.config).delete(key)
    except Exception as e:
        current_app.logger.warning("Could not delete stored upload %s: %s", key, e)

    return _back_to_list(standard, "upload_deleted")


@bp.get("/templates/<int:template_id>/upload")
@require_permission("implementation.view")
def upload_check(template_id: int):
    """JSON: has the current user uploaded a completed copy of this template?"""
    s = db_session()
    u = _current_user()
    upload = get_user_upload(s, u.id, template_id)
    if upload is None:
        return jsonify(exists=False, file=None, message="No file has been uploaded for this template.")
    return jsonify(
        exists=True,
        file={
            "id": upload.id,
            "filename": upload.stored_filename,
            "uploaded_at": upload.uploaded_at.isoformat(),
        },
        message="File found.",
    )


@bp.get("/uploads/<int:upload_id>/download")
@require_permission("implementation.view")
def upload_download(upload_id: int):
    s = db_session()
    u = _current_user()
    upload = get_owned_upload(s, upload_id, u.id)
    if not upload:
        abort(404)

    storage = storage_from_config(current_app.config)
    if not storage.exists(upload.storage_key):
        abort(404)

    return send_file(
        storage.open(upload.storage_key),
        mimetype=upload.content_type,
        as_attachment=True,
        download_name=upload.stored_filename,
        max_age=0,
    )
