from __future__ import annotations

import io
import re
from datetime import datetime
from pathlib import PurePath
from typing import TYPE_CHECKING

from openpyxl import load_workbook
from sqlalchemy import select
from werkzeug.utils import secure_filename

from app.isoaudit.audit import record_event
from app.isoaudit.constants import ALLOWED_UPLOAD_EXTENSIONS, XLS_CONTENT_TYPE, XLSX_CONTENT_TYPE
from app.isoaudit.modules.implementation.models import TemplateUpload
from app.isoaudit.modules.training.models import ClauseTemplate

if TYPE_CHECKING:
    from sqlalchemy.orm import Session
    from app.isoaudit.models import User
    from app.isoaudit.storage import Storage


class UploadRejected(ValueError):
    """Upload failed validation. ``notice`` names the alert shown to the user."""

    def __init__(self, notice: str, message: str):
        self.notice = notice
        super().__init__(message)


def upload_extension(filename: str) -> str:
    return PurePath(filename or "").suffix.lower()


def sanitize_upload_filename(filename: str) -> str:
    fn = secure_filename(filename or "")
    return fn or "template.xlsx"


def guess_content_type(filename: str) -> str:
    return XLS_CONTENT_TYPE if upload_extension(filename) == ".xls" else XLSX_CONTENT_TYPE


def build_upload_storage_key(
    standard: str,
    user_id: int,
    template_id: int,
    filename: str,
    now: datetime | None = None,
) -> str:
    """Per-user folder, clause-prefixed and timestamped so replacements never collide."""
    if now is None:
        now = datetime.utcnow()
    stamp = int(now.timestamp() * 1000)
    safe = sanitize_upload_filename(filename)
    return f"uploads/iso{standard}/user_{user_id}/iso{standard}_clause_{template_id}_{stamp}_{safe}"


def template_download_name(template: ClauseTemplate) -> str:
    name = re.sub(r"\s+", "_", template.name.strip())
    return f"{template.clause}_{name}.xlsx"


def completed_download_name(template: ClauseTemplate) -> str:
    return f"{template.clause}_{template.name}_completed.xlsx"


def validate_upload(filename: str, data: bytes, *, max_bytes: int) -> None:
    """Spreadsheets only, size-limited; .xlsx must open as a workbook."""
    ext = upload_extension(filename)
    if ext not in ALLOWED_UPLOAD_EXTENSIONS:
        raise UploadRejected("upload_bad_type", f"Extension not allowed: {ext or '(none)'}")
    if not data:
        raise UploadRejected("upload_missing", "Empty file.")
    if len(data) > max_bytes:
        raise UploadRejected("upload_too_large", f"File is {len(data)} bytes, limit is {max_bytes}.")
    if ext == ".xlsx":
        try:
            wb = load_workbook(io.BytesIO(data), read_only=True)
            wb.close()
        except Exception as e:
            raise UploadRejected("upload_unreadable", f"Not a readable workbook: {e}") from e


def uploads_by_template(s: "Session", user_id: int, standard: str) -> dict[int, TemplateUpload]:
    rows = s.scalars(
        select(TemplateUpload)
        .join(ClauseTemplate, ClauseTemplate.id == TemplateUpload.template_id)
        .where(TemplateUpload.user_id == user_id)
        .where(ClauseTemplate.standard == standard)
    ).all()
    return {u.template_id: u for u in rows}


def get_user_upload(s: "Session", user_id: int, template_id: int) -> TemplateUpload | None:
    return s.scalars(
        select(TemplateUpload)
        .where(TemplateUpload.user_id == user_id)
        .where(TemplateUpload.template_id == template_id)
    ).one_or_none()


def get_owned_upload(s: "Session", upload_id: int, user_id: int) -> TemplateUpload | None:
    upload = s.get(TemplateUpload, upload_id)
    if upload is None or upload.user_id != user_id:
        return None
    return upload


def save_template_upload(
    s: "Session",
    storage: "Storage",
    template: ClauseTemplate,
    user: "User",
    filename: str,
    data: bytes,
    content_type: str | None = None,
    *,
    key: str | None = None,
) -> tuple[TemplateUpload, str | None]:
    """
    Store a completed template and point the user's upload row at it.

    Returns the row and the storage key it replaced (if any); the caller
    deletes that object once the transaction has committed. Callers that
    must clean up after a failed commit pass their own ``key`` from
    ``build_upload_storage_key``.
    """
    original = sanitize_upload_filename(filename)
    if key is None:
        key = build_upload_storage_key(template.standard, user.id, template.id, original)
    ctype = (content_type or "").strip()
    if not ctype or ctype == "application/octet-stream":
        ctype = guess_content_type(original)
    storage.put_bytes(key, data, content_type=ctype)

    now = datetime.utcnow()
    replaced_key: str | None = None
    upload = get_user_upload(s, user.id, template.id)
    if upload is None:
        upload = TemplateUpload(
            user_id=user.id,
            template_id=template.id,
            storage_key=key,
            original_filename=original,
            content_type=ctype,
            size_bytes=len(data),
            uploaded_at=now,
        )
        s.add(upload)
    else:
        replaced_key = upload.storage_key
        upload.storage_key = key
        upload.original_filename = original
        upload.content_type = ctype
        upload.size_bytes = len(data)
        upload.uploaded_at = now
    s.flush()

    record_event(
        s,
        actor=user,
        action="implementation.upload",
        entity_type="TemplateUpload",
        entity_id=str(upload.id),
        metadata={
            "template_id": template.id,
            "clause": template.clause,
            "filename": original,
            "size_bytes": len(data),
            "replaced": replaced_key is not None,
        },
    )
    return upload, replaced_key


def delete_template_upload(s: "Session", upload: TemplateUpload, user: "User") -> str:
    """Delete the upload row. Returns the storage key for the caller to remove after commit."""
    key = upload.storage_key
    record_event(
        s,
        actor=user,
        action="implementation.upload_delete",
        entity_type="TemplateUpload",
        entity_id=str(upload.id),
        metadata={"template_id": upload.template_id, "filename": upload.original_filename},
    )
    s.delete(upload)
    s.flush()
    return key
