"""Tests for completed-template uploads."""
import io
from datetime import datetime

import pytest
from openpyxl import Workbook
from sqlalchemy.exc import OperationalError
from werkzeug.security import generate_password_hash

from app.isoaudit import create_app
from app.isoaudit.db import session_scope
from app.isoaudit.models import Base, Permission, Role, User
from app.isoaudit.modules.implementation import service as implementation_service
from app.isoaudit.modules.implementation.models import TemplateUpload
from app.isoaudit.modules.implementation.service import (
    UploadRejected,
    build_upload_storage_key,
    completed_download_name,
    template_download_name,
    validate_upload,
)
from app.isoaudit.modules.training.models import ClauseTemplate
from app.isoaudit.modules.training.service import register_template
from app.isoaudit.storage import storage_from_config

CSRF = "test-csrf-token"
PERMISSIONS = (
    "training.view",
    "training.complete",
    "implementation.view",
    "implementation.download",
    "implementation.upload",
)


def _xlsx_bytes(value="done"):
    wb = Workbook()
    wb.active["A1"] = value
    buf = io.BytesIO()
    wb.save(buf)
    return buf.getvalue()


@pytest.fixture()
def app(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("SECRET_KEY", "test-secret")
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{tmp_path/'test.db'}")
    monkeypatch.setenv("ENV", "test")
    monkeypatch.setenv("STORAGE_BACKEND", "local")
    for k in ("S3_ENDPOINT", "S3_REGION", "S3_BUCKET", "S3_ACCESS_KEY_ID", "S3_SECRET_ACCESS_KEY"):
        monkeypatch.delenv(k, raising=False)

    app = create_app()
    Base.metadata.create_all(bind=app.extensions["sqlalchemy_engine"])

    with session_scope(app) as s:
        perms = [Permission(key=k, name=k) for k in PERMISSIONS]
        r = Role(key="auditor", name="Auditor")
        r.permissions.extend(perms)
        for email in ("auditor@example.com", "other@example.com"):
            u = User(email=email, password_hash=generate_password_hash("pw"), is_active=True)
            u.roles.append(r)
            s.add(u)
        s.add_all([*perms, r])

        register_template(
            s,
            storage_from_config(app.config),
            standard="27001",
            clause="A5.1",
            name="Information security policy",
            data=_xlsx_bytes("base"),
        )

    return app


@pytest.fixture()
def client(app):
    return app.test_client()


def _login(client, email="auditor@example.com"):
    client.post("/auth/login", data={"email": email, "password": "pw"}, follow_redirects=True)
    with client.session_transaction() as sess:
        sess["csrf_token"] = CSRF


def _template_id(app):
    with session_scope(app) as s:
        return s.query(ClauseTemplate).one().id


def _upload(client, template_id, data, filename="A5.1 completed.xlsx"):
    return client.post(
        f"/implementation/templates/{template_id}/upload",
        data={"csrf_token": CSRF, "file": (io.BytesIO(data), filename)},
        content_type="multipart/form-data",
    )


# --- service ---


def test_build_upload_storage_key():
    key = build_upload_storage_key("27001", 7, 3, "My File (final).xlsx", now=datetime(2024, 1, 2, 3, 4, 5))
    assert key.startswith("uploads/iso27001/user_7/iso27001_clause_3_")
    assert key.endswith("_My_File_final.xlsx")


def test_download_names():
    t = ClauseTemplate(standard="27001", clause="A5.1", name="Information  security policy", storage_key="k")
    assert template_download_name(t) == "A5.1_Information_security_policy.xlsx"
    assert completed_download_name(t) == "A5.1_Information  security policy_completed.xlsx"


def test_validate_upload():
    validate_upload("ok.xlsx", _xlsx_bytes(), max_bytes=1024 * 1024)
    validate_upload("legacy.XLS", b"\xd0\xcf\x11\xe0 old format", max_bytes=1024)

    cases = [
        (("report.pdf", b"%PDF"), "upload_bad_type"),
        (("noext", b"data"), "upload_bad_type"),
        (("empty.xlsx", b""), "upload_missing"),
        (("big.xls", b"x" * 2048), "upload_too_large"),
        (("fake.xlsx", b"not a zip file"), "upload_unreadable"),
    ]
    for (filename, data), notice in cases:
        with pytest.raises(UploadRejected) as exc:
            validate_upload(filename, data, max_bytes=1024)
        assert exc.value.notice == notice


# --- HTTP ---


def test_implementation_list(client):
    _login(client)
    r = client.get("/implementation/27001/")
    assert r.status_code == 200
    assert b"Information security policy" in r.data


def test_upload_check_download_and_delete(app, client):
    _login(client)
    tid = _template_id(app)
    data = _xlsx_bytes("evidence")

    r = client.get(f"/implementation/templates/{tid}/upload")
    assert r.json["exists"] is False
    assert r.json["file"] is None

    r = _upload(client, tid, data)
    assert r.status_code == 302
    assert "notice=upload_saved" in r.headers["Location"]

    r = client.get(f"/implementation/templates/{tid}/upload")
    assert r.json["exists"] is True
    assert r.json["file"]["filename"].endswith("_A5.1_completed.xlsx")
    upload_id = r.json["file"]["id"]

    r = client.get(f"/implementation/uploads/{upload_id}/download")
    assert r.status_code == 200
    assert r.data == data

    # Training page serves the same file inline under the template's name
    r = client.get(f"/training/uploads/{upload_id}/view")
    assert r.status_code == 200
    assert r.data == data
    assert "inline" in r.headers["Content-Disposition"]
    assert "A5.1_Information" in r.headers["Content-Disposition"]

    with session_scope(app) as s:
        key = s.get(TemplateUpload, upload_id).storage_key
    storage = storage_from_config(app.config)
    assert storage.exists(key)

    r = client.post(f"/implementation/uploads/{upload_id}/delete", data={"csrf_token": CSRF})
    assert r.status_code == 302
    assert "notice=upload_deleted" in r.headers["Location"]
    assert not storage.exists(key)

    r = client.get(f"/implementation/templates/{tid}/upload")
    assert r.json["exists"] is False


def test_reupload_replaces_previous_file(app, client):
    _login(client)
    tid = _template_id(app)

    _upload(client, tid, _xlsx_bytes("v1"), filename="first.xlsx")
    with session_scope(app) as s:
        first = s.query(TemplateUpload).one()
        first_id, first_key = first.id, first.storage_key

    _upload(client, tid, _xlsx_bytes("v2"), filename="second.xlsx")
    with session_scope(app) as s:
        rows = s.query(TemplateUpload).all()
    assert len(rows) == 1
    assert rows[0].id == first_id
    assert rows[0].original_filename == "second.xlsx"

    storage = storage_from_config(app.config)
    assert storage.exists(rows[0].storage_key)
    if rows[0].storage_key != first_key:
        assert not storage.exists(first_key)


@pytest.mark.parametrize(
    "filename, data, notice",
    [
        ("report.pdf", b"%PDF-1.7", "upload_bad_type"),
        ("fake.xlsx", b"definitely not a workbook", "upload_unreadable"),
    ],
)
def test_upload_rejected(app, client, filename, data, notice):
    _login(client)
    r = _upload(client, _template_id(app), data, filename=filename)
    assert r.status_code == 302
    assert f"notice={notice}" in r.headers["Location"]
    with session_scope(app) as s:
        assert s.query(TemplateUpload).count() == 0


def test_upload_too_large(app, client):
    app.config["UPLOAD_MAX_BYTES"] = 100
    _login(client)
    r = _upload(client, _template_id(app), _xlsx_bytes())
    assert "notice=upload_too_large" in r.headers["Location"]


def test_upload_without_file(app, client):
    _login(client)
    r = client.post(
        f"/implementation/templates/{_template_id(app)}/upload",
        data={"csrf_token": CSRF},
        content_type="multipart/form-data",
    )
    assert r.status_code == 302
    assert "notice=upload_missing" in r.headers["Location"]


def test_uploads_are_private(app, client):
    _login(client)
    tid = _template_id(app)
    _upload(client, tid, _xlsx_bytes())
    with session_scope(app) as s:
        upload_id = s.query(TemplateUpload).one().id

    other = app.test_client()
    _login(other, "other@example.com")
    assert other.get(f"/implementation/uploads/{upload_id}/download").status_code == 404

    r = other.post(f"/implementation/uploads/{upload_id}/delete", data={"csrf_token": CSRF})
    assert "notice=upload_not_found" in r.headers["Location"]

    r = other.get(f"/training/uploads/{upload_id}/download")
    assert "notice=upload_not_found" in r.headers["Location"]

    with session_scope(app) as s:
        assert s.query(TemplateUpload).count() == 1


def _stored_uploads(tmp_path):
    root = tmp_path / "storage" / "uploads"
    return sorted(p.name for p in root.rglob("*") if p.is_file()) if root.exists() else []


def _fail_audit_event(monkeypatch):
    def failing_record_event(s, **kwargs):
        raise OperationalError("INSERT INTO audit_events", {}, Exception("disk full"))

    monkeypatch.setattr(implementation_service, "record_event", failing_record_event)


def test_failed_upload_leaves_no_file(app, client, tmp_path, monkeypatch):
    _login(client)
    _fail_audit_event(monkeypatch)

    r = _upload(client, _template_id(app), _xlsx_bytes())
    assert r.status_code == 302
    assert "notice=upload_failed" in r.headers["Location"]

    with session_scope(app) as s:
        assert s.query(TemplateUpload).count() == 0
    assert _stored_uploads(tmp_path) == []


def test_failed_reupload_keeps_previous_file(app, client, tmp_path, monkeypatch):
    _login(client)
    tid = _template_id(app)
    _upload(client, tid, _xlsx_bytes("v1"), filename="first.xlsx")
    with session_scope(app) as s:
        first_key = s.query(TemplateUpload).one().storage_key

    _fail_audit_event(monkeypatch)
    r = _upload(client, tid, _xlsx_bytes("v2"), filename="second.xlsx")
    assert "notice=upload_failed" in r.headers["Location"]

    with session_scope(app) as s:
        row = s.query(TemplateUpload).one()
    assert row.storage_key == first_key
    assert row.original_filename == "first.xlsx"
    assert _stored_uploads(tmp_path) == [first_key.rsplit("/", 1)[-1]]
