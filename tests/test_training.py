"""Tests for training videos and the template download gate."""
import pytest
from werkzeug.security import generate_password_hash

from app.isoaudit import create_app
from app.isoaudit.db import session_scope
from app.isoaudit.models import AuditEvent, Base, Permission, Role, User
from app.isoaudit.modules.training.models import ClauseTemplate, TrainingCompletion
from app.isoaudit.modules.training.service import register_template
from app.isoaudit.storage import storage_from_config

CSRF = "test-csrf-token"
PERMISSIONS = (
    "training.view",
    "training.complete",
    "implementation.view",
    "implementation.download",
)


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
        u = User(email="auditor@example.com", password_hash=generate_password_hash("pw"), is_active=True)
        u.roles.append(r)
        s.add_all([*perms, r, u])

        storage = storage_from_config(app.config)
        register_template(
            s,
            storage,
            standard="27001",
            clause="A5.1",
            name="Information security policy",
            data=b"PK-base-template",
            video_url="https://videos.example/a51",
        )

    return app


@pytest.fixture()
def client(app):
    return app.test_client()


def _login(client):
    client.post("/auth/login", data={"email": "auditor@example.com", "password": "pw"}, follow_redirects=True)
    with client.session_transaction() as sess:
        sess["csrf_token"] = CSRF


def _template_id(app):
    with session_scope(app) as s:
        return s.query(ClauseTemplate).one().id


def test_register_template_stores_file(app):
    with session_scope(app) as s:
        t = s.query(ClauseTemplate).one()
        assert t.storage_key == "templates/27001/A5.1_Information_security_policy.xlsx"
        assert storage_from_config(app.config).exists(t.storage_key)


def test_register_template_refreshes_existing_row(app):
    tid = _template_id(app)
    with session_scope(app) as s:
        t, created = register_template(
            s,
            storage_from_config(app.config),
            standard="27001",
            clause="A5.1",
            name="Security policy",
            data=b"PK-v2",
        )
        assert not created
        assert t.id == tid
        # Unspecified fields are left alone
        assert t.video_url == "https://videos.example/a51"


def test_training_list(client):
    _login(client)
    r = client.get("/training/27001/")
    assert r.status_code == 200
    assert b"Information security policy" in r.data
    assert b"https://videos.example/a51" in r.data


def test_training_list_unknown_standard(client):
    _login(client)
    assert client.get("/training/14001/").status_code == 404


def test_mark_watched(app, client):
    _login(client)
    tid = _template_id(app)
    r = client.post(f"/training/templates/{tid}/watched", headers={"X-CSRF-Token": CSRF})
    assert r.status_code == 200
    assert r.json == {"success": True}

    # Watching again keeps a single completion row
    r = client.post(f"/training/templates/{tid}/watched", headers={"X-CSRF-Token": CSRF})
    assert r.json["success"] is True

    with session_scope(app) as s:
        rows = s.query(TrainingCompletion).all()
        assert len(rows) == 1
        assert rows[0].completed is True
        assert rows[0].watched_at is not None
        assert s.query(AuditEvent).filter(AuditEvent.action == "training.watched").count() == 2


def test_mark_watched_unknown_template(client):
    _login(client)
    r = client.post("/training/templates/9999/watched", headers={"X-CSRF-Token": CSRF})
    assert r.json["success"] is False
    assert r.json["error"] == "Template not found."


def test_template_download_requires_training(app, client):
    _login(client)
    tid = _template_id(app)

    r = client.get(f"/implementation/templates/{tid}/download")
    assert r.status_code == 302
    assert "notice=training_required" in r.headers["Location"]

    client.post(f"/training/templates/{tid}/watched", headers={"X-CSRF-Token": CSRF})

    r = client.get(f"/implementation/templates/{tid}/download")
    assert r.status_code == 200
    assert r.data == b"PK-base-template"
    assert "A5.1_Information_security_policy.xlsx" in r.headers["Content-Disposition"]


def test_template_download_file_missing(app, client):
    _login(client)
    tid = _template_id(app)
    client.post(f"/training/templates/{tid}/watched", headers={"X-CSRF-Token": CSRF})

    with session_scope(app) as s:
        key = s.get(ClauseTemplate, tid).storage_key
    storage_from_config(app.config).delete(key)

    r = client.get(f"/implementation/templates/{tid}/download")
    assert r.status_code == 302
    assert "notice=template_unavailable" in r.headers["Location"]


def test_template_download_unknown_template(client):
    _login(client)
    r = client.get("/implementation/templates/9999/download")
    assert r.status_code == 302
    assert "notice=template_not_found" in r.headers["Location"]
