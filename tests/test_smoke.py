import pytest
from werkzeug.security import generate_password_hash

from app.isoaudit import create_app
from app.isoaudit.db import session_scope
from app.isoaudit.models import AuditEvent, Base, Permission, Role, User


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

    engine = app.extensions["sqlalchemy_engine"]
    Base.metadata.create_all(bind=engine)

    with session_scope(app) as s:
        p = Permission(key="admin.view", name="Admin: view dashboard")
        r = Role(key="admin", name="Administrator")
        r.permissions.append(p)
        u = User(email="admin@example.com", password_hash=generate_password_hash("pw"), is_active=True)
        u.roles.append(r)
        nobody = User(email="nobody@example.com", password_hash=generate_password_hash("pw"), is_active=True)
        s.add_all([p, r, u, nobody])

    return app


@pytest.fixture()
def client(app):
    return app.test_client()


def test_health_ok(client):
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json["ok"] is True


def test_healthz_ok(client):
    r = client.get("/healthz")
    assert r.status_code == 200
    assert r.data == b"ok"


def test_index_lists_standards(client):
    r = client.get("/")
    assert r.status_code == 200
    assert b"ISO 9001:2015" in r.data
    assert b"ISO/IEC 27001:2022" in r.data


def test_index_renders_notice(client):
    r = client.get("/?notice=upload_saved")
    assert b"File uploaded successfully." in r.data

    # Unknown codes render nothing
    r = client.get("/?notice=bogus")
    assert r.status_code == 200
    assert b'role="alert"' not in r.data


def test_login_and_admin_access(client):
    # Anonymous is sent to the login page
    r = client.get("/admin/")
    assert r.status_code == 302
    assert "/auth/login" in r.headers["Location"]

    r = client.post("/auth/login", data={"email": "admin@example.com", "password": "pw"}, follow_redirects=False)
    assert r.status_code == 302

    r = client.get("/admin/")
    assert r.status_code == 200
    assert b"Dashboard" in r.data


def test_missing_permission_is_forbidden(client):
    client.post("/auth/login", data={"email": "nobody@example.com", "password": "pw"})
    r = client.get("/admin/")
    assert r.status_code == 403


def test_bad_login_is_rejected_and_audited(app, client):
    r = client.post("/auth/login", data={"email": "admin@example.com", "password": "wrong"})
    assert r.status_code == 401
    assert b"Invalid credentials." in r.data

    with session_scope(app) as s:
        actions = [e.action for e in s.query(AuditEvent).all()]
    assert "auth.login_failed" in actions


def test_login_next_redirect_is_local_only(client):
    r = client.post(
        "/auth/login",
        data={"email": "admin@example.com", "password": "pw", "next": "//evil.example.com/"},
    )
    assert r.status_code == 302
    assert "evil.example.com" not in r.headers["Location"]


def test_post_without_csrf_token_is_rejected(client):
    client.post("/auth/login", data={"email": "admin@example.com", "password": "pw"})
    r = client.post("/checklist/save", json={"companyId": 1, "submissions": []})
    assert r.status_code == 400
    assert r.json["success"] is False
