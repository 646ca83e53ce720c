"""Tests for company registration."""
import pytest
from werkzeug.security import generate_password_hash

from app.isoaudit import create_app
from app.isoaudit.db import session_scope
from app.isoaudit.models import AuditEvent, Base, Permission, Role, User
from app.isoaudit.modules.companies.models import Company
from app.isoaudit.modules.companies.service import validate_company_payload

CSRF = "test-csrf-token"


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
        perms = [
            Permission(key="companies.create", name="Companies: register"),
            Permission(key="checklist.view", name="Checklist: view"),
        ]
        r = Role(key="auditor", name="Auditor")
        r.permissions.extend(perms)
        u = User(email="auditor@example.com", password_hash=generate_password_hash("pw"), is_active=True)
        u.roles.append(r)
        s.add_all([*perms, r, u])

    return app


@pytest.fixture()
def client(app):
    return app.test_client()


def _login(client):
    client.post("/auth/login", data={"email": "auditor@example.com", "password": "pw"}, follow_redirects=True)
    with client.session_transaction() as sess:
        sess["csrf_token"] = CSRF


def test_validate_company_payload():
    assert validate_company_payload({"legal_name": "Acme", "tax_id": "900"}, "9001") == []

    errors = validate_company_payload({"legal_name": " ", "tax_id": ""}, "9001")
    assert "Legal name is required." in errors
    assert "Tax ID is required." in errors

    errors = validate_company_payload(
        {"legal_name": "Acme", "tax_id": "900", "email": "not-an-email", "employee_count": "many"}, "27001"
    )
    assert len(errors) == 2

    assert validate_company_payload({"legal_name": "Acme", "tax_id": "900", "employee_count": "-1"}, "9001")
    assert validate_company_payload({"legal_name": "Acme", "tax_id": "900"}, "14001")


def test_new_company_form_requires_login(client):
    r = client.get("/companies/9001/new")
    assert r.status_code == 302


def test_new_company_form(client):
    _login(client)
    r = client.get("/companies/27001/new")
    assert r.status_code == 200
    assert b"ISO/IEC 27001:2022" in r.data
    assert b'name="tax_id"' in r.data


def test_unknown_standard_is_404(client):
    _login(client)
    assert client.get("/companies/14001/new").status_code == 404


def test_register_company(app, client):
    _login(client)
    r = client.post(
        "/companies/27001/new",
        data={
            "csrf_token": CSRF,
            "legal_name": "Acme S.A.",
            "tax_id": "900123456",
            "employee_count": "35",
            "email": "Contact@Acme.example",
            "website": "https://acme.example",
        },
    )
    assert r.status_code == 302
    assert "/checklist/" in r.headers["Location"]
    assert "notice=company_registered" in r.headers["Location"]

    with session_scope(app) as s:
        c = s.query(Company).one()
        assert c.standard == "27001"
        assert c.employee_count == 35
        assert c.email == "contact@acme.example"
        assert c.phones is None
        assert c.created_by_user_id is not None
        events = [e.action for e in s.query(AuditEvent).all()]
    assert "company.register" in events

    r = client.get(r.headers["Location"])
    assert r.status_code == 200
    assert b"The company audit was registered successfully." in r.data


def test_register_company_validation_error(app, client):
    _login(client)
    r = client.post("/companies/9001/new", data={"csrf_token": CSRF, "legal_name": "Acme", "tax_id": ""})
    assert r.status_code == 400
    assert b"Tax ID is required." in r.data
    # Submitted values are kept in the form
    assert b'value="Acme"' in r.data

    with session_scope(app) as s:
        assert s.query(Company).count() == 0
