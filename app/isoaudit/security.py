import secrets

from flask import Request, session

_SESSION_KEY = "csrf_token"


def ensure_csrf_token() -> str:
    """Return the session's CSRF token, minting one on first use."""
    token = session.get(_SESSION_KEY)
    if not token:
        token = session[_SESSION_KEY] = secrets.token_urlsafe(32)
    return token


def submitted_csrf_token(req: Request) -> str | None:
    # Header (fetch calls), form field (HTML forms), then JSON body
    token = req.headers.get("X-CSRF-Token") or req.form.get("csrf_token")
    if token or not req.is_json:
        return token
    body = req.get_json(silent=True)
    return body.get("csrf_token") if isinstance(body, dict) else None


def validate_csrf(req: Request) -> bool:
    expected = session.get(_SESSION_KEY)
    token = submitted_csrf_token(req)
    if not expected or not token:
        return False
    return secrets.compare_digest(str(token), str(expected))
