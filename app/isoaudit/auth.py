from __future__ import annotations

import uuid
from collections import defaultdict
from datetime import datetime, timedelta

from flask import Blueprint, current_app, g, redirect, render_template, request, session, url_for
from werkzeug.security import check_password_hash

from app.isoaudit.alerts import error_alert
from app.isoaudit.audit import record_event
from app.isoaudit.db import db_session
from app.isoaudit.models import User

bp = Blueprint("auth", __name__)

# Failed-login throttle, per client IP, per process
_LOGIN_RATE_LIMIT = 5
_LOGIN_RATE_WINDOW = timedelta(minutes=5)
_login_attempts: dict[str, list[datetime]] = defaultdict(list)


def _too_many_attempts(ip: str) -> bool:
    cutoff = datetime.utcnow() - _LOGIN_RATE_WINDOW
    recent = [t for t in _login_attempts[ip] if t > cutoff]
    _login_attempts[ip] = recent
    return len(recent) >= _LOGIN_RATE_LIMIT


def _safe_next(nxt: str) -> str | None:
    # Local paths only; "//host" would be an open redirect
    if nxt.startswith("/") and not nxt.startswith("//"):
        return nxt
    return None


def load_current_user() -> None:
    """
    before_request hook: tag the request with a ``request_id`` and resolve
    ``g.current_user`` from the signed session cookie.
    """
    g.request_id = getattr(g, "request_id", None) or uuid.uuid4().hex
    g.current_user = None
    if request.path.startswith(("/static/", "/health")):
        return

    user_id = session.get("user_id")
    if not user_id:
        return
    try:
        user = db_session().get(User, int(user_id))
    except Exception as e:
        current_app.logger.error("load_current_user DB error (clearing session): %s", e)
        user = None
    if user is None or not user.is_active:
        session.pop("user_id", None)
        return
    g.current_user = user


def _login_page(nxt: str, message: str, status: int):
    return render_template("auth/login.html", next=nxt, alert=error_alert(message)), status


@bp.get("/login")
def login_get():
    return render_template("auth/login.html", next=(request.args.get("next") or "").strip())


@bp.post("/login")
def login_post():
    email = (request.form.get("email") or "").strip().lower()
    password = request.form.get("password") or ""
    nxt = (request.form.get("next") or "").strip()
    ip = request.remote_addr or "unknown"

    if _too_many_attempts(ip):
        current_app.logger.warning("Login rate limit hit ip=%s", ip)
        return _login_page(nxt, "Too many login attempts. Please wait 5 minutes.", 429)
    _login_attempts[ip].append(datetime.utcnow())

    s = db_session()
    user = s.query(User).filter(User.email == email).one_or_none()
    if user is None or not user.is_active or not check_password_hash(user.password_hash, password):
        record_event(
            s,
            actor=None,
            action="auth.login_failed",
            entity_type="User",
            entity_id=email,
            reason="Invalid credentials",
            metadata={"email": email},
        )
        s.commit()
        return _login_page(nxt, "Invalid credentials.", 401)

    session["user_id"] = user.id
    _login_attempts.pop(ip, None)
    record_event(s, actor=user, action="auth.login", entity_type="User", entity_id=str(user.id))
    s.commit()
    current_app.logger.info("Login user=%s request_id=%s", user.id, g.request_id)
    return redirect(_safe_next(nxt) or url_for("routes.index"))


@bp.get("/logout")
def logout():
    user = getattr(g, "current_user", None)
    if user:
        s = db_session()
        record_event(s, actor=user, action="auth.logout", entity_type="User", entity_id=str(user.id))
        s.commit()
    session.pop("user_id", None)
    return redirect(url_for("routes.index"))
