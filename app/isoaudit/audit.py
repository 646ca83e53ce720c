import json
from typing import Any

from flask import g, has_request_context, request
from sqlalchemy.orm import Session

from app.isoaudit.models import AuditEvent, User


def _request_origin() -> tuple[str | None, str | None]:
    """(request_id, client_ip) of the current request; both None in scripts."""
    if not has_request_context():
        return None, None
    return getattr(g, "request_id", None), request.remote_addr


def record_event(
    s: Session,
    *,
    actor: User | None,
    action: str,
    entity_type: str | None = None,
    entity_id: str | None = None,
    reason: str | None = None,
    metadata: dict[str, Any] | None = None,
    request_id: str | None = None,
) -> AuditEvent:
    """
    Append an audit trail row to the session. The caller commits.

    ``action`` is a dotted verb such as ``checklist.save`` or
    ``implementation.upload``; ``metadata`` is stored as sorted JSON.
    """
    current_rid, client_ip = _request_origin()
    ev = AuditEvent(
        request_id=request_id or current_rid,
        actor_user_id=actor.id if actor else None,
        actor_user_email=actor.email if actor else None,
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        reason=reason,
        metadata_json=json.dumps(metadata, sort_keys=True) if metadata else None,
        client_ip=client_ip,
    )
    s.add(ev)
    return ev
