from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import select

from app.isoaudit.audit import record_event
from app.isoaudit.constants import XLSX_CONTENT_TYPE
from app.isoaudit.modules.training.models import ClauseTemplate, TrainingCompletion

if TYPE_CHECKING:
    from sqlalchemy.orm import Session
    from app.isoaudit.models import User
    from app.isoaudit.storage import Storage


def list_templates(s: "Session", standard: str) -> list[ClauseTemplate]:
    return list(
        s.scalars(
            select(ClauseTemplate).where(ClauseTemplate.standard == standard).order_by(ClauseTemplate.clause.asc())
        ).all()
    )


def completed_template_ids(s: "Session", user_id: int) -> set[int]:
    return set(
        s.scalars(
            select(TrainingCompletion.template_id)
            .where(TrainingCompletion.user_id == user_id)
            .where(TrainingCompletion.completed.is_(True))
        ).all()
    )


def has_completed_training(s: "Session", user_id: int, template_id: int) -> bool:
    row = s.scalars(
        select(TrainingCompletion)
        .where(TrainingCompletion.user_id == user_id)
        .where(TrainingCompletion.template_id == template_id)
    ).one_or_none()
    return bool(row and row.completed)


def mark_video_watched(s: "Session", template: ClauseTemplate, user: "User") -> TrainingCompletion:
    """Record the training video as watched. Re-watching refreshes watched_at."""
    row = s.scalars(
        select(TrainingCompletion)
        .where(TrainingCompletion.user_id == user.id)
        .where(TrainingCompletion.template_id == template.id)
    ).one_or_none()
    now = datetime.utcnow()
    if row is None:
        row = TrainingCompletion(user_id=user.id, template_id=template.id, completed=True, watched_at=now)
        s.add(row)
    else:
        row.completed = True
        row.watched_at = now
    s.flush()

    record_event(
        s,
        actor=user,
        action="training.watched",
        entity_type="ClauseTemplate",
        entity_id=str(template.id),
        metadata={"standard": template.standard, "clause": template.clause},
    )
    return row


def template_storage_key(standard: str, clause: str, name: str) -> str:
    return f"templates/{standard}/{clause}_{'_'.join(name.split())}.xlsx"


def register_template(
    s: "Session",
    storage: "Storage",
    *,
    standard: str,
    clause: str,
    name: str,
    data: bytes,
    description: str | None = None,
    video_url: str | None = None,
) -> tuple[ClauseTemplate, bool]:
    """
    Store a base spreadsheet and create or refresh its ClauseTemplate row.

    Returns (template, created). Existing rows keep their id so training
    completions and user uploads stay attached.
    """
    key = template_storage_key(standard, clause, name)
    storage.put_bytes(key, data, content_type=XLSX_CONTENT_TYPE)

    template = s.scalars(
        select(ClauseTemplate).where(ClauseTemplate.standard == standard).where(ClauseTemplate.clause == clause)
    ).one_or_none()
    created = template is None
    if created:
        template = ClauseTemplate(standard=standard, clause=clause, name=name, storage_key=key)
        s.add(template)
    else:
        template.name = name
        template.storage_key = key
    if description is not None:
        template.description = description
    if video_url is not None:
        template.video_url = video_url
    s.flush()
    return template, created
