from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING, Any

from sqlalchemy import func, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import SQLAlchemyError

from app.isoaudit.audit import record_event
from app.isoaudit.modules.checklist.models import AuditResult, ChecklistItem
from app.isoaudit.modules.checklist.reference import REFERENCE_CHECKLISTS
from app.isoaudit.modules.companies.models import Company

if TYPE_CHECKING:
    from sqlalchemy.orm import Session
    from app.isoaudit.models import User

logger = logging.getLogger(__name__)

# "A.5.1" -> "A5.1". Only the letter A followed by a two-level number.
_DOTTED_ANNEX_RE = re.compile(r"A\.(\d+\.\d+)")


class ReconcileError(RuntimeError):
    """Base for checklist save failures. Every subclass leaves no writes behind."""

    http_status = 500


class IncompleteInput(ReconcileError):
    http_status = 400


class UnknownCompany(ReconcileError):
    http_status = 404

    def __init__(self, company_id: int):
        self.company_id = company_id
        super().__init__(f"Company not found: {company_id}")


class UnknownClause(ReconcileError):
    http_status = 400

    def __init__(self, original_key: str, normalized_key: str):
        self.original_key = original_key
        self.normalized_key = normalized_key
        if original_key == normalized_key:
            msg = f"Clause not found: {original_key}"
        else:
            msg = f"Clause not found: {original_key} (normalized: {normalized_key})"
        super().__init__(msg)


class StoreFailure(ReconcileError):
    http_status = 500


@dataclass(frozen=True)
class Submission:
    clause: str
    status: str
    notes: str = ""


@dataclass(frozen=True)
class ReconcileAck:
    company_id: int
    standard: str
    saved: int


def normalize_clause_key(raw: str) -> str:
    """
    Rewrite the dotted Annex A notation to the stored key.

    >>> normalize_clause_key("A.5.1")
    'A5.1'
    >>> normalize_clause_key("B.1.2")
    'B.1.2'
    """
    m = _DOTTED_ANNEX_RE.fullmatch(raw)
    if not m:
        return raw
    return f"A{m.group(1)}"


def parse_company_id(raw: Any) -> int:
    if raw is None or isinstance(raw, bool):
        raise IncompleteInput("Incomplete data: companyId is required.")
    if isinstance(raw, int):
        value = raw
    else:
        text = str(raw).strip()
        if not text:
            raise IncompleteInput("Incomplete data: companyId is required.")
        try:
            value = int(text)
        except ValueError:
            raise IncompleteInput(f"Incomplete data: invalid companyId {text!r}.") from None
    if value <= 0:
        raise IncompleteInput(f"Incomplete data: invalid companyId {value}.")
    return value


def parse_submissions(raw: Any) -> list[Submission]:
    """Turn the JSON ``submissions`` array into Submission values."""
    if not isinstance(raw, list):
        raise IncompleteInput("Incomplete data: submissions must be a list.")
    out: list[Submission] = []
    for idx, entry in enumerate(raw):
        if not isinstance(entry, dict):
            raise IncompleteInput(f"Incomplete data: submission #{idx + 1} is not an object.")
        clause = entry.get("clause")
        if not isinstance(clause, str) or not clause:
            raise IncompleteInput(f"Incomplete data: submission #{idx + 1} has no clause.")
        status = entry.get("status")
        notes = entry.get("notes")
        out.append(
            Submission(
                clause=clause,
                status="" if status is None else str(status),
                notes="" if notes is None else str(notes),
            )
        )
    return out


def load_clause_lookup(s: "Session", standard: str) -> dict[str, int]:
    rows = s.execute(select(ChecklistItem.clause, ChecklistItem.id).where(ChecklistItem.standard == standard)).all()
    return {clause: item_id for clause, item_id in rows}


def upsert_audit_result(
    s: "Session",
    *,
    company_id: int,
    checklist_item_id: int,
    status: str,
    notes: str,
    recorded_at: datetime,
) -> None:
    """Insert or update the single result row for (company, checklist item)."""
    dialect = s.get_bind().dialect.name
    if dialect == "postgresql":
        insert = pg_insert
    elif dialect == "sqlite":
        insert = sqlite_insert
    else:
        _upsert_by_lookup(
            s,
            company_id=company_id,
            checklist_item_id=checklist_item_id,
            status=status,
            notes=notes,
            recorded_at=recorded_at,
        )
        return

    stmt = insert(AuditResult).values(
        company_id=company_id,
        checklist_item_id=checklist_item_id,
        status=status,
        notes=notes,
        created_at=recorded_at,
        recorded_at=recorded_at,
    )
    stmt = stmt.on_conflict_do_update(
        index_elements=["company_id", "checklist_item_id"],
        set_={
            "status": stmt.excluded.status,
            "notes": stmt.excluded.notes,
            "recorded_at": stmt.excluded.recorded_at,
        },
    )
    s.execute(stmt)


def _upsert_by_lookup(
    s: "Session",
    *,
    company_id: int,
    checklist_item_id: int,
    status: str,
    notes: str,
    recorded_at: datetime,
) -> None:
    # Dialects without ON CONFLICT; the unique constraint still rejects duplicates.
    existing = s.scalars(
        select(AuditResult)
        .where(AuditResult.company_id == company_id)
        .where(AuditResult.checklist_item_id == checklist_item_id)
    ).one_or_none()
    if existing is None:
        s.add(
            AuditResult(
                company_id=company_id,
                checklist_item_id=checklist_item_id,
                status=status,
                notes=notes,
                created_at=recorded_at,
                recorded_at=recorded_at,
            )
        )
    else:
        existing.status = status
        existing.notes = notes
        existing.recorded_at = recorded_at
    s.flush()


def reconcile_checklist(
    s: "Session",
    company_id: Any,
    submissions: "list[Submission]",
    *,
    actor: "User | None" = None,
) -> ReconcileAck:
    """
    Persist a batch of clause evaluations for one company, all or nothing.

    Each submission's clause key is normalized and resolved against the
    reference checklist of the company's standard, then upserted. The first
    failure rolls back every write made by this call and is re-raised as a
    ReconcileError; on success the results and the ``checklist.save`` audit
    event are committed together.
    """
    cid = parse_company_id(company_id)
    if not isinstance(submissions, (list, tuple)):
        raise IncompleteInput("Incomplete data: submissions must be a list.")
    if not submissions:
        logger.info("Checklist save for company=%s: nothing to save", cid)
        return ReconcileAck(company_id=cid, standard="", saved=0)

    try:
        company = s.get(Company, cid)
        if company is None:
            raise UnknownCompany(cid)

        lookup = load_clause_lookup(s, company.standard)
        now = datetime.utcnow()
        for sub in submissions:
            normalized = normalize_clause_key(sub.clause)
            item_id = lookup.get(normalized)
            if item_id is None:
                raise UnknownClause(sub.clause, normalized)
            upsert_audit_result(
                s,
                company_id=cid,
                checklist_item_id=item_id,
                status=sub.status,
                notes=sub.notes,
                recorded_at=now,
            )
        record_event(
            s,
            actor=actor,
            action="checklist.save",
            entity_type="Company",
            entity_id=str(cid),
            metadata={"standard": company.standard, "saved": len(submissions)},
        )
        s.commit()
    except ReconcileError as e:
        s.rollback()
        logger.warning("Checklist save rolled back for company=%s: %s", cid, e)
        raise
    except SQLAlchemyError as e:
        s.rollback()
        logger.exception("Checklist save failed for company=%s", cid)
        raise StoreFailure("Error saving checklist.") from e

    logger.info("Checklist saved for company=%s standard=%s items=%d", cid, company.standard, len(submissions))
    return ReconcileAck(company_id=cid, standard=company.standard, saved=len(submissions))


def results_by_clause(s: "Session", company_id: int) -> dict[str, AuditResult]:
    """Existing results of a company keyed by reference clause (form prefill)."""
    rows = s.execute(
        select(ChecklistItem.clause, AuditResult)
        .join(AuditResult, AuditResult.checklist_item_id == ChecklistItem.id)
        .where(AuditResult.company_id == company_id)
    ).all()
    return {clause: result for clause, result in rows}


def checklist_progress(s: "Session", companies: list[Company]) -> dict[int, tuple[int, int]]:
    """company_id -> (answered, total reference items)."""
    totals = dict(
        s.execute(select(ChecklistItem.standard, func.count(ChecklistItem.id)).group_by(ChecklistItem.standard)).all()
    )
    answered = dict(
        s.execute(
            select(AuditResult.company_id, func.count(AuditResult.id))
            .where(AuditResult.company_id.in_([c.id for c in companies]))
            .group_by(AuditResult.company_id)
        ).all()
    ) if companies else {}
    return {c.id: (answered.get(c.id, 0), totals.get(c.standard, 0)) for c in companies}


def seed_reference_checklist(s: "Session", standard: str) -> int:
    """Insert missing reference items for a standard. Returns number added."""
    existing = set(load_clause_lookup(s, standard))
    added = 0
    for order, (clause, title) in enumerate(REFERENCE_CHECKLISTS[standard]):
        if clause in existing:
            continue
        s.add(ChecklistItem(standard=standard, clause=clause, title=title, sort_order=order))
        added += 1
    s.flush()
    return added
