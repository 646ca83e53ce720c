from __future__ import annotations

import re
from datetime import datetime
from typing import TYPE_CHECKING

from app.isoaudit.audit import record_event
from app.isoaudit.constants import STANDARDS

if TYPE_CHECKING:
    from sqlalchemy.orm import Session
    from app.isoaudit.models import User
    from app.isoaudit.modules.companies.models import Company


COMPANY_FIELDS = (
    "legal_name",
    "tax_id",
    "legal_representative",
    "economic_sector",
    "company_type",
    "employee_count",
    "address",
    "phones",
    "email",
    "website",
    "facebook",
    "instagram",
    "tiktok",
)

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def _clean(value: str | None) -> str | None:
    return (value or "").strip() or None


def parse_employee_count(raw: str | None) -> int | None:
    s = (raw or "").strip()
    if not s:
        return None
    return int(s)


def validate_company_payload(payload: dict, standard: str) -> list[str]:
    """Validate a registration payload. Returns list of errors."""
    errors = []
    if standard not in STANDARDS:
        errors.append(f"Unsupported standard: {standard}")
    if not _clean(payload.get("legal_name")):
        errors.append("Legal name is required.")
    if not _clean(payload.get("tax_id")):
        errors.append("Tax ID is required.")
    email = _clean(payload.get("email"))
    if email and not _EMAIL_RE.match(email):
        errors.append("Email address is invalid.")
    try:
        count = parse_employee_count(payload.get("employee_count"))
    except ValueError:
        errors.append("Number of employees must be a whole number.")
    else:
        if count is not None and count < 0:
            errors.append("Number of employees cannot be negative.")
    return errors


def register_company(s: "Session", standard: str, payload: dict, user: "User") -> "Company":
    """Create a company for the given standard. Caller commits."""
    from app.isoaudit.modules.companies.models import Company

    company = Company(
        standard=standard,
        legal_name=_clean(payload.get("legal_name")) or "",
        tax_id=_clean(payload.get("tax_id")) or "",
        legal_representative=_clean(payload.get("legal_representative")),
        economic_sector=_clean(payload.get("economic_sector")),
        company_type=_clean(payload.get("company_type")),
        employee_count=parse_employee_count(payload.get("employee_count")),
        address=_clean(payload.get("address")),
        phones=_clean(payload.get("phones")),
        email=(_clean(payload.get("email")) or "").lower() or None,
        website=_clean(payload.get("website")),
        facebook=_clean(payload.get("facebook")),
        instagram=_clean(payload.get("instagram")),
        tiktok=_clean(payload.get("tiktok")),
        created_at=datetime.utcnow(),
        created_by_user_id=user.id,
    )
    s.add(company)
    s.flush()

    record_event(
        s,
        actor=user,
        action="company.register",
        entity_type="Company",
        entity_id=str(company.id),
        metadata={"legal_name": company.legal_name, "tax_id": company.tax_id, "standard": standard},
    )
    return company
