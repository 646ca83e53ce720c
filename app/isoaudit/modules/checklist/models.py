from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Index, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.isoaudit.models import Base


class ChecklistItem(Base):
    """Reference clause of a standard. Seeded by scripts/init_db.py, never edited in-app."""

    __tablename__ = "checklist_items"
    __table_args__ = (
        UniqueConstraint("standard", "clause", name="uq_checklist_items_standard_clause"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    standard: Mapped[str] = mapped_column(String(16), nullable=False)
    clause: Mapped[str] = mapped_column(String(32), nullable=False)  # e.g. "A5.1", "4.1"
    title: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    sort_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)


class AuditResult(Base):
    __tablename__ = "audit_results"
    __table_args__ = (
        # Upsert target: one evaluation per company and clause
        UniqueConstraint("company_id", "checklist_item_id", name="uq_audit_results_company_item"),
        Index("idx_audit_results_company", "company_id"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    company_id: Mapped[int] = mapped_column(ForeignKey("companies.id", ondelete="CASCADE"), nullable=False)
    checklist_item_id: Mapped[int] = mapped_column(ForeignKey("checklist_items.id", ondelete="RESTRICT"), nullable=False)

    status: Mapped[str] = mapped_column(String(64), nullable=False)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)
    recorded_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)

    checklist_item: Mapped[ChecklistItem] = relationship("ChecklistItem", lazy="selectin")
