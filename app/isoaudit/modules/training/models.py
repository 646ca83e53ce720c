from __future__ import annotations

from datetime import datetime

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from app.isoaudit.models import Base


class ClauseTemplate(Base):
    __tablename__ = "clause_templates"
    __table_args__ = (
        UniqueConstraint("standard", "clause", name="uq_clause_templates_standard_clause"),
        Index("idx_clause_templates_standard", "standard"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    standard: Mapped[str] = mapped_column(String(16), nullable=False)
    clause: Mapped[str] = mapped_column(String(32), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    video_url: Mapped[str | None] = mapped_column(String(512), nullable=True)
    # Base spreadsheet in storage, e.g. "templates/27001/A5.1_Information_security_policy.xlsx"
    storage_key: Mapped[str] = mapped_column(String(512), nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)


class TrainingCompletion(Base):
    __tablename__ = "training_completions"
    __table_args__ = (
        UniqueConstraint("user_id", "template_id", name="uq_training_completions_user_template"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    template_id: Mapped[int] = mapped_column(ForeignKey("clause_templates.id", ondelete="CASCADE"), nullable=False)
    completed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    watched_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=False), nullable=True)
