from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.isoaudit.models import Base
from app.isoaudit.modules.training.models import ClauseTemplate


class TemplateUpload(Base):
    """A user's completed copy of a clause template. One per (user, template)."""

    __tablename__ = "template_uploads"
    __table_args__ = (
        UniqueConstraint("user_id", "template_id", name="uq_template_uploads_user_template"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    template_id: Mapped[int] = mapped_column(ForeignKey("clause_templates.id", ondelete="CASCADE"), nullable=False)

    storage_key: Mapped[str] = mapped_column(String(512), nullable=False)
    original_filename: Mapped[str] = mapped_column(String(255), nullable=False)
    content_type: Mapped[str] = mapped_column(String(128), nullable=False, default="application/octet-stream")
    size_bytes: Mapped[int] = mapped_column(Integer, nullable=False)

    uploaded_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)

    template: Mapped[ClauseTemplate] = relationship("ClauseTemplate", lazy="selectin")

    @property
    def stored_filename(self) -> str:
        return self.storage_key.rsplit("/", 1)[-1]
