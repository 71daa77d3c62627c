from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Index, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from webnotes.database import Base


class NoteVersion(Base):
    __tablename__ = "note_versions"
    __table_args__ = (Index("ix_note_versions_note_id", "note_id", "saved_at"),)

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    note_id: Mapped[int] = mapped_column(ForeignKey("notes.id", ondelete="CASCADE"), nullable=False)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False, default="")
    language: Mapped[str] = mapped_column(String(50), nullable=False, default="plaintext")
    saved_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())

    note = relationship("Note", back_populates="versions")
