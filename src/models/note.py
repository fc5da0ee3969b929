"""Note model - the document whose edit history is versioned."""
from datetime import datetime
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import DateTime, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from models.base import Base, TimestampMixin, UUIDv7Mixin

if TYPE_CHECKING:
    from models.note_version import NoteVersion


class Note(Base, UUIDv7Mixin, TimestampMixin):
    """
    Note model - stores the live title and content of a note.

    The host application owns this table and mutates title/content. The
    versioning engine only reads it and writes the version-tracking columns
    (version, last_version_at, last_version_by).
    """

    __tablename__ = "notes"

    # Collection the note belongs to (retention sweeps run per workspace)
    workspace_id: Mapped[UUID | None] = mapped_column(Uuid, nullable=True, index=True)
    title: Mapped[str] = mapped_column(String(500), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False, default="")

    versioning_enabled: Mapped[bool] = mapped_column(default=True, nullable=False)
    # Mirrors the highest NoteVersion.version for this note
    version: Mapped[int] = mapped_column(default=1, nullable=False)
    last_version_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True, default=None,
    )
    last_version_by: Mapped[str | None] = mapped_column(
        String(255), nullable=True, default=None,
    )

    versions: Mapped[list["NoteVersion"]] = relationship(
        back_populates="note",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="NoteVersion.version",
    )
