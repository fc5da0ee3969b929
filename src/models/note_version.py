"""NoteVersion model for storing immutable note history snapshots."""
from datetime import datetime
from enum import StrEnum
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import DateTime, ForeignKey, Index, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from models.base import Base, UUIDv7Mixin, utc_now

if TYPE_CHECKING:
    from models.note import Note


# Name of the uniqueness guard on (note_id, version); matched when detecting
# version-number collisions between concurrent writers.
VERSION_UNIQUE_CONSTRAINT = "uq_note_versions_note_version"


class ChangeType(StrEnum):
    """Why a version was recorded."""

    CREATED = "CREATED"
    EDIT = "EDIT"
    TITLE = "TITLE"
    RESTORE = "RESTORE"
    MERGE = "MERGE"


class NoteVersion(Base, UUIDv7Mixin):
    """
    NoteVersion model - one full snapshot of a note at a version number.

    Version semantics:
    - Versions are numbered 1..N per note with no gaps
    - Version 1 is the CREATED version written when the note is created
    - Note.version always equals the highest version number stored here
    - Rows are never updated; restoring writes a new RESTORE version
    - Rows may be deleted by the retention policy
    """

    __tablename__ = "note_versions"
    __table_args__ = (
        # Unique constraint prevents duplicate versions from race conditions
        UniqueConstraint("note_id", "version", name=VERSION_UNIQUE_CONSTRAINT),
        # Age-based retention scans
        Index("ix_note_versions_note_id_created_at", "note_id", "created_at"),
    )

    # id provided by UUIDv7Mixin
    note_id: Mapped[UUID] = mapped_column(
        ForeignKey("notes.id", ondelete="CASCADE"),
        nullable=False,
    )
    version: Mapped[int] = mapped_column(nullable=False)
    title: Mapped[str] = mapped_column(String(500), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    author_id: Mapped[str] = mapped_column(String(255), nullable=False)
    comment: Mapped[str | None] = mapped_column(Text, nullable=True)
    change_type: Mapped[str] = mapped_column(String(20), nullable=False)
    content_hash: Mapped[str] = mapped_column(
        String(32),
        nullable=False,
        comment="MD5 hex digest of content, used for no-op detection",
    )

    # Timestamp (only created_at - versions are immutable)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utc_now,
        nullable=False,
    )

    note: Mapped["Note"] = relationship(back_populates="versions")
