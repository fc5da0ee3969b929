"""SQLAlchemy models."""
from models.base import Base, TimestampMixin, UUIDv7Mixin
from models.note import Note
from models.note_version import ChangeType, NoteVersion

__all__ = [
    "Base",
    "ChangeType",
    "Note",
    "NoteVersion",
    "TimestampMixin",
    "UUIDv7Mixin",
]
