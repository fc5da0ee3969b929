"""Shared exceptions for service layer operations."""
from uuid import UUID


class NoteNotFoundError(Exception):
    """Raised when the referenced note does not exist."""

    def __init__(self, note_id: UUID) -> None:
        self.note_id = note_id
        super().__init__(f"Note not found: {note_id}")


class VersioningDisabledError(Exception):
    """
    Raised when a version operation targets a note with versioning turned off.

    Callers are expected to check Note.versioning_enabled before offering
    version-related actions.
    """

    def __init__(self, note_id: UUID) -> None:
        self.note_id = note_id
        super().__init__(f"Versioning is not enabled for note: {note_id}")


class VersionNotFoundError(Exception):
    """Raised when a version number does not exist for a note."""

    def __init__(self, note_id: UUID, version: int) -> None:
        self.note_id = note_id
        self.version = version
        super().__init__(f"Version {version} not found for note: {note_id}")
