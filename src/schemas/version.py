"""Pydantic schemas for note version endpoints."""
from datetime import datetime
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from models.note_version import ChangeType


class VersionCreate(BaseModel):
    """Schema for recording a new version of a note."""

    title: str = Field(..., min_length=1, max_length=500)
    content: str
    comment: str | None = None
    change_type: ChangeType = ChangeType.EDIT

    @field_validator("change_type")
    @classmethod
    def validate_change_type(cls, value: ChangeType) -> ChangeType:
        """
        Only EDIT and MERGE can be requested directly.

        CREATED is written at note creation, RESTORE by the restore endpoint and
        TITLE is inferred from an EDIT.
        """
        if value not in (ChangeType.EDIT, ChangeType.MERGE):
            raise ValueError("change_type must be EDIT or MERGE")
        return value


class VersionRestore(BaseModel):
    """Schema for restoring a note to an earlier version."""

    comment: str | None = None


class VersionRefResponse(BaseModel):
    """Schema for the version a write resolved to."""

    id: str  # Empty when the edit matched the current state
    version: int
    created: bool  # False when nothing was recorded


class VersionSummaryResponse(BaseModel):
    """Schema for a version in history listings (no content)."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    note_id: UUID
    version: int
    title: str
    author_id: str
    comment: str | None
    change_type: ChangeType
    content_hash: str
    created_at: datetime


class VersionResponse(VersionSummaryResponse):
    """Schema for a single version including its content."""

    content: str


class VersionListResponse(BaseModel):
    """Schema for paginated version history responses."""

    items: list[VersionSummaryResponse]
    total: int  # Total count of versions for the note (before pagination)
    offset: int  # Current pagination offset
    limit: int  # Current pagination limit
    has_more: bool  # True if there are more results beyond this page


class DiffChangeResponse(BaseModel):
    """Schema for one line of a diff."""

    model_config = ConfigDict(from_attributes=True)

    type: Literal["add", "remove", "unchanged"]
    value: str
    line_number: int | None = None


class VersionDiffResponse(BaseModel):
    """Schema for a line diff between two versions."""

    model_config = ConfigDict(from_attributes=True)

    note_id: UUID
    from_version: int
    to_version: int
    additions: int
    deletions: int
    changes: list[DiffChangeResponse]
    exact: bool  # False when the changed region was too large for an exact diff
