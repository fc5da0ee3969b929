"""Pydantic schemas for retention and version statistics endpoints."""
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from core.retention_policy import RetentionPolicy


class RetentionPolicyRequest(BaseModel):
    """
    Schema for a retention policy.

    Omitted fields use the configured defaults; an explicit null disables the
    count or age rule.
    """

    max_versions: int | None = Field(default=None, ge=1)
    max_age_days: int | None = Field(default=None, ge=1)
    keep_milestones: bool | None = None
    keep_first_version: bool | None = None

    def to_policy(self, defaults: RetentionPolicy) -> RetentionPolicy:
        """Merge explicitly provided fields over the default policy."""
        overrides = self.model_dump(exclude_unset=True)
        return RetentionPolicy(
            max_versions=overrides.get("max_versions", defaults.max_versions),
            max_age_days=overrides.get("max_age_days", defaults.max_age_days),
            keep_milestones=(
                self.keep_milestones
                if self.keep_milestones is not None
                else defaults.keep_milestones
            ),
            keep_first_version=(
                self.keep_first_version
                if self.keep_first_version is not None
                else defaults.keep_first_version
            ),
        )


class RetentionResultResponse(BaseModel):
    """Schema for the result of pruning one note."""

    deleted: int


class WorkspaceRetentionResultResponse(BaseModel):
    """Schema for the result of pruning a workspace."""

    notes_processed: int
    versions_deleted: int


class VersionStatsResponse(BaseModel):
    """Schema for aggregate version figures of a note."""

    model_config = ConfigDict(from_attributes=True)

    total_versions: int
    current_version: int
    oldest_version_at: datetime | None
    newest_version_at: datetime | None
    by_change_type: dict[str, int]


class StorageEstimateResponse(BaseModel):
    """Schema for the estimated storage used by a note's versions."""

    model_config = ConfigDict(from_attributes=True)

    version_count: int
    total_bytes: int
    average_bytes_per_version: float
