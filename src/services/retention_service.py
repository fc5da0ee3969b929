"""Service layer for pruning note version history and reporting on its size."""
import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from uuid import UUID

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from core.retention_policy import (
    MILESTONE_INTERVAL,
    RetentionPolicy,
    get_default_retention_policy,
)
from models.base import ensure_utc, utc_now
from models.note import Note
from models.note_version import ChangeType, NoteVersion
from services.exceptions import NoteNotFoundError

logger = logging.getLogger(__name__)


@dataclass
class RetentionCandidate:
    """The columns retention decisions are made on."""

    id: UUID
    version: int
    change_type: str
    created_at: datetime


@dataclass
class RetentionResult:
    """Result of pruning one note."""

    deleted: int = 0


@dataclass
class WorkspaceRetentionResult:
    """Result of pruning every versioned note in a workspace."""

    notes_processed: int = 0
    versions_deleted: int = 0


@dataclass
class VersionStats:
    """Aggregate figures about a note's stored versions."""

    total_versions: int
    current_version: int
    oldest_version_at: datetime | None = None
    newest_version_at: datetime | None = None
    by_change_type: dict[str, int] = field(default_factory=dict)


@dataclass
class StorageEstimate:
    """Approximate storage used by a note's versions (UTF-8 bytes)."""

    version_count: int
    total_bytes: int
    average_bytes_per_version: float


def _is_anchor(candidate: RetentionCandidate, index: int, policy: RetentionPolicy) -> bool:
    """Versions kept regardless of count and age limits."""
    if index == 0:
        return True  # Latest version
    if policy.keep_first_version and candidate.version == 1:
        return True
    if policy.keep_milestones and candidate.version % MILESTONE_INTERVAL == 0:
        return True
    return candidate.change_type == ChangeType.CREATED.value


def select_versions_to_delete(
    candidates: Sequence[RetentionCandidate],
    policy: RetentionPolicy,
    now: datetime,
) -> list[UUID]:
    """
    Decide which versions a policy allows deleting.

    Args:
        candidates: A note's versions ordered by version descending.
        policy: Retention rules.
        now: Reference time for the age limit.

    Returns:
        IDs of versions to delete.
    """
    cutoff = (
        now - timedelta(days=policy.max_age_days)
        if policy.max_age_days is not None
        else None
    )
    to_delete: list[UUID] = []

    for index, candidate in enumerate(candidates):
        if _is_anchor(candidate, index, policy):
            continue
        if policy.max_versions is not None and index >= policy.max_versions:
            to_delete.append(candidate.id)
        elif cutoff is not None and ensure_utc(candidate.created_at) < cutoff:
            to_delete.append(candidate.id)

    return to_delete


class RetentionService:
    """Service applying retention policies to note version history."""

    async def apply_retention_policy(
        self,
        db: AsyncSession,
        note_id: UUID,
        policy: RetentionPolicy | None = None,
        now: datetime | None = None,
    ) -> RetentionResult:
        """
        Delete the versions of one note that the policy does not keep.

        Rules, walking versions newest first (index 0 = latest):
        1. The latest version is always kept
        2. Version 1 is kept when keep_first_version is set
        3. Every 10th version is kept when keep_milestones is set
        4. The CREATED version is always kept
        5. Otherwise a version is deleted if its index is >= max_versions,
           or if it is older than max_age_days

        Args:
            db: Database session.
            note_id: ID of the note.
            policy: Retention rules. Defaults to the configured policy.
            now: Current time for the age cutoff. Defaults to now (UTC).
                 Inject a specific time for testing boundary conditions.

        Returns:
            RetentionResult with the number of deleted versions.
        """
        if policy is None:
            policy = get_default_retention_policy()
        now = utc_now() if now is None else ensure_utc(now)

        stmt = (
            select(
                NoteVersion.id,
                NoteVersion.version,
                NoteVersion.change_type,
                NoteVersion.created_at,
            )
            .where(NoteVersion.note_id == note_id)
            .order_by(NoteVersion.version.desc())
        )
        rows = (await db.execute(stmt)).all()
        candidates = [
            RetentionCandidate(
                id=row.id,
                version=row.version,
                change_type=row.change_type,
                created_at=row.created_at,
            )
            for row in rows
        ]

        ids = select_versions_to_delete(candidates, policy, now)
        if not ids:
            return RetentionResult(deleted=0)

        result = await db.execute(delete(NoteVersion).where(NoteVersion.id.in_(ids)))
        deleted = result.rowcount
        logger.info(
            "Pruned %d of %d versions for note %s",
            deleted,
            len(candidates),
            note_id,
        )
        return RetentionResult(deleted=deleted)

    async def apply_workspace_retention_policy(
        self,
        db: AsyncSession,
        workspace_id: UUID | None,
        policy: RetentionPolicy | None = None,
        now: datetime | None = None,
    ) -> WorkspaceRetentionResult:
        """
        Apply a retention policy to every versioning-enabled note of a workspace.

        Notes are independent of each other. A workspace_id of None targets
        notes that do not belong to any workspace.

        Returns:
            WorkspaceRetentionResult with notes processed and versions deleted.
        """
        if policy is None:
            policy = get_default_retention_policy()
        if now is None:
            now = utc_now()

        workspace_filter = (
            Note.workspace_id.is_(None) if workspace_id is None
            else Note.workspace_id == workspace_id
        )
        stmt = (
            select(Note.id)
            .where(workspace_filter, Note.versioning_enabled.is_(True))
            .order_by(Note.id)
        )
        note_ids = list((await db.execute(stmt)).scalars().all())

        summary = WorkspaceRetentionResult()
        for note_id in note_ids:
            result = await self.apply_retention_policy(db, note_id, policy=policy, now=now)
            summary.notes_processed += 1
            summary.versions_deleted += result.deleted

        return summary

    async def get_version_stats(self, db: AsyncSession, note_id: UUID) -> VersionStats:
        """
        Summarize a note's stored versions.

        Raises:
            NoteNotFoundError: If the note does not exist.
        """
        current_version = (
            await db.execute(select(Note.version).where(Note.id == note_id))
        ).scalar_one_or_none()
        if current_version is None:
            raise NoteNotFoundError(note_id)

        totals_stmt = select(
            func.count(NoteVersion.id),
            func.min(NoteVersion.created_at),
            func.max(NoteVersion.created_at),
        ).where(NoteVersion.note_id == note_id)
        total, oldest, newest = (await db.execute(totals_stmt)).one()

        by_type_stmt = (
            select(NoteVersion.change_type, func.count())
            .where(NoteVersion.note_id == note_id)
            .group_by(NoteVersion.change_type)
        )
        by_change_type = {
            change_type: count
            for change_type, count in (await db.execute(by_type_stmt)).all()
        }

        return VersionStats(
            total_versions=total,
            current_version=current_version,
            oldest_version_at=ensure_utc(oldest) if oldest is not None else None,
            newest_version_at=ensure_utc(newest) if newest is not None else None,
            by_change_type=by_change_type,
        )

    async def estimate_version_storage(
        self,
        db: AsyncSession,
        note_id: UUID,
    ) -> StorageEstimate:
        """Estimate bytes used by a note's versions (title + content + comment)."""
        stmt = select(
            NoteVersion.title,
            NoteVersion.content,
            NoteVersion.comment,
        ).where(NoteVersion.note_id == note_id)

        version_count = 0
        total_bytes = 0
        for title, content, comment in (await db.execute(stmt)).all():
            version_count += 1
            total_bytes += len(title.encode("utf-8")) + len(content.encode("utf-8"))
            if comment:
                total_bytes += len(comment.encode("utf-8"))

        return StorageEstimate(
            version_count=version_count,
            total_bytes=total_bytes,
            average_bytes_per_version=total_bytes / version_count if version_count else 0.0,
        )


# Singleton instance for use throughout the application
retention_service = RetentionService()
