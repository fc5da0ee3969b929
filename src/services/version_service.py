"""Service layer for recording, listing and restoring note versions."""
import logging
from dataclasses import dataclass
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from core.config import get_settings
from models.base import utc_now
from models.note import Note
from models.note_version import VERSION_UNIQUE_CONSTRAINT, ChangeType, NoteVersion
from services.change_detection import (
    ALWAYS_RECORDED_CHANGE_TYPES,
    detect_change_type,
    generate_content_hash,
    has_significant_change,
)
from services.diff_service import VersionDiffResult, compare_versions
from services.exceptions import (
    NoteNotFoundError,
    VersioningDisabledError,
    VersionNotFoundError,
)

logger = logging.getLogger(__name__)

INITIAL_VERSION_COMMENT = "Initial version"


@dataclass
class VersionRef:
    """
    Identifies the version a write resolved to.

    id is "" when nothing was recorded because the edit matched the current
    state; version is then the note's current version.
    """

    id: str
    version: int

    @property
    def created(self) -> bool:
        """Whether a new version row was written."""
        return self.id != ""


@dataclass
class VersionHistoryPage:
    """A page of versions, newest first."""

    versions: list[NoteVersion]
    total: int
    has_more: bool


def _is_version_collision(error: IntegrityError) -> bool:
    """Check whether an IntegrityError is a duplicate (note_id, version)."""
    message = str(error)
    # PostgreSQL reports the constraint name, SQLite the column list
    return (
        VERSION_UNIQUE_CONSTRAINT in message
        or "note_versions.note_id, note_versions.version" in message
    )


class NoteVersionService:
    """Service for the version history of notes."""

    async def get_note(self, db: AsyncSession, note_id: UUID) -> Note | None:
        """
        Load a note, refreshing any copy already in the session.

        Version allocation reads Note.version, so a stale identity-map copy
        must not be used.
        """
        stmt = (
            select(Note)
            .where(Note.id == note_id)
            .execution_options(populate_existing=True)
        )
        result = await db.execute(stmt)
        return result.scalar_one_or_none()

    async def create_version(
        self,
        db: AsyncSession,
        note_id: UUID,
        title: str,
        content: str,
        author_id: str,
        comment: str | None = None,
        change_type: ChangeType | str = ChangeType.EDIT,
    ) -> VersionRef:
        """
        Record a new version of a note if the edit is significant.

        CREATED, RESTORE and MERGE versions are always recorded. Other edits are
        compared against the note's current title and content; an identical
        edit writes nothing and returns the current version with an empty id.

        The version insert and the note's counter update run in one savepoint,
        so either both are applied or neither is. A duplicate version number
        (another writer allocated it first) rolls back the savepoint, re-reads
        the note and retries.

        Args:
            db: Database session.
            note_id: ID of the note.
            title: Title after the edit.
            content: Content after the edit.
            author_id: Opaque identity of the author.
            comment: Optional annotation for the version.
            change_type: EDIT (inferred as EDIT or TITLE) or an explicit type.

        Returns:
            VersionRef of the new version, or of the current one if nothing changed.

        Raises:
            NoteNotFoundError: If the note does not exist.
            VersioningDisabledError: If versioning is disabled for the note.
            IntegrityError: If version allocation keeps colliding.
        """
        change_type = ChangeType(change_type)
        max_retries = get_settings().version_write_retries

        for attempt in range(max_retries):
            try:
                return await self._create_version_impl(
                    db, note_id, title, content, author_id, comment, change_type,
                )
            except IntegrityError as e:
                # Only retry on version uniqueness violations
                if not _is_version_collision(e) or attempt == max_retries - 1:
                    raise
                logger.warning(
                    "Version number collision for note %s (attempt %d of %d), retrying",
                    note_id,
                    attempt + 1,
                    max_retries,
                )

        # Should not reach here, but satisfy type checker
        raise RuntimeError("Unexpected state in create_version")

    async def _create_version_impl(
        self,
        db: AsyncSession,
        note_id: UUID,
        title: str,
        content: str,
        author_id: str,
        comment: str | None,
        change_type: ChangeType,
    ) -> VersionRef:
        """Internal implementation of create_version (one attempt)."""
        note = await self.get_note(db, note_id)
        if note is None:
            raise NoteNotFoundError(note_id)
        if not note.versioning_enabled:
            raise VersioningDisabledError(note_id)

        if change_type not in ALWAYS_RECORDED_CHANGE_TYPES and not has_significant_change(
            note.content, content, note.title, title,
        ):
            logger.debug("No significant change for note %s; version not recorded", note_id)
            return VersionRef(id="", version=note.version)

        if change_type == ChangeType.EDIT:
            change_type = detect_change_type(note.title, title, note.content, content)

        next_version = note.version + 1
        version = NoteVersion(
            note_id=note_id,
            version=next_version,
            title=title,
            content=content,
            author_id=author_id,
            comment=comment,
            change_type=change_type.value,
            content_hash=generate_content_hash(content),
        )

        async with db.begin_nested():  # Creates savepoint
            db.add(version)
            note.version = next_version
            note.last_version_at = utc_now()
            note.last_version_by = author_id
            await db.flush()

        logger.info(
            "Recorded version %d (%s) for note %s",
            next_version,
            change_type.value,
            note_id,
        )
        return VersionRef(id=str(version.id), version=next_version)

    async def create_initial_version(
        self,
        db: AsyncSession,
        note_id: UUID,
        title: str,
        content: str,
        author_id: str,
    ) -> None:
        """
        Record version 1 when a note is created.

        Does nothing if the note is missing or has versioning disabled, so it
        can never block note creation. The note's version counter already
        starts at 1 and is left as is.
        """
        note = await self.get_note(db, note_id)
        if note is None or not note.versioning_enabled:
            logger.debug("Skipping initial version for note %s", note_id)
            return

        async with db.begin_nested():
            db.add(
                NoteVersion(
                    note_id=note_id,
                    version=1,
                    title=title,
                    content=content,
                    author_id=author_id,
                    comment=INITIAL_VERSION_COMMENT,
                    change_type=ChangeType.CREATED.value,
                    content_hash=generate_content_hash(content),
                ),
            )
            note.last_version_at = utc_now()
            note.last_version_by = author_id
            await db.flush()

    async def get_version_history(
        self,
        db: AsyncSession,
        note_id: UUID,
        limit: int = 50,
        offset: int = 0,
    ) -> VersionHistoryPage:
        """
        Get versions of a note, newest first.

        Args:
            db: Database session.
            note_id: ID of the note.
            limit: Maximum versions to return.
            offset: Number of versions to skip.

        Returns:
            VersionHistoryPage with the page, the total count and has_more.
        """
        count_stmt = (
            select(func.count())
            .select_from(NoteVersion)
            .where(NoteVersion.note_id == note_id)
        )
        total = (await db.execute(count_stmt)).scalar_one()

        stmt = (
            select(NoteVersion)
            .where(NoteVersion.note_id == note_id)
            .order_by(NoteVersion.version.desc())
            .offset(offset)
            .limit(limit)
        )
        result = await db.execute(stmt)
        return VersionHistoryPage(
            versions=list(result.scalars().all()),
            total=total,
            has_more=offset + limit < total,
        )

    async def get_version(
        self,
        db: AsyncSession,
        note_id: UUID,
        version: int,
    ) -> NoteVersion | None:
        """Get a single version by its (note_id, version) key."""
        stmt = select(NoteVersion).where(
            NoteVersion.note_id == note_id,
            NoteVersion.version == version,
        )
        result = await db.execute(stmt)
        return result.scalar_one_or_none()

    async def restore_version(
        self,
        db: AsyncSession,
        note_id: UUID,
        target_version: int,
        author_id: str,
        comment: str | None = None,
    ) -> VersionRef:
        """
        Restore a note to an earlier version by recording it as a new version.

        Restoring is always recorded, even when the target matches the current
        state. Writing the restored title/content back to the note itself is
        left to the caller, which owns those fields.

        Raises:
            VersionNotFoundError: If target_version does not exist for the note.
        """
        target = await self.get_version(db, note_id, target_version)
        if target is None:
            raise VersionNotFoundError(note_id, target_version)

        ref = await self.create_version(
            db,
            note_id,
            title=target.title,
            content=target.content,
            author_id=author_id,
            comment=comment or f"Restored from version {target_version}",
            change_type=ChangeType.RESTORE,
        )
        logger.info(
            "Restored note %s to version %d as version %d",
            note_id,
            target_version,
            ref.version,
        )
        return ref

    async def compare_note_versions(
        self,
        db: AsyncSession,
        note_id: UUID,
        from_version: int,
        to_version: int,
    ) -> VersionDiffResult:
        """
        Diff the content of two stored versions of a note.

        Raises:
            VersionNotFoundError: If either version does not exist.
        """
        old = await self.get_version(db, note_id, from_version)
        if old is None:
            raise VersionNotFoundError(note_id, from_version)
        new = await self.get_version(db, note_id, to_version)
        if new is None:
            raise VersionNotFoundError(note_id, to_version)

        return compare_versions(
            old.content, new.content, max_lines=get_settings().diff_max_lines,
        )


# Singleton instance for use throughout the application
version_service = NoteVersionService()
