"""Note version history endpoints: save, list, diff, restore and prune."""
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Path, Query
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import (
    get_async_session,
    get_author_id,
    get_default_retention_policy,
    get_settings,
)
from core.config import Settings
from core.retention_policy import RetentionPolicy
from models.note import Note
from schemas.retention import (
    RetentionPolicyRequest,
    RetentionResultResponse,
    StorageEstimateResponse,
    VersionStatsResponse,
    WorkspaceRetentionResultResponse,
)
from schemas.version import (
    DiffChangeResponse,
    VersionCreate,
    VersionDiffResponse,
    VersionListResponse,
    VersionRefResponse,
    VersionResponse,
    VersionRestore,
    VersionSummaryResponse,
)
from services.exceptions import (
    NoteNotFoundError,
    VersioningDisabledError,
    VersionNotFoundError,
)
from services.retention_service import retention_service
from services.version_service import VersionRef, version_service

router = APIRouter(prefix="/notes/{note_id}/versions", tags=["versions"])
workspace_router = APIRouter(prefix="/workspaces/{workspace_id}/versions", tags=["versions"])


async def _get_note_or_404(db: AsyncSession, note_id: UUID) -> Note:
    """Load a note or raise 404."""
    note = await version_service.get_note(db, note_id)
    if note is None:
        raise HTTPException(status_code=404, detail="Note not found")
    return note


def _ref_response(ref: VersionRef) -> VersionRefResponse:
    return VersionRefResponse(id=ref.id, version=ref.version, created=ref.created)


@router.post("/", response_model=VersionRefResponse)
async def save_note_version(
    data: VersionCreate,
    note_id: UUID = Path(...),
    author_id: str = Depends(get_author_id),
    db: AsyncSession = Depends(get_async_session),
) -> VersionRefResponse:
    """
    Save a note edit, recording a version when it is significant.

    The version is computed against the note's current state, then the note's
    title and content are updated to the saved values. Saving unchanged
    title and content records nothing and returns the current version with
    created=false.
    """
    try:
        ref = await version_service.create_version(
            db,
            note_id,
            title=data.title,
            content=data.content,
            author_id=author_id,
            comment=data.comment,
            change_type=data.change_type,
        )
    except NoteNotFoundError:
        raise HTTPException(status_code=404, detail="Note not found")
    except VersioningDisabledError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except IntegrityError:
        raise HTTPException(
            status_code=409,
            detail="The note was modified concurrently. Please reload and retry.",
        )

    if ref.created:
        note = await _get_note_or_404(db, note_id)
        note.title = data.title
        note.content = data.content
        await db.flush()
    return _ref_response(ref)


@router.get("/", response_model=VersionListResponse)
async def list_note_versions(
    note_id: UUID = Path(...),
    limit: int | None = Query(default=None, ge=1, description="Number of versions to return"),
    offset: int = Query(default=0, ge=0, description="Number of versions to skip"),
    settings: Settings = Depends(get_settings),
    db: AsyncSession = Depends(get_async_session),
) -> VersionListResponse:
    """
    Get version history for a note, newest first.

    limit defaults to the configured page size and is capped at the configured maximum.
    """
    await _get_note_or_404(db, note_id)
    if limit is None:
        limit = settings.version_history_page_size
    limit = min(limit, settings.max_version_history_page_size)

    page = await version_service.get_version_history(db, note_id, limit=limit, offset=offset)
    return VersionListResponse(
        items=[VersionSummaryResponse.model_validate(v) for v in page.versions],
        total=page.total,
        offset=offset,
        limit=limit,
        has_more=page.has_more,
    )


@router.get("/stats", response_model=VersionStatsResponse)
async def get_note_version_stats(
    note_id: UUID = Path(...),
    db: AsyncSession = Depends(get_async_session),
) -> VersionStatsResponse:
    """Get counts, time range and change type breakdown of a note's versions."""
    try:
        stats = await retention_service.get_version_stats(db, note_id)
    except NoteNotFoundError:
        raise HTTPException(status_code=404, detail="Note not found")
    return VersionStatsResponse.model_validate(stats)


@router.get("/storage", response_model=StorageEstimateResponse)
async def get_note_version_storage(
    note_id: UUID = Path(...),
    db: AsyncSession = Depends(get_async_session),
) -> StorageEstimateResponse:
    """Estimate the storage used by a note's versions."""
    await _get_note_or_404(db, note_id)
    estimate = await retention_service.estimate_version_storage(db, note_id)
    return StorageEstimateResponse.model_validate(estimate)


@router.get("/diff", response_model=VersionDiffResponse)
async def diff_note_versions(
    note_id: UUID = Path(...),
    from_version: int = Query(..., ge=1, description="Earlier version"),
    to_version: int = Query(..., ge=1, description="Later version"),
    db: AsyncSession = Depends(get_async_session),
) -> VersionDiffResponse:
    """Get a line diff from one version of a note to another."""
    try:
        diff = await version_service.compare_note_versions(
            db, note_id, from_version, to_version,
        )
    except VersionNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))

    return VersionDiffResponse(
        note_id=note_id,
        from_version=from_version,
        to_version=to_version,
        additions=diff.additions,
        deletions=diff.deletions,
        changes=[DiffChangeResponse.model_validate(c) for c in diff.changes],
        exact=diff.exact,
    )


@router.post("/retention", response_model=RetentionResultResponse)
async def prune_note_versions(
    data: RetentionPolicyRequest | None = None,
    note_id: UUID = Path(...),
    defaults: RetentionPolicy = Depends(get_default_retention_policy),
    db: AsyncSession = Depends(get_async_session),
) -> RetentionResultResponse:
    """Apply a retention policy to a note's versions."""
    await _get_note_or_404(db, note_id)
    policy = data.to_policy(defaults) if data is not None else defaults
    result = await retention_service.apply_retention_policy(db, note_id, policy=policy)
    return RetentionResultResponse(deleted=result.deleted)


@router.get("/{version}", response_model=VersionResponse)
async def get_note_version(
    note_id: UUID = Path(...),
    version: int = Path(..., ge=1),
    db: AsyncSession = Depends(get_async_session),
) -> VersionResponse:
    """Get a single version of a note, including its content."""
    record = await version_service.get_version(db, note_id, version)
    if record is None:
        raise HTTPException(status_code=404, detail="Version not found")
    return VersionResponse.model_validate(record)


@router.post("/{version}/restore", response_model=VersionRefResponse)
async def restore_note_version(
    data: VersionRestore | None = None,
    note_id: UUID = Path(...),
    version: int = Path(..., ge=1),
    author_id: str = Depends(get_author_id),
    db: AsyncSession = Depends(get_async_session),
) -> VersionRefResponse:
    """
    Restore a note to an earlier version.

    Records a RESTORE version with the earlier title and content and writes
    them back to the note.
    """
    try:
        ref = await version_service.restore_version(
            db,
            note_id,
            version,
            author_id=author_id,
            comment=data.comment if data is not None else None,
        )
    except VersionNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except NoteNotFoundError:
        raise HTTPException(status_code=404, detail="Note not found")
    except VersioningDisabledError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except IntegrityError:
        raise HTTPException(
            status_code=409,
            detail="The note was modified concurrently. Please reload and retry.",
        )

    restored = await version_service.get_version(db, note_id, ref.version)
    note = await _get_note_or_404(db, note_id)
    note.title = restored.title
    note.content = restored.content
    await db.flush()
    return _ref_response(ref)


@workspace_router.post("/retention", response_model=WorkspaceRetentionResultResponse)
async def prune_workspace_versions(
    data: RetentionPolicyRequest | None = None,
    workspace_id: UUID = Path(...),
    defaults: RetentionPolicy = Depends(get_default_retention_policy),
    db: AsyncSession = Depends(get_async_session),
) -> WorkspaceRetentionResultResponse:
    """Apply a retention policy to every versioned note in a workspace."""
    policy = data.to_policy(defaults) if data is not None else defaults
    result = await retention_service.apply_workspace_retention_policy(
        db, workspace_id, policy=policy,
    )
    return WorkspaceRetentionResultResponse(
        notes_processed=result.notes_processed,
        versions_deleted=result.versions_deleted,
    )
