"""
Scheduled version retention task.

Applies the configured retention policy to every versioning-enabled note,
one workspace at a time. Designed to run as a cron job (e.g., daily at 3 AM).

Usage:
    python -m tasks.retention
    python -m tasks.retention --workspace-id <uuid>

Notes without a workspace are swept as their own group.
"""
import argparse
import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from core.retention_policy import RetentionPolicy, get_default_retention_policy
from db.session import get_session_factory
from models.note import Note
from services.retention_service import retention_service

logger = logging.getLogger(__name__)


@dataclass
class RetentionRunStats:
    """Statistics from a retention run."""

    workspaces_processed: int = 0
    notes_processed: int = 0
    versions_deleted: int = 0

    # Versions deleted per workspace ("none" for notes without a workspace)
    deleted_by_workspace: dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> dict[str, int]:
        """Convert to simple dict for logging/return."""
        return {
            "workspaces_processed": self.workspaces_processed,
            "notes_processed": self.notes_processed,
            "versions_deleted": self.versions_deleted,
        }


async def get_versioned_workspace_ids(db: AsyncSession) -> list[UUID | None]:
    """Get the workspaces that contain versioning-enabled notes (None = no workspace)."""
    stmt = (
        select(Note.workspace_id)
        .where(Note.versioning_enabled.is_(True))
        .distinct()
    )
    workspace_ids = list((await db.execute(stmt)).scalars().all())
    # Deterministic order, notes without a workspace last
    return sorted(workspace_ids, key=lambda w: (w is None, str(w)))


async def run_retention(
    db: AsyncSession | None = None,
    workspace_id: UUID | None = None,
    policy: RetentionPolicy | None = None,
    now: datetime | None = None,
) -> RetentionRunStats:
    """
    Apply the retention policy to one workspace or to all of them.

    Each workspace is committed separately so a failure part-way keeps the
    work already done.

    Args:
        db: Database session. If None, creates one from the session factory.
        workspace_id: Only sweep this workspace. Defaults to every workspace.
        policy: Retention rules. Defaults to the configured policy.
        now: Current time for the age cutoff. Defaults to now (UTC).

    Returns:
        Combined RetentionRunStats.
    """
    if policy is None:
        policy = get_default_retention_policy()
    logger.info("Starting version retention task: %s", policy)

    async def _run(session: AsyncSession) -> RetentionRunStats:
        stats = RetentionRunStats()
        if workspace_id is not None:
            workspace_ids: list[UUID | None] = [workspace_id]
        else:
            workspace_ids = await get_versioned_workspace_ids(session)

        for current_id in workspace_ids:
            result = await retention_service.apply_workspace_retention_policy(
                session, current_id, policy=policy, now=now,
            )
            await session.commit()

            stats.workspaces_processed += 1
            stats.notes_processed += result.notes_processed
            stats.versions_deleted += result.versions_deleted
            if result.versions_deleted > 0:
                key = str(current_id) if current_id is not None else "none"
                stats.deleted_by_workspace[key] = result.versions_deleted
                logger.info(
                    "Pruned %d versions across %d notes in workspace=%s",
                    result.versions_deleted,
                    result.notes_processed,
                    key,
                )
        return stats

    if db is not None:
        stats = await _run(db)
    else:
        async with get_session_factory()() as session:
            stats = await _run(session)

    logger.info("Version retention complete: %s", stats.to_dict())
    return stats


def main() -> None:
    """Entry point for running retention as a script."""
    parser = argparse.ArgumentParser(description="Prune note version history.")
    parser.add_argument(
        "--workspace-id",
        type=UUID,
        default=None,
        help="Only prune notes in this workspace.",
    )
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    asyncio.run(run_retention(workspace_id=args.workspace_id))


if __name__ == "__main__":
    main()
