"""Liveness and storage readiness for the versioning API."""
import logging

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from db.session import get_async_session
from models.note import Note
from models.note_version import NoteVersion

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


class HealthResponse(BaseModel):
    """Readiness of the tables version writes depend on."""

    status: str
    notes_table: str
    versions_table: str


async def _probe(db: AsyncSession, model: type[Note] | type[NoteVersion]) -> str:
    """Read at most one id from a table; "unavailable" on any database error."""
    try:
        async with db.begin_nested():
            await db.execute(select(model.id).limit(1))
    except SQLAlchemyError:
        logger.exception("Health probe failed for table %s", model.__tablename__)
        return "unavailable"
    return "ok"


@router.get("/health", response_model=HealthResponse)
async def health_check(
    db: AsyncSession = Depends(get_async_session),
) -> HealthResponse:
    """Report whether notes and their versions can be read."""
    notes_table = await _probe(db, Note)
    versions_table = await _probe(db, NoteVersion)
    healthy = notes_table == versions_table == "ok"
    return HealthResponse(
        status="healthy" if healthy else "degraded",
        notes_table=notes_table,
        versions_table=versions_table,
    )
