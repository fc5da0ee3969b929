"""Pytest fixtures for testing."""
import os
from collections.abc import AsyncGenerator, Awaitable, Callable, Generator
from datetime import datetime
from uuid import UUID

# Settings are validated when db.session is imported, so the database URL must
# be in the environment before any app imports. Tests default to in-memory SQLite.
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")

import pytest  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker  # noqa: E402

from db.session import create_engine_for_url  # noqa: E402
from models import Base, ChangeType, Note, NoteVersion  # noqa: E402
from services.change_detection import generate_content_hash  # noqa: E402
from services.version_service import VersionRef, version_service  # noqa: E402

NoteFactory = Callable[..., Awaitable[Note]]


@pytest.fixture(scope="session")
def database_url() -> Generator[str]:
    """
    Database URL for the test session.

    Set TEST_POSTGRES=1 to run against PostgreSQL in a container (requires Docker).
    """
    if os.environ.get("TEST_POSTGRES") == "1":
        from testcontainers.postgres import PostgresContainer

        with PostgresContainer("postgres:16", driver="asyncpg") as postgres:
            yield postgres.get_connection_url()
    else:
        yield "sqlite+aiosqlite:///:memory:"


@pytest.fixture
async def async_engine(database_url: str) -> AsyncGenerator[AsyncEngine]:
    """Create an async engine with a fresh schema for each test."""
    engine = create_engine_for_url(database_url)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
async def db_session(async_engine: AsyncEngine) -> AsyncGenerator[AsyncSession]:
    """Create an async session for the test database."""
    session_factory = async_sessionmaker(
        bind=async_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    async with session_factory() as session:
        yield session


@pytest.fixture
async def client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient]:
    """Create a test client with database session override, acting as alice."""
    from api.main import app
    from db.session import get_async_session

    async def override_get_async_session() -> AsyncGenerator[AsyncSession]:
        yield db_session

    app.dependency_overrides[get_async_session] = override_get_async_session

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
        headers={"X-Author-Id": "alice"},
    ) as test_client:
        yield test_client

    app.dependency_overrides.clear()


@pytest.fixture
def note_factory(db_session: AsyncSession) -> NoteFactory:
    """
    Create notes the way the host application does.

    The note row is inserted first, then its initial version is recorded
    (unless initial_version=False).
    """

    async def _create(
        title: str = "Spec",
        content: str = "line1\nline2",
        *,
        author_id: str = "alice",
        workspace_id: UUID | None = None,
        versioning_enabled: bool = True,
        initial_version: bool = True,
    ) -> Note:
        note = Note(
            title=title,
            content=content,
            workspace_id=workspace_id,
            versioning_enabled=versioning_enabled,
        )
        db_session.add(note)
        await db_session.flush()
        if initial_version:
            await version_service.create_initial_version(
                db_session, note.id, title, content, author_id,
            )
        return note

    return _create


async def save_note(
    db: AsyncSession,
    note: Note,
    title: str,
    content: str,
    author_id: str = "alice",
) -> VersionRef:
    """Record a version for an edit, then apply the edit to the note (host behavior)."""
    ref = await version_service.create_version(db, note.id, title, content, author_id)
    note.title = title
    note.content = content
    await db.flush()
    return ref


def make_version(
    note_id: UUID,
    version: int,
    *,
    change_type: ChangeType = ChangeType.EDIT,
    created_at: datetime | None = None,
    content: str | None = None,
) -> NoteVersion:
    """Build a NoteVersion row directly (bypassing the service)."""
    content = content if content is not None else f"Content v{version}"
    record = NoteVersion(
        note_id=note_id,
        version=version,
        title=f"Title v{version}",
        content=content,
        author_id="alice",
        change_type=change_type.value,
        content_hash=generate_content_hash(content),
    )
    if created_at is not None:
        record.created_at = created_at
    return record


async def seed_versions(
    db: AsyncSession,
    note: Note,
    count: int,
    created_at: datetime | None = None,
) -> None:
    """
    Give a note versions 1..count directly (version 1 is CREATED).

    The note must have been created without an initial version.
    """
    for number in range(1, count + 1):
        db.add(
            make_version(
                note.id,
                number,
                change_type=ChangeType.CREATED if number == 1 else ChangeType.EDIT,
                created_at=created_at,
            ),
        )
    note.version = count
    await db.flush()
