"""Tests for the Note and NoteVersion models."""
import pytest
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from models.note import Note
from models.note_version import ChangeType, NoteVersion
from tests.conftest import NoteFactory, make_version


class TestNoteModel:
    """Tests for Note defaults."""

    @pytest.mark.asyncio
    async def test__note__defaults(self, db_session: AsyncSession) -> None:
        """A new note starts at version 1 with versioning enabled."""
        note = Note(title="Spec")
        db_session.add(note)
        await db_session.flush()

        assert note.id is not None
        assert note.version == 1
        assert note.versioning_enabled is True
        assert note.content == ""
        assert note.last_version_at is None
        assert note.created_at is not None


class TestNoteVersionModel:
    """Tests for NoteVersion constraints."""

    @pytest.mark.asyncio
    async def test__note_version__uuid7_ids_and_timestamp(
        self,
        db_session: AsyncSession,
        note_factory: NoteFactory,
    ) -> None:
        """Versions get time-ordered UUIDv7 ids and a creation timestamp."""
        note = await note_factory()

        version = (
            await db_session.execute(select(NoteVersion).where(NoteVersion.note_id == note.id))
        ).scalar_one()

        assert version.id.version == 7
        assert note.id.version == 7
        assert version.created_at is not None
        assert version.change_type == ChangeType.CREATED

    @pytest.mark.asyncio
    async def test__note_version__duplicate_number_rejected(
        self,
        db_session: AsyncSession,
        note_factory: NoteFactory,
    ) -> None:
        """(note_id, version) is unique."""
        note = await note_factory()

        db_session.add(make_version(note.id, 1))
        with pytest.raises(IntegrityError):
            await db_session.flush()

    @pytest.mark.asyncio
    async def test__note_version__same_number_on_different_notes(
        self,
        db_session: AsyncSession,
        note_factory: NoteFactory,
    ) -> None:
        """Version numbers are scoped to their note."""
        first = await note_factory()
        second = await note_factory()

        versions = (
            await db_session.execute(select(NoteVersion).where(NoteVersion.version == 1))
        ).scalars().all()

        assert {v.note_id for v in versions} == {first.id, second.id}

    @pytest.mark.asyncio
    async def test__note_version__deleted_with_note(
        self,
        db_session: AsyncSession,
        note_factory: NoteFactory,
    ) -> None:
        """Deleting a note deletes its versions."""
        note = await note_factory()
        note_id = note.id

        await db_session.delete(note)
        await db_session.flush()

        remaining = (
            await db_session.execute(
                select(NoteVersion).where(NoteVersion.note_id == note_id),
            )
        ).scalars().all()
        assert remaining == []
