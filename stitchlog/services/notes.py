"""Progress notes attached to a project."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from datetime import UTC, datetime

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from stitchlog.database import translate_db_error
from stitchlog.errors import NotFoundError
from stitchlog.models import Note, Project
from stitchlog.schemas import NoteCreate, NoteUpdate

logger = logging.getLogger(__name__)


async def _commit(db: AsyncSession, operation: str, entity_id: int) -> None:
    try:
        await db.commit()
    except SQLAlchemyError as exc:
        await db.rollback()
        raise translate_db_error(
            exc, entity="note", operation=operation, entity_id=entity_id
        ) from exc


async def _get_note(db: AsyncSession, note_id: int, operation: str) -> Note:
    note = await db.get(Note, note_id)
    if note is None:
        raise NotFoundError(
            f"Note {note_id} not found",
            entity="note",
            operation=operation,
            entity_id=note_id,
        )
    return note


async def list_notes(db: AsyncSession, project_id: int) -> Sequence[Note]:
    """Return a project's notes, newest first."""
    result = await db.execute(
        select(Note)
        .where(Note.project_id == project_id)
        .order_by(Note.created_at.desc(), Note.id.desc())
    )
    return result.scalars().all()


async def create_note(db: AsyncSession, project_id: int, command: NoteCreate) -> Note:
    if await db.get(Project, project_id) is None:
        raise NotFoundError(
            f"Project {project_id} not found",
            entity="project",
            operation="create_note",
            entity_id=project_id,
        )

    note = Note(
        project_id=project_id,
        content=command.content,
        photo_urls=list(command.photo_urls),
    )
    db.add(note)
    await _commit(db, "create", project_id)
    await db.refresh(note)
    logger.info("Added note %s to project %s", note.id, project_id)
    return note


async def update_note(db: AsyncSession, note_id: int, command: NoteUpdate) -> Note:
    """Edit a note's content and/or its attached photo URLs."""
    note = await _get_note(db, note_id, "update")

    if command.content is not None:
        note.content = command.content
    if command.photo_urls is not None:
        # Reassign so the JSON column is flagged as changed.
        note.photo_urls = list(command.photo_urls)
    note.updated_at = datetime.now(UTC)

    await _commit(db, "update", note_id)
    await db.refresh(note)
    return note


async def delete_note(db: AsyncSession, note_id: int) -> None:
    note = await _get_note(db, note_id, "delete")
    await db.delete(note)
    await _commit(db, "delete", note_id)
    logger.info("Deleted note %s", note_id)
