"""Tag registry: one row per normalized tag name."""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable, Sequence

from sqlalchemy import delete, select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql.expression import Executable

from stitchlog.errors import ValidationError
from stitchlog.models import ProjectTag, Tag

logger = logging.getLogger(__name__)

_WHITESPACE = re.compile(r"\s+")


def normalize_tag_name(raw: str) -> str:
    """Lower-case and trim a tag name, collapsing inner whitespace."""
    return _WHITESPACE.sub(" ", raw).strip().lower()


def normalize_tags(raw_tags: Iterable[str] | None) -> list[str]:
    """Normalize tag names, dropping blanks and duplicates, keeping order."""
    if not raw_tags:
        return []

    seen: set[str] = set()
    tags: list[str] = []
    for candidate in raw_tags:
        cleaned = normalize_tag_name(str(candidate))
        if not cleaned or cleaned in seen:
            continue
        seen.add(cleaned)
        tags.append(cleaned)
    return tags


def _insert_ignoring_duplicates(db: AsyncSession, name: str) -> Executable:
    dialect = db.get_bind().dialect.name
    if dialect == "postgresql":
        return (
            postgresql.insert(Tag)
            .values(name=name)
            .on_conflict_do_nothing(index_elements=[Tag.name])
        )
    if dialect == "sqlite":
        return (
            sqlite.insert(Tag)
            .values(name=name)
            .on_conflict_do_nothing(index_elements=[Tag.name])
        )
    raise NotImplementedError(f"Tag upsert is not supported on {dialect}")


async def upsert_tag(db: AsyncSession, name: str) -> Tag:
    """Return the tag called ``name``, creating it when it does not exist.

    The insert relies on the unique constraint on ``tags.name`` instead of a
    check-then-insert, so two saves introducing the same new tag at once end
    up sharing one row.
    """
    normalized = normalize_tag_name(name)
    if not normalized:
        raise ValidationError(
            "Tag name must not be empty", entity="tag", operation="upsert"
        )

    await db.execute(_insert_ignoring_duplicates(db, normalized))
    result = await db.execute(select(Tag).where(Tag.name == normalized))
    return result.scalar_one()


async def list_all_tags(db: AsyncSession) -> Sequence[Tag]:
    """Return every tag ordered by name, for autocomplete."""
    result = await db.execute(select(Tag).order_by(Tag.name))
    return result.scalars().all()


async def replace_project_tags(
    db: AsyncSession, project_id: int, names: Iterable[str]
) -> list[Tag]:
    """Drop all tag links of a project and link it to ``names`` instead."""
    await db.execute(delete(ProjectTag).where(ProjectTag.project_id == project_id))

    tags: list[Tag] = []
    for name in normalize_tags(names):
        tag = await upsert_tag(db, name)
        db.add(ProjectTag(project_id=project_id, tag_id=tag.id))
        tags.append(tag)
    await db.flush()
    logger.debug("Project %s now tagged %s", project_id, [tag.name for tag in tags])
    return tags
