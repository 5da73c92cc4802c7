"""Project aggregate store.

A project and the rows it owns (pattern, yarns, needles, tag links, photos,
notes) are written as one unit. Every create/update runs inside a single
session transaction: when a child stage fails the whole command is rolled
back and a :class:`PartialWriteError` tells the caller which stage broke.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from datetime import UTC, datetime
from typing import Any, NoReturn

from sqlalchemy import Select, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from stitchlog.database import translate_db_error
from stitchlog.errors import (
    CreationError,
    NotFoundError,
    PartialWriteError,
    ValidationError,
)
from stitchlog.models import Project, ProjectTag, Tag
from stitchlog.schemas import PatternInput, ProjectCreate, ProjectUpdate
from stitchlog.services.collections import replace_collection
from stitchlog.services.status import StatusWorkflow, get_workflow
from stitchlog.services.tags import normalize_tag_name, replace_project_tags
from stitchlog.utils.files import BlobStore

logger = logging.getLogger(__name__)

SCALAR_FIELDS: tuple[str, ...] = ("name", "description", "status")
CHILD_FIELDS: tuple[str, ...] = ("pattern", "yarns", "needles", "tags")


def _aggregate_query() -> Select[tuple[Project]]:
    return select(Project).options(
        selectinload(Project.patterns),
        selectinload(Project.yarns),
        selectinload(Project.needles),
        selectinload(Project.photos),
        selectinload(Project.notes),
        selectinload(Project.project_tags).selectinload(ProjectTag.tag),
    )


async def get_project(db: AsyncSession, project_id: int) -> Project | None:
    """Load a project with all of its children, or None when it is absent.

    Always reads from the database, never from objects already held by the
    session, so the result reflects what is actually stored.
    """
    result = await db.execute(
        _aggregate_query()
        .where(Project.id == project_id)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def require_project(db: AsyncSession, project_id: int) -> Project:
    """Like :func:`get_project` but raise NotFoundError when absent."""
    project = await get_project(db, project_id)
    if project is None:
        raise NotFoundError(
            f"Project {project_id} not found",
            entity="project",
            operation="read",
            entity_id=project_id,
        )
    return project


async def list_projects(
    db: AsyncSession,
    *,
    status: str | None = None,
    tag: str | None = None,
) -> Sequence[Project]:
    """Return all projects newest first, optionally narrowed by status/tag."""
    query = _aggregate_query().order_by(Project.created_at.desc(), Project.id.desc())
    if status:
        query = query.where(Project.status == status)
    if tag:
        query = query.where(
            Project.project_tags.any(
                ProjectTag.tag.has(Tag.name == normalize_tag_name(tag))
            )
        )
    result = await db.execute(query.execution_options(populate_existing=True))
    return result.scalars().all()


def _pattern_items(pattern: PatternInput | None) -> list[PatternInput]:
    # A pattern without a name means "no pattern".
    if pattern is None or not pattern.name:
        return []
    return [pattern]


async def _write_children(
    db: AsyncSession, project_id: int, children: dict[str, Any]
) -> None:
    """Replace each child collection present in ``children``."""
    for field in CHILD_FIELDS:
        if field not in children:
            continue
        value = children[field]
        if field == "pattern":
            await replace_collection(db, project_id, "pattern", _pattern_items(value))
        elif field == "tags":
            try:
                await replace_project_tags(db, project_id, value or [])
            except SQLAlchemyError as exc:
                raise PartialWriteError(
                    f"Could not link tags to project {project_id}: {exc}",
                    stage="tags",
                    rolled_back=False,
                    entity="project",
                    operation="replace_tags",
                    entity_id=project_id,
                ) from exc
        else:
            await replace_collection(db, project_id, field, value or [])


async def _abort(
    db: AsyncSession, exc: PartialWriteError, *, operation: str, project_id: int
) -> NoReturn:
    """Roll back a failed aggregate write and re-raise with the outcome."""
    rolled_back = True
    try:
        await db.rollback()
    except SQLAlchemyError:
        rolled_back = False
        logger.exception(
            "Rollback after failed %s of project %s failed", operation, project_id
        )

    logger.error(
        "%s of project %s failed at stage %s (rolled back: %s)",
        operation,
        project_id,
        exc.stage,
        rolled_back,
    )
    raise PartialWriteError(
        exc.detail,
        stage=exc.stage,
        rolled_back=rolled_back,
        entity="project",
        operation=operation,
        entity_id=project_id,
    ) from exc


async def _commit(db: AsyncSession, *, operation: str, project_id: int) -> None:
    try:
        await db.commit()
    except SQLAlchemyError as exc:
        await db.rollback()
        raise translate_db_error(
            exc, entity="project", operation=operation, entity_id=project_id
        ) from exc


async def create_project(
    db: AsyncSession,
    command: ProjectCreate,
    *,
    workflow: StatusWorkflow | None = None,
) -> Project:
    """Create a project together with its pattern, yarns, needles and tags."""
    workflow = workflow or get_workflow()
    status = workflow.validate(command.status) if command.status else workflow.default

    project = Project(
        name=command.name,
        description=command.description,
        status=status,
    )
    db.add(project)
    try:
        await db.flush()
    except SQLAlchemyError as exc:
        await db.rollback()
        logger.error("Could not insert project %r: %s", command.name, exc)
        raise CreationError(
            f"Could not create project {command.name!r}",
            entity="project",
            operation="create",
        ) from exc

    project_id = project.id
    children = {
        "pattern": command.pattern,
        "yarns": command.yarns,
        "needles": command.needles,
        "tags": command.tags,
    }
    try:
        await _write_children(db, project_id, children)
    except PartialWriteError as exc:
        # The project row goes away with the rollback, no partial aggregate
        # is left behind.
        await _abort(db, exc, operation="create", project_id=project_id)
    except SQLAlchemyError as exc:
        await db.rollback()
        logger.error("Create of project %s failed: %s", project_id, exc)
        raise translate_db_error(
            exc, entity="project", operation="create", entity_id=project_id
        ) from exc

    await _commit(db, operation="create", project_id=project_id)
    logger.info("Created project %s (%s)", project_id, command.name)
    return await require_project(db, project_id)


async def update_project(
    db: AsyncSession,
    project_id: int,
    command: ProjectUpdate,
    *,
    workflow: StatusWorkflow | None = None,
) -> Project:
    """Apply the fields present in ``command`` to a project.

    Scalar fields are assigned when given. Each child collection that was
    given, even as an empty list, is replaced wholesale; omitted collections
    are left alone.
    """
    workflow = workflow or get_workflow()

    project = await db.get(Project, project_id, populate_existing=True)
    if project is None:
        raise NotFoundError(
            f"Project {project_id} not found",
            entity="project",
            operation="update",
            entity_id=project_id,
        )
    # Children are rewritten with bulk statements below, stale collections
    # loaded earlier in this session must not be flushed back.
    db.expire(project, ["patterns", "yarns", "needles", "project_tags"])

    # Validate before touching anything.
    new_status: str | None = None
    if command.provides("status") and command.status is not None:
        new_status = workflow.transition(project.status, command.status)

    if command.provides("name") and command.name is not None:
        project.name = command.name
    if command.provides("description") and command.description is not None:
        project.description = command.description
    if new_status is not None:
        project.status = new_status
    project.updated_at = datetime.now(UTC)

    children = {
        field: getattr(command, field)
        for field in CHILD_FIELDS
        if command.provides(field)
    }
    try:
        await db.flush()
        await _write_children(db, project_id, children)
    except PartialWriteError as exc:
        await _abort(db, exc, operation="update", project_id=project_id)
    except SQLAlchemyError as exc:
        await db.rollback()
        raise translate_db_error(
            exc, entity="project", operation="update", entity_id=project_id
        ) from exc

    await _commit(db, operation="update", project_id=project_id)
    logger.info(
        "Updated project %s (fields: %s)",
        project_id,
        ", ".join(sorted(command.model_fields_set)) or "-",
    )
    return await require_project(db, project_id)


async def change_status(
    db: AsyncSession,
    project_id: int,
    status: str,
    *,
    workflow: StatusWorkflow | None = None,
) -> Project:
    """Move a project to ``status``. Any recognised status is reachable."""
    return await update_project(
        db, project_id, ProjectUpdate(status=status), workflow=workflow
    )


async def delete_project(
    db: AsyncSession, project_id: int, blob_store: BlobStore
) -> None:
    """Delete a project and everything it owns.

    Photo blobs are removed before the rows: if the blob store fails, the
    project stays in place and the call can simply be retried. Tags are
    shared and survive.
    """
    project = await require_project(db, project_id)

    for photo in project.photos:
        try:
            path = blob_store.path_from_url(photo.storage_path)
        except ValidationError:
            logger.warning(
                "Photo %s of project %s is not in the blob store (%s), "
                "dropping the record only",
                photo.id,
                project_id,
                photo.storage_path,
            )
            continue
        blob_store.delete(path)

    await db.delete(project)
    await _commit(db, operation="delete", project_id=project_id)
    logger.info("Deleted project %s (%s)", project_id, project.name)
