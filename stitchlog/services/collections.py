"""Full replacement of a project's owned child collections."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from typing import Any

from pydantic import BaseModel
from sqlalchemy import delete
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from stitchlog.errors import PartialWriteError, ValidationError
from stitchlog.models import Needle, Pattern, Yarn
from stitchlog.models.base import Base

logger = logging.getLogger(__name__)

CHILD_MODELS: dict[str, type[Base]] = {
    "pattern": Pattern,
    "yarns": Yarn,
    "needles": Needle,
}


def _as_row_values(item: BaseModel | Mapping[str, Any]) -> dict[str, Any]:
    if isinstance(item, BaseModel):
        return item.model_dump(mode="json")
    return dict(item)


async def replace_collection(
    db: AsyncSession,
    project_id: int,
    child_type: str,
    new_items: Iterable[BaseModel | Mapping[str, Any]],
) -> list[Any]:
    """Delete every ``child_type`` row of a project, then insert ``new_items``.

    An empty ``new_items`` clears the collection. Nothing is merged: rows are
    always recreated with fresh ids. Both phases run in the caller's
    transaction and nothing is committed here. If the insert phase fails a
    :class:`PartialWriteError` is raised with ``rolled_back=False`` because
    the delete phase has already been flushed; the caller decides whether to
    roll back.
    """
    try:
        model = CHILD_MODELS[child_type]
    except KeyError as exc:
        raise ValidationError(
            f"Unknown child collection {child_type!r}",
            entity="project",
            operation="replace_collection",
            entity_id=project_id,
        ) from exc

    owner_column = model.project_id  # type: ignore[attr-defined]
    await db.execute(delete(model).where(owner_column == project_id))

    rows: list[Any] = []
    try:
        for item in new_items:
            values = _as_row_values(item)
            values.pop("id", None)
            values["project_id"] = project_id
            row = model(**values)
            db.add(row)
            rows.append(row)
        await db.flush()
    except (SQLAlchemyError, TypeError) as exc:
        logger.error(
            "Inserting %s for project %s failed after the old rows were removed: %s",
            child_type,
            project_id,
            exc,
        )
        raise PartialWriteError(
            f"Could not insert new {child_type} for project {project_id}: {exc}",
            stage=child_type,
            rolled_back=False,
            entity="project",
            operation="replace_collection",
            entity_id=project_id,
        ) from exc

    logger.debug(
        "Replaced %s of project %s with %d rows", child_type, project_id, len(rows)
    )
    return rows
