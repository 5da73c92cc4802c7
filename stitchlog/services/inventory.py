"""Needle inventory: needles the user owns, used to prefill projects."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from stitchlog.database import translate_db_error
from stitchlog.errors import NotFoundError
from stitchlog.models import NeedleInventory, Project
from stitchlog.schemas import NeedleInput, NeedleInventoryInput, ProjectUpdate
from stitchlog.services.projects import require_project, update_project

logger = logging.getLogger(__name__)


async def list_inventory(db: AsyncSession) -> Sequence[NeedleInventory]:
    """Return all inventory needles ordered by type, then size."""
    result = await db.execute(
        select(NeedleInventory).order_by(
            NeedleInventory.type, NeedleInventory.size, NeedleInventory.id
        )
    )
    return result.scalars().all()


async def add_inventory_needle(
    db: AsyncSession, command: NeedleInventoryInput
) -> NeedleInventory:
    needle = NeedleInventory(
        size=command.size,
        type=command.type.value,
        length=command.length or None,
    )
    db.add(needle)
    try:
        await db.commit()
    except SQLAlchemyError as exc:
        await db.rollback()
        raise translate_db_error(
            exc, entity="needle_inventory", operation="create"
        ) from exc
    await db.refresh(needle)
    logger.info("Added %s %s needle to inventory", needle.size, needle.type)
    return needle


async def delete_inventory_needle(db: AsyncSession, needle_id: int) -> None:
    needle = await db.get(NeedleInventory, needle_id)
    if needle is None:
        raise NotFoundError(
            f"Inventory needle {needle_id} not found",
            entity="needle_inventory",
            operation="delete",
            entity_id=needle_id,
        )
    await db.delete(needle)
    try:
        await db.commit()
    except SQLAlchemyError as exc:
        await db.rollback()
        raise translate_db_error(
            exc, entity="needle_inventory", operation="delete", entity_id=needle_id
        ) from exc


async def inventory_to_needle_inputs(
    db: AsyncSession, needle_ids: Iterable[int]
) -> list[NeedleInput]:
    """Copy inventory presets into project needle inputs.

    The copies keep no reference to the inventory rows. Ids are returned in
    the requested order; unknown ids raise NotFoundError.
    """
    wanted = list(needle_ids)
    if not wanted:
        return []

    result = await db.execute(
        select(NeedleInventory).where(NeedleInventory.id.in_(wanted))
    )
    by_id = {needle.id: needle for needle in result.scalars()}
    missing = [needle_id for needle_id in wanted if needle_id not in by_id]
    if missing:
        raise NotFoundError(
            f"Inventory needles not found: {missing}",
            entity="needle_inventory",
            operation="copy",
            entity_id=missing[0],
        )

    return [
        NeedleInput(
            size=by_id[needle_id].size,
            type=by_id[needle_id].type,
            length=by_id[needle_id].length,
        )
        for needle_id in wanted
    ]


async def copy_inventory_to_project(
    db: AsyncSession, project_id: int, needle_ids: Iterable[int]
) -> Project:
    """Append copies of inventory needles to a project's needle list."""
    project = await require_project(db, project_id)
    copies = await inventory_to_needle_inputs(db, needle_ids)
    kept = [
        NeedleInput(size=needle.size, type=needle.type, length=needle.length)
        for needle in project.needles
    ]
    logger.info("Copying %d inventory needles to project %s", len(copies), project_id)
    return await update_project(db, project_id, ProjectUpdate(needles=kept + copies))
