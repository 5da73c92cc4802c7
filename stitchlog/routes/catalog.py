"""Lookup routes: tags, statuses, yarn weights, needle inventory, pattern import."""

from typing import Any

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from stitchlog.database import get_db
from stitchlog.models import YarnWeight
from stitchlog.schemas import NeedleInventoryInput, PatternLookup
from stitchlog.services import inventory as inventory_service
from stitchlog.services.catalog import RavelryCatalog, get_catalog
from stitchlog.services.presentation import serialize_needle, serialize_tag
from stitchlog.services.status import get_workflow
from stitchlog.services.tags import list_all_tags

router = APIRouter(tags=["catalog"])


@router.get("/tags")
async def list_tags(db: AsyncSession = Depends(get_db)) -> list[dict[str, Any]]:
    """All tags ordered by name, for autocomplete."""
    return [serialize_tag(tag) for tag in await list_all_tags(db)]


@router.get("/statuses")
async def list_statuses() -> list[dict[str, str]]:
    return [
        {"key": option.key, "label": option.label, "color": option.color}
        for option in get_workflow().options
    ]


@router.get("/yarn-weights")
async def list_yarn_weights() -> list[dict[str, str]]:
    """Suggested yarn weights. Yarns may still use any other value."""
    return [
        {"key": weight.value, "label": weight.value.replace("-", " ").capitalize()}
        for weight in YarnWeight
    ]


@router.get("/needle-inventory")
async def list_inventory(db: AsyncSession = Depends(get_db)) -> list[dict[str, Any]]:
    needles = await inventory_service.list_inventory(db)
    return [serialize_needle(needle) for needle in needles]


@router.post("/needle-inventory", status_code=status.HTTP_201_CREATED)
async def add_inventory_needle(
    payload: NeedleInventoryInput,
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    needle = await inventory_service.add_inventory_needle(db, payload)
    return serialize_needle(needle)


@router.delete(
    "/needle-inventory/{needle_id}", status_code=status.HTTP_204_NO_CONTENT
)
async def delete_inventory_needle(
    needle_id: int, db: AsyncSession = Depends(get_db)
) -> Response:
    await inventory_service.delete_inventory_needle(db, needle_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/patterns/lookup")
async def lookup_pattern(
    payload: PatternLookup,
    catalog: RavelryCatalog = Depends(get_catalog),
) -> dict[str, Any]:
    """Resolve a Ravelry pattern URL into pattern fields for the project form."""
    pattern = await catalog.lookup(payload.url)
    return pattern.model_dump()
