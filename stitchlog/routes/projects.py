"""Project routes."""

from typing import Any

from fastapi import (
    APIRouter,
    Depends,
    File,
    Form,
    Query,
    Response,
    UploadFile,
    status,
)
from sqlalchemy.ext.asyncio import AsyncSession

from stitchlog.database import get_db
from stitchlog.errors import ValidationError
from stitchlog.schemas import (
    InventoryCopy,
    NoteCreate,
    ProjectCreate,
    ProjectUpdate,
    StatusChange,
)
from stitchlog.services import inventory as inventory_service
from stitchlog.services import notes as note_service
from stitchlog.services import photos as photo_service
from stitchlog.services import projects as project_service
from stitchlog.services.presentation import (
    serialize_board,
    serialize_note,
    serialize_photo,
    serialize_project,
    serialize_project_timeline,
)
from stitchlog.services.status import get_workflow
from stitchlog.utils.files import BlobStore, get_blob_store

router = APIRouter(prefix="/projects", tags=["projects"])


@router.get("/")
async def list_projects(
    status_filter: str | None = Query(None, alias="status"),
    tag: str | None = None,
    db: AsyncSession = Depends(get_db),
) -> list[dict[str, Any]]:
    """List projects newest first. ``?status=`` and ``?tag=`` narrow it."""
    if status_filter:
        get_workflow().validate(status_filter)
    projects = await project_service.list_projects(db, status=status_filter, tag=tag)
    return [serialize_project(project) for project in projects]


@router.post("/", status_code=status.HTTP_201_CREATED)
async def create_project(
    payload: ProjectCreate,
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    project = await project_service.create_project(db, payload)
    return serialize_project(project)


@router.get("/board")
async def project_board(db: AsyncSession = Depends(get_db)) -> list[dict[str, Any]]:
    """Projects grouped into one column per status."""
    projects = await project_service.list_projects(db)
    return serialize_board(projects)


@router.get("/{project_id}")
async def get_project(
    project_id: int, db: AsyncSession = Depends(get_db)
) -> dict[str, Any]:
    project = await project_service.require_project(db, project_id)
    return serialize_project(project)


@router.patch("/{project_id}")
async def update_project(
    project_id: int,
    payload: ProjectUpdate,
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    project = await project_service.update_project(db, project_id, payload)
    return serialize_project(project)


@router.put("/{project_id}/status")
async def change_status(
    project_id: int,
    payload: StatusChange,
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    project = await project_service.change_status(db, project_id, payload.status)
    return serialize_project(project)


@router.post("/{project_id}/needles/from-inventory")
async def copy_inventory_needles(
    project_id: int,
    payload: InventoryCopy,
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    """Append copies of inventory needles to the project's needles."""
    project = await inventory_service.copy_inventory_to_project(
        db, project_id, payload.ids
    )
    return serialize_project(project)


@router.delete("/{project_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_project(
    project_id: int,
    db: AsyncSession = Depends(get_db),
    blob_store: BlobStore = Depends(get_blob_store),
) -> Response:
    await project_service.delete_project(db, project_id, blob_store)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/{project_id}/timeline")
async def project_timeline(
    project_id: int, db: AsyncSession = Depends(get_db)
) -> list[dict[str, Any]]:
    project = await project_service.require_project(db, project_id)
    return serialize_project_timeline(project)


@router.get("/{project_id}/photos")
async def list_photos(
    project_id: int, db: AsyncSession = Depends(get_db)
) -> list[dict[str, Any]]:
    await project_service.require_project(db, project_id)
    photos = await photo_service.list_photos(db, project_id)
    return [serialize_photo(photo) for photo in photos]


@router.post("/{project_id}/photos", status_code=status.HTTP_201_CREATED)
async def upload_photo(
    project_id: int,
    file: UploadFile = File(...),
    photo_type: str = Form("progress"),
    db: AsyncSession = Depends(get_db),
    blob_store: BlobStore = Depends(get_blob_store),
) -> dict[str, Any]:
    if not file.filename:
        raise ValidationError(
            "No filename provided", entity="photo", operation="upload"
        )
    photo = await photo_service.upload_photo(
        db,
        blob_store,
        project_id=project_id,
        filename=file.filename,
        content=await file.read(),
        photo_type=photo_type,
    )
    return serialize_photo(photo)


@router.get("/{project_id}/notes")
async def list_notes(
    project_id: int, db: AsyncSession = Depends(get_db)
) -> list[dict[str, Any]]:
    await project_service.require_project(db, project_id)
    notes = await note_service.list_notes(db, project_id)
    return [serialize_note(note) for note in notes]


@router.post("/{project_id}/notes", status_code=status.HTTP_201_CREATED)
async def create_note(
    project_id: int,
    payload: NoteCreate,
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    note = await note_service.create_note(db, project_id, payload)
    return serialize_note(note)
